"""Users domain - profile, preferences and stats rows."""

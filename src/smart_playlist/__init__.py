"""Smart Playlist - AI-generated playlists from natural-language prompts."""

__version__ = "0.1.0"

"""Prompts for playlist generation."""

from typing import List, Optional

from ..models import UserPreferences

SYSTEM_PROMPT = """You are **SmartPlaylistAI**, a music expert AI that generates personalized playlists using strict criteria. Return **ONLY a valid JSON array** of songs with the following rules:

**Role & Expertise**
1. Analyze song metadata and characteristics:
   - Title and Artist (required)
   - BPM/Tempo (optional, numeric)
   - Duration in seconds (optional, numeric)
   - Year of release (optional, numeric)
   - Album name (optional, string)
   - Consider genre cohesion and mood progression

2. **Playlist Flow**:
   - Create natural transitions between songs
   - Consider energy levels and mood progression
   - Balance familiar and lesser-known tracks
   - Ensure genre consistency unless diversity is requested

**User Constraints**
- Unique artists (no repeats unless specifically requested)
- Songs that match the prompt's intent
- Respect the user's genre preferences, mood, BPM range and era if given

**Output Format**
[
  {
    "title": "Song Title",
    "artist": "Artist Name",
    "album": "Album Name",
    "year": 2024,
    "bpm": 120,
    "duration": 180
  }
]

Only title and artist are required. Other fields are optional but should be included when confident about their values."""


def build_preference_hints(
    preferences: Optional[UserPreferences], mood: Optional[str]
) -> List[str]:
    """Context lines describing the user's tastes and the target mood."""
    hints = []
    if preferences:
        if preferences.preferred_genres:
            hints.append(f"- Preferred genres: {', '.join(preferences.preferred_genres)}")
        if preferences.favorite_artists:
            hints.append(
                f"- Consider these artists: {', '.join(preferences.favorite_artists)}"
            )
        if preferences.bpm_range:
            low, high = preferences.bpm_range
            hints.append(f"- BPM range: {low}-{high}")

    if mood:
        hints.append(f"- Target mood: {mood}")
    else:
        hints.append("- Create a balanced mix of moods based on the prompt")
    return hints


def build_playlist_prompt(
    prompt: str,
    song_count: int,
    mood: Optional[str] = None,
    preferences: Optional[UserPreferences] = None,
) -> str:
    """Build the user message for a playlist request."""
    context_section = "\n".join(build_preference_hints(preferences, mood))
    mood_rule = (
        f"9. Songs should match the {mood} mood"
        if mood
        else "9. Create a natural mood progression based on the prompt"
    )

    return f"""Create a playlist with {song_count} songs based on: "{prompt}"

Additional context:
{context_section}

Return ONLY a valid JSON array of songs. Format:
[
  {{
    "title": "Song Title",
    "artist": "Artist Name",
    "album": "Album Name",
    "year": 2024,
    "bpm": 120,
    "duration": 180
  }}
]

Important:
1. Response must start with [ and end with ]
2. No text before or after the JSON array
3. All strings must be properly quoted
4. No trailing commas
5. Exactly {song_count} songs
6. No duplicate songs
7. Maximum response length: 4000 characters
8. Include estimated duration in seconds for each song (average song is 180-240 seconds)
{mood_rule}"""

"""
Smart Playlist CLI - Entry point

Sign in, generate playlists from prompts, and manage stored playlists.
"""

import argparse
import getpass
import sys
import webbrowser
from typing import Callable, List, Optional

from rich.table import Table

from smart_playlist.core.backend import BackendClient
from smart_playlist.core.config import Config, load_config
from smart_playlist.core.console import get_console, safe_print
from smart_playlist.core.errors import SmartPlaylistError
from smart_playlist.core.output import log, setup_from_config
from smart_playlist.domain import playlists
from smart_playlist.domain.models import Playlist
from smart_playlist.domain.session import SessionManager
from smart_playlist.domain.users import profiles


def _format_duration(seconds: int) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}:{secs:02d}"


def print_playlist(playlist: Playlist) -> None:
    """Render a playlist and its songs as a table."""
    table = Table(title=f"{playlist.name} ({playlist.song_count} songs, {_format_duration(playlist.total_duration)})")
    table.add_column("#", justify="right", style="muted")
    table.add_column("Title")
    table.add_column("Artist")
    table.add_column("Album", style="muted")
    table.add_column("Year", justify="right")
    table.add_column("BPM", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("ID", style="muted")

    for index, song in enumerate(playlist.songs, start=1):
        table.add_row(
            str(index),
            song.title,
            song.artist,
            song.album or "",
            str(song.year or ""),
            str(song.bpm or ""),
            _format_duration(song.duration),
            song.id,
        )
    get_console().print(table)


def _quiet_navigator(url: str) -> bool:
    """Navigator for commands where a browser redirect is not wanted."""
    return True


def build_session_manager(
    config: Config, navigator: Callable[[str], object] = _quiet_navigator
) -> SessionManager:
    """Create the session manager and restore any saved session."""
    manager = SessionManager(config, BackendClient(config.backend), navigator=navigator)
    manager.start()
    return manager


def cmd_signup(config: Config, args: argparse.Namespace) -> int:
    manager = build_session_manager(config)
    password = getpass.getpass("Password: ")
    context = manager.register(args.email, password, args.name)
    if context.is_authenticated:
        log(f"✓ Signed up and signed in as {args.email}", level="success")
    else:
        log(f"✓ Signed up {args.email}. Confirm your email, then run 'login'.", level="success")
    return 0


def cmd_login(config: Config, args: argparse.Namespace) -> int:
    if args.provider:
        manager = build_session_manager(config, navigator=webbrowser.open)
        auth_url = manager.authenticate_with_provider(args.provider)
        safe_print(f"If the browser did not open, visit:\n{auth_url}", style="muted")
        callback_url = input("\nPaste the callback URL: ").strip()
        redirect = manager.complete_provider_sign_in(callback_url)
        if redirect is None:
            log("Sign in cancelled", level="warning")
            return 1
    else:
        manager = build_session_manager(config)
        password = getpass.getpass("Password: ")
        manager.authenticate(args.email, password)

    user = manager.user
    log(f"✓ Signed in as {user.email or user.id}", level="success")
    return 0


def cmd_logout(config: Config, args: argparse.Namespace) -> int:
    manager = build_session_manager(config)
    manager.deauthenticate()
    log("✓ Signed out", level="success")
    return 0


def cmd_whoami(config: Config, args: argparse.Namespace) -> int:
    manager = build_session_manager(config)
    if not manager.context.is_authenticated:
        safe_print("Not signed in", style="warning")
        return 1
    user = manager.user
    safe_print(f"{user.full_name or '(no name)'} <{user.email}>  id={user.id}")
    stats = profiles.get_user_stats(manager.context, user.id)
    if stats:
        for key, value in stats.items():
            if key != "user_id":
                safe_print(f"  {key}: {value}", style="muted")
    return 0


def cmd_generate(config: Config, args: argparse.Namespace) -> int:
    manager = build_session_manager(config)
    prompt = " ".join(args.prompt)

    with get_console().status("Generating playlist..."):
        result = playlists.generate_playlist(
            manager.context,
            prompt,
            mood=args.mood,
            song_count=args.count,
            config=config,
        )

    print_playlist(result.playlist)
    if not result.complete:
        log(
            f"⚠ {result.succeeded}/{result.attempted} songs were saved",
            level="warning",
        )
        for title, error in result.failures:
            safe_print(f"  ✗ {title}: {error}", style="muted")
    return 0


def cmd_list(config: Config, args: argparse.Namespace) -> int:
    manager = build_session_manager(config)
    user = manager.user
    if user is None:
        log("Not signed in", level="error")
        return 1

    table = Table(title="Your playlists")
    table.add_column("ID", style="muted")
    table.add_column("Name")
    table.add_column("Mood")
    table.add_column("Songs", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("Public")
    for playlist in playlists.get_user_playlists(manager.context, user.id):
        table.add_row(
            playlist.id,
            playlist.name,
            playlist.mood or "",
            str(playlist.song_count),
            _format_duration(playlist.total_duration),
            "yes" if playlist.is_public else "no",
        )
    get_console().print(table)
    return 0


def cmd_show(config: Config, args: argparse.Namespace) -> int:
    manager = build_session_manager(config)
    playlist = playlists.get_playlist(manager.context, args.playlist_id)
    if playlist is None:
        log(f"Playlist {args.playlist_id} not found", level="error")
        return 1
    print_playlist(playlist)
    return 0


def cmd_remove_song(config: Config, args: argparse.Namespace) -> int:
    manager = build_session_manager(config)
    playlists.remove_song(manager.context, args.playlist_id, args.song_id)
    log("✓ Song removed", level="success")
    return 0


def cmd_preferences(config: Config, args: argparse.Namespace) -> int:
    manager = build_session_manager(config)
    user = manager.user
    if user is None:
        log("Not signed in", level="error")
        return 1

    changes = {}
    if args.genres is not None:
        changes["preferred_genres"] = [g.strip() for g in args.genres.split(",") if g.strip()]
    if args.artists is not None:
        changes["favorite_artists"] = [a.strip() for a in args.artists.split(",") if a.strip()]
    if args.bpm is not None:
        low, _, high = args.bpm.partition("-")
        changes["preferred_bpm_min"] = int(low)
        changes["preferred_bpm_max"] = int(high or low)

    if changes:
        profiles.ensure_user_profile(manager.context)
        prefs = profiles.update_user_preferences(manager.context, user.id, changes)
        log("✓ Preferences updated", level="success")
    else:
        prefs = profiles.get_user_preferences(manager.context, user.id)

    if prefs is None:
        safe_print("No preferences saved yet", style="warning")
        return 0
    safe_print(f"Genres:  {', '.join(prefs.preferred_genres) or '-'}")
    safe_print(f"Artists: {', '.join(prefs.favorite_artists) or '-'}")
    bpm = f"{prefs.bpm_range[0]}-{prefs.bpm_range[1]}" if prefs.bpm_range else "-"
    safe_print(f"BPM:     {bpm}")
    return 0


def cmd_serve(config: Config, args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("web.backend.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


COMMANDS = {
    "signup": cmd_signup,
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "generate": cmd_generate,
    "list": cmd_list,
    "show": cmd_show,
    "remove-song": cmd_remove_song,
    "preferences": cmd_preferences,
    "serve": cmd_serve,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Smart Playlist - AI playlists from natural-language prompts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    signup_parser = subparsers.add_parser("signup", help="Create an account")
    signup_parser.add_argument("email")
    signup_parser.add_argument("--name", required=True, help="Display name")

    login_parser = subparsers.add_parser("login", help="Sign in")
    login_group = login_parser.add_mutually_exclusive_group(required=True)
    login_group.add_argument("--email")
    login_group.add_argument("--provider", help="OAuth provider (spotify, google)")

    subparsers.add_parser("logout", help="Sign out")
    subparsers.add_parser("whoami", help="Show the signed-in user")

    generate_parser = subparsers.add_parser("generate", help="Generate a playlist")
    generate_parser.add_argument("prompt", nargs="+", help="What the playlist is about")
    generate_parser.add_argument("--mood", help="Target mood")
    generate_parser.add_argument("--count", type=int, help="Number of songs")

    subparsers.add_parser("list", help="List your playlists")

    show_parser = subparsers.add_parser("show", help="Show a playlist")
    show_parser.add_argument("playlist_id")

    remove_parser = subparsers.add_parser("remove-song", help="Remove a song from a playlist")
    remove_parser.add_argument("playlist_id")
    remove_parser.add_argument("song_id")

    prefs_parser = subparsers.add_parser("preferences", help="Show or update preferences")
    prefs_parser.add_argument("--genres", help="Comma-separated genres")
    prefs_parser.add_argument("--artists", help="Comma-separated artists")
    prefs_parser.add_argument("--bpm", help="BPM range, e.g. 90-120")

    serve_parser = subparsers.add_parser("serve", help="Run the web API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the smart-playlist command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.subcommand:
        parser.print_help()
        sys.exit(1)

    config = load_config()
    setup_from_config(config.logging)

    try:
        sys.exit(COMMANDS[args.subcommand](config, args))
    except SmartPlaylistError as e:
        log(f"❌ {e}", level="error")
        sys.exit(1)
    except ValueError as e:
        log(f"❌ {e}", level="error")
        sys.exit(2)
    except (EOFError, KeyboardInterrupt):
        safe_print("\nCancelled", style="warning")
        sys.exit(130)


if __name__ == "__main__":
    main()

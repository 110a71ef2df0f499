"""
Configuration management for Smart Playlist
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class BackendConfig:
    """Configuration for the hosted auth/storage service."""

    url: str = ""
    anon_key: str = ""
    timeout_seconds: int = 30
    # Profile row creation retries (exponential backoff: base * 2**attempt)
    profile_retry_attempts: int = 3
    profile_retry_base_delay: float = 1.0


@dataclass
class AIConfig:
    """Configuration for the chat-completion API."""

    api_key: Optional[str] = None
    base_url: str = "https://api.groq.com/openai/v1"
    model: str = "mixtral-8x7b-32768"
    temperature: float = 0.7
    max_tokens: int = 4000
    stop: List[str] = field(default_factory=lambda: ["}]"])


@dataclass
class GenerationConfig:
    """Configuration for playlist generation."""

    default_song_count: int = 10
    max_song_count: int = 50

    def validate(self) -> None:
        """Validate generation configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.max_song_count < 1:
            raise ValueError(
                f"max_song_count must be at least 1, got {self.max_song_count}"
            )
        if not 1 <= self.default_song_count <= self.max_song_count:
            raise ValueError(
                f"default_song_count must be between 1 and {self.max_song_count}, "
                f"got {self.default_song_count}"
            )


@dataclass
class AuthConfig:
    """Configuration for sign-in redirects."""

    site_url: str = "http://localhost:5173"
    callback_path: str = "/auth/callback"
    home_path: str = "/"


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/smart-playlist/smart-playlist.log)
    )
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_output: bool = False


@dataclass
class Config:
    """Main configuration object."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "smart-playlist"
    return Path.home() / ".config" / "smart-playlist"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "smart-playlist"
    return Path.home() / ".local" / "share" / "smart-playlist"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            if config_path.exists():
                return config_path
            return None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/smart-playlist (or ~/.config/smart-playlist)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Smart Playlist Configuration

[backend]
# Hosted auth/storage project (SUPABASE_URL / SUPABASE_ANON_KEY override these)
# url = "https://your-project.supabase.co"
# anon_key = "your-anon-key"

# Per-request timeout in seconds
timeout_seconds = 30

# Profile creation retries (exponential backoff)
profile_retry_attempts = 3
profile_retry_base_delay = 1.0

[ai]
# Completion API key (GROQ_API_KEY overrides this)
# api_key = "your-api-key-here"

# OpenAI-compatible endpoint and model
base_url = "https://api.groq.com/openai/v1"
model = "mixtral-8x7b-32768"

temperature = 0.7
max_tokens = 4000

[generation]
# Songs requested when no count is given
default_song_count = 10

# Upper bound for a single request
max_song_count = 50

[auth]
# Where the web frontend lives (OAuth callbacks and sign-out redirects)
site_url = "http://localhost:5173"
callback_path = "/auth/callback"
home_path = "/"

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/smart-playlist/smart-playlist.log)
# log_file = "/path/to/custom/smart-playlist.log"

max_file_size_mb = 10
backup_count = 5

# Also output logs to stderr
console_output = false
""".strip()


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides on top of file values."""
    config.backend.url = os.environ.get("SUPABASE_URL", config.backend.url)
    config.backend.anon_key = os.environ.get(
        "SUPABASE_ANON_KEY", config.backend.anon_key
    )
    config.ai.api_key = os.environ.get("GROQ_API_KEY", config.ai.api_key)
    config.auth.site_url = os.environ.get(
        "SMART_PLAYLIST_SITE_URL", config.auth.site_url
    )
    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - SUPABASE_URL
    - SUPABASE_ANON_KEY
    - GROQ_API_KEY
    - SMART_PLAYLIST_SITE_URL
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    project_env = Path.cwd() / ".env"
    if project_env.exists():
        load_dotenv(project_env)

    config_path = config_path or get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        return _apply_env_overrides(Config())

    with open(config_path, "rb") as f:
        toml_data = tomllib.load(f)

    config = Config()

    if "backend" in toml_data:
        backend_data = toml_data["backend"]
        config.backend = BackendConfig(
            url=backend_data.get("url", config.backend.url),
            anon_key=backend_data.get("anon_key", config.backend.anon_key),
            timeout_seconds=backend_data.get(
                "timeout_seconds", config.backend.timeout_seconds
            ),
            profile_retry_attempts=backend_data.get(
                "profile_retry_attempts", config.backend.profile_retry_attempts
            ),
            profile_retry_base_delay=backend_data.get(
                "profile_retry_base_delay", config.backend.profile_retry_base_delay
            ),
        )

    if "ai" in toml_data:
        ai_data = toml_data["ai"]
        config.ai = AIConfig(
            api_key=ai_data.get("api_key"),
            base_url=ai_data.get("base_url", config.ai.base_url),
            model=ai_data.get("model", config.ai.model),
            temperature=ai_data.get("temperature", config.ai.temperature),
            max_tokens=ai_data.get("max_tokens", config.ai.max_tokens),
            stop=ai_data.get("stop", config.ai.stop),
        )

    if "generation" in toml_data:
        generation_data = toml_data["generation"]
        config.generation = GenerationConfig(
            default_song_count=generation_data.get(
                "default_song_count", config.generation.default_song_count
            ),
            max_song_count=generation_data.get(
                "max_song_count", config.generation.max_song_count
            ),
        )
        config.generation.validate()

    if "auth" in toml_data:
        auth_data = toml_data["auth"]
        config.auth = AuthConfig(
            site_url=auth_data.get("site_url", config.auth.site_url),
            callback_path=auth_data.get("callback_path", config.auth.callback_path),
            home_path=auth_data.get("home_path", config.auth.home_path),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level),
            log_file=logging_data.get("log_file"),
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get(
                "backup_count", config.logging.backup_count
            ),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return _apply_env_overrides(config)


def ensure_directories() -> None:
    """Ensure config and data directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)

"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML + .env)
- Hosted backend client and error translation
- Error taxonomy
- Console and log output (Rich, Loguru)
"""

from .config import (
    Config,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
    ensure_directories,
)

from .backend import BackendClient, BackendError, translate_backend_error

from .errors import (
    SmartPlaylistError,
    AuthenticationRequired,
    AuthProviderError,
    GenerationFailed,
    MalformedResponse,
    ConstraintViolation,
    NotFound,
    StorageError,
)

from .console import get_console, safe_print

__all__ = [
    # Config
    "Config",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    "ensure_directories",
    # Backend
    "BackendClient",
    "BackendError",
    "translate_backend_error",
    # Errors
    "SmartPlaylistError",
    "AuthenticationRequired",
    "AuthProviderError",
    "GenerationFailed",
    "MalformedResponse",
    "ConstraintViolation",
    "NotFound",
    "StorageError",
    # Console
    "get_console",
    "safe_print",
]

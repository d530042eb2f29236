import logging
import os
import sys
from typing import Optional

import click

APP_NAME = "kanikani"

DEBUG_MODE = os.getenv("DEBUG", "0") == "1"

TOKEN_ENV_VAR = "WANIKANI_API_TOKEN"
USER_ENV_VAR = "KANIKANI_USER"
DEFAULT_USER = "default_user"
DEFAULT_DISPLAY = "term"

DB_PATH: str = os.environ.get("KANIKANI_DB", os.path.join(click.get_app_dir(APP_NAME), "kanikani.db"))


def current_user() -> str:
    return os.environ.get(USER_ENV_VAR) or DEFAULT_USER


def resolve_api_token(stored_token: Optional[str]) -> Optional[str]:
    """The environment wins over the token saved with ``kanikani login``."""
    return os.environ.get(TOKEN_ENV_VAR) or stored_token or None


def resolve_display_method(option: Optional[str], stored: Optional[str]) -> str:
    return option or stored or DEFAULT_DISPLAY


def configure_logging(debug: bool = DEBUG_MODE) -> None:
    """Send log output to stderr so it never mixes with the study display."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # httpx logs every request at INFO; keep it for debug runs only
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)

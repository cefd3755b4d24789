from __future__ import annotations

import logging
from pathlib import Path

LOGGER = logging.getLogger("mob")
APP_VERSION = "0.1.0"

SESSION_COOKIE = "session"
DEFAULT_SESSION_MAX_AGE = 30 * 24 * 60 * 60

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
DEFAULT_LETTERS_DIR = "letters"

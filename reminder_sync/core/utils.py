"""Shared utility functions for the reminder_sync package."""
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def get_config_value(key: str, default: str = "") -> str:
    """Return a stripped environment value, or ``default`` when unset or blank."""

    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def load_env_file(path: Path) -> None:
    """Load environment variables from a file if it exists.

    Values already present in the process environment win over the file.
    """
    if not path.exists():
        return

    try:
        with path.open(encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                if not key or key in os.environ:
                    continue
                os.environ[key] = value.strip().strip('"').strip("'")
    except OSError as exc:
        logger.debug("Could not load env file %s: %s", path, exc)


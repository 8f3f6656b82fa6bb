"""Process start-up for fleet_intake entry points.

The project ``.env`` file is loaded once, before settings are read, so that
OpenAI credentials and ``FLEET_INTAKE_*`` overrides are in ``os.environ``.
Variables already set in the environment win over the file.
"""

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# First directory (walking up from cwd) holding any of these is the project root
ROOT_MARKERS = ("fleet_intake.yaml", ".env", "pyproject.toml")

_done = False


def project_root(start: Optional[Path] = None) -> Path:
    here = (start or Path.cwd()).resolve()
    for candidate in (here, *here.parents):
        if any((candidate / marker).exists() for marker in ROOT_MARKERS):
            return candidate
    return here


def ensure_initialized(start_path: Optional[Path] = None) -> Path:
    """Load ``<project root>/.env`` on first call; return the project root."""
    global _done

    root = project_root(start_path)
    if _done:
        return root
    _done = True

    env_file = root / ".env"
    if env_file.is_file():
        load_dotenv(env_file, override=False)
        logger.debug("Environment loaded from %s", env_file)
    else:
        logger.debug("No .env under %s", root)
    return root


def reset_initialization() -> None:
    global _done
    _done = False

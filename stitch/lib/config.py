"""
Configuration loaders for stitch.

Loads repository configuration from .stitch/config.yaml and owns the
"current stitch" pointer file.
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from stitch.store.documents import (
    get_current_file_path,
    get_stitch_dir,
    get_stitch_file_path,
    require_initialized,
)

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.yaml"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_DEFAULT_STATUSES = ("closed", "superseded", "abandoned")
DEFAULT_GIT_TIMEOUT = 30


@dataclass
class StitchConfig:
    """Repository configuration from .stitch/config.yaml"""
    editor: Optional[str] = None
    log_level: str = "WARNING"
    git_timeout: int = DEFAULT_GIT_TIMEOUT
    default_status: str = "closed"


def load_config(repo_root: Optional[Path]) -> StitchConfig:
    """Load .stitch/config.yaml and apply environment overrides.

    Missing file gives defaults. Invalid values fall back to defaults with a
    warning.
    """
    config = StitchConfig()

    data: dict = {}
    if repo_root is not None:
        config_path = get_stitch_dir(repo_root) / CONFIG_FILE
        if config_path.exists():
            try:
                loaded = yaml.safe_load(config_path.read_text())
            except yaml.YAMLError as e:
                logger.warning(f"Invalid YAML in {config_path}: {e}. Using defaults.")
                loaded = None
            if isinstance(loaded, dict):
                data = loaded
            elif loaded is not None:
                logger.warning(f"{config_path} must contain a mapping. Using defaults.")

    editor = data.get("editor")
    if isinstance(editor, str) and editor.strip():
        config.editor = editor.strip()

    log_level = data.get("log_level")
    if log_level is not None:
        config.log_level = _parse_log_level(str(log_level), "log_level", config.log_level)

    git_timeout = data.get("git_timeout")
    if git_timeout is not None:
        if isinstance(git_timeout, int) and not isinstance(git_timeout, bool) and git_timeout > 0:
            config.git_timeout = git_timeout
        else:
            logger.warning(
                f"Invalid git_timeout {git_timeout!r}, using {DEFAULT_GIT_TIMEOUT}"
            )

    default_status = data.get("default_status")
    if default_status is not None:
        if default_status in VALID_DEFAULT_STATUSES:
            config.default_status = default_status
        else:
            logger.warning(
                f"Unknown default_status '{default_status}', using 'closed'. "
                f"Valid: {', '.join(VALID_DEFAULT_STATUSES)}"
            )

    env_editor = os.environ.get("STITCH_EDITOR")
    if env_editor:
        config.editor = env_editor

    env_level = os.environ.get("STITCH_LOG_LEVEL")
    if env_level:
        config.log_level = _parse_log_level(env_level, "STITCH_LOG_LEVEL", config.log_level)

    return config


def _parse_log_level(value: str, source: str, fallback: str) -> str:
    level = value.strip().upper()
    if level in VALID_LOG_LEVELS:
        return level
    logger.warning(f"Unknown {source} '{value}', using {fallback}")
    return fallback


def get_editor(config: Optional[StitchConfig] = None) -> str:
    """Resolve the editor: config/STITCH_EDITOR, then VISUAL, EDITOR, then a platform default."""
    if config is not None and config.editor:
        return config.editor
    return (
        os.environ.get("VISUAL")
        or os.environ.get("EDITOR")
        or ("notepad" if sys.platform == "win32" else "vi")
    )


def get_current_stitch(repo_root: Path) -> Optional[str]:
    """Get the current stitch ID, or None if not set.

    Auto-clears a stale pointer whose stitch file no longer exists.
    """
    require_initialized(repo_root)
    current_path = get_current_file_path(repo_root)
    if not current_path.exists():
        return None

    stitch_id = current_path.read_text().strip()
    if not stitch_id:
        return None

    if not get_stitch_file_path(repo_root, stitch_id).exists():
        logger.warning(f"Current stitch {stitch_id} no longer exists, clearing pointer")
        current_path.write_text("")
        return None

    return stitch_id


def set_current_stitch(repo_root: Path, stitch_id: str) -> None:
    """Set the current stitch pointer."""
    require_initialized(repo_root)
    get_current_file_path(repo_root).write_text(stitch_id + "\n")


def clear_current_stitch(repo_root: Path) -> None:
    """Clear the current stitch pointer."""
    require_initialized(repo_root)
    get_current_file_path(repo_root).write_text("")

"""
Path utilities for the waypoint editor.

Handles path resolution for both development mode and frozen (PyInstaller) executables.
- In development: paths are relative to the project root
- When frozen: paths are relative to the executable location

Saved scenes (scenes/) and editor_settings.json live NEXT TO the executable.
"""

import os
import sys
from pathlib import Path

SETTINGS_PATH_ENV = "WAYPOINT_SETTINGS_PATH"


def get_app_dir() -> Path:
    """
    Get the application directory.

    - In development: the project root (parent of waypoint_editor/)
    - When frozen: the directory containing the executable
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path(__file__).parent.parent


def get_settings_path() -> Path:
    """Editor settings file; WAYPOINT_SETTINGS_PATH overrides the default location."""
    override = os.environ.get(SETTINGS_PATH_ENV)
    if override:
        return Path(override)
    return get_app_dir() / "editor_settings.json"


def get_scenes_dir() -> Path:
    return get_app_dir() / "scenes"


def get_scene_path(container: str) -> Path:
    """Default save file for one waypoint container, e.g. scenes/TankWaypoints.json."""
    return get_scenes_dir() / f"{container}.json"


def ensure_scenes_dir() -> Path:
    """
    Ensure the scenes directory exists, creating it if necessary.
    Returns the path to the scenes directory.
    """
    scenes_dir = get_scenes_dir()
    scenes_dir.mkdir(parents=True, exist_ok=True)
    return scenes_dir

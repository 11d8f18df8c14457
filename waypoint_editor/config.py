"""
Configuration management for the waypoint editor.

Handles persistent operator preferences:
- vehicle kind being edited
- radius and team given to new waypoints
- snap-to-ground, chain mode and auto-connect distance

Settings are stored in editor_settings.json next to the project root.
Environment variables take priority over the file.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from waypoint_editor.paths import get_settings_path

logger = logging.getLogger(__name__)

VEHICLE_KIND_ENV = "WAYPOINT_VEHICLE_KIND"


@dataclass
class EditorSettings:
    vehicle_kind: str = "tank"
    # None means "use the vehicle kind's default"
    waypoint_radius: Optional[float] = None
    waypoint_team: str = "none"
    snap_to_ground: bool = True
    chain_mode: bool = True
    auto_connect_distance: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditorSettings":
        """Build settings from a loaded dict, ignoring keys this version does not know."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(path: Optional[Path] = None) -> dict:
    """Load the raw settings dict from disk."""
    config_path = path or get_settings_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if isinstance(data, dict):
                return data
            logger.warning(f"Ignoring {config_path}: expected a JSON object")
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable settings file {config_path}: {e}")
    return {}


def save_config(config: dict, path: Optional[Path] = None) -> None:
    config_path = path or get_settings_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def load_settings(path: Optional[Path] = None) -> EditorSettings:
    """
    Get the editor settings.

    Priority:
    1. Environment variable WAYPOINT_VEHICLE_KIND (vehicle kind only)
    2. Stored in editor_settings.json
    3. Defaults
    """
    settings = EditorSettings.from_dict(load_config(path))

    env_kind = os.environ.get(VEHICLE_KIND_ENV)
    if env_kind:
        settings.vehicle_kind = env_kind.strip().lower()

    return settings


def save_settings(settings: EditorSettings, path: Optional[Path] = None) -> None:
    """Merge settings into the stored config, keeping keys written by other versions."""
    config = load_config(path)
    config.update(settings.to_dict())
    save_config(config, path)

"""
Vehicle kind definitions for the waypoint editor.

Tanks and humvees use the same waypoint graph; they differ only in default
radii, preset sizes and display colours. Each kind is an entry in
vehicle_kinds.yaml:

  tank:
    display_name: Tank
    node_prefix: TankWaypoint     # node display names: TankWaypoint_<n>
    container: TankWaypoints      # explicit container for generated nodes
    default_reach_radius: 4.0
    auto_connect_distance: 100.0
    ...

Definitions are validated into a list of error messages instead of raising,
so a broken entry is reported and skipped while the other kinds still load.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

DEFAULT_DEFINITIONS_PATH = Path(__file__).parent / "vehicle_kinds.yaml"

REQUIRED_KEYS = ('node_prefix', 'container', 'default_reach_radius', 'auto_connect_distance')
THEME_KEYS = ('phantom', 'havoc', 'neutral', 'connection')

HEX_COLOR = re.compile(r'^#[0-9a-fA-F]{6}$')


@dataclass(frozen=True)
class Theme:
    phantom: str = "#3380ff"
    havoc: str = "#ff4d33"
    neutral: str = "#ffe633"
    connection: str = "#00ffff"
    connection_opacity: float = 0.8
    edit_mode: str = "#00ff00"
    pending: str = "#ffff00"
    selected: str = "#ffffff"
    spawn: str = "#00ff00"


@dataclass(frozen=True)
class RingPreset:
    count: int
    radius: float


@dataclass(frozen=True)
class GridPreset:
    width: int
    height: int
    spacing: float


@dataclass(frozen=True)
class VehicleKind:
    """Per-vehicle configuration for one waypoint graph."""
    name: str
    display_name: str
    node_prefix: str
    container: str
    default_reach_radius: float
    auto_connect_distance: float
    extend_offset: float = 30.0
    radius_range: Tuple[float, float] = (5.0, 30.0)
    ring_presets: Tuple[RingPreset, ...] = ()
    grid_presets: Tuple[GridPreset, ...] = ()
    theme: Theme = field(default_factory=Theme)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class VehicleKindManager:
    """
    Loads and caches vehicle kind definitions.

    Responsibilities:
    - Read definitions from a YAML file
    - Validate each definition, collecting error messages
    - Build immutable VehicleKind objects for valid entries
    """

    def __init__(self, definitions_path: Optional[Path] = None):
        self.definitions_path = Path(definitions_path) if definitions_path else DEFAULT_DEFINITIONS_PATH
        self._raw: Optional[Dict[str, Any]] = None
        self._cache: Dict[str, VehicleKind] = {}
        self._errors: Dict[str, List[str]] = {}

    def _load_raw(self) -> Dict[str, Any]:
        if self._raw is not None:
            return self._raw

        self._raw = {}
        if not self.definitions_path.exists():
            logger.warning(f"Vehicle kind definitions not found: {self.definitions_path}")
            return self._raw

        try:
            with open(self.definitions_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Invalid YAML in {self.definitions_path}: {e}")
            return self._raw

        if not isinstance(data, dict):
            logger.warning(f"{self.definitions_path} must contain a mapping of kind name -> definition")
            return self._raw

        self._raw = data
        return self._raw

    def list_kinds(self) -> List[str]:
        """Return the names of all kinds that loaded without errors."""
        return sorted(name for name in self._load_raw() if not self.get_errors(name))

    def _validate_definition(self, definition: Any, kind_name: str) -> List[str]:
        """Validate a kind definition. Returns list of error messages."""
        if not isinstance(definition, dict):
            return [f"Kind '{kind_name}': definition must be a mapping"]

        errors = []
        for key in REQUIRED_KEYS:
            if key not in definition:
                errors.append(f"Kind '{kind_name}': missing required '{key}'")

        for key in ('default_reach_radius', 'auto_connect_distance', 'extend_offset'):
            if key in definition:
                value = definition[key]
                if not _is_number(value) or value < 0:
                    errors.append(f"Kind '{kind_name}': '{key}' must be a non-negative number")

        radius_range = definition.get('radius_range')
        if radius_range is not None:
            if (not isinstance(radius_range, list) or len(radius_range) != 2
                    or not all(_is_number(v) for v in radius_range)
                    or radius_range[0] > radius_range[1]):
                errors.append(f"Kind '{kind_name}': 'radius_range' must be [min, max]")

        for i, preset in enumerate(definition.get('ring_presets') or []):
            if not isinstance(preset, dict) or not isinstance(preset.get('count'), int) \
                    or not _is_number(preset.get('radius')):
                errors.append(f"Kind '{kind_name}': ring preset {i} needs integer 'count' and numeric 'radius'")

        for i, preset in enumerate(definition.get('grid_presets') or []):
            if not isinstance(preset, dict) \
                    or not isinstance(preset.get('width'), int) \
                    or not isinstance(preset.get('height'), int) \
                    or not _is_number(preset.get('spacing')):
                errors.append(f"Kind '{kind_name}': grid preset {i} needs integer 'width'/'height' and numeric 'spacing'")

        theme = definition.get('theme') or {}
        if not isinstance(theme, dict):
            errors.append(f"Kind '{kind_name}': 'theme' must be a mapping")
        else:
            for key in THEME_KEYS + ('edit_mode',):
                if key in theme and not (isinstance(theme[key], str) and HEX_COLOR.match(theme[key])):
                    errors.append(f"Kind '{kind_name}': theme colour '{key}' must look like #rrggbb")

        return errors

    def get_errors(self, kind_name: str) -> List[str]:
        """Validation errors for a kind (empty list when valid or unknown)."""
        raw = self._load_raw()
        if kind_name not in raw:
            return []
        if kind_name not in self._errors:
            self._errors[kind_name] = self._validate_definition(raw[kind_name], kind_name)
        return self._errors[kind_name]

    def get_kind(self, kind_name: str) -> Optional[VehicleKind]:
        """Return the VehicleKind, or None if unknown or invalid."""
        if kind_name in self._cache:
            return self._cache[kind_name]

        raw = self._load_raw()
        if kind_name not in raw:
            return None

        errors = self.get_errors(kind_name)
        if errors:
            for error in errors:
                logger.warning(error)
            return None

        definition = raw[kind_name]
        theme_data = {k: v for k, v in (definition.get('theme') or {}).items()
                      if k in Theme.__dataclass_fields__}

        kind = VehicleKind(
            name=kind_name,
            display_name=definition.get('display_name', kind_name.replace('_', ' ').title()),
            node_prefix=definition['node_prefix'],
            container=definition['container'],
            default_reach_radius=float(definition['default_reach_radius']),
            auto_connect_distance=float(definition['auto_connect_distance']),
            extend_offset=float(definition.get('extend_offset', 30.0)),
            radius_range=tuple(float(v) for v in definition.get('radius_range', (5.0, 30.0))),
            ring_presets=tuple(RingPreset(p['count'], float(p['radius']))
                               for p in definition.get('ring_presets') or []),
            grid_presets=tuple(GridPreset(p['width'], p['height'], float(p['spacing']))
                               for p in definition.get('grid_presets') or []),
            theme=Theme(**theme_data),
        )
        self._cache[kind_name] = kind
        return kind

    def clear_cache(self):
        """Forget loaded definitions so the file is re-read."""
        self._raw = None
        self._cache.clear()
        self._errors.clear()


# Fallback used when no definitions file is available
FALLBACK_KIND = VehicleKind(
    name="tank",
    display_name="Tank",
    node_prefix="TankWaypoint",
    container="TankWaypoints",
    default_reach_radius=4.0,
    auto_connect_distance=100.0,
)


# Global instance for convenience
_manager: Optional[VehicleKindManager] = None

def get_vehicle_kind_manager() -> VehicleKindManager:
    """Get the global VehicleKindManager instance."""
    global _manager
    if _manager is None:
        _manager = VehicleKindManager()
    return _manager


def get_vehicle_kind(kind_name: str = "tank") -> VehicleKind:
    """Look up a kind by name, falling back to the built-in tank defaults."""
    kind = get_vehicle_kind_manager().get_kind(kind_name)
    if kind is None:
        logger.warning(f"Unknown vehicle kind '{kind_name}', using built-in tank defaults")
        return FALLBACK_KIND
    return kind

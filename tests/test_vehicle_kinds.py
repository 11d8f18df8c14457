import pytest

from waypoint_editor.vehicle_kinds import (
    FALLBACK_KIND,
    VehicleKindManager,
    get_vehicle_kind,
)

VALID = """
rover:
  node_prefix: RoverWaypoint
  container: RoverWaypoints
  default_reach_radius: 6
  auto_connect_distance: 80
  ring_presets:
    - {count: 6, radius: 40}
  theme:
    neutral: "#aabbcc"
"""

BROKEN = """
hover:
  container: HoverWaypoints
  default_reach_radius: -2
  auto_connect_distance: far
  radius_range: [30, 5]
  grid_presets:
    - {width: 3, spacing: 10}
  theme:
    phantom: blue
"""


@pytest.fixture
def write_defs(tmp_path):
    def _write(text):
        path = tmp_path / "kinds.yaml"
        path.write_text(text, encoding="utf-8")
        return VehicleKindManager(path)
    return _write


def test_bundled_kinds():
    tank = get_vehicle_kind("tank")
    humvee = get_vehicle_kind("humvee")
    assert tank.container == "TankWaypoints"
    assert tank.default_reach_radius == 4.0
    assert humvee.default_reach_radius == 8.0
    assert humvee.theme.neutral == "#ff9933"
    assert [p.count for p in tank.ring_presets] == [8, 12]


def test_unknown_kind_falls_back():
    assert get_vehicle_kind("submarine") is FALLBACK_KIND


def test_valid_definition(write_defs):
    manager = write_defs(VALID)
    kind = manager.get_kind("rover")
    assert kind.display_name == "Rover"
    assert kind.default_reach_radius == 6.0
    assert kind.ring_presets[0].radius == 40.0
    assert kind.theme.neutral == "#aabbcc"
    assert kind.theme.pending == "#ffff00"
    assert manager.list_kinds() == ["rover"]


def test_kind_is_cached(write_defs):
    manager = write_defs(VALID)
    assert manager.get_kind("rover") is manager.get_kind("rover")


def test_validation_errors_collected(write_defs):
    manager = write_defs(BROKEN)
    errors = manager.get_errors("hover")
    assert any("node_prefix" in e for e in errors)
    assert any("default_reach_radius" in e for e in errors)
    assert any("auto_connect_distance" in e for e in errors)
    assert any("radius_range" in e for e in errors)
    assert any("grid preset 0" in e for e in errors)
    assert any("phantom" in e for e in errors)
    assert manager.get_kind("hover") is None
    assert manager.list_kinds() == []


def test_missing_file(tmp_path):
    manager = VehicleKindManager(tmp_path / "absent.yaml")
    assert manager.list_kinds() == []
    assert manager.get_kind("tank") is None


def test_invalid_yaml(write_defs):
    manager = write_defs("tank: [unclosed")
    assert manager.list_kinds() == []


def test_clear_cache_rereads(tmp_path):
    path = tmp_path / "kinds.yaml"
    path.write_text(VALID, encoding="utf-8")
    manager = VehicleKindManager(path)
    assert manager.get_kind("rover").default_reach_radius == 6.0

    path.write_text(VALID.replace("default_reach_radius: 6", "default_reach_radius: 9"), encoding="utf-8")
    manager.clear_cache()
    assert manager.get_kind("rover").default_reach_radius == 9.0

import json

from waypoint_editor.config import EditorSettings, load_settings, save_settings
from waypoint_editor.paths import get_scene_path, get_settings_path


def test_defaults_when_missing(tmp_path, monkeypatch):
    monkeypatch.delenv("WAYPOINT_VEHICLE_KIND", raising=False)
    settings = load_settings(tmp_path / "none.json")
    assert settings == EditorSettings()


def test_round_trip(tmp_path, monkeypatch):
    monkeypatch.delenv("WAYPOINT_VEHICLE_KIND", raising=False)
    path = tmp_path / "editor_settings.json"
    save_settings(EditorSettings(vehicle_kind="humvee", waypoint_radius=12.5, chain_mode=False), path)
    loaded = load_settings(path)
    assert loaded.vehicle_kind == "humvee"
    assert loaded.waypoint_radius == 12.5
    assert loaded.chain_mode is False


def test_save_keeps_unknown_keys(tmp_path):
    path = tmp_path / "editor_settings.json"
    path.write_text(json.dumps({"window": "wide"}), encoding="utf-8")
    save_settings(EditorSettings(), path)
    assert json.loads(path.read_text(encoding="utf-8"))["window"] == "wide"


def test_unknown_keys_ignored_on_load(tmp_path, monkeypatch):
    monkeypatch.delenv("WAYPOINT_VEHICLE_KIND", raising=False)
    path = tmp_path / "editor_settings.json"
    path.write_text(json.dumps({"vehicle_kind": "humvee", "legacy": 1}), encoding="utf-8")
    assert load_settings(path).vehicle_kind == "humvee"


def test_corrupt_file_falls_back_to_defaults(tmp_path, monkeypatch, caplog):
    monkeypatch.delenv("WAYPOINT_VEHICLE_KIND", raising=False)
    path = tmp_path / "editor_settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_settings(path) == EditorSettings()
    assert "Ignoring" in caplog.text


def test_env_overrides_vehicle_kind(tmp_path, monkeypatch):
    path = tmp_path / "editor_settings.json"
    save_settings(EditorSettings(vehicle_kind="tank"), path)
    monkeypatch.setenv("WAYPOINT_VEHICLE_KIND", "Humvee")
    assert load_settings(path).vehicle_kind == "humvee"


def test_settings_path_env(tmp_path, monkeypatch):
    target = tmp_path / "custom.json"
    monkeypatch.setenv("WAYPOINT_SETTINGS_PATH", str(target))
    assert get_settings_path() == target

    monkeypatch.delenv("WAYPOINT_VEHICLE_KIND", raising=False)
    save_settings(EditorSettings(vehicle_kind="humvee"))
    assert load_settings().vehicle_kind == "humvee"


def test_scene_path_per_container():
    assert get_scene_path("TankWaypoints").name == "TankWaypoints.json"

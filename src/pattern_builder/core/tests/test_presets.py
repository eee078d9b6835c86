"""Tests for preset storage, export and import."""

import json
from pathlib import Path

import pytest

from ..models import EngineConfig, PatternConfiguration, PresetConfiguration
from ..presets import InvalidPresetError, PresetStore, export_preset, import_preset, parse_preset

CONFIG = PatternConfiguration(
    group_pattern=r"^vehicle_(\d+)_\w+\.jpg$",
    front_pattern="(?i:.*front.*)",
    rear_pattern="(?i:.*rear.*)",
)


class TestPresetExchange:
    """Test cases for exporting and importing single presets."""

    def test_export_and_import(self, tmp_path: Path) -> None:
        """Test an exported preset imports back unchanged."""
        preset = PresetConfiguration(name="Highway", description="Gantry 4", pattern_config=CONFIG)
        path = tmp_path / "exports" / "highway.json"

        export_preset(preset, path)
        imported = import_preset(path)

        assert imported == preset

    def test_malformed_json(self) -> None:
        """Test that broken JSON is rejected."""
        with pytest.raises(InvalidPresetError, match="Malformed"):
            parse_preset("{not json")

    def test_unusable_configuration(self) -> None:
        """Test that a preset without usable patterns is rejected."""
        data = PresetConfiguration(
            name="Empty", pattern_config=PatternConfiguration()
        ).model_dump_json()

        with pytest.raises(InvalidPresetError, match="usable"):
            parse_preset(data)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that an unreadable file is reported as an invalid preset."""
        with pytest.raises(InvalidPresetError):
            import_preset(tmp_path / "missing.json")


class TestPresetStore:
    """Test cases for PresetStore."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.store = PresetStore(path=Path("unused.json"))

    def test_save_and_get(self) -> None:
        """Test storing and fetching a preset by name."""
        self.store.save_preset(" Highway ", CONFIG, "Gantry 4")

        preset = self.store.get_preset("Highway")
        assert preset is not None
        assert preset.description == "Gantry 4"

    def test_save_keeps_creation_time(self) -> None:
        """Test that overwriting a preset keeps when it was created."""
        first = self.store.save_preset("Highway", CONFIG)
        second = self.store.save_preset("Highway", CONFIG, "updated")

        assert second.created == first.created
        assert len(self.store.list_presets()) == 1

    def test_invalid_preset_rejected(self) -> None:
        """Test that unusable configurations cannot be stored."""
        with pytest.raises(InvalidPresetError):
            self.store.save_preset("Empty", PatternConfiguration())

    def test_use_preset_moves_it_first(self) -> None:
        """Test that presets are listed by most recent use."""
        self.store.save_preset("A", CONFIG)
        self.store.save_preset("B", CONFIG)

        self.store.use_preset("A")

        assert self.store.list_presets()[0].name == "A"

    def test_rename(self) -> None:
        """Test renaming and its conflicts."""
        self.store.save_preset("A", CONFIG)
        self.store.save_preset("B", CONFIG)

        self.store.rename_preset("A", "C")

        assert self.store.get_preset("A") is None
        assert self.store.get_preset("C").name == "C"
        with pytest.raises(InvalidPresetError):
            self.store.rename_preset("C", "B")
        with pytest.raises(KeyError):
            self.store.rename_preset("missing", "D")

    def test_duplicate(self) -> None:
        """Test duplicates get unique copy names."""
        self.store.save_preset("A", CONFIG)

        first = self.store.duplicate_preset("A")
        second = self.store.duplicate_preset("A")

        assert first.name == "A (copy)"
        assert second.name == "A (copy) 2"
        assert second.pattern_config == CONFIG

    def test_delete(self) -> None:
        """Test deleting presets."""
        self.store.save_preset("A", CONFIG)

        assert self.store.delete_preset("A")
        assert not self.store.delete_preset("A")

    def test_save_and_load_file(self, tmp_path: Path) -> None:
        """Test the store round trips through its JSON file."""
        path = tmp_path / "presets.json"
        store = PresetStore(config=EngineConfig(presets_path=path))
        store.save_preset("A", CONFIG)
        store.save()

        loaded = PresetStore(path=path)

        assert loaded.load() == 1
        assert loaded.get_preset("A").pattern_config == CONFIG

    def test_load_skips_invalid_entries(self, tmp_path: Path) -> None:
        """Test broken entries in the store file are skipped."""
        path = tmp_path / "presets.json"
        good = PresetConfiguration(name="A", pattern_config=CONFIG).model_dump(mode="json")
        path.write_text(json.dumps([good, {"name": "broken"}]))

        store = PresetStore(path=path)

        assert store.load() == 1

    def test_load_missing_file(self, tmp_path: Path) -> None:
        """Test a missing store file leaves the store empty."""
        assert PresetStore(path=tmp_path / "none.json").load() == 0

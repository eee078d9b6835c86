"""Saving, exporting and importing named pattern configurations."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from .models import EngineConfig, PatternConfiguration, PresetConfiguration

logger = logging.getLogger(__name__)


class InvalidPresetError(ValueError):
    """Raised when preset data cannot be used."""


def export_preset(preset: PresetConfiguration, path: Path) -> Path:
    """
    Write a preset as JSON.

    Args:
        preset: Preset to export
        path: Target file

    Returns:
        The path written
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(preset.model_dump_json(indent=2), encoding="utf-8")
    logger.info(f"Exported preset '{preset.name}' to {path}")
    return path


def parse_preset(data: str) -> PresetConfiguration:
    """
    Parse and check preset JSON.

    Raises:
        InvalidPresetError: If the JSON is malformed or the preset is not usable
    """
    try:
        preset = PresetConfiguration.model_validate_json(data)
    except PydanticValidationError as e:
        raise InvalidPresetError(f"Malformed preset data: {e}") from e
    if not preset.is_valid():
        raise InvalidPresetError(f"Preset '{preset.name}' does not contain a usable configuration")
    return preset


def import_preset(path: Path) -> PresetConfiguration:
    """
    Read a preset exported with ``export_preset``.

    Raises:
        InvalidPresetError: If the file cannot be read or holds an invalid preset
    """
    try:
        data = path.read_text(encoding="utf-8")
    except OSError as e:
        raise InvalidPresetError(f"Cannot read preset file {path}: {e}") from e
    preset = parse_preset(data)
    logger.info(f"Imported preset '{preset.name}' from {path}")
    return preset


class PresetStore:
    """A name-keyed collection of presets kept in one JSON file.

    The file is only touched by ``load`` and ``save``.
    """

    def __init__(self, path: Path | None = None, config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self.path = path or self.config.presets_path
        self._presets: dict[str, PresetConfiguration] = {}

    def save_preset(
        self, name: str, configuration: PatternConfiguration, description: str = ""
    ) -> PresetConfiguration:
        """
        Store a configuration under a name, replacing any preset of that name.

        Raises:
            InvalidPresetError: If the name is blank or the configuration unusable
        """
        preset = PresetConfiguration(
            name=name.strip(), description=description, pattern_config=configuration
        )
        existing = self._presets.get(preset.name)
        if existing is not None:
            preset = preset.model_copy(update={"created": existing.created})
        if not preset.is_valid():
            raise InvalidPresetError(f"Preset '{name}' is not valid")
        self._presets[preset.name] = preset
        logger.debug(f"Stored preset '{preset.name}'")
        return preset

    def get_preset(self, name: str) -> PresetConfiguration | None:
        return self._presets.get(name)

    def use_preset(self, name: str) -> PresetConfiguration:
        """
        Fetch a preset and record that it was used.

        Raises:
            KeyError: If no preset has that name
        """
        preset = self._presets[name].touch()
        self._presets[name] = preset
        return preset

    def delete_preset(self, name: str) -> bool:
        return self._presets.pop(name, None) is not None

    def rename_preset(self, old_name: str, new_name: str) -> PresetConfiguration:
        """
        Give a preset a new name.

        Raises:
            KeyError: If ``old_name`` does not exist
            InvalidPresetError: If ``new_name`` is blank or already taken
        """
        new_name = new_name.strip()
        if not new_name:
            raise InvalidPresetError("Preset name cannot be blank")
        if new_name != old_name and new_name in self._presets:
            raise InvalidPresetError(f"A preset named '{new_name}' already exists")
        preset = self._presets.pop(old_name).model_copy(update={"name": new_name})
        self._presets[new_name] = preset
        return preset

    def duplicate_preset(self, name: str, new_name: str | None = None) -> PresetConfiguration:
        """
        Copy a preset under a new name, ``"<name> (copy)"`` by default.

        Raises:
            KeyError: If ``name`` does not exist
        """
        source = self._presets[name]
        candidate = new_name or f"{name} (copy)"
        suffix = 2
        while candidate in self._presets:
            candidate = f"{new_name or name + ' (copy)'} {suffix}"
            suffix += 1
        return self.save_preset(candidate, source.pattern_config, source.description)

    def list_presets(self) -> list[PresetConfiguration]:
        """All presets, most recently used first."""
        return sorted(self._presets.values(), key=lambda p: p.last_used, reverse=True)

    def load(self) -> int:
        """
        Replace the stored presets with the file contents.

        Invalid entries are skipped. A missing file leaves the store empty.

        Returns:
            Number of presets loaded
        """
        self._presets.clear()
        if not self.path.exists():
            logger.info(f"No presets file at {self.path}")
            return 0

        try:
            entries = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read presets from {self.path}: {e}")
            return 0

        for entry in entries if isinstance(entries, list) else []:
            try:
                preset = parse_preset(json.dumps(entry))
            except InvalidPresetError as e:
                logger.warning(f"Skipping preset: {e}")
                continue
            self._presets[preset.name] = preset

        logger.info(f"Loaded {len(self._presets)} presets from {self.path}")
        return len(self._presets)

    def save(self) -> Path:
        """Write all presets to the store file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        entries = [preset.model_dump(mode="json") for preset in self._presets.values()]
        self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        logger.info(f"Saved {len(entries)} presets to {self.path}")
        return self.path

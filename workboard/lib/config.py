"""
Configuration loader for workboard.

Loads workboard.yml to determine the work folder layout, status workflow,
field schema and slice settings. If no config file exists, returns defaults.

FIELD SCHEMA
============

The field schema is data, not code: an ordered, read-only mapping of field
name -> FieldRule. Core rules (id, title, status, kind, created) come first,
followed by the `fields:` entries in declaration order. A `fields:` entry
with a core name replaces the core rule in place.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from workboard.lib import validate
from workboard.lib.validate import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "workboard.yml"

ID_FIELD = "id"
STATUS_FIELD = "status"
TITLE_FIELD = "title"

FIELD_TYPES = ("string", "number", "date", "email", "enum")
DEFAULT_DATE_FORMAT = "%Y-%m-%d"

DEFAULT_STATUS_FOLDERS = {
    "backlog": "0_backlog",
    "todo": "1_todo",
    "doing": "2_doing",
    "review": "3_review",
    "done": "4_done",
    "archived": "z_archive",
}

# Allowed-status-transition graph: status -> statuses it may move to
DEFAULT_STATUS_TRANSITIONS = {
    "backlog": ["todo", "doing", "archived"],
    "todo": ["backlog", "doing", "archived"],
    "doing": ["todo", "review", "done", "archived"],
    "review": ["doing", "done", "archived"],
    "done": ["review", "archived"],
    "archived": ["backlog"],
}

DEFAULT_STATUS_VALUES = [
    "backlog", "todo", "doing", "review", "done", "released", "abandoned", "archived",
]


@dataclass(frozen=True)
class FieldRule:
    """Validation rule for one metadata field."""
    type: str
    required: bool = False
    default: Any = None
    allowed_values: tuple[str, ...] | None = None
    format: str | None = None  # Regex for strings, strftime pattern for dates
    case_sensitive: bool = True  # Enums only
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    description: str = ""

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @property
    def date_format(self) -> str:
        return self.format or DEFAULT_DATE_FORMAT


FieldSchema = Mapping[str, FieldRule]


@dataclass(frozen=True)
class ValidationSettings:
    strict: bool = False
    id_format: str = r"^\d{3}$"
    id_width: int = 3
    status_values: tuple[str, ...] = tuple(DEFAULT_STATUS_VALUES)
    max_doing: int = 1


@dataclass(frozen=True)
class SlicesSettings:
    task_id_format: str = "T%03d"
    default_state: str = "open"
    required_statuses: tuple[str, ...] = ()
    trailing_sections: tuple[str, ...] = ("Release Notes",)


@dataclass(frozen=True)
class WorkboardConfig:
    """Parsed workboard.yml with defaults applied."""
    root: Path = Path(".")
    work_folder: str = ".work"
    status_folders: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_STATUS_FOLDERS)))
    status_transitions: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType(
            {k: tuple(v) for k, v in DEFAULT_STATUS_TRANSITIONS.items()}))
    validation: ValidationSettings = field(default_factory=ValidationSettings)
    slices: SlicesSettings = field(default_factory=SlicesSettings)
    fields: FieldSchema = field(default_factory=lambda: build_field_schema(ValidationSettings(), {}))

    @property
    def work_dir(self) -> Path:
        return self.root / self.work_folder

    def status_for_folder(self, folder: str) -> str | None:
        """Canonical status of a status folder name, or None if unmapped."""
        for status, folder_name in self.status_folders.items():
            if folder_name == folder:
                return status
        return None

    def folder_for_status(self, status: str) -> str | None:
        return self.status_folders.get(status)


def core_field_rules(settings: ValidationSettings) -> dict[str, FieldRule]:
    """Built-in rules every work item is checked against."""
    return {
        ID_FIELD: FieldRule(type="string", required=True, format=settings.id_format),
        TITLE_FIELD: FieldRule(type="string", required=True),
        STATUS_FIELD: FieldRule(type="enum", required=True, allowed_values=settings.status_values),
        "kind": FieldRule(type="string", required=True),
        "created": FieldRule(type="date", required=True, format=DEFAULT_DATE_FORMAT),
    }


def parse_field_rule(name: str, data: dict) -> FieldRule:
    """Build a FieldRule from its config mapping."""
    allowed = data.get("allowed_values")
    return FieldRule(
        type=data["type"],
        required=bool(data.get("required", False)),
        default=data.get("default"),
        allowed_values=tuple(str(v) for v in allowed) if allowed else None,
        format=data.get("format"),
        case_sensitive=data.get("case_sensitive", True),
        min=data.get("min"),
        max=data.get("max"),
        min_length=data.get("min_length"),
        max_length=data.get("max_length"),
        description=data.get("description", ""),
    )


def build_field_schema(settings: ValidationSettings, user_fields: dict) -> FieldSchema:
    """Merge core rules with user field rules, keeping declaration order."""
    rules = core_field_rules(settings)
    for name, data in (user_fields or {}).items():
        rules[name] = parse_field_rule(name, data)
    return MappingProxyType(rules)


def find_config_file(root: Path) -> Path | None:
    """Root-level workboard.yml, falling back to <work_folder>/workboard.yml."""
    for candidate in (root / CONFIG_FILENAME, root / ".work" / CONFIG_FILENAME):
        if candidate.exists():
            return candidate
    return None


def load_config(root: Path, strict: bool | None = None) -> WorkboardConfig:
    """Load workboard.yml under root and return WorkboardConfig.

    Args:
        root: Repository root containing workboard.yml
        strict: Overrides validation.strict when not None

    Raises:
        ConfigError: If the file is not valid YAML or doesn't match the schema
    """
    config_path = find_config_file(root)
    data: dict = {}
    if config_path is None:
        logger.debug(f"No {CONFIG_FILENAME} under {root}, using defaults")
    else:
        try:
            data = yaml.safe_load(config_path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {config_path}: {e}") from None
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping in {config_path}")
        validate.validate(data, "config", source=config_path)

    return config_from_dict(data, root, strict=strict)


def config_from_dict(data: dict, root: Path = Path("."), strict: bool | None = None) -> WorkboardConfig:
    """Build a WorkboardConfig from an already-parsed mapping."""
    raw_validation = data.get("validation", {})
    defaults = ValidationSettings()
    settings = ValidationSettings(
        strict=raw_validation.get("strict", defaults.strict) if strict is None else strict,
        id_format=raw_validation.get("id_format", defaults.id_format),
        id_width=raw_validation.get("id_width", defaults.id_width),
        status_values=tuple(raw_validation.get("status_values", defaults.status_values)),
        max_doing=raw_validation.get("max_doing", defaults.max_doing),
    )

    raw_slices = data.get("slices", {})
    slice_defaults = SlicesSettings()
    slices = SlicesSettings(
        task_id_format=raw_slices.get("task_id_format", slice_defaults.task_id_format),
        default_state=raw_slices.get("default_state", slice_defaults.default_state),
        required_statuses=tuple(raw_slices.get("required_statuses", slice_defaults.required_statuses)),
        trailing_sections=tuple(raw_slices.get("trailing_sections", slice_defaults.trailing_sections)),
    )

    status_folders = dict(DEFAULT_STATUS_FOLDERS)
    status_folders.update(data.get("status_folders", {}))

    transitions = {k: tuple(v) for k, v in DEFAULT_STATUS_TRANSITIONS.items()}
    if "status_transitions" in data:
        transitions = {k: tuple(v) for k, v in data["status_transitions"].items()}

    return WorkboardConfig(
        root=root,
        work_folder=data.get("work_folder", ".work"),
        status_folders=MappingProxyType(status_folders),
        status_transitions=MappingProxyType(transitions),
        validation=settings,
        slices=slices,
        fields=build_field_schema(settings, data.get("fields", {})),
    )

"""Tests for workboard.lib.config and workboard.lib.validate."""

import pytest

from workboard.lib.config import (
    DEFAULT_STATUS_FOLDERS,
    FieldRule,
    load_config,
)
from workboard.lib.validate import ConfigError


class TestLoadConfigDefaults:
    """Test load_config without a config file."""

    def test_defaults_when_missing(self, tmp_path):
        config = load_config(tmp_path)
        assert config.work_dir == tmp_path / ".work"
        assert dict(config.status_folders) == DEFAULT_STATUS_FOLDERS
        assert config.validation.strict is False
        assert config.validation.max_doing == 1
        assert config.slices.task_id_format == "T%03d"

    def test_core_fields_in_order(self, tmp_path):
        config = load_config(tmp_path)
        assert list(config.fields) == ["id", "title", "status", "kind", "created"]
        assert config.fields["created"].type == "date"
        assert config.fields["status"].allowed_values == config.validation.status_values

    def test_schema_is_read_only(self, tmp_path):
        config = load_config(tmp_path)
        with pytest.raises(TypeError):
            config.fields["extra"] = FieldRule(type="string")

    def test_folder_lookups(self, tmp_path):
        config = load_config(tmp_path)
        assert config.status_for_folder("3_review") == "review"
        assert config.status_for_folder("misc") is None
        assert config.folder_for_status("doing") == "2_doing"


class TestLoadConfigFile:
    """Test load_config with workboard.yml."""

    def test_user_fields_follow_core_fields(self, tmp_path):
        (tmp_path / "workboard.yml").write_text(
            "fields:\n"
            "  priority:\n"
            "    type: enum\n"
            "    allowed_values: [low, medium, high]\n"
            "    default: medium\n"
            "  assigned:\n"
            "    type: email\n"
        )
        config = load_config(tmp_path)
        assert list(config.fields)[-2:] == ["priority", "assigned"]
        assert config.fields["priority"].allowed_values == ("low", "medium", "high")
        assert config.fields["priority"].default == "medium"

    def test_user_field_overrides_core_rule_in_place(self, tmp_path):
        (tmp_path / "workboard.yml").write_text(
            "fields:\n"
            "  created:\n"
            "    type: date\n"
            "    required: true\n"
            "    format: '%d.%m.%Y'\n"
        )
        config = load_config(tmp_path)
        assert list(config.fields).index("created") == 4
        assert config.fields["created"].date_format == "%d.%m.%Y"

    def test_strict_override(self, tmp_path):
        (tmp_path / "workboard.yml").write_text("validation:\n  strict: true\n")
        assert load_config(tmp_path).validation.strict is True
        assert load_config(tmp_path, strict=False).validation.strict is False

    def test_legacy_location(self, tmp_path):
        (tmp_path / ".work").mkdir()
        (tmp_path / ".work" / "workboard.yml").write_text("work_folder: items\n")
        assert load_config(tmp_path).work_dir == tmp_path / "items"

    def test_transitions_replace_defaults(self, tmp_path):
        (tmp_path / "workboard.yml").write_text(
            "status_transitions:\n"
            "  todo: [doing]\n"
            "  doing: [done]\n"
        )
        config = load_config(tmp_path)
        assert dict(config.status_transitions) == {"todo": ("doing",), "doing": ("done",)}

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "workboard.yml").write_text("fields: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to parse"):
            load_config(tmp_path)

    def test_schema_violation_reports_path(self, tmp_path):
        (tmp_path / "workboard.yml").write_text("validation:\n  strict: maybe\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.path == "validation.strict"
        assert exc_info.value.source == tmp_path / "workboard.yml"
        assert str(exc_info.value).startswith(f"{tmp_path / 'workboard.yml'}: validation.strict: ")

    def test_all_violations_counted(self, tmp_path):
        (tmp_path / "workboard.yml").write_text("validation:\n  strict: maybe\n  id_width: nope\n")
        with pytest.raises(ConfigError, match=r"and 1 more problem"):
            load_config(tmp_path)

    def test_enum_field_requires_allowed_values(self, tmp_path):
        (tmp_path / "workboard.yml").write_text("fields:\n  priority:\n    type: enum\n")
        with pytest.raises(ConfigError):
            load_config(tmp_path)

    def test_unknown_top_level_key(self, tmp_path):
        (tmp_path / "workboard.yml").write_text("colour: blue\n")
        with pytest.raises(ConfigError):
            load_config(tmp_path)

"""
Schema validation for workboard.yml.

The parsed YAML is checked against `schemas/<name>.schema.json` before any
setting is read. Errors name the config file and the dotted key path, e.g.
`workboard.yml: validation.max_doing: -1 is less than the minimum of 0`.
"""

import json
from pathlib import Path

import jsonschema


class ConfigError(Exception):
    """Configuration file is unreadable or doesn't match its schema.

    `path` is the dotted key path of the offending setting, if known.
    """

    def __init__(self, message: str, path: str | None = None, source: Path | None = None):
        self.path = path
        self.source = source
        prefix = f"{source}: " if source else ""
        where = f"{path}: " if path else ""
        super().__init__(f"{prefix}{where}{message}")


_schema_cache: dict[str, dict] = {}


def _get_schemas_dir() -> Path:
    return Path(__file__).parent.parent / "schemas"


def _load_schema(schema_name: str) -> dict:
    if schema_name not in _schema_cache:
        schema_path = _get_schemas_dir() / f"{schema_name}.schema.json"
        if not schema_path.exists():
            raise ConfigError(f"schema file not found: {schema_path}")
        _schema_cache[schema_name] = json.loads(schema_path.read_text())
    return _schema_cache[schema_name]


def key_path(error: jsonschema.ValidationError) -> str:
    """Dotted path of a schema error, `(root)` for top-level problems."""
    return ".".join(str(p) for p in error.absolute_path) or "(root)"


def validate(data: dict, schema_name: str, source: Path | None = None) -> None:
    """
    Validate parsed settings against a named schema.

    All violations are collected; the first by key path is raised and the
    rest are counted in the message.

    Args:
        data: Parsed YAML mapping
        schema_name: Schema name (e.g., "config")
        source: Config file the data came from, for error messages

    Raises:
        ConfigError: If the data doesn't match the schema
    """
    validator = jsonschema.Draft7Validator(_load_schema(schema_name))
    errors = sorted(validator.iter_errors(data), key=key_path)
    if not errors:
        return

    first = errors[0]
    message = first.message
    if len(errors) > 1:
        message += f" (and {len(errors) - 1} more problem(s))"
    raise ConfigError(message, key_path(first), source)

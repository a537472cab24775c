"""
Schema validation for stitch.

Enforces JSON Schema validation on stitch frontmatter and the index file.
Fails hard with clear errors when data doesn't match schema.
"""

import json
from pathlib import Path

import jsonschema

from stitch.lib.errors import ValidationError


class SchemaValidationError(ValidationError):
    """Schema validation failed."""

    def __init__(self, schema_name: str, message: str, path: str | None = None):
        self.schema_name = schema_name
        self.path = path
        self.detail = message + (f" at {path}" if path else "")
        super().__init__(f"[{schema_name}] {self.detail}")


# Cache loaded schemas
_schema_cache: dict[str, dict] = {}


def _get_schemas_dir() -> Path:
    """Get path to schemas directory."""
    return Path(__file__).parent.parent / "schemas"


def _load_schema(schema_name: str) -> dict:
    """Load schema by name, with caching."""
    if schema_name not in _schema_cache:
        schema_path = _get_schemas_dir() / f"{schema_name}.schema.json"
        if not schema_path.exists():
            raise SchemaValidationError(schema_name, f"Schema file not found: {schema_path}")
        _schema_cache[schema_name] = json.loads(schema_path.read_text())
    return _schema_cache[schema_name]


def validate(data: dict, schema_name: str) -> None:
    """
    Validate data against named schema.

    Args:
        data: Dictionary to validate
        schema_name: Schema name ("frontmatter" or "index")

    Raises:
        SchemaValidationError: If validation fails
    """
    schema = _load_schema(schema_name)

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) if e.absolute_path else "(root)"
        raise SchemaValidationError(schema_name, e.message, path) from None


def is_valid(data: dict, schema_name: str) -> bool:
    """Return True if data matches the named schema."""
    try:
        validate(data, schema_name)
    except SchemaValidationError:
        return False
    return True


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """
    Validate data before writing to file. Ensures we never write invalid data.

    Raises:
        SchemaValidationError: If data doesn't match schema
    """
    try:
        validate(data, schema_name)
    except SchemaValidationError as e:
        raise SchemaValidationError(
            schema_name,
            f"Refusing to write invalid data to {filepath}: {e.detail}"
        ) from None

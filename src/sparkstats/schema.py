"""JSON Schema validation for analysis reports."""

import json
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import Draft7Validator

from .version import is_schema_compatible

SCHEMA_PATH = Path(__file__).parent / "schemas" / "analysis_report.schema.json"


def _load_schema() -> dict[str, Any]:
    """Load the analysis report JSON schema shipped with the package.

    Raises:
        FileNotFoundError: If schema file is missing.
        json.JSONDecodeError: If schema file is invalid JSON.
    """
    if not SCHEMA_PATH.exists():
        raise FileNotFoundError(f"Schema file not found: {SCHEMA_PATH}")

    with open(SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


def _create_validator() -> Draft7Validator:
    """Create a Draft-07 validator with format checking enabled."""
    schema = _load_schema()
    return Draft7Validator(schema, format_checker=jsonschema.FormatChecker())


def _format_validation_error(error: jsonschema.ValidationError) -> str:
    """Format a validation error into a clear, actionable message.

    Args:
        error: The validation error from jsonschema.

    Returns:
        Formatted error message with path and context.
    """
    path_str = ""
    if error.absolute_path:
        path_parts = []
        for part in error.absolute_path:
            if isinstance(part, int):
                path_parts.append(f"[{part}]")
            elif path_parts:
                path_parts.append(f".{part}")
            else:
                path_parts.append(str(part))
        path_str = f" at path '{''.join(path_parts)}'"

    if error.validator == "required":
        missing_props = error.message.split("'")[1::2]
        return f"Missing required field(s): {', '.join(missing_props)}{path_str}"

    if error.validator == "enum":
        allowed_values = list(error.validator_value)
        return (f"Invalid value{path_str}. Allowed values: {allowed_values}. "
                f"Got: {error.instance}")

    if error.validator == "type":
        expected_type = error.validator_value
        actual_type = type(error.instance).__name__
        return (f"Invalid type{path_str}. Expected {expected_type}, "
                f"got {actual_type}: {error.instance}")

    if error.validator == "pattern":
        return (f"Value does not match required pattern{path_str}. "
                f"Pattern: {error.validator_value}, Got: {error.instance}")

    if error.validator in ("minimum", "maximum"):
        op = ">=" if error.validator == "minimum" else "<="
        return f"Value{path_str} must be {op} {error.validator_value}. Got: {error.instance}"

    if error.validator == "additionalProperties":
        return f"Additional properties not allowed{path_str}: {error.message}"

    return f"{error.message}{path_str}"


def validate_report(obj: dict[str, Any]) -> None:
    """Validate an analysis report against the JSON schema.

    Args:
        obj: The report dictionary to validate.

    Raises:
        jsonschema.ValidationError: If the report is invalid, with a message
            naming the offending path and the expected value.
        TypeError: If obj is not a dictionary.
    """
    if not isinstance(obj, dict):
        raise TypeError(f"Report must be a dictionary, got {type(obj).__name__}")

    validator = _create_validator()

    try:
        validator.validate(obj)
    except jsonschema.ValidationError as e:
        raise jsonschema.ValidationError(_format_validation_error(e)) from e

    version = obj["schema_version"]
    if not is_schema_compatible(version):
        raise jsonschema.ValidationError(
            f"Incompatible schema_version: {version}. "
            "Regenerate the report with this version of sparkstats"
        )


def validate_report_file(file_path: str) -> None:
    """Validate a report JSON file against the schema.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file contains invalid JSON.
        jsonschema.ValidationError: If the report is invalid.
    """
    with open(file_path, encoding="utf-8") as f:
        obj = json.load(f)

    validate_report(obj)

"""Validation errors.

All validation failures share VALIDATION_001 and differ in the details
they carry. Each detail names the offending field, the value seen, the
constraint it broke, and a human-readable message.
"""

from dataclasses import asdict, dataclass
from typing import Any, Optional

from testdaemon.errors.base import DaemonError


@dataclass
class ValidationErrorDetail:
    message: str
    field: Optional[str] = None
    value: Any = None
    constraint: Optional[str] = None


class ValidationError(DaemonError):
    default_code = "VALIDATION_001"

    def __init__(self, message: str, details: Optional[list[ValidationErrorDetail]] = None):
        self.details = list(details or [])
        super().__init__(message, context={"details": [asdict(d) for d in self.details]})

    def get_error_messages(self) -> list[str]:
        return [d.message for d in self.details]

    def get_field_errors(self, field: str) -> list[ValidationErrorDetail]:
        return [d for d in self.details if d.field == field]


class SchemaValidationError(ValidationError):
    def __init__(self, schema_name: str, details: list[ValidationErrorDetail]):
        super().__init__(f"Schema validation failed for {schema_name}", details)


class RequiredFieldError(ValidationError):
    def __init__(self, field: str):
        super().__init__(
            f"Required field is missing: {field}",
            [ValidationErrorDetail(message=f"Field '{field}' is required", field=field)],
        )


class InvalidFormatError(ValidationError):
    def __init__(self, field: str, expected_format: str, actual_value: Any):
        super().__init__(
            f"Invalid format for field '{field}': expected {expected_format}",
            [
                ValidationErrorDetail(
                    message=f"Field '{field}' must be in {expected_format} format",
                    field=field,
                    value=actual_value,
                    constraint=expected_format,
                )
            ],
        )


class ValueOutOfRangeError(ValidationError):
    def __init__(self, field: str, min_value: float, max_value: float, actual_value: float):
        super().__init__(
            f"Value out of range for '{field}': {actual_value} (expected: {min_value}-{max_value})",
            [
                ValidationErrorDetail(
                    message=f"Field '{field}' must be between {min_value} and {max_value}",
                    field=field,
                    value=actual_value,
                    constraint=f"{min_value}-{max_value}",
                )
            ],
        )


class ConfigurationValidationError(ValidationError):
    def __init__(self, config_path: str, details: list[ValidationErrorDetail]):
        super().__init__(f"Configuration validation failed for {config_path}", details)

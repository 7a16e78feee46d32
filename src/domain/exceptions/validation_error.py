"""
Validation-related domain exceptions.
"""


class ValidationError(Exception):
    """Base exception for malformed or missing input."""

    pass


class RequiredFieldError(ValidationError):
    """Raised when required field is missing."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Required field '{field_name}' is missing")


class InvalidIdentifierError(ValidationError):
    """Raised when an identifier cannot be parsed."""

    def __init__(self, field_name: str, value: object):
        self.field_name = field_name
        self.value = value
        super().__init__(f"Field '{field_name}' is not a valid UUID: {value!r}")


class MissingLocationError(ValidationError):
    """Raised when an intervention has no coordinates to dispatch from."""

    def __init__(self, intervention_id: str):
        self.intervention_id = intervention_id
        super().__init__(f"Intervention {intervention_id} location not set")

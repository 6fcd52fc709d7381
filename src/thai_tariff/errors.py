"""Exceptions raised by the tariff engine.

ValidationError subclasses are caller faults. ConfigurationError subclasses
mean the rate catalog and the validator disagree, which is a defect on our
side rather than bad input.
"""


class TariffError(Exception):
    """Base exception for tariff calculation errors."""

    status_category = "internal"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict[str, str]:
        body = {"error": self.message}
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(TariffError):
    """The request cannot be calculated as given."""

    status_category = "validation"


class EmptyBodyError(ValidationError):
    def __init__(self):
        super().__init__("Request body is required")


class MissingFieldError(ValidationError):
    def __init__(self, field: str):
        super().__init__(
            f"Missing required field: {field}. This field is mandatory for the calculation.",
            field,
        )


class InvalidProviderError(ValidationError):
    pass


class InvalidCalculationClassError(ValidationError):
    pass


class InvalidTariffTypeError(ValidationError):
    pass


class InvalidVoltageLevelError(ValidationError):
    pass


class InvalidTypeError(ValidationError):
    """A field that must be numeric did not parse as a finite number."""

    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or f"{field} must be a valid number", field)


class NegativeValueError(ValidationError):
    def __init__(self, field: str):
        super().__init__(f"{field} must be non-negative", field)


class InvalidPlanNameError(ValidationError):
    pass


class UnsupportedCombinationError(ValidationError):
    """The tariff type exists but is not offered for the customer class."""

    def __init__(self, message: str):
        super().__init__(message, "tariffType")


class ConfigurationError(TariffError):
    """The rate catalog is inconsistent with the engine."""


class CatalogError(ConfigurationError):
    pass


class RateNotFoundError(ConfigurationError):
    pass

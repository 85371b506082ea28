"""Common exceptions for the rack LED system."""


class RackLedError(Exception):
    """Base exception for all rack LED errors."""

    pass


class ValidationError(RackLedError):
    """Input validation error."""

    pass


class RangeError(ValidationError):
    """Index, ruler position or unit number outside its valid range."""

    pass


class UnknownEquipmentError(ValidationError):
    """Equipment id not present in the catalog, or without usable units."""

    def __init__(self, equipment_id: str):
        self.equipment_id = equipment_id
        super().__init__(f'Unknown or empty equipment "{equipment_id}".')


class ConfigurationError(RackLedError):
    """Configuration error."""

    pass


class TransportError(RackLedError):
    """Device unreachable, non-2xx answer or timeout."""

    pass

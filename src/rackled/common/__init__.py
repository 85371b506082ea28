"""Common components shared across modules."""

from .exceptions import *

__all__ = [
    "RackLedError",
    "ValidationError",
    "RangeError",
    "UnknownEquipmentError",
    "ConfigurationError",
    "TransportError",
]

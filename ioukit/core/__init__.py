"""IOU Kit Core — shared schemas, settings, events, locking and errors."""

from .config import Settings, get_settings, reset_settings
from .events import EventBus, event_bus
from .exceptions import (
    ConfigurationError,
    InvalidInputError,
    InvariantViolation,
    IOUKitError,
    NotFoundError,
    OperationCancelledError,
)
from .locks import ReadWriteLock
from .schemas import EntityMention, EntityType, canonical_key, normalize_surface

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
    "EventBus",
    "event_bus",
    "IOUKitError",
    "InvalidInputError",
    "ConfigurationError",
    "NotFoundError",
    "InvariantViolation",
    "OperationCancelledError",
    "ReadWriteLock",
    "EntityMention",
    "EntityType",
    "canonical_key",
    "normalize_surface",
]

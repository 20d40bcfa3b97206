"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from kitchenflow.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from kitchenflow.core.exceptions import (
    FulfillmentError,
    NotFound,
    PreconditionFailed,
    ConcurrentModification,
    InvalidAdjustment,
    CatalogInconsistency,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "FulfillmentError",
    "NotFound",
    "PreconditionFailed",
    "ConcurrentModification",
    "InvalidAdjustment",
    "CatalogInconsistency",
]

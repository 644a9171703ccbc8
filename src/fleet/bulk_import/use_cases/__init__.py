"""Use cases for bulk device import.

Each use case represents a single user action and orchestrates
domain logic without knowing about infrastructure details.
"""

from .import_devices import BulkImportDevicesUseCase
from .resolve_profile import ProfileResolution, ResolveDeviceProfileUseCase
from .upsert_device import UpsertDeviceUseCase

__all__ = [
    "BulkImportDevicesUseCase",
    "ProfileResolution",
    "ResolveDeviceProfileUseCase",
    "UpsertDeviceUseCase",
]

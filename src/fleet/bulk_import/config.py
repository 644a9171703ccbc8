"""Configuration for bulk device import.

Environment Variables:
- BULK_IMPORT_MAX_WORKERS: Rows processed concurrently (default: 10)
- BULK_IMPORT_ACCESS_TOKEN_LENGTH: Length of generated tokens (default: 20)
- BULK_IMPORT_PROFILE_UPGRADE_POLICY: "upgrade" or "reject" (default: upgrade)
- BULK_IMPORT_MAX_UPLOAD_MB: Maximum uploaded file size (default: 10)
"""

import os
from dataclasses import dataclass
from enum import Enum

from ..core.exceptions import ConfigurationError


class ProfileUpgradePolicy(str, Enum):
    """What to do when an LWM2M row names an existing non-LWM2M profile."""

    UPGRADE = "upgrade"  # Switch the profile's transport to LWM2M in place
    REJECT = "reject"  # Fail the row


@dataclass
class BulkImportConfig:
    """Configuration for bulk device import."""

    # Rows processed concurrently per import job
    max_workers: int = 10

    # Length of generated access tokens
    access_token_length: int = 20

    # Handling of conflicting non-LWM2M profiles
    profile_upgrade_policy: ProfileUpgradePolicy = ProfileUpgradePolicy.UPGRADE

    # Upload limit for the HTTP endpoint
    max_upload_size_mb: int = 10

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "BulkImportConfig":
        """Load configuration from environment variables.

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        try:
            config = cls(
                max_workers=int(os.getenv("BULK_IMPORT_MAX_WORKERS", "10")),
                access_token_length=int(os.getenv("BULK_IMPORT_ACCESS_TOKEN_LENGTH", "20")),
                profile_upgrade_policy=ProfileUpgradePolicy(
                    os.getenv("BULK_IMPORT_PROFILE_UPGRADE_POLICY", "upgrade").strip().lower()
                ),
                max_upload_size_mb=int(os.getenv("BULK_IMPORT_MAX_UPLOAD_MB", "10")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid bulk import configuration: {e}", cause=e)

        if config.max_workers < 1:
            raise ConfigurationError(
                "BULK_IMPORT_MAX_WORKERS must be at least 1",
                details={"max_workers": config.max_workers},
            )
        if config.access_token_length < 1:
            raise ConfigurationError(
                "BULK_IMPORT_ACCESS_TOKEN_LENGTH must be at least 1",
                details={"access_token_length": config.access_token_length},
            )
        return config

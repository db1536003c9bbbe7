"""
Train backend settings.

Extends the base settings with relationship-specific configuration.
"""

from common.config import BaseAppSettings
from train.models.enums import ProfileAccess


class Settings(BaseAppSettings):
    """Train-specific settings."""

    # ==========================================================================
    # Reconciliation
    # ==========================================================================
    # Users processed between progress log lines
    RECONCILE_BATCH_SIZE: int = 500

    # ==========================================================================
    # Groups
    # ==========================================================================
    # accountType of groups created without one
    DEFAULT_GROUP_ACCESS: ProfileAccess = ProfileAccess.PUBLIC


# Global settings instance
settings = Settings()

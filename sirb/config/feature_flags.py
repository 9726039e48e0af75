"""
Feature Flags Configuration

Centralized feature flag management for the content service.
All feature flags are loaded from environment variables.
"""
from sirb.config.settings import get_bool_env


class FeatureFlags:
    """
    Feature flags for the application.

    To add a new feature flag:
    1. Add it here as a class property
    2. Load it from environment variable
    3. Use it in your code
    """

    # Contributor points ledger (awards on approval, votes, comments, reports, attempts)
    FEATURE_CONTRIBUTOR_POINTS: bool = get_bool_env('FEATURE_CONTRIBUTOR_POINTS', True)

    # Moderator / contributor / reporter notifications
    FEATURE_EMAIL_NOTIFICATIONS: bool = get_bool_env('FEATURE_EMAIL_NOTIFICATIONS', True)

    @classmethod
    def is_enabled(cls, flag_name: str) -> bool:
        """Check if a feature flag is enabled by name."""
        return getattr(cls, flag_name, False)

    @classmethod
    def get_all_flags(cls) -> dict:
        """Get all feature flags as a dictionary."""
        return {
            key: value
            for key, value in cls.__dict__.items()
            if not key.startswith('_') and isinstance(value, bool)
        }


# Singleton instance for easy importing
feature_flags = FeatureFlags()

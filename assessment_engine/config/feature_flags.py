"""
Feature Flags Configuration

Centralized feature flag management for the assessment engine.
All feature flags are loaded from environment variables.
"""
import os


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


class FeatureFlags:
    """
    Feature flags for the assessment engine.

    To add a new feature flag:
    1. Add it here as a class property
    2. Load it from environment variable
    3. Use it in your code
    """

    # Student notification on first assessment of a submission
    FEATURE_ASSESSMENT_NOTIFICATIONS: bool = get_bool_env('FEATURE_ASSESSMENT_NOTIFICATIONS', True)

    # Markdown feedback summary when the evaluator asks for one
    FEATURE_AUTO_FEEDBACK: bool = get_bool_env('FEATURE_AUTO_FEEDBACK', True)

    @classmethod
    def is_enabled(cls, flag_name: str) -> bool:
        """Check if a feature flag is enabled by name."""
        return getattr(cls, flag_name, False)

    @classmethod
    def get_all_flags(cls) -> dict:
        """Get all feature flags as a dictionary."""
        return {
            key: value
            for key, value in vars(cls).items()
            if not key.startswith('_') and isinstance(value, bool)
        }


feature_flags = FeatureFlags()

import os


def get_settings_module() -> str:
    # APP_ENV picks the settings module; anything unknown falls back to development.
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "timecard_compliance.config.production"

    if env in {"test", "testing"}:
        return "timecard_compliance.config.testing"

    return "timecard_compliance.config.development"

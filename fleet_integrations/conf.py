"""Settings lookup for the integrations app.

Every setting can be overridden in the host project's Django settings.
"""

from django.conf import settings

DEFAULTS = {
    "FLEET_SYNC_HTTP_TIMEOUT": 30,
    "FLEET_SYNC_STRICT_SIGNATURES": False,
    "FLEET_SYNC_ALLOW_STATUS_REGRESSION": False,
    "FLEET_SYNC_USER_AGENT": "fleet-integrations/1.0",
    "FLEET_SYNC_QUEUE": "integration_sync",
}


def get_setting(name):
    """Return ``settings.<name>``, falling back to the app default."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown fleet_integrations setting: {name}")
    return getattr(settings, name, DEFAULTS[name])

"""Error taxonomy for webhook ingestion and pull sync.

Fatal errors (``UnauthorizedError``, ``IntegrationInactiveError``) abort
before any mutation. The rest are scoped to one entity kind or one record
and are turned into counters and error strings by the caller.
"""


class IntegrationSyncError(Exception):
    """Base class for every error raised by this app."""


class UnauthorizedError(IntegrationSyncError):
    """The api key did not resolve to a company."""


class IntegrationInactiveError(IntegrationSyncError):
    """A sync was requested for an integration that is switched off."""

    def __init__(self, integration_id):
        self.integration_id = integration_id
        super().__init__(f"Integration {integration_id} is not active")


class UpstreamFetchError(IntegrationSyncError):
    """Fetching one entity collection from the external API failed."""

    def __init__(self, kind, message, status_code=None):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)


class RecordResolutionError(IntegrationSyncError):
    """A single record could not be validated or written."""

    def __init__(self, kind, external_id, message):
        self.kind = kind
        self.external_id = external_id
        super().__init__(message)


class SignatureMismatch(IntegrationSyncError):
    """The webhook signature did not match the body.

    Only raised when strict signature checking is enabled; otherwise the
    mismatch is logged and the delivery is processed anyway.
    """

    def __init__(self, platform):
        self.platform = platform
        super().__init__(f"Invalid {platform} webhook signature")

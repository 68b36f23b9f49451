class HeatmapError(Exception):
    """Base class for errors the API layer turns into HTTP responses."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(HeatmapError):
    code = "bad_request"
    status_code = 400


class InvalidCredential(HeatmapError):
    """Identity could not be resolved from a credential. Fatal for the request."""

    code = "invalid_credential"
    status_code = 401

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class UpstreamFailure(HeatmapError):
    """A provider fetch failed after the identity was resolved."""

    code = "upstream_error"
    status_code = 502


class InvalidTtl(HeatmapError, ValueError):
    code = "invalid_ttl"
    status_code = 500


class CacheCapacityMisconfigured(UserWarning):
    """Emitted when a cache is built with an unusable max size; the cache is unbounded."""

"""
Error taxonomy shared by the planning pipeline, the store and the routers.
"""


class HangoutError(Exception):
    """Base class for every error raised by the planner core."""


class InputError(HangoutError):
    """Missing or invalid member data, unknown group, out-of-range vote."""


class CannotGenerateRecommendations(InputError):
    """No member of the group has a location that could be resolved."""


class UpstreamParseError(HangoutError):
    """AI response was not valid JSON or did not match the expected shape."""


class EnrichmentFailure(HangoutError):
    """A Places request failed, returned a malformed body, or timed out."""


class StoreError(HangoutError):
    """Base class for persistence failures."""


class TransientStoreConflict(StoreError):
    """Retryable collision (write conflict, dropped pooled connection, ...)."""


class FatalStoreError(StoreError):
    """Non-retryable persistence failure, or retries exhausted."""


class GroupNotFound(InputError):
    """No group with the given id or code."""


class UpstreamUnavailable(HangoutError):
    """An upstream service (chat model) kept failing or timing out after retries."""

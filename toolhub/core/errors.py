"""Error taxonomy shared by the text and image generation clients.

Architectural role:
    Gives every terminal failure of a generation call a distinct type so that
    adapters (HTTP API, CLI, UI screens) can pick user-facing wording without
    inspecting messages or status codes.

Taxonomy:
    - `OfflineError`: connectivity is unavailable. Never retried.
    - `RemoteFailure`: endpoint reachable but answered with an error status or
      an unusable payload for a single attempt.
    - `AllProvidersExhausted`: every image candidate soft-failed.
    - `InvalidRequest`: request rejected locally before any network I/O.

User-facing messages:
    Each class carries a `user_message` that is safe to render verbatim. It
    never contains HTTP codes, model identifiers or provider names. The
    exception text (`str(exc)`) holds diagnostic detail and is meant for logs.
"""


class GenerationError(Exception):
    """Base class for classified generation failures."""

    kind = "failed"
    user_message = "Something went wrong. Please try again."


class OfflineError(GenerationError):
    """Raised when the device or network has no connectivity."""

    kind = "offline"
    user_message = "No internet connection. Please check your network and try again."

    def __init__(self, message: str = "No internet connection"):
        super().__init__(message)


class RemoteFailure(GenerationError):
    """Raised when one remote attempt returned an error status or bad payload.

    Attributes:
        status_code: HTTP status of the failed response, `None` when the
            response was structurally malformed rather than an error status.
        detail: Provider error message (diagnostic only).
    """

    kind = "remote"
    user_message = "Failed to generate a response. Please try again."

    def __init__(self, detail: str, status_code: int | None = None):
        label = f"HTTP {status_code}: {detail}" if status_code else detail
        super().__init__(label)
        self.status_code = status_code
        self.detail = detail


class AllProvidersExhausted(GenerationError):
    """Raised when every candidate of a cascade produced a soft failure.

    Attributes:
        trail: Soft-failure reasons, one per attempted candidate, in order.
    """

    kind = "exhausted"
    user_message = "Generation is temporarily unavailable. Please try again shortly."

    def __init__(self, trail: list[str]):
        super().__init__(f"All {len(trail)} candidates failed: " + "; ".join(trail))
        self.trail = list(trail)


class InvalidRequest(GenerationError, ValueError):
    """Raised for requests that cannot be sent (empty prompt, bad size...)."""

    kind = "invalid"
    user_message = "Please check your input and try again."

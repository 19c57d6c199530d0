"""Per-attempt and per-call result contracts.

Architectural role:
    `AttemptOutcome` is the tagged value produced by one candidate attempt in
    the image cascade. The cascade loop inspects the tag instead of relying on
    exception types to tell soft failures from hard ones.

    `GenerationResult` is the adapter-facing envelope: either a value ready to
    render/copy, or a classified error kind with a user-safe message.

Determinism:
    The data classes are purely structural and state-free.
"""

from dataclasses import dataclass, field
from typing import Union

from toolhub.core.errors import GenerationError


@dataclass(frozen=True)
class Success:
    """Attempt produced a usable resource.

    Attributes:
        locator: Public locator of the produced resource (no credentials).
        model: Candidate that produced it.
        content_type: Declared media type of the response.
        content: Raw response body.
    """

    locator: str
    model: str
    content_type: str = ""
    content: bytes = field(default=b"", repr=False)


@dataclass(frozen=True)
class SoftFailure:
    """Attempt failed in a way that allows trying the next candidate."""

    reason: str


@dataclass(frozen=True)
class HardFailure:
    """Attempt failed in a way no other candidate can fix (e.g. offline)."""

    reason: str


AttemptOutcome = Union[Success, SoftFailure, HardFailure]


@dataclass(frozen=True)
class GenerationResult:
    """Terminal result of one generation call as seen by adapters.

    Attributes:
        value: Generated text or resource locator when the call succeeded.
        error: Classified error kind (`offline`, `exhausted`, `invalid`,
            `remote`, `failed`) when it did not.
        message: User-presentable error text.
    """

    value: str | None = None
    error: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: str) -> "GenerationResult":
        return cls(value=value)

    @classmethod
    def from_error(cls, err: Exception) -> "GenerationResult":
        """Map any exception to a classified, user-safe result."""
        if isinstance(err, GenerationError):
            return cls(error=err.kind, message=err.user_message)
        return cls(error=GenerationError.kind, message=GenerationError.user_message)

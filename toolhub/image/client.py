"""Cascading image/video generation client.

Processing flow (per call):
    1. Validate the request and fix the seed (drawn once when omitted).
    2. For each candidate model in priority order, build the attempt URL and
       GET it, raced against the per-attempt timeout.
    3. Classify the attempt as `Success`, `SoftFailure` or `HardFailure`.
    4. Stop on the first success; abort on a hard failure; otherwise record
       the reason and move to the next candidate.
    5. After the last soft failure raise `AllProvidersExhausted` carrying the
       ordered failure trail.

Attempt acceptance:
    - Images: 2xx status and a `content-type` starting with `image/`
      (plus an optional minimum body size guarding against rate-limit
      placeholder images).
    - Videos: 2xx status and a body of at least `min_video_bytes`.

Concurrency:
    Attempts are strictly sequential; at most one request is in flight per
    call. Each attempt opens its own `httpx.AsyncClient` under `async with`
    and is wrapped in `asyncio.wait_for`, so a timeout cancels only that
    request. Cancelling the awaiting task propagates `CancelledError` and
    skips the remaining candidates.

Determinism:
    Candidate order and URL construction are deterministic for a fixed
    configuration and seed. The seed is identical for every attempt of a call.

Security considerations:
    The API key is appended to request URLs only. Returned locators, failure
    reasons and log lines never contain it.
"""

import asyncio
import base64
import logging
import random
from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import quote, urlencode

import httpx

from toolhub.core.errors import AllProvidersExhausted, InvalidRequest, OfflineError
from toolhub.core.outcomes import AttemptOutcome, HardFailure, SoftFailure, Success
from toolhub.llm.client import is_connectivity_error
from toolhub.llm.provider_config import MAX_SEED, ImageClientConfig


logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 1024
DEFAULT_HEIGHT = 1024


@dataclass(frozen=True)
class ImageRequest:
    prompt: str
    width: int
    height: int
    seed: int


@dataclass(frozen=True)
class GeneratedImage:
    """Successful generation result.

    Attributes:
        url: Public locator of the generated media (credential-free).
        model: Candidate that produced it.
        seed: Seed used for every attempt of the call.
        content_type: Declared media type.
        content: Raw media bytes.
        failures: Soft-failure reasons of the candidates tried before success.
    """

    url: str
    model: str
    seed: int | None
    content_type: str
    content: bytes = field(repr=False)
    failures: tuple[str, ...] = ()

    def as_data_url(self) -> str:
        """Encode the media bytes as a `data:` URL for direct rendering."""
        media_type = self.content_type.split(";")[0].strip() or "application/octet-stream"
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{media_type};base64,{encoded}"


def build_media_url(
    host: str,
    prompt: str,
    model: str,
    api_key: str | None = None,
    width: int | None = None,
    height: int | None = None,
    seed: int | None = None,
) -> str:
    """Build one provider URL.

    Shape: `https://<host>/image/<url-encoded-prompt>?width=&height=&seed=
    &nologo=true&model=<model>[&key=<api_key>]`. Size and seed parameters are
    omitted when `None` (video requests).
    """
    params: list[tuple[str, str]] = []
    if width is not None:
        params.append(("width", str(width)))
    if height is not None:
        params.append(("height", str(height)))
    if seed is not None:
        params.append(("seed", str(seed)))
        params.append(("nologo", "true"))
    params.append(("model", model))
    if api_key:
        params.append(("key", api_key))
    return f"https://{host}/image/{quote(prompt, safe='')}?{urlencode(params)}"


class ImageGenerationClient:
    """Image/video client that cascades across ranked candidate models."""

    def __init__(
        self,
        config: ImageClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or ImageClientConfig.from_env()
        self._transport = transport
        self._rng = rng or random.Random()

    @property
    def has_api_key(self) -> bool:
        return bool(self.config.api_key)

    async def generate_image(
        self,
        prompt: str,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
        seed: int | None = None,
    ) -> GeneratedImage:
        """Generate one image, falling back across candidates.

        Args:
            prompt: Text prompt; must contain non-whitespace text.
            width: Output width in pixels (positive).
            height: Output height in pixels (positive).
            seed: Fixed seed; a random one is drawn once per call when omitted.

        Returns:
            `GeneratedImage` from the first candidate that succeeded.

        Raises:
            InvalidRequest: Bad prompt, size or seed.
            OfflineError: Connectivity lost; remaining candidates are skipped.
            AllProvidersExhausted: Every candidate soft-failed.
        """
        request = self._image_request(prompt, width, height, seed)

        def urls(model: str) -> tuple[str, str]:
            def url(key: str | None) -> str:
                return build_media_url(
                    self.config.host,
                    request.prompt,
                    model,
                    api_key=key,
                    width=request.width,
                    height=request.height,
                    seed=request.seed,
                )
            return url(self.config.api_key), url(None)

        success, trail = await self._cascade(
            "image",
            self.config.candidates,
            urls,
            self.config.per_attempt_timeout_ms / 1000,
            self._validate_image,
        )
        return GeneratedImage(
            url=success.locator,
            model=success.model,
            seed=request.seed,
            content_type=success.content_type,
            content=success.content,
            failures=tuple(trail),
        )

    async def generate_video(self, prompt: str) -> GeneratedImage:
        """Generate one video clip, falling back across video candidates."""
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidRequest("Prompt must be a non-empty string")

        def urls(model: str) -> tuple[str, str]:
            return (
                build_media_url(self.config.host, prompt, model, api_key=self.config.api_key),
                build_media_url(self.config.host, prompt, model),
            )

        success, trail = await self._cascade(
            "video",
            self.config.video_candidates,
            urls,
            self.config.video_timeout_ms / 1000,
            self._validate_video,
        )
        return GeneratedImage(
            url=success.locator,
            model=success.model,
            seed=None,
            content_type=success.content_type,
            content=success.content,
            failures=tuple(trail),
        )

    def _image_request(self, prompt, width, height, seed) -> ImageRequest:
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidRequest("Prompt must be a non-empty string")
        for name, value in (("width", width), ("height", height)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidRequest(f"{name} must be a positive integer")
        if seed is None:
            seed = self._rng.randrange(MAX_SEED)
        elif isinstance(seed, bool) or not isinstance(seed, int):
            raise InvalidRequest("seed must be an integer")
        return ImageRequest(prompt=prompt, width=width, height=height, seed=seed)

    async def _cascade(
        self,
        kind: str,
        candidates: tuple[str, ...],
        urls: Callable[[str], tuple[str, str]],
        timeout_seconds: float,
        validate: Callable[[str, httpx.Response], str | None],
    ) -> tuple[Success, list[str]]:
        """Drive attempts in order until success, hard failure or exhaustion."""
        trail: list[str] = []
        total = len(candidates)

        for index, model in enumerate(candidates, start=1):
            request_url, locator = urls(model)
            logger.info("Trying %s model %s (%d/%d)", kind, model, index, total)
            outcome = await self._attempt(model, request_url, locator, timeout_seconds, validate)

            if isinstance(outcome, Success):
                logger.info("%s generated with model %s (%d bytes)", kind.capitalize(), model, len(outcome.content))
                return outcome, trail

            if isinstance(outcome, HardFailure):
                logger.warning("Aborting %s cascade: %s", kind, outcome.reason)
                raise OfflineError(outcome.reason)

            logger.warning(outcome.reason)
            trail.append(outcome.reason)

        logger.error("All %s models failed: %s", kind, trail)
        raise AllProvidersExhausted(trail)

    async def _attempt(
        self,
        model: str,
        request_url: str,
        locator: str,
        timeout_seconds: float,
        validate: Callable[[str, httpx.Response], str | None],
    ) -> AttemptOutcome:
        """Run one candidate attempt and classify it. Never raises for I/O."""
        try:
            response = await asyncio.wait_for(
                self._fetch(request_url, timeout_seconds),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError:
            return SoftFailure(f"Model {model} timed out after {timeout_seconds:g}s")
        except httpx.HTTPError as exc:
            if is_connectivity_error(exc):
                return HardFailure(f"Model {model} unreachable: {type(exc).__name__}")
            return SoftFailure(f"Model {model} error: {type(exc).__name__}")

        if not response.is_success:
            return SoftFailure(f"Model {model} failed with {response.status_code}")

        reason = validate(model, response)
        if reason:
            return SoftFailure(reason)

        return Success(
            locator=locator,
            model=model,
            content_type=response.headers.get("content-type", ""),
            content=response.content,
        )

    async def _fetch(self, url: str, timeout_seconds: float) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            return await client.get(url)

    def _validate_image(self, model: str, response: httpx.Response) -> str | None:
        content_type = response.headers.get("content-type")
        if not content_type or not content_type.startswith("image/"):
            return f"Model {model} returned non-image content type: {content_type}"
        size = len(response.content)
        if size < self.config.min_image_bytes:
            return f"Model {model} returned small image ({size} bytes, likely rate limit)"
        return None

    def _validate_video(self, model: str, response: httpx.Response) -> str | None:
        size = len(response.content)
        if size < self.config.min_video_bytes:
            return f"Video model {model} returned small file ({size} bytes)"
        return None

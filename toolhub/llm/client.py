"""Single-attempt transport client for text generation.

Architectural role:
    Turns one prompt (or one message list) into exactly one POST against the
    configured completion endpoint and classifies the outcome.

Model invocation flow:
    `complete(prompt, system_prompt, options)` / `chat(messages, options)` ->
    optional connectivity probe -> payload for the configured wire format ->
    one `httpx.AsyncClient.post` -> completion text or classified error.

Retry behavior:
    None. Each call is one attempt; regenerate actions and model fallback are
    the caller's responsibility (see `toolhub.api.http_api`).

Failure classification:
    - Probe reports no network, or the transport raises `httpx.ConnectError`
      / `httpx.ConnectTimeout` -> `OfflineError`.
    - Non-2xx status, other transport errors, or a malformed body ->
      `RemoteFailure`.
    - Empty prompt or message list -> `InvalidRequest` (no network I/O).

Parameter handling:
    `temperature` and `max_tokens` are forwarded verbatim; no clamping.

Determinism:
    Payload construction is deterministic for fixed inputs and configuration.
    Output text is not, since inference runs remotely.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from toolhub.core.errors import InvalidRequest, OfflineError, RemoteFailure
from toolhub.llm.provider_config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    WIRE_PROXY,
    TextClientConfig,
)


logger = logging.getLogger(__name__)

# Transport errors that mean the endpoint could not be reached at all.
CONNECTIVITY_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)

CHAT_ROLES = ("system", "user", "assistant")


def is_connectivity_error(exc: BaseException) -> bool:
    """Return whether a transport exception indicates missing connectivity."""
    return isinstance(exc, CONNECTIVITY_ERRORS)


@dataclass(frozen=True)
class GenerationOptions:
    """Tunable parameters forwarded to the completion endpoint.

    Attributes:
        temperature: Sampling temperature, expected in `[0, 2]`.
        max_tokens: Completion token cap, expected positive.
        model: Overrides the configured default model when set.
    """

    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    model: str | None = None


@dataclass(frozen=True)
class Message:
    role: str
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ConnectivityProbe(Protocol):
    """Pre-flight reachability check consulted before each text request."""

    async def is_online(self) -> bool:
        ...


class HeadProbe:
    """Probe that issues a short HEAD request against a known host.

    Any HTTP answer, whatever its status, counts as online. Only transport
    failures (connect errors, timeouts) count as offline.
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def is_online(self) -> bool:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                await client.head(self.url)
        except httpx.TransportError:
            return False
        return True


class TextGenerationClient:
    """Completion client with offline-aware error classification.

    Interaction with adapters:
        Callers catch `OfflineError` to show a network-specific message and
        any other `GenerationError` for a generic one.
    """

    def __init__(
        self,
        config: TextClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        probe: ConnectivityProbe | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Endpoint/credential settings. Read from the environment
                when omitted.
            transport: Optional `httpx` transport (tests inject
                `httpx.MockTransport`).
            probe: Optional connectivity probe. When omitted and
                `config.connectivity_check` is set, a `HeadProbe` is used.
        """
        self.config = config or TextClientConfig.from_env()
        self._transport = transport
        if probe is None and self.config.connectivity_check:
            probe = HeadProbe(
                self.config.probe_url,
                self.config.probe_timeout_seconds,
                transport=transport,
            )
        self._probe = probe

    async def complete(
        self,
        prompt: str,
        system_prompt: str = "",
        options: GenerationOptions | None = None,
    ) -> str:
        """Send one prompt/system-prompt pair and return the raw completion.

        Args:
            prompt: User prompt. Must contain non-whitespace text.
            system_prompt: Optional system instructions; omitted when empty.
            options: Sampling parameters; defaults when omitted.

        Returns:
            Completion text exactly as returned by the endpoint (untrimmed).

        Raises:
            InvalidRequest: Empty prompt.
            OfflineError: No connectivity.
            RemoteFailure: Error status, transport failure or malformed body.
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidRequest("Prompt must be a non-empty string")
        options = options or GenerationOptions()

        if self.config.wire_format == WIRE_PROXY:
            payload = {
                "prompt": prompt,
                "systemPrompt": system_prompt,
                "options": self._proxy_options(options),
            }
        else:
            messages = []
            if system_prompt:
                messages.append(Message("system", system_prompt))
            messages.append(Message("user", prompt))
            payload = self._openai_payload(messages, options)

        return await self._send(payload)

    async def chat(
        self,
        messages: list[Message],
        options: GenerationOptions | None = None,
        system_prompt: str = "",
    ) -> str:
        """Send a multi-turn conversation as one request.

        Args:
            messages: Conversation turns in order; roles must be `system`,
                `user` or `assistant`.
            options: Sampling parameters.
            system_prompt: Optional system instructions prepended to the turns.

        Returns:
            Completion text for the next assistant turn.
        """
        turns = [m for m in messages if m.content]
        if not turns:
            raise InvalidRequest("At least one non-empty message is required")
        for message in turns:
            if message.role not in CHAT_ROLES:
                raise InvalidRequest(f"Unsupported message role: {message.role}")
        if system_prompt:
            turns.insert(0, Message("system", system_prompt))
        options = options or GenerationOptions()

        if self.config.wire_format == WIRE_PROXY:
            payload = {
                "messages": [m.as_dict() for m in turns],
                "options": self._proxy_options(options),
            }
        else:
            payload = self._openai_payload(turns, options)

        return await self._send(payload)

    def _openai_payload(self, messages: list[Message], options: GenerationOptions) -> dict[str, Any]:
        return {
            "model": options.model or self.config.model,
            "messages": [m.as_dict() for m in messages],
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
        }

    @staticmethod
    def _proxy_options(options: GenerationOptions) -> dict[str, Any]:
        proxy_options: dict[str, Any] = {
            "temperature": options.temperature,
            "maxTokens": options.max_tokens,
        }
        if options.model:
            proxy_options["model"] = options.model
        return proxy_options

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def _send(self, payload: dict[str, Any]) -> str:
        """Execute the single attempt and classify its outcome."""
        if self._probe is not None and not await self._probe.is_online():
            logger.warning("Connectivity probe failed; skipping completion request")
            raise OfflineError("Connectivity probe reported no network")

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.config.api_url,
                    json=payload,
                    headers=self._headers(),
                )
        except CONNECTIVITY_ERRORS as exc:
            logger.warning("Completion endpoint unreachable: %s", type(exc).__name__)
            raise OfflineError() from exc
        except httpx.TimeoutException as exc:
            logger.warning("Completion request timed out after %ss", self.config.timeout_seconds)
            raise RemoteFailure("Request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Completion transport error: %s", type(exc).__name__)
            raise RemoteFailure(f"Transport error: {type(exc).__name__}") from exc

        if not response.is_success:
            detail = _error_detail(response)
            logger.warning("Completion request failed with status %s: %s", response.status_code, detail)
            raise RemoteFailure(detail, status_code=response.status_code)

        return self._parse_text(response)

    def _parse_text(self, response: httpx.Response) -> str:
        content_type = response.headers.get("content-type", "")
        if self.config.wire_format == WIRE_PROXY and not content_type.startswith("application/json"):
            return response.text

        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteFailure("Completion response is not valid JSON") from exc

        try:
            if self.config.wire_format == WIRE_PROXY:
                text = data["content"]
            else:
                text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RemoteFailure("Completion response is missing its text field") from exc

        if text is None:
            return ""
        if not isinstance(text, str):
            raise RemoteFailure("Completion text is not a string")
        return text


def _error_detail(response: httpx.Response) -> str:
    """Extract the provider error message from an error response."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error

    text = response.text.strip()
    if text:
        return text[:200]
    return f"Request failed with status {response.status_code}"

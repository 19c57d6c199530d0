"""
HTTP API adapter for the generation clients.

Architectural role:
- Expose the companion proxy endpoint consumed by clients in `proxy` wire
  format, keeping the upstream API key server-side.
- Expose image/video generation over HTTP.
- Map classified client errors to status codes and user-safe messages.

Endpoint responsibilities:
- `POST /api/ai/groq`: normalize `{prompt, systemPrompt}` or `{messages}`,
  then walk the text model fallback chain, one single-attempt client call
  per model, until one answers.
- `POST /api/ai/image`: run the image cascade and return the locator.
- `POST /api/ai/video`: run the video cascade and return the locator.
- `GET /api/ai/image/status`: report whether media generation is available
  and whether a provider key is configured.

Model fallback (`/api/ai/groq`):
1. With `search: true`, only the search-capable models are tried.
   Otherwise the requested model (if any) comes first, then the configured
   fallback chain.
2. Move to the next model on rate limits (429 or rate/limit wording),
   upstream 5xx, or context-too-long errors. Search calls also move on
   for access issues (401/403/404 or access/availability wording).
3. Any other upstream error is returned as-is with its status.
4. After the last model, answer 503 with the last error.

Input validation behavior:
- Unparseable JSON -> HTTP 400.
- No prompt and no usable messages -> HTTP 400.
- Missing server-side API key -> HTTP 500.
- Image/video bodies are validated by pydantic (HTTP 422).

Error handling strategy:
- `OfflineError` (upstream unreachable) -> HTTP 503 with the offline message.
- `AllProvidersExhausted` -> HTTP 503 with the generic message.
- `InvalidRequest` -> HTTP 400.
- Per-model detail is logged, never returned from the media endpoints.

Side effects:
- Loads environment variables at import time via `load_dotenv()`.
- Emits debug logs only when `DEBUG == "true"`.
"""

from dotenv import load_dotenv

load_dotenv()

import dataclasses
import logging
import os
import re

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from toolhub.core.errors import (
    GenerationError,
    InvalidRequest,
    OfflineError,
    RemoteFailure,
)
from toolhub.image import service as image_service
from toolhub.llm.client import GenerationOptions, Message, TextGenerationClient
from toolhub.llm.provider_config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    TEXT_FALLBACK_CHAIN,
    TEXT_SEARCH_CHAIN,
    WIRE_OPENAI,
    TextClientConfig,
)


logger = logging.getLogger(__name__)

# Sensitive request/response debug logging is opt-in.
DEBUG = os.getenv("DEBUG") == "true"
if DEBUG:
    logging.basicConfig(level=logging.DEBUG)

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

_RATE_LIMIT_PATTERN = re.compile(r"rate|limit", re.IGNORECASE)
_CONTEXT_PATTERN = re.compile(
    r"reduce the length|context|too long|maximum context|token limit",
    re.IGNORECASE,
)
_ACCESS_PATTERN = re.compile(
    r"forbidden|permission|access|not found|decommission|unavailable",
    re.IGNORECASE,
)

STATUS_BY_KIND = {
    "invalid": 400,
    "offline": 503,
    "exhausted": 503,
}


# ============================================================
# Upstream Client
# ============================================================

_UPSTREAM_CLIENT: TextGenerationClient | None = None


def set_upstream_client(client: TextGenerationClient | None) -> None:
    """Override or clear the client the proxy endpoint forwards to."""
    global _UPSTREAM_CLIENT
    _UPSTREAM_CLIENT = client


def get_upstream_client() -> TextGenerationClient:
    """Return the proxy's upstream client, always speaking the OpenAI format."""
    global _UPSTREAM_CLIENT
    if _UPSTREAM_CLIENT is None:
        config = dataclasses.replace(TextClientConfig.from_env(), wire_format=WIRE_OPENAI)
        _UPSTREAM_CLIENT = TextGenerationClient(config)
    return _UPSTREAM_CLIENT


# ============================================================
# Request Helpers
# ============================================================

def normalize_messages(body: dict) -> list[Message]:
    """
    Build the conversation from either `messages` or `prompt`/`systemPrompt`.

    Messages without a role or with non-string/empty content are dropped.
    """
    raw_messages = body.get("messages")
    if isinstance(raw_messages, list) and raw_messages:
        messages = []
        for item in raw_messages:
            if not isinstance(item, dict):
                continue
            role = item.get("role")
            content = item.get("content")
            if role and isinstance(content, str) and content:
                messages.append(Message(role, content))
        return messages

    prompt = body.get("prompt") if isinstance(body.get("prompt"), str) else ""
    system_prompt = body.get("systemPrompt") if isinstance(body.get("systemPrompt"), str) else ""
    messages = []
    if system_prompt:
        messages.append(Message("system", system_prompt))
    if prompt:
        messages.append(Message("user", prompt))
    return messages


def model_sequence(requested: str | None, search: bool = False) -> list[str]:
    """
    Return the models to try, in order.

    Search requests use the search-capable models only and ignore any
    requested model. Otherwise the requested model comes first, followed by
    the fallback chain without duplicates.
    """
    if search:
        return list(TEXT_SEARCH_CHAIN)
    sequence = [requested] if requested else []
    for model in TEXT_FALLBACK_CHAIN:
        if model not in sequence:
            sequence.append(model)
    return sequence


def should_try_next(err: RemoteFailure, search: bool = False) -> bool:
    """Return whether an upstream failure warrants trying the next model."""
    status = err.status_code or 0
    if status == 429 or _RATE_LIMIT_PATTERN.search(err.detail):
        return True
    if status >= 500:
        return True
    # Search models may be gated per account or retired.
    if search and (status in (401, 403, 404) or _ACCESS_PATTERN.search(err.detail)):
        return True
    return status == 413 or bool(_CONTEXT_PATTERN.search(err.detail))


def option_number(value, default):
    """Read a numeric option, treating `None` as absent. Integral values stay int."""
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError("Boolean is not a numeric option")
    number = float(value)
    return int(number) if number.is_integer() else number


def error_response(err: GenerationError) -> JSONResponse:
    status = STATUS_BY_KIND.get(err.kind, 502)
    return JSONResponse(status_code=status, content={"error": err.user_message})


# ============================================================
# Text Proxy
# ============================================================

@app.post("/api/ai/groq")
async def text_proxy(request: Request):
    """
    Proxy one prompt or conversation to the completion endpoint.

    Response formatting:
    - Success: `{"content": <text>, "model": <model>}`.
    - Failure: `{"error": <message>}` (plus `model` for non-retryable errors).
    """
    client = get_upstream_client()
    if not client.config.api_key:
        return JSONResponse(status_code=500, content={"error": "Server is missing GROQ_API_KEY secret."})

    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid JSON request body."})
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"error": "Invalid JSON request body."})

    messages = normalize_messages(body)
    if not messages:
        return JSONResponse(status_code=400, content={"error": "Missing prompt/messages."})

    options = body.get("options") if isinstance(body.get("options"), dict) else {}
    try:
        max_tokens = option_number(options.get("maxTokens"), DEFAULT_MAX_TOKENS)
        temperature = float(option_number(options.get("temperature"), DEFAULT_TEMPERATURE))
    except (TypeError, ValueError):
        return JSONResponse(status_code=400, content={"error": "Invalid generation options."})

    requested = options.get("model")
    if not isinstance(requested, str) or not requested.strip():
        requested = None
    search = bool(body.get("search"))
    last_error = "All models exhausted."

    for model in model_sequence(requested, search):
        if DEBUG:
            logger.debug("Proxy trying model %s", model)
        try:
            content = await client.chat(
                messages,
                GenerationOptions(temperature=temperature, max_tokens=max_tokens, model=model),
            )
        except RemoteFailure as err:
            last_error = err.detail
            if not should_try_next(err, search):
                return JSONResponse(
                    status_code=err.status_code or 502,
                    content={"error": err.detail, "model": model},
                )
            logger.warning("Model %s unavailable (%s), trying next", model, err)
            continue
        except (OfflineError, InvalidRequest) as err:
            return error_response(err)

        return {"content": content, "model": model}

    return JSONResponse(status_code=503, content={"error": last_error})


# ============================================================
# Media Generation
# ============================================================

class ImageBody(BaseModel):
    prompt: str
    width: int = Field(default=1024, gt=0)
    height: int = Field(default=1024, gt=0)
    seed: int | None = None


class VideoBody(BaseModel):
    prompt: str


def _media_payload(result) -> dict:
    return {
        "url": result.url,
        "model": result.model,
        "seed": result.seed,
        "contentType": result.content_type,
    }


@app.post("/api/ai/image")
async def image_generation(body: ImageBody):
    """Run the image cascade; only the final outcome reaches the caller."""
    try:
        result = await image_service.generate_image(
            body.prompt, width=body.width, height=body.height, seed=body.seed
        )
    except GenerationError as err:
        logger.warning("Image generation failed: %s", err)
        return error_response(err)
    return _media_payload(result)


@app.post("/api/ai/video")
async def video_generation(body: VideoBody):
    try:
        result = await image_service.generate_video(body.prompt)
    except GenerationError as err:
        logger.warning("Video generation failed: %s", err)
        return error_response(err)
    return _media_payload(result)


@app.get("/api/ai/image/status")
async def image_status():
    return {
        "configured": image_service.is_configured(),
        "hasApiKey": image_service.has_api_key(),
    }

"""Provider/runtime configuration for the generation clients.

Architectural role:
    Centralizes endpoint, model-ranking and credential settings for
    `toolhub.llm.client` and `toolhub.image.client`. Clients never read the
    environment themselves; they receive one of the frozen configuration
    objects below at construction.

Configuration flow:
    - `.env` is loaded at import time via `load_dotenv()`.
    - `TextClientConfig.from_env()` / `ImageClientConfig.from_env()` snapshot
      the environment into an immutable object.
    - Tests and embedders construct the dataclasses directly.

Determinism:
    Deterministic for a fixed process environment. Absent API keys are a valid
    configuration (unauthenticated calls).
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


# Text completion endpoints keyed by wire format.
TEXT_API_URL = "https://api.groq.com/openai/v1/chat/completions"
CONNECTIVITY_PROBE_URL = "https://api.groq.com"

WIRE_OPENAI = "openai"
WIRE_PROXY = "proxy"
WIRE_FORMATS = (WIRE_OPENAI, WIRE_PROXY)

# Completion models ranked by daily request capacity.
TEXT_MODELS = {
    "primary": "llama-3.1-8b-instant",
    "secondary": "allam-2-7b",
    "tertiary": "moonshotai/kimi-k2-instruct",
    "versatile": "llama-3.3-70b-versatile",
    "scout": "meta-llama/llama-4-scout-17b-16e-instruct",
    "creative": "meta-llama/llama-4-maverick-17b-128e-instruct",
    "search": "groq/compound",
    "searchMini": "groq/compound-mini",
}

TEXT_FALLBACK_CHAIN = (
    TEXT_MODELS["primary"],
    TEXT_MODELS["secondary"],
    TEXT_MODELS["tertiary"],
    TEXT_MODELS["versatile"],
    TEXT_MODELS["scout"],
    TEXT_MODELS["creative"],
)

# Web-search capable models, used only when a caller asks for search.
TEXT_SEARCH_CHAIN = (
    TEXT_MODELS["search"],
    TEXT_MODELS["searchMini"],
)

DEFAULT_TEXT_MODEL = TEXT_MODELS["primary"]
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1024


# Image models ranked best-quality-first; free tiers before credit-only ones.
IMAGE_HOST = "gen.pollinations.ai"

IMAGE_MODELS = (
    "flux",
    "turbo",
    "klein",
    "klein-large",
    "gptimage",
    "gptimage-large",
    "seedream",
    "kontext",
    "zimage",
    "nanobanana",
    "seedream-pro",
    "nanobanana-pro",
)

VIDEO_MODELS = (
    "wan",
    "seedance",
    "seedance-pro",
    "veo",
)

IMAGE_TIMEOUT_MS = 90_000
VIDEO_TIMEOUT_MS = 120_000
MIN_VIDEO_BYTES = 50_000
MAX_SEED = 1_000_000


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or default


def load_key(name: str) -> str | None:
    """Return a stripped API key from the environment, or `None` when unset."""
    value = os.getenv(name, "").strip()
    return value or None


@dataclass(frozen=True)
class TextClientConfig:
    """Settings for `TextGenerationClient`.

    Relevant environment variables:
        - `GROQ_API_KEY`
        - `TEXT_API_URL`
        - `TEXT_WIRE_FORMAT` (`openai` or `proxy`)
        - `TEXT_MODEL`
        - `TEXT_TIMEOUT_SECONDS`
        - `CONNECTIVITY_CHECK`
    """

    api_url: str = TEXT_API_URL
    api_key: str | None = None
    wire_format: str = WIRE_OPENAI
    model: str = DEFAULT_TEXT_MODEL
    timeout_seconds: float = 60.0
    connectivity_check: bool = False
    probe_url: str = CONNECTIVITY_PROBE_URL
    probe_timeout_seconds: float = 5.0

    def __post_init__(self):
        if self.wire_format not in WIRE_FORMATS:
            raise ValueError(f"Unknown wire format: {self.wire_format}")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    @classmethod
    def from_env(cls) -> "TextClientConfig":
        return cls(
            api_url=os.getenv("TEXT_API_URL", TEXT_API_URL).strip(),
            api_key=load_key("GROQ_API_KEY"),
            wire_format=os.getenv("TEXT_WIRE_FORMAT", WIRE_OPENAI).strip().lower(),
            model=os.getenv("TEXT_MODEL", DEFAULT_TEXT_MODEL).strip(),
            timeout_seconds=float(os.getenv("TEXT_TIMEOUT_SECONDS", "60")),
            connectivity_check=_env_flag("CONNECTIVITY_CHECK"),
        )


@dataclass(frozen=True)
class ImageClientConfig:
    """Settings for `ImageGenerationClient`.

    Attributes:
        api_key: Optional provider key appended to every attempt as `key=`.
        candidates: Image model identifiers in priority order.
        per_attempt_timeout_ms: Budget for one image attempt.
        host: Provider host used to build attempt URLs.
        min_image_bytes: Bodies smaller than this are rejected as rate-limit
            placeholders. `0` disables the check.
        video_candidates: Video model identifiers in priority order.
        video_timeout_ms: Budget for one video attempt.
        min_video_bytes: Minimum accepted video body size.

    Relevant environment variables:
        - `POLLINATIONS_API_KEY`
        - `IMAGE_HOST`
        - `IMAGE_MODELS` (comma separated)
        - `IMAGE_TIMEOUT_MS`
        - `IMAGE_MIN_BYTES`
    """

    api_key: str | None = None
    candidates: tuple[str, ...] = IMAGE_MODELS
    per_attempt_timeout_ms: int = IMAGE_TIMEOUT_MS
    host: str = IMAGE_HOST
    min_image_bytes: int = 0
    video_candidates: tuple[str, ...] = VIDEO_MODELS
    video_timeout_ms: int = VIDEO_TIMEOUT_MS
    min_video_bytes: int = MIN_VIDEO_BYTES

    def __post_init__(self):
        # Lists are accepted for convenience but stored as tuples.
        object.__setattr__(self, "candidates", tuple(self.candidates))
        object.__setattr__(self, "video_candidates", tuple(self.video_candidates))
        if not self.candidates:
            raise ValueError("At least one image candidate is required")
        if self.per_attempt_timeout_ms <= 0 or self.video_timeout_ms <= 0:
            raise ValueError("Per-attempt timeouts must be positive")

    @classmethod
    def from_env(cls) -> "ImageClientConfig":
        return cls(
            api_key=load_key("POLLINATIONS_API_KEY"),
            candidates=_env_list("IMAGE_MODELS", IMAGE_MODELS),
            per_attempt_timeout_ms=int(os.getenv("IMAGE_TIMEOUT_MS", str(IMAGE_TIMEOUT_MS))),
            host=os.getenv("IMAGE_HOST", IMAGE_HOST).strip(),
            min_image_bytes=int(os.getenv("IMAGE_MIN_BYTES", "0")),
        )

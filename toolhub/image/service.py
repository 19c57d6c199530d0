"""Image service facade used by adapters.

Role in pipeline:
    - Holds a lazily created default `ImageGenerationClient` built from the
      environment.
    - Exposes module-level `generate_image` / `generate_video` coroutines so
      adapters do not manage client construction.

Error handling strategy:
    Client exceptions are propagated unchanged; adapters map them to
    user-facing messages.

Determinism:
    Thin dispatch layer. Output depends on the remote providers.
"""

from toolhub.image.client import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    GeneratedImage,
    ImageGenerationClient,
)


_DEFAULT_CLIENT: ImageGenerationClient | None = None


def set_default_client(client: ImageGenerationClient | None) -> None:
    """Override or clear the client used by the module-level coroutines."""
    global _DEFAULT_CLIENT
    _DEFAULT_CLIENT = client


def get_default_client() -> ImageGenerationClient:
    global _DEFAULT_CLIENT
    if _DEFAULT_CLIENT is None:
        _DEFAULT_CLIENT = ImageGenerationClient()
    return _DEFAULT_CLIENT


async def generate_image(
    prompt: str,
    width: int = DEFAULT_WIDTH,
    height: int = DEFAULT_HEIGHT,
    seed: int | None = None,
) -> GeneratedImage:
    """Generate an image via the default client."""
    return await get_default_client().generate_image(prompt, width=width, height=height, seed=seed)


async def generate_video(prompt: str) -> GeneratedImage:
    """Generate a video clip via the default client."""
    return await get_default_client().generate_video(prompt)


def is_configured() -> bool:
    # Unauthenticated access is always available.
    return True


def has_api_key() -> bool:
    return get_default_client().has_api_key

"""Task-level text generation helpers built on `TextGenerationClient`.

Architectural role:
    Canonical entrypoints used by tool screens and adapters. Each helper owns
    its prompt wording and sampling parameters, calls `complete` once and
    post-processes the raw text.

Model call flow:
    helper -> prompt/system-prompt construction -> `client.complete(...)` ->
    trimming or structured extraction.

Structured output:
    Name generators ask for a JSON array and extract it with
    `extract_json_array`. Malformed output yields `None` instead of an
    exception; the screen shows "no results" rather than an error.

Failure scenarios:
    Client errors (`OfflineError`, `RemoteFailure`, `InvalidRequest`) are
    propagated unchanged so adapters can choose the message.
"""

import json
import re
from typing import Any

from toolhub.llm.client import GenerationOptions, TextGenerationClient


_DEFAULT_CLIENT: TextGenerationClient | None = None

_JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")

SUMMARY_STYLES = {
    "concise": "Provide a brief 2-3 sentence summary.",
    "detailed": "Provide a comprehensive summary covering all key points.",
    "bullets": "Provide a summary as bullet points.",
}

PARAGRAPH_LENGTHS = {
    "short": "50-75 words",
    "medium": "100-150 words",
    "long": "200-300 words",
}

NAME_PROMPTS = {
    "pet": 'Generate {count} creative {pet_type} names. Return JSON array: [{{"name": "Name", "personality": "trait"}}]',
    "username": 'Generate {count} unique username ideas{keywords_part}. Return JSON array: [{{"username": "name123", "style": "type"}}]',
    "character": 'Generate {count} fictional character names for a {genre} story. Return JSON array: [{{"name": "Name", "background": "brief background"}}]',
    "team": 'Generate {count} team/group names for {purpose}. Return JSON array: [{{"name": "TeamName", "meaning": "why it works"}}]',
}


def set_default_client(client: TextGenerationClient | None) -> None:
    """Override or clear the client used when helpers get no explicit one."""
    global _DEFAULT_CLIENT
    _DEFAULT_CLIENT = client


def get_default_client() -> TextGenerationClient:
    """Return the cached default client, creating it from the environment."""
    global _DEFAULT_CLIENT
    if _DEFAULT_CLIENT is None:
        _DEFAULT_CLIENT = TextGenerationClient()
    return _DEFAULT_CLIENT


def extract_json_array(text: str) -> list[Any] | None:
    """Best-effort extraction of the outermost JSON array in model output.

    Returns:
        The parsed list, or `None` when no parseable array is present.
    """
    if not text:
        return None
    match = _JSON_ARRAY_PATTERN.search(text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, list):
        return None
    return parsed


async def summarize_text(
    text: str,
    style: str = "concise",
    client: TextGenerationClient | None = None,
) -> str:
    client = client or get_default_client()
    instruction = SUMMARY_STYLES.get(style, SUMMARY_STYLES["concise"])
    prompt = f'Summarize the following text:\n\n"{text}"\n\n{instruction}'
    system_prompt = "You are an expert summarizer. Be accurate and capture the essence of the text."
    response = await client.complete(
        prompt, system_prompt, GenerationOptions(temperature=0.3, max_tokens=500)
    )
    return response.strip()


async def generate_paragraph(
    topic: str,
    tone: str = "professional",
    length: str = "medium",
    client: TextGenerationClient | None = None,
) -> str:
    client = client or get_default_client()
    words = PARAGRAPH_LENGTHS.get(length, PARAGRAPH_LENGTHS["medium"])
    prompt = (
        f'Write a {tone} paragraph about: "{topic}"\n\n'
        f"Length: approximately {words}.\n"
        "Make it engaging, informative, and well-written."
    )
    system_prompt = f"You are an expert content writer. Write in a {tone} tone."
    response = await client.complete(
        prompt, system_prompt, GenerationOptions(temperature=0.7, max_tokens=500)
    )
    return response.strip()


async def translate_text(
    text: str,
    target_language: str,
    client: TextGenerationClient | None = None,
) -> str:
    client = client or get_default_client()
    prompt = (
        f'Translate the following text to {target_language}:\n\n"{text}"\n\n'
        "Provide only the translation, no explanations."
    )
    system_prompt = "You are an expert translator. Provide accurate, natural-sounding translations."
    response = await client.complete(
        prompt, system_prompt, GenerationOptions(temperature=0.3, max_tokens=1000)
    )
    return response.strip()


async def improve_text(
    text: str,
    style: str = "professional",
    client: TextGenerationClient | None = None,
) -> str:
    client = client or get_default_client()
    prompt = (
        f'Improve and rewrite the following text to make it more {style}:\n\n"{text}"\n\n'
        "Keep the same meaning but improve clarity, grammar, and flow."
    )
    system_prompt = "You are an expert editor. Improve text while maintaining its original meaning."
    response = await client.complete(
        prompt, system_prompt, GenerationOptions(temperature=0.5, max_tokens=1000)
    )
    return response.strip()


async def generate_baby_names(
    gender: str,
    style: str,
    starts_with: str = "",
    count: int = 6,
    client: TextGenerationClient | None = None,
) -> list[Any] | None:
    """Generate baby names as `[{"name", "meaning", "origin"}]`, or `None`."""
    client = client or get_default_client()
    if gender == "any":
        gender_text = "both boy and girl"
    elif gender == "male":
        gender_text = "boy"
    else:
        gender_text = "girl"
    starts_with_text = f' that start with "{starts_with}"' if starts_with else ""

    prompt = (
        f"Generate {count} unique and creative {gender_text} baby names{starts_with_text}.\n"
        f"Style preference: {style} (modern = trendy 2020s names, classic = timeless "
        "traditional names, unique = rare/unusual names).\n\n"
        "Return ONLY a JSON array of objects with this exact format, no other text:\n"
        '[{"name": "Name1", "meaning": "brief meaning", "origin": "origin"}, ...]'
    )
    system_prompt = (
        "You are a helpful baby name expert. Always respond with valid JSON only, "
        "no markdown or explanations."
    )
    response = await client.complete(
        prompt, system_prompt, GenerationOptions(temperature=0.9, max_tokens=500)
    )
    return extract_json_array(response)


async def generate_business_names(
    industry: str,
    keywords: str = "",
    style: str = "modern",
    count: int = 6,
    client: TextGenerationClient | None = None,
) -> list[Any] | None:
    """Generate brand names as `[{"name", "tagline", "available"}]`, or `None`."""
    client = client or get_default_client()
    keywords_line = f"Keywords to incorporate: {keywords}\n" if keywords else ""
    prompt = (
        f"Generate {count} creative and memorable business/brand names for a {industry} company.\n"
        f"{keywords_line}"
        f"Style: {style}\n\n"
        "Return ONLY a JSON array with this format, no other text:\n"
        '[{"name": "BrandName", "tagline": "short catchy tagline", "available": true}]'
    )
    system_prompt = (
        "You are a branding expert. Generate catchy, memorable, and unique business names. "
        "Always respond with valid JSON only."
    )
    response = await client.complete(
        prompt, system_prompt, GenerationOptions(temperature=0.9, max_tokens=500)
    )
    return extract_json_array(response)


async def generate_names(
    kind: str,
    count: int = 6,
    pet_type: str = "pet",
    keywords: str = "",
    genre: str = "fantasy",
    purpose: str = "sports",
    client: TextGenerationClient | None = None,
) -> list[Any] | None:
    """Generate pet, username, character or team names.

    Unknown kinds fall back to pet names.
    """
    client = client or get_default_client()
    template = NAME_PROMPTS.get(kind, NAME_PROMPTS["pet"])
    prompt = template.format(
        count=count,
        pet_type=pet_type,
        keywords_part=f" related to: {keywords}" if keywords else "",
        genre=genre,
        purpose=purpose,
    )
    system_prompt = "You are a creative naming expert. Always respond with valid JSON only."
    response = await client.complete(
        prompt, system_prompt, GenerationOptions(temperature=0.9, max_tokens=400)
    )
    return extract_json_array(response)


def history_summary(tool_name: str, detail: str = "", limit: int = 60) -> str:
    """Build the short human-readable result line stored in usage history."""
    summary = f"{detail} generated" if detail else f"{tool_name} result generated"
    if len(summary) > limit:
        return summary[: limit - 3].rstrip() + "..."
    return summary

"""
Interactive terminal adapter for the generation clients.

Architectural role:
- Provides terminal interaction over the text and image clients.
- Records one history entry per successful generation.
- Renders classified failures with user-safe messages only.

Request lifecycle (per user turn):
1. Read a single line from stdin.
2. Handle local control commands (`exit`/`quit`, `/history`, `/clear`).
3. `/image <prompt>` and `/video <prompt>` go to the media cascade.
4. Any other line goes to the text client as one completion request.
5. Print the result, or the error's `user_message`.

Error handling strategy:
- `GenerationError` subclasses are rendered through `GenerationResult`.
- Unexpected exceptions are logged and rendered as a generic failure.
- EOF and keyboard interrupts end the loop without traceback output.

Side effects:
- Writes to stdout; keeps history in process memory only.
"""

from dotenv import load_dotenv

load_dotenv()

import asyncio
import logging
import sys

from toolhub.core.errors import GenerationError
from toolhub.core.history import HistoryEntry, HistoryStore, InMemoryHistory
from toolhub.core.outcomes import GenerationResult
from toolhub.image.client import ImageGenerationClient
from toolhub.llm.client import GenerationOptions, TextGenerationClient
from toolhub.llm.service import history_summary


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful assistant. Be concise and clear."
IMAGE_COMMAND = "/image "
VIDEO_COMMAND = "/video "


# =========================================================
# UTF-8 SAFE OUTPUT
# =========================================================

if hasattr(sys.stdout, "reconfigure"):
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="ignore")
    except (AttributeError, ValueError):
        pass


# =========================================================
# TURN HANDLING
# =========================================================

def _record(history: HistoryStore, path: str, name: str, detail: str) -> None:
    history.add(HistoryEntry(path, name, history_summary(name, detail)))


async def run_turn(
    line: str,
    text_client: TextGenerationClient,
    image_client: ImageGenerationClient,
    history: HistoryStore,
) -> GenerationResult:
    """
    Execute one user turn and return its adapter-level result.

    History:
    - Successful turns append an `ai` entry with a short summary.
    """
    try:
        if line.startswith(IMAGE_COMMAND):
            prompt = line[len(IMAGE_COMMAND):].strip()
            image = await image_client.generate_image(prompt)
            _record(history, "/ai-image-generator", "AI Image Generator", "Image")
            return GenerationResult.success(image.url)

        if line.startswith(VIDEO_COMMAND):
            prompt = line[len(VIDEO_COMMAND):].strip()
            video = await image_client.generate_video(prompt)
            _record(history, "/ai-video-generator", "AI Video Generator", "Video")
            return GenerationResult.success(video.url)

        text = await text_client.complete(line, SYSTEM_PROMPT, GenerationOptions())
        _record(history, "/ai-assistant", "AI Assistant", "Answer")
        return GenerationResult.success(text.strip())

    except GenerationError as err:
        logger.info("Generation failed: %s", err)
        return GenerationResult.from_error(err)

    except Exception as err:
        logger.exception("Unexpected generation failure")
        return GenerationResult.from_error(err)


def render(result: GenerationResult) -> str:
    if result.ok:
        return result.value or ""
    return result.message or ""


# =========================================================
# MAIN
# =========================================================

def main():
    """
    Run the interactive terminal session.

    Control commands:
    - `exit` / `quit`: end the session.
    - `/history`: list recorded generations, newest first.
    - `/clear`: drop recorded history.
    """
    text_client = TextGenerationClient()
    image_client = ImageGenerationClient()
    history = InMemoryHistory()

    print("Tool hub assistant started. (Type 'exit' to quit)")
    print("Commands: /image <prompt>, /video <prompt>, /history, /clear\n")
    print("-" * 60)

    while True:

        try:
            line = input("Prompt: ").strip()

        except EOFError:
            print("\nSession ended.")
            break

        except KeyboardInterrupt:
            print("\nInterrupted.")
            break

        if not line:
            continue

        if line.lower() in ("exit", "quit"):
            print("Shutting down.")
            break

        if line.lower() == "/history":
            entries = history.entries()
            if not entries:
                print("\nNo history yet.\n")
            for entry in entries:
                print(f"- {entry.name}: {entry.result}")
            continue

        if line.lower() == "/clear":
            history.clear()
            print("History cleared.")
            continue

        print("\nResponse:\n")
        result = asyncio.run(run_turn(line, text_client, image_client, history))
        print(render(result))
        print("\n" + "-" * 60 + "\n")


if __name__ == "__main__":
    main()

"""Generation trigger: main entry point for the story pipeline.

Usage:
    python -m lingodaily.build [--date YYYY-MM-DD] [--wait]
    python -m lingodaily.build --show LANGUAGE LEVEL [--date YYYY-MM-DD]

Environment variables:
    OPENAI_API_KEY (required)
    LLM_MODEL (default gpt-4o-mini)
    STORIES_DIR (default stories)
    DAYS_AHEAD (default 1: today and tomorrow)
    STRUCTURED_OUTPUT (default 1; 0 asks for plain JSON text instead of a tool call)
    HTTP_TIMEOUT (default 60 seconds)
"""

import argparse
import asyncio
import logging
import os
from datetime import date

from lingodaily.client import GenerationClient
from lingodaily.errors import ExtractionError, StoryNotFound
from lingodaily.models import StoryContent
from lingodaily.orchestrator import Orchestrator
from lingodaily.store import StoryStore

logger = logging.getLogger(__name__)


def get_config() -> dict:
    """Read configuration from environment variables."""
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is required")
    return {
        "api_key": api_key,
        "llm_model": os.environ.get("LLM_MODEL", "gpt-4o-mini"),
        "stories_dir": os.environ.get("STORIES_DIR", "stories"),
        "days_ahead": int(os.environ.get("DAYS_AHEAD", "1")),
        "structured": os.environ.get("STRUCTURED_OUTPUT", "1") != "0",
        "http_timeout": float(os.environ.get("HTTP_TIMEOUT", "60")),
    }


def build_orchestrator(config: dict) -> Orchestrator:
    client = GenerationClient(
        api_key=config["api_key"],
        model=config["llm_model"],
        structured=config["structured"],
        timeout=config["http_timeout"],
    )
    return Orchestrator(
        client=client,
        store=StoryStore(config["stories_dir"]),
        days_ahead=config["days_ahead"],
    )


def format_story(story: StoryContent) -> str:
    lines = [story.title, ""]
    lines += [f"{m.sender}: {m.text}" for m in story.messages]
    for number, q in enumerate(story.questions, start=1):
        lines += ["", f"{number}. {q.question}"]
        lines += [
            f"   {'*' if i == q.correct_answer else ' '} {option}"
            for i, option in enumerate(q.options)
        ]
    return "\n".join(lines)


async def run(config: dict, day: date | None = None, wait: bool = False) -> list[str]:
    """Trigger generation; with ``wait``, block until the new batch ends and drain it."""
    orchestrator = build_orchestrator(config)
    report = await orchestrator.trigger(day)
    lines = report.lines()

    batch_id = report.submitted_batch_id or report.in_progress_batch_id
    if wait and batch_id:
        logger.info("Waiting for batch %s...", batch_id)
        info = await orchestrator.client.wait_for_batch(batch_id)
        drained = await orchestrator.drain_batch(info)
        lines.append(
            f"Batch {batch_id} {info.provider_status}: "
            f"{drained.written} stories written, {drained.errors} error(s)"
        )
    return lines


def show(stories_dir: str, day: date, language: str, level: str) -> str:
    store = StoryStore(stories_dir)
    try:
        return format_story(store.read(day, language, level))
    except StoryNotFound:
        return f"No {level.upper()} {language.capitalize()} story generated yet for {day.isoformat()}."
    except ExtractionError as e:
        logger.error("%s", e)
        return f"Stored {level.upper()} {language.capitalize()} story for {day.isoformat()} is invalid."


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate daily language-learning stories")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Date to generate for (default: today)",
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Block until the submitted batch finishes, then store its results",
    )
    parser.add_argument(
        "--show",
        nargs=2,
        metavar=("LANGUAGE", "LEVEL"),
        help="Print a stored story instead of generating",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = parse_args(argv)
    if args.show:
        language, level = args.show
        stories_dir = os.environ.get("STORIES_DIR", "stories")
        print(show(stories_dir, args.date or date.today(), language, level))
        return

    config = get_config()
    for line in asyncio.run(run(config, args.date, args.wait)):
        print(line)


if __name__ == "__main__":
    main()

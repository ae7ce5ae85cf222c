"""Date-partitioned file cache of generated stories.

Layout: <root>/<YYYY>/<MM>/<DD>/<language>/<level>/story.json, with language and
level lowercased. A stored story is never overwritten.
"""

import json
import logging
import os
import tempfile
from datetime import date
from pathlib import Path

from pydantic import ValidationError

from lingodaily.errors import ExtractionError, StoryNotFound
from lingodaily.models import ALL_LEVELS, SUPPORTED_LANGUAGES, StoryContent

logger = logging.getLogger(__name__)

STORY_FILENAME = "story.json"


class StoryStore:
    def __init__(
        self,
        root: Path | str,
        probe_language: str = SUPPORTED_LANGUAGES[0],
        probe_level: str = ALL_LEVELS[0],
    ):
        self.root = Path(root)
        self.probe_language = probe_language
        self.probe_level = probe_level

    def path_for(self, day: date, language: str, level: str) -> Path:
        return (
            self.root
            / f"{day.year:04d}"
            / f"{day.month:02d}"
            / f"{day.day:02d}"
            / language.lower()
            / level.lower()
            / STORY_FILENAME
        )

    def story_exists(self, day: date, language: str, level: str) -> bool:
        return self.path_for(day, language, level).is_file()

    def exists(self, day: date) -> bool:
        """Whether the stories for a date have been written.

        Only the probe language and level are checked; a hit stands in for the
        whole date.
        """
        return self.story_exists(day, self.probe_language, self.probe_level)

    def write(
        self, day: date, language: str, level: str, content: StoryContent
    ) -> bool:
        """Write a story atomically. Returns False if one is already stored."""
        path = self.path_for(day, language, level)
        if path.exists():
            logger.info("Story already stored at %s, not overwriting", path)
            return False

        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=".story-", suffix=".json.tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(content.to_dict(), f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("Saved story to %s", path)
        return True

    def read(self, day: date, language: str, level: str) -> StoryContent:
        path = self.path_for(day, language, level)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise StoryNotFound(
                f"No {level.upper()} story in {language} for {day.isoformat()}"
            ) from e
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Stored story {path} is not valid JSON: {e}") from e

        try:
            story = StoryContent.model_validate(data)
        except ValidationError as e:
            raise ExtractionError(f"Stored story {path} does not match schema: {e}") from e
        logger.debug("Loaded story from %s", path)
        return story

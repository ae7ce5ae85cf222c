from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from lingodaily.errors import InvalidIdentifier

SUPPORTED_LANGUAGES = [
    "English",
    "Spanish",
    "French",
    "German",
    "Italian",
    "Portuguese",
    "Chinese",
    "Japanese",
]
EARLY_LEVELS = ["A1", "A2"]
INTERMEDIATE_LEVELS = ["B1", "B2"]
ALL_LEVELS = EARLY_LEVELS + INTERMEDIATE_LEVELS

QUESTION_COUNT = 3
OPTION_COUNT = 4


class Message(BaseModel):
    text: str
    sender: str


class Question(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str
    options: list[str] = Field(min_length=OPTION_COUNT, max_length=OPTION_COUNT)
    correct_answer: int = Field(alias="correctAnswer", ge=0, le=OPTION_COUNT - 1)


class StoryContent(BaseModel):
    """A dialogue with its comprehension quiz.

    Every level uses the same turn-based shape. Level-specific minimum turn
    counts are checked by the extractor, which knows the level.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str
    messages: list[Message] = Field(min_length=10)
    questions: list[Question] = Field(
        min_length=QUESTION_COUNT, max_length=QUESTION_COUNT
    )

    def to_dict(self) -> dict:
        """Serialize with the camelCase keys used on disk."""
        return self.model_dump(by_alias=True)


class BatchStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    ENDED = "ended"
    CANCELING = "canceling"


class OutcomeType(str, Enum):
    SUCCEEDED = "succeeded"
    ERRORED = "errored"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    language: str
    level: str
    theme: str
    date: date

    @property
    def custom_id(self) -> str:
        return custom_id(self.date, self.language, self.level)


@dataclass(frozen=True, slots=True)
class BatchInfo:
    id: str
    status: BatchStatus
    provider_status: str
    output_file_id: str | None = None
    error_file_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def dates(self) -> list[date]:
        """Target dates recorded in the batch metadata at submission.

        Entries that are not YYYYMMDD dates are ignored.
        """
        days = []
        for part in self.metadata.get("dates", "").split(","):
            try:
                days.append(datetime.strptime(part, "%Y%m%d").date())
            except ValueError:
                continue
        return days


@dataclass(frozen=True, slots=True)
class BatchOutcome:
    custom_id: str
    type: OutcomeType
    body: dict | None = None
    error: str | None = None


def custom_id(day: date, language: str, level: str) -> str:
    """Composite identifier for one batch sub-request: YYYYMMDD-language-level."""
    return f"{day:%Y%m%d}-{language.lower()}-{level.lower()}"


def parse_custom_id(value: str) -> tuple[date, str, str]:
    """Recover (date, language, level) from a composite identifier.

    Language and level are returned lowercase, as they appear in store paths.
    """
    parts = value.split("-")
    if len(parts) != 3 or not all(parts):
        raise InvalidIdentifier(f"Invalid custom_id format: {value!r}")
    date_str, language, level = parts
    if len(date_str) != 8 or not date_str.isdigit():
        raise InvalidIdentifier(f"Invalid date in custom_id: {value!r}")
    try:
        day = datetime.strptime(date_str, "%Y%m%d").date()
    except ValueError as e:
        raise InvalidIdentifier(f"Invalid date in custom_id: {value!r}") from e
    return day, language, level

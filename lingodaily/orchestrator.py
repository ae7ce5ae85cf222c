"""Batch lifecycle: drain finished batches, guard the in-flight batch, submit new ones.

Each trigger runs Idle -> (drain ended batches) -> (stop if a batch is in
flight) -> (submit one batch for every date missing from the store). Nothing
here waits for the provider to finish a batch; callers trigger again later.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from lingodaily.client import GenerationClient
from lingodaily.errors import ExtractionError, InvalidIdentifier, ProviderError
from lingodaily.extract import extract, extract_from_body
from lingodaily.models import (
    ALL_LEVELS,
    SUPPORTED_LANGUAGES,
    BatchInfo,
    BatchStatus,
    GenerationRequest,
    StoryContent,
    parse_custom_id,
)
from lingodaily.store import StoryStore
from lingodaily.themes import select_themes, theme_for_level

logger = logging.getLogger(__name__)

BATCH_LIST_LIMIT = 10


@dataclass
class DrainResult:
    written: int = 0
    skipped: int = 0
    errors: int = 0


@dataclass
class ProcessResult:
    processed_batch_ids: list[str] = field(default_factory=list)
    errored_batch_ids: list[str] = field(default_factory=list)
    stories_written: int = 0
    item_errors: int = 0


@dataclass
class TriggerReport:
    processing: ProcessResult = field(default_factory=ProcessResult)
    in_progress_batch_id: str | None = None
    existing_dates: list[date] = field(default_factory=list)
    submitted_batch_id: str | None = None
    submitted_dates: list[date] = field(default_factory=list)
    error: str | None = None

    def lines(self) -> list[str]:
        """Human-readable status, one line per fact."""
        out = []
        processing = self.processing
        if processing.processed_batch_ids:
            out.append(
                f"Processed {len(processing.processed_batch_ids)} completed batch(es), "
                f"{processing.stories_written} stories written"
            )
        if processing.item_errors or processing.errored_batch_ids:
            out.append(
                f"Encountered {processing.item_errors + len(processing.errored_batch_ids)} "
                "error(s) while processing batches"
            )
        if self.error:
            out.append(f"Error checking or generating stories: {self.error}")
            return out
        if self.in_progress_batch_id:
            out.append(
                f"Batch {self.in_progress_batch_id} is currently in progress. "
                "Please wait for it to complete before requesting new stories."
            )
            out.append("Trigger again to check for completed batches and process results.")
            return out
        if self.submitted_batch_id:
            days = ", ".join(d.isoformat() for d in self.submitted_dates)
            out.append(f"Batch {self.submitted_batch_id} is processing stories for {days}")
            out.append("Stories will be available once batch processing completes.")
        elif self.existing_dates:
            days = ", ".join(d.isoformat() for d in self.existing_dates)
            out.append(f"Stories for {days} have already been generated.")
        return out


class Orchestrator:
    def __init__(
        self,
        client: GenerationClient,
        store: StoryStore,
        languages: list[str] | None = None,
        levels: list[str] | None = None,
        days_ahead: int = 1,
    ):
        self.client = client
        self.store = store
        self.languages = languages or list(SUPPORTED_LANGUAGES)
        self.levels = levels or list(ALL_LEVELS)
        self.days_ahead = days_ahead

    def build_requests(self, day: date) -> list[GenerationRequest]:
        """One request per (language, level); every language shares the day's themes."""
        themes = select_themes(day)
        logger.info(
            "Selected themes for %s: early=%r, intermediate=%r",
            day.isoformat(),
            themes["early"],
            themes["intermediate"],
        )
        return [
            GenerationRequest(
                language=language,
                level=level,
                theme=theme_for_level(themes, level),
                date=day,
            )
            for language in self.languages
            for level in self.levels
        ]

    async def generate_daily_stories(self, dates: list[date]) -> str:
        """Submit a single batch covering every given date. Returns the batch id."""
        requests = [r for day in dates for r in self.build_requests(day)]
        metadata = {"dates": ",".join(f"{day:%Y%m%d}" for day in dates)}
        batch_id = await self.client.submit_batch(requests, metadata=metadata)
        logger.info(
            "Batch %s submitted for %s; processing will happen asynchronously",
            batch_id,
            ", ".join(d.isoformat() for d in dates),
        )
        return batch_id

    async def check_in_progress_batch(self) -> str | None:
        """Id of a batch still running on the provider, if any."""
        for batch in await self.client.list_batches(limit=BATCH_LIST_LIMIT):
            if batch.status is BatchStatus.IN_PROGRESS:
                return batch.id
        return None

    def _already_stored(self, batch: BatchInfo) -> bool:
        dates = batch.dates
        return bool(dates) and all(self.store.exists(day) for day in dates)

    async def drain_batch(self, batch: BatchInfo) -> DrainResult:
        """Store every extractable outcome of an ended batch.

        Item failures are logged and counted; they never stop the drain.
        """
        result = DrainResult()
        async for outcome in self.client.fetch_results(batch):
            try:
                day, language, level = parse_custom_id(outcome.custom_id)
                if language.capitalize() not in SUPPORTED_LANGUAGES:
                    raise InvalidIdentifier(f"Unknown language in custom_id: {outcome.custom_id!r}")
                if level.upper() not in ALL_LEVELS:
                    raise InvalidIdentifier(f"Unknown level in custom_id: {outcome.custom_id!r}")
            except InvalidIdentifier as e:
                logger.error("Skipping result in batch %s: %s", batch.id, e)
                result.errors += 1
                continue

            try:
                story = extract(outcome, level.upper())
            except ExtractionError as e:
                logger.error(
                    "Failed to generate story for %s: %s", outcome.custom_id, e
                )
                result.errors += 1
                continue

            try:
                written = self.store.write(day, language, level, story)
            except OSError as e:
                logger.error("Failed to store story for %s: %s", outcome.custom_id, e)
                result.errors += 1
                continue
            if written:
                logger.info(
                    "Processed story for %s at %s (%s)", language, level, day.isoformat()
                )
                result.written += 1
            else:
                result.skipped += 1
        return result

    async def process_completed_batches(self) -> ProcessResult:
        """Drain ended batches whose dates are not yet in the store."""
        logger.info("Checking for completed batches to process...")
        batches = await self.client.list_batches(limit=BATCH_LIST_LIMIT)
        completed = [b for b in batches if b.status is BatchStatus.ENDED]
        logger.info("Found %d completed batches", len(completed))

        result = ProcessResult()
        for batch in completed:
            if self._already_stored(batch):
                logger.debug("Stories for batch %s already exist, skipping", batch.id)
                continue
            logger.info("Processing batch %s (%s)", batch.id, batch.provider_status)
            try:
                drained = await self.drain_batch(batch)
            except ProviderError as e:
                logger.error("Error processing batch %s: %s", batch.id, e)
                result.errored_batch_ids.append(batch.id)
                continue
            result.processed_batch_ids.append(batch.id)
            result.stories_written += drained.written
            result.item_errors += drained.errors
            logger.info(
                "Batch %s: %d written, %d already stored, %d errors",
                batch.id,
                drained.written,
                drained.skipped,
                drained.errors,
            )
        return result

    async def trigger(self, today: date | None = None) -> TriggerReport:
        """Run one generation trigger and describe what happened."""
        today = today or date.today()
        report = TriggerReport()

        try:
            report.processing = await self.process_completed_batches()
            in_progress = await self.check_in_progress_batch()
        except ProviderError as e:
            logger.error("Error checking batches: %s", e)
            report.error = str(e)
            return report

        if in_progress:
            logger.info("Batch %s is still in progress, not submitting", in_progress)
            report.in_progress_batch_id = in_progress
            return report

        dates = [today + timedelta(days=i) for i in range(self.days_ahead + 1)]
        missing = []
        for day in dates:
            if self.store.exists(day):
                report.existing_dates.append(day)
            else:
                missing.append(day)
        if not missing:
            return report

        try:
            report.submitted_batch_id = await self.generate_daily_stories(missing)
            report.submitted_dates = missing
        except ProviderError as e:
            logger.error("Error creating batch: %s", e)
            report.error = f"Failed to create batch: {e}"
        return report

    async def generate_on_demand(
        self, day: date, language: str, level: str
    ) -> StoryContent:
        """Generate and store a single story now, bypassing the batch API.

        Returns the stored story if one already exists.
        """
        if self.store.story_exists(day, language, level):
            return self.store.read(day, language, level)

        themes = select_themes(day)
        request = GenerationRequest(
            language=language,
            level=level.upper(),
            theme=theme_for_level(themes, level),
            date=day,
        )
        body = await self.client.create_story(request)
        story = extract_from_body(body, request.level)
        self.store.write(day, language, level, story)
        return story

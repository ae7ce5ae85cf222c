"""OpenAI Batch API wrapper for story generation.

Submission and result retrieval are separate calls so that nothing on the
serving path ever waits for a batch to finish.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Iterable

import httpx
import openai
from openai import AsyncOpenAI

from lingodaily.errors import ProviderError, TransientProviderError
from lingodaily.models import (
    BatchInfo,
    BatchOutcome,
    BatchStatus,
    GenerationRequest,
    OutcomeType,
)
from lingodaily.prompts import (
    STORY_TOOL_NAME,
    SYSTEM_PROMPT,
    build_output_schema,
    build_prompt,
)

logger = logging.getLogger(__name__)

BATCH_PURPOSE = "lingodaily-stories"
BATCH_ENDPOINT = "/v1/chat/completions"
COMPLETION_WINDOW = "24h"
MAX_TOKENS = 4096
POLL_INTERVAL = 5.0

PROVIDER_STATUSES = {
    "validating": BatchStatus.IN_PROGRESS,
    "in_progress": BatchStatus.IN_PROGRESS,
    "finalizing": BatchStatus.IN_PROGRESS,
    "completed": BatchStatus.ENDED,
    "failed": BatchStatus.ENDED,
    "expired": BatchStatus.ENDED,
    "cancelled": BatchStatus.ENDED,
    "cancelling": BatchStatus.CANCELING,
}

# Request-level error codes that mean "never ran" rather than "failed"
NOT_RUN_ERROR_CODES = {"batch_expired", "batch_cancelled"}


def _provider_error(error: openai.APIError) -> ProviderError:
    if isinstance(
        error,
        (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError),
    ):
        return TransientProviderError(str(error))
    return ProviderError(str(error))


def _to_batch_info(batch) -> BatchInfo:
    status = PROVIDER_STATUSES.get(batch.status)
    if status is None:
        logger.warning("Unknown batch status %r for %s", batch.status, batch.id)
        status = BatchStatus.IN_PROGRESS
    return BatchInfo(
        id=batch.id,
        status=status,
        provider_status=batch.status,
        output_file_id=batch.output_file_id,
        error_file_id=batch.error_file_id,
        metadata=dict(batch.metadata or {}),
    )


def parse_result_line(line: str) -> BatchOutcome:
    """Convert one line of a batch output or error file into an outcome."""
    try:
        record = json.loads(line)
    except json.JSONDecodeError as e:
        return BatchOutcome(custom_id="", type=OutcomeType.OTHER, error=f"Unparseable result line: {e}")

    custom_id = record.get("custom_id") or ""
    error = record.get("error")
    if error:
        code = error.get("code") if isinstance(error, dict) else None
        kind = OutcomeType.OTHER if code in NOT_RUN_ERROR_CODES else OutcomeType.ERRORED
        return BatchOutcome(custom_id=custom_id, type=kind, error=json.dumps(error))

    response = record.get("response") or {}
    body = response.get("body")
    if response.get("status_code") != 200:
        detail = body.get("error") if isinstance(body, dict) else body
        return BatchOutcome(
            custom_id=custom_id,
            type=OutcomeType.ERRORED,
            error=f"HTTP {response.get('status_code')}: {json.dumps(detail)}",
        )
    return BatchOutcome(custom_id=custom_id, type=OutcomeType.SUCCEEDED, body=body)


class GenerationClient:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        structured: bool = True,
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ):
        self.model = model
        self.structured = structured
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            timeout=httpx.Timeout(timeout, connect=10.0),
        )

    def request_body(self, request: GenerationRequest) -> dict:
        """Chat completion body for one story request."""
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": build_prompt(
                        request.language,
                        request.level,
                        request.theme,
                        structured=self.structured,
                    ),
                },
            ],
            "max_tokens": MAX_TOKENS,
        }
        if self.structured:
            body["tools"] = [build_output_schema(request.language, request.level)]
            body["tool_choice"] = {
                "type": "function",
                "function": {"name": STORY_TOOL_NAME},
            }
        else:
            body["response_format"] = {"type": "json_object"}
            body["temperature"] = 0.3
        return body

    def build_batch_file(self, requests: Iterable[GenerationRequest]) -> bytes:
        lines = [
            json.dumps(
                {
                    "custom_id": request.custom_id,
                    "method": "POST",
                    "url": BATCH_ENDPOINT,
                    "body": self.request_body(request),
                },
                ensure_ascii=False,
            )
            for request in requests
        ]
        return ("\n".join(lines) + "\n").encode("utf-8")

    async def submit_batch(
        self,
        requests: list[GenerationRequest],
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Upload the requests and create a batch. Returns without waiting."""
        if not requests:
            raise ValueError("Cannot submit an empty batch")
        batch_metadata = {"purpose": BATCH_PURPOSE, **(metadata or {})}

        logger.info("Creating batch with %d requests...", len(requests))
        try:
            upload = await self._client.files.create(
                file=("stories.jsonl", self.build_batch_file(requests)),
                purpose="batch",
            )
            batch = await self._client.batches.create(
                input_file_id=upload.id,
                endpoint=BATCH_ENDPOINT,
                completion_window=COMPLETION_WINDOW,
                metadata=batch_metadata,
            )
        except openai.APIError as e:
            raise _provider_error(e) from e

        logger.info("Batch created with ID: %s", batch.id)
        return batch.id

    async def poll_status(self, batch_id: str) -> BatchInfo:
        try:
            batch = await self._client.batches.retrieve(batch_id)
        except openai.APIError as e:
            raise _provider_error(e) from e
        return _to_batch_info(batch)

    async def list_batches(self, limit: int = 10) -> list[BatchInfo]:
        """Most recent batches created by this application, newest first."""
        try:
            page = await self._client.batches.list(limit=limit)
        except openai.APIError as e:
            raise _provider_error(e) from e
        return [
            _to_batch_info(batch)
            for batch in page.data
            if (batch.metadata or {}).get("purpose") == BATCH_PURPOSE
        ]

    async def _file_lines(self, file_id: str) -> list[str]:
        try:
            content = await self._client.files.content(file_id)
        except openai.APIError as e:
            raise _provider_error(e) from e
        return [line for line in content.text.splitlines() if line.strip()]

    async def fetch_results(self, batch: BatchInfo) -> AsyncIterator[BatchOutcome]:
        """Yield one outcome per sub-request, successes first, then failures."""
        for file_id in (batch.output_file_id, batch.error_file_id):
            if not file_id:
                continue
            for line in await self._file_lines(file_id):
                yield parse_result_line(line)

    async def wait_for_batch(
        self, batch_id: str, poll_interval: float = POLL_INTERVAL
    ) -> BatchInfo:
        """Poll until the batch leaves in_progress. There is no timeout."""
        info = await self.poll_status(batch_id)
        while info.status is BatchStatus.IN_PROGRESS:
            await asyncio.sleep(poll_interval)
            info = await self.poll_status(batch_id)
            logger.info("Batch %s status: %s", batch_id, info.provider_status)
        return info

    async def create_story(self, request: GenerationRequest) -> dict:
        """Generate one story directly, outside any batch. Returns the response body."""
        logger.info(
            "Generating story for %s at the %s level...", request.language, request.level
        )
        try:
            response = await self._client.chat.completions.create(**self.request_body(request))
        except openai.APIError as e:
            raise _provider_error(e) from e
        return response.model_dump()

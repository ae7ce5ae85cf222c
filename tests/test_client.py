import json
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from helpers import story_dict, tool_call_body
from lingodaily import client as client_module
from lingodaily.client import BATCH_PURPOSE, GenerationClient, parse_result_line
from lingodaily.errors import ProviderError, TransientProviderError
from lingodaily.models import BatchInfo, BatchStatus, GenerationRequest, OutcomeType

DAY = date(2025, 11, 4)
REQUEST = httpx.Request("POST", "https://api.openai.com/v1/batches")


def _batch(batch_id="batch_1", status="in_progress", purpose=BATCH_PURPOSE, **kwargs):
    return SimpleNamespace(
        id=batch_id,
        status=status,
        output_file_id=kwargs.get("output_file_id"),
        error_file_id=kwargs.get("error_file_id"),
        metadata={"purpose": purpose, "dates": "20251104"} if purpose else None,
    )


def _mock_openai() -> MagicMock:
    api = MagicMock()
    api.files.create = AsyncMock(return_value=SimpleNamespace(id="file_in"))
    api.files.content = AsyncMock()
    api.batches.create = AsyncMock(return_value=_batch())
    api.batches.retrieve = AsyncMock()
    api.batches.list = AsyncMock()
    api.chat.completions.create = AsyncMock()
    return api


def _requests() -> list[GenerationRequest]:
    return [
        GenerationRequest(language=lang, level=level, theme="planning a picnic", date=DAY)
        for lang in ("Spanish", "German")
        for level in ("A1", "B2")
    ]


class TestRequestBody:
    def test_structured_forces_tool_call(self):
        client = GenerationClient(api_key="k", client=_mock_openai())
        body = client.request_body(_requests()[0])
        assert body["model"] == "gpt-4o-mini"
        assert body["messages"][0]["role"] == "system"
        assert "CEFR" in body["messages"][0]["content"]
        assert "planning a picnic" in body["messages"][1]["content"]
        assert body["tools"][0]["function"]["name"] == "create_story"
        assert body["tool_choice"] == {"type": "function", "function": {"name": "create_story"}}
        assert "response_format" not in body

    def test_free_text_uses_json_mode(self):
        client = GenerationClient(api_key="k", structured=False, client=_mock_openai())
        body = client.request_body(_requests()[0])
        assert body["response_format"] == {"type": "json_object"}
        assert "tools" not in body
        assert "correctAnswer" in body["messages"][1]["content"]


class TestSubmitBatch:
    @pytest.mark.asyncio
    async def test_uploads_jsonl_and_creates_batch(self):
        api = _mock_openai()
        client = GenerationClient(api_key="k", client=api)

        batch_id = await client.submit_batch(_requests(), metadata={"dates": "20251104"})

        assert batch_id == "batch_1"
        upload = api.files.create.call_args.kwargs
        assert upload["purpose"] == "batch"
        filename, content = upload["file"]
        lines = [json.loads(line) for line in content.decode("utf-8").splitlines()]
        assert [line["custom_id"] for line in lines] == [
            "20251104-spanish-a1",
            "20251104-spanish-b2",
            "20251104-german-a1",
            "20251104-german-b2",
        ]
        assert all(line["url"] == "/v1/chat/completions" for line in lines)

        create = api.batches.create.call_args.kwargs
        assert create["input_file_id"] == "file_in"
        assert create["completion_window"] == "24h"
        assert create["metadata"] == {"purpose": BATCH_PURPOSE, "dates": "20251104"}

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(self):
        client = GenerationClient(api_key="k", client=_mock_openai())
        with pytest.raises(ValueError):
            await client.submit_batch([])

    @pytest.mark.asyncio
    async def test_rate_limit_is_transient(self):
        api = _mock_openai()
        api.batches.create.side_effect = openai.RateLimitError(
            "slow down", response=httpx.Response(429, request=REQUEST), body=None
        )
        client = GenerationClient(api_key="k", client=api)
        with pytest.raises(TransientProviderError):
            await client.submit_batch(_requests())

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self):
        api = _mock_openai()
        api.files.create.side_effect = openai.APIConnectionError(request=REQUEST)
        client = GenerationClient(api_key="k", client=api)
        with pytest.raises(TransientProviderError):
            await client.submit_batch(_requests())

    @pytest.mark.asyncio
    async def test_bad_request_is_not_transient(self):
        api = _mock_openai()
        api.batches.create.side_effect = openai.BadRequestError(
            "bad", response=httpx.Response(400, request=REQUEST), body=None
        )
        client = GenerationClient(api_key="k", client=api)
        with pytest.raises(ProviderError) as excinfo:
            await client.submit_batch(_requests())
        assert not isinstance(excinfo.value, TransientProviderError)


class TestStatus:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "provider_status,expected",
        [
            ("validating", BatchStatus.IN_PROGRESS),
            ("in_progress", BatchStatus.IN_PROGRESS),
            ("finalizing", BatchStatus.IN_PROGRESS),
            ("completed", BatchStatus.ENDED),
            ("failed", BatchStatus.ENDED),
            ("expired", BatchStatus.ENDED),
            ("cancelled", BatchStatus.ENDED),
            ("cancelling", BatchStatus.CANCELING),
        ],
    )
    async def test_poll_status_normalizes(self, provider_status, expected):
        api = _mock_openai()
        api.batches.retrieve.return_value = _batch(status=provider_status)
        client = GenerationClient(api_key="k", client=api)

        info = await client.poll_status("batch_1")

        assert info.status is expected
        assert info.provider_status == provider_status
        assert info.dates == [DAY]

    @pytest.mark.asyncio
    async def test_list_batches_keeps_own_batches(self):
        api = _mock_openai()
        api.batches.list.return_value = SimpleNamespace(
            data=[
                _batch("batch_a", "completed"),
                _batch("batch_b", "in_progress", purpose="someone-else"),
                _batch("batch_c", "in_progress", purpose=None),
                _batch("batch_d", "in_progress"),
            ]
        )
        client = GenerationClient(api_key="k", client=api)

        batches = await client.list_batches(limit=5)

        assert [b.id for b in batches] == ["batch_a", "batch_d"]
        api.batches.list.assert_awaited_once_with(limit=5)

    @pytest.mark.asyncio
    async def test_wait_for_batch_polls_until_done(self, monkeypatch):
        sleep = AsyncMock()
        monkeypatch.setattr(client_module.asyncio, "sleep", sleep)
        api = _mock_openai()
        api.batches.retrieve.side_effect = [
            _batch(status="validating"),
            _batch(status="in_progress"),
            _batch(status="completed", output_file_id="file_out"),
        ]
        client = GenerationClient(api_key="k", client=api)

        info = await client.wait_for_batch("batch_1", poll_interval=0.5)

        assert info.status is BatchStatus.ENDED
        assert info.output_file_id == "file_out"
        assert api.batches.retrieve.await_count == 3
        sleep.assert_awaited_with(0.5)


def _line(custom_id, status_code=200, body=None, error=None) -> str:
    return json.dumps(
        {
            "id": "req_1",
            "custom_id": custom_id,
            "response": None if error else {"status_code": status_code, "body": body},
            "error": error,
        }
    )


class TestParseResultLine:
    def test_success(self):
        body = tool_call_body(story_dict())
        outcome = parse_result_line(_line("20251104-spanish-a1", body=body))
        assert outcome.type is OutcomeType.SUCCEEDED
        assert outcome.custom_id == "20251104-spanish-a1"
        assert outcome.body == body

    def test_http_error(self):
        outcome = parse_result_line(
            _line("20251104-spanish-a1", 500, body={"error": {"message": "boom"}})
        )
        assert outcome.type is OutcomeType.ERRORED
        assert "HTTP 500" in outcome.error
        assert "boom" in outcome.error

    def test_request_error(self):
        outcome = parse_result_line(
            _line("20251104-spanish-a1", error={"code": "server_error", "message": "x"})
        )
        assert outcome.type is OutcomeType.ERRORED

    def test_expired_is_other(self):
        outcome = parse_result_line(
            _line("20251104-spanish-a1", error={"code": "batch_expired", "message": "x"})
        )
        assert outcome.type is OutcomeType.OTHER

    def test_garbage_line(self):
        outcome = parse_result_line("{truncated")
        assert outcome.type is OutcomeType.OTHER
        assert outcome.custom_id == ""


class TestFetchResults:
    @pytest.mark.asyncio
    async def test_reads_output_then_error_file(self):
        api = _mock_openai()
        files = {
            "file_out": _line("20251104-spanish-a1", body=tool_call_body(story_dict())) + "\n",
            "file_err": "\n" + _line("20251104-german-b2", error={"code": "server_error"}) + "\n",
        }
        api.files.content.side_effect = lambda file_id: SimpleNamespace(text=files[file_id])
        client = GenerationClient(api_key="k", client=api)
        batch = BatchInfo(
            id="batch_1",
            status=BatchStatus.ENDED,
            provider_status="completed",
            output_file_id="file_out",
            error_file_id="file_err",
        )

        outcomes = [o async for o in client.fetch_results(batch)]

        assert [(o.custom_id, o.type) for o in outcomes] == [
            ("20251104-spanish-a1", OutcomeType.SUCCEEDED),
            ("20251104-german-b2", OutcomeType.ERRORED),
        ]

    @pytest.mark.asyncio
    async def test_failed_batch_without_files(self):
        api = _mock_openai()
        client = GenerationClient(api_key="k", client=api)
        batch = BatchInfo(id="batch_1", status=BatchStatus.ENDED, provider_status="failed")
        assert [o async for o in client.fetch_results(batch)] == []
        api.files.content.assert_not_awaited()


class TestCreateStory:
    @pytest.mark.asyncio
    async def test_returns_body_dict(self):
        api = _mock_openai()
        body = tool_call_body(story_dict())
        response = MagicMock()
        response.model_dump.return_value = body
        api.chat.completions.create.return_value = response
        client = GenerationClient(api_key="k", model="gpt-4o", client=api)

        result = await client.create_story(_requests()[0])

        assert result == body
        kwargs = api.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["tool_choice"]["function"]["name"] == "create_story"

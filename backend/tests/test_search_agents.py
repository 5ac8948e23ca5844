"""
Fadetrack Backend: AI Search Agent Tests (Mocked)
=================================================

What:  The hosted-workflow agent against an httpx.MockTransport, and the
       Gemini agent with the SDK patched out.

What we test:
    ✅ Workflow run is started, polled while pending, and its text returned
    ✅ Output shapes: string, {"text": ...}, empty → "No results found."
    ✅ A run still pending at the deadline is a timeout failure
    ✅ A slow start call shares that deadline
    ✅ Failed runs and HTTP errors surface as UpstreamServiceError
    ✅ Gemini success, blocked answer and SDK failure
    ❌ Real API calls
"""

import asyncio
import json
import time
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from fadetrack.exceptions import UpstreamServiceError
from fadetrack.services.gemini_service import GeminiChatAgent
from fadetrack.services.search_base import NO_RESULTS
from fadetrack.services.workflow_service import WorkflowSearchAgent, extract_text


def workflow_transport(statuses, output=None, start_status=200):
    """Start a run, then report each status in turn (the last one repeats)."""
    calls = {"start": None, "polls": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            calls["start"] = json.loads(request.content)
            if start_status != 200:
                return httpx.Response(start_status, text="workflow not found")
            return httpx.Response(200, json={"id": "run_1", "status": "queued"})

        index = min(calls["polls"], len(statuses) - 1)
        calls["polls"] += 1
        body = {"id": "run_1", "status": statuses[index]}
        if statuses[index] == "completed":
            body["output"] = output
        return httpx.Response(200, json=body)

    return httpx.MockTransport(handler), calls


def make_agent(transport, timeout=2.0):
    return WorkflowSearchAgent(
        api_key="sk-test",
        workflow_id="wf_123",
        base_url="https://upstream.test/v1",
        timeout=timeout,
        poll_interval=0.01,
        transport=transport,
    )


class TestExtractText:

    def test_string_output(self):
        assert extract_text("  Kim Tran, Austin  ") == "Kim Tran, Austin"

    def test_text_object_output(self):
        assert extract_text({"text": "Lee Park"}) == "Lee Park"

    @pytest.mark.parametrize("output", [None, "", "   ", {"answer": "x"}, ["a"]])
    def test_unusable_output(self, output):
        assert extract_text(output) == NO_RESULTS


class TestWorkflowSearchAgent:

    def test_configured_needs_key_and_workflow(self):
        assert make_agent(None).configured
        assert not WorkflowSearchAgent(api_key="sk", workflow_id="").configured

    @pytest.mark.asyncio
    async def test_polls_until_completed(self):
        transport, calls = workflow_transport(
            ["queued", "running", "completed"], output={"text": "Kim Tran - fades"}
        )

        text = await make_agent(transport).search("fades in Austin")

        assert text == "Kim Tran - fades"
        assert calls["polls"] == 3
        assert calls["start"] == {"workflow_id": "wf_123", "input": {"prompt": "fades in Austin"}}

    @pytest.mark.asyncio
    async def test_empty_output_is_no_results(self):
        transport, _ = workflow_transport(["completed"], output="")
        assert await make_agent(transport).search("anything") == NO_RESULTS

    @pytest.mark.asyncio
    async def test_pending_at_deadline_times_out(self):
        transport, calls = workflow_transport(["running"])

        with pytest.raises(UpstreamServiceError) as exc_info:
            await make_agent(transport, timeout=0.1).search("slow")

        assert "timed out" in exc_info.value.message
        assert exc_info.value.status_code == 500
        assert calls["polls"] >= 2

    @pytest.mark.asyncio
    async def test_slow_start_counts_against_the_deadline(self):
        polls = []

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                await asyncio.sleep(5)
                return httpx.Response(200, json={"id": "run_1", "status": "queued"})
            polls.append(request)
            return httpx.Response(200, json={"id": "run_1", "status": "running"})

        started = time.perf_counter()
        with pytest.raises(UpstreamServiceError) as exc_info:
            await make_agent(httpx.MockTransport(handler), timeout=0.2).search("slow start")

        assert "timed out" in exc_info.value.message
        assert time.perf_counter() - started < 2
        assert polls == []

    @pytest.mark.asyncio
    async def test_failed_run(self):
        transport, _ = workflow_transport(["running", "failed"])

        with pytest.raises(UpstreamServiceError) as exc_info:
            await make_agent(transport).search("x")

        assert exc_info.value.message == "AI search run failed"

    @pytest.mark.asyncio
    async def test_start_rejected(self):
        transport, _ = workflow_transport(["completed"], start_status=404)

        with pytest.raises(UpstreamServiceError) as exc_info:
            await make_agent(transport).search("x")

        assert "Failed to start AI search: 404" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamServiceError):
            await make_agent(httpx.MockTransport(handler)).search("x")


class BlockedResponse:
    @property
    def text(self):
        raise ValueError("response was blocked")


class TestGeminiChatAgent:

    def test_configured_follows_key(self):
        assert GeminiChatAgent(api_key="key").configured
        assert not GeminiChatAgent(api_key="").configured

    @pytest.mark.asyncio
    async def test_search_success(self):
        with patch("fadetrack.services.gemini_service.genai") as mock_genai:
            mock_response = MagicMock()
            mock_response.text = "  Glam by Ana - bridal makeup  "
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(return_value=mock_response)
            mock_genai.GenerativeModel.return_value = mock_model

            agent = GeminiChatAgent(api_key="key", model_name="gemini-test")
            text = await agent.search("bridal makeup in Austin")

            assert text == "Glam by Ana - bridal makeup"
            mock_genai.configure.assert_called_once_with(api_key="key")
            args, kwargs = mock_genai.GenerativeModel.call_args
            assert args == ("gemini-test",)
            assert kwargs["system_instruction"] == GeminiChatAgent.SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_blocked_answer_is_no_results(self):
        with patch("fadetrack.services.gemini_service.genai") as mock_genai:
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(return_value=BlockedResponse())
            mock_genai.GenerativeModel.return_value = mock_model

            assert await GeminiChatAgent(api_key="key").search("x") == NO_RESULTS

    @pytest.mark.asyncio
    async def test_sdk_failure(self):
        with patch("fadetrack.services.gemini_service.genai") as mock_genai:
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(side_effect=RuntimeError("quota exceeded"))
            mock_genai.GenerativeModel.return_value = mock_model

            with pytest.raises(UpstreamServiceError) as exc_info:
                await GeminiChatAgent(api_key="key").search("x")

            assert "quota exceeded" in exc_info.value.message
            assert exc_info.value.context["error_type"] == "RuntimeError"

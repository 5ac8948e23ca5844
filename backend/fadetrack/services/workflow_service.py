"""
Fadetrack Backend: Hosted Workflow Search Agent
===============================================

What:  Runs the configured AI workflow for a query and waits for its output.
How:   One POST starts a run; the run is then fetched every
       `ai_search_poll_interval` seconds while it is queued or running.
       tenacity drives the poll loop: it repeats on a pending *result*
       (never on an exception) and stops after `ai_search_timeout` seconds.
       The same budget bounds the whole search, start call included.

Run lifecycle:
    queued → running → completed | failed | canceled

Output extraction:
    output is a string            → that string
    output is {"text": "<str>"}   → the text
    anything else, or empty       → "No results found."

A run still pending at the deadline is a hard failure; there is no second
attempt.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import httpx
from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_delay, wait_fixed

from fadetrack.config import settings
from fadetrack.exceptions import UpstreamServiceError
from fadetrack.services.search_base import NO_RESULTS, SearchAgent

logger = logging.getLogger(__name__)

PENDING_STATUSES = {"queued", "running"}


def _is_pending(run: Dict[str, Any]) -> bool:
    return run.get("status") in PENDING_STATUSES


def extract_text(output: Any) -> str:
    if isinstance(output, str):
        text = output
    elif isinstance(output, dict) and isinstance(output.get("text"), str):
        text = output["text"]
    else:
        text = ""
    return text.strip() or NO_RESULTS


class WorkflowSearchAgent(SearchAgent):
    """
    Search via the hosted workflow runs API.

    `transport` lets tests substitute an `httpx.MockTransport`.
    """

    name = "workflow"

    def __init__(
        self,
        api_key: Optional[str] = None,
        workflow_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.workflow_id = workflow_id if workflow_id is not None else settings.openai_workflow_id
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.ai_search_timeout
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.ai_search_poll_interval
        )
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.workflow_id)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            # A single HTTP call may not outlive the whole poll budget
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )

    async def _start(self, client: httpx.AsyncClient, query: str) -> str:
        response = await client.post(
            "/workflows/runs",
            json={"workflow_id": self.workflow_id, "input": {"prompt": query}},
        )
        if response.is_error:
            raise UpstreamServiceError(
                service=self.name,
                message=f"Failed to start AI search: {response.status_code} {response.text[:200]}",
                context={"upstream_status": response.status_code},
            )
        run_id = response.json().get("id")
        if not run_id:
            raise UpstreamServiceError(service=self.name, message="AI workflow returned no run id")
        return run_id

    async def _retrieve(self, client: httpx.AsyncClient, run_id: str) -> Dict[str, Any]:
        response = await client.get(f"/workflows/runs/{run_id}")
        if response.is_error:
            raise UpstreamServiceError(
                service=self.name,
                message=f"Failed to fetch AI search result: {response.status_code} {response.text[:200]}",
                context={"run_id": run_id, "upstream_status": response.status_code},
            )
        return response.json()

    async def _wait_for(self, client: httpx.AsyncClient, run_id: str) -> Dict[str, Any]:
        poller = AsyncRetrying(
            retry=retry_if_result(_is_pending),
            stop=stop_after_delay(self.timeout),
            wait=wait_fixed(self.poll_interval),
        )
        try:
            return await poller(self._retrieve, client, run_id)
        except RetryError:
            logger.warning("Workflow run %s still pending after %.0fs", run_id, self.timeout)
            raise self._timed_out(run_id)

    def _timed_out(self, run_id: Optional[str] = None) -> UpstreamServiceError:
        return UpstreamServiceError(
            service=self.name,
            message=f"AI search timed out after {self.timeout:.0f} seconds",
            context={"run_id": run_id} if run_id else {},
        )

    async def _run(self, client: httpx.AsyncClient, query: str) -> Tuple[str, Dict[str, Any]]:
        run_id = await self._start(client, query)
        logger.info("Workflow run %s started", run_id)
        return run_id, await self._wait_for(client, run_id)

    async def search(self, query: str) -> str:
        try:
            async with self._client() as client:
                # One deadline covers starting the run and every poll
                run_id, run = await asyncio.wait_for(self._run(client, query), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Workflow search exceeded %.0fs", self.timeout)
            raise self._timed_out()
        except httpx.HTTPError as e:
            raise UpstreamServiceError(service=self.name, message=f"Failed to run AI search: {e}")

        status = run.get("status")
        if status != "completed":
            raise UpstreamServiceError(
                service=self.name,
                message=f"AI search run {status or 'ended without a status'}",
                context={"run_id": run_id, "status": status},
            )

        text = extract_text(run.get("output"))
        logger.info("Workflow run %s completed (%d chars)", run_id, len(text))
        return text

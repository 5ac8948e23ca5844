"""
Fadetrack Backend: AI Search Orchestration
==========================================

What:  Natural-language professional search and ChatKit session issuing,
       both behind the per-identity usage quota.
Who:   Called by the /api/aiSearch and /api/chatkit/session routes.

Flow (search):
    1. Pick the first configured agent (hosted workflow, else Gemini)
       → ServiceMisconfiguredError when neither is configured
    2. Consume one unit of quota → UsageLimitExceededError (429)
    3. Circuit breaker gate → CircuitBreakerOpenError (503)
    4. Run the agent; record success or failure in the breaker
    5. Return the answer text

The quota increment is only flushed. If step 3 or 4 raises, the request
transaction rolls back and the attempt is not counted.

Breaker accounting:
    UpstreamServiceError with status < 500 (a rejected request) is passed
    through without counting as an upstream failure.
"""

import logging
import time
import uuid
from typing import Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.config import settings
from fadetrack.exceptions import (
    CircuitBreakerOpenError,
    ServiceMisconfiguredError,
    UpstreamServiceError,
)
from fadetrack.schemas.search import SessionResponse
from fadetrack.services.chatkit_service import ChatKitClient
from fadetrack.services.circuit_breaker import CircuitBreaker
from fadetrack.services.gemini_service import GeminiChatAgent
from fadetrack.services.search_base import SearchAgent
from fadetrack.services.usage_service import UsageService, usage_service
from fadetrack.services.workflow_service import WorkflowSearchAgent

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AISearchService:

    def __init__(
        self,
        agents: Optional[List[SearchAgent]] = None,
        chatkit: Optional[ChatKitClient] = None,
        usage: Optional[UsageService] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.agents = agents if agents is not None else [WorkflowSearchAgent(), GeminiChatAgent()]
        self.chatkit = chatkit or ChatKitClient()
        self.usage = usage or usage_service
        self.circuit_breaker = breaker or CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    def active_agent(self) -> Optional[SearchAgent]:
        for agent in self.agents:
            if agent.configured:
                return agent
        return None

    def upstream_status(self) -> str:
        """Health summary: the active agent's name, "unconfigured" or "circuit_open"."""
        agent = self.active_agent()
        if agent is None:
            return "unconfigured"
        if self.circuit_breaker.state == CircuitBreaker.OPEN:
            return "circuit_open"
        return agent.name

    async def _guarded(self, call: Callable[[], Awaitable[T]], call_id: str) -> T:
        self.circuit_breaker.can_execute()
        try:
            result = await call()
        except CircuitBreakerOpenError:
            raise
        except UpstreamServiceError as e:
            if e.status_code >= 500:
                self.circuit_breaker.record_failure()
            logger.error("[%s] %s upstream failed: %s", call_id, e.service, e.message)
            raise
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Unexpected upstream error: %s", call_id, e, exc_info=True)
            raise UpstreamServiceError(
                service="ai",
                message=f"Unexpected AI search error: {e}",
                context={"call_id": call_id, "error_type": type(e).__name__},
            )
        self.circuit_breaker.record_success()
        return result

    async def search(self, db: AsyncSession, query: str, identity: str) -> str:
        """
        Answer a free-text query about professionals.

        Raises:
            ServiceMisconfiguredError: no agent has credentials
            UsageLimitExceededError:   quota used up
            CircuitBreakerOpenError:   upstream tripped the breaker
            UpstreamServiceError:      the agent failed or timed out
        """
        agent = self.active_agent()
        if agent is None:
            raise ServiceMisconfiguredError("missing OPENAI_WORKFLOW_ID or GEMINI_API_KEY")

        await self.usage.consume(db, identity)

        call_id = uuid.uuid4().hex[:8]
        start_time = time.perf_counter()
        logger.info("[%s] AI search via %s for %s", call_id, agent.name, identity)
        text = await self._guarded(lambda: agent.search(query.strip()), call_id)
        logger.info(
            "[%s] AI search finished in %.0fms",
            call_id,
            (time.perf_counter() - start_time) * 1000,
        )
        return text

    async def start_session(self, db: AsyncSession, identity: str) -> SessionResponse:
        """Issue a ChatKit client secret and count it against the quota."""
        self.chatkit.check_configured()
        snapshot = await self.usage.consume(db, identity)
        call_id = uuid.uuid4().hex[:8]
        secret = await self._guarded(self.chatkit.create_session, call_id)
        logger.info("[%s] ChatKit session issued for %s", call_id, identity)
        return SessionResponse(client_secret=secret, usage=snapshot)


ai_search_service = AISearchService()

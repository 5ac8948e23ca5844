"""
Fadetrack Backend: Gemini Chat Search Agent
===========================================

What:  Answers AI search queries with a single Gemini chat completion.
Who:   Used by `AISearchService` when no hosted workflow is configured.
How:   One `generate_content_async` call with a directory-assistant system
       instruction and a low temperature; no retries.

The SDK keeps its API key in module-level state, so the model object is
built lazily on first use rather than at import time.
"""

import logging
import time
from typing import Optional

import google.generativeai as genai

from fadetrack.config import settings
from fadetrack.exceptions import UpstreamServiceError
from fadetrack.services.search_base import NO_RESULTS, SearchAgent

logger = logging.getLogger(__name__)


class GeminiChatAgent(SearchAgent):

    name = "gemini"

    SYSTEM_PROMPT = (
        "You help people find beauty and grooming professionals: makeup artists, "
        "barbers, hair stylists and nail technicians. Given a request such as a "
        "service and a city, reply with a concise list of professional or business "
        "names, one per line, each with a short reason it matches. If you do not "
        "know any, say so briefly."
    )

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model_name = model_name or settings.gemini_model
        self._model = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_model(self):
        if self._model is None:
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(
                self.model_name,
                system_instruction=self.SYSTEM_PROMPT,
                generation_config={"temperature": 0.2},
            )
            logger.info("Gemini chat agent initialized with model=%s", self.model_name)
        return self._model

    async def search(self, query: str) -> str:
        start_time = time.perf_counter()
        try:
            response = await self._get_model().generate_content_async(
                query,
                request_options={"timeout": settings.ai_search_timeout},
            )
        except Exception as e:
            # The SDK raises google.api_core exceptions of many types
            logger.warning("Gemini call failed: %s", e)
            raise UpstreamServiceError(
                service=self.name,
                message=f"Failed to run AI search: {e}",
                context={"error_type": type(e).__name__},
            )

        try:
            text = (response.text or "").strip()
        except ValueError:
            # .text raises when the candidate was blocked or is empty
            text = ""

        logger.info(
            "Gemini answered in %.0fms (%d chars)",
            (time.perf_counter() - start_time) * 1000,
            len(text),
        )
        return text or NO_RESULTS

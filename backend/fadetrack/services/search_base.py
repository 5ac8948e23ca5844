"""
Fadetrack Backend: Abstract AI Search Agent
===========================================

What:  The contract every natural-language search backend implements.
How:   `AISearchService` picks the first configured agent (the hosted
       workflow, else the Gemini chat agent) and only ever talks to it
       through this interface.
"""

from abc import ABC, abstractmethod

NO_RESULTS = "No results found."


class SearchAgent(ABC):
    """
    A backend that turns a free-text query into a text answer.

    Contract:
        - search() returns the answer text, or NO_RESULTS when the upstream
          produced nothing usable. It never returns an empty string.
        - Upstream failures are raised as UpstreamServiceError; nothing is
          retried inside the agent.
    """

    name: str = "agent"

    @property
    @abstractmethod
    def configured(self) -> bool:
        """True when the credentials this agent needs are present."""
        ...

    @abstractmethod
    async def search(self, query: str) -> str:
        """
        Answer a query.

        Args:
            query: Free text, e.g. "bridal makeup artists in Austin"

        Raises:
            UpstreamServiceError: The upstream failed, timed out or rejected
                the request.
        """
        ...

"""
Fadetrack Backend: ChatKit Session Client
=========================================

Creates embedded-chat sessions bound to the configured workflow and hands
the `client_secret` back to the browser. Upstream rejections keep their
HTTP status so the browser sees the real cause.
"""

import logging
from typing import Optional

import httpx

from fadetrack.config import settings
from fadetrack.exceptions import ServiceMisconfiguredError, UpstreamServiceError

logger = logging.getLogger(__name__)

CHATKIT_BETA_HEADER = "chatkit_beta=v1"


class ChatKitClient:

    name = "chatkit"

    def __init__(
        self,
        api_key: Optional[str] = None,
        workflow_id: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.workflow_id = workflow_id if workflow_id is not None else settings.openai_workflow_id
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self._transport = transport

    def check_configured(self) -> None:
        if not self.workflow_id:
            raise ServiceMisconfiguredError("missing OPENAI_WORKFLOW_ID")
        if not self.api_key:
            raise ServiceMisconfiguredError("missing OPENAI_API_KEY")

    async def create_session(self) -> str:
        """
        Returns:
            The session's client secret.

        Raises:
            ServiceMisconfiguredError: credentials missing
            UpstreamServiceError:      non-2xx (status passed through) or transport error
        """
        self.check_configured()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(30.0, connect=10.0),
                transport=self._transport,
            ) as client:
                response = await client.post(
                    "/chatkit/sessions",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "OpenAI-Beta": CHATKIT_BETA_HEADER,
                    },
                    json={"workflow": {"id": self.workflow_id}},
                )
        except httpx.HTTPError as e:
            logger.error("ChatKit session request failed: %s", e)
            raise UpstreamServiceError(service=self.name, message=f"Failed to create ChatKit session: {e}")

        if response.is_error:
            logger.error("ChatKit session creation failed: %d %s", response.status_code, response.text[:500])
            raise UpstreamServiceError(
                service=self.name,
                message="Failed to create ChatKit session",
                status_code=response.status_code,
                context={"details": response.text[:1000]},
            )

        secret = response.json().get("client_secret")
        if not secret:
            raise UpstreamServiceError(service=self.name, message="ChatKit response had no client_secret")
        return secret

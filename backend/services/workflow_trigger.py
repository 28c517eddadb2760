"""
Workflow trigger - starts an n8n workflow run and returns without waiting for it
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from config import N8N_WEBHOOKS, WEBHOOK_TIMEOUT
from models.canonical import JobKind

logger = logging.getLogger(__name__)


@dataclass
class TriggerResult:
    success: bool
    error: Optional[str] = None
    ambiguous: bool = False  # request did not complete, workflow may have started anyway


class WorkflowTrigger:
    """
    Fire-and-forget POST to the workflow webhook for a job.

    The workflow runs for minutes, so the call only has to be accepted.
    A timeout or an unreachable network is reported as success: the
    remote side may well have started, and the job poller will time out
    if it did not. Pass strict=True to report those as failures instead.
    Only an explicit non-2xx response is a definite failure.
    """

    def __init__(
        self,
        webhooks: Optional[Dict[str, str]] = None,
        timeout: float = WEBHOOK_TIMEOUT,
        strict: bool = False,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.webhooks = dict(webhooks or N8N_WEBHOOKS)
        self.timeout = timeout
        self.strict = strict
        self._client = client

    def endpoint_for(self, kind: JobKind) -> str:
        return self.webhooks[JobKind(kind).value]

    async def trigger(self, kind: JobKind, payload: Dict[str, Any]) -> TriggerResult:
        """POST payload (job_id + workflow input) to the endpoint for kind"""
        url = self.endpoint_for(kind)

        try:
            if self._client is not None:
                response = await self._post(self._client, url, payload)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, url, payload)
        except httpx.TimeoutException as e:
            return self._transport_failure(url, "Webhook request timed out", e)
        except httpx.NetworkError as e:
            return self._transport_failure(url, "Webhook unreachable", e)
        except Exception as e:
            logger.error(f"Webhook call to {url} failed: {e}")
            return TriggerResult(success=False, error=str(e) or "Unknown error")

        # Response content is irrelevant in async mode, only acceptance matters
        if not response.is_success:
            logger.warning(f"Webhook {url} rejected job: HTTP {response.status_code}")
            return TriggerResult(success=False, error=f"HTTP Error: {response.status_code}")

        logger.info(f"✓ Workflow triggered at {url} (HTTP {response.status_code})")
        return TriggerResult(success=True)

    async def _post(self, client: httpx.AsyncClient, url: str, payload: Dict[str, Any]) -> httpx.Response:
        return await client.post(url, json=payload, timeout=self.timeout)

    def _transport_failure(self, url: str, message: str, exc: Exception) -> TriggerResult:
        if self.strict:
            logger.error(f"{message} ({url}): {exc}")
            return TriggerResult(success=False, error=message)

        logger.warning(f"{message} ({url}): {exc} - assuming the workflow started")
        return TriggerResult(success=True, ambiguous=True)

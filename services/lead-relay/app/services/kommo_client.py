"""
Kommo CRM adapter: lead creation through /api/v4/leads/complex
"""
import logging
from typing import Any, Dict

import httpx

from app.core.errors import UpstreamError
from app.services.payload_mapper import CrmLeadPayload
from app.services.token_manager import TokenManager, response_body

logger = logging.getLogger(__name__)


class KommoLeadSink:
    """Sends finished payloads to Kommo using the shared access token"""

    def __init__(self, token_manager: TokenManager, http_client: httpx.AsyncClient, base_url: str):
        self.token_manager = token_manager
        self.http_client = http_client
        self.leads_url = f"{base_url.rstrip('/')}/api/v4/leads/complex"

    async def create_lead(self, payload: CrmLeadPayload) -> Dict[str, Any]:
        """
        Create one lead (with its embedded contact and tags).

        Returns the first element of Kommo's response list, e.g.
            {"id": 123, "contact_id": 456, "company_id": None, "request_id": ["0"], "merged": False}

        Raises:
            AuthError: no access token could be obtained
            UpstreamError: Kommo answered non-2xx or could not be reached
        """
        access_token = await self.token_manager.get_access_token()
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        try:
            # Creation is always a batch, even for a single lead
            response = await self.http_client.post(
                self.leads_url,
                json=[payload.to_request()],
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.error("kommo.lead_failed", extra={"error": str(exc)})
            raise UpstreamError(f"Kommo unreachable: {exc}") from exc

        if response.status_code == 401:
            self.token_manager.invalidate()

        if response.is_error:
            body = response_body(response)
            logger.error(
                "kommo.lead_failed",
                extra={"status_code": response.status_code, "error": str(body)},
            )
            raise UpstreamError(
                f"Kommo rejected the lead with status {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        data = response_body(response)
        if not isinstance(data, list) or not data:
            raise UpstreamError(
                "Kommo returned an unexpected lead response",
                status_code=response.status_code,
                body=data,
            )

        created = data[0]
        logger.info("kommo.lead_created", extra={"status_code": response.status_code})
        return created

"""Estimate job client.

Triggers the remote ``generate-estimate`` function for a lead. The call is
fire-and-forget: the computed estimate is written back onto the lead and
picked up by the estimate poller.
"""

from typing import Any, Dict, List, Optional

import httpx
import structlog

from config.settings import settings
from config.secrets import get_estimate_api_key
from config.errors import GatewayError, ErrorCode

logger = structlog.get_logger()


class EstimateJobClient:
    """HTTP client for the generate-estimate function."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None
    ):
        """Initialize EstimateJobClient.

        Args:
            url: Function URL (default from settings).
            timeout: Request timeout in seconds (default from settings).
            api_key: Optional bearer key (default from secrets).
        """
        self.url = url or settings.generate_estimate_url
        self.timeout = timeout or settings.generate_estimate_timeout_seconds
        self._api_key = api_key

    @property
    def api_key(self) -> Optional[str]:
        if self._api_key is None:
            self._api_key = get_estimate_api_key()
        return self._api_key

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def build_payload(
        lead_id: str,
        contractor_id: str,
        project_description: str,
        category: Optional[str],
        image_url: Optional[str],
        project_images: List[str]
    ) -> Dict[str, Any]:
        """Build the request body expected by the function."""
        return {
            "leadId": lead_id,
            "contractorId": contractor_id,
            "projectDescription": project_description,
            "category": category,
            "imageUrl": image_url,
            "projectImages": list(project_images),
        }

    async def invoke(
        self,
        lead_id: str,
        contractor_id: str,
        project_description: str,
        category: Optional[str],
        image_url: Optional[str],
        project_images: List[str]
    ) -> None:
        """Start estimate generation for a lead.

        Raises:
            GatewayError: On timeout, connection failure or an error response.
        """
        payload = self.build_payload(
            lead_id=lead_id,
            contractor_id=contractor_id,
            project_description=project_description,
            category=category,
            image_url=image_url,
            project_images=project_images,
        )

        logger.info("estimate_job_invoking", lead_id=lead_id, url=self.url)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.url,
                    json=payload,
                    headers=self._build_headers()
                )
                response.raise_for_status()

        except httpx.TimeoutException as e:
            logger.error("estimate_job_timeout", lead_id=lead_id, error=str(e))
            raise GatewayError(
                kind=ErrorCode.ESTIMATE_JOB_TIMEOUT,
                message="Timed out starting estimate generation",
                details={"lead_id": lead_id}
            )
        except httpx.HTTPStatusError as e:
            message = _extract_error_message(e.response) or str(e)
            logger.error(
                "estimate_job_rejected",
                lead_id=lead_id,
                status_code=e.response.status_code,
                error=message
            )
            raise GatewayError(
                kind=ErrorCode.ESTIMATE_JOB_FAILED,
                message=message,
                details={"lead_id": lead_id, "status_code": e.response.status_code}
            )
        except httpx.HTTPError as e:
            logger.error("estimate_job_failed", lead_id=lead_id, error=str(e))
            raise GatewayError(
                kind=ErrorCode.ESTIMATE_JOB_FAILED,
                message=f"Failed to invoke generate-estimate: {str(e)}",
                details={"lead_id": lead_id}
            )

        logger.info("estimate_job_started", lead_id=lead_id)


def _extract_error_message(response: httpx.Response) -> Optional[str]:
    """Pull an ``error`` message out of a JSON error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message")
    return error if isinstance(error, str) else None

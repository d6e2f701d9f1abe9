"""Render REST Client: thin async wrapper over httpx for the Render v1 API.

Invariants:
    - Transport failures (DNS, connect, timeout) mapped to RenderAPIError (core/errors.py)
    - Non-2xx responses are returned, not raised: callers decide what a status means
    - API keys are never logged beyond an 8-character prefix

Design Decisions:
    - Explicitly constructed and passed to handlers (no module-level client);
      tests inject an httpx.MockTransport
    - No retry: provisioning calls are not idempotent, a retried POST could create
      a second service
"""

import logging
from dataclasses import dataclass

import httpx

from safecall.core.errors import RenderAPIError

logger = logging.getLogger(__name__)


def mask_secret(secret: str, visible: int = 8) -> str:
    return f"{secret[:visible]}..."


@dataclass(frozen=True)
class RenderResponse:
    """Raw outcome of a Render API call: status line and undecoded body."""
    status_code: int
    reason: str
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class RenderClient:
    """POSTs JSON to Render with bearer auth. Use as an async context manager."""

    def __init__(
        self,
        base_url: str = "https://api.render.com/v1",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout_seconds, transport=transport,
        )

    async def post_json(self, path: str, api_key: str, payload: dict) -> RenderResponse:
        logger.info(
            f"POST {path} (api key {mask_secret(api_key)})",
            extra={"operation": path},
        )
        try:
            response = await self._client.post(
                path,
                json=payload,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Accept": "application/json",
                },
            )
        except httpx.TimeoutException as e:
            raise RenderAPIError(f"Render API request timed out: {e}", "timeout")
        except httpx.HTTPError as e:
            raise RenderAPIError(f"Failed to reach Render API: {e}", "connection")
        logger.info(
            f"Render responded {response.status_code} for POST {path}",
            extra={"operation": path, "status_code": response.status_code},
        )
        return RenderResponse(
            status_code=response.status_code,
            reason=response.reason_phrase,
            text=response.text,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RenderClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

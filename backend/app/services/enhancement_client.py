"""
Photo Enhancement Backend — Enhancement Endpoint Client
========================================================

What:  Async HTTP client that asks the enhancement endpoint to process one photo.
How:   Wraps an httpx.AsyncClient (opened as an async context manager) and
       translates every failure into DispatchError.
Who:   QueueService, once per claimed/fetched photo.
When:  Inside a cron invocation; one client instance per run.

Request contract:
    POST {ENHANCE_BASE_URL}{ENHANCE_PATH}
    Content-Type:       application/json
    X-Internal-Service: {INTERNAL_SERVICE_NAME}   (marks a cron-originated call)
    X-User-Id:          {photo.user_id}
    X-Request-ID:       {current request id, when there is one}
    Authorization:      Bearer {ENHANCE_SERVICE_TOKEN}   (only when configured)
    Body:               {"photoId": "<id>"}

    Any 2xx counts as success. Nothing is read back from the response.

Timeouts:
    None by default, so a hung call stalls the batch. Set
    ENHANCE_TIMEOUT_SECONDS to bound each call; a timeout then surfaces as a
    transport failure (DispatchError without status code).
"""

import logging
from typing import Any, Dict, Optional

import httpx

from app.config import Settings, settings as default_settings
from app.exceptions import DispatchError
from app.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

# Response bodies longer than this are cut before logging
MAX_ERROR_BODY_CHARS = 500


class EnhancementClient:
    """
    Client for the internal enhancement endpoint.

    Usage:
        async with EnhancementClient.from_settings() as client:
            await client.request_enhancement(photo.id, photo.user_id)

    Tests can pass `transport=httpx.MockTransport(handler)` to avoid the network.
    """

    def __init__(
        self,
        base_url: str,
        path: str = "/api/photos/enhance",
        service_name: str = "cron-processor",
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.path = path
        self.service_name = service_name
        self._token = token or None
        self._timeout = timeout
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "EnhancementClient":
        """Builds a client from application settings."""
        config = config or default_settings
        return cls(
            base_url=config.enhance_base_url,
            path=config.enhance_path,
            service_name=config.internal_service_name,
            token=config.enhance_service_token,
            timeout=config.enhance_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "EnhancementClient":
        headers = {
            "Content-Type": "application/json",
            "X-Internal-Service": self.service_name,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            # httpx defaults to 5s; None disables the timeout entirely
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    @property
    def http(self) -> httpx.AsyncClient:
        """The underlying httpx client; only available inside `async with`."""
        if self._http is None:
            raise RuntimeError(
                "EnhancementClient is not open. Use 'async with EnhancementClient(...) as client:'"
            )
        return self._http

    def _request_headers(self, user_id: str) -> Dict[str, str]:
        headers = {"X-User-Id": user_id}
        rid = request_id_var.get("")
        if rid:
            headers["X-Request-ID"] = rid
        return headers

    async def request_enhancement(self, photo_id: str, user_id: str) -> None:
        """
        Ask the enhancement endpoint to process one photo.

        Args:
            photo_id: Identifier sent as `photoId` in the JSON body
            user_id:  Owner of the photo, sent as X-User-Id

        Raises:
            DispatchError: Non-2xx response (status_code set) or transport
                failure (status_code None). Exactly one HTTP request is made;
                there is no retry.
        """
        try:
            response = await self.http.post(
                self.path,
                json={"photoId": photo_id},
                headers=self._request_headers(user_id),
            )
        except httpx.HTTPError as e:
            logger.error(
                "Enhancement request for photo %s failed in transport: %s: %s",
                photo_id,
                type(e).__name__,
                str(e),
            )
            raise DispatchError(
                photo_id=photo_id,
                context={"error_type": type(e).__name__},
            ) from e

        if not response.is_success:
            body = response.text[:MAX_ERROR_BODY_CHARS]
            logger.error(
                "Enhancement request for photo %s returned %d: %s",
                photo_id,
                response.status_code,
                body,
            )
            raise DispatchError(
                photo_id=photo_id,
                status_code=response.status_code,
                body=body,
            )

        logger.debug(
            "Enhancement request for photo %s accepted with %d",
            photo_id,
            response.status_code,
        )

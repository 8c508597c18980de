"""HTTP request execution for ApiVeritas test suites."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import httpx

from .exceptions import ApiCallError
from .models import ApiRequest
from .saver import ResponseSaver

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass
class CallResult:
    """Outcome of executing one request."""
    name: str
    url: str
    status_code: Optional[int] = None
    saved_path: Optional[str] = None
    error: Optional[str] = None

    @property
    def status_ok(self) -> bool:
        return self.error is None


class ApiCaller:
    """
    Fires the requests of a suite one at a time and saves each response.

    Non-2xx responses are saved like any other; only transport failures
    skip the save.
    """

    def __init__(
        self,
        requests: list[ApiRequest],
        saver: ResponseSaver,
        base_url: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.requests = requests
        self.saver = saver
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport

    async def call_all(self) -> list[CallResult]:
        """
        Execute every request sequentially.

        Raises:
            ApiCallError: If a request has no test suite to save into
        """
        logger.info("Base URL: %s", self.base_url)
        results = []

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for request in self.requests:
                if not request.test_suite:
                    raise ApiCallError(request.name, "missing testSuite name")

                if not request.url:
                    logger.error("Missing URL in request: %s", request.name)
                    continue

                results.append(await self._call(client, request))

        return results

    async def _call(self, client: httpx.AsyncClient, request: ApiRequest) -> CallResult:
        base_url = request.base_url if request.base_url is not None else self.base_url
        full_url = f"{base_url}{request.url}"
        result = CallResult(name=request.name, url=full_url)

        logger.info("Calling URL: %s (method: %s)", full_url, request.method)
        logger.debug("Calling [%s] with %s", request.name, json.dumps(request.to_dict(), default=str))

        kwargs: dict[str, Any] = {}
        if request.auth:
            kwargs["auth"] = (request.auth.get("username", ""), request.auth.get("password", ""))
        if request.body is not None:
            kwargs["json"] = request.body
        if request.headers:
            kwargs["headers"] = request.headers

        try:
            response = await client.request(request.method, full_url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Failed to call [%s]: %s", request.name, e)
            result.error = str(e)
            return result

        result.status_code = response.status_code
        if request.expected_status and response.status_code != request.expected_status:
            logger.error("[%s] returned status %d, expected %d",
                         request.name, response.status_code, request.expected_status)
        else:
            logger.info("[%s] returned status %d", request.name, response.status_code)

        saved = self.saver.save_response(request.test_suite, request.name, response_data(response))
        result.saved_path = str(saved)
        logger.info("Saved response: %s", Path(saved).relative_to(self.saver.base_folder))
        return result


def response_data(response: httpx.Response) -> Any:
    """Decode a response body as JSON, falling back to text."""
    if not response.content:
        return ""
    try:
        return response.json()
    except ValueError:
        return response.text

import json
import logging
import re
from collections.abc import Callable
from typing import Any, Union

from .adapters import Transport, TransportRequest, TransportResponse
from .classify import classify_response, classify_transport_failure, decode_body
from .credentials import TokenStore
from .errors import HttpError, TransportFailure
from .events import ClientEvents
from .forms import FormPayload
from .stats import UsageStats
from .types import NavigationHint, Severity

FORBIDDEN_MESSAGE = "Access denied. You do not have permission to perform this action."
RATE_LIMIT_MESSAGE = "Too many requests. Please wait a moment before trying again."
SERVER_ERROR_MESSAGE = "Server error. Please try again later."
INVALID_JSON_MESSAGE = "Invalid JSON response"

_ABSOLUTE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")


class RequestExecutor:
    """Performs one HTTP exchange and turns the outcome into data or a classified error.

    Status side effects (credential clearing, notifications, navigation hints)
    run in ``react`` before the error is raised to the caller.
    """

    def __init__(
        self,
        base_url: str,
        transport: Transport,
        tokens: TokenStore,
        events: ClientEvents,
        stats: Union[UsageStats, None] = None,
        is_online: Union[Callable[[], bool], None] = None,
        timeout: Union[float, None] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.tokens = tokens
        self.events = events
        self.stats = stats
        self._is_online = is_online or (lambda: True)
        self.timeout = timeout
        self._logger = logging.getLogger("zewed")

    def resolve_url(self, endpoint: str) -> str:
        if _ABSOLUTE.match(endpoint):
            return endpoint
        return f"{self.base_url}{endpoint}"

    def build_headers(
        self, headers: Union[dict[str, Any], None] = None, multipart: bool = False
    ) -> dict[str, str]:
        merged = self.tokens.snapshot_headers()
        for k, v in (headers or {}).items():
            # a None override removes the default, like an undefined header
            if v is None:
                merged.pop(k, None)
            else:
                merged[k] = str(v)
        if multipart:
            # transport assigns the multipart boundary
            for k in [k for k in merged if k.lower() == "content-type"]:
                merged.pop(k)
        return merged

    async def execute(
        self,
        endpoint: str,
        method: str = "GET",
        *,
        headers: Union[dict[str, Any], None] = None,
        params: Union[dict[str, Any], None] = None,
        body: Any = None,
        content: Union[bytes, None] = None,
        form: Union[FormPayload, None] = None,
        timeout: Union[float, None] = None,
    ) -> Any:
        method = method.upper()
        if body is not None and content is None:
            content = json.dumps(body).encode("utf-8")
        request = TransportRequest(
            method=method,
            url=self.resolve_url(endpoint),
            headers=self.build_headers(headers, multipart=form is not None),
            params=params,
            content=content,
            data=form.fields if form is not None else None,
            files=(form.files or None) if form is not None else None,
            timeout=self.timeout if timeout is None else timeout,
        )
        self._logger.debug(f"req start method={method} url={request.url}")
        try:
            resp = await self.transport.send(request)
        except TransportFailure as e:
            self._record(False)
            online = self._is_online()
            self._logger.warning(
                f"network error method={method} url={request.url} online={online}: {e}"
            )
            raise classify_transport_failure(e, online) from e
        self._logger.debug(f"req done method={method} url={request.url} status={resp.status_code}")
        self._adopt_token(resp)
        if not resp.ok:
            self._record(False)
            error = classify_response(resp.status_code, resp.reason, resp.content)
            self.react(error)
            raise error
        try:
            data = decode_body(resp.header("content-type"), resp.content)
        except ValueError as e:
            self._record(False)
            self._logger.warning(
                f"undecodable body method={method} url={request.url} status={resp.status_code}"
            )
            raise HttpError(
                resp.status_code,
                payload={"message": INVALID_JSON_MESSAGE, "status": resp.status_code},
                message=INVALID_JSON_MESSAGE,
            ) from e
        self._record(True)
        return data

    def _adopt_token(self, resp: TransportResponse) -> None:
        new_token = resp.header("x-new-token")
        if new_token:
            self._logger.debug("adopting refreshed credential from X-New-Token")
            self.tokens.set(new_token)

    def _record(self, success: bool) -> None:
        if self.stats is not None:
            self.stats.record(success)

    def react(self, error: HttpError) -> None:
        status = error.status
        if status == 401:  # noqa: PLR2004, http status code can be constant
            self._logger.warning("unauthorized access; clearing credential")
            self.tokens.clear()
            path = self.events.current_path()
            if "/login" not in path:
                self.events.navigate(NavigationHint.LOGIN, path)
        elif status == 403:  # noqa: PLR2004
            self._logger.warning("access forbidden")
            self.events.notify(FORBIDDEN_MESSAGE, Severity.ERROR)
        elif status == 404:  # noqa: PLR2004
            self._logger.warning("resource not found")
            if "/404" not in self.events.current_path():
                self.events.navigate(NavigationHint.NOT_FOUND)
        elif status == 429:  # noqa: PLR2004
            self._logger.warning("server rate limit exceeded")
            self.events.notify(RATE_LIMIT_MESSAGE, Severity.WARNING)
        elif status == 500:  # noqa: PLR2004
            self._logger.error("server error")
            self.events.notify(SERVER_ERROR_MESSAGE, Severity.ERROR)

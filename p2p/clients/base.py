"""
Typed HTTP access to the stores the orchestrator and draft generator depend on.

Every call carries a bounded timeout and ends in either a parsed response
model or one of the ``p2p.exceptions`` types:

  timeout / transport error        -> DependencyUnavailableError
  error envelope with a known code -> that error class
  bare 404                         -> NotFoundError
  bare 5xx                         -> DependencyUnavailableError
  undecodable or mis-shaped body   -> DataIntegrityError

The inbound request id is forwarded as X-Request-ID. Nothing is retried.
"""

from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError
import structlog

from p2p.config import settings
from p2p.exceptions import (
    ERRORS_BY_CODE,
    DataIntegrityError,
    DependencyUnavailableError,
    InvalidStateError,
    NotFoundError,
    P2PError,
    PolicyDeniedError,
    UnprocessableError,
)
from p2p.middleware.correlation import REQUEST_ID_HEADER

logger = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)

# Module-level singleton so keep-alive connections are shared across requests.
_http: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    global _http
    if _http is None or _http.is_closed:
        _http = httpx.AsyncClient(
            limits=httpx.Limits(
                max_connections=settings.HTTP_MAX_CONNECTIONS,
                max_keepalive_connections=10,
                keepalive_expiry=30,
            ),
            timeout=settings.SERVICE_TIMEOUT_SECONDS,
        )
    return _http


async def close_http_client() -> None:
    global _http
    if _http is not None:
        await _http.aclose()
        _http = None


_STATUS_FALLBACK: dict[int, Type[P2PError]] = {
    400: UnprocessableError,
    403: PolicyDeniedError,
    404: NotFoundError,
    409: InvalidStateError,
    422: UnprocessableError,
}


class ServiceClient:
    service_name = "service"

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client
        self.timeout = timeout if timeout is not None else settings.SERVICE_TIMEOUT_SECONDS

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_http_client()

    def _error(self, cls: Type[P2PError], message: str, path: str) -> P2PError:
        if issubclass(cls, NotFoundError):
            return cls(self.service_name, path, message=message)
        if issubclass(cls, (DependencyUnavailableError, DataIntegrityError)):
            return cls(self.service_name, message)
        return cls(message)

    def _raise_for_error(self, resp: httpx.Response, path: str) -> None:
        code, message = None, None
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            code = body["error"].get("code")
            message = body["error"].get("message")
        message = message or f"{self.service_name} returned HTTP {resp.status_code}"

        cls = ERRORS_BY_CODE.get(code) or _STATUS_FALLBACK.get(resp.status_code)
        if cls is None:
            cls = DependencyUnavailableError if resp.status_code >= 500 else DataIntegrityError
        raise self._error(cls, message, path)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        headers = {}
        request_id = structlog.contextvars.get_contextvars().get("request_id")
        if request_id:
            headers[REQUEST_ID_HEADER] = request_id
        try:
            resp = await self.client.request(
                method, url, json=json, params=params, headers=headers, timeout=self.timeout
            )
        except httpx.TimeoutException:
            logger.warning("service_call_timeout", service=self.service_name, method=method, path=path)
            raise DependencyUnavailableError(
                self.service_name,
                f"{self.service_name} did not answer within {self.timeout}s",
            )
        except httpx.HTTPError as e:
            logger.warning(
                "service_call_failed", service=self.service_name, method=method, path=path, error=str(e)
            )
            raise DependencyUnavailableError(
                self.service_name, f"{self.service_name} is unreachable: {e}"
            )

        if resp.status_code >= 400:
            self._raise_for_error(resp, path)

        try:
            return resp.json()
        except ValueError:
            raise DataIntegrityError(
                self.service_name, f"{self.service_name} returned a non-JSON body"
            )

    def _parse(self, model: Type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise DataIntegrityError(
                self.service_name,
                f"{self.service_name} returned a malformed {model.__name__}: {e.error_count()} errors",
            )

    def _parse_list(self, model: Type[M], data: Any) -> list[M]:
        try:
            return TypeAdapter(list[model]).validate_python(data)
        except ValidationError as e:
            raise DataIntegrityError(
                self.service_name,
                f"{self.service_name} returned a malformed {model.__name__} list: {e.error_count()} errors",
            )

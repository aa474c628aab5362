import logging
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional, Protocol, Tuple
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, Field

from nodeflow.workflows.engine.errors import HttpTransportError

logger = logging.getLogger(__name__)

ContentType = Literal["json", "form-urlencoded", "multipart-form-data", "raw"]


class HttpRequestDescriptor(BaseModel):
    """Everything a transport needs to perform one request."""
    method: str = "GET"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    query: Dict[str, Any] = Field(default_factory=dict)
    body: Any = None
    content_type: ContentType = "json"
    timeout: Optional[float] = None
    auth: Optional[Tuple[str, str]] = None

    @property
    def full_url(self) -> str:
        if not self.query:
            return self.url
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{urlencode(self.query)}"


class HttpResponse(BaseModel):
    status: int
    status_text: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None


class HttpTransport(Protocol):
    async def request(self, descriptor: HttpRequestDescriptor) -> HttpResponse:
        ...


class HttpxTransport:
    """Performs live requests with httpx."""

    def __init__(self, default_timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.default_timeout = default_timeout
        self._client = client

    async def request(self, descriptor: HttpRequestDescriptor) -> HttpResponse:
        kwargs: Dict[str, Any] = {
            "method": descriptor.method.upper(),
            "url": descriptor.url,
            "headers": descriptor.headers,
            "params": descriptor.query or None,
            "timeout": descriptor.timeout or self.default_timeout,
        }
        if descriptor.auth:
            kwargs["auth"] = descriptor.auth
        if descriptor.body is not None and descriptor.method.upper() not in ("GET", "HEAD"):
            if descriptor.content_type == "json":
                kwargs["json"] = descriptor.body
            elif descriptor.content_type == "form-urlencoded" and isinstance(descriptor.body, dict):
                kwargs["data"] = descriptor.body
            elif descriptor.content_type == "multipart-form-data" and isinstance(descriptor.body, dict):
                # (None, value) parts are plain fields, not file uploads
                kwargs["files"] = {k: (None, str(v)) for k, v in descriptor.body.items()}
            else:
                kwargs["content"] = str(descriptor.body)

        try:
            if self._client is not None:
                response = await self._client.request(**kwargs)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.request(**kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"HTTP request to {descriptor.url} timed out: {e}")
            raise HttpTransportError(f"Request timed out: {descriptor.url}") from e
        except httpx.HTTPError as e:
            logger.error(f"HTTP runtime request failed: {e}")
            raise HttpTransportError(f"Network request failed: {str(e)}") from e

        try:
            data = response.json()
        except ValueError:
            data = response.text

        return HttpResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            body=data,
        )


class SimulatedTransport:
    """
    Offline transport: answers every request with 200 and echoes the request
    back as the body.
    """

    def __init__(self, clock=None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def request(self, descriptor: HttpRequestDescriptor) -> HttpResponse:
        data: Dict[str, Any] = {
            "method": descriptor.method.upper(),
            "url": descriptor.full_url,
            "headers": dict(descriptor.headers),
            "timestamp": self._clock().isoformat(),
        }
        if descriptor.body is not None:
            data["body"] = descriptor.body
        if descriptor.auth:
            data["auth"] = {"username": descriptor.auth[0], "password": "***"}

        return HttpResponse(
            status=200,
            status_text="OK",
            headers={"content-type": "application/json"},
            body=data,
        )


def get_transport(settings) -> HttpTransport:
    """Transport selected by HTTP_TRANSPORT."""
    if settings.HTTP_TRANSPORT == "simulated":
        return SimulatedTransport()
    return HttpxTransport(default_timeout=settings.HTTP_DEFAULT_TIMEOUT)

"""
HTTP collaborator

The bridge only needs "send a request, get status and body back". HttpClient
is that capability; RequestsHttpClient is the default implementation on top
of a requests.Session. Connection-level settings (timeouts, proxies, TLS)
belong here, never to the bridge.
"""

from dataclasses import dataclass, field
from typing import Protocol

import requests

from .errors import TransportError


@dataclass(frozen=True)
class HttpRequest:
    """A literal HTTP request produced by the translator."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None


@dataclass(frozen=True)
class HttpResponse:
    """Status code and raw text body returned by the remote end."""

    status: int
    body: str


class HttpClient(Protocol):
    """Synchronous transport used by the bridge."""

    def send(
        self, method: str, url: str, headers: dict[str, str], body: str | None
    ) -> HttpResponse:
        """
        Send one request.

        Raises:
            TransportError: If the request could not be delivered or answered
        """
        ...

    def close(self) -> None:
        ...


class RequestsHttpClient:
    """
    HttpClient backed by requests.

    Args:
        timeout: Per-request timeout in seconds
        keep_alive: Reuse connections through a shared Session
        ignore_local_proxy: Ignore proxy settings from the environment
    """

    def __init__(
        self,
        timeout: float = 120.0,
        keep_alive: bool = True,
        ignore_local_proxy: bool = False,
    ) -> None:
        self.timeout = timeout
        self.keep_alive = keep_alive
        self.session = requests.Session()
        if ignore_local_proxy:
            self.session.trust_env = False
        if not keep_alive:
            self.session.headers["Connection"] = "close"

    def send(
        self, method: str, url: str, headers: dict[str, str], body: str | None
    ) -> HttpResponse:
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                data=body.encode("utf-8") if body is not None else None,
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {type(e).__name__}: {e}") from e

        # Remote ends are expected to answer in UTF-8 JSON
        response.encoding = response.encoding or "utf-8"
        return HttpResponse(status=response.status_code, body=response.text)

    def close(self) -> None:
        self.session.close()

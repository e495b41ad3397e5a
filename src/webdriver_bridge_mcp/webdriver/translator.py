"""
Command translator

Turns an abstract command into the literal HTTP request for a session's
dialect, and turns the literal HTTP response back into a dialect-neutral
TranslatedCommandResult with the remote error code mapped to an ErrorKind.
"""

import base64
import json
from dataclasses import asdict, dataclass
from typing import Any
from urllib.parse import quote, urlsplit, urlunsplit

from .. import __version__
from ..utils.logging_config import get_logger
from .capabilities import Dialect
from .commands import COMMANDS, ELEMENT_KEY, LEGACY_ELEMENT_KEY, EndpointSpec
from .errors import (
    ErrorKind,
    MalformedResponseError,
    MissingParameterError,
    RemoteCommandError,
    UnknownCommandError,
    UnsupportedCommandError,
    exception_for,
    kind_for_legacy_status,
    kind_for_w3c_error,
)
from .http_client import HttpRequest

logger = get_logger(__name__)

USER_AGENT = f"webdriver-bridge-mcp/{__version__} (python)"


@dataclass(frozen=True)
class TranslatedCommandResult:
    """Dialect-neutral outcome of one command."""

    success: bool
    value: Any = None
    error: ErrorKind | None = None
    message: str = ""
    http_status: int | None = None
    remote_error: str | int | None = None
    stacktrace: str | None = None

    def raise_for_status(self) -> None:
        """Raise the exception matching this result's error kind, if it failed."""
        if self.success:
            return
        kind = self.error or ErrorKind.UNKNOWN_REMOTE_ERROR
        exc_class = exception_for(kind)
        if issubclass(exc_class, RemoteCommandError):
            raise exc_class(
                self.message,
                kind=kind,
                http_status=self.http_status,
                remote_error=self.remote_error,
                stacktrace=self.stacktrace,
            )
        raise exc_class(self.message, kind)

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["error"] = self.error.value if self.error else None
        return result


def _is_status_code(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_body(body: str | None) -> Any:
    """
    Decode a response body as JSON.

    Raises:
        MalformedResponseError: If the body is empty or not JSON
    """
    if not body:
        raise MalformedResponseError("Empty response body")
    try:
        return json.loads(body)
    except ValueError as e:
        snippet = body[:200]
        raise MalformedResponseError(f"Response body is not JSON: {e} (body: {snippet!r})") from e


def _element_id(value: Any) -> Any:
    """Accept either a raw element id or an element reference as a path parameter."""
    if isinstance(value, dict):
        for key in (ELEMENT_KEY, LEGACY_ELEMENT_KEY):
            if isinstance(value.get(key), str):
                return value[key]
    return value


def _to_wire_elements(value: Any, dialect: Dialect) -> Any:
    """Rewrite element references inside request parameters for the dialect."""
    if isinstance(value, list):
        return [_to_wire_elements(item, dialect) for item in value]
    if not isinstance(value, dict):
        return value
    element_id = _element_id(value)
    if element_id is not value and set(value) <= {ELEMENT_KEY, LEGACY_ELEMENT_KEY}:
        key = LEGACY_ELEMENT_KEY if dialect is Dialect.LEGACY else ELEMENT_KEY
        return {key: element_id}
    return {k: _to_wire_elements(v, dialect) for k, v in value.items()}


def _to_neutral_elements(value: Any) -> Any:
    """Rewrite legacy element references in a response payload to the W3C key."""
    if isinstance(value, list):
        return [_to_neutral_elements(item) for item in value]
    if not isinstance(value, dict):
        return value
    if isinstance(value.get(LEGACY_ELEMENT_KEY), str) and set(value) <= {
        ELEMENT_KEY,
        LEGACY_ELEMENT_KEY,
    }:
        return {ELEMENT_KEY: value.get(ELEMENT_KEY, value[LEGACY_ELEMENT_KEY])}
    return {k: _to_neutral_elements(v) for k, v in value.items()}


def _malformed(http_status: int, message: str) -> TranslatedCommandResult:
    return TranslatedCommandResult(
        success=False,
        error=ErrorKind.MALFORMED_RESPONSE,
        message=message,
        http_status=http_status,
    )


def _legacy_failure(http_status: int, status: int, value: Any) -> TranslatedCommandResult:
    if isinstance(value, dict):
        message = str(value.get("message") or "")
        stacktrace = value.get("stackTrace") or value.get("stacktrace")
    else:
        message, stacktrace = (str(value) if value else ""), None
    return TranslatedCommandResult(
        success=False,
        error=kind_for_legacy_status(status),
        message=message,
        http_status=http_status,
        remote_error=status,
        stacktrace=str(stacktrace) if stacktrace else None,
    )


def _w3c_failure(http_status: int, value: dict[str, Any]) -> TranslatedCommandResult:
    error = value["error"]
    stacktrace = value.get("stacktrace")
    return TranslatedCommandResult(
        success=False,
        error=kind_for_w3c_error(error),
        message=str(value.get("message") or ""),
        http_status=http_status,
        remote_error=error,
        stacktrace=str(stacktrace) if stacktrace else None,
    )


def _has_w3c_error(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("error"), str)


class CommandTranslator:
    """
    Translator bound to one remote end.

    Args:
        base_url: Remote end URL (e.g. "http://127.0.0.1:4444/wd/hub"); user
            info in the URL becomes an HTTP Basic Authorization header
    """

    def __init__(self, base_url: str) -> None:
        parts = urlsplit(base_url)
        self.headers: dict[str, str] = {
            "Accept": "application/json",
            "Content-Type": "application/json;charset=UTF-8",
            "User-Agent": USER_AGENT,
        }
        if parts.username is not None:
            credentials = f"{parts.username}:{parts.password or ''}".encode("utf-8")
            self.headers["Authorization"] = "Basic " + base64.b64encode(credentials).decode("ascii")
            netloc = parts.hostname or ""
            if parts.port:
                netloc = f"{netloc}:{parts.port}"
            parts = parts._replace(netloc=netloc)
        self.base_url = urlunsplit(parts).rstrip("/")

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def _endpoint(self, dialect: Dialect, command: str) -> EndpointSpec:
        entry = COMMANDS.get(command)
        if entry is None:
            raise UnknownCommandError(f"Unknown command: {command}")
        endpoint = entry.endpoint(dialect)
        if endpoint is None:
            raise UnsupportedCommandError(
                f"Command {command} is not available in the {dialect.value} dialect"
            )
        return endpoint

    def translate(
        self,
        dialect: Dialect,
        command: str,
        params: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> HttpRequest:
        """
        Build the literal HTTP request for an abstract command.

        Args:
            dialect: Dialect of the session
            command: Abstract command id from the catalog
            params: Dialect-neutral parameters
            session_id: Session id, required by session-scoped commands

        Returns:
            HttpRequest ready for the HTTP client

        Raises:
            UnknownCommandError: If the command is not in the catalog
            UnsupportedCommandError: If the dialect has no endpoint for it
            MissingParameterError: If a required parameter is missing
        """
        endpoint = self._endpoint(dialect, command)
        values = {**endpoint.defaults, **(params or {})}
        values.pop("sessionId", None)

        path = endpoint.path
        if endpoint.requires_session:
            if not session_id:
                raise MissingParameterError(command, "sessionId")
            path = path.replace("{sessionId}", quote(session_id, safe=""))

        # Body parameters may be JSON null (switchToFrame uses it for the top frame)
        for name in endpoint.path_params:
            if values.get(name) is None:
                raise MissingParameterError(command, name)
        for name in endpoint.body_params:
            if name not in values:
                raise MissingParameterError(command, name)

        for name in endpoint.path_params:
            raw = values.pop(name)
            if name == "id":
                raw = _element_id(raw)
            path = path.replace("{" + name + "}", quote(str(raw), safe=""))

        body = None
        if endpoint.method == "POST":
            payload = dict(values)
            if endpoint.transform is not None:
                payload = endpoint.transform(payload)
            payload = {endpoint.renames.get(k, k): v for k, v in payload.items()}
            body = json.dumps(_to_wire_elements(payload, dialect))
        elif values:
            logger.debug(f"Ignoring body parameters for {endpoint.method} {command}: {sorted(values)}")

        return HttpRequest(
            method=endpoint.method,
            url=self.base_url + path,
            headers=dict(self.headers),
            body=body,
        )

    def new_session_request(self, payload: dict[str, Any]) -> HttpRequest:
        """Build the new-session request for an already assembled handshake body."""
        endpoint = self._endpoint(Dialect.W3C, "newSession")
        return HttpRequest(
            method=endpoint.method,
            url=self.base_url + endpoint.path,
            headers=dict(self.headers),
            body=json.dumps(payload),
        )

    # -------------------------------------------------------------------------
    # Responses
    # -------------------------------------------------------------------------

    def decode(
        self, dialect: Dialect, command: str, http_status: int, body: str | None
    ) -> TranslatedCommandResult:
        """
        Decode a literal HTTP response into a dialect-neutral result.

        Never raises for remote or malformed responses; failures are reported
        in the result. Unparseable bodies and bodies missing fields required
        by the dialect yield ErrorKind.MALFORMED_RESPONSE.
        """
        try:
            payload = parse_body(body)
        except MalformedResponseError as e:
            return _malformed(http_status, f"{command}: {e.message}")
        if not isinstance(payload, dict):
            return _malformed(http_status, f"{command}: response is not a JSON object")

        if dialect is Dialect.LEGACY:
            return self._decode_legacy(command, http_status, payload)
        return self._decode_w3c(command, http_status, payload)

    def _decode_legacy(
        self, command: str, http_status: int, payload: dict[str, Any]
    ) -> TranslatedCommandResult:
        status = payload.get("status")
        value = payload.get("value")

        if not _is_status_code(status):
            if http_status >= 400 and _has_w3c_error(value):
                logger.warning(f"{command}: legacy session answered with a W3C error body")
                return _w3c_failure(http_status, value)
            return _malformed(http_status, f"{command}: legacy response has no integer status")

        if status == 0 and http_status == 200:
            return TranslatedCommandResult(
                success=True, value=_to_neutral_elements(value), http_status=http_status
            )
        if status == 0:
            return TranslatedCommandResult(
                success=False,
                error=ErrorKind.UNKNOWN_REMOTE_ERROR,
                message=f"HTTP {http_status} with legacy status 0",
                http_status=http_status,
                remote_error=status,
            )
        return _legacy_failure(http_status, status, value)

    def _decode_w3c(
        self, command: str, http_status: int, payload: dict[str, Any]
    ) -> TranslatedCommandResult:
        if "value" not in payload:
            return _malformed(http_status, f"{command}: W3C response has no value")
        value = payload["value"]

        status = payload.get("status")
        if _is_status_code(status) and status != 0:
            logger.warning(f"{command}: W3C session answered with legacy status {status}")
            return _legacy_failure(http_status, status, value)

        if 200 <= http_status < 300:
            return TranslatedCommandResult(
                success=True, value=_to_neutral_elements(value), http_status=http_status
            )
        if 400 <= http_status < 600:
            if not _has_w3c_error(value):
                return _malformed(http_status, f"{command}: W3C error response has no error code")
            return _w3c_failure(http_status, value)
        return _malformed(http_status, f"{command}: unexpected HTTP status {http_status}")

    def remote_failure(self, http_status: int, payload: Any) -> TranslatedCommandResult | None:
        """
        Recognise an error envelope of either dialect in a new-session reply.

        Returns:
            A failed result if the payload is an error envelope, otherwise None
        """
        if not isinstance(payload, dict):
            return None
        status = payload.get("status")
        value = payload.get("value")
        if _is_status_code(status) and status != 0:
            return _legacy_failure(http_status, status, value)
        if _has_w3c_error(value) and not isinstance(value.get("sessionId"), str):
            return _w3c_failure(http_status, value)
        return None

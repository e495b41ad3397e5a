"""
Session bridge

Owns one remote session: negotiates it with a single request that both
dialects understand, records the dialect the remote end answered in, and
routes every later command through the translator for that dialect.

States:
    UNINITIALIZED -> NEGOTIATING -> ACTIVE -> CLOSED
                          |
                          +-> FAILED
"""

import logging
import threading
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..utils.logging_config import get_logger, log_dict
from .capabilities import CapabilitySet, Dialect, MergePolicy
from .dialect import detect_dialect
from .errors import InvalidStateError, SessionBusyError, TransportError
from .http_client import HttpClient, HttpRequest, HttpResponse, RequestsHttpClient
from .translator import CommandTranslator, TranslatedCommandResult, parse_body

if TYPE_CHECKING:
    from ..config import BridgeConfig

logger = get_logger(__name__)


class BridgeState(str, Enum):
    UNINITIALIZED = "uninitialized"
    NEGOTIATING = "negotiating"
    ACTIVE = "active"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True)
class Session:
    """An established remote session."""

    session_id: str
    dialect: Dialect
    capabilities: CapabilitySet
    base_url: str

    @property
    def is_spec_compliant(self) -> bool:
        return self.dialect is Dialect.W3C


class SessionBridge:
    """
    One bridge per remote session.

    Calls are serialised: a second caller blocks until the outstanding call
    completes, or fails with SessionBusyError once busy_timeout elapses.

    Args:
        base_url: Remote end URL
        http_client: Transport (default: RequestsHttpClient owned by the bridge)
        busy_timeout: Seconds to wait for an in-flight call; None waits forever
        gecko_compat: Also send the requiredCapabilities fields older
            geckodriver builds look for
        strict_w3c_caps: Strip non-W3C, non-vendor names from the W3C half of
            the handshake
        merge_policy: Precedence between alwaysMatch and firstMatch[0] when
            reading structured capabilities
        default_capabilities: Entries applied underneath every desired set
    """

    def __init__(
        self,
        base_url: str,
        http_client: HttpClient | None = None,
        *,
        busy_timeout: float | None = None,
        gecko_compat: bool = False,
        strict_w3c_caps: bool = False,
        merge_policy: MergePolicy = MergePolicy.ALWAYS_MATCH_WINS,
        default_capabilities: Mapping[str, Any] | None = None,
    ) -> None:
        self.translator = CommandTranslator(base_url)
        self.base_url = self.translator.base_url
        self._owns_client = http_client is None
        self._http: HttpClient = http_client if http_client is not None else RequestsHttpClient()
        self.busy_timeout = busy_timeout
        self.gecko_compat = gecko_compat
        self.strict_w3c_caps = strict_w3c_caps
        self.merge_policy = merge_policy
        self.default_capabilities = dict(default_capabilities or {})

        self._lock = threading.Lock()
        self._state = BridgeState.UNINITIALIZED
        self._session: Session | None = None

    @classmethod
    def from_config(
        cls,
        config: "BridgeConfig",
        http_client: HttpClient | None = None,
        base_url: str | None = None,
    ) -> "SessionBridge":
        """
        Build a bridge from loaded configuration.

        Args:
            config: Configuration from load_bridge_config()
            http_client: Transport override; by default one is built from the
                request_timeout, keep_alive and ignore_local_proxy settings
            base_url: Remote end URL override
        """
        bridge = cls(
            base_url or config["remote_url"],
            http_client
            or RequestsHttpClient(
                timeout=config["request_timeout"],
                keep_alive=config["keep_alive"],
                ignore_local_proxy=config["ignore_local_proxy"],
            ),
            busy_timeout=config["busy_timeout"],
            gecko_compat=config["gecko_compat"],
            strict_w3c_caps=config["strict_w3c_caps"],
            merge_policy=config["merge_policy"],
            default_capabilities=config["default_capabilities"],
        )
        bridge._owns_client = http_client is None
        return bridge

    def __enter__(self) -> "SessionBridge":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<SessionBridge {self.base_url} state={self._state.value}>"

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def dialect(self) -> Dialect | None:
        session = self._session
        return session.dialect if session else None

    @property
    def session_id(self) -> str | None:
        session = self._session
        return session.session_id if session else None

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @contextmanager
    def _exclusive(self, operation: str) -> Iterator[None]:
        if self.busy_timeout is None:
            acquired = self._lock.acquire()
        else:
            acquired = self._lock.acquire(timeout=self.busy_timeout)
        if not acquired:
            raise SessionBusyError(
                f"{operation}: another call is still in flight after {self.busy_timeout}s"
            )
        try:
            yield
        finally:
            self._lock.release()

    def _send(self, request: HttpRequest, command: str, log_body: bool = True) -> HttpResponse:
        start_time = time.time()
        logger.info(f"REMOTE_END → {command}: {request.method} {request.url}")
        if log_body and request.body is not None:
            logger.debug(f"REMOTE_END   {command} body: {request.body}")

        try:
            response = self._http.send(request.method, request.url, request.headers, request.body)
        except (TransportError, OSError) as e:
            duration = (time.time() - start_time) * 1000  # ms
            logger.error(
                f"REMOTE_END ✗ {command} failed ({duration:.2f}ms) - {type(e).__name__}: {e}"
            )
            if isinstance(e, TransportError):
                raise
            raise TransportError(f"{request.method} {request.url} failed: {e}") from e

        duration = (time.time() - start_time) * 1000  # ms
        logger.info(f"REMOTE_END ← {command}: HTTP {response.status} ({duration:.2f}ms)")
        logger.debug(f"REMOTE_END   {command} response: {response.body[:2000]}")
        return response

    def _handshake_payload(self, desired: CapabilitySet) -> dict[str, Any]:
        """Build the one new-session body both dialects accept."""
        legacy = desired.serialize(Dialect.LEGACY)
        w3c_source = desired.to_w3c_strict() if self.strict_w3c_caps else desired
        payload: dict[str, Any] = {"desiredCapabilities": legacy}
        payload.update(w3c_source.serialize(Dialect.W3C))

        if self.gecko_compat:
            payload["requiredCapabilities"] = {}
            payload["capabilities"]["desiredCapabilities"] = legacy
            payload["capabilities"]["requiredCapabilities"] = {}
        return payload

    def _negotiate(self, payload: dict[str, Any]) -> Session:
        log_dict(logger, "REMOTE_END   newSession body:", payload, level=logging.DEBUG)
        request = self.translator.new_session_request(payload)
        response = self._send(request, "newSession", log_body=False)
        body = parse_body(response.body)

        failure = self.translator.remote_failure(response.status, body)
        if failure is not None:
            logger.error(
                f"Session creation rejected: {failure.error.value if failure.error else None} "
                f"(HTTP {response.status}) {failure.message}"
            )
            failure.raise_for_status()

        detection = detect_dialect(body, self.merge_policy)
        session = Session(
            session_id=detection.session_id,
            dialect=detection.dialect,
            capabilities=detection.capabilities,
            base_url=self.base_url,
        )
        self._session = session
        self._state = BridgeState.ACTIVE
        logger.info(
            f"Session {session.session_id} active: dialect={session.dialect.value}, "
            f"browser={session.capabilities.browser_name}"
        )
        log_dict(
            logger, "Negotiated capabilities:", session.capabilities.entries, level=logging.DEBUG
        )
        return session

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create_session(self, desired: CapabilitySet | Mapping[str, Any]) -> Session:
        """
        Negotiate a session with the remote end.

        Args:
            desired: Desired capabilities

        Returns:
            The established Session

        Raises:
            InvalidStateError: If the bridge is not UNINITIALIZED
            CapabilityConflictError: If the strict W3C conversion makes the
                alternatives disagree with alwaysMatch; the bridge stays UNINITIALIZED
            RemoteCommandError: If the remote end refused the session
            ProtocolDetectionError: If the reply matches neither dialect
            MalformedResponseError: If the reply is not JSON
            TransportError: If the request could not be delivered
        """
        if not isinstance(desired, CapabilitySet):
            desired = CapabilitySet(desired)
        if self.default_capabilities:
            alternatives = desired.first_match
            # Defaults never shadow a name the caller set, here or in any alternative
            defaults = {
                name: value
                for name, value in self.default_capabilities.items()
                if not desired.has(name) and all(name not in alt for alt in alternatives)
            }
            desired = CapabilitySet({**defaults, **desired.entries}, alternatives)

        with self._exclusive("create_session"):
            if self._state is not BridgeState.UNINITIALIZED:
                raise InvalidStateError(
                    f"create_session requires state uninitialized, bridge is {self._state.value}"
                )
            payload = self._handshake_payload(desired)
            self._state = BridgeState.NEGOTIATING
            try:
                return self._negotiate(payload)
            finally:
                if self._state is BridgeState.NEGOTIATING:
                    self._state = BridgeState.FAILED
                    logger.error(f"Session negotiation with {self.base_url} failed")

    def execute(
        self, command: str, params: dict[str, Any] | None = None
    ) -> TranslatedCommandResult:
        """
        Run a catalog command in the active session.

        Remote errors are reported in the returned result; call
        raise_for_status() on it to turn them into exceptions.

        Raises:
            InvalidStateError: If no session is active
            UnknownCommandError: If the command is not in the catalog
            UnsupportedCommandError: If the session's dialect lacks the command
            MissingParameterError: If a required parameter is missing
            TransportError: If the request could not be delivered
        """
        with self._exclusive(command):
            session = self._session
            if self._state is not BridgeState.ACTIVE or session is None:
                raise InvalidStateError(
                    f"{command} requires an active session, bridge is {self._state.value}"
                )
            request = self.translator.translate(
                session.dialect, command, params, session.session_id
            )
            response = self._send(request, command)
            result = self.translator.decode(session.dialect, command, response.status, response.body)
            if not result.success:
                logger.warning(
                    f"{command} failed: {result.error.value if result.error else None} "
                    f"{result.message}"
                )
            return result

    def end_session(self) -> None:
        """
        Delete the remote session and discard local state.

        Safe to call in any state. Only a transport failure while deleting an
        active session is raised, after the bridge has moved to CLOSED.
        """
        with self._exclusive("end_session"):
            if self._state is BridgeState.UNINITIALIZED:
                self._state = BridgeState.CLOSED
                return
            if self._state is not BridgeState.ACTIVE or self._session is None:
                logger.debug(f"end_session ignored in state {self._state.value}")
                return

            session = self._session
            try:
                request = self.translator.translate(
                    session.dialect, "deleteSession", session_id=session.session_id
                )
                response = self._send(request, "deleteSession")
                result = self.translator.decode(
                    session.dialect, "deleteSession", response.status, response.body
                )
                if not result.success:
                    logger.warning(
                        f"deleteSession for {session.session_id} reported "
                        f"{result.error.value if result.error else None}: {result.message}"
                    )
            finally:
                self._state = BridgeState.CLOSED
                self._session = None
                logger.info(f"Session {session.session_id} closed")

    def get_capabilities(self) -> CapabilitySet:
        """Snapshot of the actual capabilities of the active session."""
        session = self._session
        if self._state is not BridgeState.ACTIVE or session is None:
            raise InvalidStateError(
                f"get_capabilities requires an active session, bridge is {self._state.value}"
            )
        return session.capabilities

    def status(self) -> TranslatedCommandResult:
        """Query the remote end's readiness; needs no session."""
        with self._exclusive("status"):
            dialect = self.dialect or Dialect.W3C
            request = self.translator.translate(dialect, "status")
            response = self._send(request, "status")
            return self.translator.decode(dialect, "status", response.status, response.body)

    def close(self) -> None:
        """End the session and release the HTTP client if the bridge created it."""
        try:
            self.end_session()
        finally:
            if self._owns_client:
                self._http.close()

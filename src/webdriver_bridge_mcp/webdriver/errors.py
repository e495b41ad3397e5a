"""
Error model for the WebDriver bridge

Defines the dialect-independent error kinds, the two fixed tables that map
remote error codes onto them (legacy numeric status codes and W3C error
strings), and the exception hierarchy raised by the bridge.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class ErrorKind(str, Enum):
    """Abstract error kinds shared by both dialects."""

    # Remote-reported
    INVALID_SESSION_ID = "InvalidSessionId"
    NO_SUCH_ELEMENT = "NoSuchElement"
    STALE_ELEMENT_REFERENCE = "StaleElementReference"
    TIMEOUT = "Timeout"
    UNKNOWN_COMMAND = "UnknownCommand"
    NO_SUCH_FRAME = "NoSuchFrame"
    NO_SUCH_WINDOW = "NoSuchWindow"
    NO_SUCH_ALERT = "NoSuchAlert"
    NO_SUCH_COOKIE = "NoSuchCookie"
    NO_SUCH_SHADOW_ROOT = "NoSuchShadowRoot"
    DETACHED_SHADOW_ROOT = "DetachedShadowRoot"
    UNEXPECTED_ALERT_OPEN = "UnexpectedAlertOpen"
    JAVASCRIPT_ERROR = "JavascriptError"
    INVALID_SELECTOR = "InvalidSelector"
    INVALID_ARGUMENT = "InvalidArgument"
    ELEMENT_NOT_INTERACTABLE = "ElementNotInteractable"
    ELEMENT_NOT_SELECTABLE = "ElementNotSelectable"
    ELEMENT_CLICK_INTERCEPTED = "ElementClickIntercepted"
    INVALID_ELEMENT_STATE = "InvalidElementState"
    SCRIPT_TIMEOUT = "ScriptTimeout"
    SESSION_NOT_CREATED = "SessionNotCreated"
    INVALID_COOKIE_DOMAIN = "InvalidCookieDomain"
    UNABLE_TO_SET_COOKIE = "UnableToSetCookie"
    UNABLE_TO_CAPTURE_SCREEN = "UnableToCaptureScreen"
    MOVE_TARGET_OUT_OF_BOUNDS = "MoveTargetOutOfBounds"
    INSECURE_CERTIFICATE = "InsecureCertificate"
    UNSUPPORTED_OPERATION = "UnsupportedOperation"
    UNKNOWN_REMOTE_ERROR = "UnknownRemoteError"

    # Local
    CAPABILITY_CONFLICT = "CapabilityConflict"
    PROTOCOL_DETECTION_ERROR = "ProtocolDetectionError"
    MALFORMED_RESPONSE = "MalformedResponse"
    INVALID_STATE = "InvalidState"
    SESSION_BUSY = "SessionBusy"
    TRANSPORT_ERROR = "TransportError"
    MISSING_PARAMETER = "MissingParameter"


# JSON Wire Protocol status codes. 0 is success and is never looked up here.
LEGACY_STATUS_KINDS: Mapping[int, ErrorKind] = MappingProxyType(
    {
        6: ErrorKind.INVALID_SESSION_ID,
        7: ErrorKind.NO_SUCH_ELEMENT,
        8: ErrorKind.NO_SUCH_FRAME,
        9: ErrorKind.UNKNOWN_COMMAND,
        10: ErrorKind.STALE_ELEMENT_REFERENCE,
        11: ErrorKind.ELEMENT_NOT_INTERACTABLE,
        12: ErrorKind.INVALID_ELEMENT_STATE,
        13: ErrorKind.UNKNOWN_REMOTE_ERROR,
        15: ErrorKind.ELEMENT_NOT_SELECTABLE,
        17: ErrorKind.JAVASCRIPT_ERROR,
        19: ErrorKind.INVALID_SELECTOR,
        21: ErrorKind.TIMEOUT,
        23: ErrorKind.NO_SUCH_WINDOW,
        24: ErrorKind.INVALID_COOKIE_DOMAIN,
        25: ErrorKind.UNABLE_TO_SET_COOKIE,
        26: ErrorKind.UNEXPECTED_ALERT_OPEN,
        27: ErrorKind.NO_SUCH_ALERT,
        28: ErrorKind.SCRIPT_TIMEOUT,
        29: ErrorKind.INVALID_ARGUMENT,
        30: ErrorKind.UNSUPPORTED_OPERATION,
        31: ErrorKind.UNSUPPORTED_OPERATION,
        32: ErrorKind.INVALID_SELECTOR,
        33: ErrorKind.SESSION_NOT_CREATED,
        34: ErrorKind.MOVE_TARGET_OUT_OF_BOUNDS,
        51: ErrorKind.INVALID_SELECTOR,
        52: ErrorKind.INVALID_SELECTOR,
        405: ErrorKind.UNKNOWN_COMMAND,
    }
)

W3C_ERROR_KINDS: Mapping[str, ErrorKind] = MappingProxyType(
    {
        "element click intercepted": ErrorKind.ELEMENT_CLICK_INTERCEPTED,
        "element not interactable": ErrorKind.ELEMENT_NOT_INTERACTABLE,
        "element not selectable": ErrorKind.ELEMENT_NOT_SELECTABLE,
        "insecure certificate": ErrorKind.INSECURE_CERTIFICATE,
        "invalid argument": ErrorKind.INVALID_ARGUMENT,
        "invalid cookie domain": ErrorKind.INVALID_COOKIE_DOMAIN,
        "invalid element state": ErrorKind.INVALID_ELEMENT_STATE,
        "invalid selector": ErrorKind.INVALID_SELECTOR,
        "invalid session id": ErrorKind.INVALID_SESSION_ID,
        "javascript error": ErrorKind.JAVASCRIPT_ERROR,
        "move target out of bounds": ErrorKind.MOVE_TARGET_OUT_OF_BOUNDS,
        "no such alert": ErrorKind.NO_SUCH_ALERT,
        "no such cookie": ErrorKind.NO_SUCH_COOKIE,
        "no such element": ErrorKind.NO_SUCH_ELEMENT,
        "no such frame": ErrorKind.NO_SUCH_FRAME,
        "no such shadow root": ErrorKind.NO_SUCH_SHADOW_ROOT,
        "no such window": ErrorKind.NO_SUCH_WINDOW,
        "detached shadow root": ErrorKind.DETACHED_SHADOW_ROOT,
        "script timeout": ErrorKind.SCRIPT_TIMEOUT,
        "session not created": ErrorKind.SESSION_NOT_CREATED,
        "stale element reference": ErrorKind.STALE_ELEMENT_REFERENCE,
        "timeout": ErrorKind.TIMEOUT,
        "unable to capture screen": ErrorKind.UNABLE_TO_CAPTURE_SCREEN,
        "unable to set cookie": ErrorKind.UNABLE_TO_SET_COOKIE,
        "unexpected alert open": ErrorKind.UNEXPECTED_ALERT_OPEN,
        "unknown command": ErrorKind.UNKNOWN_COMMAND,
        "unknown error": ErrorKind.UNKNOWN_REMOTE_ERROR,
        "unknown method": ErrorKind.UNKNOWN_COMMAND,
        "unsupported operation": ErrorKind.UNSUPPORTED_OPERATION,
    }
)


def kind_for_legacy_status(status: int) -> ErrorKind:
    """Map a legacy status code to an error kind (unmapped -> UnknownRemoteError)."""
    return LEGACY_STATUS_KINDS.get(status, ErrorKind.UNKNOWN_REMOTE_ERROR)


def kind_for_w3c_error(error: str) -> ErrorKind:
    """Map a W3C error string to an error kind (unmapped -> UnknownRemoteError)."""
    return W3C_ERROR_KINDS.get(error, ErrorKind.UNKNOWN_REMOTE_ERROR)


class WebDriverBridgeError(Exception):
    """Base exception for the WebDriver bridge."""

    kind: ErrorKind = ErrorKind.UNKNOWN_REMOTE_ERROR

    def __init__(self, message: str, kind: ErrorKind | None = None):
        if kind is not None:
            self.kind = kind
        self.message = message
        super().__init__(message)


class CapabilityConflictError(WebDriverBridgeError):
    """alwaysMatch and a firstMatch alternative disagree on a key."""

    kind = ErrorKind.CAPABILITY_CONFLICT


class ProtocolDetectionError(WebDriverBridgeError):
    """The session-creation reply matches neither dialect."""

    kind = ErrorKind.PROTOCOL_DETECTION_ERROR


class MalformedResponseError(WebDriverBridgeError):
    """A response body is not JSON or lacks fields required by its dialect."""

    kind = ErrorKind.MALFORMED_RESPONSE


class InvalidStateError(WebDriverBridgeError):
    """Operation not allowed in the bridge's current state."""

    kind = ErrorKind.INVALID_STATE


class SessionBusyError(WebDriverBridgeError):
    """Another call held the session for longer than the busy timeout."""

    kind = ErrorKind.SESSION_BUSY


class TransportError(WebDriverBridgeError):
    """The HTTP collaborator failed to deliver a request."""

    kind = ErrorKind.TRANSPORT_ERROR


class MissingParameterError(WebDriverBridgeError):
    """A required path or body parameter was not supplied."""

    kind = ErrorKind.MISSING_PARAMETER

    def __init__(self, command: str, parameter: str):
        self.command = command
        self.parameter = parameter
        super().__init__(f"Missing parameter: {parameter} (command {command})")


class UnknownCommandError(WebDriverBridgeError):
    """The command is unknown, locally (not in the catalog) or to the remote end."""

    kind = ErrorKind.UNKNOWN_COMMAND


class UnsupportedCommandError(WebDriverBridgeError):
    """The command exists but has no endpoint in the session's dialect."""

    kind = ErrorKind.UNSUPPORTED_OPERATION


class RemoteCommandError(WebDriverBridgeError):
    """An error reported by the remote end."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        http_status: int | None = None,
        remote_error: str | int | None = None,
        stacktrace: str | None = None,
    ):
        self.http_status = http_status
        self.remote_error = remote_error
        self.stacktrace = stacktrace
        super().__init__(message, kind)

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class NoSuchElementError(RemoteCommandError):
    kind = ErrorKind.NO_SUCH_ELEMENT


class StaleElementReferenceError(RemoteCommandError):
    kind = ErrorKind.STALE_ELEMENT_REFERENCE


class CommandTimeoutError(RemoteCommandError):
    kind = ErrorKind.TIMEOUT


class InvalidSessionIdError(RemoteCommandError):
    kind = ErrorKind.INVALID_SESSION_ID


class SessionNotCreatedError(RemoteCommandError):
    kind = ErrorKind.SESSION_NOT_CREATED


class RemoteUnknownCommandError(RemoteCommandError, UnknownCommandError):
    kind = ErrorKind.UNKNOWN_COMMAND


_REMOTE_EXCEPTIONS: Mapping[ErrorKind, type[RemoteCommandError]] = MappingProxyType(
    {
        ErrorKind.NO_SUCH_ELEMENT: NoSuchElementError,
        ErrorKind.STALE_ELEMENT_REFERENCE: StaleElementReferenceError,
        ErrorKind.TIMEOUT: CommandTimeoutError,
        ErrorKind.INVALID_SESSION_ID: InvalidSessionIdError,
        ErrorKind.SESSION_NOT_CREATED: SessionNotCreatedError,
        ErrorKind.UNKNOWN_COMMAND: RemoteUnknownCommandError,
    }
)


def exception_for(kind: ErrorKind) -> type[WebDriverBridgeError]:
    """
    Get the exception class used to raise a failed result of the given kind.

    Args:
        kind: Error kind from a decoded result

    Returns:
        Exception class (RemoteCommandError for kinds without a dedicated class)
    """
    if kind is ErrorKind.MALFORMED_RESPONSE:
        return MalformedResponseError
    return _REMOTE_EXCEPTIONS.get(kind, RemoteCommandError)


def describe_error(error: WebDriverBridgeError) -> dict[str, Any]:
    """Flatten an exception into a JSON-friendly dict for tool responses and logs."""
    described: dict[str, Any] = {"error": error.kind.value, "message": error.message}
    if isinstance(error, RemoteCommandError):
        described["http_status"] = error.http_status
        described["remote_error"] = error.remote_error
    return described

"""
WebDriver protocol bridge

Capability model, command catalog, dialect detection, command translation
and the session state machine for talking to legacy JSON Wire Protocol and
W3C WebDriver remote ends through one interface.
"""

from .capabilities import ABSENT, CapabilitySet, Dialect, MergePolicy
from .commands import COMMANDS, ELEMENT_KEY, CommandEntry, EndpointSpec, describe_commands
from .dialect import Detection, detect_dialect
from .errors import (
    ErrorKind,
    InvalidStateError,
    MissingParameterError,
    RemoteCommandError,
    SessionBusyError,
    TransportError,
    WebDriverBridgeError,
)
from .http_client import HttpClient, HttpRequest, HttpResponse, RequestsHttpClient
from .session_bridge import BridgeState, Session, SessionBridge
from .translator import CommandTranslator, TranslatedCommandResult

__all__ = [
    # Capabilities
    "ABSENT",
    "CapabilitySet",
    "Dialect",
    "MergePolicy",
    # Catalog
    "COMMANDS",
    "ELEMENT_KEY",
    "CommandEntry",
    "EndpointSpec",
    "describe_commands",
    # Detection and translation
    "Detection",
    "detect_dialect",
    "CommandTranslator",
    "TranslatedCommandResult",
    # Session
    "BridgeState",
    "Session",
    "SessionBridge",
    # Transport
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "RequestsHttpClient",
    # Errors
    "ErrorKind",
    "InvalidStateError",
    "MissingParameterError",
    "RemoteCommandError",
    "SessionBusyError",
    "TransportError",
    "WebDriverBridgeError",
]

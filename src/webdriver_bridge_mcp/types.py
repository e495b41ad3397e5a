"""
Type Definitions

Define TypedDict classes for the responses returned by the MCP tools.
"""

from typing import Any

from typing_extensions import TypedDict


class SessionResponse(TypedDict, total=False):
    """
    Response for webdriver_create_session and webdriver_get_capabilities.

    is_spec_compliant is True when the remote end answered in the W3C dialect.
    """

    success: bool
    session_id: str
    dialect: str
    is_spec_compliant: bool
    capabilities: dict[str, Any]
    remote_url: str
    error: str | None
    message: str | None


class CommandResponse(TypedDict, total=False):
    """Response for webdriver_execute."""

    success: bool
    command: str
    value: Any
    error: str | None
    message: str | None
    http_status: int | None
    remote_error: str | int | None


class EndSessionResponse(TypedDict, total=False):
    success: bool
    session_id: str
    error: str | None
    message: str | None


class CommandDescription(TypedDict):
    """One catalog entry as listed by webdriver_list_commands."""

    command: str
    legacy: bool
    w3c: bool
    params: list[str]

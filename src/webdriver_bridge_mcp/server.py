"""
WebDriver Bridge MCP Server

An MCP server that drives browsers through WebDriver remote ends
(Selenium Grid, chromedriver, geckodriver, ...) regardless of whether they
speak the legacy JSON Wire Protocol or the W3C WebDriver protocol.

This server:
1. Negotiates sessions with a handshake both dialects accept
2. Detects the dialect from the remote end's reply
3. Translates abstract commands into the session's dialect
4. Maps remote error codes of either dialect onto one set of error kinds
"""

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from .config import BridgeConfig, load_bridge_config
from .types import CommandDescription, CommandResponse, EndSessionResponse, SessionResponse
from .utils.logging_config import get_logger, log_tool_result, setup_file_logging
from .webdriver import CapabilitySet, SessionBridge, WebDriverBridgeError, describe_commands
from .webdriver.errors import ErrorKind, InvalidStateError, describe_error
from .webdriver.http_client import HttpClient

# Configure logging using centralized utility
setup_file_logging(
    log_file=os.getenv("WEBDRIVER_BRIDGE_LOG_FILE", "logs/webdriver-bridge-mcp.log")
)
logger = get_logger(__name__)

logger.info(f"Python interpreter: {sys.executable}")
logger.info(f"Python version: {sys.version}")

# Global components
bridge_config: BridgeConfig | None = None
sessions: dict[str, SessionBridge] = {}


def _get_config() -> BridgeConfig:
    global bridge_config
    if bridge_config is None:
        bridge_config = load_bridge_config()
    return bridge_config


async def _close_all_sessions() -> None:
    while sessions:
        session_id, bridge = sessions.popitem()
        try:
            await asyncio.to_thread(bridge.close)
            logger.info(f"Closed session {session_id}")
        except WebDriverBridgeError as e:
            logger.error(f"Error closing session {session_id}: {e}")


@asynccontextmanager
async def lifespan_context(server):
    """Lifespan context manager for startup and shutdown"""
    logger.info("Starting WebDriver Bridge MCP...")

    try:
        config = _get_config()
        if config["debug"]:
            logging.getLogger().setLevel(logging.DEBUG)
        logger.info(f"Default remote end: {config['remote_url']}")
        logger.info("WebDriver Bridge MCP started successfully")

        # Yield control to the server
        yield

    except Exception as e:
        logger.error(f"Failed to start WebDriver Bridge MCP: {e}", exc_info=True)
        raise

    finally:
        logger.info("Shutting down WebDriver Bridge MCP...")
        await _close_all_sessions()
        logger.info("WebDriver Bridge MCP shut down successfully")


# Initialize the MCP server
mcp = FastMCP(
    name="WebDriver Bridge MCP",
    instructions="""
    This server drives browsers through WebDriver remote ends. It works with
    both legacy JSON Wire Protocol servers and W3C WebDriver servers; the
    protocol is detected when the session is created.

    Start with webdriver_create_session, then call webdriver_execute with a
    command name from webdriver_list_commands. Element references are always
    returned and accepted as {"element-6066-11e4-a52e-4f735466cecf": "<id>"}.
    Call webdriver_end_session when done.
    """,
    lifespan=lifespan_context,
)


# =============================================================================
# HELPERS
# =============================================================================


def _error_response(error: WebDriverBridgeError, **fields: Any) -> dict[str, Any]:
    return {"success": False, **fields, **describe_error(error)}


def _unknown_session(session_id: str, **fields: Any) -> dict[str, Any]:
    return {
        "success": False,
        **fields,
        "error": ErrorKind.INVALID_SESSION_ID.value,
        "message": f"No open session with id {session_id}",
    }


def _session_response(bridge: SessionBridge) -> SessionResponse:
    session = bridge.session
    if session is None:
        raise InvalidStateError(f"Bridge for {bridge.base_url} has no active session")
    return {
        "success": True,
        "session_id": session.session_id,
        "dialect": session.dialect.value,
        "is_spec_compliant": session.is_spec_compliant,
        "capabilities": session.capabilities.entries,
        "remote_url": session.base_url,
    }


async def _create_session(
    capabilities: dict[str, Any] | None = None,
    first_match: list[dict[str, Any]] | None = None,
    remote_url: str | None = None,
    http_client: HttpClient | None = None,
) -> SessionResponse:
    """
    Negotiate a new session and register it.

    Args:
        capabilities: alwaysMatch capabilities
        first_match: Optional firstMatch alternatives
        remote_url: Remote end override
        http_client: Transport override

    Returns:
        SessionResponse; failures are reported with success=False
    """
    try:
        desired = CapabilitySet(capabilities or {}, first_match)
    except TypeError as e:
        raise ValueError(str(e)) from e
    except WebDriverBridgeError as e:
        return _error_response(e)  # type: ignore[return-value]

    bridge = SessionBridge.from_config(_get_config(), http_client=http_client, base_url=remote_url)
    try:
        session = await asyncio.to_thread(bridge.create_session, desired)
    except WebDriverBridgeError as e:
        await asyncio.to_thread(bridge.close)
        return _error_response(e, remote_url=bridge.base_url)  # type: ignore[return-value]

    sessions[session.session_id] = bridge
    return _session_response(bridge)


async def _execute(
    session_id: str, command: str, params: dict[str, Any] | None = None
) -> CommandResponse:
    bridge = sessions.get(session_id)
    if bridge is None:
        return _unknown_session(session_id, command=command)  # type: ignore[return-value]

    try:
        result = await asyncio.to_thread(bridge.execute, command, params)
    except WebDriverBridgeError as e:
        return _error_response(e, command=command)  # type: ignore[return-value]

    return {
        "success": result.success,
        "command": command,
        "value": result.value,
        "error": result.error.value if result.error else None,
        "message": result.message or None,
        "http_status": result.http_status,
        "remote_error": result.remote_error,
    }


async def _end_session(session_id: str) -> EndSessionResponse:
    bridge = sessions.pop(session_id, None)
    if bridge is None:
        return _unknown_session(session_id, session_id=session_id)  # type: ignore[return-value]

    try:
        await asyncio.to_thread(bridge.close)
    except WebDriverBridgeError as e:
        # The session is discarded locally even when the remote end was unreachable
        return _error_response(e, session_id=session_id)  # type: ignore[return-value]
    return {"success": True, "session_id": session_id}


def _get_capabilities(session_id: str) -> SessionResponse:
    bridge = sessions.get(session_id)
    if bridge is None:
        return _unknown_session(session_id, session_id=session_id)  # type: ignore[return-value]
    try:
        bridge.get_capabilities()
        return _session_response(bridge)
    except WebDriverBridgeError as e:
        return _error_response(e, session_id=session_id)  # type: ignore[return-value]


# =============================================================================
# SESSION TOOLS
# =============================================================================


@mcp.tool()
@log_tool_result(logger)
async def webdriver_create_session(
    capabilities: dict[str, Any] | None = None,
    first_match: list[dict[str, Any]] | None = None,
    remote_url: str | None = None,
) -> SessionResponse:
    """
    Create a browser session on a WebDriver remote end.

    Args:
        capabilities: Desired capabilities, e.g. {"browserName": "firefox"}
        first_match: Alternative capability sets; the remote end picks the
            first it can satisfy (W3C remote ends only)
        remote_url: Remote end URL. Default: WEBDRIVER_BRIDGE_REMOTE_URL

    Returns:
        session_id, dialect ("legacy" or "w3c"), is_spec_compliant and the
        capabilities the remote end actually granted
    """
    return await _create_session(capabilities, first_match, remote_url)


@mcp.tool()
@log_tool_result(logger)
async def webdriver_execute(
    session_id: str,
    command: str,
    params: dict[str, Any] | None = None,
) -> CommandResponse:
    """
    Run a WebDriver command in an open session.

    Args:
        session_id: Id returned by webdriver_create_session
        command: Command name, e.g. "navigate", "findElement", "clickElement"
        params: Command parameters, e.g. {"url": "https://example.com"} or
            {"using": "css selector", "value": "#login"}

    Returns:
        success, value on success, or error kind and message on failure
    """
    return await _execute(session_id, command, params)


@mcp.tool()
@log_tool_result(logger)
async def webdriver_end_session(session_id: str) -> EndSessionResponse:
    """
    Close a session and its browser.

    Args:
        session_id: Id returned by webdriver_create_session
    """
    return await _end_session(session_id)


@mcp.tool()
@log_tool_result(logger)
async def webdriver_get_capabilities(session_id: str) -> SessionResponse:
    """Get the capabilities granted to an open session."""
    return _get_capabilities(session_id)


@mcp.tool()
@log_tool_result(logger)
async def webdriver_list_commands() -> list[CommandDescription]:
    """
    List the available command names.

    Each entry tells whether the command exists in the legacy and W3C
    dialects and which parameters it requires.
    """
    return describe_commands()  # type: ignore[return-value]


# =============================================================================
# RESOURCES
# =============================================================================


def _bridge_status() -> str:
    if not sessions:
        return "WebDriver Bridge MCP is running (no open sessions)"
    described = ", ".join(
        f"{session_id} [{bridge.dialect.value if bridge.dialect else bridge.state.value}]"
        for session_id, bridge in sessions.items()
    )
    return f"WebDriver Bridge MCP is running ({len(sessions)} open session(s): {described})"


@mcp.resource("webdriver-bridge://status")
async def get_bridge_status() -> str:
    """Get the current bridge status"""
    return _bridge_status()


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Run the MCP server"""
    logger.info("Initializing WebDriver Bridge MCP Server...")
    mcp.run()


if __name__ == "__main__":
    main()

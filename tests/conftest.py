"""
Pytest Configuration and Fixtures

This module provides shared fixtures for all tests.
"""

import pytest

from tests.fixtures.recording_http import RecordingHttpClient
from webdriver_bridge_mcp.webdriver import SessionBridge
from webdriver_bridge_mcp.webdriver.translator import CommandTranslator

REMOTE_URL = "http://127.0.0.1:4444/wd/hub"

LEGACY_SESSION_ID = "legacy-session-1"
W3C_SESSION_ID = "w3c-session-1"


@pytest.fixture
def legacy_new_session_reply() -> dict:
    """Reply of a JSON Wire Protocol remote end to the new-session request."""
    return {
        "sessionId": LEGACY_SESSION_ID,
        "status": 0,
        "value": {"browserName": "firefox", "version": "47.0.1", "platform": "LINUX"},
    }


@pytest.fixture
def w3c_new_session_reply() -> dict:
    """Reply of a W3C remote end to the new-session request."""
    return {
        "value": {
            "sessionId": W3C_SESSION_ID,
            "capabilities": {
                "browserName": "firefox",
                "browserVersion": "115.0",
                "platformName": "linux",
            },
        }
    }


@pytest.fixture
def http_client() -> RecordingHttpClient:
    return RecordingHttpClient()


@pytest.fixture
def bridge(http_client) -> SessionBridge:
    """Bridge in the UNINITIALIZED state wired to the recording stub."""
    return SessionBridge(REMOTE_URL, http_client)


@pytest.fixture
def legacy_bridge(http_client, legacy_new_session_reply) -> SessionBridge:
    """Bridge with an ACTIVE legacy session; the handshake request is recorded."""
    http_client.queue(200, legacy_new_session_reply)
    bridge = SessionBridge(REMOTE_URL, http_client)
    bridge.create_session({"browserName": "firefox"})
    return bridge


@pytest.fixture
def w3c_bridge(http_client, w3c_new_session_reply) -> SessionBridge:
    """Bridge with an ACTIVE W3C session; the handshake request is recorded."""
    http_client.queue(200, w3c_new_session_reply)
    bridge = SessionBridge(REMOTE_URL, http_client)
    bridge.create_session({"browserName": "firefox"})
    return bridge


@pytest.fixture
def translator() -> CommandTranslator:
    return CommandTranslator(REMOTE_URL)

"""Tests for dialect detection"""

import pytest

from webdriver_bridge_mcp.webdriver.capabilities import Dialect, MergePolicy
from webdriver_bridge_mcp.webdriver.dialect import detect_dialect
from webdriver_bridge_mcp.webdriver.errors import ProtocolDetectionError


class TestDetectDialect:
    """Tests for classifying new-session replies"""

    def test_w3c(self):
        detection = detect_dialect(
            {"value": {"sessionId": "abc", "capabilities": {"browserName": "firefox"}}}
        )

        assert detection.dialect is Dialect.W3C
        assert detection.session_id == "abc"
        assert detection.capabilities["browserName"] == "firefox"
        assert detection.capabilities.is_spec_compliant

    def test_legacy(self):
        detection = detect_dialect(
            {"sessionId": "abc", "status": 0, "value": {"browserName": "firefox"}}
        )

        assert detection.dialect is Dialect.LEGACY
        assert detection.session_id == "abc"
        assert detection.capabilities["browserName"] == "firefox"
        assert not detection.capabilities.is_spec_compliant

    def test_older_geckodriver_nested_value(self):
        detection = detect_dialect(
            {"value": {"sessionId": "abc", "value": {"browserName": "firefox"}}}
        )

        assert detection.dialect is Dialect.W3C
        assert detection.capabilities["browserName"] == "firefox"

    def test_merge_policy_is_passed_through(self):
        body = {
            "value": {
                "sessionId": "abc",
                "capabilities": {
                    "alwaysMatch": {"pageLoadStrategy": "eager"},
                    "firstMatch": [{"pageLoadStrategy": "none"}],
                },
            }
        }

        detection = detect_dialect(body, MergePolicy.FIRST_MATCH_WINS)

        assert detection.capabilities["pageLoadStrategy"] == "none"

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"value": {}},
            {"value": {"sessionId": ""}},
            {"sessionId": "abc", "status": 13, "value": {"message": "boom"}},
            {"sessionId": "abc", "status": True, "value": {}},
            {"sessionId": "abc", "status": 0, "value": "not-an-object"},
            {"status": 0, "value": {"sessionId": "abc", "capabilities": {}}},
            ["not", "an", "object"],
            None,
        ],
    )
    def test_unrecognised(self, body):
        with pytest.raises(ProtocolDetectionError):
            detect_dialect(body)

    def test_w3c_without_capabilities_is_unrecognised(self):
        with pytest.raises(ProtocolDetectionError):
            detect_dialect({"value": {"sessionId": "abc"}})

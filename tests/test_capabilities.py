"""Tests for the capability model"""

import pytest

from webdriver_bridge_mcp.webdriver.capabilities import (
    ABSENT,
    CapabilitySet,
    Dialect,
    MergePolicy,
    is_vendor_capability,
)
from webdriver_bridge_mcp.webdriver.errors import (
    CapabilityConflictError,
    ErrorKind,
    MalformedResponseError,
)


class TestConstruction:
    """Tests for building capability sets"""

    def test_accepts_json_values(self):
        caps = CapabilitySet(
            {
                "browserName": "firefox",
                "acceptInsecureCerts": True,
                "timeouts": {"implicit": 0, "script": 30000},
                "moz:firefoxOptions": {"args": ["-headless"]},
                "proxy": None,
                "scale": 1.5,
            }
        )

        assert len(caps) == 6
        assert caps["timeouts"] == {"implicit": 0, "script": 30000}

    def test_rejects_non_json_value(self):
        with pytest.raises(TypeError, match="browserName"):
            CapabilitySet({"browserName": object()})

    def test_rejects_nested_non_json_value(self):
        with pytest.raises(TypeError, match="goog:chromeOptions"):
            CapabilitySet({"goog:chromeOptions": {"args": [{1, 2}]}})

    def test_rejects_non_string_name(self):
        with pytest.raises(TypeError):
            CapabilitySet({1: "firefox"})

    def test_input_is_copied(self):
        source = {"moz:firefoxOptions": {"args": ["-headless"]}}
        caps = CapabilitySet(source)

        source["moz:firefoxOptions"]["args"].append("-private")

        assert caps["moz:firefoxOptions"] == {"args": ["-headless"]}

    def test_conflicting_first_match_raises(self):
        with pytest.raises(CapabilityConflictError, match="browserName") as exc_info:
            CapabilitySet({"browserName": "firefox"}, [{"browserName": "chrome"}])

        assert exc_info.value.kind is ErrorKind.CAPABILITY_CONFLICT

    def test_agreeing_first_match_is_allowed(self):
        caps = CapabilitySet({"browserName": "firefox"}, [{"browserName": "firefox"}])

        assert caps.first_match == [{"browserName": "firefox"}]


class TestAccessors:
    """Tests for lookups and the read-only contract"""

    def test_get_missing_returns_absent(self):
        caps = CapabilitySet({"browserName": "firefox"})

        assert caps.get("browserVersion") is ABSENT
        assert not caps.get("browserVersion")
        assert caps.has("browserName")
        assert not caps.has("browserVersion")

    def test_absent_differs_from_null(self):
        caps = CapabilitySet({"proxy": None})

        assert caps.get("proxy") is None
        assert caps.has("proxy")

    def test_get_with_explicit_default(self):
        assert CapabilitySet().get("browserName", "any") == "any"

    def test_browser_name(self):
        assert CapabilitySet({"browserName": "chrome"}).browser_name == "chrome"
        assert CapabilitySet().browser_name is ABSENT

    def test_cannot_assign(self):
        caps = CapabilitySet({"browserName": "firefox"})

        with pytest.raises(TypeError):
            caps["browserName"] = "chrome"  # type: ignore[index]

    def test_entries_returns_copy(self):
        caps = CapabilitySet({"timeouts": {"implicit": 0}})

        caps.entries["timeouts"]["implicit"] = 5000

        assert caps["timeouts"] == {"implicit": 0}

    def test_equality_and_hashing(self):
        assert CapabilitySet({"browserName": "firefox"}) == CapabilitySet({"browserName": "firefox"})
        assert CapabilitySet({"browserName": "firefox"}) != CapabilitySet({"browserName": "chrome"})
        with pytest.raises(TypeError):
            hash(CapabilitySet())

    def test_vendor_capability(self):
        assert is_vendor_capability("goog:chromeOptions")
        assert not is_vendor_capability("browserName")


class TestSerialize:
    """Tests for the two wire shapes"""

    def test_legacy_is_flat(self):
        caps = CapabilitySet({"browserName": "firefox"})

        assert caps.serialize(Dialect.LEGACY) == {"browserName": "firefox"}

    def test_w3c_wraps_in_always_match(self):
        caps = CapabilitySet({"browserName": "firefox"})

        assert caps.serialize(Dialect.W3C) == {
            "capabilities": {"alwaysMatch": {"browserName": "firefox"}, "firstMatch": [{}]}
        }

    def test_w3c_includes_first_match_alternatives(self):
        caps = CapabilitySet(
            {"acceptInsecureCerts": True}, [{"browserName": "firefox"}, {"browserName": "chrome"}]
        )

        serialized = caps.serialize(Dialect.W3C)

        assert serialized["capabilities"]["firstMatch"] == [
            {"browserName": "firefox"},
            {"browserName": "chrome"},
        ]

    def test_empty_set(self):
        assert CapabilitySet().serialize(Dialect.LEGACY) == {}
        assert CapabilitySet().serialize(Dialect.W3C) == {
            "capabilities": {"alwaysMatch": {}, "firstMatch": [{}]}
        }

    @pytest.mark.parametrize("dialect", [Dialect.LEGACY, Dialect.W3C])
    def test_round_trip(self, dialect):
        caps = CapabilitySet(
            {
                "browserName": "firefox",
                "moz:firefoxOptions": {"prefs": {"dom.ipc.processCount": 1}},
                "proxy": None,
            }
        )

        assert CapabilitySet.deserialize(dialect, caps.serialize(dialect)) == caps


class TestDeserialize:
    """Tests for parsing either wire shape"""

    def test_legacy_unwraps_request_envelope(self):
        caps = CapabilitySet.deserialize(
            Dialect.LEGACY, {"desiredCapabilities": {"browserName": "firefox"}}, envelope=True
        )

        assert caps == CapabilitySet({"browserName": "firefox"})

    def test_legacy_envelope_without_desired_capabilities(self):
        with pytest.raises(MalformedResponseError, match="desiredCapabilities"):
            CapabilitySet.deserialize(Dialect.LEGACY, {"browserName": "firefox"}, envelope=True)

    def test_legacy_desired_capabilities_name_is_kept(self):
        """Test that a capability literally named desiredCapabilities survives a round trip"""
        caps = CapabilitySet({"desiredCapabilities": {"browserName": "firefox"}})

        restored = CapabilitySet.deserialize(Dialect.LEGACY, caps.serialize(Dialect.LEGACY))

        assert restored == caps

    def test_w3c_flat_reply_capabilities(self):
        caps = CapabilitySet.deserialize(
            Dialect.W3C, {"browserName": "firefox", "browserVersion": "115.0"}
        )

        assert caps["browserVersion"] == "115.0"

    def test_always_match_wins_by_default(self):
        data = {
            "capabilities": {
                "alwaysMatch": {"pageLoadStrategy": "eager"},
                "firstMatch": [{"pageLoadStrategy": "none", "browserName": "firefox"}],
            }
        }

        caps = CapabilitySet.deserialize(Dialect.W3C, data)

        assert caps["pageLoadStrategy"] == "eager"
        assert caps["browserName"] == "firefox"

    def test_first_match_wins_policy(self):
        data = {
            "alwaysMatch": {"pageLoadStrategy": "eager"},
            "firstMatch": [{"pageLoadStrategy": "none"}],
        }

        caps = CapabilitySet.deserialize(Dialect.W3C, data, MergePolicy.FIRST_MATCH_WINS)

        assert caps["pageLoadStrategy"] == "none"

    def test_not_an_object(self):
        with pytest.raises(MalformedResponseError):
            CapabilitySet.deserialize(Dialect.W3C, ["browserName"])

    def test_first_match_not_a_list(self):
        with pytest.raises(MalformedResponseError, match="firstMatch"):
            CapabilitySet.deserialize(Dialect.W3C, {"alwaysMatch": {}, "firstMatch": {}})

    def test_compliance_flag(self):
        data = {"browserName": "firefox"}

        assert not CapabilitySet(data).is_spec_compliant
        assert not CapabilitySet.deserialize(Dialect.W3C, data).is_spec_compliant
        assert not CapabilitySet.deserialize(Dialect.LEGACY, data, from_remote=True).is_spec_compliant
        assert CapabilitySet.deserialize(Dialect.W3C, data, from_remote=True).is_spec_compliant


class TestDerivedViews:
    """Tests for merged_with, normalized and to_w3c_strict"""

    def test_merged_with_overrides(self):
        caps = CapabilitySet({"browserName": "firefox", "acceptInsecureCerts": False})

        merged = caps.merged_with({"acceptInsecureCerts": True})

        assert merged["acceptInsecureCerts"] is True
        assert caps["acceptInsecureCerts"] is False

    def test_normalized_renames_legacy_names(self):
        caps = CapabilitySet({"version": "47.0.1", "platform": "LINUX"}).normalized()

        assert caps["browserVersion"] == "47.0.1"
        assert caps["platformName"] == "LINUX"
        assert not caps.has("version")

    def test_normalized_keeps_existing_w3c_name(self):
        caps = CapabilitySet({"version": "47", "browserVersion": "115"}).normalized()

        assert caps["browserVersion"] == "115"
        assert caps["version"] == "47"

    def test_to_w3c_strict(self):
        caps = CapabilitySet(
            {
                "browserName": "firefox",
                "platform": "LINUX",
                "acceptSslCerts": True,
                "version": "",
                "javascriptEnabled": True,
                "moz:firefoxOptions": {"args": ["-headless"]},
            }
        )

        strict = caps.to_w3c_strict()

        assert strict.entries == {
            "browserName": "firefox",
            "platformName": "linux",
            "acceptInsecureCerts": True,
            "moz:firefoxOptions": {"args": ["-headless"]},
        }

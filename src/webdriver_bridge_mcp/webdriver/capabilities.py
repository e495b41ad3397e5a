"""
Capability model

A CapabilitySet is a read-only mapping of capability names to JSON values,
with the two wire serializations used during session negotiation:

    legacy:  {"browserName": "firefox", ...}
    W3C:     {"capabilities": {"alwaysMatch": {...}, "firstMatch": [{...}]}}
"""

import copy
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any, Union

from .errors import CapabilityConflictError, MalformedResponseError

CapabilityValue = Union[
    bool, int, float, str, None, list["CapabilityValue"], dict[str, "CapabilityValue"]
]


class Dialect(str, Enum):
    """Wire protocol spoken by a remote end."""

    LEGACY = "legacy"
    W3C = "w3c"


class MergePolicy(str, Enum):
    """Which side wins when alwaysMatch and firstMatch[0] share a key."""

    ALWAYS_MATCH_WINS = "always_match_wins"
    FIRST_MATCH_WINS = "first_match_wins"


class _Absent:
    """Sentinel returned for capabilities the remote end did not report."""

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()

# Capability names defined by W3C WebDriver
W3C_CAPABILITY_NAMES = frozenset(
    [
        "acceptInsecureCerts",
        "browserName",
        "browserVersion",
        "platformName",
        "pageLoadStrategy",
        "proxy",
        "setWindowRect",
        "timeouts",
        "strictFileInteractability",
        "unhandledPromptBehavior",
        "webSocketUrl",
    ]
)

# Legacy capability name -> W3C capability name
LEGACY_TO_W3C_NAMES = {
    "acceptSslCerts": "acceptInsecureCerts",
    "version": "browserVersion",
    "platform": "platformName",
}


def _check_value(key: str, value: Any) -> None:
    """Reject anything that is not a JSON value."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return
    if isinstance(value, list):
        for item in value:
            _check_value(key, item)
        return
    if isinstance(value, dict):
        for sub_key, sub_value in value.items():
            if not isinstance(sub_key, str):
                raise TypeError(f"Capability '{key}' has a non-string nested key: {sub_key!r}")
            _check_value(key, sub_value)
        return
    raise TypeError(
        f"Capability '{key}' has unsupported value type {type(value).__name__}"
    )


def _check_entries(entries: Mapping[str, Any]) -> dict[str, CapabilityValue]:
    checked: dict[str, CapabilityValue] = {}
    for key, value in entries.items():
        if not isinstance(key, str):
            raise TypeError(f"Capability names must be strings, got {key!r}")
        _check_value(key, value)
        checked[key] = copy.deepcopy(value)
    return checked


def is_vendor_capability(key: str) -> bool:
    """Vendor-prefixed keys (e.g. "goog:chromeOptions") are forwarded opaquely."""
    return ":" in key


class CapabilitySet(Mapping[str, CapabilityValue]):
    """
    Immutable set of capabilities.

    Desired capabilities are built by callers; actual capabilities are built
    from the remote end's session-creation reply via deserialize(), which is
    the only path that sets is_spec_compliant.
    """

    def __init__(
        self,
        entries: Mapping[str, Any] | None = None,
        first_match: list[Mapping[str, Any]] | None = None,
        *,
        is_spec_compliant: bool = False,
    ) -> None:
        self._entries = _check_entries(entries or {})
        self._first_match = tuple(_check_entries(alt) for alt in (first_match or []))
        self._is_spec_compliant = is_spec_compliant
        self._check_conflicts()

    def _check_conflicts(self) -> None:
        for index, alternative in enumerate(self._first_match):
            for key, value in alternative.items():
                if key in self._entries and self._entries[key] != value:
                    raise CapabilityConflictError(
                        f"Capability '{key}' is {self._entries[key]!r} in alwaysMatch "
                        f"but {value!r} in firstMatch[{index}]"
                    )

    # Mapping protocol

    def __getitem__(self, key: str) -> CapabilityValue:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CapabilitySet):
            return NotImplemented
        return self._entries == other._entries and self._first_match == other._first_match

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"CapabilitySet({self._entries!r}, first_match={list(self._first_match)!r})"

    # Accessors

    def get(self, key: str, default: Any = ABSENT) -> Any:  # type: ignore[override]
        """Return the value for key, or ABSENT if the capability is not present."""
        return self._entries.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._entries

    @property
    def entries(self) -> dict[str, CapabilityValue]:
        """Deep copy of the alwaysMatch entries."""
        return copy.deepcopy(self._entries)

    @property
    def first_match(self) -> list[dict[str, CapabilityValue]]:
        return copy.deepcopy(list(self._first_match))

    @property
    def is_spec_compliant(self) -> bool:
        return self._is_spec_compliant

    @property
    def browser_name(self) -> Any:
        return self.get("browserName")

    # Serialization

    def serialize(self, dialect: Dialect) -> dict[str, Any]:
        """
        Produce the JSON-compatible structure for the given dialect.

        Args:
            dialect: Target dialect

        Returns:
            Flat dict for LEGACY, {"capabilities": {...}} for W3C
        """
        if dialect is Dialect.LEGACY:
            return self.entries

        first_match = self.first_match or [{}]
        return {"capabilities": {"alwaysMatch": self.entries, "firstMatch": first_match}}

    @classmethod
    def deserialize(
        cls,
        dialect: Dialect,
        data: Any,
        merge_policy: MergePolicy = MergePolicy.ALWAYS_MATCH_WINS,
        *,
        from_remote: bool = False,
        envelope: bool = False,
    ) -> "CapabilitySet":
        """
        Parse either wire shape into a CapabilitySet.

        Args:
            dialect: Dialect the data is expressed in
            data: Decoded JSON
            merge_policy: Precedence between alwaysMatch and firstMatch[0]
            from_remote: True when data comes from a remote end, which makes
                the compliance flag reflect the dialect
            envelope: True when data is a legacy new-session request body, whose
                capabilities sit under desiredCapabilities

        Returns:
            CapabilitySet

        Raises:
            MalformedResponseError: If data is not a JSON object of the expected shape
        """
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Capabilities must be a JSON object, got {type(data).__name__}"
            )
        compliant = from_remote and dialect is Dialect.W3C

        if dialect is Dialect.LEGACY:
            if envelope:
                if "desiredCapabilities" not in data:
                    raise MalformedResponseError("Request body has no desiredCapabilities")
                data = data["desiredCapabilities"]
                if not isinstance(data, dict):
                    raise MalformedResponseError("desiredCapabilities must be a JSON object")
            return cls(data, is_spec_compliant=compliant)

        structured = data.get("capabilities") if set(data) == {"capabilities"} else data
        if not isinstance(structured, dict) or not (
            "alwaysMatch" in structured or "firstMatch" in structured
        ):
            # Flat capabilities, as returned in a W3C new-session reply
            return cls(data, is_spec_compliant=compliant)

        always_match = structured.get("alwaysMatch") or {}
        first_match = structured.get("firstMatch") or [{}]
        if not isinstance(always_match, dict):
            raise MalformedResponseError("alwaysMatch must be a JSON object")
        if not isinstance(first_match, list) or not all(
            isinstance(alt, dict) for alt in first_match
        ):
            raise MalformedResponseError("firstMatch must be a list of JSON objects")

        first = first_match[0] if first_match else {}
        if merge_policy is MergePolicy.ALWAYS_MATCH_WINS:
            merged = {**first, **always_match}
        else:
            merged = {**always_match, **first}
        return cls(merged, is_spec_compliant=compliant)

    # Derived views

    def merged_with(self, overrides: Mapping[str, Any]) -> "CapabilitySet":
        """Return a new set with overrides applied on top of these entries."""
        return CapabilitySet(
            {**self._entries, **overrides},
            list(self._first_match),
            is_spec_compliant=self._is_spec_compliant,
        )

    def normalized(self) -> "CapabilitySet":
        """
        Present legacy names under their W3C names.

        Older drivers report "version" and "platform" where newer ones report
        "browserVersion" and "platformName". The W3C name is filled from the
        legacy one only when the W3C name is missing.
        """
        entries = dict(self._entries)
        for legacy_name, w3c_name in (("version", "browserVersion"), ("platform", "platformName")):
            if legacy_name in entries and w3c_name not in entries:
                entries[w3c_name] = entries.pop(legacy_name)
        return CapabilitySet(entries, is_spec_compliant=self._is_spec_compliant)

    def to_w3c_strict(self) -> "CapabilitySet":
        """
        Keep only names a W3C remote end accepts.

        Legacy names are converted to their W3C equivalents, W3C and
        vendor-prefixed names are kept, everything else is dropped.
        """

        def convert(entries: Mapping[str, CapabilityValue]) -> dict[str, Any]:
            converted: dict[str, Any] = {}
            for key, value in entries.items():
                if key in LEGACY_TO_W3C_NAMES:
                    if value is None or value == "":
                        continue
                    target = LEGACY_TO_W3C_NAMES[key]
                    if key == "platform" and isinstance(value, str):
                        value = value.lower()
                    converted.setdefault(target, value)
                elif key in W3C_CAPABILITY_NAMES or is_vendor_capability(key):
                    converted[key] = value
            return converted

        return CapabilitySet(
            convert(self._entries),
            [convert(alt) for alt in self._first_match],
        )

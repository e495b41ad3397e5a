"""
Command catalog

Static table of abstract commands and their per-dialect endpoints. Parameter
names used by callers are dialect-neutral; each endpoint lists which of them
it requires and how they are renamed or reshaped on the wire.

The catalog is built once at import time and never mutated.
"""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .capabilities import Dialect
from .errors import ErrorKind, WebDriverBridgeError

# Web element identifier key defined by W3C WebDriver; used as the
# dialect-neutral element reference.
ELEMENT_KEY = "element-6066-11e4-a52e-4f735466cecf"
LEGACY_ELEMENT_KEY = "ELEMENT"

BodyTransform = Callable[[dict[str, Any]], dict[str, Any]]

_PATH_PARAM = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class EndpointSpec:
    """One dialect's HTTP shape for a command."""

    method: str
    path: str
    body_params: tuple[str, ...] = ()
    renames: Mapping[str, str] = field(default_factory=dict)
    defaults: Mapping[str, Any] = field(default_factory=dict)
    transform: BodyTransform | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "renames", MappingProxyType(dict(self.renames)))
        object.__setattr__(self, "defaults", MappingProxyType(dict(self.defaults)))

    @property
    def path_params(self) -> tuple[str, ...]:
        """Named path parameters other than the session id."""
        return tuple(p for p in _PATH_PARAM.findall(self.path) if p != "sessionId")

    @property
    def requires_session(self) -> bool:
        return "{sessionId}" in self.path

    @property
    def required_params(self) -> tuple[str, ...]:
        return self.path_params + self.body_params


@dataclass(frozen=True)
class CommandEntry:
    """Catalog entry: a command and its endpoint in each dialect (None if absent)."""

    name: str
    legacy: EndpointSpec | None
    w3c: EndpointSpec | None

    def endpoint(self, dialect: Dialect) -> EndpointSpec | None:
        return self.legacy if dialect is Dialect.LEGACY else self.w3c


# =============================================================================
# BODY TRANSFORMS
# =============================================================================


def _key_text(text: Any) -> str:
    """Accept a string or a list of key chunks (e.g. ["abc", "\\ue007"])."""
    if isinstance(text, (list, tuple)):
        return "".join(str(chunk) for chunk in text)
    return str(text)


def _legacy_send_keys(body: dict[str, Any]) -> dict[str, Any]:
    text = _key_text(body.pop("text"))
    return {**body, "value": list(text)}


def _w3c_send_keys(body: dict[str, Any]) -> dict[str, Any]:
    text = _key_text(body.pop("text"))
    return {**body, "text": text, "value": list(text)}


_W3C_TIMEOUT_NAMES = {
    "script": "script",
    "implicit": "implicit",
    "page load": "pageLoad",
    "pageLoad": "pageLoad",
}


def _timeout_type(body: dict[str, Any]) -> str:
    timeout_type = body["type"]
    if timeout_type not in _W3C_TIMEOUT_NAMES:
        raise WebDriverBridgeError(
            f"Unknown timeout type: {timeout_type!r}", ErrorKind.INVALID_ARGUMENT
        )
    return timeout_type


def _legacy_timeouts(body: dict[str, Any]) -> dict[str, Any]:
    timeout_type = _timeout_type(body)
    if timeout_type == "pageLoad":
        timeout_type = "page load"
    return {"type": timeout_type, "ms": body["ms"]}


def _w3c_timeouts(body: dict[str, Any]) -> dict[str, Any]:
    return {_W3C_TIMEOUT_NAMES[_timeout_type(body)]: body["ms"]}


def _w3c_locator(body: dict[str, Any]) -> dict[str, Any]:
    """W3C remote ends only know css, xpath, link text and tag name strategies."""
    using, value = body["using"], body["value"]
    if using == "id":
        using, value = "css selector", f'[id="{value}"]'
    elif using == "name":
        using, value = "css selector", f'[name="{value}"]'
    elif using == "class name":
        using, value = "css selector", f".{value}"
    elif using == "tag name":
        using = "css selector"
    return {**body, "using": using, "value": value}


def _with_script_args(body: dict[str, Any]) -> dict[str, Any]:
    return {**body, "args": body.get("args", [])}


# =============================================================================
# CATALOG
# =============================================================================


def _s(path: str) -> str:
    return "/session/{sessionId}" + path


def _same(method: str, path: str, **kwargs: Any) -> tuple[EndpointSpec, EndpointSpec]:
    spec = EndpointSpec(method, path, **kwargs)
    return spec, spec


_ENTRIES: list[tuple[str, EndpointSpec | None, EndpointSpec | None]] = [
    # Session
    ("status", *_same("GET", "/status")),
    ("newSession", *_same("POST", "/session")),
    ("deleteSession", *_same("DELETE", _s(""))),
    ("getTimeouts", None, EndpointSpec("GET", _s("/timeouts"))),
    (
        "setTimeouts",
        EndpointSpec("POST", _s("/timeouts"), ("type", "ms"), transform=_legacy_timeouts),
        EndpointSpec("POST", _s("/timeouts"), ("type", "ms"), transform=_w3c_timeouts),
    ),
    # Navigation
    ("navigate", *_same("POST", _s("/url"), body_params=("url",))),
    ("getCurrentUrl", *_same("GET", _s("/url"))),
    ("goBack", *_same("POST", _s("/back"))),
    ("goForward", *_same("POST", _s("/forward"))),
    ("refresh", *_same("POST", _s("/refresh"))),
    ("getTitle", *_same("GET", _s("/title"))),
    ("getPageSource", *_same("GET", _s("/source"))),
    # Windows
    ("getWindowHandle", EndpointSpec("GET", _s("/window_handle")), EndpointSpec("GET", _s("/window"))),
    (
        "getWindowHandles",
        EndpointSpec("GET", _s("/window_handles")),
        EndpointSpec("GET", _s("/window/handles")),
    ),
    (
        "switchToWindow",
        EndpointSpec("POST", _s("/window"), ("handle",), renames={"handle": "name"}),
        EndpointSpec("POST", _s("/window"), ("handle",)),
    ),
    ("closeWindow", *_same("DELETE", _s("/window"))),
    ("newWindow", None, EndpointSpec("POST", _s("/window/new"))),
    (
        "maximizeWindow",
        EndpointSpec(
            "POST", _s("/window/{windowHandle}/maximize"), defaults={"windowHandle": "current"}
        ),
        EndpointSpec("POST", _s("/window/maximize")),
    ),
    ("minimizeWindow", None, EndpointSpec("POST", _s("/window/minimize"))),
    ("fullscreenWindow", None, EndpointSpec("POST", _s("/window/fullscreen"))),
    ("getWindowRect", None, EndpointSpec("GET", _s("/window/rect"))),
    ("setWindowRect", None, EndpointSpec("POST", _s("/window/rect"))),
    (
        "getWindowSize",
        EndpointSpec(
            "GET", _s("/window/{windowHandle}/size"), defaults={"windowHandle": "current"}
        ),
        None,
    ),
    (
        "setWindowSize",
        EndpointSpec(
            "POST",
            _s("/window/{windowHandle}/size"),
            ("width", "height"),
            defaults={"windowHandle": "current"},
        ),
        None,
    ),
    ("switchToFrame", *_same("POST", _s("/frame"), body_params=("id",))),
    ("switchToParentFrame", *_same("POST", _s("/frame/parent"))),
    # Elements
    (
        "findElement",
        EndpointSpec("POST", _s("/element"), ("using", "value")),
        EndpointSpec("POST", _s("/element"), ("using", "value"), transform=_w3c_locator),
    ),
    (
        "findElements",
        EndpointSpec("POST", _s("/elements"), ("using", "value")),
        EndpointSpec("POST", _s("/elements"), ("using", "value"), transform=_w3c_locator),
    ),
    (
        "findChildElement",
        EndpointSpec("POST", _s("/element/{id}/element"), ("using", "value")),
        EndpointSpec(
            "POST", _s("/element/{id}/element"), ("using", "value"), transform=_w3c_locator
        ),
    ),
    (
        "findChildElements",
        EndpointSpec("POST", _s("/element/{id}/elements"), ("using", "value")),
        EndpointSpec(
            "POST", _s("/element/{id}/elements"), ("using", "value"), transform=_w3c_locator
        ),
    ),
    (
        "getActiveElement",
        EndpointSpec("POST", _s("/element/active")),
        EndpointSpec("GET", _s("/element/active")),
    ),
    ("clickElement", *_same("POST", _s("/element/{id}/click"))),
    ("clearElement", *_same("POST", _s("/element/{id}/clear"))),
    (
        "sendKeysToElement",
        EndpointSpec("POST", _s("/element/{id}/value"), ("text",), transform=_legacy_send_keys),
        EndpointSpec("POST", _s("/element/{id}/value"), ("text",), transform=_w3c_send_keys),
    ),
    ("getElementText", *_same("GET", _s("/element/{id}/text"))),
    ("getElementTagName", *_same("GET", _s("/element/{id}/name"))),
    ("getElementAttribute", *_same("GET", _s("/element/{id}/attribute/{name}"))),
    ("getElementProperty", None, EndpointSpec("GET", _s("/element/{id}/property/{name}"))),
    ("getElementCssValue", *_same("GET", _s("/element/{id}/css/{propertyName}"))),
    ("isElementSelected", *_same("GET", _s("/element/{id}/selected"))),
    ("isElementEnabled", *_same("GET", _s("/element/{id}/enabled"))),
    ("isElementDisplayed", *_same("GET", _s("/element/{id}/displayed"))),
    ("getElementRect", None, EndpointSpec("GET", _s("/element/{id}/rect"))),
    ("getElementLocation", EndpointSpec("GET", _s("/element/{id}/location")), None),
    ("getElementSize", EndpointSpec("GET", _s("/element/{id}/size")), None),
    ("takeElementScreenshot", *_same("GET", _s("/element/{id}/screenshot"))),
    # Scripts
    (
        "executeScript",
        EndpointSpec("POST", _s("/execute"), ("script",), transform=_with_script_args),
        EndpointSpec("POST", _s("/execute/sync"), ("script",), transform=_with_script_args),
    ),
    (
        "executeAsyncScript",
        EndpointSpec("POST", _s("/execute_async"), ("script",), transform=_with_script_args),
        EndpointSpec("POST", _s("/execute/async"), ("script",), transform=_with_script_args),
    ),
    # Cookies
    ("getAllCookies", *_same("GET", _s("/cookie"))),
    ("getNamedCookie", None, EndpointSpec("GET", _s("/cookie/{name}"))),
    ("addCookie", *_same("POST", _s("/cookie"), body_params=("cookie",))),
    ("deleteCookie", *_same("DELETE", _s("/cookie/{name}"))),
    ("deleteAllCookies", *_same("DELETE", _s("/cookie"))),
    # Alerts
    (
        "acceptAlert",
        EndpointSpec("POST", _s("/accept_alert")),
        EndpointSpec("POST", _s("/alert/accept")),
    ),
    (
        "dismissAlert",
        EndpointSpec("POST", _s("/dismiss_alert")),
        EndpointSpec("POST", _s("/alert/dismiss")),
    ),
    ("getAlertText", EndpointSpec("GET", _s("/alert_text")), EndpointSpec("GET", _s("/alert/text"))),
    (
        "setAlertValue",
        EndpointSpec("POST", _s("/alert_text"), ("text",)),
        EndpointSpec("POST", _s("/alert/text"), ("text",)),
    ),
    # Screenshots and input
    ("takeScreenshot", *_same("GET", _s("/screenshot"))),
    ("performActions", None, EndpointSpec("POST", _s("/actions"), ("actions",))),
    ("releaseActions", None, EndpointSpec("DELETE", _s("/actions"))),
]


def _build_catalog(
    entries: list[tuple[str, EndpointSpec | None, EndpointSpec | None]],
) -> Mapping[str, CommandEntry]:
    catalog: dict[str, CommandEntry] = {}
    for name, legacy, w3c in entries:
        if name in catalog:
            raise ValueError(f"Duplicate command in catalog: {name}")
        if legacy is None and w3c is None:
            raise ValueError(f"Command {name} has no endpoint in either dialect")
        catalog[name] = CommandEntry(name, legacy, w3c)
    return MappingProxyType(catalog)


COMMANDS: Mapping[str, CommandEntry] = _build_catalog(_ENTRIES)


def get_command(name: str) -> CommandEntry | None:
    """Look up a catalog entry by abstract command id."""
    return COMMANDS.get(name)


def describe_commands() -> list[dict[str, Any]]:
    """List catalog ids with the dialects each one is available in."""
    described = []
    for name, entry in COMMANDS.items():
        described.append(
            {
                "command": name,
                "legacy": entry.legacy is not None,
                "w3c": entry.w3c is not None,
                "params": sorted(
                    set((entry.legacy.required_params if entry.legacy else ()))
                    | set((entry.w3c.required_params if entry.w3c else ()))
                ),
            }
        )
    return described

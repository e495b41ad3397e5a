"""
Dialect detection

Remote ends do not reliably report which protocol they speak, so the dialect
is decided from the structure of the one response that always exists: the
reply to the new-session request.
"""

from dataclasses import dataclass
from typing import Any

from ..utils.logging_config import get_logger
from .capabilities import CapabilitySet, Dialect, MergePolicy
from .errors import ProtocolDetectionError

logger = get_logger(__name__)


@dataclass(frozen=True)
class Detection:
    """Outcome of classifying a new-session reply."""

    dialect: Dialect
    session_id: str
    capabilities: CapabilitySet


def _is_session_id(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _is_status_code(value: Any) -> bool:
    # bool is an int subclass; a JSON true is not a status code
    return isinstance(value, int) and not isinstance(value, bool)


def detect_dialect(
    body: Any, merge_policy: MergePolicy = MergePolicy.ALWAYS_MATCH_WINS
) -> Detection:
    """
    Classify a decoded new-session response body.

    W3C:     {"value": {"sessionId": "...", "capabilities": {...}}}
    Legacy:  {"sessionId": "...", "status": 0, "value": {...}}

    Some geckodriver releases answered W3C-style but kept the capabilities
    under a nested "value" key; that shape is treated as W3C.

    Args:
        body: Decoded JSON body of the new-session response
        merge_policy: Passed through to capability deserialization

    Returns:
        Detection with dialect, session id and actual capabilities

    Raises:
        ProtocolDetectionError: If the body matches neither dialect
    """
    if not isinstance(body, dict):
        raise ProtocolDetectionError(
            f"New session response is not a JSON object: {type(body).__name__}"
        )

    value = body.get("value")

    if "status" not in body and isinstance(value, dict) and _is_session_id(value.get("sessionId")):
        raw_caps = value.get("capabilities")
        if not isinstance(raw_caps, dict):
            raw_caps = value.get("value")
        if isinstance(raw_caps, dict):
            capabilities = CapabilitySet.deserialize(
                Dialect.W3C, raw_caps, merge_policy, from_remote=True
            )
            logger.debug(f"Detected W3C dialect for session {value['sessionId']}")
            return Detection(Dialect.W3C, value["sessionId"], capabilities)

    if (
        _is_session_id(body.get("sessionId"))
        and _is_status_code(body.get("status"))
        and body["status"] == 0
        and isinstance(value, dict)
    ):
        capabilities = CapabilitySet.deserialize(
            Dialect.LEGACY, value, merge_policy, from_remote=True
        )
        logger.debug(f"Detected legacy dialect for session {body['sessionId']}")
        return Detection(Dialect.LEGACY, body["sessionId"], capabilities)

    raise ProtocolDetectionError(
        f"New session response matches neither dialect (keys: {sorted(body.keys())})"
    )

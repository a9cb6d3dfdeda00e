import json
import logging
import re

from pydantic import ValidationError

from sevendays.core.models import TurnResponse
from sevendays.services.errors import ParseError

logger = logging.getLogger(__name__)

_OPEN_FENCE = re.compile(r"^```[\w-]*[ \t]*\n?")
_CLOSE_FENCE = re.compile(r"\n?```$")


def strip_fences(raw: str) -> str:
    # Optional opening fence (with or without a language tag), optional closing fence
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        cleaned = _OPEN_FENCE.sub("", cleaned, count=1)
        cleaned = _CLOSE_FENCE.sub("", cleaned.rstrip(), count=1)
    return cleaned.strip()


def parse_turn_response(raw: str) -> TurnResponse:
    """
    Decode one turn payload. Any failure raises ParseError carrying the
    untouched raw text; a partially-filled response is never returned.
    """
    cleaned = strip_fences(raw or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("Turn payload is not JSON: %s\nRaw: %s", e, raw)
        raise ParseError(f"Malformed JSON: {e}", raw) from e

    if not isinstance(data, dict):
        logger.warning("Turn payload is %s, not an object\nRaw: %s", type(data).__name__, raw)
        raise ParseError("Top-level JSON value is not an object", raw)

    try:
        return TurnResponse.model_validate(data)
    except ValidationError as e:
        logger.warning("Turn payload has the wrong shape: %s\nRaw: %s", e, raw)
        raise ParseError(f"Unexpected payload shape: {e.error_count()} error(s)", raw) from e

"""Recovery of JSON payloads from LLM completions.

Models wrap JSON in Markdown fences, leak control characters into it, and
some providers serialize the payload twice so the completion is a JSON
string whose value is the real document.
"""

import json
import re
from typing import Any, Optional

from quizdoc.exceptions import JsonRecoveryFailed
from quizdoc.logger import get_logger

logger = get_logger(__name__)

MAX_UNWRAP_ITERATIONS = 3
"""Parse attempts allowed; each extra attempt unwraps one level of string encoding."""

FAILURE_MESSAGE = "Failed to parse JSON from API response."

_JSON_FENCE_RE = re.compile(r"```json", re.IGNORECASE)
_C0_CONTROL_RE = re.compile(r"[\x00-\x1f]")


def clean_completion(raw: str) -> str:
    """Remove code fences and every C0 control character, then trim.

    Newlines inside JSON string values go too; a successful parse matters
    more than their fidelity.
    """
    text = _JSON_FENCE_RE.sub("", raw)
    text = text.replace("```", "")
    text = _C0_CONTROL_RE.sub("", text)
    return text.strip()


def recover_json(raw: Optional[str]) -> Any:
    """Parse the JSON value contained in an LLM completion.

    Args:
        raw: Completion text, possibly fenced or string-encoded several times

    Returns:
        The first decoded value that is not a string (object, array, number,
        boolean or None)

    Raises:
        JsonRecoveryFailed: On the first parse error, or when the value is
            still a string after ``MAX_UNWRAP_ITERATIONS`` parses
    """
    if raw is None:
        raise JsonRecoveryFailed("No content received from API.")

    candidate: Any = clean_completion(raw)
    for attempt in range(1, MAX_UNWRAP_ITERATIONS + 1):
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError as exc:
            logger.error(
                "Failed to parse JSON from completion",
                extra_data={"attempt": attempt, "error": str(exc), "length": len(candidate)},
            )
            raise JsonRecoveryFailed(FAILURE_MESSAGE, cleaned=candidate) from exc

        if not isinstance(value, str):
            if attempt > 1:
                logger.debug("Unwrapped string-encoded JSON", extra_data={"levels": attempt - 1})
            return value
        candidate = value

    logger.error(
        "JSON still string-encoded after unwrap limit",
        extra_data={"max_iterations": MAX_UNWRAP_ITERATIONS},
    )
    raise JsonRecoveryFailed(FAILURE_MESSAGE, cleaned=candidate)

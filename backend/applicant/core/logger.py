import json
import logging
import time
from typing import Any

logger = logging.getLogger("applicant.events")

# Fields that carry what the candidate or interviewer said; only their length is logged.
_SPOKEN_KEYS = {"text", "content", "transcript", "answer", "user_answer", "spoken_content", "prompt"}
_MAX_FIELD_CHARS = 300

# Degradations: the session keeps going, but on a lesser path.
WARNING_EVENTS = {"engine_fallback", "playback_error", "feedback_rejected"}


def _sanitize_value(key: str, value: Any) -> Any:
	normalized_key = str(key or "").lower()
	if normalized_key in _SPOKEN_KEYS:
		return {"redacted": True, "length": len(str(value or ""))}
	if isinstance(value, str):
		return value if len(value) <= _MAX_FIELD_CHARS else f"{value[:_MAX_FIELD_CHARS]}..."
	if isinstance(value, (int, float, bool)) or value is None:
		return value
	if isinstance(value, dict):
		return {str(k): _sanitize_value(str(k), v) for k, v in value.items()}
	if isinstance(value, (list, tuple, set)):
		return [_sanitize_value(normalized_key, item) for item in value]
	return str(value)


def log_event(component: str, event: str, session_id: str | None, **fields) -> dict:
	"""One JSON line per interview event; returns the payload that was logged."""
	payload = {
		"ts": round(time.time(), 3),
		"component": str(component or "app"),
		"event": str(event or "unknown"),
		"session_id": str(session_id or ""),
	}
	payload.update({str(k): _sanitize_value(str(k), v) for k, v in fields.items()})
	level = logging.WARNING if payload["event"] in WARNING_EVENTS else logging.INFO
	logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
	return payload

"""Classify failed turns into user-facing error categories."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from models.chat_models import ErrorAlert, ErrorInfo, ErrorKind

DEFAULT_MESSAGE = "An unexpected error occurred"
DEFAULT_STATUS = 500

_TITLES = {
	ErrorKind.AUTHENTICATION: "Authentication Error",
	ErrorKind.RATE_LIMIT: "Rate Limit Exceeded",
	ErrorKind.QUOTA: "Quota Exceeded",
	ErrorKind.NETWORK: "Server Error",
	ErrorKind.UNKNOWN: "Request Failed",
}
_NOT_RETRYABLE = {ErrorKind.AUTHENTICATION, ErrorKind.QUOTA}


def classify(status_code: int, message: str) -> ErrorKind:
	"""Return the error kind; rules are checked in order and the first match wins."""
	text = (message or "").lower()
	if status_code == 401 or "api key" in text:
		return ErrorKind.AUTHENTICATION
	if status_code == 429 or "rate limit" in text:
		return ErrorKind.RATE_LIMIT
	if "quota" in text:
		return ErrorKind.QUOTA
	if status_code >= 500:
		return ErrorKind.NETWORK
	return ErrorKind.UNKNOWN


def alert_title(kind: ErrorKind) -> str:
	return _TITLES[kind]


def parse_error_payload(raw: Optional[str]) -> Optional[Dict[str, Any]]:
	"""Best-effort decode of a JSON error body; None when it is plain text."""
	if not raw:
		return None
	try:
		parsed = json.loads(raw)
	except (TypeError, ValueError):
		return None
	return parsed if isinstance(parsed, dict) else None


def extract_error_message(raw: Optional[str]) -> str:
	"""Pull a human-readable message out of a raw provider or HTTP error body.

	Understands ``{"error": "..."}``, ``{"error": {"message": "..."}}`` and
	``{"message": "..."}``; anything else is returned unchanged.
	"""
	parsed = parse_error_payload(raw)
	if parsed is None:
		return raw or DEFAULT_MESSAGE
	error = parsed.get("error")
	if isinstance(error, dict) and error.get("message"):
		return str(error["message"])
	if isinstance(error, str) and error:
		return error
	if parsed.get("message"):
		return str(parsed["message"])
	return raw or DEFAULT_MESSAGE


def build_error_info(
	status_code: Optional[int],
	raw_message: Optional[str],
	provider_name: str = "unknown",
) -> ErrorInfo:
	"""Derive an ErrorInfo from a failed HTTP status and its body.

	Structured bodies may override ``statusCode``, ``isRetryable`` and
	``retryDelay``; the kind is always recomputed with :func:`classify`.
	"""
	status = status_code or DEFAULT_STATUS
	message = DEFAULT_MESSAGE
	is_retryable: Optional[bool] = None
	retry_delay = 0

	parsed = parse_error_payload(raw_message)
	if parsed is not None and ("error" in parsed or "message" in parsed):
		message = extract_error_message(raw_message)
		if isinstance(parsed.get("statusCode"), int):
			status = parsed["statusCode"]
		if isinstance(parsed.get("isRetryable"), bool):
			is_retryable = parsed["isRetryable"]
		if isinstance(parsed.get("retryDelay"), int):
			retry_delay = parsed["retryDelay"]
		provider_name = parsed.get("provider") or provider_name
	elif raw_message:
		message = raw_message

	kind = classify(status, message)
	if is_retryable is None:
		is_retryable = kind not in _NOT_RETRYABLE
	return ErrorInfo(
		message=message,
		is_retryable=is_retryable,
		status_code=status,
		provider_name=provider_name,
		kind=kind,
		retry_delay_ms=retry_delay,
	)


def build_alert(info: ErrorInfo) -> ErrorAlert:
	return ErrorAlert(
		title=alert_title(info.kind),
		description=info.message,
		provider_name=info.provider_name,
		kind=info.kind,
		is_retryable=info.is_retryable,
		info=info,
	)

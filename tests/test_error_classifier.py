"""Tests for turn failure classification."""

import json

import pytest

from models.chat_models import ErrorKind
from services.chat.error_classifier import (
    build_alert,
    build_error_info,
    classify,
    extract_error_message,
)


@pytest.mark.parametrize(
    "status, message, expected",
    [
        (401, "bad api key", ErrorKind.AUTHENTICATION),
        (429, "", ErrorKind.RATE_LIMIT),
        (503, "", ErrorKind.NETWORK),
        (200, "quota exceeded", ErrorKind.QUOTA),
        (400, "Invalid API Key supplied", ErrorKind.AUTHENTICATION),
        (400, "Rate limit reached", ErrorKind.RATE_LIMIT),
        (404, "not found", ErrorKind.UNKNOWN),
    ],
)
def test_classify(status, message, expected):
    assert classify(status, message) is expected


def test_first_matching_rule_wins():
    assert classify(429, "your api key has no quota") is ErrorKind.AUTHENTICATION
    assert classify(500, "rate limit and quota") is ErrorKind.RATE_LIMIT
    assert classify(503, "quota exhausted") is ErrorKind.QUOTA


def test_extract_message_from_structured_bodies():
    assert extract_error_message(json.dumps({"error": "No user message found"})) == "No user message found"
    assert extract_error_message(json.dumps({"error": {"message": "Incorrect API key"}})) == "Incorrect API key"
    assert extract_error_message(json.dumps({"message": "slow down"})) == "slow down"
    assert extract_error_message("plain text failure") == "plain text failure"


def test_error_info_from_json_error_body():
    info = build_error_info(401, json.dumps({"error": "API key not configured"}), "OpenAI")
    assert info.kind is ErrorKind.AUTHENTICATION
    assert info.message == "API key not configured"
    assert info.status_code == 401
    assert info.provider_name == "OpenAI"
    assert info.is_retryable is False


def test_error_info_plain_text_and_default_status():
    info = build_error_info(None, "upstream exploded")
    assert info.status_code == 500
    assert info.kind is ErrorKind.NETWORK
    assert info.is_retryable is True
    assert info.message == "upstream exploded"


def test_structured_fields_override_defaults():
    raw = json.dumps({"message": "try later", "statusCode": 429, "isRetryable": False, "retryDelay": 1500})
    info = build_error_info(500, raw)
    assert info.kind is ErrorKind.RATE_LIMIT
    assert info.is_retryable is False
    assert info.retry_delay_ms == 1500


def test_quota_is_not_retryable_and_alert_is_titled():
    info = build_error_info(403, json.dumps({"error": "You exceeded your current quota"}), "OpenAI")
    alert = build_alert(info)
    assert info.is_retryable is False
    assert alert.title == "Quota Exceeded"
    assert alert.description == "You exceeded your current quota"
    assert alert.kind is ErrorKind.QUOTA

"""Tests for promptcanvas.core.error_classifier - provider failure text."""

from __future__ import annotations

import pytest

from promptcanvas.core.error_classifier import (
    DEFAULT_RETRY_AFTER_MILLIS,
    OtherOutcome,
    QuotaOutcome,
    TextErrorClassifier,
    classify_error,
    extract_retry_after_millis,
)


class TestQuotaDetection:
    """Messages containing a quota marker classify as quota failures."""

    def test_quota_with_retry_hint(self):
        outcome = classify_error("429 Quota exceeded. Please retry in 12.5s")
        assert outcome == QuotaOutcome(
            retry_after_millis=12500, message="429 Quota exceeded. Please retry in 12.5s"
        )

    def test_quota_without_retry_hint_uses_fallback(self):
        outcome = classify_error("Quota exceeded")
        assert isinstance(outcome, QuotaOutcome)
        assert outcome.retry_after_millis == DEFAULT_RETRY_AFTER_MILLIS == 60000

    @pytest.mark.parametrize(
        "message",
        [
            "429 RESOURCE_EXHAUSTED",
            "You exceeded your current quota, please check your plan",
            "Quota exceeded for metric generate_content_requests",
        ],
    )
    def test_each_marker_detected(self, message):
        assert isinstance(classify_error(message), QuotaOutcome)

    def test_markers_are_case_sensitive(self):
        """'QUOTA' matches none of the listed markers."""
        assert isinstance(classify_error("QUOTA EXHAUSTED"), OtherOutcome)

    def test_realistic_provider_message(self):
        message = (
            "429 RESOURCE_EXHAUSTED. {'error': {'code': 429, 'message': 'You exceeded your "
            "current quota. Please retry in 37.204836s.', 'status': 'RESOURCE_EXHAUSTED'}}"
        )
        assert classify_error(message).retry_after_millis == 37205


class TestOtherFailures:
    def test_server_error_is_other(self):
        assert classify_error("500 internal error") == OtherOutcome("500 internal error")

    def test_message_is_unmodified(self):
        message = "400 INVALID_ARGUMENT: bad request"
        assert classify_error(message).message == message

    def test_none_message(self):
        assert classify_error(None) == OtherOutcome("")


class TestRetryExtraction:
    @pytest.mark.parametrize(
        "message, expected",
        [
            ("Please retry in 12.5s", 12500),
            ("Please retry in 3s", 3000),
            ("Please retry in 0.25s", 250),
            ("retry later", None),
            ("Please retry in soon", None),
        ],
    )
    def test_extract(self, message, expected):
        assert extract_retry_after_millis(message) == expected


def test_text_classifier_delegates():
    assert TextErrorClassifier().classify("Quota exceeded") == classify_error("Quota exceeded")

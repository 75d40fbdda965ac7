"""
Tests for structured logging helpers.
"""

import json
import logging

from shared.config.logging import (
    DevelopmentFormatter,
    StructuredFormatter,
    get_logger,
    mask_email,
    mask_token,
    redact,
)


def make_record(**context) -> logging.LogRecord:
    record = logging.LogRecord("rest_api.auth", logging.INFO, __file__, 10, "Login failed", (), None)
    record.context = context
    record.request_id = "req-12345678-abcd"
    return record


class TestMasking:

    def test_mask_email(self):
        assert mask_email("alice@campus.edu") == "al***@campus.edu"
        assert mask_email("a@campus.edu") == "a***@campus.edu"
        assert mask_email(None) == "<no-email>"
        assert mask_email("not-an-email") == "***@invalid"

    def test_mask_token_is_stable_digest(self):
        assert mask_token("abc") == mask_token("abc")
        assert mask_token("abc") != mask_token("abd")
        assert len(mask_token("abc")) == 12
        assert mask_token("") == "<no-token>"

    def test_redact(self):
        assert redact({"password": "hunter22", "user_id": 7}) == {"password": "[redacted]", "user_id": 7}
        assert redact(None) == {}


class TestFormatters:

    def test_json_output(self):
        line = StructuredFormatter(environment="test").format(make_record(user_id=7, access_token="eyJ..."))
        document = json.loads(line)

        assert document["message"] == "Login failed"
        assert document["logger"] == "rest_api.auth"
        assert document["environment"] == "test"
        assert document["request_id"] == "req-12345678-abcd"
        assert document["context"] == {"user_id": 7, "access_token": "[redacted]"}

    def test_development_output(self):
        line = DevelopmentFormatter().format(make_record(ip_address="10.0.0.1", password="x"))
        assert "Login failed" in line
        assert "req-1234" in line
        assert "ip_address='10.0.0.1'" in line
        assert "'x'" not in line


def test_keyword_context_reaches_record(caplog):
    logger = get_logger("tests.structured")
    with caplog.at_level(logging.INFO, logger="tests.structured"):
        logger.info("Token blacklisted", ttl_seconds=30)

    (record,) = caplog.records
    assert record.context == {"ttl_seconds": 30}
    assert record.funcName == "test_keyword_context_reaches_record"

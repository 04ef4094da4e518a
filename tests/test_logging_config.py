"""Tests for log masking."""

import logging

from common.logging_config import SensitiveDataFilter


def make_record(msg, args=None):
    return logging.LogRecord("claimsync.test", logging.INFO, __file__, 1, msg, args, None)


def test_masks_shared_secrets_and_bearer_tokens():
    record = make_record("sync_secret=abc123 Authorization: Bearer svc-key-9")

    SensitiveDataFilter().filter(record)

    assert "abc123" not in record.msg
    assert "svc-key-9" not in record.msg
    assert "***MASKED***" in record.msg


def test_masks_signed_url_signatures():
    record = make_record(
        "Fetching http://source.test/storage/v1/object/sign/claim-files/c1/a.jpg?expires=1&signature=deadbeef01"
    )

    SensitiveDataFilter().filter(record)

    assert "deadbeef01" not in record.msg
    assert "expires=1" in record.msg


def test_masks_format_arguments():
    record = make_record("headers: %s", ("x-claim-sync-secret: topsecret",))

    SensitiveDataFilter().filter(record)

    assert "topsecret" not in record.getMessage()


def test_plain_messages_pass_through():
    record = make_record("Aggregated claim c1: tasks=2")

    assert SensitiveDataFilter().filter(record) is True
    assert record.msg == "Aggregated claim c1: tasks=2"

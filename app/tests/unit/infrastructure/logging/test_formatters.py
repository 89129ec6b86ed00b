from infrastructure.logging import (
    bind_request_context,
    get_correlation_id,
    mask_sensitive_data,
    truncate_large_values,
)


def test_mask_sensitive_data_redacts_matching_keys():
    processor = mask_sensitive_data()
    event = processor(
        None,
        "info",
        {"event": "x", "access_token": "abc", "Signature": "deadbeef", "tenant_id": "t"},
    )
    assert event["access_token"] == "***REDACTED***"
    assert event["Signature"] == "***REDACTED***"
    assert event["tenant_id"] == "t"


def test_mask_sensitive_data_keeps_none_values():
    processor = mask_sensitive_data()
    assert processor(None, "info", {"password": None})["password"] is None


def test_truncate_large_values():
    processor = truncate_large_values(max_length=10)
    event = processor(None, "info", {"body": "x" * 25, "short": "ok"})
    assert event["body"].startswith("x" * 10 + "...[truncated, 25 chars")
    assert event["short"] == "ok"


def test_bind_request_context_scopes_correlation_id():
    with bind_request_context(correlation_id="req-9", tenant_id="tenant-a"):
        assert get_correlation_id() == "req-9"
    assert get_correlation_id() is None


def test_bind_request_context_generates_correlation_id():
    with bind_request_context():
        assert get_correlation_id()

from __future__ import annotations

from apissense._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "battery": 80,
        "password": "pw",
        "nested": {"Username": "keeper", "token": "abc"},
    }

    redacted = redact_for_log(payload)
    assert redacted["battery"] == 80
    assert redacted["password"] == "<redacted>"
    assert redacted["nested"]["Username"] == "<redacted>"
    assert redacted["nested"]["token"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_decodes_payload_bytes() -> None:
    assert redact_for_log(b'{"battery": 25}') == '{"battery": 25}'
    assert "<truncated 600b>" in redact_for_log(b"y" * 600)

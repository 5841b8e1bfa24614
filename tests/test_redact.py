from __future__ import annotations

from fleetsync._redact import redact_for_log, redact_headers


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "name": "Ana",
        "apiKey": "k",
        "password": "pw",
        "phone": "81 9999",
        "nested": [{"Authorization": "Bearer x", "plate": "ABC"}],
    }

    redacted = redact_for_log(payload)
    assert redacted["name"] == "Ana"
    assert redacted["apiKey"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["phone"] == "<redacted>"
    assert redacted["nested"][0] == {"Authorization": "<redacted>", "plate": "ABC"}


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_headers_keeps_scheme() -> None:
    headers = redact_headers({"authorization": "Bearer abc", "cookie": "sid=1", "accept": "application/json"})
    assert headers == {
        "authorization": "Bearer <redacted>",
        "cookie": "<redacted>",
        "accept": "application/json",
    }


def test_sensitive_keys_match_across_spellings() -> None:
    redacted = redact_for_log({"api_key": "k", "Refresh-Token": "r", "telefone": "81", "peso": b"\x00\x01"})
    assert redacted == {
        "api_key": "<redacted>",
        "Refresh-Token": "<redacted>",
        "telefone": "<redacted>",
        "peso": "<bytes:2b>",
    }

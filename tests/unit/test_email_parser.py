# --------------------------- tests/unit/test_email_parser.py ----------------------------
"""
Broker Intelligence · Raw Email Parser Tests

Raw .eml parsing and the From-header / broker-name helpers.
"""

from broker_intel.utils.email_parser import (
    extract_broker_name,
    extract_display_name,
    extract_email_address,
    parse_raw_email,
)

RAW_EMAIL = (
    b'From: "TQL Dispatch" <Loads@TQL.com>\r\n'
    b"To: carrier@example.com\r\n"
    b"Subject: Load #123456 Dallas, TX to Tulsa, OK\r\n"
    b"Date: Mon, 19 Oct 2026 10:00:00 -0500\r\n"
    b"Message-ID: <abc123@tql.com>\r\n"
    b"MIME-Version: 1.0\r\n"
    b'Content-Type: multipart/alternative; boundary="XYZ"\r\n'
    b"\r\n"
    b"--XYZ\r\n"
    b"Content-Type: text/plain; charset=utf-8\r\n"
    b"\r\n"
    b"Rate: $800\r\n"
    b"--XYZ\r\n"
    b"Content-Type: text/html; charset=utf-8\r\n"
    b"\r\n"
    b"<p>Rate: $800</p>\r\n"
    b"--XYZ--\r\n"
)


def test_parse_raw_email():
    message = parse_raw_email(RAW_EMAIL)

    assert message.message_id == "<abc123@tql.com>"
    assert message.from_address == "loads@tql.com"
    assert message.from_display_name == "TQL Dispatch"
    assert message.subject == "Load #123456 Dallas, TX to Tulsa, OK"
    assert message.body_text == "Rate: $800"
    assert "<p>Rate: $800</p>" in message.body_html
    assert message.received_at.year == 2026
    assert message.received_at.utcoffset() is not None


def test_parse_raw_email_explicit_message_id():
    assert parse_raw_email(RAW_EMAIL, message_id="gmail-42").message_id == "gmail-42"


def test_extract_email_address():
    cases = [
        ('"Jane Doe" <Jane@Example.com>', "jane@example.com"),
        ("dispatch@hubgroup.com", "dispatch@hubgroup.com"),
        ("Reply to ops@echo.com please", "ops@echo.com"),
        ("", ""),
    ]
    for header, expected in cases:
        assert extract_email_address(header) == expected


def test_extract_display_name():
    assert extract_display_name('"Jane Doe" <jane@example.com>') == "Jane Doe"
    assert extract_display_name("jane@example.com") is None
    assert extract_display_name("<jane@example.com>") is None


def test_extract_broker_name():
    assert extract_broker_name("Load offer from Acme Logistics", None) == "Acme Logistics"
    assert extract_broker_name("Load available", "Lone Star Freight") == "Lone Star Freight"
    assert extract_broker_name("Hello", "Jane Doe") == "Jane Doe"
    assert extract_broker_name("Hello", None) is None


def test_extract_broker_name_with_punctuated_company():
    assert extract_broker_name("Loads from O'Neal Freight this week", None) == "O'Neal Freight"
    assert extract_broker_name("Weekly list", "J.B. Transport") == "J.B. Transport"

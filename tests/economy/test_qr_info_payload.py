import json

import pytest

from app.economy.redemption.errors import RedemptionValidationError
from app.economy.redemption.qr_info import parse_scanned_payload


def test_parse_scanned_payload_accepts_bare_code() -> None:
    assert parse_scanned_payload("  QR-CAMP-0001 ") == ("QR-CAMP-0001", None)


def test_parse_scanned_payload_reads_json_code_and_customer() -> None:
    raw = json.dumps({"code": "QR-CAMP-0001", "customerId": 42})
    assert parse_scanned_payload(raw) == ("QR-CAMP-0001", 42)


@pytest.mark.parametrize("key", ["Code", "raw"])
def test_parse_scanned_payload_supports_alternate_code_keys(key: str) -> None:
    raw = json.dumps({key: "VCH-20260101-ABCDEFGH", "customerId": "17"})
    assert parse_scanned_payload(raw) == ("VCH-20260101-ABCDEFGH", 17)


def test_parse_scanned_payload_ignores_unusable_customer_id() -> None:
    raw = json.dumps({"code": "QR-1", "customerId": True})
    assert parse_scanned_payload(raw) == ("QR-1", None)


def test_parse_scanned_payload_keeps_json_without_code_as_raw_text() -> None:
    raw = json.dumps({"customerId": 5})
    assert parse_scanned_payload(raw) == (raw, 5)


def test_parse_scanned_payload_rejects_blank_input() -> None:
    with pytest.raises(RedemptionValidationError) as exc_info:
        parse_scanned_payload("   ")
    assert exc_info.value.reason == "EMPTY_PAYLOAD"


@pytest.mark.parametrize(
    ("payload", "expected_code"),
    [
        ({"code": 12345, "customerId": 7}, "12345"),
        ({"Code": 0, "customerId": 7}, "0"),
        ({"code": None, "raw": 987, "customerId": 7}, "987"),
        ({"code": "  ", "Code": " QR-9 ", "customerId": 7}, "QR-9"),
    ],
)
def test_parse_scanned_payload_accepts_numeric_and_skips_blank_codes(
    payload: dict[str, object], expected_code: str
) -> None:
    assert parse_scanned_payload(json.dumps(payload)) == (expected_code, 7)


def test_parse_scanned_payload_does_not_treat_boolean_as_code() -> None:
    raw = json.dumps({"code": True, "customerId": 7})
    assert parse_scanned_payload(raw) == (raw, 7)

from __future__ import annotations

import secrets
from datetime import datetime

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
VOUCHER_CODE_PREFIX = "VCH"
QR_CODE_PREFIX = "QR"


def random_token(length: int = 8) -> str:
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate_voucher_code(*, now_utc: datetime, token_length: int = 8) -> str:
    return f"{VOUCHER_CODE_PREFIX}-{now_utc:%Y%m%d}-{random_token(token_length)}"


def generate_voucher_qr_payload(*, voucher_code: str, token_length: int = 8) -> str:
    return f"{QR_CODE_PREFIX}-{voucher_code}-{random_token(token_length)}"

from __future__ import annotations

import logging
import sys

import structlog

SERVICE_NAME = "promo-redemption"
# Voucher and QR codes are bearer credentials until redeemed.
CODE_FIELDS = frozenset({"code", "voucher_code", "qr_code"})
VISIBLE_CODE_SUFFIX = 4


def mask_code(value: str) -> str:
    if len(value) <= VISIBLE_CODE_SUFFIX:
        return "*" * len(value)
    return "*" * (len(value) - VISIBLE_CODE_SUFFIX) + value[-VISIBLE_CODE_SUFFIX:]


def _add_service_name(
    logger: object,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    del logger, method_name
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _mask_redemption_codes(
    logger: object,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    del logger, method_name
    for field_name in CODE_FIELDS.intersection(event_dict):
        value = event_dict[field_name]
        if isinstance(value, str):
            event_dict[field_name] = mask_code(value)
    return event_dict


def configure_logging(log_level: str = "INFO", *, json_logs: bool = True) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _add_service_name,
            _mask_redemption_codes,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

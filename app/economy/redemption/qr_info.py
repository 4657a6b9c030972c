from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.campaigns_repo import CampaignsRepo
from app.db.repo.users_repo import UsersRepo, display_name
from app.economy.redemption.errors import RedemptionNotFoundError, RedemptionValidationError
from app.economy.redemption.service import RedemptionService
from app.economy.redemption.types import QRInfoPreview

CODE_KEYS = ("code", "Code", "raw")


def _as_user_id(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _as_code_text(value: object) -> str | None:
    # Printed codes are sometimes encoded as JSON numbers.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_scanned_payload(raw_payload: str) -> tuple[str, int | None]:
    """Return the code carried by a scanned payload and the optional customer id.

    A payload is either the bare code or a JSON object holding it. Anything
    that does not parse as such is treated as the bare code.
    """
    text = (raw_payload or "").strip()
    if not text:
        raise RedemptionValidationError("EMPTY_PAYLOAD")

    try:
        parsed = json.loads(text)
    except ValueError:
        return text, None
    if not isinstance(parsed, dict):
        return text, None

    code: str | None = None
    for key in CODE_KEYS:
        code = _as_code_text(parsed.get(key))
        if code:
            break
    return code or text, _as_user_id(parsed.get("customerId"))


class QRInfoResolver:
    @staticmethod
    async def resolve(
        session: AsyncSession,
        *,
        raw_payload: str,
        now_utc: datetime | None = None,
    ) -> QRInfoPreview:
        now_utc = now_utc or datetime.now(timezone.utc)
        code, customer_id = parse_scanned_payload(raw_payload)

        preview = await RedemptionService.validate(session, code=code, now_utc=now_utc)
        campaign = await CampaignsRepo.get_by_id(session, preview.campaign_id)
        if campaign is None:
            raise RedemptionNotFoundError

        customer_name = None
        if customer_id is not None:
            customer_name = display_name(await UsersRepo.get_by_id(session, customer_id))

        return QRInfoPreview(
            preview=preview,
            campaign_description=campaign.description,
            product_type=campaign.product_type,
            campaign_start=campaign.start_date,
            campaign_end=campaign.end_date,
            customer_id=customer_id,
            customer_name=customer_name,
        )

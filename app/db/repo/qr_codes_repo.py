from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.qr_codes import QRCode


class QRCodesRepo:
    @staticmethod
    async def get_by_code(session: AsyncSession, code: str) -> QRCode | None:
        stmt = select(QRCode).where(QRCode.code == code)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_code_for_update(session: AsyncSession, code: str) -> QRCode | None:
        stmt = select(QRCode).where(QRCode.code == code).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_redeemed(
        session: AsyncSession,
        *,
        qr_code_id: int,
        user_id: int,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(QRCode)
            .where(QRCode.id == qr_code_id, QRCode.is_redeemed.is_(False))
            .values(
                is_redeemed=True,
                redeemed_at=now_utc,
                redeemed_by_user_id=user_id,
                updated_at=now_utc,
            )
        )
        result = await session.execute(stmt)
        return bool(result.rowcount)

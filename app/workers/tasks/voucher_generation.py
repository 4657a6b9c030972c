from __future__ import annotations

from datetime import datetime, timezone

import structlog

from app.core.config import get_settings
from app.db.repo.campaign_points_repo import CampaignPointsRepo
from app.db.repo.campaigns_repo import CampaignsRepo
from app.db.session import SessionLocal
from app.economy.points.errors import PointsError
from app.economy.vouchers.errors import VoucherIssuanceError
from app.economy.vouchers.service import VoucherIssuanceService
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)
THRESHOLD_SWEEP_SCHEDULE_NAME = "threshold-voucher-generation"


async def run_threshold_voucher_generation_async(*, batch_size: int | None = None) -> dict[str, int]:
    batch_size = batch_size or get_settings().threshold_sweep_batch_size
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        campaign_ids = await CampaignsRepo.list_running_threshold_campaign_ids(
            session,
            now_utc=now_utc,
        )
        pairs: list[tuple[int, int]] = []
        for campaign_id in campaign_ids:
            campaign = await CampaignsRepo.get_by_id(session, campaign_id)
            if campaign is None or not campaign.voucher_generation_threshold:
                continue
            reseller_ids = await CampaignPointsRepo.list_reseller_ids_at_threshold(
                session,
                campaign_id=campaign_id,
                threshold=campaign.voucher_generation_threshold,
                limit=batch_size,
            )
            pairs.extend((campaign_id, reseller_id) for reseller_id in reseller_ids)

    vouchers_issued = 0
    failed_pairs = 0
    for campaign_id, reseller_id in pairs:
        try:
            async with SessionLocal.begin() as session:
                issued = await VoucherIssuanceService.generate_threshold_vouchers(
                    session,
                    campaign_id=campaign_id,
                    reseller_id=reseller_id,
                    now_utc=now_utc,
                )
        except (PointsError, VoucherIssuanceError) as exc:
            failed_pairs += 1
            logger.warning(
                "threshold_voucher_generation_pair_failed",
                campaign_id=campaign_id,
                reseller_id=reseller_id,
                error_type=type(exc).__name__,
            )
            continue
        vouchers_issued += len(issued)

    result = {
        "campaigns_scanned": len(campaign_ids),
        "pairs_processed": len(pairs),
        "vouchers_issued": vouchers_issued,
        "failed_pairs": failed_pairs,
    }
    logger.info("threshold_voucher_generation_finished", **result)
    return result


@celery_app.task(name="app.workers.tasks.voucher_generation.run_threshold_voucher_generation")
def run_threshold_voucher_generation(batch_size: int | None = None) -> dict[str, int]:
    return run_async_job(run_threshold_voucher_generation_async(batch_size=batch_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        THRESHOLD_SWEEP_SCHEDULE_NAME: {
            "task": "app.workers.tasks.voucher_generation.run_threshold_voucher_generation",
            "schedule": get_settings().threshold_sweep_interval_seconds,
            "options": {"queue": get_settings().celery_default_queue},
        },
    }
)

"""
Referral counter repair task.

The direct referral counter is bumped best-effort after enrollment and can
fall behind. This task recounts every drifted account from the ancestor
column.
"""

import dramatiq
from loguru import logger

from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401 - registers the default broker
from jobs.utils.database import task_engine, task_session_maker
from upline.repositories.account_repository import AccountRepository
from upline.services.downline_service import DownlineService

REPAIR_BATCH_SIZE = 500
REPAIR_TIME_LIMIT = 300_000  # 5 minutes


@dramatiq.actor(max_retries=3, time_limit=REPAIR_TIME_LIMIT)
def repair_direct_referral_counts() -> None:
    """Recount direct referrals for accounts whose counter drifted."""
    logger.info("Starting direct referral counter repair...")

    try:
        repaired = run_async(_repair_direct_referral_counts_async())
        logger.info(f"Direct referral counter repair complete: {repaired} repaired")
    except Exception as e:
        logger.exception(f"Direct referral counter repair failed: {e}")
        raise


async def _repair_direct_referral_counts_async(session_maker=None) -> int:
    """
    Async implementation of counter repair.

    Args:
        session_maker: Session factory (task sessions by default)

    Returns:
        Number of accounts repaired
    """
    maker = session_maker or task_session_maker
    repaired = 0

    try:
        async with maker() as session:
            account_ids = await AccountRepository(session).find_counter_drift(
                limit=REPAIR_BATCH_SIZE
            )
            # Release the read transaction before the per-account writes
            await session.commit()

            service = DownlineService(session)
            for account_id in account_ids:
                await service.recount_direct_referrals(account_id)
                repaired += 1

        return repaired
    finally:
        if session_maker is None:
            await task_engine.dispose()

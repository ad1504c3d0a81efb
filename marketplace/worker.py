"""
arq worker for the penalty system's scheduled jobs.

Run with ``arq marketplace.worker.WorkerSettings``. The cron table is built by
a plain function, so constructing the settings twice registers the same jobs
and never duplicates them.
"""
import logging
from datetime import timezone
from urllib.parse import urlparse

from arq.connections import RedisSettings
from arq.cron import cron

from marketplace.core.config import settings
from marketplace.core.database import SessionLocal
from marketplace.features.admin.service import AdminService
from marketplace.features.penalty_reset.service import PenaltyResetService, RESET_MONTHS
from marketplace.models import registry  # noqa: F401

logger = logging.getLogger(__name__)


def get_redis_settings() -> RedisSettings:
    if not settings.REDIS_URL:
        return RedisSettings()
    parsed = urlparse(settings.REDIS_URL)
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        password=parsed.password,
        ssl=parsed.scheme == "rediss",
        conn_timeout=15,
        conn_retry_delay=1,
    )


async def quarterly_penalty_reset_task(ctx):
    """Reset every account below 100 points on the first day of each quarter."""
    logger.info("Starting quarterly penalty reset")
    db = SessionLocal()
    try:
        summary = PenaltyResetService.run_reset(db)
        logger.info(f"Next reset: {PenaltyResetService.next_reset_date():%Y-%m-%d}")
        return summary
    except Exception as e:
        logger.error(f"Quarterly penalty reset failed: {e}")
        raise
    finally:
        db.close()


async def lift_expired_suspensions_task(ctx):
    db = SessionLocal()
    try:
        return {"lifted": AdminService.lift_expired_suspensions(db)}
    except Exception as e:
        logger.error(f"Lifting expired suspensions failed: {e}")
        raise
    finally:
        db.close()


def build_cron_jobs():
    return [
        # 00:00 UTC on Jan 1, Apr 1, Jul 1 and Oct 1
        cron(quarterly_penalty_reset_task, month=set(RESET_MONTHS), day=1, hour=0, minute=0, unique=True),
        cron(lift_expired_suspensions_task, hour=0, minute=15, unique=True),
    ]


async def startup(ctx):
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(f"Penalty worker started, next quarterly reset {PenaltyResetService.next_reset_date():%Y-%m-%d}")


class WorkerSettings:
    functions = [quarterly_penalty_reset_task, lift_expired_suspensions_task]
    cron_jobs = build_cron_jobs()
    redis_settings = get_redis_settings()
    on_startup = startup
    timezone = timezone.utc

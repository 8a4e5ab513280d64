"""Celery tasks: tracked-competitor newsletter digests on a beat schedule."""
import asyncio
import logging

from celery import Celery
from celery.schedules import crontab

from competitor_signals.config import settings

logger = logging.getLogger(__name__)

# Created lazily; the broker is only contacted when a task is sent
_celery_app = None


def _crontab_from(expr: str) -> crontab:
    minute, hour, day_of_month, month_of_year, day_of_week = expr.split()
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


def get_celery_app():
    global _celery_app
    if _celery_app is None:
        _celery_app = Celery(
            "competitor_signals",
            broker=settings.CELERY_BROKER_URL,
            backend=settings.CELERY_RESULT_BACKEND,
        )
        _celery_app.conf.update(
            task_serializer="json",
            accept_content=["json"],
            result_serializer="json",
            beat_schedule={
                "tracked-competitor-newsletters": {
                    "task": "competitor_signals.tasks.digest_tasks.send_all_newsletters",
                    "schedule": _crontab_from(settings.NEWSLETTER_CRON),
                },
            },
        )
    return _celery_app


# For: celery -A competitor_signals.tasks.digest_tasks worker -B -l info
app = get_celery_app()


def _run_async(coro):
    """Run async coroutine from sync Celery task."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _newsletter(user_id: str, force: bool) -> dict:
    from competitor_signals.database import init_db, make_engine, make_session_factory
    from competitor_signals.services.intelligence import IntelligenceService
    from competitor_signals.services.report_store import ReportStore

    # Fresh engine per event loop; aiosqlite connections are loop-bound.
    engine = make_engine()
    try:
        await init_db(engine)
        svc = IntelligenceService.build_default(ReportStore(make_session_factory(engine)))
        report = await svc.generate_newsletter(user_id, force=force)
        return {"user_id": user_id, "report_id": report.id if report else None, "skipped": report is None}
    finally:
        await engine.dispose()


async def _users_with_tracked() -> list[str]:
    from competitor_signals.database import init_db, make_engine, make_session_factory
    from competitor_signals.services.report_store import ReportStore

    engine = make_engine()
    try:
        await init_db(engine)
        return await ReportStore(make_session_factory(engine)).users_with_tracked()
    finally:
        await engine.dispose()


@get_celery_app().task
def send_newsletter(user_id: str, force: bool = False):
    """Build and store one user's newsletter digest."""
    try:
        result = _run_async(_newsletter(user_id, force))
    except Exception as e:
        logger.exception("send_newsletter failed for %s: %s", user_id, e)
        raise
    logger.info("Newsletter for %s: %s", user_id, result)
    return result


@get_celery_app().task
def send_all_newsletters(force: bool = False):
    """Fan out one send_newsletter task per user with tracked competitors."""
    users = _run_async(_users_with_tracked())
    for user_id in users:
        send_newsletter.delay(user_id, force)
    logger.info("Enqueued %d newsletter digests", len(users))
    return {"enqueued": len(users)}

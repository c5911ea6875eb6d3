from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.redis import RedisJobStore
from attendee_network.core.config import settings
from attendee_network.core.errors import NetworkError
import logging
import uuid
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

RECOMPUTE_JOB_ID = "recompute_running_events"


async def recompute_event_job(event_id: uuid.UUID):
    """
    One-off recompute of a single event's matches.
    Failures are logged; the job can simply be scheduled again.
    """
    from attendee_network.db.session import AsyncSessionLocal
    from attendee_network.services.match_service import MatchService

    logger.info(f"Match recompute job started for event {event_id}")
    try:
        async with AsyncSessionLocal() as session:
            result = await MatchService(session).recompute_event_matches(event_id)
            logger.info(f"Match recompute for {event_id}: {result.matches_written} rows")
    except NetworkError as e:
        logger.error(f"Match recompute failed for {event_id}: {e.message}")


async def recompute_running_events_job():
    """
    Periodic job: recompute matches of every event that is currently running,
    so late registrations show up in suggestions.
    """
    from attendee_network.db.session import AsyncSessionLocal
    from attendee_network.services.match_service import MatchService

    logger.info("Starting scheduled match recompute...")
    async with AsyncSessionLocal() as session:
        service = MatchService(session)
        event_ids = await service.get_running_event_ids()

        for event_id in event_ids:
            try:
                await service.recompute_event_matches(event_id)
            except NetworkError as e:
                # Keep going: one failing event must not block the others
                logger.error(f"Scheduled recompute failed for event {event_id}: {e.message}")

    logger.info(f"Scheduled match recompute done for {len(event_ids)} events")


# Redis job store; RedisJobStore initiates Redis(db=..., **kwargs)
redis_url_str = str(settings.REDIS_URL)
parsed_redis = urlparse(redis_url_str)

redis_kwargs = {
    'host': parsed_redis.hostname or 'localhost',
    'port': parsed_redis.port or 6379,
    'password': parsed_redis.password,
}

# DB is typically path '/0' -> 0
db_val = 0
if parsed_redis.path and parsed_redis.path != '/':
    try:
        db_val = int(parsed_redis.path.lstrip('/'))
    except ValueError:
        pass

jobstores = {
    'default': RedisJobStore(
        jobs_key='attendee_network:jobs',
        run_times_key='attendee_network:run_times',
        db=db_val,
        **redis_kwargs
    )
}

scheduler = AsyncIOScheduler(jobstores=jobstores, timezone="UTC")


def schedule_event_recompute(event_id: uuid.UUID):
    """Queue a recompute to run as soon as possible, collapsing duplicates per event."""
    scheduler.add_job(
        recompute_event_job,
        'date',
        args=[event_id],
        id=f"recompute_{event_id}",
        replace_existing=True,
    )
    logger.info(f"Scheduled match recompute for event {event_id}")


async def start_scheduler():
    """Start the scheduler."""
    if not scheduler.running:
        if settings.MATCH_RECOMPUTE_INTERVAL_MINUTES > 0:
            scheduler.add_job(
                recompute_running_events_job,
                'interval',
                minutes=settings.MATCH_RECOMPUTE_INTERVAL_MINUTES,
                id=RECOMPUTE_JOB_ID,
                replace_existing=True,
            )
        scheduler.start()
        logger.info("Scheduler started.")


async def shutdown_scheduler():
    """Shutdown the scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler shut down.")

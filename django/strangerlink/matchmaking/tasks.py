import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def record_report(reporter: str, reported: str | None, room_id: str | None, reason: str = ""):
    """
    Moderation hook for a user report. Nothing is stored or acted on yet,
    the report is only logged.
    """
    if not reported:
        logger.info("Report from %s outside of a session ignored", reporter)
        return
    logger.warning(
        "User report: %s reported %s in room %s (reason=%r)",
        reporter,
        reported,
        room_id,
        reason,
    )

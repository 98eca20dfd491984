"""
Processing job records: one row per transcode attempt.

Writes here are bookkeeping. Database errors are logged and swallowed so
they never decide the outcome of a run; the media item's status does that.
"""
import logging

from django.db import DatabaseError
from django.utils import timezone

from .models import ProcessingJob

logger = logging.getLogger(__name__)

ABANDONED_MESSAGE = "abandoned: no outcome recorded within {seconds}s, claim taken over"


def start_job(media_id) -> ProcessingJob | None:
    try:
        job = ProcessingJob.objects.create(
            media_id=media_id,
            status=ProcessingJob.Status.PROCESSING,
            started_at=timezone.now(),
        )
    except DatabaseError:
        logger.exception("failed to create processing job media_id=%s", media_id)
        return None
    logger.info("processing job started media_id=%s job_id=%s", media_id, job.id)
    return job


def _finish(job: ProcessingJob | None, status: str, error_message: str | None = None) -> bool:
    """Move a running job to a terminal status. Only the first terminal write wins."""
    if job is None:
        return False
    now = timezone.now()
    try:
        updated = ProcessingJob.objects.filter(
            pk=job.pk, status=ProcessingJob.Status.PROCESSING,
        ).update(status=status, error_message=error_message, completed_at=now)
    except DatabaseError:
        logger.exception("failed to close processing job job_id=%s status=%s", job.pk, status)
        return False
    if not updated:
        logger.warning("processing job already closed job_id=%s wanted=%s", job.pk, status)
        return False
    job.status = status
    job.error_message = error_message
    job.completed_at = now
    return True


def complete_job(job: ProcessingJob | None) -> bool:
    return _finish(job, ProcessingJob.Status.COMPLETED)


def fail_job(job: ProcessingJob | None, error_message: str) -> bool:
    return _finish(job, ProcessingJob.Status.FAILED, error_message or "unknown error")


def latest_job(media_id) -> ProcessingJob | None:
    return ProcessingJob.objects.filter(media_id=media_id).order_by("-created_at").first()


def abandon_running(media_id, error_message: str) -> int:
    """Fail every job of media_id still marked running. Returns how many were closed."""
    try:
        updated = ProcessingJob.objects.filter(
            media_id=media_id, status=ProcessingJob.Status.PROCESSING,
        ).update(status=ProcessingJob.Status.FAILED, error_message=error_message, completed_at=timezone.now())
    except DatabaseError:
        logger.exception("failed to abandon running jobs media_id=%s", media_id)
        return 0
    return updated

import logging

from celery import shared_task
from django.conf import settings

from .events import UploadConfirmedEvent
from .pipeline import handle

logger = logging.getLogger(__name__)


def _redelivery_countdown(retries: int) -> int:
    return settings.PIPELINE_REDELIVERY_BACKOFF_SECONDS * (retries + 1)


@shared_task(
    bind=True,
    name="processing.handle_upload_confirmed",
    acks_late=True,
    reject_on_worker_lost=True,
    max_retries=settings.PIPELINE_MAX_REDELIVERIES,
)
def handle_upload_confirmed(self, payload: dict):
    """
    Worker entry point for upload-confirmed events.

    A failed run is put back on the queue with a growing countdown; the
    handler itself never loops. Malformed payloads are dropped, since
    redelivering them can never succeed.
    """
    try:
        event = UploadConfirmedEvent.from_payload(payload)
    except ValueError as e:
        logger.error("dropping malformed event payload=%r error=%s", payload, e)
        return

    try:
        handle(event)
    except Exception as e:
        logger.warning(
            "event handling failed, scheduling redelivery media_id=%s attempt=%s error=%s",
            event.media_id, self.request.retries + 1, e,
        )
        raise self.retry(exc=e, countdown=_redelivery_countdown(self.request.retries))

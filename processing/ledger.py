"""
User-visible status of media items.

Every transition is a conditional single-row update. A claim moves the item
into processing and stamps ``processing_since`` in the same statement; that
timestamp is the claim token. Terminal writes match on both the processing
status and the token, so a run whose claim was taken over cannot overwrite
the outcome of the run that replaced it. Database errors propagate: this
status is authoritative.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.conf import settings
from django.utils import timezone

from . import jobstore
from .models import MediaItem

logger = logging.getLogger(__name__)

# Statuses a delivered event may move into processing
CLAIMABLE = (MediaItem.Status.UPLOADING, MediaItem.Status.QUEUED, MediaItem.Status.FAILED)
CONFIRMABLE = CLAIMABLE

CLAIMED = "claimed"
TAKEN_OVER = "taken_over"
HELD = "held"
MISSING = "missing"


@dataclass(frozen=True)
class Claim:
    outcome: str
    token: datetime | None = None


def current_status(media_id) -> str | None:
    return MediaItem.objects.filter(pk=media_id).values_list("status", flat=True).first()


def claim(media_id, stale_after: int | None = None) -> Claim:
    """
    Try to take ownership of processing media_id.

    Returns a Claim whose outcome is CLAIMED or TAKEN_OVER when the caller
    should do the work (its token must be passed to mark_ready/mark_failed),
    HELD when another delivery already has it (or it is ready), and MISSING
    when there is no such item.

    A processing item whose claim is older than stale_after seconds, or that
    carries no claim time at all, is taken over by whichever caller wins the
    conditional update on the old claim time. Whether a job row was ever
    written for the old claim does not matter.
    """
    if stale_after is None:
        stale_after = settings.PIPELINE_CLAIM_STALE_SECONDS

    now = timezone.now()
    updated = MediaItem.objects.filter(pk=media_id, status__in=CLAIMABLE).update(
        status=MediaItem.Status.PROCESSING, processing_since=now,
    )
    if updated:
        return Claim(CLAIMED, now)

    row = MediaItem.objects.filter(pk=media_id).values_list("status", "processing_since").first()
    if row is None:
        return Claim(MISSING)
    status, since = row
    if status != MediaItem.Status.PROCESSING:
        return Claim(HELD)
    if since is not None and since > now - timedelta(seconds=stale_after):
        return Claim(HELD)

    updated = MediaItem.objects.filter(
        pk=media_id, status=MediaItem.Status.PROCESSING, processing_since=since,
    ).update(processing_since=now)
    if not updated:
        return Claim(HELD)

    abandoned = jobstore.abandon_running(media_id, jobstore.ABANDONED_MESSAGE.format(seconds=stale_after))
    logger.warning(
        "stale claim taken over media_id=%s claimed_at=%s abandoned_jobs=%d", media_id, since, abandoned,
    )
    return Claim(TAKEN_OVER, now)


def _transition(media_id, token: datetime, **fields) -> bool:
    updated = MediaItem.objects.filter(
        pk=media_id, status=MediaItem.Status.PROCESSING, processing_since=token,
    ).update(**fields)
    if not updated:
        logger.warning(
            "claim no longer held, media not updated media_id=%s wanted=%s", media_id, fields.get("status"),
        )
    return bool(updated)


def mark_ready(
    media_id, token: datetime, processed_key: str = "", duration_seconds: int = 0, size_bytes: int | None = None,
) -> bool:
    fields = {"status": MediaItem.Status.READY}
    if processed_key:
        fields["s3_key_processed"] = processed_key
    if duration_seconds and duration_seconds > 0:
        fields["duration_seconds"] = duration_seconds
    if size_bytes is not None:
        fields["size_bytes"] = size_bytes
    return _transition(media_id, token, **fields)


def mark_failed(media_id, token: datetime) -> bool:
    return _transition(media_id, token, status=MediaItem.Status.FAILED)


def mark_queued(media_id, title: str = "", size_bytes: int | None = None) -> bool:
    """Upload confirmed: queue the item for processing, optionally recording title and size."""
    fields = {"status": MediaItem.Status.QUEUED}
    if title:
        fields["title"] = title
    if size_bytes:
        fields["size_bytes"] = size_bytes
    return bool(MediaItem.objects.filter(pk=media_id, status__in=CONFIRMABLE).update(**fields))

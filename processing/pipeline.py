"""
Upload-confirmed event handling: claim the item, transcode, record the outcome.

``handle`` is safe to run more than once for the same event, including
concurrently. The claim on the media item's status decides which delivery
does the work; every other delivery is acknowledged without side effects.
Failures are re-raised so the transport can redeliver.
"""
import logging
from dataclasses import dataclass

from . import jobstore, ledger
from .codec import Codec, FFmpegCodec
from .events import UploadConfirmedEvent
from .staging import object_stage

logger = logging.getLogger(__name__)

SUPERSEDED_MESSAGE = "superseded: claim taken over by another delivery"


@dataclass
class TranscodeOutcome:
    processed_key: str = ""      # empty: nothing was transcoded, the original is served
    duration_seconds: int = 0
    size_bytes: int | None = None


def transcode_media(event: UploadConfirmedEvent, codec: Codec, stage_factory=object_stage) -> TranscodeOutcome:
    key = event.original_storage_key
    if not codec.accepts(key):
        logger.info("not a video, skipping transcode media_id=%s key=%s", event.media_id, key)
        return TranscodeOutcome()

    with stage_factory() as stage:
        input_path = stage.fetch(key)
        output_path = codec.transcode(input_path)
        duration = codec.probe_duration(output_path)
        size_bytes = output_path.stat().st_size
        processed_key = stage.store(output_path, event.media_id)

    return TranscodeOutcome(processed_key=processed_key, duration_seconds=duration, size_bytes=size_bytes)


def _record_failure(event: UploadConfirmedEvent, token, job, error: BaseException) -> None:
    try:
        ledger.mark_failed(event.media_id, token)
    except Exception:
        logger.exception("failed to mark media failed media_id=%s", event.media_id)
    jobstore.fail_job(job, str(error) or error.__class__.__name__)


def handle(event: UploadConfirmedEvent, codec: Codec | None = None, stage_factory=None) -> None:
    logger.info("processing media media_id=%s key=%s", event.media_id, event.original_storage_key)

    claim = ledger.claim(event.media_id)
    if claim.outcome == ledger.MISSING:
        logger.warning("media not found, dropping event media_id=%s", event.media_id)
        return
    if claim.outcome == ledger.HELD:
        logger.info("media already claimed or ready, skipping media_id=%s", event.media_id)
        return
    if claim.outcome == ledger.TAKEN_OVER:
        logger.warning("taking over stale claim media_id=%s", event.media_id)

    job = jobstore.start_job(event.media_id)
    codec = codec or FFmpegCodec()
    stage_factory = stage_factory or object_stage

    try:
        outcome = transcode_media(event, codec, stage_factory)
        recorded = ledger.mark_ready(
            event.media_id,
            claim.token,
            processed_key=outcome.processed_key,
            duration_seconds=outcome.duration_seconds,
            size_bytes=outcome.size_bytes,
        )
    except Exception as e:
        logger.error("processing failed media_id=%s error=%s", event.media_id, e)
        _record_failure(event, claim.token, job, e)
        raise

    if not recorded:
        # Another delivery took the claim over; its outcome stands.
        logger.warning("claim lost before completion, discarding result media_id=%s", event.media_id)
        jobstore.fail_job(job, SUPERSEDED_MESSAGE)
        return

    jobstore.complete_job(job)
    logger.info(
        "media processing completed media_id=%s processed_key=%s", event.media_id, outcome.processed_key or "-",
    )

import uuid

from . import jobstore, ledger


class MediaNotFound(LookupError):
    pass


def get_status(media_id) -> dict:
    """
    Current processing status of a media item.

    The latest processing job wins; items that never produced a job (not yet
    consumed, or not a video) fall back to the item's own status.
    """
    try:
        media_id = uuid.UUID(str(media_id))
    except ValueError:
        raise MediaNotFound(str(media_id))

    job = jobstore.latest_job(media_id)
    if job is not None:
        resp = {"media_id": str(job.media_id), "status": job.status}
        if job.error_message:
            resp["error_message"] = job.error_message
        return resp

    status = ledger.current_status(media_id)
    if status is None:
        raise MediaNotFound(str(media_id))
    return {"media_id": str(media_id), "status": status}

import uuid
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class UploadConfirmedEvent:
    """Published once per confirmed upload; may be delivered more than once."""
    media_id: str
    original_storage_key: str
    owner_id: int

    @classmethod
    def from_payload(cls, payload: dict) -> "UploadConfirmedEvent":
        """Build an event from a transport payload. Raises ValueError if it is malformed."""
        if not isinstance(payload, dict):
            raise ValueError(f"event payload must be an object, got {type(payload).__name__}")
        try:
            media_id = str(uuid.UUID(str(payload["media_id"])))
            key = str(payload["original_storage_key"])
            owner_id = int(payload["owner_id"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"malformed upload-confirmed event: {e!r}") from e
        if not key:
            raise ValueError("malformed upload-confirmed event: empty original_storage_key")
        return cls(media_id=media_id, original_storage_key=key, owner_id=owner_id)

    def as_payload(self) -> dict:
        return asdict(self)


def publish_upload_confirmed(event: UploadConfirmedEvent):
    """Hand the event to the worker queue."""
    from .tasks import handle_upload_confirmed

    return handle_upload_confirmed.delay(event.as_payload())

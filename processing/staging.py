"""
Local staging of object-store files for a single processing run.

Everything a run downloads or produces lives under one temporary directory
that is removed when the ``object_stage()`` block exits, however it exits.
"""
import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path

from django.conf import settings

from .s3 import download_file, get_s3_client, upload_file

logger = logging.getLogger(__name__)

PROCESSED_PREFIX = "processed"
PROCESSED_EXTENSION = ".mp4"
PROCESSED_CONTENT_TYPE = "video/mp4"


def processed_key_for(media_id) -> str:
    """Deterministic key of the transcoded artifact: processed/<media_id>.mp4"""
    return f"{PROCESSED_PREFIX}/{media_id}{PROCESSED_EXTENSION}"


class ObjectStage:
    def __init__(self, workdir: Path, client=None, bucket: str | None = None):
        self.workdir = Path(workdir)
        self.client = client
        self.bucket = bucket or settings.S3_BUCKET

    def _client(self):
        if self.client is None:
            self.client = get_s3_client()
        return self.client

    def fetch(self, storage_key: str) -> Path:
        """Download storage_key into the stage as input<ext>, keeping the original extension."""
        local_path = self.workdir / f"input{Path(storage_key).suffix}"
        logger.debug("fetching key=%s to=%s", storage_key, local_path)
        download_file(storage_key, local_path, client=self._client(), bucket=self.bucket)
        return local_path

    def store(self, local_path, media_id) -> str:
        """Upload local_path as the processed artifact for media_id and return its key."""
        key = processed_key_for(media_id)
        # Always video/mp4, whatever container the source used
        upload_file(local_path, key, content_type=PROCESSED_CONTENT_TYPE, client=self._client(), bucket=self.bucket)
        logger.debug("stored path=%s key=%s", local_path, key)
        return key


@contextmanager
def object_stage(client=None, bucket: str | None = None):
    with tempfile.TemporaryDirectory(prefix="media-processing-") as workdir:
        yield ObjectStage(Path(workdir), client=client, bucket=bucket)

import uuid
from django.db import models


class MediaItem(models.Model):
    """User-owned upload. Rows are created by the media service; this app drives status during processing."""

    class Status(models.TextChoices):
        UPLOADING = "uploading"
        QUEUED = "queued"
        PROCESSING = "processing"
        READY = "ready"
        FAILED = "failed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner_id = models.BigIntegerField(db_index=True)   # users live in the auth service
    title = models.TextField(blank=True, default="")
    original_filename = models.TextField(blank=True, default="")
    s3_key_original = models.CharField(max_length=1024)
    s3_key_processed = models.CharField(max_length=1024, blank=True, default="")
    mime_type = models.CharField(max_length=255, blank=True, default="")
    size_bytes = models.BigIntegerField(null=True, blank=True)
    duration_seconds = models.IntegerField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.UPLOADING, db_index=True)
    # Set by each claim into processing; doubles as the claim token for terminal writes
    processing_since = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "media"


class ProcessingJob(models.Model):
    """One transcode attempt for a media item. Kept forever as an audit trail."""

    class Status(models.TextChoices):
        PENDING = "pending"
        PROCESSING = "processing"
        COMPLETED = "completed"
        FAILED = "failed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # Not a ForeignKey: many jobs reference one item over time and the media table belongs to another service
    media_id = models.UUIDField(db_index=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)
    error_message = models.TextField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "processing_jobs"
        ordering = ["-created_at"]

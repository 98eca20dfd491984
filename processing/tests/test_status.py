"""
Tests for the status query (processing/status.py) and the HTTP views.
"""
import uuid
from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from processing import jobstore
from processing.events import UploadConfirmedEvent
from processing.models import MediaItem, ProcessingJob
from processing.status import MediaNotFound, get_status


def make_item(status=MediaItem.Status.QUEUED):
    media_id = uuid.uuid4()
    return MediaItem.objects.create(
        id=media_id, owner_id=7, s3_key_original=f"original/7/{media_id}/clip.mov", status=status,
    )


class GetStatusTest(TestCase):
    def test_falls_back_to_media_status(self):
        item = make_item(MediaItem.Status.QUEUED)
        self.assertEqual(get_status(item.pk), {"media_id": str(item.pk), "status": "queued"})

    def test_latest_job_wins(self):
        item = make_item(MediaItem.Status.FAILED)
        old = jobstore.start_job(item.pk)
        jobstore.complete_job(old)
        ProcessingJob.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(minutes=10))
        new = jobstore.start_job(item.pk)
        jobstore.fail_job(new, "ffmpeg transcoding failed (exit status 1)")

        self.assertEqual(get_status(str(item.pk)), {
            "media_id": str(item.pk),
            "status": "failed",
            "error_message": "ffmpeg transcoding failed (exit status 1)",
        })

    def test_running_job_has_no_error_message(self):
        item = make_item(MediaItem.Status.PROCESSING)
        jobstore.start_job(item.pk)
        self.assertEqual(get_status(item.pk), {"media_id": str(item.pk), "status": "processing"})

    def test_job_without_media_row(self):
        media_id = uuid.uuid4()
        jobstore.start_job(media_id)
        self.assertEqual(get_status(media_id)["status"], "processing")

    def test_not_found(self):
        with self.assertRaises(MediaNotFound):
            get_status(uuid.uuid4())

    def test_malformed_id_is_not_found(self):
        with self.assertRaises(MediaNotFound):
            get_status("not-a-uuid")

    def test_read_only(self):
        item = make_item(MediaItem.Status.QUEUED)
        get_status(item.pk)
        item.refresh_from_db()
        self.assertEqual(item.status, MediaItem.Status.QUEUED)
        self.assertFalse(ProcessingJob.objects.exists())


class ProcessingStatusViewTest(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_queued_item(self):
        item = make_item(MediaItem.Status.QUEUED)
        resp = self.client.get(f"/api/processing/{item.pk}/status/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"media_id": str(item.pk), "status": "queued"})

    def test_failed_job_includes_error(self):
        item = make_item(MediaItem.Status.FAILED)
        job = jobstore.start_job(item.pk)
        jobstore.fail_job(job, "boom")
        resp = self.client.get(f"/api/processing/{item.pk}/status/")
        self.assertEqual(resp.json()["error_message"], "boom")

    def test_unknown_media(self):
        resp = self.client.get(f"/api/processing/{uuid.uuid4()}/status/")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"detail": "media not found"})

    def test_malformed_id(self):
        resp = self.client.get("/api/processing/nope/status/")
        self.assertEqual(resp.status_code, 404)


@patch("processing.views.publish_upload_confirmed")
class ConfirmUploadViewTest(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_queues_and_publishes(self, mock_publish):
        item = make_item(MediaItem.Status.UPLOADING)

        resp = self.client.post(
            f"/api/media/{item.pk}/confirm-upload/", {"title": "Holiday", "size_bytes": 2048}, format="json",
        )

        self.assertEqual(resp.status_code, 202)
        self.assertEqual(resp.json(), {"media_id": str(item.pk), "status": "queued"})
        item.refresh_from_db()
        self.assertEqual(item.status, MediaItem.Status.QUEUED)
        self.assertEqual(item.title, "Holiday")
        self.assertEqual(item.size_bytes, 2048)
        mock_publish.assert_called_once_with(UploadConfirmedEvent(
            media_id=str(item.pk), original_storage_key=item.s3_key_original, owner_id=7,
        ))

    def test_empty_body(self, mock_publish):
        item = make_item(MediaItem.Status.UPLOADING)
        resp = self.client.post(f"/api/media/{item.pk}/confirm-upload/", {}, format="json")
        self.assertEqual(resp.status_code, 202)
        item.refresh_from_db()
        self.assertEqual(item.title, "")
        self.assertIsNone(item.size_bytes)

    def test_unknown_media(self, mock_publish):
        resp = self.client.post(f"/api/media/{uuid.uuid4()}/confirm-upload/", {}, format="json")
        self.assertEqual(resp.status_code, 404)
        mock_publish.assert_not_called()

    def test_ready_media_cannot_be_confirmed_again(self, mock_publish):
        item = make_item(MediaItem.Status.READY)
        resp = self.client.post(f"/api/media/{item.pk}/confirm-upload/", {}, format="json")
        self.assertEqual(resp.status_code, 409)
        item.refresh_from_db()
        self.assertEqual(item.status, MediaItem.Status.READY)
        mock_publish.assert_not_called()

    def test_publish_failure_still_confirms(self, mock_publish):
        mock_publish.side_effect = ConnectionError("redis down")
        item = make_item(MediaItem.Status.UPLOADING)

        resp = self.client.post(f"/api/media/{item.pk}/confirm-upload/", {}, format="json")

        self.assertEqual(resp.status_code, 202)
        item.refresh_from_db()
        self.assertEqual(item.status, MediaItem.Status.QUEUED)

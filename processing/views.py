import logging

from rest_framework import status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from . import ledger
from .events import UploadConfirmedEvent, publish_upload_confirmed
from .models import MediaItem
from .serializers import (
    ConfirmUploadRequestSerializer,
    ConfirmUploadResponseSerializer,
    ProcessingStatusSerializer,
)
from .status import MediaNotFound, get_status

logger = logging.getLogger(__name__)


class ProcessingStatusView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, media_id):
        try:
            data = get_status(media_id)
        except MediaNotFound:
            return Response({"detail": "media not found"}, status=404)
        return Response(ProcessingStatusSerializer(data).data)


class ConfirmUploadView(views.APIView):
    """
    Marks an uploaded item as queued and publishes the upload-confirmed event.

    Publishing is fire-and-forget: if the queue is unreachable the upload is
    still confirmed and the event can be published again by re-confirming.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, media_id):
        ser = ConfirmUploadRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            item = MediaItem.objects.get(pk=media_id)
        except MediaItem.DoesNotExist:
            return Response({"detail": "media not found"}, status=404)

        if not ledger.mark_queued(item.pk, title=ser.validated_data["title"], size_bytes=ser.validated_data["size_bytes"]):
            return Response(
                {"detail": f"media is {ledger.current_status(item.pk)}, upload cannot be confirmed"},
                status=status.HTTP_409_CONFLICT,
            )

        event = UploadConfirmedEvent(
            media_id=str(item.pk),
            original_storage_key=item.s3_key_original,
            owner_id=item.owner_id,
        )
        try:
            publish_upload_confirmed(event)
        except Exception:
            logger.exception("failed to publish upload-confirmed event media_id=%s", item.pk)

        out = ConfirmUploadResponseSerializer({"media_id": str(item.pk), "status": MediaItem.Status.QUEUED}).data
        return Response(out, status=status.HTTP_202_ACCEPTED)

from django.urls import path
from .views import ConfirmUploadView, ProcessingStatusView

urlpatterns = [
    path("processing/<str:media_id>/status/", ProcessingStatusView.as_view(), name="processing_status"),
    path("media/<uuid:media_id>/confirm-upload/", ConfirmUploadView.as_view(), name="media_confirm_upload"),
]

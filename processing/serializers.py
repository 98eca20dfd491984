from rest_framework import serializers


class ProcessingStatusSerializer(serializers.Serializer):
    media_id = serializers.CharField()
    status = serializers.CharField()
    # Omitted from the output when the status dict has no error_message
    error_message = serializers.CharField(required=False)


class ConfirmUploadRequestSerializer(serializers.Serializer):
    title = serializers.CharField(allow_blank=True, default="")
    size_bytes = serializers.IntegerField(min_value=0, allow_null=True, default=None)


class ConfirmUploadResponseSerializer(serializers.Serializer):
    media_id = serializers.CharField()
    status = serializers.CharField()

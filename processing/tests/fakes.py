"""In-memory stand-ins for the object store and the codec tools."""
import threading
from contextlib import contextmanager
from pathlib import Path

from botocore.exceptions import ClientError

from processing.codec import Codec, TranscodeError
from processing.staging import object_stage


class FakeS3:
    """Implements the two boto3 S3 client calls the pipeline uses."""

    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.downloads = []
        self.uploads = []
        self._lock = threading.Lock()

    def download_file(self, bucket, key, filename):
        with self._lock:
            self.downloads.append({"bucket": bucket, "key": key, "filename": filename})
            if key not in self.objects:
                raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
            body = self.objects[key]
        Path(filename).write_bytes(body)

    def upload_file(self, filename, bucket, key, ExtraArgs=None):
        body = Path(filename).read_bytes()
        with self._lock:
            self.uploads.append({"bucket": bucket, "key": key, "extra": ExtraArgs, "body": body})
            self.objects[key] = body


class FakeCodec(Codec):
    def __init__(self, duration=12, fail_with=None, on_transcode=None):
        self.duration = duration
        self.fail_with = fail_with
        self.on_transcode = on_transcode
        self.transcoded = []
        self.probed = []

    def transcode(self, input_path):
        self.transcoded.append(Path(input_path))
        if self.on_transcode is not None:
            self.on_transcode(input_path)
        if self.fail_with is not None:
            raise self.fail_with
        output = Path(input_path).with_name("output.mp4")
        output.write_bytes(b"hevc:" + Path(input_path).read_bytes())
        return output

    def probe_duration(self, path):
        self.probed.append(Path(path))
        return self.duration


def encoder_exit_1():
    return TranscodeError("ffmpeg transcoding failed (exit status 1): Unknown encoder 'libx265'", returncode=1)


class RecordingStage:
    """Stage factory bound to a FakeS3 that remembers the work directories it handed out."""

    def __init__(self, client, bucket="test-bucket"):
        self.client = client
        self.bucket = bucket
        self.workdirs = []

    @contextmanager
    def __call__(self):
        with object_stage(client=self.client, bucket=self.bucket) as stage:
            self.workdirs.append(stage.workdir)
            yield stage

"""
Shared fixtures for unit tests.
"""

from __future__ import annotations

import io
import os
import random
import types
import uuid

import pytest

from s3_file_compressor.exceptions import (
    DeleteError,
    PartUploadError,
    S3ObjectNotFoundError,
)


@pytest.fixture(scope="session", autouse=True)
def _env_vars():
    """
    Ensures a deterministic environment for every test run.
    Overwrite *only* the variables needed by the handler.
    """
    original = os.environ.copy()
    os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "s3-file-compressor-test")
    os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")
    os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "S3FileCompressorTest")
    os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
    yield
    os.environ.clear()
    os.environ.update(original)


class FakeS3:
    """
    In-memory stand-in for the S3Client wrapper.

    Records every operation in `calls` and assembles completed multipart
    uploads into `objects`, so tests can assert on both the protocol and the
    resulting bytes.
    """

    def __init__(self, objects: dict[tuple[str, str], bytes] | None = None):
        self.objects: dict[tuple[str, str], bytes] = dict(objects or {})
        self.content_types: dict[tuple[str, str], str] = {}
        self.calls: list[str] = []
        self.uploads: dict[str, dict] = {}
        self.aborted: list[str] = []
        self.fail_on_part: int | None = None
        self.fail_delete = False

    def get_file_content_stream(self, bucket: str, key: str):
        self.calls.append("get_object")
        if (bucket, key) not in self.objects:
            raise S3ObjectNotFoundError(bucket=bucket, key=key)
        return io.BytesIO(self.objects[(bucket, key)])

    def get_content_type(self, bucket: str, key: str):
        self.calls.append("head_object")
        if (bucket, key) not in self.objects:
            raise S3ObjectNotFoundError(bucket=bucket, key=key)
        return self.content_types.get((bucket, key), "text/plain")

    def create_multipart_upload(self, bucket: str, key: str, metadata=None) -> str:
        self.calls.append("create_multipart_upload")
        upload_id = f"upload-{len(self.uploads) + 1}"
        self.uploads[upload_id] = {
            "bucket": bucket,
            "key": key,
            "metadata": metadata,
            "parts": {},
            "content_lengths": {},
        }
        return upload_id

    def upload_part(
        self, bucket, key, upload_id, part_number, body, content_length=None
    ) -> str:
        self.calls.append("upload_part")
        if part_number == self.fail_on_part:
            raise PartUploadError(
                "simulated transport failure", bucket, key, part_number
            )
        upload = self.uploads[upload_id]
        upload["parts"][part_number] = bytes(body)
        upload["content_lengths"][part_number] = content_length
        return f'"etag-{part_number}"'

    def complete_multipart_upload(self, bucket, key, upload_id, parts) -> None:
        self.calls.append("complete_multipart_upload")
        upload = self.uploads[upload_id]
        self.objects[(bucket, key)] = b"".join(
            upload["parts"][part["PartNumber"]] for part in parts
        )

    def abort_multipart_upload(self, bucket, key, upload_id) -> None:
        self.calls.append("abort_multipart_upload")
        self.aborted.append(upload_id)

    def delete_object(self, bucket, key) -> None:
        self.calls.append("delete_object")
        if self.fail_delete:
            raise DeleteError("simulated delete failure", bucket, key)
        self.objects.pop((bucket, key), None)

    # --- helpers for assertions ---
    def parts_of(self, upload_id: str = "upload-1") -> list[bytes]:
        parts = self.uploads[upload_id]["parts"]
        return [parts[n] for n in sorted(parts)]


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def random_payload():
    """Returns a factory of deterministic, incompressible payloads."""

    def _make(size: int, seed: int = 0) -> bytes:
        return random.Random(seed).randbytes(size)

    return _make


# ---------- Minimal, realistic dummy events ---------- #
@pytest.fixture
def s3_event() -> dict:
    """A single S3 PUT notification, as delivered directly to the function."""
    return {
        "Records": [
            {
                "eventVersion": "2.1",
                "eventSource": "aws:s3",
                "awsRegion": "eu-west-1",
                "eventName": "ObjectCreated:Put",
                "s3": {
                    "bucket": {"name": "source-bucket"},
                    "object": {
                        "key": "input/my+report%281%29.csv",
                        "size": 123,
                        "sequencer": "0055AED6DCD90281E5",
                    },
                },
            }
        ]
    }


@pytest.fixture
def lambda_context():
    """A *very* small stand-in for the LambdaContext object."""
    return types.SimpleNamespace(
        function_name="s3-file-compressor",
        function_version="$LATEST",
        memory_limit_in_mb=512,
        aws_request_id="req-" + uuid.uuid4().hex,
        invoked_function_arn="arn:aws:lambda:eu-west-1:000000000000:function:dummy",
        get_remaining_time_in_millis=lambda: 30000,
    )

# src/s3_file_compressor/clients.py

"""
Client wrapper for interacting with Amazon S3.

The wrapper provides a small, typed interface over a raw boto3 client and
translates botocore failures into the service's exception hierarchy, so the
pipeline never has to inspect AWS error codes itself.
"""

import io
import logging
from typing import TYPE_CHECKING, Any, BinaryIO, Type, cast

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from .exceptions import (
    DeleteError,
    PartUploadError,
    S3Error,
    S3ObjectNotFoundError,
    SourceReadError,
    UploadAbortError,
    UploadCompletionError,
    UploadInitiationError,
)

if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client as S3ClientType

logger = logging.getLogger(__name__)

GZIP_CONTENT_TYPE = "application/gzip"

_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}
_TRANSIENT_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "SlowDown",
    "RequestTimeout",
    "RequestTimeoutException",
    "InternalError",
    "ServiceUnavailable",
    "503",
}


def _translate_error(
    error: Exception,
    error_cls: Type[S3Error],
    operation: str,
    bucket: str,
    key: str,
    **kwargs: Any,
) -> S3Error:
    """
    Maps a botocore exception raised by *operation* onto *error_cls*.

    Missing source objects become S3ObjectNotFoundError when the operation is
    a source read; throttling, timeouts and connection failures are flagged
    as transient.
    """
    context: dict[str, Any] = {"operation": operation}

    if isinstance(error, ClientError):
        error_code = error.response.get("Error", {}).get("Code", "Unknown")
        error_message = error.response.get("Error", {}).get("Message", str(error))
        context.update(
            {"aws_error_code": error_code, "aws_error_message": error_message}
        )
        request_id = error.response.get("ResponseMetadata", {}).get("RequestId")
        if request_id:
            context["aws_request_id"] = request_id

        if issubclass(error_cls, SourceReadError) and error_code in _NOT_FOUND_CODES:
            return S3ObjectNotFoundError(bucket=bucket, key=key, context=context)

        return error_cls(
            f"S3 {operation} failed for s3://{bucket}/{key}: {error_message}",
            bucket,
            key,
            transient=error_code in _TRANSIENT_CODES,
            context=context,
            **kwargs,
        )

    transient = isinstance(error, (ReadTimeoutError, EndpointConnectionError))
    context["botocore_error"] = str(error)
    return error_cls(
        f"S3 {operation} failed for s3://{bucket}/{key}: {error}",
        bucket,
        key,
        transient=transient,
        context=context,
        **kwargs,
    )


class SourceObjectStream(io.RawIOBase):
    """
    Read-only proxy over an S3 response body.

    Network failures surfacing mid-read are raised as SourceReadError so the
    compression loop only deals with the service's own exception types.
    """

    def __init__(self, body: BinaryIO, bucket: str, key: str):
        self._body = body
        self._bucket = bucket
        self._key = key

    def read(self, size: int = -1) -> bytes:
        try:
            return self._body.read(size if size is not None and size >= 0 else None)
        except BotoCoreError as e:
            raise _translate_error(
                e, SourceReadError, "GetObject", self._bucket, self._key
            ) from e

    def readable(self) -> bool:
        return True

    def close(self) -> None:
        if not self.closed:
            self._body.close()
        super().close()


class S3Client:
    """
    A wrapper for the S3 operations used by the compression pipeline.
    """

    def __init__(self, s3_client: "S3ClientType"):
        """
        Initializes the S3Client.

        Args:
            s3_client: A typed boto3 S3 client.
        """
        self._client = s3_client

    def get_file_content_stream(self, bucket: str, key: str) -> BinaryIO:
        """
        Retrieves an S3 object's body as a file-like streaming object.
        Raises SourceReadError (or S3ObjectNotFoundError) on failure.
        """
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise _translate_error(e, SourceReadError, "GetObject", bucket, key) from e
        return cast(BinaryIO, SourceObjectStream(response["Body"], bucket, key))

    def get_content_type(self, bucket: str, key: str) -> str | None:
        """Returns the Content-Type of an object from its metadata."""
        try:
            response = self._client.head_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise _translate_error(e, SourceReadError, "HeadObject", bucket, key) from e
        return response.get("ContentType")

    def create_multipart_upload(
        self, bucket: str, key: str, metadata: dict[str, str] | None = None
    ) -> str:
        """Starts a multipart upload for a gzip object and returns its upload id."""
        request: dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "ContentType": GZIP_CONTENT_TYPE,
        }
        if metadata:
            request["Metadata"] = metadata

        try:
            response = self._client.create_multipart_upload(**request)
        except (ClientError, BotoCoreError) as e:
            raise _translate_error(
                e, UploadInitiationError, "CreateMultipartUpload", bucket, key
            ) from e

        upload_id = response.get("UploadId")
        if not upload_id:
            raise UploadInitiationError(
                "S3 CreateMultipartUpload returned no upload id",
                bucket,
                key,
                error_code="MISSING_UPLOAD_ID",
            )
        logger.debug(
            "Multipart upload created",
            extra={"bucket": bucket, "key": key, "upload_id": upload_id},
        )
        return upload_id

    def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
        content_length: int | None = None,
    ) -> str:
        """
        Uploads one part and returns its ETag. ContentLength is only sent
        when *content_length* is given.
        """
        request: dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "UploadId": upload_id,
            "PartNumber": part_number,
            "Body": body,
        }
        if content_length is not None:
            request["ContentLength"] = content_length

        try:
            response = self._client.upload_part(**request)
        except (ClientError, BotoCoreError) as e:
            raise _translate_error(
                e,
                PartUploadError,
                "UploadPart",
                bucket,
                key,
                part_number=part_number,
            ) from e
        return response["ETag"]

    def complete_multipart_upload(
        self, bucket: str, key: str, upload_id: str, parts: list[dict[str, Any]]
    ) -> None:
        try:
            self._client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except (ClientError, BotoCoreError) as e:
            raise _translate_error(
                e, UploadCompletionError, "CompleteMultipartUpload", bucket, key
            ) from e

    def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        try:
            self._client.abort_multipart_upload(
                Bucket=bucket, Key=key, UploadId=upload_id
            )
        except (ClientError, BotoCoreError) as e:
            raise _translate_error(
                e, UploadAbortError, "AbortMultipartUpload", bucket, key
            ) from e

    def delete_object(self, bucket: str, key: str) -> None:
        try:
            self._client.delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise _translate_error(e, DeleteError, "DeleteObject", bucket, key) from e

# src/s3_file_compressor/core.py

"""
Core business logic for compressing a single S3 object.

The entry point, `compress_object`, streams the source object through
`ChunkedCompressionBuffer` and hands every filled part to
`PartUploadOrchestrator`, producing `<key>.gz` via a multipart upload. Only one
part of compressed output is held in memory at a time, which keeps the
function inside a memory-constrained AWS Lambda environment regardless of the
source object's size.
"""

import logging
from contextlib import closing
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .clients import S3Client
from .compression import ChunkedCompressionBuffer
from .config import AppConfig
from .exceptions import DeleteError, MemoryLimitError
from .keys import COMPRESSED_FILE_SUFFIX, derive_output_location, is_already_compressed
from .upload import PartUploadOrchestrator, UploadSession

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    SKIPPED = "skipped"
    STREAMING = "streaming"
    FLUSHING_FINAL = "flushing_final"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class CompressionResult:
    """Outcome of one pipeline run, used for logging and metrics."""

    state: PipelineState
    source_bucket: str
    source_key: str
    output_bucket: str | None = None
    output_key: str | None = None
    parts_uploaded: int = 0
    raw_bytes: int = 0
    compressed_bytes: int = 0
    source_deleted: bool = False
    delete_error: DeleteError | None = None

    @property
    def wrote_output(self) -> bool:
        return self.state is PipelineState.COMPLETED and self.parts_uploaded > 0


def _upload_metadata(content_type: str | None) -> dict[str, str] | None:
    # User metadata travels as HTTP headers, so only ASCII values are sent.
    if content_type and content_type.isascii():
        return {"original-content-type": content_type}
    return None


def compress_object(
    s3_client: S3Client,
    bucket: str,
    key: str,
    config: AppConfig,
    source_content_type: str | None = None,
    logger: logging.Logger | Any = logger,
) -> CompressionResult:
    """
    Compresses s3://bucket/key into its derived output location.

    Keys already ending in the compressed suffix are skipped without any I/O.
    An empty source produces no upload at all. Any store failure is
    propagated; when configured, an open multipart session is aborted first.
    A failure to delete the source afterwards is logged and reported on the
    result instead of being raised.
    """
    result = CompressionResult(
        state=PipelineState.STREAMING, source_bucket=bucket, source_key=key
    )

    if is_already_compressed(key):
        logger.info(
            "File already appears to be compressed. Skipping.",
            extra={"bucket": bucket, "key": key, "suffix": COMPRESSED_FILE_SUFFIX},
        )
        result.state = PipelineState.SKIPPED
        return result

    output_bucket, output_key = derive_output_location(bucket, key, config)
    result.output_bucket, result.output_key = output_bucket, output_key

    stream = s3_client.get_file_content_stream(bucket, key)
    logger.debug("Object response stream obtained", extra={"bucket": bucket, "key": key})

    orchestrator = PartUploadOrchestrator(s3_client, logger=logger)
    session: UploadSession | None = None

    with closing(stream):
        buffer = ChunkedCompressionBuffer(
            stream,
            file_part_read_size=config.file_part_read_size,
            minimum_upload_size=config.minimum_upload_size,
            compression_level=config.compression_level,
        )
        try:
            while True:
                part, is_final = buffer.fill_part()
                if not part:
                    break
                if is_final:
                    result.state = PipelineState.FLUSHING_FINAL

                if session is None:
                    session = orchestrator.initiate(
                        output_bucket,
                        output_key,
                        metadata=_upload_metadata(source_content_type),
                    )
                orchestrator.upload_part(
                    session, session.next_part_number, part, is_final_part=is_final
                )
                del part
                if is_final:
                    break

            result.raw_bytes = buffer.raw_bytes_consumed
            result.compressed_bytes = buffer.compressed_bytes_produced

            if session is None:
                logger.info(
                    "Source object is empty. Nothing to upload.",
                    extra={"bucket": bucket, "key": key},
                )
                result.state = PipelineState.COMPLETED
                return result

            orchestrator.complete(session)
            result.parts_uploaded = len(session.parts)
            result.state = PipelineState.COMPLETED

        except MemoryError as e:
            result.state = PipelineState.FAILED
            _abort_if_configured(orchestrator, session, config)
            raise MemoryLimitError(
                "compression", context={"bucket": bucket, "key": key}
            ) from e
        except Exception:
            result.state = PipelineState.FAILED
            _abort_if_configured(orchestrator, session, config)
            raise

    logger.info(
        "Compression completed",
        extra={
            "output_bucket": output_bucket,
            "output_key": output_key,
            "parts_uploaded": result.parts_uploaded,
            "raw_bytes": result.raw_bytes,
            "compressed_bytes": result.compressed_bytes,
        },
    )

    if config.delete_initial_file_after_compression:
        _delete_source(s3_client, result, logger)

    return result


def _abort_if_configured(
    orchestrator: PartUploadOrchestrator,
    session: UploadSession | None,
    config: AppConfig,
) -> None:
    if session is None or not session.is_open:
        return
    if config.abort_incomplete_upload_on_failure:
        orchestrator.abort(session)


def _delete_source(
    s3_client: S3Client, result: CompressionResult, logger: logging.Logger | Any
) -> None:
    try:
        s3_client.delete_object(result.source_bucket, result.source_key)
    except DeleteError as e:
        result.delete_error = e
        logger.error(
            "Compressed object written but source could not be deleted",
            extra={
                "bucket": result.source_bucket,
                "key": result.source_key,
                "error_code": e.error_code,
                "error_context": e.context,
            },
        )
        return
    result.source_deleted = True
    logger.info(
        "Source object deleted",
        extra={"bucket": result.source_bucket, "key": result.source_key},
    )

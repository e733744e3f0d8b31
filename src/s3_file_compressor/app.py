"""
The Lambda Adapter for the S3 File Compressor service.

This module is the main entry point for the AWS Lambda function. It is
responsible for:
1.  Initializing and configuring AWS Lambda Powertools (Logger, Tracer and
    Metrics).
2.  Parsing and validating the incoming S3 event notification.
3.  Building the transfer configuration for this invocation.
4.  Invoking the core business logic (`compress_object`) that streams, gzips
    and re-uploads the object.
5.  Logging failures with the request id and re-raising them so that Lambda
    records the invocation as failed and applies its own retry policy.
"""

import os
from typing import Any

import boto3
import pydantic
from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from .clients import S3Client
from .config import AppConfig, get_config
from .core import CompressionResult, PipelineState, compress_object
from .exceptions import InvalidS3EventError, get_error_context
from .schemas import S3EventNotificationRecord

# --- Global & Reusable Components ---
CONFIG = get_config()

logger = Logger(service=CONFIG.service_name, level=CONFIG.log_level)
tracer = Tracer(service=CONFIG.service_name)
metrics = Metrics(
    namespace="S3FileCompressor",
    service=CONFIG.service_name,
)

s3_boto_client = boto3.client("s3")
s3_client = S3Client(s3_client=s3_boto_client)


def _parse_first_record(event: dict[str, Any]) -> S3EventNotificationRecord | None:
    """Returns the first S3 record of *event*, or None when there is none."""
    records = event.get("Records") or []
    if not records:
        return None
    if len(records) > 1:
        logger.warning(
            "Event carried more than one record; only the first is processed.",
            extra={"records_count": len(records)},
        )
    try:
        return S3EventNotificationRecord.model_validate(records[0])
    except pydantic.ValidationError as e:
        logger.error(
            "Invalid S3 record failed validation.",
            extra={"validation_errors": e.errors(include_url=False)},
        )
        raise InvalidS3EventError(
            "S3 event record failed validation",
            context={"errors": str(e)},
        ) from e


def _record_metrics(result: CompressionResult) -> None:
    if result.state is PipelineState.SKIPPED:
        metrics.add_metric(name="SkippedAlreadyCompressed", unit=MetricUnit.Count, value=1)
        return
    if not result.wrote_output:
        metrics.add_metric(name="EmptyObjects", unit=MetricUnit.Count, value=1)
        return
    metrics.add_metric(
        name="PartsUploaded", unit=MetricUnit.Count, value=result.parts_uploaded
    )
    metrics.add_metric(
        name="UncompressedBytes", unit=MetricUnit.Bytes, value=result.raw_bytes
    )
    metrics.add_metric(
        name="CompressedBytes", unit=MetricUnit.Bytes, value=result.compressed_bytes
    )
    if result.delete_error is not None:
        metrics.add_metric(name="SourceDeleteFailures", unit=MetricUnit.Count, value=1)


def process_event(
    event: dict[str, Any],
    s3_client: S3Client,
    config: AppConfig,
    request_id: str | None = None,
) -> str | None:
    """
    Compresses the object named by the event's first record and returns the
    source object's content type, or None if the event carried no record.
    """
    record = _parse_first_record(event)
    if record is None:
        logger.warning("Event did not contain any S3 records. Exiting gracefully.")
        return None

    bucket = record.s3.bucket.name
    key = record.s3.object.decoded_key
    logger.info(
        "S3 event received. Compressing object.",
        extra={"bucket": bucket, "key": key, "request_id": request_id},
    )

    try:
        content_type = s3_client.get_content_type(bucket, key)
        result = compress_object(
            s3_client,
            bucket,
            key,
            config,
            source_content_type=content_type,
            logger=logger,
        )
    except Exception as e:
        metrics.add_metric(name="CompressionFailures", unit=MetricUnit.Count, value=1)
        logger.exception(
            f"Error compressing object {key} in bucket {bucket}",
            extra={
                "bucket": bucket,
                "key": key,
                "request_id": request_id,
                "error": get_error_context(e),
            },
        )
        raise

    _record_metrics(result)
    return content_type


@logger.inject_lambda_context()
@tracer.capture_lambda_handler
@metrics.log_metrics(capture_cold_start_metric=True)
def handler(event: dict, context: LambdaContext) -> str | None:
    """Main Lambda handler for S3 object-created notifications."""
    config = AppConfig.from_mapping(os.environ)
    return process_event(
        event,
        s3_client=s3_client,
        config=config,
        request_id=context.aws_request_id,
    )

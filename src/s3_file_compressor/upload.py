# src/s3_file_compressor/upload.py

"""
Multipart upload orchestration.

`PartUploadOrchestrator` hides the three phases of an S3 multipart upload
(initiate, upload parts, complete) behind a small API and keeps the ordered
list of uploaded parts on an `UploadSession`. A session belongs to exactly one
invocation and is never reused once completed or aborted.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from .clients import S3Client
from .exceptions import UploadAbortError, UploadCompletionError

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    OPEN = "open"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class PartRecord:
    part_number: int
    etag: str

    def to_request(self) -> dict[str, Any]:
        return {"PartNumber": self.part_number, "ETag": self.etag}


@dataclass(slots=True)
class UploadSession:
    bucket: str
    key: str
    upload_id: str
    parts: list[PartRecord] = field(default_factory=list)
    status: SessionStatus = SessionStatus.OPEN

    @property
    def next_part_number(self) -> int:
        return len(self.parts) + 1

    @property
    def is_open(self) -> bool:
        return self.status is SessionStatus.OPEN


def _validate_part_sequence(parts: Sequence[PartRecord]) -> str | None:
    """Returns a reason string if *parts* are not numbered 1..n in order."""
    if not parts:
        return "no parts were uploaded"
    for expected, part in enumerate(parts, start=1):
        if part.part_number != expected:
            return f"expected part {expected}, found part {part.part_number}"
    return None


class PartUploadOrchestrator:
    """Owns the lifecycle of the multipart upload sessions it creates."""

    def __init__(self, s3_client: S3Client, logger: logging.Logger | Any = logger):
        self._s3 = s3_client
        self._logger = logger

    def initiate(
        self, bucket: str, key: str, metadata: dict[str, str] | None = None
    ) -> UploadSession:
        """Starts a multipart upload. Raises UploadInitiationError on failure."""
        upload_id = self._s3.create_multipart_upload(bucket, key, metadata=metadata)
        self._logger.info(
            "Upload initiated",
            extra={"output_bucket": bucket, "output_key": key, "upload_id": upload_id},
        )
        return UploadSession(bucket=bucket, key=key, upload_id=upload_id)

    def upload_part(
        self,
        session: UploadSession,
        part_number: int,
        body: bytes,
        is_final_part: bool,
    ) -> PartRecord:
        """
        Uploads *body* as part *part_number* and records it on the session.

        Intermediate parts declare their exact length up front. The final
        part is sent without a declared length because it may be smaller
        than the store's minimum for non-final parts.
        Raises PartUploadError on transport or store failure.
        """
        if not session.is_open:
            raise ValueError(f"Upload session is {session.status.value}")
        if part_number != session.next_part_number:
            raise ValueError(
                f"Part numbers must be contiguous: expected {session.next_part_number}, "
                f"got {part_number}"
            )
        if not body:
            raise ValueError("Refusing to upload an empty part")

        etag = self._s3.upload_part(
            session.bucket,
            session.key,
            session.upload_id,
            part_number,
            body,
            content_length=None if is_final_part else len(body),
        )
        record = PartRecord(part_number=part_number, etag=etag)
        session.parts.append(record)
        self._logger.info(
            "Part uploaded",
            extra={
                "part_number": part_number,
                "part_bytes": len(body),
                "final_part": is_final_part,
            },
        )
        return record

    def complete(
        self, session: UploadSession, parts: Sequence[PartRecord] | None = None
    ) -> None:
        """
        Finalizes the upload. Raises UploadCompletionError when the part list
        is empty or non-contiguous, or when the store rejects completion.
        """
        parts = session.parts if parts is None else parts

        if not session.is_open:
            raise UploadCompletionError(
                f"Cannot complete an upload session that is {session.status.value}",
                session.bucket,
                session.key,
                error_code="SESSION_NOT_OPEN",
                context={"upload_id": session.upload_id},
            )
        reason = _validate_part_sequence(parts)
        if reason:
            raise UploadCompletionError(
                f"Invalid part list: {reason}",
                session.bucket,
                session.key,
                error_code="INVALID_PART_LIST",
                context={"upload_id": session.upload_id, "part_count": len(parts)},
            )

        self._logger.info("Completing upload request", extra={"part_count": len(parts)})
        self._s3.complete_multipart_upload(
            session.bucket,
            session.key,
            session.upload_id,
            [part.to_request() for part in parts],
        )
        session.status = SessionStatus.COMPLETED
        self._logger.info("Upload request completed")

    def abort(self, session: UploadSession) -> bool:
        """
        Abandons an open session on the store side so no orphaned parts are
        left behind. Failures are logged, never raised, so they cannot mask
        the error that triggered the abort. Returns True if the abort succeeded.
        """
        if not session.is_open:
            return False
        try:
            self._s3.abort_multipart_upload(
                session.bucket, session.key, session.upload_id
            )
        except UploadAbortError as e:
            self._logger.error(
                "Failed to abort multipart upload; parts may be orphaned",
                extra={
                    "upload_id": session.upload_id,
                    "error_code": e.error_code,
                    "error_context": e.context,
                },
            )
            return False
        session.status = SessionStatus.ABORTED
        self._logger.warning(
            "Multipart upload aborted",
            extra={"upload_id": session.upload_id, "parts_discarded": len(session.parts)},
        )
        return True

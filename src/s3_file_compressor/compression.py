# src/s3_file_compressor/compression.py

"""
Incremental gzip compression of a byte stream into upload-sized parts.

Each call to `ChunkedCompressionBuffer.fill_part` produces one complete gzip
member covering exactly the raw bytes consumed during that call. Gzip readers
treat a concatenation of members as a single stream, so the parts can be
joined by a multipart upload without any re-framing.

Memory use is bounded by the compressed part size plus the compressor's own
buffers: raw input is copied in small blocks and never held whole.
"""

import gzip
import io
import logging
from typing import BinaryIO, cast

logger = logging.getLogger(__name__)

# Upper bound for a single read from the source stream.
READ_BLOCK_SIZE = 80 * 1024


def copy_bytes(source: BinaryIO, destination: BinaryIO, limit: int) -> int:
    """
    Copies at most *limit* bytes from *source* to *destination*.

    The source may return short reads, so several reads of at most
    READ_BLOCK_SIZE bytes are issued until the limit is met or the source
    returns no data. Returns the number of bytes copied.
    """
    copied = 0
    while copied < limit:
        chunk = source.read(min(READ_BLOCK_SIZE, limit - copied))
        if not chunk:
            break
        destination.write(chunk)
        copied += len(chunk)
    return copied


class ChunkedCompressionBuffer:
    """
    Pulls bounded reads from *stream* through a gzip compressor into memory.

    The buffer owns the read cursor of *stream*: nothing else may read from
    it while the buffer is in use.
    """

    def __init__(
        self,
        stream: BinaryIO,
        file_part_read_size: int,
        minimum_upload_size: int,
        compression_level: int = 1,
    ):
        if file_part_read_size <= 0:
            raise ValueError("file_part_read_size must be positive")
        if minimum_upload_size <= 0:
            raise ValueError("minimum_upload_size must be positive")
        self._stream = stream
        self._file_part_read_size = file_part_read_size
        self._minimum_upload_size = minimum_upload_size
        self._compression_level = compression_level
        self.stream_ended = False
        self.raw_bytes_consumed = 0
        self.compressed_bytes_produced = 0

    def fill_part(self) -> tuple[bytes, bool]:
        """
        Compresses input until the compressed output reaches the minimum
        upload size or the source is exhausted.

        Returns (part_bytes, is_final). part_bytes is empty only when no raw
        bytes were consumed, in which case is_final is always True and the
        caller must not upload it.
        """
        if self.stream_ended:
            return b"", True

        accumulator = io.BytesIO()
        raw_bytes = 0
        try:
            # A fresh compressor per part keeps every part independently decodable.
            with gzip.GzipFile(
                filename="",
                mode="wb",
                fileobj=accumulator,
                compresslevel=self._compression_level,
                mtime=0,
            ) as compressor:
                while accumulator.tell() < self._minimum_upload_size:
                    copied = copy_bytes(
                        self._stream,
                        cast(BinaryIO, compressor),
                        self._file_part_read_size,
                    )
                    if copied == 0:
                        self.stream_ended = True
                        break
                    raw_bytes += copied

            if raw_bytes == 0:
                return b"", True

            part = accumulator.getvalue()
        finally:
            accumulator.close()

        self.raw_bytes_consumed += raw_bytes
        self.compressed_bytes_produced += len(part)
        logger.debug(
            "Part read and compressed",
            extra={
                "raw_bytes": raw_bytes,
                "compressed_bytes": len(part),
                "stream_ended": self.stream_ended,
            },
        )
        return part, self.stream_ended

# src/s3_file_compressor/keys.py

"""Object key handling: notification decoding and output location derivation."""

from urllib.parse import unquote_plus

from .config import AppConfig

COMPRESSED_FILE_SUFFIX = ".gz"


def is_already_compressed(key: str) -> bool:
    return key.endswith(COMPRESSED_FILE_SUFFIX)


def derive_output_location(
    input_bucket: str, input_key: str, config: AppConfig
) -> tuple[str, str]:
    """
    Maps a source object to the (bucket, key) its compressed copy is written to.

    Flattening strips only the first path segment of the suffixed key, so
    "a/b/c.txt" becomes "b/c.txt.gz". A key without a separator is left as is.
    """
    output_key = input_key + COMPRESSED_FILE_SUFFIX

    if config.flatten_file_paths:
        _, separator, remainder = output_key.partition("/")
        if separator:
            output_key = remainder

    output_bucket = config.output_bucket or input_bucket
    return output_bucket, config.output_folder_path + output_key


# S3 limits object keys to 1024 bytes of UTF-8.
MAX_KEY_BYTES = 1024


def decode_s3_key(raw_key: str) -> str:
    """
    Decodes an object key as delivered in an S3 event notification.

    S3 URL-encodes keys in notifications and encodes spaces as '+', so
    "my+file%2B1.txt" names the object "my file+1.txt".
    """
    key = unquote_plus(raw_key)
    if not key:
        raise ValueError("S3 key is empty")
    if "\x00" in key:
        raise ValueError("S3 key contains a null byte")
    if len(key.encode("utf-8")) > MAX_KEY_BYTES:
        raise ValueError(f"S3 key exceeds {MAX_KEY_BYTES} bytes")
    return key

# src/s3_file_compressor/config.py

"""
Transfer configuration for the compressor, read from Lambda environment
variables. Loading never fails: bad values are logged and replaced by their
defaults, and sizes are clamped to the allowed range.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MB = 1_048_576

# --- Variable names, as set on the Lambda function ---
FILE_PART_READ_SIZE_VAR = "FilePartReadSizeMB"
MINIMUM_UPLOAD_SIZE_VAR = "MinimumUploadSizeMB"
OUTPUT_BUCKET_VAR = "OutputBucket"
OUTPUT_FOLDER_PATH_VAR = "OutputFolderPath"
FLATTEN_FILE_PATHS_VAR = "FlattenFilePaths"
DELETE_INITIAL_FILE_VAR = "DeleteInitialFileAfterCompression"
COMPRESSION_LEVEL_VAR = "CompressionLevel"
ABORT_ON_FAILURE_VAR = "AbortIncompleteUploadOnFailure"
SERVICE_NAME_VAR = "POWERTOOLS_SERVICE_NAME"
LOG_LEVEL_VAR = "LOG_LEVEL"

# --- Defaults and bounds ---
DEFAULT_FILE_PART_READ_SIZE_MB = 100
DEFAULT_MINIMUM_UPLOAD_SIZE_MB = 100
MIN_PART_SIZE_MB = 5
MAX_PART_SIZE_MB = 4096
DEFAULT_COMPRESSION_LEVEL = 1
DEFAULT_SERVICE_NAME = "s3-file-compressor"
DEFAULT_LOG_LEVEL = "INFO"
ALLOWED_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def normalize_folder_path(value: str) -> str:
    """
    Normalizes an output folder to 'a/b/' form: forward slashes only, no
    leading separator and exactly one trailing separator. Empty stays empty.
    """
    folder = value.replace("\\", "/").strip("/")
    return f"{folder}/" if folder else ""


def _read(environ: Mapping[str, str], name: str) -> str | None:
    """Returns the stripped value of *name*, treating blank values as unset."""
    value = environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _parse_int(raw: str, name: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(name, raw) from e


def _parse_bool(raw: str, name: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(name, raw)


def _clamp(value: int, name: str, floor: int, ceiling: int | None = None) -> int:
    clamped = max(value, floor)
    if ceiling is not None:
        clamped = min(clamped, ceiling)
    if clamped != value:
        logger.warning(
            "Configuration value out of range, clamping.",
            extra={"variable": name, "value": value, "clamped_to": clamped},
        )
    return clamped


@dataclass(frozen=True, slots=True)
class AppConfig:
    """
    Transfer configuration, built once per invocation.

    Sizes are stored in bytes. Invalid or out-of-range values never fail the
    invocation: they are logged and replaced by the default or clamped.
    """

    file_part_read_size: int = DEFAULT_FILE_PART_READ_SIZE_MB * MB
    minimum_upload_size: int = DEFAULT_MINIMUM_UPLOAD_SIZE_MB * MB
    output_bucket: str = ""
    output_folder_path: str = ""
    flatten_file_paths: bool = False
    delete_initial_file_after_compression: bool = False
    compression_level: int = DEFAULT_COMPRESSION_LEVEL
    abort_incomplete_upload_on_failure: bool = True
    service_name: str = DEFAULT_SERVICE_NAME
    log_level: str = DEFAULT_LOG_LEVEL

    # --- Derived Properties ---
    @property
    def file_part_read_size_mb(self) -> int:
        return self.file_part_read_size // MB

    @property
    def minimum_upload_size_mb(self) -> int:
        return self.minimum_upload_size // MB

    @classmethod
    def from_mapping(cls, environ: Mapping[str, str]) -> "AppConfig":
        """
        Builds the configuration from a key/value source such as os.environ.
        Each variable degrades independently to its default when it is
        missing, blank, or unparseable.
        """

        def read_int(name: str, default: int) -> int:
            raw = _read(environ, name)
            if raw is None:
                return default
            try:
                return _parse_int(raw, name)
            except ConfigurationError as e:
                logger.warning(
                    "Invalid configuration value, using default.",
                    extra={**e.context, "default": default},
                )
                return default

        def read_bool(name: str, default: bool) -> bool:
            raw = _read(environ, name)
            if raw is None:
                return default
            try:
                return _parse_bool(raw, name)
            except ConfigurationError as e:
                logger.warning(
                    "Invalid configuration value, using default.",
                    extra={**e.context, "default": default},
                )
                return default

        file_part_read_size_mb = _clamp(
            read_int(FILE_PART_READ_SIZE_VAR, DEFAULT_FILE_PART_READ_SIZE_MB),
            FILE_PART_READ_SIZE_VAR,
            MIN_PART_SIZE_MB,
        )
        minimum_upload_size_mb = _clamp(
            read_int(MINIMUM_UPLOAD_SIZE_VAR, DEFAULT_MINIMUM_UPLOAD_SIZE_MB),
            MINIMUM_UPLOAD_SIZE_VAR,
            MIN_PART_SIZE_MB,
            MAX_PART_SIZE_MB,
        )
        compression_level = _clamp(
            read_int(COMPRESSION_LEVEL_VAR, DEFAULT_COMPRESSION_LEVEL),
            COMPRESSION_LEVEL_VAR,
            1,
            9,
        )

        log_level = (_read(environ, LOG_LEVEL_VAR) or DEFAULT_LOG_LEVEL).upper()
        if log_level not in ALLOWED_LOG_LEVELS:
            logger.warning(
                "Invalid log level, using default.",
                extra={"variable": LOG_LEVEL_VAR, "value": log_level},
            )
            log_level = DEFAULT_LOG_LEVEL

        return cls(
            file_part_read_size=file_part_read_size_mb * MB,
            minimum_upload_size=minimum_upload_size_mb * MB,
            output_bucket=_read(environ, OUTPUT_BUCKET_VAR) or "",
            output_folder_path=normalize_folder_path(
                _read(environ, OUTPUT_FOLDER_PATH_VAR) or ""
            ),
            flatten_file_paths=read_bool(FLATTEN_FILE_PATHS_VAR, False),
            delete_initial_file_after_compression=read_bool(
                DELETE_INITIAL_FILE_VAR, False
            ),
            compression_level=compression_level,
            abort_incomplete_upload_on_failure=read_bool(ABORT_ON_FAILURE_VAR, True),
            service_name=_read(environ, SERVICE_NAME_VAR) or DEFAULT_SERVICE_NAME,
            log_level=log_level,
        )


# --- Singleton Factory Function (Lazy-loaded and Cached) ---
@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """
    Loads the application configuration from environment variables.
    The result is cached using lru_cache, so the environment is only read once
    on the first call. This avoids import-time side effects.
    """
    logger.info("Loading application configuration from environment...")
    return AppConfig.from_mapping(os.environ)

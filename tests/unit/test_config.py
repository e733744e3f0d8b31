# tests/unit/test_config.py

import pytest

from s3_file_compressor.config import (
    MB,
    AppConfig,
    get_config,
    normalize_folder_path,
)


@pytest.fixture(autouse=True)
def clear_config_cache():
    """
    Clears the lru_cache for get_config before each test, so every test gets
    a configuration built from its own monkeypatched environment.
    """
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_defaults_when_nothing_is_set():
    config = AppConfig.from_mapping({})

    assert config.file_part_read_size == 100 * MB
    assert config.minimum_upload_size == 100 * MB
    assert config.output_bucket == ""
    assert config.output_folder_path == ""
    assert config.flatten_file_paths is False
    assert config.delete_initial_file_after_compression is False
    assert config.compression_level == 1
    assert config.abort_incomplete_upload_on_failure is True
    assert config.log_level == "INFO"


def test_happy_path():
    config = AppConfig.from_mapping(
        {
            "FilePartReadSizeMB": "20",
            "MinimumUploadSizeMB": "50",
            "OutputBucket": "archive-bucket",
            "OutputFolderPath": "\\compressed\\daily\\",
            "FlattenFilePaths": "True",
            "DeleteInitialFileAfterCompression": "yes",
            "CompressionLevel": "6",
            "AbortIncompleteUploadOnFailure": "false",
            "LOG_LEVEL": "debug",
        }
    )

    assert config.file_part_read_size_mb == 20
    assert config.minimum_upload_size_mb == 50
    assert config.output_bucket == "archive-bucket"
    assert config.output_folder_path == "compressed/daily/"
    assert config.flatten_file_paths is True
    assert config.delete_initial_file_after_compression is True
    assert config.compression_level == 6
    assert config.abort_incomplete_upload_on_failure is False
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    "raw, expected_mb",
    [("1", 5), ("5", 5), ("250", 250), ("4096", 4096), ("10000", 4096), ("-3", 5)],
)
def test_minimum_upload_size_is_clamped(raw, expected_mb):
    config = AppConfig.from_mapping({"MinimumUploadSizeMB": raw})
    assert config.minimum_upload_size == expected_mb * MB


def test_file_part_read_size_has_a_floor_only():
    assert AppConfig.from_mapping({"FilePartReadSizeMB": "2"}).file_part_read_size_mb == 5
    assert (
        AppConfig.from_mapping({"FilePartReadSizeMB": "8192"}).file_part_read_size_mb
        == 8192
    )


@pytest.mark.parametrize(
    "environ",
    [
        {"MinimumUploadSizeMB": "lots"},
        {"MinimumUploadSizeMB": "   "},
        {"FlattenFilePaths": "maybe"},
        {"LOG_LEVEL": "chatty"},
    ],
)
def test_invalid_values_fall_back_to_defaults(environ):
    config = AppConfig.from_mapping(environ)

    assert config.minimum_upload_size == 100 * MB
    assert config.flatten_file_paths is False
    assert config.log_level == "INFO"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("", ""),
        ("/", ""),
        ("out", "out/"),
        ("/out/", "out/"),
        ("out//", "out/"),
        ("a\\b", "a/b/"),
    ],
)
def test_normalize_folder_path(raw, expected):
    assert normalize_folder_path(raw) == expected


def test_get_config_reads_environment(monkeypatch):
    monkeypatch.setenv("OutputBucket", "env-bucket")
    monkeypatch.setenv("MinimumUploadSizeMB", "7")

    config = get_config()

    assert config.output_bucket == "env-bucket"
    assert config.minimum_upload_size_mb == 7


def test_get_config_caching():
    """Tests that get_config returns the same instance when called multiple times."""
    assert get_config() is get_config()

# src/s3_file_compressor/schemas.py

from pydantic import BaseModel, Field, field_validator

from .keys import decode_s3_key

# --- Runtime Validation (using Pydantic) ---


class S3BucketModel(BaseModel):
    name: str = Field(..., min_length=1)


class S3ObjectModel(BaseModel):
    # Holds the key exactly as delivered, still URL-encoded
    key: str = Field(..., min_length=1)
    size: int | None = None
    version_id: str | None = Field(None, alias="versionId")
    sequencer: str | None = None

    @field_validator("key")
    @classmethod
    def validate_key_decodes(cls, value: str) -> str:
        decode_s3_key(value)
        return value

    @property
    def decoded_key(self) -> str:
        return decode_s3_key(self.key)


class S3DataModel(BaseModel):
    bucket: S3BucketModel
    object: S3ObjectModel


class S3EventNotificationRecord(BaseModel):
    """
    Pydantic model for runtime parsing and validation of an S3 event record.
    """

    event_name: str | None = Field(None, alias="eventName")
    s3: S3DataModel

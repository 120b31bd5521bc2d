"""
Request/response models for the storage endpoints.

These mirror the domain dataclasses in core.storage.models but own the
wire format: snake_case keys, base64 content for batch reads.
"""

import base64

from pydantic import BaseModel, Field

from ..core.storage.models import (
    FileData,
    FileMetadata,
    ReadError,
    ReadResponse,
    WriteError,
    WriteResponse,
)


class FileMetadataSchema(BaseModel):
    """Metadata of a stored object."""
    name: str = Field(description="Object key")
    content_type: str = Field(description="MIME type reported by the store")
    size: int = Field(description="Size in bytes")

    @classmethod
    def from_domain(cls, metadata: FileMetadata) -> "FileMetadataSchema":
        return cls(name=metadata.name, content_type=metadata.content_type, size=metadata.size)


class FileErrorSchema(BaseModel):
    """A single failed item in a batch."""
    file_path: str
    error: str

    @classmethod
    def from_domain(cls, error: WriteError | ReadError) -> "FileErrorSchema":
        return cls(file_path=error.file_path, error=error.error)


class WriteFilesResponse(BaseModel):
    files_written: list[FileMetadataSchema] = Field(default_factory=list)
    errors: list[FileErrorSchema] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, response: WriteResponse) -> "WriteFilesResponse":
        return cls(
            files_written=[FileMetadataSchema.from_domain(m) for m in response.files_written],
            errors=[FileErrorSchema.from_domain(e) for e in response.errors],
        )


class FileDataSchema(BaseModel):
    metadata: FileMetadataSchema
    content: str = Field(description="Object content, base64 encoded")

    @classmethod
    def from_domain(cls, file_data: FileData) -> "FileDataSchema":
        return cls(
            metadata=FileMetadataSchema.from_domain(file_data.metadata),
            content=base64.b64encode(file_data.content).decode("ascii"),
        )


class ReadFilesRequest(BaseModel):
    """Body of POST /read."""
    file_paths: list[str] = Field(default_factory=list, description="Object keys to read")


class ReadFilesResponse(BaseModel):
    files: list[FileDataSchema] = Field(default_factory=list)
    errors: list[FileErrorSchema] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, response: ReadResponse) -> "ReadFilesResponse":
        return cls(
            files=[FileDataSchema.from_domain(f) for f in response.files],
            errors=[FileErrorSchema.from_domain(e) for e in response.errors],
        )

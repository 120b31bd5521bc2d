"""
Data model for batch file operations.

Requests are transient: built per HTTP request and dropped once the batch
finishes. Metadata and errors are frozen because they describe something
that already happened.
"""

from dataclasses import dataclass, field
from typing import BinaryIO, Union


@dataclass
class WriteRequest:
    """
    One object to write.

    The path is used as the object key exactly as given. No normalization
    of '..' segments or leading slashes happens here.
    """
    path: str
    content: BinaryIO
    content_type: str = ""

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("Write request path cannot be empty")


@dataclass(frozen=True)
class FileMetadata:
    """What the store reports about an object."""
    name: str
    content_type: str
    size: int


@dataclass(frozen=True)
class WriteError:
    file_path: str
    error: str


@dataclass(frozen=True)
class ReadError:
    file_path: str
    error: str


@dataclass(frozen=True)
class FileData:
    """An object loaded fully into memory."""
    metadata: FileMetadata
    content: bytes


@dataclass
class WriteResponse:
    """
    Outcome of a write batch.

    Every input path ends up in exactly one of the two lists.
    """
    files_written: list[FileMetadata] = field(default_factory=list)
    errors: list[WriteError] = field(default_factory=list)

    def add(self, outcome: "WriteOutcome") -> None:
        if isinstance(outcome, WriteError):
            self.errors.append(outcome)
        else:
            self.files_written.append(outcome)


@dataclass
class ReadResponse:
    """Outcome of a read batch."""
    files: list[FileData] = field(default_factory=list)
    errors: list[ReadError] = field(default_factory=list)

    def add(self, outcome: "ReadOutcome") -> None:
        if isinstance(outcome, ReadError):
            self.errors.append(outcome)
        else:
            self.files.append(outcome)


# Per-item results. Each item resolves to exactly one of these.
WriteOutcome = Union[FileMetadata, WriteError]
ReadOutcome = Union[FileData, ReadError]

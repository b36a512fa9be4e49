"""Pydantic models for filesystem tools"""

from typing import Literal

from pydantic import Field, field_validator

from ..core.params import OperationParams


class FsPath(OperationParams):
    path: str = Field(description="Path of the file or directory")


class FsInfo(FsPath):
    pass


class FsExists(FsPath):
    pass


class FsSize(FsPath):
    pass


class FsList(FsPath):
    pass


class FsMkdir(FsPath):
    pass


class FsEncoded(FsPath):
    encoding: Literal["utf8", "base64"] = Field(
        default="utf8", description="Content encoding: utf8 or base64"
    )

    @field_validator("encoding", mode="before")
    @classmethod
    def _lower_encoding(cls, value):
        return value.lower() if isinstance(value, str) else value


class FsRead(FsEncoded):
    pass


class FsWrite(FsPath):
    # `content` is declared before `encoding` so a missing content is reported first
    content: str = Field(description="Content to write")
    encoding: Literal["utf8", "base64"] = Field(
        default="utf8", description="Content encoding: utf8 or base64"
    )
    append: bool = Field(default=False, description="Append to an existing file")

    @field_validator("encoding", mode="before")
    @classmethod
    def _lower_encoding(cls, value):
        return value.lower() if isinstance(value, str) else value


class FsTransfer(OperationParams):
    source: str = Field(description="Source path")
    destination: str = Field(description="Destination path")
    overwrite: bool = Field(default=False, description="Replace an existing destination")


class FsCopy(FsTransfer):
    pass


class FsMove(FsTransfer):
    pass


class FsDelete(FsPath):
    recursive: bool = Field(default=False, description="Delete directory contents too")

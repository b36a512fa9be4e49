"""Filesystem operations for MCP GitFS Server"""

import base64
import binascii
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict

from ..core.notifications import EventType, publish_event
from ..core.results import Failure, OperationResult, Success
from ..core.tools import OperationContext
from .models import (
    FsCopy,
    FsDelete,
    FsExists,
    FsInfo,
    FsList,
    FsMkdir,
    FsMove,
    FsRead,
    FsSize,
    FsTransfer,
    FsWrite,
)

logger = logging.getLogger(__name__)


def _millis(seconds: float) -> int:
    return int(seconds * 1000)


def _entry_size(path: Path, st: os.stat_result) -> int:
    return 0 if path.is_dir() else st.st_size


def directory_size(path: Path) -> int:
    """Total bytes of regular files below a directory, not following symlinks."""
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            file_path = os.path.join(root, name)
            if not os.path.islink(file_path):
                total += os.path.getsize(file_path)
    return total


def fs_info(params: FsInfo, context: OperationContext) -> OperationResult:
    path = Path(params.path)
    if not path.exists():
        return Failure.not_found(f"File does not exist: {params.path}")

    st = path.stat()
    return Success(
        {
            "path": params.path,
            "name": path.name,
            "is_directory": path.is_dir(),
            "is_file": path.is_file(),
            "size": _entry_size(path, st),
            "last_modified": _millis(st.st_mtime),
            # Without st_birthtime (Linux) this is st_ctime, the last inode change
            "creation_time": _millis(getattr(st, "st_birthtime", st.st_ctime)),
            "last_access_time": _millis(st.st_atime),
            "is_symbolic_link": path.is_symlink(),
            "is_hidden": path.name.startswith("."),
            "can_read": os.access(path, os.R_OK),
            "can_write": os.access(path, os.W_OK),
            "can_execute": os.access(path, os.X_OK),
        }
    )


def fs_exists(params: FsExists, context: OperationContext) -> OperationResult:
    path = Path(params.path)
    fields: Dict[str, Any] = {"path": params.path, "exists": path.exists()}
    if fields["exists"]:
        fields["is_directory"] = path.is_dir()
        fields["is_file"] = path.is_file()
    return Success(fields)


def fs_size(params: FsSize, context: OperationContext) -> OperationResult:
    path = Path(params.path)
    if not path.exists():
        return Failure.not_found(f"File does not exist: {params.path}")

    is_directory = path.is_dir()
    size = directory_size(path) if is_directory else path.stat().st_size
    return Success({"path": params.path, "size": size, "is_directory": is_directory})


def fs_list(params: FsList, context: OperationContext) -> OperationResult:
    path = Path(params.path)
    if not path.exists():
        return Failure.not_found(f"Directory does not exist: {params.path}")
    if not path.is_dir():
        return Failure.invalid_params(f"Path is not a directory: {params.path}")

    entries = []
    for child in sorted(path.iterdir(), key=lambda p: p.name):
        st = child.stat() if child.exists() else child.lstat()
        entries.append(
            {
                "name": child.name,
                "path": os.path.abspath(child),
                "is_directory": child.is_dir(),
                "size": _entry_size(child, st),
                "last_modified": _millis(st.st_mtime),
            }
        )
    return Success({"path": params.path, "entries": entries, "total": len(entries)})


def fs_read(params: FsRead, context: OperationContext) -> OperationResult:
    path = Path(params.path)
    if not path.exists():
        return Failure.not_found(f"File does not exist: {params.path}")
    if path.is_dir():
        return Failure.invalid_params(f"Path is a directory, not a file: {params.path}")

    data = path.read_bytes()
    if params.encoding == "base64":
        content = base64.b64encode(data).decode("ascii")
    else:
        content = data.decode("utf-8", errors="replace")

    return Success(
        {
            "path": params.path,
            "encoding": params.encoding,
            "size": len(data),
            "content": content,
        }
    )


def fs_write(params: FsWrite, context: OperationContext) -> OperationResult:
    path = Path(params.path)
    if path.is_dir():
        return Failure.conflict(f"Path is a directory: {params.path}")

    if params.encoding == "base64":
        try:
            data = base64.b64decode(params.content, validate=True)
        except binascii.Error as e:
            return Failure.invalid_params(f"Invalid Base64 content for parameter 'content': {e}")
    else:
        data = params.content.encode("utf-8")

    existed = path.exists()
    path.parent.mkdir(parents=True, exist_ok=True)
    # Append to a missing file is a plain write
    mode = "ab" if params.append and existed else "wb"
    with open(path, mode) as handle:
        handle.write(data)

    event = EventType.FILE_MODIFIED if existed else EventType.FILE_CREATED
    publish_event(
        context.events,
        event,
        {"path": params.path, "size": len(data), "append": params.append},
    )
    logger.debug(f"Wrote {len(data)} bytes to {params.path} (append={params.append})")
    return Success(
        {
            "path": params.path,
            "size": len(data),
            "append": params.append,
            "created": not existed,
        }
    )


def _remove(path: Path):
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _prepare_transfer(params: FsTransfer):
    source = Path(params.source)
    destination = Path(params.destination)
    if not source.exists():
        return Failure.not_found(f"Source does not exist: {params.source}")

    resolved_source, resolved_destination = source.resolve(), destination.resolve()
    if resolved_destination != resolved_source and (
        resolved_source.is_relative_to(resolved_destination)
        or resolved_destination.is_relative_to(resolved_source)
    ):
        return Failure.conflict(
            f"Source and destination contain each other: {params.source} -> {params.destination}"
        )

    if os.path.lexists(destination):
        if not params.overwrite:
            return Failure.conflict(f"Destination already exists: {params.destination}")
        if resolved_source == resolved_destination:
            return Failure.conflict(f"Source and destination are the same: {params.source}")
        _remove(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    return source, destination


def fs_copy(params: FsCopy, context: OperationContext) -> OperationResult:
    prepared = _prepare_transfer(params)
    if isinstance(prepared, Failure):
        return prepared
    source, destination = prepared

    if source.is_dir():
        shutil.copytree(source, destination, symlinks=True)
    else:
        shutil.copy2(source, destination)

    return Success(
        {
            "source": params.source,
            "destination": params.destination,
            "overwrite": params.overwrite,
        }
    )


def fs_move(params: FsMove, context: OperationContext) -> OperationResult:
    prepared = _prepare_transfer(params)
    if isinstance(prepared, Failure):
        return prepared
    source, destination = prepared

    shutil.move(str(source), str(destination))

    return Success(
        {
            "source": params.source,
            "destination": params.destination,
            "overwrite": params.overwrite,
        }
    )


def fs_delete(params: FsDelete, context: OperationContext) -> OperationResult:
    path = Path(params.path)
    if not os.path.lexists(path):
        return Failure.not_found(f"Path does not exist: {params.path}")

    is_directory = path.is_dir() and not path.is_symlink()
    if is_directory:
        if not params.recursive and any(path.iterdir()):
            return Failure.conflict(
                f"Directory is not empty: {params.path} (set recursive=true to delete it)"
            )
        if params.recursive:
            shutil.rmtree(path)
        else:
            path.rmdir()
    else:
        path.unlink()

    deleted = not os.path.lexists(path)
    if deleted:
        publish_event(
            context.events,
            EventType.DIRECTORY_DELETED if is_directory else EventType.FILE_DELETED,
            {"path": params.path, "is_directory": is_directory, "recursive": params.recursive},
        )
    return Success(
        {
            "status": "success" if deleted else "error",
            "path": params.path,
            "recursive": params.recursive,
            "deleted": deleted,
        }
    )


def fs_mkdir(params: FsMkdir, context: OperationContext) -> OperationResult:
    path = Path(params.path)
    if path.exists():
        if path.is_dir():
            return Success({"path": params.path, "created": False, "already_exists": True})
        return Failure.conflict(f"Path exists and is not a directory: {params.path}")

    path.mkdir(parents=True)
    publish_event(context.events, EventType.DIRECTORY_CREATED, {"path": params.path})
    return Success({"path": params.path, "created": True})

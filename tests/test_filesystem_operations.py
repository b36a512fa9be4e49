import base64
import os

import pytest

from mcp_server_gitfs.core.results import Failure, Success
from mcp_server_gitfs.error_handling import FailureKind
from mcp_server_gitfs.filesystem.models import (
    FsCopy,
    FsDelete,
    FsExists,
    FsInfo,
    FsList,
    FsMkdir,
    FsMove,
    FsRead,
    FsSize,
    FsWrite,
)
from mcp_server_gitfs.filesystem.operations import (
    fs_copy,
    fs_delete,
    fs_exists,
    fs_info,
    fs_list,
    fs_mkdir,
    fs_move,
    fs_read,
    fs_size,
    fs_write,
)


@pytest.fixture
def sample_tree(tmp_path):
    root = tmp_path / "tree"
    (root / "sub").mkdir(parents=True)
    (root / "b.txt").write_text("bee")
    (root / "a.txt").write_text("ay")
    (root / "sub" / "c.txt").write_text("seeee")
    return root


class TestInfoExistsSize:
    def test_info_of_file(self, sample_tree, context):
        path = sample_tree / "a.txt"
        result = fs_info(FsInfo(path=str(path)), context)

        assert isinstance(result, Success)
        fields = result.fields
        assert fields["name"] == "a.txt"
        assert fields["is_file"] is True
        assert fields["is_directory"] is False
        assert fields["size"] == 2
        assert fields["is_symbolic_link"] is False
        assert fields["is_hidden"] is False
        assert fields["can_read"] is True
        assert fields["last_modified"] == int(path.stat().st_mtime * 1000)
        for key in ("creation_time", "last_access_time"):
            assert isinstance(fields[key], int)

    def test_info_of_hidden_symlink(self, sample_tree, context):
        link = sample_tree / ".link"
        link.symlink_to(sample_tree / "a.txt")

        fields = fs_info(FsInfo(path=str(link)), context).fields

        assert fields["is_symbolic_link"] is True
        assert fields["is_hidden"] is True

    def test_info_of_missing_path(self, tmp_path, context):
        result = fs_info(FsInfo(path=str(tmp_path / "missing")), context)

        assert result.kind is FailureKind.NOT_FOUND
        assert str(tmp_path / "missing") in result.message

    def test_exists_never_fails(self, sample_tree, context):
        missing = fs_exists(FsExists(path=str(sample_tree / "missing")), context)
        present = fs_exists(FsExists(path=str(sample_tree / "sub")), context)

        assert missing.fields == {"path": str(sample_tree / "missing"), "exists": False}
        assert present.fields["exists"] is True
        assert present.fields["is_directory"] is True
        assert present.fields["is_file"] is False

    def test_size_of_file_and_directory(self, sample_tree, context):
        file_size = fs_size(FsSize(path=str(sample_tree / "b.txt")), context)
        dir_size = fs_size(FsSize(path=str(sample_tree)), context)

        assert file_size.fields["size"] == 3
        assert file_size.fields["is_directory"] is False
        assert dir_size.fields["size"] == 2 + 3 + 5
        assert dir_size.fields["is_directory"] is True

    def test_size_of_missing_path(self, tmp_path, context):
        assert fs_size(FsSize(path=str(tmp_path / "x")), context).kind is FailureKind.NOT_FOUND


class TestList:
    def test_entries_sorted_by_name(self, sample_tree, context):
        result = fs_list(FsList(path=str(sample_tree)), context)

        entries = result.fields["entries"]
        assert [e["name"] for e in entries] == ["a.txt", "b.txt", "sub"]
        assert result.fields["total"] == 3
        assert entries[0]["path"] == os.path.abspath(sample_tree / "a.txt")
        assert entries[2]["is_directory"] is True
        assert entries[1]["size"] == 3

    def test_empty_directory(self, tmp_path, context):
        result = fs_list(FsList(path=str(tmp_path)), context)
        assert result.fields["entries"] == []
        assert result.fields["total"] == 0

    def test_list_of_file_is_invalid(self, sample_tree, context):
        result = fs_list(FsList(path=str(sample_tree / "a.txt")), context)
        assert result.kind is FailureKind.INVALID_PARAMS

    def test_list_of_missing_directory(self, tmp_path, context):
        result = fs_list(FsList(path=str(tmp_path / "none")), context)
        assert result.kind is FailureKind.NOT_FOUND


class TestReadWrite:
    def test_utf8_round_trip(self, tmp_path, context):
        path = str(tmp_path / "note.txt")
        text = "héllo wörld\nsecond line"

        write = fs_write(FsWrite(path=path, content=text), context)
        read = fs_read(FsRead(path=path), context)

        assert write.fields["created"] is True
        assert read.fields["content"] == text
        assert read.fields["encoding"] == "utf8"
        assert read.fields["size"] == len(text.encode("utf-8"))

    def test_base64_round_trip(self, tmp_path, context):
        path = str(tmp_path / "blob.bin")
        raw = bytes(range(256))
        encoded = base64.b64encode(raw).decode("ascii")

        write = fs_write(FsWrite(path=path, content=encoded, encoding="base64"), context)
        read = fs_read(FsRead(path=path, encoding="BASE64"), context)

        assert write.fields["size"] == 256
        assert read.fields["content"] == encoded
        assert read.fields["size"] == 256

    def test_read_replaces_undecodable_bytes(self, tmp_path, context):
        path = tmp_path / "latin1.txt"
        path.write_bytes(b"caf\xe9")

        result = fs_read(FsRead(path=str(path)), context)

        assert result.fields["content"] == "caf�"
        assert result.fields["size"] == 4

    def test_write_creates_parents(self, tmp_path, context, events):
        path = tmp_path / "a" / "b" / "c.txt"

        fs_write(FsWrite(path=str(path), content="x"), context)

        assert path.read_text() == "x"
        assert events.types() == ["file_created"]

    def test_append_to_existing_file(self, tmp_path, context, events):
        path = tmp_path / "log.txt"
        path.write_text("one\n")

        result = fs_write(FsWrite(path=str(path), content="two\n", append=True), context)

        assert path.read_text() == "one\ntwo\n"
        assert result.fields == {"path": str(path), "size": 4, "append": True, "created": False}
        assert events.types() == ["file_modified"]

    def test_append_to_missing_file_is_plain_write(self, tmp_path, context):
        path = tmp_path / "new.txt"

        result = fs_write(FsWrite(path=str(path), content="first", append=True), context)

        assert isinstance(result, Success)
        assert path.read_text() == "first"

    def test_write_truncates_without_append(self, tmp_path, context):
        path = tmp_path / "f.txt"
        path.write_text("a much longer original")

        fs_write(FsWrite(path=str(path), content="short"), context)

        assert path.read_text() == "short"

    def test_invalid_base64(self, tmp_path, context):
        path = tmp_path / "bad.bin"

        result = fs_write(FsWrite(path=str(path), content="not base64!", encoding="base64"), context)

        assert result.kind is FailureKind.INVALID_PARAMS
        assert "content" in result.message
        assert not path.exists()

    def test_write_to_directory_conflicts(self, tmp_path, context):
        result = fs_write(FsWrite(path=str(tmp_path), content="x"), context)
        assert result.kind is FailureKind.CONFLICT

    def test_read_directory_is_invalid(self, tmp_path, context):
        result = fs_read(FsRead(path=str(tmp_path)), context)
        assert result.kind is FailureKind.INVALID_PARAMS

    def test_read_missing_file(self, tmp_path, context):
        result = fs_read(FsRead(path=str(tmp_path / "nope.txt")), context)
        assert result.kind is FailureKind.NOT_FOUND


class TestCopyMove:
    def test_copy_file(self, sample_tree, tmp_path, context):
        destination = tmp_path / "out" / "copy.txt"

        result = fs_copy(
            FsCopy(source=str(sample_tree / "a.txt"), destination=str(destination)), context
        )

        assert result.fields == {
            "source": str(sample_tree / "a.txt"),
            "destination": str(destination),
            "overwrite": False,
        }
        assert destination.read_text() == "ay"
        assert (sample_tree / "a.txt").exists()

    def test_copy_directory_recursively(self, sample_tree, tmp_path, context):
        destination = tmp_path / "tree-copy"

        fs_copy(FsCopy(source=str(sample_tree), destination=str(destination)), context)

        assert (destination / "sub" / "c.txt").read_text() == "seeee"

    def test_copy_onto_existing_without_overwrite(self, sample_tree, context):
        result = fs_copy(
            FsCopy(source=str(sample_tree / "a.txt"), destination=str(sample_tree / "b.txt")),
            context,
        )

        assert result.kind is FailureKind.CONFLICT
        assert (sample_tree / "b.txt").read_text() == "bee"

    def test_copy_with_overwrite(self, sample_tree, context):
        result = fs_copy(
            FsCopy(
                source=str(sample_tree / "a.txt"),
                destination=str(sample_tree / "b.txt"),
                overwrite=True,
            ),
            context,
        )

        assert isinstance(result, Success)
        assert (sample_tree / "b.txt").read_text() == "ay"

    def test_copy_missing_source(self, tmp_path, context):
        result = fs_copy(
            FsCopy(source=str(tmp_path / "nope"), destination=str(tmp_path / "x")), context
        )
        assert result.kind is FailureKind.NOT_FOUND

    def test_move_file(self, sample_tree, tmp_path, context):
        destination = tmp_path / "moved" / "a.txt"

        fs_move(FsMove(source=str(sample_tree / "a.txt"), destination=str(destination)), context)

        assert destination.read_text() == "ay"
        assert not (sample_tree / "a.txt").exists()

    def test_move_directory_over_existing_with_overwrite(self, sample_tree, tmp_path, context):
        destination = tmp_path / "target"
        destination.mkdir()
        (destination / "old.txt").write_text("old")

        fs_move(
            FsMove(source=str(sample_tree / "sub"), destination=str(destination), overwrite=True),
            context,
        )

        assert sorted(p.name for p in destination.iterdir()) == ["c.txt"]
        assert not (sample_tree / "sub").exists()

    def test_move_onto_existing_without_overwrite(self, sample_tree, context):
        result = fs_move(
            FsMove(source=str(sample_tree / "a.txt"), destination=str(sample_tree / "b.txt")),
            context,
        )

        assert isinstance(result, Failure)
        assert result.kind is FailureKind.CONFLICT
        assert (sample_tree / "a.txt").exists()

    def test_copy_over_own_parent_keeps_source(self, sample_tree, context):
        result = fs_copy(
            FsCopy(source=str(sample_tree / "a.txt"), destination=str(sample_tree), overwrite=True),
            context,
        )

        assert result.kind is FailureKind.CONFLICT
        assert (sample_tree / "a.txt").read_text() == "ay"
        assert (sample_tree / "b.txt").read_text() == "bee"

    def test_move_into_own_subdirectory_keeps_source(self, sample_tree, context):
        result = fs_move(
            FsMove(
                source=str(sample_tree), destination=str(sample_tree / "sub"), overwrite=True
            ),
            context,
        )

        assert result.kind is FailureKind.CONFLICT
        assert (sample_tree / "sub" / "c.txt").read_text() == "seeee"
        assert (sample_tree / "a.txt").exists()


class TestDeleteMkdir:
    def test_delete_file(self, sample_tree, context, events):
        result = fs_delete(FsDelete(path=str(sample_tree / "a.txt")), context)

        assert result.fields == {
            "status": "success",
            "path": str(sample_tree / "a.txt"),
            "recursive": False,
            "deleted": True,
        }
        assert events.types() == ["file_deleted"]

    def test_non_recursive_delete_of_copied_tree_fails(self, sample_tree, tmp_path, context):
        destination = tmp_path / "copy"
        fs_copy(FsCopy(source=str(sample_tree), destination=str(destination)), context)

        result = fs_delete(FsDelete(path=str(destination)), context)

        assert result.kind is FailureKind.CONFLICT
        assert (destination / "sub" / "c.txt").exists()

    def test_recursive_delete(self, sample_tree, context, events):
        result = fs_delete(FsDelete(path=str(sample_tree), recursive=True), context)

        assert result.fields["deleted"] is True
        assert not sample_tree.exists()
        assert events.types() == ["directory_deleted"]

    def test_delete_empty_directory(self, tmp_path, context):
        empty = tmp_path / "empty"
        empty.mkdir()

        result = fs_delete(FsDelete(path=str(empty)), context)

        assert result.fields["deleted"] is True
        assert not empty.exists()

    def test_delete_missing_path(self, tmp_path, context):
        result = fs_delete(FsDelete(path=str(tmp_path / "ghost")), context)
        assert result.kind is FailureKind.NOT_FOUND

    def test_mkdir_is_idempotent(self, tmp_path, context, events):
        path = str(tmp_path / "x" / "y" / "z")

        first = fs_mkdir(FsMkdir(path=path), context)
        second = fs_mkdir(FsMkdir(path=path), context)

        assert first.fields == {"path": path, "created": True}
        assert second.fields == {"path": path, "created": False, "already_exists": True}
        assert os.path.isdir(path)
        assert events.types() == ["directory_created"]

    def test_mkdir_over_file_conflicts(self, sample_tree, context):
        result = fs_mkdir(FsMkdir(path=str(sample_tree / "a.txt")), context)
        assert result.kind is FailureKind.CONFLICT

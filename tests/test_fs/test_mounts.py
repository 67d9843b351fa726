"""Tests for the mount table and each mount backend."""

import json
import os

import pytest

from monk_tty.fs import FileSystem, FSError
from monk_tty.fs.mounts import (
    BinMount,
    FilterMount,
    InMemoryRecordSource,
    LocalMount,
    MemoryMount,
    ProcMount,
)
from monk_tty.process import ProcessRegistry


class TestFSError:
    def test_message_from_code(self):
        error = FSError("ENOENT", "/x")
        assert error.message == "No such file or directory"
        assert str(error) == "No such file or directory"

    def test_detail_overrides_message(self):
        assert FSError("EACCES", "/x", "Path traversal denied").message == "Path traversal denied"

    def test_unknown_code_rejected(self):
        with pytest.raises(ValueError):
            FSError("EWHATEVER", "/x")


class TestFileSystemRouting:
    @pytest.fixture
    def fs(self):
        return FileSystem({
            "/": MemoryMount({"/etc/motd": "root\n"}),
            "/data": MemoryMount({"/a.txt": "data a\n"}),
            "/data/deep": MemoryMount({"/b.txt": "deep b\n"}),
        })

    @pytest.mark.asyncio
    async def test_longest_prefix_wins(self, fs):
        assert await fs.read_text("/etc/motd") == "root\n"
        assert await fs.read_text("/data/a.txt") == "data a\n"
        assert await fs.read_text("/data/deep/b.txt") == "deep b\n"

    @pytest.mark.asyncio
    async def test_prefix_must_end_at_separator(self, fs):
        with pytest.raises(FSError) as exc:
            await fs.read("/database")
        assert exc.value.code == "ENOENT"

    @pytest.mark.asyncio
    async def test_readdir_includes_mount_points(self, fs):
        names = sorted(e.name for e in await fs.readdir("/"))
        assert names == ["data", "etc"]
        names = sorted(e.name for e in await fs.readdir("/data"))
        assert names == ["a.txt", "deep"]

    @pytest.mark.asyncio
    async def test_paths_are_normalized(self, fs):
        assert await fs.read_text("//data/./x/../a.txt") == "data a\n"

    @pytest.mark.asyncio
    async def test_no_root_mount(self):
        fs = FileSystem({"/only": MemoryMount()})
        with pytest.raises(FSError) as exc:
            await fs.stat("/elsewhere")
        assert exc.value.code == "ENOENT"

    @pytest.mark.asyncio
    async def test_rename_across_mounts(self, fs):
        with pytest.raises(FSError) as exc:
            await fs.rename("/data/a.txt", "/etc/a.txt")
        assert exc.value.code == "EINVAL"

    @pytest.mark.asyncio
    async def test_append(self, fs):
        await fs.append("/data/log", "one\n")
        await fs.append("/data/log", "two\n")
        assert await fs.read_text("/data/log") == "one\ntwo\n"

    @pytest.mark.asyncio
    async def test_exists_and_is_directory(self, fs):
        assert await fs.exists("/data/a.txt")
        assert not await fs.exists("/data/nope")
        assert await fs.is_directory("/data/deep")
        assert not await fs.is_directory("/data/a.txt")

    @pytest.mark.asyncio
    async def test_usage_walks_mounts(self, fs):
        assert await fs.usage("/data/deep") == len("deep b\n")

    def test_resolve_path(self):
        assert FileSystem.resolve_path("/home/user", "docs/../notes.txt") == "/home/user/notes.txt"
        assert FileSystem.resolve_path("/home/user", "/etc") == "/etc"


class TestMemoryMount:
    @pytest.mark.asyncio
    async def test_write_and_read(self):
        mount = MemoryMount()
        await mount.write("/a.txt", b"hello")
        assert await mount.read("/a.txt") == b"hello"
        entry = await mount.stat("/a.txt")
        assert entry.is_file
        assert entry.size == 5

    @pytest.mark.asyncio
    async def test_write_needs_parent(self):
        mount = MemoryMount()
        with pytest.raises(FSError) as exc:
            await mount.write("/missing/a.txt", b"x")
        assert exc.value.code == "ENOENT"

    @pytest.mark.asyncio
    async def test_directory_operations(self):
        mount = MemoryMount()
        await mount.mkdir("/d")
        await mount.write("/d/f", b"1")
        with pytest.raises(FSError) as exc:
            await mount.mkdir("/d")
        assert exc.value.code == "EEXIST"
        with pytest.raises(FSError) as exc:
            await mount.rmdir("/d")
        assert exc.value.code == "ENOTEMPTY"
        with pytest.raises(FSError) as exc:
            await mount.read("/d")
        assert exc.value.code == "EISDIR"
        await mount.unlink("/d/f")
        await mount.rmdir("/d")
        assert await mount.readdir("/") == []

    @pytest.mark.asyncio
    async def test_rename(self):
        mount = MemoryMount({"/a": "x"})
        await mount.rename("/a", "/b")
        assert await mount.read("/b") == b"x"
        with pytest.raises(FSError):
            await mount.stat("/a")

    @pytest.mark.asyncio
    async def test_symlinks_are_not_followed(self):
        mount = MemoryMount({"/target": "x"})
        await mount.symlink("/target", "/link")
        assert await mount.readlink("/link") == "/target"
        assert (await mount.stat("/link")).is_symlink
        with pytest.raises(FSError) as exc:
            await mount.read("/link")
        assert exc.value.code == "EINVAL"

    @pytest.mark.asyncio
    async def test_file_size_limit(self):
        mount = MemoryMount(max_file_size=4)
        await mount.write("/ok", b"1234")
        with pytest.raises(FSError) as exc:
            await mount.write("/big", b"12345")
        assert exc.value.code == "EINVAL"


class TestBinMount:
    @pytest.mark.asyncio
    async def test_lists_commands(self):
        mount = BinMount(["ls", "cat", "awk"])
        names = [e.name for e in await mount.readdir("/")]
        assert names == ["awk", "cat", "ls"]
        entry = await mount.stat("/cat")
        assert entry.mode == 0o755

    @pytest.mark.asyncio
    async def test_read_manual(self):
        mount = BinMount(["cat", "ls"], {"cat": "Usage: cat [FILE]..."})
        assert await mount.read("/cat") == b"Usage: cat [FILE]...\n"
        assert await mount.read("/ls") == b"ls: built-in command\n"

    @pytest.mark.asyncio
    async def test_unknown_and_read_only(self):
        mount = BinMount(["cat"])
        with pytest.raises(FSError) as exc:
            await mount.stat("/dog")
        assert exc.value.code == "ENOENT"
        with pytest.raises(FSError) as exc:
            await mount.write("/cat", b"")
        assert exc.value.code == "EROFS"


class TestProcMount:
    @pytest.fixture
    def registry(self):
        registry = ProcessRegistry()
        registry.register_daemon("monksh", cwd="/home", environ={"A": "1"}, uid="alice")
        registry.register_daemon("cron", ["nightly"], ppid=1)
        return registry

    @pytest.mark.asyncio
    async def test_root_listing(self, registry):
        mount = ProcMount(registry, session_pid=1)
        names = [e.name for e in await mount.readdir("/")]
        assert names == ["self", "1", "2"]

    @pytest.mark.asyncio
    async def test_self_link(self, registry):
        mount = ProcMount(registry, session_pid=1)
        assert await mount.readlink("/self") == "1"
        assert (await mount.read("/self/comm")) == b"monksh\n"

    @pytest.mark.asyncio
    async def test_no_self_without_session(self, registry):
        mount = ProcMount(registry)
        assert [e.name for e in await mount.readdir("/")] == ["1", "2"]
        with pytest.raises(FSError):
            await mount.stat("/self")

    @pytest.mark.asyncio
    async def test_process_files(self, registry):
        mount = ProcMount(registry, session_pid=1)
        assert await mount.read("/2/cmdline") == b"cron\0nightly\0"
        assert await mount.read("/1/environ") == b"A=1\0"
        assert await mount.read("/1/cwd") == b"/home\n"
        status = (await mount.read("/2/status")).decode()
        assert "Name:\tcron" in status
        assert "State:\tR (running)" in status
        assert "PPid:\t1" in status

    @pytest.mark.asyncio
    async def test_terminated_daemon(self, registry):
        registry.terminate(2, exit_code=3)
        mount = ProcMount(registry)
        status = (await mount.read("/2/status")).decode()
        assert "State:\tZ (zombie)" in status
        assert "ExitCode:\t3" in status

    @pytest.mark.asyncio
    async def test_reaped_daemon_disappears(self, registry):
        registry.terminate(2)
        assert registry.reap() == [2]
        mount = ProcMount(registry)
        assert [e.name for e in await mount.readdir("/")] == ["1"]
        with pytest.raises(FSError) as exc:
            await mount.stat("/2")
        assert exc.value.code == "ENOENT"

    def test_reap_keeps_live_processes(self, registry):
        assert registry.reap() == []
        assert registry.reap(1) == []
        assert [r.pid for r in registry.list()] == [1, 2]

    @pytest.mark.asyncio
    async def test_unknown_entries(self, registry):
        mount = ProcMount(registry)
        for path in ("/99", "/1/bogus", "/nope"):
            with pytest.raises(FSError) as exc:
                await mount.stat(path)
            assert exc.value.code == "ENOENT"

    @pytest.mark.asyncio
    async def test_read_only(self, registry):
        mount = ProcMount(registry)
        with pytest.raises(FSError) as exc:
            await mount.write("/1/comm", b"x")
        assert exc.value.code == "EROFS"


class TestLocalMount:
    @pytest.fixture
    def jail(self, tmp_path):
        root = tmp_path / "jail"
        root.mkdir()
        (root / "hello.txt").write_text("hello\n")
        (root / "sub").mkdir()
        (root / "sub" / "nested.txt").write_text("12345")
        (tmp_path / "secret.txt").write_text("top secret\n")
        return root

    @pytest.mark.asyncio
    async def test_read(self, jail):
        mount = LocalMount(str(jail))
        assert await mount.read("/hello.txt") == b"hello\n"
        assert await mount.read("/sub/nested.txt") == b"12345"

    @pytest.mark.asyncio
    async def test_readdir(self, jail):
        mount = LocalMount(str(jail))
        entries = await mount.readdir("/")
        assert [(e.name, e.type) for e in entries] == [("hello.txt", "file"), ("sub", "directory")]

    @pytest.mark.asyncio
    async def test_missing_file(self, jail):
        mount = LocalMount(str(jail))
        with pytest.raises(FSError) as exc:
            await mount.read("/nope.txt")
        assert exc.value.code == "ENOENT"

    @pytest.mark.asyncio
    async def test_traversal_denied(self, jail):
        mount = LocalMount(str(jail))
        with pytest.raises(FSError) as exc:
            await mount.read("/../../etc/passwd")
        assert exc.value.code == "EACCES"
        with pytest.raises(FSError) as exc:
            await mount.read("/../secret.txt")
        assert exc.value.code == "EACCES"

    @pytest.mark.asyncio
    async def test_symlink_escape_denied(self, jail, tmp_path):
        os.symlink(str(tmp_path / "secret.txt"), str(jail / "leak"))
        mount = LocalMount(str(jail))
        with pytest.raises(FSError) as exc:
            await mount.read("/leak")
        assert exc.value.code == "EACCES"
        assert "leak" not in [e.name for e in await mount.readdir("/")]

    @pytest.mark.asyncio
    async def test_symlink_inside_jail(self, jail):
        os.symlink("hello.txt", str(jail / "alias"))
        mount = LocalMount(str(jail))
        assert await mount.read("/alias") == b"hello\n"
        assert await mount.readlink("/alias") == "hello.txt"

    @pytest.mark.asyncio
    async def test_creating_escaping_symlink_denied(self, jail):
        mount = LocalMount(str(jail))
        with pytest.raises(FSError) as exc:
            await mount.symlink("/etc/passwd", "/evil")
        assert exc.value.code == "EACCES"

    @pytest.mark.asyncio
    async def test_write(self, jail):
        mount = LocalMount(str(jail))
        await mount.write("/new.txt", b"fresh")
        assert (jail / "new.txt").read_bytes() == b"fresh"
        await mount.mkdir("/made")
        assert (jail / "made").is_dir()

    @pytest.mark.asyncio
    async def test_read_only(self, jail):
        mount = LocalMount(str(jail), writable=False)
        with pytest.raises(FSError) as exc:
            await mount.write("/new.txt", b"x")
        assert exc.value.code == "EROFS"
        assert not (jail / "new.txt").exists()

    @pytest.mark.asyncio
    async def test_usage_skips_symlinks(self, jail):
        os.symlink("hello.txt", str(jail / "alias"))
        mount = LocalMount(str(jail))
        assert await mount.get_usage("/") == len("hello\n") + len("12345")
        assert await mount.get_usage("/sub") == 5

    def test_create_if_missing(self, tmp_path):
        LocalMount(str(tmp_path / "fresh"), create_if_missing=True)
        assert (tmp_path / "fresh").is_dir()

    @pytest.mark.asyncio
    async def test_through_filesystem(self, jail):
        fs = FileSystem({"/": MemoryMount(), "/host": LocalMount(str(jail))})
        assert await fs.read_text("/host/sub/nested.txt") == "12345"
        # ".." is resolved lexically before routing, so it lands on "/"
        with pytest.raises(FSError) as exc:
            await fs.read("/host/../secret.txt")
        assert exc.value.code == "ENOENT"


class TestFilterMount:
    @pytest.fixture
    def source(self):
        return InMemoryRecordSource({
            "users": [
                {"id": 1, "name": "ada", "active": True, "age": 36},
                {"id": 2, "name": "bob", "active": False, "age": 25},
                {"id": 3, "name": "cyd", "active": True, "age": 52},
                {"id": 4, "name": "dee", "active": True, "age": 19},
            ],
        })

    @pytest.mark.asyncio
    async def test_lists_matching_ids(self, source):
        mount = FilterMount(source, "users", {"active": True})
        assert [e.name for e in await mount.readdir("/")] == ["1", "3", "4"]

    @pytest.mark.asyncio
    async def test_read_record(self, source):
        mount = FilterMount(source, "users", {"active": True})
        record = json.loads(await mount.read("/3"))
        assert record["name"] == "cyd"

    @pytest.mark.asyncio
    async def test_id_outside_filter_is_hidden(self, source):
        mount = FilterMount(source, "users", {"active": True})
        with pytest.raises(FSError) as exc:
            await mount.read("/2")
        assert exc.value.code == "ENOENT"
        with pytest.raises(FSError):
            await mount.stat("/2")

    @pytest.mark.asyncio
    async def test_row_limit(self, source):
        mount = FilterMount(source, "users", limit=2)
        assert len(await mount.readdir("/")) == 2

    @pytest.mark.asyncio
    async def test_operators(self, source):
        mount = FilterMount(source, "users", {"age": {"$gte": 30}})
        assert [e.name for e in await mount.readdir("/")] == ["1", "3"]
        mount = FilterMount(source, "users", {"name": {"$like": "%d%"}})
        assert [e.name for e in await mount.readdir("/")] == ["1", "3", "4"]
        mount = FilterMount(source, "users", {"$or": [{"id": {"$in": [2]}}, {"age": {"$lt": 20}}]})
        assert [e.name for e in await mount.readdir("/")] == ["2", "4"]

    @pytest.mark.asyncio
    async def test_read_only(self, source):
        mount = FilterMount(source, "users")
        with pytest.raises(FSError) as exc:
            await mount.write("/1", b"{}")
        assert exc.value.code == "EROFS"
        with pytest.raises(FSError) as exc:
            await mount.read("/")
        assert exc.value.code == "EISDIR"

"""Tests for guarded removal and protected paths."""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from devsweep import cleaner
from devsweep.cleaner import (
    DeletionGuard,
    filter_protected_paths,
    is_protected_path,
)
from devsweep.errors import DeletionError, UnsafeDeletionError


@pytest.fixture
def guard(tmp_path):
    return DeletionGuard(safe_roots=[tmp_path / "home", tmp_path / "tmp"], retry_delay=0)


class TestIsSafe:
    def test_blocks_filesystem_root(self, guard):
        assert not guard.is_safe("/")

    def test_blocks_safe_roots_themselves(self, guard, tmp_path):
        assert not guard.is_safe(tmp_path / "home")
        assert not guard.is_safe(tmp_path / "tmp")

    def test_allows_paths_under_safe_root(self, guard, tmp_path):
        assert guard.is_safe(tmp_path / "home" / ".npm" / "_logs")
        assert guard.is_safe(tmp_path / "tmp" / "build")

    def test_blocks_system_paths(self, guard):
        assert not guard.is_safe("/usr/bin")
        assert not guard.is_safe("/etc")

    def test_markers_allow_paths_outside_roots(self, guard):
        assert guard.is_safe("/srv/app/node_modules/left-pad")
        assert guard.is_safe("/var/lib/my-cache")
        assert guard.is_safe("/opt/Temporary/files")

    def test_node_modules_marker_is_exact(self, guard):
        assert not guard.is_safe("/srv/app/node_modules_backup")

    def test_parent_traversal_is_normalized(self, guard, tmp_path):
        assert not guard.is_safe(tmp_path / "home" / ".." / ".." / "etc")

    def test_symlink_escape_is_blocked(self, guard, tmp_path):
        home = tmp_path / "home"
        home.mkdir()
        outside = tmp_path / "elsewhere" / "data"
        outside.mkdir(parents=True)
        link_dir = home / "project"
        link_dir.symlink_to(outside.parent)

        # A regular path whose real location is outside the safe roots
        assert not guard.is_safe(link_dir / "data")

    def test_default_guard_uses_home_and_tempdir(self):
        assert not DeletionGuard().is_safe(Path.home())
        assert not DeletionGuard().is_safe(tempfile.gettempdir())
        assert DeletionGuard().is_safe(Path(tempfile.gettempdir()) / "devsweep-test")


class TestCheck:
    def test_check_returns_normalized_path(self, guard, tmp_path):
        result = guard.check(str(tmp_path / "home" / "a" / ".." / "b"))
        assert result == tmp_path / "home" / "b"

    def test_check_raises_for_unsafe_path(self, guard):
        with pytest.raises(UnsafeDeletionError) as exc:
            guard.check("/usr/lib")
        assert exc.value.path == "/usr/lib"


class TestRemove:
    def test_removes_directory_tree(self, guard, tmp_path):
        target = tmp_path / "home" / "cache"
        (target / "nested").mkdir(parents=True)
        (target / "nested" / "file").write_text("data")

        guard.remove(target)
        assert not target.exists()

    def test_removes_file(self, guard, tmp_path):
        target = tmp_path / "tmp" / "file.log"
        target.parent.mkdir(parents=True)
        target.write_text("x")
        guard.remove(target)
        assert not target.exists()

    def test_missing_path_is_noop(self, guard, tmp_path):
        guard.remove(tmp_path / "home" / "missing")
        guard.remove(tmp_path / "home" / "missing")

    def test_unsafe_path_never_touched(self, tmp_path):
        victim = tmp_path / "precious"
        victim.mkdir()
        (victim / "keep.txt").write_text("keep")
        strict = DeletionGuard(safe_roots=[tmp_path / "home"], markers=[])

        with patch.object(cleaner.shutil, "rmtree") as rmtree:
            with pytest.raises(UnsafeDeletionError):
                strict.remove(victim)
            rmtree.assert_not_called()
        assert (victim / "keep.txt").exists()

    def test_unsafe_check_precedes_existence_check(self):
        strict = DeletionGuard(safe_roots=[], markers=[])
        with pytest.raises(UnsafeDeletionError):
            strict.remove("/definitely/not/here")

    def test_symlink_is_unlinked_not_followed(self, guard, tmp_path):
        target = tmp_path / "home" / "real"
        target.mkdir(parents=True)
        (target / "keep").write_text("keep")
        link = tmp_path / "home" / "link"
        link.symlink_to(target)

        guard.remove(link)
        assert not os.path.lexists(link)
        assert (target / "keep").exists()

    def test_retries_then_succeeds(self, guard, tmp_path):
        target = tmp_path / "home" / "flaky"
        target.mkdir(parents=True)
        real_rmtree = cleaner.shutil.rmtree
        calls = []

        def flaky(path, *args, **kwargs):
            calls.append(path)
            if len(calls) < 3:
                raise PermissionError("busy")
            real_rmtree(path, *args, **kwargs)

        with patch.object(cleaner.shutil, "rmtree", side_effect=flaky):
            guard.remove(target)

        assert len(calls) == 3
        assert not target.exists()

    def test_raises_after_retries(self, guard, tmp_path):
        target = tmp_path / "home" / "stuck"
        target.mkdir(parents=True)

        with patch.object(cleaner.shutil, "rmtree", side_effect=PermissionError("denied")) as rmtree:
            with pytest.raises(DeletionError) as exc:
                guard.remove(target)

        assert rmtree.call_count == 3
        assert isinstance(exc.value.cause, PermissionError)
        assert target.exists()

    def test_removes_read_only_tree(self, guard, tmp_path):
        target = tmp_path / "home" / "go" / "pkg" / "mod"
        module = target / "example.com" / "lib@v1.0.0"
        module.mkdir(parents=True)
        (module / "go.mod").write_text("module example.com/lib\n")
        (module / "go.mod").chmod(0o444)
        module.chmod(0o555)
        (target / "example.com").chmod(0o555)

        guard.remove(target)

        assert not target.exists()

    def test_non_permission_errors_still_raise(self, guard, tmp_path):
        target = tmp_path / "home" / "busy"
        target.mkdir(parents=True)

        with pytest.raises(OSError, match="busy"):
            cleaner._make_writable_and_retry(os.rmdir, str(target), OSError(16, "busy"))
        assert target.exists()


class TestProtectedPaths:
    def test_no_protected_paths(self):
        assert not is_protected_path("/home/user/.npm", [])
        assert not is_protected_path("/home/user/.npm", None)

    def test_directory_protects_descendants(self, tmp_path):
        protected = [str(tmp_path / "keep")]
        assert is_protected_path(tmp_path / "keep", protected)
        assert is_protected_path(tmp_path / "keep" / "sub" / "file", protected)
        assert not is_protected_path(tmp_path / "keeper", protected)

    def test_glob_pattern(self, tmp_path):
        protected = [str(tmp_path / "*" / "important")]
        assert is_protected_path(tmp_path / "proj" / "important", protected)
        assert is_protected_path(tmp_path / "proj" / "important" / "x", protected)
        assert not is_protected_path(tmp_path / "proj" / "other", protected)

    def test_tilde_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert is_protected_path(tmp_path / ".m2" / "repository", ["~/.m2"])

    def test_filter_keeps_order(self, tmp_path):
        paths = [str(tmp_path / n) for n in ("c", "a", "b")]
        result = filter_protected_paths(paths, [str(tmp_path / "a")])
        assert result == [str(tmp_path / "c"), str(tmp_path / "b")]

    def test_filter_all_protected(self, tmp_path):
        paths = [str(tmp_path / "a")]
        assert filter_protected_paths(paths, [str(tmp_path)]) == []

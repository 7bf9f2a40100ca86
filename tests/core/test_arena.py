import pytest
from captioner.core.tempfiles.arena import TempFileArena


def test_arena_paths_live_in_one_private_directory(temp_root):
    arena = TempFileArena(label="unit", root=temp_root)
    a = arena.new_path(".m4a", hint="normalized")
    b = arena.new_path(".wav")

    assert a != b
    assert a.parent == b.parent == arena.directory
    assert arena.directory.parent == temp_root
    assert a.name.endswith("_normalized.m4a")
    assert arena.owns(a)
    assert arena.paths == [a, b]
    # Paths are only reserved, not created
    assert not a.exists()


def test_cleanup_removes_files_and_reports_stats(temp_root):
    arena = TempFileArena(label="unit", root=temp_root)
    arena.new_path(".wav").write_bytes(b"x" * 100)
    arena.new_path(".wav").write_bytes(b"y" * 50)
    directory = arena.directory

    stats = arena.cleanup()

    assert stats.files_removed == 2
    assert stats.bytes_removed == 150
    assert not directory.exists()

    # Idempotent
    again = arena.cleanup()
    assert again.files_removed == 0

    with pytest.raises(RuntimeError):
        arena.new_path(".wav")


def test_unused_arena_creates_nothing(temp_root):
    arena = TempFileArena(label="idle", root=temp_root)
    stats = arena.cleanup()

    assert stats.files_removed == 0
    assert list(temp_root.iterdir()) == []


def test_context_manager_cleans_up_on_error(temp_root):
    with pytest.raises(ValueError):
        with TempFileArena(label="ctx", root=temp_root) as arena:
            arena.new_path(".m4a").write_bytes(b"data")
            raise ValueError("boom")

    assert list(temp_root.iterdir()) == []

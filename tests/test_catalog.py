import pytest

from syncrelay.catalog import list_tracks


def test_lists_only_mp3_files_sorted(tmp_path):
    for name in ["b.mp3", "a.mp3", "notes.txt", "cover.jpg", "c.mp3.part"]:
        (tmp_path / name).write_bytes(b"x")
    (tmp_path / "album.mp3").mkdir()
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "deep.mp3").write_bytes(b"x")

    assert list_tracks(tmp_path) == ["a.mp3", "b.mp3"]


def test_empty_directory(tmp_path):
    assert list_tracks(tmp_path) == []


def test_custom_extension(tmp_path):
    (tmp_path / "a.ogg").write_bytes(b"x")
    (tmp_path / "b.mp3").write_bytes(b"x")
    assert list_tracks(tmp_path, extension=".ogg") == ["a.ogg"]


def test_missing_directory_raises(tmp_path):
    with pytest.raises(OSError):
        list_tracks(tmp_path / "missing")

import pytest

from syncrelay.files import sanitize_track_name


@pytest.mark.parametrize("name,expected", [
    ("song.mp3", "song.mp3"),
    ("../../etc/passwd", "passwd"),
    ("/etc/passwd", "passwd"),
    ("..\\..\\windows\\win.ini", "win.ini"),
    ("music/album/", "album"),
    ("", ""),
    ("..", ""),
    (".", ""),
    ("../", ""),
    ("/", ""),
])
def test_sanitize_track_name(name, expected):
    assert sanitize_track_name(name) == expected

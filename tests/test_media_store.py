import io
from unittest import mock

import pytest

from core.errors import FileMissingError, StorageError, UploadError
from core.storage.media_store import MediaStore


@pytest.fixture
def store(tmp_path):
    videos = tmp_path / "videos"
    thumbs = tmp_path / "thumbnails"
    videos.mkdir()
    thumbs.mkdir()
    return MediaStore(videos, thumbs)


def test_open_video_reports_live_size(store, make_bytes):
    (store.video_dir / "a.mp4").write_bytes(make_bytes(300))
    with store.open_video("a.mp4") as media:
        assert media.size == 300

def test_open_missing_video_raises_file_missing(store):
    with pytest.raises(FileMissingError):
        store.open_video("nope.mp4")

def test_open_rejects_paths_outside_storage(store, tmp_path):
    (tmp_path / "secret.mp4").write_bytes(b"secret")
    with pytest.raises(FileMissingError):
        store.open_video("../secret.mp4")

def test_byte_range_hands_over_handle(store, make_bytes):
    data = make_bytes(300)
    (store.video_dir / "a.mp4").write_bytes(data)
    media = store.open_video("a.mp4")

    source = media.byte_range(10, 19)
    assert source.read(100) == data[10:20]
    assert source.read(100) == b""
    source.close()
    assert source.closed

def test_save_video_prefixes_name_and_returns_size(store):
    filename, size = store.save_video("holiday.mp4", io.BytesIO(b"x" * 42))

    assert filename.endswith("_holiday.mp4")
    assert size == 42
    assert (store.video_dir / filename).read_bytes() == b"x" * 42

def test_same_name_in_same_millisecond_gets_distinct_files(store):
    with mock.patch("core.storage.media_store.time.time", return_value=1.0):
        first, _ = store.save_video("clip.mp4", io.BytesIO(b"one"))
        second, _ = store.save_video("clip.mp4", io.BytesIO(b"two"))

    assert first != second
    assert first.startswith("1000_") and second.startswith("1000_")
    assert (store.video_dir / first).read_bytes() == b"one"
    assert (store.video_dir / second).read_bytes() == b"two"

def test_save_strips_directory_components(store):
    filename = store.save_thumbnail("../../evil.jpg", io.BytesIO(b"img"))
    assert "/" not in filename
    assert (store.thumbnail_dir / filename).exists()

def test_save_without_name_is_rejected(store):
    with pytest.raises(UploadError):
        store.save_video("", io.BytesIO(b"x"))

def test_save_failure_leaves_no_partial_file(store):
    class Broken(io.RawIOBase):
        def readinto(self, b):
            raise OSError("read failed")

    with pytest.raises(StorageError):
        store.save_video("bad.mp4", Broken())
    assert list(store.video_dir.iterdir()) == []

def test_delete(store):
    (store.video_dir / "a.mp4").write_bytes(b"a")
    assert store.delete_video("a.mp4") is True
    assert store.delete_video("a.mp4") is False
    assert store.delete_thumbnail(None) is False

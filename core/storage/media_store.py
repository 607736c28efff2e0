"""Directory-backed storage for uploaded videos and thumbnails."""

from __future__ import annotations

import shutil
import time
from pathlib import Path
from typing import BinaryIO
from uuid import uuid4

from core.errors import FileMissingError, StorageError, UploadError
from core.utils.logger import get_logger
from core.utils.streaming import FileRangeSource, file_size

logger = get_logger("storage")


class StoredMedia:
    """A stored file opened for one request.

    The size comes from the open handle, so range arithmetic always uses the
    bytes that will actually be read. Handing out a byte range transfers
    ownership of the handle to the returned source.
    """

    def __init__(self, path: Path, file_obj: BinaryIO) -> None:
        self.path = path
        self._file = file_obj
        self.size = file_size(file_obj)

    def byte_range(self, start: int, end: int) -> FileRangeSource:
        return FileRangeSource(self._file, start, end)

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> StoredMedia:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class MediaStore:
    """Resolves catalog filenames to files under the configured directories."""

    def __init__(self, video_dir: Path, thumbnail_dir: Path) -> None:
        self.video_dir = Path(video_dir)
        self.thumbnail_dir = Path(thumbnail_dir)

    @classmethod
    def from_settings(cls, config) -> MediaStore:
        config.ensure_dirs()
        return cls(config.video_dir, config.thumbnail_dir)

    def video_path(self, filename: str) -> Path:
        return self._resolve(self.video_dir, filename)

    def thumbnail_path(self, filename: str) -> Path:
        return self._resolve(self.thumbnail_dir, filename)

    def open_video(self, filename: str) -> StoredMedia:
        """Open a stored video for reading.

        Opening is the existence check: a file removed between lookup and
        open is reported the same way as one that never existed.

        Raises:
            FileMissingError: If the file cannot be found in storage.
            StorageError: If the file exists but cannot be opened.
        """
        path = self.video_path(filename)
        try:
            file_obj = path.open("rb")
        except (FileNotFoundError, IsADirectoryError) as e:
            raise FileMissingError(
                "File missing", original_error=e, context={"path": str(path)}
            ) from e
        except OSError as e:
            raise StorageError(
                f"Cannot open {path.name}", original_error=e
            ) from e
        try:
            return StoredMedia(path, file_obj)
        except OSError as e:
            file_obj.close()
            raise StorageError(f"Cannot stat {path.name}", original_error=e) from e

    def save_video(self, original_name: str, data: BinaryIO) -> tuple[str, int]:
        """Store an uploaded video; returns ``(filename, size_bytes)``."""
        return self._save(self.video_dir, original_name, data)

    def save_thumbnail(self, original_name: str, data: BinaryIO) -> str:
        filename, _ = self._save(self.thumbnail_dir, original_name, data)
        return filename

    def delete_video(self, filename: str) -> bool:
        return self._delete(self.video_dir, filename)

    def delete_thumbnail(self, filename: str | None) -> bool:
        if not filename:
            return False
        return self._delete(self.thumbnail_dir, filename)

    @staticmethod
    def _resolve(directory: Path, filename: str) -> Path:
        path = (directory / filename).resolve()
        if not path.is_relative_to(directory.resolve()):
            raise FileMissingError(
                "File missing", context={"filename": filename}
            )
        return path

    def _save(
        self, directory: Path, original_name: str, data: BinaryIO
    ) -> tuple[str, int]:
        name = Path(original_name or "").name
        if not name:
            raise UploadError("Uploaded file has no name")

        # Millisecond prefix orders uploads; the random part keeps
        # concurrent uploads of one name within a millisecond apart
        filename = f"{int(time.time() * 1000)}_{uuid4().hex[:8]}_{name}"
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        try:
            with path.open("xb") as out:
                shutil.copyfileobj(data, out, length=1024 * 1024)
        except FileExistsError as e:
            raise StorageError(f"{filename} already stored", original_error=e) from e
        except OSError as e:
            path.unlink(missing_ok=True)
            raise StorageError(f"Cannot store {name}", original_error=e) from e

        size = path.stat().st_size
        logger.info(f"Stored {filename} ({size} bytes)")
        return filename, size

    def _delete(self, directory: Path, filename: str) -> bool:
        try:
            path = self._resolve(directory, filename)
            path.unlink()
        except (FileMissingError, FileNotFoundError):
            logger.warning(f"Nothing to delete for {filename}")
            return False
        except OSError as e:
            raise StorageError(f"Cannot delete {filename}", original_error=e) from e
        logger.info(f"Deleted {path.name}")
        return True

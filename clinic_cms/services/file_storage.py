"""
Local filesystem storage for uploaded images.

Files live flat under a single storage root and are referenced from records
by their bare filename. The same root is served publicly under
settings.UPLOADS_URL_PREFIX.
"""
import logging
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Union

from clinic_cms.config import settings
from clinic_cms.exceptions import StorageCleanupWarning, StorageWriteError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jpg"


def resolve_public_url(reference: Optional[str], prefix: str = None) -> Optional[str]:
    """
    Map a stored reference to the URL the static mount serves it from.

    Args:
        reference: Stored filename (legacy "/uploads/<name>" values are accepted)
        prefix: Public mount path, defaults to settings.UPLOADS_URL_PREFIX

    Returns:
        str: Public URL, or None when there is no reference
    """
    if not reference:
        return None
    if reference.startswith(("http://", "https://")):
        return reference
    prefix = (prefix if prefix is not None else settings.UPLOADS_URL_PREFIX).rstrip("/")
    return f"{prefix}/{_filename_of(reference)}"


def _filename_of(reference: str) -> str:
    return reference.replace("\\", "/").rstrip("/").split("/")[-1]


class LocalFileStorage:
    """
    Storage root on the local filesystem.

    Args:
        root: Directory holding the uploaded files (created on first write)
        public_prefix: URL prefix the root is served under

    Example:
        storage = LocalFileStorage("/srv/clinic/uploads")
        name = storage.store(content, "portrait.PNG")   # -> "3f2a...e1.png"
        storage.resolve_public_url(name)               # -> "/uploads/3f2a...e1.png"
        storage.discard(name)
    """

    def __init__(self, root: Union[str, Path], public_prefix: Optional[str] = None):
        self.root = Path(root).resolve()
        self.public_prefix = public_prefix if public_prefix is not None else settings.UPLOADS_URL_PREFIX

    def _new_filename(self, original_name: Optional[str]) -> str:
        extension = Path(original_name or "").suffix.lower() or DEFAULT_EXTENSION
        return f"{uuid.uuid4().hex}{extension}"

    def store(self, content: bytes, original_name: Optional[str] = None) -> str:
        """
        Write uploaded bytes under a new random filename.

        Args:
            content: File bytes (already validated by the caller)
            original_name: Client filename, only its extension is kept

        Returns:
            str: Stored reference (bare filename)

        Raises:
            StorageWriteError: The root could not be created or the write failed
        """
        filename = self._new_filename(original_name)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            (self.root / filename).write_bytes(content)
        except OSError as e:
            logger.error(f"Failed to write upload {filename} to {self.root}: {str(e)}")
            raise StorageWriteError("Failed to store uploaded file", str(e)) from e

        logger.info(f"Stored upload {original_name!r} as {filename} ({len(content):,} bytes)")
        return filename

    def path_for(self, reference: Optional[str]) -> Optional[Path]:
        """
        Absolute path of a stored reference.
        Returns None for empty references or ones resolving outside the root.
        """
        if not reference:
            return None
        filename = _filename_of(reference)
        if filename in ("", ".", ".."):
            return None
        path = (self.root / filename).resolve()
        if path.parent != self.root:
            return None
        return path

    def exists(self, reference: Optional[str]) -> bool:
        path = self.path_for(reference)
        return path is not None and path.is_file()

    def discard(self, reference: Optional[str]) -> bool:
        """
        Delete a stored file.

        A missing file is not an error. Filesystem failures are logged as
        StorageCleanupWarning and swallowed.

        Returns:
            bool: True if a file was removed
        """
        path = self.path_for(reference)
        if path is None:
            if reference:
                logger.warning(f"Refusing to delete {reference!r}: outside storage root")
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug(f"Upload already gone: {path.name}")
            return False
        except OSError as e:
            warning = StorageCleanupWarning(f"Could not delete {path.name}", str(e))
            logger.warning(f"{warning.error}: {warning.message} ({warning.detail})")
            return False

        logger.info(f"Deleted upload {path.name}")
        return True

    def resolve_public_url(self, reference: Optional[str]) -> Optional[str]:
        return resolve_public_url(reference, self.public_prefix)

    def list_files(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_file())

    def usage(self) -> Dict[str, object]:
        """Summary of the storage root for health checks."""
        files = self.list_files()
        return {
            "path": str(self.root),
            "exists": self.root.is_dir(),
            "file_count": len(files),
            "total_bytes": sum((self.root / name).stat().st_size for name in files),
            "public_prefix": self.public_prefix,
        }


_storage: Optional[LocalFileStorage] = None


def get_storage() -> LocalFileStorage:
    """Process default storage, built from settings on first use."""
    global _storage
    if _storage is None:
        _storage = LocalFileStorage(settings.UPLOAD_DIR, settings.UPLOADS_URL_PREFIX)
    return _storage


def configure_storage(storage: LocalFileStorage) -> LocalFileStorage:
    """Replace the process default storage (used by tests and scripts)."""
    global _storage
    _storage = storage
    return storage


def reset_storage() -> None:
    global _storage
    _storage = None

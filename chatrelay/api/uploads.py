"""Storage for uploaded image blobs."""

import time
from pathlib import Path

from chatrelay.logger import logger


class UploadStore:
    """Stores uploads as opaque blobs under ``<epoch-millis>-<name>``."""

    def __init__(self, upload_dir: str = "uploads"):
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def make_filename(self, original_name: str) -> str:
        """Generate a unique stored filename for an upload."""
        # Only the basename is kept so a client cannot write outside the directory
        base = Path(original_name.replace("\\", "/")).name.strip()
        if not base or base in (".", ".."):
            raise ValueError(f"Invalid upload filename: {original_name!r}")
        return f"{int(time.time() * 1000)}-{base}"

    def save(self, original_name: str, data: bytes) -> str:
        """Write an upload and return its stored filename."""
        filename = self.make_filename(original_name)
        path = self.upload_dir / filename
        path.write_bytes(data)
        logger.info(f"Stored upload '{original_name}' as '{filename}' ({len(data)} bytes)")
        return filename

"""Unit tests for UploadStore."""

from pathlib import Path

import pytest

from chatrelay.api.uploads import UploadStore


@pytest.mark.unit
class TestUploadStore:
    """Test cases for UploadStore."""

    @pytest.fixture
    def store(self, temp_dir: Path) -> UploadStore:
        return UploadStore(str(temp_dir / "uploads"))

    def test_creates_directory(self, store: UploadStore):
        assert store.upload_dir.is_dir()

    def test_save_uses_timestamp_prefix(self, store: UploadStore):
        """Test stored names look like <epoch-millis>-<original>."""
        filename = store.save("cat.png", b"\x89PNG")

        stamp, _, original = filename.partition("-")
        assert stamp.isdigit()
        assert original == "cat.png"
        assert (store.upload_dir / filename).read_bytes() == b"\x89PNG"

    def test_save_strips_directories(self, store: UploadStore):
        """Test a client cannot escape the upload directory."""
        filename = store.save("../../etc/passwd", b"x")

        assert filename.endswith("-passwd")
        assert "/" not in filename
        assert (store.upload_dir / filename).is_file()

    @pytest.mark.parametrize("name", ["", "   ", "..", "a/.."])
    def test_invalid_names_rejected(self, store: UploadStore, name):
        with pytest.raises(ValueError):
            store.make_filename(name)

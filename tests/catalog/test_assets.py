"""Tests for image asset preparation."""

from io import BytesIO

import pytest

from storefront.catalog.assets import DEFAULT_MAX_BYTES, AssetUpload, prepare_asset
from storefront.domain.exceptions import AssetTooLargeError


class TestPrepareAsset:
    """Tests for prepare_asset."""

    def test_exactly_at_ceiling_is_accepted(self) -> None:
        upload = AssetUpload.from_bytes(b"a" * DEFAULT_MAX_BYTES, "image/jpeg")
        asset = prepare_asset(upload)
        assert asset.size == 1_000_000
        assert asset.content_type == "image/jpeg"

    def test_one_byte_over_ceiling_is_rejected(self) -> None:
        upload = AssetUpload.from_bytes(b"a" * (DEFAULT_MAX_BYTES + 1), "image/jpeg")
        with pytest.raises(AssetTooLargeError) as exc_info:
            prepare_asset(upload)
        assert exc_info.value.details == {"size": 1_000_001, "max_bytes": 1_000_000}

    def test_declared_size_checked_before_reading(self) -> None:
        """An oversized declared size is rejected without touching the stream."""
        stream = BytesIO(b"tiny")
        upload = AssetUpload(stream=stream, content_type="image/png", size=5_000_000)
        with pytest.raises(AssetTooLargeError):
            prepare_asset(upload)
        assert stream.tell() == 0

    def test_undeclared_oversize_is_rejected(self) -> None:
        """A stream longer than the ceiling is caught even without a size."""
        upload = AssetUpload(stream=BytesIO(b"a" * 11))
        with pytest.raises(AssetTooLargeError):
            prepare_asset(upload, max_bytes=10)

    def test_missing_content_type_defaults(self) -> None:
        asset = prepare_asset(AssetUpload.from_bytes(b"abc"))
        assert asset.content_type == "application/octet-stream"
        assert asset.data == b"abc"

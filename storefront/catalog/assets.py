"""Image asset handling.

Validates uploaded images against the size ceiling and reads them fully
into memory before they are attached to a product.
"""

from dataclasses import dataclass
from io import BytesIO
from typing import BinaryIO, Self

import structlog

from storefront.catalog.records import ImageAsset
from storefront.domain.exceptions import AssetTooLargeError

logger = structlog.get_logger()

# 1kb = 1000, 1mb = 1000000
DEFAULT_MAX_BYTES = 1_000_000

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class AssetUpload:
    """An uploaded file as handed over by the transport layer.

    Attributes:
        stream: Readable binary stream positioned at the start of the file.
        content_type: Declared content type, if any.
        size: Declared size in bytes, if the transport knows it.
        filename: Original file name, for logging only.
    """

    stream: BinaryIO
    content_type: str | None = None
    size: int | None = None
    filename: str | None = None

    @classmethod
    def from_bytes(cls, data: bytes, content_type: str | None = None) -> Self:
        """Wrap an in-memory payload."""
        return cls(stream=BytesIO(data), content_type=content_type, size=len(data))


def prepare_asset(upload: AssetUpload, max_bytes: int = DEFAULT_MAX_BYTES) -> ImageAsset:
    """Check an upload against the size ceiling and load it.

    The declared size is checked before reading. The stream is then read at
    most one byte past the ceiling, so an oversized upload with a missing or
    wrong declared size is still rejected without loading all of it.

    Args:
        upload: Uploaded file.
        max_bytes: Largest accepted size in bytes.

    Returns:
        Image asset holding the full payload and its content type.

    Raises:
        AssetTooLargeError: If the upload is larger than ``max_bytes``.
    """
    if upload.size is not None and upload.size > max_bytes:
        raise AssetTooLargeError(upload.size, max_bytes)

    data = upload.stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise AssetTooLargeError(upload.size or len(data), max_bytes)

    asset = ImageAsset(data=data, content_type=upload.content_type or DEFAULT_CONTENT_TYPE)
    logger.debug(
        "Image asset prepared",
        filename=upload.filename,
        size=asset.size,
        content_type=asset.content_type,
    )
    return asset

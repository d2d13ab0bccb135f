"""
Module: assets

Purpose:
    Polymorphic image sources that can be placed on photobook pages.
    Every variant exposes the same capability set (identifier, size,
    image, image_data) and serializes itself under a ``kind`` tag, so
    callers never need to type-check which variant they hold.

Key Classes:
    - Asset: Abstract interface for an image resource
    - FileAsset: Local image file (photo library stand-in)
    - URLAsset: Remote renditions (social network album stand-in)

Key Functions:
    - register_asset_type(): Class decorator adding a variant to the registry
    - asset_from_dict(): Deserialize any registered variant

Dependencies:
    - PIL: Decoding, format detection, aspect-fill resizing
    - requests: Downloading URL renditions

Used By:
    - layout.models.AssetPlacement
    - upload.orchestrator: Fetching upload bytes
    - core.utils.serialization
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Type

import requests
from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import AssetDataError, AssetFetchError
from .geometry import Size

logger = logging.getLogger(__name__)

# Formats the backend accepts as-is; anything else is re-encoded as JPEG
UPLOADABLE_FORMATS = {"JPEG": "jpg", "PNG": "png", "GIF": "gif"}
JPEG_CONVERSION_QUALITY = 80
DOWNLOAD_TIMEOUT_SECONDS = 30

_ASSET_TYPES: Dict[str, Type["Asset"]] = {}


def register_asset_type(kind: str) -> Callable[[Type["Asset"]], Type["Asset"]]:
    """Register an Asset subclass for deserialization under ``kind``."""
    def _register(cls: Type["Asset"]) -> Type["Asset"]:
        _ASSET_TYPES[kind] = cls
        cls.kind = kind
        return cls
    return _register


def asset_from_dict(data: dict) -> "Asset":
    """
    Deserialize an asset of any registered kind.

    Raises:
        ValueError: If the kind is missing or unknown
    """
    kind = data.get("kind")
    cls = _ASSET_TYPES.get(kind)
    if cls is None:
        raise ValueError(f"Unknown asset kind: {kind!r}")
    return cls.from_dict(data)


class Asset(ABC):
    """
    Abstract image resource.

    Implementations provide:
        identifier: Stable id, unique within the source album
        size: Pixel dimensions of the full-resolution image
    """

    kind: str = ""
    identifier: str
    size: Size

    @property
    def is_landscape(self) -> bool:
        return self.size.is_landscape

    @abstractmethod
    def image(self, size: Size) -> Image.Image:
        """
        Get a bitmap that covers ``size`` (aspect-fill, centre crop).

        Raises:
            AssetDataError: If the image cannot be decoded
            AssetFetchError: If a remote source is unreachable
        """

    @abstractmethod
    def image_data(self) -> Tuple[bytes, str]:
        """
        Get upload-ready bytes and their file extension (jpg/png/gif).

        Raises:
            AssetDataError: If the data is missing, corrupt or unconvertible
            AssetFetchError: If a remote source is unreachable
        """

    @abstractmethod
    def to_dict(self) -> dict:
        """Serialize, including the ``kind`` tag."""

    @classmethod
    @abstractmethod
    def from_dict(cls, data: dict) -> "Asset":
        """Deserialize from :meth:`to_dict` output."""


# ─────────────────────────────────────────────────────────────────────────────
# Local files
# ─────────────────────────────────────────────────────────────────────────────

@register_asset_type("file")
@dataclass(frozen=True)
class FileAsset(Asset):
    """
    Image stored in a local file.

    Example:
        >>> asset = FileAsset.from_path(Path("photos/beach.jpg"))
        >>> asset.size
        Size(width=4032, height=3024)
    """

    identifier: str
    path: Path
    size: Size
    album_identifier: Optional[str] = None

    @classmethod
    def from_path(
        cls,
        path: Path,
        identifier: Optional[str] = None,
        album_identifier: Optional[str] = None,
    ) -> FileAsset:
        """Create an asset, reading pixel dimensions from the file header."""
        try:
            with Image.open(path) as img:
                width, height = img.size
        except (OSError, UnidentifiedImageError) as e:
            raise AssetDataError(f"Cannot read image {path}: {e}") from e
        return cls(
            identifier=identifier or path.name,
            path=path,
            size=Size(width, height),
            album_identifier=album_identifier,
        )

    def image(self, size: Size) -> Image.Image:
        try:
            with Image.open(self.path) as img:
                img.load()
                return _aspect_fill(img, size)
        except (OSError, UnidentifiedImageError) as e:
            raise AssetDataError(f"Cannot decode {self.path}: {e}") from e

    def image_data(self) -> Tuple[bytes, str]:
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise AssetDataError(f"Cannot read {self.path}: {e}") from e
        return _uploadable_bytes(data, str(self.path))

    def to_dict(self) -> dict:
        d = {
            "kind": self.kind,
            "identifier": self.identifier,
            "path": self.path.as_posix(),
            "size": self.size.to_dict(),
        }
        if self.album_identifier is not None:
            d["album_identifier"] = self.album_identifier
        return d

    @classmethod
    def from_dict(cls, data: dict) -> FileAsset:
        return cls(
            identifier=data["identifier"],
            path=Path(data["path"]),
            size=Size.from_dict(data["size"]),
            album_identifier=data.get("album_identifier"),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Remote renditions
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class URLAssetImage:
    """One remote rendition of an image."""

    url: str
    size: Size


@register_asset_type("url")
@dataclass(frozen=True)
class URLAsset(Asset):
    """
    Image available as one or more remote renditions.

    The asset size is that of the largest rendition; bitmaps are fetched
    from the smallest rendition that still covers the requested size.
    """

    identifier: str
    images: tuple[URLAssetImage, ...]
    album_identifier: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.images:
            raise ValueError(f"URLAsset {self.identifier!r} needs at least one image")

    @property
    def size(self) -> Size:
        largest = self._largest()
        return largest.size

    def image(self, size: Size) -> Image.Image:
        rendition = self._smallest_covering(size)
        data = self._download(rendition.url)
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                return _aspect_fill(img, size)
        except (OSError, UnidentifiedImageError) as e:
            raise AssetDataError(f"Cannot decode {rendition.url}: {e}") from e

    def image_data(self) -> Tuple[bytes, str]:
        rendition = self._largest()
        return _uploadable_bytes(self._download(rendition.url), rendition.url)

    def _largest(self) -> URLAssetImage:
        return max(self.images, key=lambda i: i.size.width * i.size.height)

    def _smallest_covering(self, size: Size) -> URLAssetImage:
        covering = [
            i for i in self.images
            if i.size.width >= size.width and i.size.height >= size.height
        ]
        if not covering:
            return self._largest()
        return min(covering, key=lambda i: i.size.width * i.size.height)

    @staticmethod
    def _download(url: str) -> bytes:
        try:
            response = requests.get(url, timeout=DOWNLOAD_TIMEOUT_SECONDS)
            response.raise_for_status()
        except requests.RequestException as e:
            raise AssetFetchError(f"Cannot download {url}: {e}") from e
        return response.content

    def to_dict(self) -> dict:
        d = {
            "kind": self.kind,
            "identifier": self.identifier,
            "images": [{"url": i.url, "size": i.size.to_dict()} for i in self.images],
        }
        if self.album_identifier is not None:
            d["album_identifier"] = self.album_identifier
        return d

    @classmethod
    def from_dict(cls, data: dict) -> URLAsset:
        return cls(
            identifier=data["identifier"],
            images=tuple(
                URLAssetImage(url=i["url"], size=Size.from_dict(i["size"]))
                for i in data["images"]
            ),
            album_identifier=data.get("album_identifier"),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _aspect_fill(img: Image.Image, size: Size) -> Image.Image:
    """Resize and centre-crop ``img`` so it exactly covers ``size``."""
    target = (max(1, round(size.width)), max(1, round(size.height)))
    return ImageOps.fit(img, target, method=Image.Resampling.LANCZOS)


def _uploadable_bytes(data: bytes, source: str) -> Tuple[bytes, str]:
    """
    Return ``data`` untouched if the backend accepts its format,
    otherwise re-encode as JPEG.

    Raises:
        AssetDataError: If the bytes are not a decodable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            extension = UPLOADABLE_FORMATS.get(img.format or "")
            if extension is not None:
                return data, extension

            logger.debug(f"Converting {img.format} image to JPEG: {source}")
            buffer = io.BytesIO()
            img.convert("RGB").save(buffer, format="JPEG", quality=JPEG_CONVERSION_QUALITY)
            return buffer.getvalue(), "jpg"
    except (OSError, UnidentifiedImageError) as e:
        raise AssetDataError(f"Unsupported or corrupt image data: {source}") from e

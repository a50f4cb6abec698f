"""Image blobs: Pillow compression and a local file-backed blob store."""

from __future__ import annotations

import io
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from PIL import Image, UnidentifiedImageError

from .config import ImagesConfig

_LOGGER = logging.getLogger("outreach.blobs")


class BlobStoreError(RuntimeError):
    """A blob could not be stored."""


class LocalBlobStore:
    """Stores bytes under a root directory and hands back a stable URL."""

    def __init__(self, root: Path, *, base_url: str | None = None) -> None:
        self.root = root
        self.base_url = base_url.rstrip("/") if base_url else None

    def resolve(self, blob_path: str) -> Path:
        rel = PurePosixPath(blob_path)
        if not blob_path or rel.is_absolute() or any(part in {"", ".", ".."} for part in rel.parts):
            raise BlobStoreError(f"Invalid blob path '{blob_path}'")
        target = (self.root / Path(*rel.parts)).resolve()
        if not target.is_relative_to(self.root.resolve()):
            raise BlobStoreError(f"Blob path '{blob_path}' escapes the storage root")
        return target

    def url_for(self, blob_path: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{PurePosixPath(blob_path).as_posix()}"
        return self.resolve(blob_path).as_uri()

    def store(self, data: bytes, blob_path: str) -> str:
        target = self.resolve(blob_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
        except OSError as exc:
            raise BlobStoreError(f"Failed storing blob '{blob_path}': {exc}") from exc
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, target)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise BlobStoreError(f"Failed storing blob '{blob_path}': {exc}") from exc
        _LOGGER.debug("Stored %d bytes at %s", len(data), target)
        return self.url_for(blob_path)


def compress_image(data: bytes, *, max_dim_px: int = 1600, quality: int = 50) -> bytes:
    """Downsize so the longest side is at most ``max_dim_px`` and re-encode as JPEG."""
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        if image.mode in {"RGBA", "LA", "P"}:
            rgba = image.convert("RGBA")
            rgb = Image.new("RGB", rgba.size, (255, 255, 255))
            rgb.paste(rgba, mask=rgba.getchannel("A"))
        else:
            rgb = image.convert("RGB")

    if max(rgb.size) > max_dim_px:
        resampling = getattr(getattr(Image, "Resampling", Image), "LANCZOS")
        rgb.thumbnail((max_dim_px, max_dim_px), resample=resampling)

    out = io.BytesIO()
    rgb.save(out, format="JPEG", quality=quality, optimize=True)
    return out.getvalue()


def image_blob_path(
    company_id: str,
    filename: str,
    *,
    executive_id: str | None = None,
    timestamp_ms: int | None = None,
    extension: str | None = None,
) -> str:
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    ext = (extension or PurePosixPath(filename).suffix.lstrip(".") or "bin").casefold()
    if executive_id:
        return f"companies/{company_id}/executives/{executive_id}-{ts}.{ext}"
    return f"companies/{company_id}/logo-{ts}.{ext}"


@dataclass(slots=True)
class UploadResult:
    url: str
    blob_path: str
    compressed: bool
    warnings: list[str] = field(default_factory=list)


def upload_image(
    store: LocalBlobStore,
    data: bytes,
    *,
    company_id: str,
    filename: str,
    cfg: ImagesConfig,
    executive_id: str | None = None,
    timestamp_ms: int | None = None,
) -> UploadResult:
    """Compress then store an image; the original bytes are stored if compression fails."""
    warnings: list[str] = []
    try:
        payload = compress_image(data, max_dim_px=cfg.max_dim_px, quality=cfg.jpeg_quality)
        compressed = True
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        msg = f"Image compression failed for {filename}; storing original: {exc}"
        _LOGGER.warning("%s", msg)
        warnings.append(msg)
        payload = data
        compressed = False

    blob_path = image_blob_path(
        company_id,
        filename,
        executive_id=executive_id,
        timestamp_ms=timestamp_ms,
        extension="jpg" if compressed else None,
    )
    url = store.store(payload, blob_path)
    _LOGGER.info("Uploaded %s (%d -> %d bytes) as %s", filename, len(data), len(payload), blob_path)
    return UploadResult(url=url, blob_path=blob_path, compressed=compressed, warnings=warnings)

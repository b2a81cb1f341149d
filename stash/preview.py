"""Which stored files the built-in viewer can open."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from stash.db.models import Resource, ResourceType

_TEXT_EXTENSIONS = frozenset({
    "txt", "md", "json", "js", "ts", "jsx", "tsx", "css", "html", "xml",
    "yaml", "yml", "log", "csv", "svg", "sh", "bash", "py", "rb", "go",
    "java", "c", "cpp", "h", "hpp", "rs", "sql", "graphql", "vue", "svelte",
})

_IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "svg", "bmp", "ico"})

_DOWNLOAD_ONLY = {
    "pdf": "PDF files need a dedicated reader",
    "doc": "Word documents need a dedicated application",
    "docx": "Word documents need a dedicated application",
    "xls": "Excel files need a dedicated application",
    "xlsx": "Excel files need a dedicated application",
    "ppt": "PowerPoint files need a dedicated application",
    "pptx": "PowerPoint files need a dedicated application",
    "zip": "Archives must be extracted first",
    "rar": "Archives must be extracted first",
    "7z": "Archives must be extracted first",
}

_OTHER_BINARY = frozenset({
    "tar", "gz", "exe", "dmg", "pkg", "deb", "rpm",
    "mp3", "mp4", "avi", "mov", "mkv", "wav", "flac",
    "psd", "ai", "sketch", "fig", "ttf", "otf", "woff", "woff2", "eot",
})


@dataclass(frozen=True)
class FilePreviewInfo:
    can_preview: bool
    preview_type: str  # "text" | "image" | "none"
    reason: Optional[str] = None


def get_file_preview_info(file_name: str) -> FilePreviewInfo:
    ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""

    # Text wins for svg: it is shown as source.
    if ext in _TEXT_EXTENSIONS:
        return FilePreviewInfo(True, "text")
    if ext in _IMAGE_EXTENSIONS:
        return FilePreviewInfo(True, "image")
    if ext in _DOWNLOAD_ONLY:
        return FilePreviewInfo(False, "none", _DOWNLOAD_ONLY[ext])
    if ext in _OTHER_BINARY:
        return FilePreviewInfo(False, "none", "This file type cannot be previewed")
    return FilePreviewInfo(False, "none", "Unknown file type")


def can_open_in_viewer(resource: Resource) -> FilePreviewInfo:
    """Images and previewable documents open in the viewer; links open in a browser."""
    if resource.type == ResourceType.IMAGE:
        if resource.file_name:
            return get_file_preview_info(resource.file_name)
        return FilePreviewInfo(True, "image")
    if resource.type == ResourceType.DOCUMENT and resource.file_name:
        return get_file_preview_info(resource.file_name)
    return FilePreviewInfo(False, "none", "Opens in the browser")

"""
File attachment ingestion: classify, load, and render as prompt context.
"""

import base64
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from fastuuid import uuid4

from .helpers import debug_log

MAX_FILES = 5
TEXT_PREVIEW_CHARS = 2000

FileKind = str  # "image" | "pdf" | "text"


def classify_file(name: str, mime_type: Optional[str] = None) -> Optional[FileKind]:
    """Map a file to image/pdf/text, or None when it cannot be attached."""
    if mime_type is None:
        mime_type, _ = mimetypes.guess_type(name)
    mime_type = mime_type or ""

    if mime_type.startswith("image/"):
        return "image"
    if mime_type == "application/pdf":
        return "pdf"
    if mime_type.startswith("text/") or name.endswith((".txt", ".md")):
        return "text"
    return None


def encode_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(data_url: str) -> Tuple[bytes, str]:
    """
    Split a ``data:`` URL into its bytes and content type.

    Raises:
        ValueError: not a base64 data URL.
    """
    if not data_url.startswith("data:") or "," not in data_url:
        raise ValueError("Not a valid data URL")

    header, data = data_url.split(",", 1)
    content_type = header[5:].split(";")[0] or "application/octet-stream"
    if ";base64" not in header:
        raise ValueError("Only base64 data URLs are supported")
    return base64.b64decode(data), content_type


@dataclass
class UploadedFile:
    name: str
    kind: FileKind
    size: int
    content: Optional[str] = None
    data_url: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid4()))

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: Optional[str] = None) -> "UploadedFile":
        kind = classify_file(name, mime_type)
        if kind is None:
            raise ValueError(f"Unsupported file type: {name}")

        if kind == "text":
            return cls(name=name, kind=kind, size=len(data), content=data.decode("utf-8", errors="replace"))

        mime_type = mime_type or mimetypes.guess_type(name)[0] or "application/octet-stream"
        return cls(name=name, kind=kind, size=len(data), data_url=encode_data_url(data, mime_type))

    @classmethod
    def from_path(cls, path) -> "UploadedFile":
        path = Path(path)
        return cls.from_bytes(path.name, path.read_bytes())


def select_files(files: Iterable[UploadedFile], already_attached: int = 0) -> List[UploadedFile]:
    """Keep supported files up to the per-message limit."""
    remaining = max(0, MAX_FILES - already_attached)
    selected = [f for f in files if f.kind in ("image", "pdf", "text")][:remaining]
    debug_log("[UPLOADS] files selected", count=len(selected))
    return selected


def describe_file(file: UploadedFile) -> Optional[str]:
    if file.kind == "image":
        return f"[Image: {file.name}]"
    if file.kind == "pdf":
        return f"[PDF: {file.name}]"
    if file.kind == "text" and file.content:
        preview = file.content[:TEXT_PREVIEW_CHARS]
        if len(file.content) > TEXT_PREVIEW_CHARS:
            preview += "...(truncated)"
        return f"[Text file: {file.name}]\n```\n{preview}\n```"
    return None


def build_file_context(files: Iterable[UploadedFile]) -> str:
    return "\n".join(d for d in (describe_file(f) for f in files) if d)


def attach_files(content: str, files: Iterable[UploadedFile]) -> str:
    """Prefix a message with descriptions of its attachments."""
    context = build_file_context(files)
    if not context:
        return content
    return f"{context}\n\n{content}"

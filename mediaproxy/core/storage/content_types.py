"""
Content type inference from object paths.

Media formats are looked up in a fixed table first because the system
MIME registry differs between hosts and misses several of them (HEIC
in particular). Anything else falls back to the registry, then to
application/octet-stream.
"""

import mimetypes
import posixpath

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MEDIA_TYPES: dict[str, str] = {
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".webm": "video/webm",
    ".heim": "image/heic",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
}


def get_extension(path: str) -> str:
    """Extension of the last path segment, with the dot. Empty if none."""
    return posixpath.splitext(posixpath.basename(path))[1]


def detect_content_type(path: str) -> str:
    """
    Guess a MIME type for an object path.

    Examples:
        "a/b/photo.heim" -> "image/heic"
        "clip.MP4"       -> "video/mp4"
        "blob.zzz"       -> "application/octet-stream"
    """
    ext = get_extension(path).lower()
    if not ext:
        return DEFAULT_CONTENT_TYPE

    if ext in MEDIA_TYPES:
        return MEDIA_TYPES[ext]

    guessed, _ = mimetypes.guess_type(f"file{ext}", strict=False)
    if guessed:
        return guessed

    return DEFAULT_CONTENT_TYPE


def resolve_content_type(path: str, content_type: str = "") -> str:
    """Use the explicit type when given, otherwise infer one from the path."""
    if content_type:
        return content_type
    return detect_content_type(path)

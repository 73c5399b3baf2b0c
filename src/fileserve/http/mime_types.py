"""
=============================================================================
CONTENT CLASSIFICATION
=============================================================================

Decides two things about every file we serve:

1. Is it BINARY or TEXT?
2. What Content-Type header should it get?

=============================================================================
WHY BOTHER DETECTING BINARY?
=============================================================================

A file server sees plenty of files whose extension tells us nothing:
`LICENSE`, `Makefile`, `data.bin2`, `notes.weird`. Browsers need a
Content-Type to decide whether to render or download, so we look at the
bytes themselves:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      is_binary(name, contents)                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   extension known as TEXT?    ──► yes ──► text                      │
    │          │ no                                                        │
    │          ▼                                                           │
    │   extension known as BINARY?  ──► yes ──► binary                    │
    │          │ no                                                        │
    │          ▼                                                           │
    │   sample first 512 bytes:                                           │
    │       contains NUL byte?      ──► yes ──► binary                    │
    │       invalid UTF-8?          ──► yes ──► binary                    │
    │          │ no                                                        │
    │          ▼                                                           │
    │        text                                                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Text files of unknown type are served as text/plain so they display in
the browser; binary files of unknown type are application/octet-stream.

=============================================================================
"""

import codecs
from pathlib import Path
from typing import Union


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are lowercase extensions WITHOUT the leading dot.
#
# =============================================================================

MIME_TYPES = {
    # Markup, styles, scripts
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "text/javascript",
    "mjs": "text/javascript",
    "json": "application/json",
    "map": "application/json",
    "webmanifest": "application/manifest+json",
    "xml": "application/xml",
    "txt": "text/plain",
    "md": "text/markdown",
    "csv": "text/csv",
    "yaml": "text/yaml",
    "yml": "text/yaml",

    # Images
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "webp": "image/webp",
    "avif": "image/avif",
    "bmp": "image/bmp",

    # Fonts
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",

    # Audio / video
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",

    # Documents and archives
    "pdf": "application/pdf",
    "zip": "application/zip",
    "tar": "application/x-tar",
    "gz": "application/gzip",
    "7z": "application/x-7z-compressed",
    "wasm": "application/wasm",
}

# Extensions we trust to be text no matter what the bytes look like.
TEXT_EXTENSIONS = frozenset({
    "html", "htm", "css", "js", "mjs", "json", "map", "webmanifest", "xml",
    "txt", "md", "markdown", "csv", "tsv", "yaml", "yml", "toml", "ini",
    "cfg", "conf", "log", "svg", "py", "rb", "go", "rs", "c", "h", "cpp",
    "hpp", "java", "kt", "swift", "ts", "tsx", "jsx", "sh", "bat", "sql",
    "php", "vue", "less", "scss", "sass", "rst", "tex",
})

# Extensions we trust to be binary without sniffing.
BINARY_EXTENSIONS = frozenset({
    "png", "jpg", "jpeg", "gif", "ico", "webp", "avif", "bmp", "tif", "tiff",
    "woff", "woff2", "ttf", "otf", "eot", "mp3", "wav", "ogg", "flac", "m4a",
    "mp4", "webm", "mov", "avi", "mkv", "pdf", "zip", "tar", "gz", "bz2",
    "xz", "7z", "rar", "wasm", "exe", "dll", "so", "dylib", "class", "jar",
    "pyc", "bin", "dat", "db", "sqlite",
})

# How many leading bytes to inspect when the extension is inconclusive
SAMPLE_SIZE = 512

DEFAULT_TEXT_TYPE = "text/plain"
DEFAULT_BINARY_TYPE = "application/octet-stream"


def _normalize_extension(extension: str) -> str:
    """``".PNG"`` → ``"png"``"""
    return extension.lower().lstrip(".")


def extension_of(name: Union[str, Path]) -> str:
    """
    Extension of a file name, lowercase and without the dot.

    Returns an empty string when the name has none (``"Makefile"``).
    """
    return _normalize_extension(Path(name).suffix)


# =============================================================================
# BINARY DETECTION
# =============================================================================

def is_binary(name: Union[str, Path], contents: bytes) -> bool:
    """
    Decide whether a file is binary.

    The extension wins when it is on either allow list; otherwise the first
    SAMPLE_SIZE bytes are inspected.

    Args:
        name: File name or path (only the extension is used).
        contents: The file bytes (only a prefix is inspected).

    Returns:
        True for binary content, False for text.

    Examples:
        >>> is_binary("index.html", b"\\x00\\x01")
        False
        >>> is_binary("LICENSE", b"MIT License")
        False
        >>> is_binary("blob", b"\\x89PNG\\r\\n\\x1a\\n\\x00")
        True
    """
    extension = extension_of(name)
    if extension in TEXT_EXTENSIONS:
        return False
    if extension in BINARY_EXTENSIONS:
        return True
    return _sample_is_binary(contents[:SAMPLE_SIZE], final=len(contents) <= SAMPLE_SIZE)


def _sample_is_binary(sample: bytes, final: bool) -> bool:
    """
    Sniff a byte sample.

    NUL bytes essentially never occur in text. For everything else we try to
    decode the sample as UTF-8. The incremental decoder tolerates a
    multi-byte character cut in half at the end of the sample, unless the
    sample is the whole file (``final=True``).
    """
    if not sample:
        return False

    if b"\x00" in sample:
        return True

    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        decoder.decode(sample, final=final)
    except UnicodeDecodeError:
        return True
    return False


# =============================================================================
# CONTENT TYPE
# =============================================================================

def is_text_type(mime_type: str) -> bool:
    """
    Check if a MIME type is text-based (and therefore gets a charset).

    Examples:
        >>> is_text_type("text/css")
        True
        >>> is_text_type("application/json")
        True
        >>> is_text_type("image/png")
        False
    """
    if mime_type.startswith("text/"):
        return True

    return mime_type in {
        "application/json",
        "application/manifest+json",
        "application/xml",
        "image/svg+xml",
    }


def content_type(extension: str, binary: bool = False, charset: str = "utf-8") -> str:
    """
    Full Content-Type header value for a file extension.

    Unknown extensions fall back to text/plain, or to
    application/octet-stream when the content was classified binary.

    Args:
        extension: File extension, with or without the leading dot.
        binary: Result of is_binary() for the file.
        charset: Charset appended to text types.

    Examples:
        >>> content_type("html")
        'text/html; charset=utf-8'
        >>> content_type(".png")
        'image/png'
        >>> content_type("weird")
        'text/plain; charset=utf-8'
        >>> content_type("weird", binary=True)
        'application/octet-stream'
    """
    mime_type = MIME_TYPES.get(_normalize_extension(extension))
    if mime_type is None:
        mime_type = DEFAULT_BINARY_TYPE if binary else DEFAULT_TEXT_TYPE

    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type

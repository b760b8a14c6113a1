"""MIME hint to file extension mapping."""

DEFAULT_EXTENSION = ".bin"

# Checked in order; the first substring found in the hint wins
_MIME_EXTENSIONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("audio/ogg",), ".ogg"),
    (("audio/mpeg", "audio/mp3"), ".mp3"),
    (("audio/mp4", "audio/aac"), ".m4a"),
    (("video/mp4",), ".mp4"),
    (("image/jpeg",), ".jpg"),
    (("image/png",), ".png"),
    (("image/webp",), ".webp"),
    (("application/pdf",), ".pdf"),
)


def extension_from_mime(mime_type: str | None) -> str:
    """
    Map a MIME hint such as "audio/ogg; codecs=opus" to a file extension.

    Unknown or missing hints map to ".bin".
    """
    mime = (mime_type or "").lower()
    for needles, extension in _MIME_EXTENSIONS:
        if any(needle in mime for needle in needles):
            return extension
    return DEFAULT_EXTENSION

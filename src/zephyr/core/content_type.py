"""Content-type inference from a resource path's extension."""

import re

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MIME_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "css": "text/css",
    "html": "text/html",
    "js": "application/javascript",
    "json": "application/json",
    "txt": "text/plain",
}

_QUERY_OR_FRAGMENT = re.compile(r"[#?]")


def guess_content_type(path: str) -> str:
    """Guess a MIME type from the extension of ``path``.

    Everything after the last ``.`` is taken as the extension, cut at the
    first ``?`` or ``#``. Unknown or missing extensions map to
    ``application/octet-stream``.

    Example:
        >>> guess_content_type("https://example.com/logo.PNG?v=2")
        'image/png'
    """
    extension = path.rsplit(".", 1)[-1]
    extension = _QUERY_OR_FRAGMENT.split(extension, 1)[0].lower()
    return MIME_TYPES.get(extension, DEFAULT_CONTENT_TYPE)

import mimetypes
import os
from collections import namedtuple
from urllib.parse import unquote, urlsplit

INDEX_NAME = "index.html"
INDEX_CONTENT_TYPE = "text/html"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Build outputs whose types are missing or wrong in some mimetypes tables
EXTRA_CONTENT_TYPES = {
    ".wasm": "application/wasm",
    ".mjs": "text/javascript",
    ".js": "text/javascript",
    ".json": "application/json",
    ".webmanifest": "application/manifest+json",
}


class AssetNotFoundError(Exception):
    """The entry document is missing from the web root (broken deployment)."""


class PathTraversalAttempt(Exception):
    """The request path would escape the web root."""


ResolvedAsset = namedtuple("ResolvedAsset", ["path", "content_type", "is_fallback"])


def guess_content_type(path):
    ext = os.path.splitext(path)[1].lower()
    if ext in EXTRA_CONTENT_TYPES:
        return EXTRA_CONTENT_TYPES[ext]
    ct, _ = mimetypes.guess_type(path)
    return ct or DEFAULT_CONTENT_TYPE


def split_request_path(raw_path):
    """Return the decoded, non-empty segments of a request target.

    Accepts origin-form (``/a/b``) and absolute-form (``http://host/a/b``)
    targets. Raises PathTraversalAttempt for ``..`` segments and NUL bytes.
    """
    if raw_path.startswith("/"):
        path = raw_path.split("?", 1)[0].split("#", 1)[0]
    else:
        path = urlsplit(raw_path).path
    path = unquote(path)

    if "\x00" in path:
        raise PathTraversalAttempt(raw_path)

    segments = []
    for segment in path.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            raise PathTraversalAttempt(raw_path)
        segments.append(segment)
    return segments


class StaticAssetResolver:
    """Maps request paths to files under web_root, falling back to the entry document."""

    def __init__(self, web_root, index_name=INDEX_NAME):
        self.web_root = os.path.realpath(web_root)
        self.index_name = index_name

    @property
    def index_path(self):
        return os.path.join(self.web_root, self.index_name)

    def entry_document_exists(self):
        return os.path.isfile(self.index_path)

    def _contained(self, path):
        return os.path.commonpath([self.web_root, path]) == self.web_root

    def resolve(self, raw_path):
        segments = split_request_path(raw_path)

        # dotfiles and dot-directories (.env, .git/) are never served as assets
        if segments and not any(s.startswith(".") for s in segments):
            candidate = os.path.realpath(os.path.join(self.web_root, *segments))
            # symlinks inside the build may still point elsewhere
            if not self._contained(candidate):
                raise PathTraversalAttempt(raw_path)
            if os.path.isfile(candidate):
                return ResolvedAsset(candidate, guess_content_type(candidate), False)

        return self.fallback()

    def fallback(self):
        if not self.entry_document_exists():
            raise AssetNotFoundError(self.index_path)
        return ResolvedAsset(self.index_path, INDEX_CONTENT_TYPE, True)

"""Static asset resolver.

Maps a request path to a file under a root directory. Every lookup reads
the file from disk; there is no cache.
"""

from __future__ import annotations

from http import HTTPStatus
from pathlib import Path, PurePosixPath

from .exceptions import NotFoundError, UnsupportedAssetError
from .log import debug, warn
from .models import Response
from .responses import response_builder


MIME_TYPES: dict[str, str] = {
    ".html": "text/html",
    ".js": "text/javascript",
    ".css": "text/css",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".wasm": "application/wasm",
}


def mime_type_for(path: str | Path) -> str | None:
    """Return the MIME type for a file name, or None when unrecognized."""
    return MIME_TYPES.get(PurePosixPath(str(path)).suffix.lower())


class StaticAssetResolver:
    """Serves files below a single root directory.

    The root is resolved once, when the resolver is created. Request paths
    are joined to it, canonicalized (symlinks and ``..`` resolved), and
    rejected with 404 unless they still lie under the root.
    """

    def __init__(self, root: str | Path, index: str = "index.html") -> None:
        """Initialize the resolver.

        Parameters
        ----------
        root : str or Path
            Directory to serve.
        index : str, optional
            Document served for the path ``/``.
        """
        self._root = Path(root).expanduser().resolve()
        self._index = index

    @property
    def root(self) -> Path:
        """The canonical root directory."""
        return self._root

    def _relative(self, path: str) -> str:
        if path == "/":
            return self._index
        return path[1:] if path.startswith("/") else path

    def locate(self, path: str) -> Path | None:
        """Canonicalize a request path to an existing file under the root.

        Parameters
        ----------
        path : str
            The request path, e.g. ``/`` or ``/assets/app.js``.

        Returns
        -------
        Path or None
            The resolved file, or None if it does not exist, is not a
            regular file, or escapes the root.
        """
        relative = self._relative(path)
        try:
            resolved = (self._root / relative).resolve(strict=True)
        except (OSError, RuntimeError, ValueError) as e:
            debug(f"Failed to canonicalize static path {path!r}: {e}")
            return None

        if not resolved.is_relative_to(self._root):
            warn(f"Rejected static path outside root: {path!r}")
            return None
        if not resolved.is_file():
            return None
        return resolved

    def resolve(self, path: str) -> Response:
        """Produce the response for a static request.

        Parameters
        ----------
        path : str
            The request path.

        Returns
        -------
        Response
            200 with the file bytes, 404 when the path does not resolve
            under the root, or 501 for an unrecognized extension.
        """
        try:
            content, mimetype = self.read(path)
        except (NotFoundError, UnsupportedAssetError) as e:
            return e.to_response()
        return response_builder(HTTPStatus.OK, content, mimetype)

    def read(self, path: str) -> tuple[bytes, str]:
        """Read a static file and infer its MIME type.

        Raises
        ------
        NotFoundError
            If the path does not resolve to a readable file under the root.
        UnsupportedAssetError
            If the file's extension is not in ``MIME_TYPES``.
        """
        located = self.locate(path)
        if located is None:
            raise NotFoundError(path=path)

        mimetype = mime_type_for(self._relative(path))
        if mimetype is None:
            raise UnsupportedAssetError(path=path)

        try:
            content = located.read_bytes()
        except OSError as e:
            warn(f"Failed to read static file {located}: {e}")
            raise NotFoundError(path=path) from e

        debug(f"Serving static {path!r} ({mimetype}, {len(content)} bytes)")
        return content, mimetype

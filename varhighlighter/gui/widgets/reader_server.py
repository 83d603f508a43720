from __future__ import annotations

import mimetypes
import os
import threading
import uuid
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import quote, unquote, urlparse

from varhighlighter.utils.logger import logger

_READER_HTTP_SERVER: Optional[ThreadingHTTPServer] = None
_READER_HTTP_PORT: Optional[int] = None
_READER_HTTP_THREAD: Optional[threading.Thread] = None
_READER_HTTP_LOCK = threading.Lock()
_READER_HTTP_TOKENS: dict[str, Path] = {}
_READER_HTTP_ROOTS: dict[str, Path] = {}
_READER_HTTP_ASSET_CACHE: dict[Path, tuple[int, bytes]] = {}

_CHUNK_SIZE = 1024 * 256

mimetypes.add_type("application/javascript", ".mjs")
mimetypes.add_type("application/wasm", ".wasm")
mimetypes.add_type("application/octet-stream", ".bcmap")
mimetypes.add_type("application/l10n", ".ftl")


def _parse_range(range_header: str, size: int) -> Tuple[int, int, int]:
    """Return ``(status, start, end)`` for a ``Range`` header.

    Malformed headers fall back to the whole file with status 200.
    """
    start = 0
    end = max(0, size - 1)
    if not range_header.startswith("bytes="):
        return 200, start, end
    try:
        value = range_header[len("bytes=") :].strip()
        start_str, end_str = (value.split("-", 1) + [""])[:2]
        if start_str == "" and end_str:
            length = max(0, min(size, int(end_str)))
            start = max(0, size - length)
            end = max(0, size - 1)
        else:
            start = int(start_str) if start_str else 0
            end = int(end_str) if end_str else end
        start = max(0, min(start, max(0, size - 1)))
        end = max(start, min(end, max(0, size - 1)))
        return 206, start, end
    except ValueError:
        return 200, 0, max(0, size - 1)


def _resolve_asset(root: Path, relative: str) -> Optional[Path]:
    """Resolve ``relative`` under ``root``; paths escaping the root yield None."""
    try:
        base = root.resolve()
        candidate = (base / relative).resolve()
        candidate.relative_to(base)
    except (OSError, ValueError):
        return None
    if candidate.is_file():
        return candidate
    return None


def _read_cached(asset: Path) -> bytes:
    mtime_ns = int(asset.stat().st_mtime_ns)
    cached = _READER_HTTP_ASSET_CACHE.get(asset)
    if cached is None or cached[0] != mtime_ns:
        cached = (mtime_ns, asset.read_bytes())
        _READER_HTTP_ASSET_CACHE[asset] = cached
    return cached[1]


class _Handler(BaseHTTPRequestHandler):
    server_version = "VarHighlighterReader/1.0"

    def log_message(self, fmt: str, *args: object) -> None:  # noqa: D401
        return

    def do_HEAD(self) -> None:  # noqa: N802 - BaseHTTPRequestHandler
        self._serve(send_body=False)

    def do_GET(self) -> None:  # noqa: N802 - BaseHTTPRequestHandler
        self._serve(send_body=True)

    def do_OPTIONS(self) -> None:  # noqa: N802 - BaseHTTPRequestHandler
        self.send_response(204)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, HEAD, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Range, Content-Type")
        self.send_header(
            "Access-Control-Expose-Headers",
            "Accept-Ranges, Content-Range, Content-Length",
        )
        self.end_headers()

    def _serve(self, *, send_body: bool) -> None:
        try:
            path = urlparse(self.path).path or ""
        except ValueError:
            self.send_error(400)
            return
        if path.startswith("/viewer/"):
            self._serve_viewer_asset(unquote(path[len("/viewer/") :]), send_body)
        elif path.startswith("/pdf/"):
            self._serve_pdf(unquote(path[len("/pdf/") :]), send_body)
        else:
            self.send_error(404)

    def _serve_viewer_asset(self, rest: str, send_body: bool) -> None:
        root_token, _, relative = rest.partition("/")
        root = _READER_HTTP_ROOTS.get(root_token)
        asset = _resolve_asset(root, relative) if root is not None and relative else None
        if asset is None:
            self.send_error(404)
            return
        try:
            payload = _read_cached(asset)
        except OSError:
            self.send_error(404)
            return
        content_type = mimetypes.guess_type(asset.name)[0] or "application/octet-stream"
        self.send_response(200)
        self.send_header("Content-Type", content_type)
        self.send_header("Cache-Control", "no-store")
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if send_body:
            try:
                self.wfile.write(payload)
            except OSError:
                return

    def _serve_pdf(self, rest: str, send_body: bool) -> None:
        token = rest.strip().split("/", 1)[0]
        file_path = _READER_HTTP_TOKENS.get(token)
        if file_path is None or not file_path.exists():
            self.send_error(404)
            return
        try:
            size = file_path.stat().st_size
        except OSError:
            self.send_error(404)
            return

        status, start, end = _parse_range(self.headers.get("Range", ""), size)
        length = max(0, end - start + 1)
        self.send_response(status)
        self.send_header("Content-Type", "application/pdf")
        self.send_header("Accept-Ranges", "bytes")
        self.send_header("Cache-Control", "no-store")
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header(
            "Access-Control-Expose-Headers",
            "Accept-Ranges, Content-Range, Content-Length",
        )
        self.send_header("Content-Length", str(length))
        if status == 206:
            self.send_header("Content-Range", f"bytes {start}-{end}/{size}")
        self.end_headers()
        if not send_body:
            return
        try:
            with open(file_path, "rb") as f:
                if start:
                    f.seek(start, os.SEEK_SET)
                remaining = length
                while remaining > 0:
                    chunk = f.read(min(_CHUNK_SIZE, remaining))
                    if not chunk:
                        break
                    self.wfile.write(chunk)
                    remaining -= len(chunk)
        except OSError:
            return


def ensure_reader_http_server() -> str:
    global _READER_HTTP_SERVER, _READER_HTTP_PORT, _READER_HTTP_THREAD
    with _READER_HTTP_LOCK:
        if _READER_HTTP_SERVER is not None and _READER_HTTP_PORT is not None:
            return f"http://127.0.0.1:{_READER_HTTP_PORT}"
        httpd = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
        _READER_HTTP_SERVER = httpd
        _READER_HTTP_PORT = int(getattr(httpd, "server_port", 0) or 0)
        thread = threading.Thread(target=httpd.serve_forever, daemon=True)
        thread.start()
        _READER_HTTP_THREAD = thread
        logger.info(f"Reader HTTP server started on 127.0.0.1:{_READER_HTTP_PORT}")
        return f"http://127.0.0.1:{_READER_HTTP_PORT}"


def shutdown_reader_http_server() -> None:
    global _READER_HTTP_SERVER, _READER_HTTP_PORT, _READER_HTTP_THREAD
    with _READER_HTTP_LOCK:
        httpd, _READER_HTTP_SERVER = _READER_HTTP_SERVER, None
        _READER_HTTP_PORT = None
        thread, _READER_HTTP_THREAD = _READER_HTTP_THREAD, None
    if httpd is not None:
        httpd.shutdown()
        httpd.server_close()
    if thread is not None:
        thread.join(timeout=2.0)
    _READER_HTTP_TOKENS.clear()
    _READER_HTTP_ROOTS.clear()
    _READER_HTTP_ASSET_CACHE.clear()


def register_viewer_root(root: Path) -> str:
    """Serve a PDF.js distribution directory; returns its base URL."""
    root = Path(root).expanduser().resolve()
    if not (root / "web" / "viewer.html").is_file():
        raise FileNotFoundError(f"{root} does not look like a PDF.js build (web/viewer.html missing)")
    base = ensure_reader_http_server()
    for token, known in _READER_HTTP_ROOTS.items():
        if known == root:
            return f"{base}/viewer/{token}"
    token = uuid.uuid4().hex
    _READER_HTTP_ROOTS[token] = root
    logger.debug(f"Serving PDF.js from {root} via token {token}")
    return f"{base}/viewer/{token}"


def register_pdf(path: Path) -> str:
    base = ensure_reader_http_server()
    token = uuid.uuid4().hex
    _READER_HTTP_TOKENS[token] = Path(path)
    logger.debug(f"Serving {path} via token {token}")
    return f"{base}/pdf/{token}"


def viewer_url(viewer_root: Path, pdf_path: Path) -> str:
    """URL that opens ``pdf_path`` in the stock viewer under ``viewer_root``."""
    viewer_base = register_viewer_root(viewer_root)
    pdf_url = register_pdf(pdf_path)
    return f"{viewer_base}/web/viewer.html?file={quote(pdf_url, safe='')}"


__all__ = [
    "ensure_reader_http_server",
    "register_pdf",
    "register_viewer_root",
    "shutdown_reader_http_server",
    "viewer_url",
]

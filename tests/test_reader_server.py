from __future__ import annotations

import urllib.error
import urllib.request
from pathlib import Path
from urllib.parse import parse_qs, unquote, urlparse

import pytest

from varhighlighter.gui.widgets import reader_server as srv


def test_parse_range_variants() -> None:
    assert srv._parse_range("", 100) == (200, 0, 99)  # noqa: SLF001
    assert srv._parse_range("bytes=10-19", 100) == (206, 10, 19)  # noqa: SLF001
    assert srv._parse_range("bytes=90-", 100) == (206, 90, 99)  # noqa: SLF001
    assert srv._parse_range("bytes=-10", 100) == (206, 90, 99)  # noqa: SLF001
    assert srv._parse_range("bytes=50-500", 100) == (206, 50, 99)  # noqa: SLF001
    assert srv._parse_range("bytes=abc-def", 100) == (200, 0, 99)  # noqa: SLF001


def test_assets_cannot_escape_viewer_root(tmp_path: Path) -> None:
    root = tmp_path / "pdfjs"
    (root / "web").mkdir(parents=True)
    (root / "web" / "viewer.html").write_text("<html></html>", encoding="utf-8")
    (tmp_path / "secret.txt").write_text("no", encoding="utf-8")

    assert srv._resolve_asset(root, "web/viewer.html") is not None  # noqa: SLF001
    assert srv._resolve_asset(root, "../secret.txt") is None  # noqa: SLF001
    assert srv._resolve_asset(root, "web") is None  # noqa: SLF001


def test_register_viewer_root_requires_viewer_html(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        srv.register_viewer_root(tmp_path)


def test_serves_viewer_assets_and_pdf_ranges(tmp_path: Path) -> None:
    root = tmp_path / "pdfjs"
    (root / "web").mkdir(parents=True)
    (root / "build").mkdir()
    (root / "web" / "viewer.html").write_text("<html>viewer</html>", encoding="utf-8")
    (root / "build" / "pdf.mjs").write_text("export {};", encoding="utf-8")
    pdf_path = tmp_path / "paper.pdf"
    pdf_path.write_bytes(b"%PDF-1.7\n" + b"x" * 100)

    try:
        url = srv.viewer_url(root, pdf_path)
        parsed = urlparse(url)
        assert parsed.path.endswith("/web/viewer.html")
        pdf_url = unquote(parse_qs(parsed.query)["file"][0])

        with urllib.request.urlopen(url, timeout=5) as response:
            assert response.read() == b"<html>viewer</html>"
            assert response.headers["Content-Type"].startswith("text/html")

        module_url = url.replace("/web/viewer.html", "/build/pdf.mjs").split("?")[0]
        with urllib.request.urlopen(module_url, timeout=5) as response:
            assert response.headers["Content-Type"] == "application/javascript"

        request = urllib.request.Request(pdf_url, headers={"Range": "bytes=0-7"})
        with urllib.request.urlopen(request, timeout=5) as response:
            assert response.status == 206
            assert response.read() == b"%PDF-1.7"
            assert response.headers["Content-Range"] == f"bytes 0-7/{pdf_path.stat().st_size}"

        # same root is served under the same prefix
        assert srv.register_viewer_root(root) == url.split("/web/")[0]

        with pytest.raises(urllib.error.HTTPError) as exc_info:
            urllib.request.urlopen(url.split("/web/")[0] + "/../secret", timeout=5)
        assert exc_info.value.code == 404
    finally:
        srv.shutdown_reader_http_server()

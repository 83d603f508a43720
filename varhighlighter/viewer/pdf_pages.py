"""PyMuPDF helpers for the first-occurrence preview and page text."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from qtpy import QtGui

from varhighlighter.utils.logger import logger


def open_document(path: Path):
    try:
        import fitz  # type: ignore[import]
    except ImportError as exc:  # pragma: no cover - packaging issue
        raise RuntimeError("PyMuPDF (pymupdf) is required to render previews.") from exc
    doc = fitz.open(str(path))
    if doc.page_count == 0:
        doc.close()
        raise ValueError(f"{path} does not contain any pages.")
    return doc


def render_page_image(doc, page_index: int, scale: float) -> Optional[QtGui.QImage]:
    if doc is None or not 0 <= page_index < doc.page_count:
        return None
    import fitz  # type: ignore[import]

    page = doc.load_page(page_index)
    zoom = max(0.05, float(scale))
    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom))
    fmt = QtGui.QImage.Format_RGBA8888 if pix.alpha else QtGui.QImage.Format_RGB888
    # copy() detaches the image from the pixmap's buffer.
    return QtGui.QImage(pix.samples, pix.width, pix.height, pix.stride, fmt).copy()


def page_text(doc, page_index: int) -> str:
    if doc is None or not 0 <= page_index < doc.page_count:
        return ""
    try:
        return doc.load_page(page_index).get_text("text") or ""
    except Exception as exc:
        logger.debug("Text extraction failed for page %d: %s", page_index + 1, exc)
        return ""

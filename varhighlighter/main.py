import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

from varhighlighter.utils.config import HighlighterSettings, load_settings
from varhighlighter.utils.logger import logger, set_log_level
from varhighlighter.version import get_version

__all__ = ["build_parser", "parse_cli", "main"]


def build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser of the highlighter entry point."""
    parser = argparse.ArgumentParser(
        description="Open a PDF in PDF.js and highlight the first occurrence "
                    "of any selected text."
    )
    parser.add_argument("pdf", nargs="?", default=None,
                        help="path to the PDF file to open")
    parser.add_argument("--pdfjs-dir", dest="pdfjs_dir", default=None,
                        help="PDF.js distribution directory (containing web/viewer.html)")
    parser.add_argument("--config", default=None,
                        help="YAML file overriding the highlighter settings")
    parser.add_argument("--first-color", dest="first_color", default=None,
                        help="CSS colour of the first occurrence (stored)")
    parser.add_argument("--other-color", dest="other_color", default=None,
                        help="CSS colour of every other occurrence (stored)")
    parser.add_argument("--debug", action="store_true",
                        help="log debug messages")
    parser.add_argument("--version", "-V", action="store_true",
                        help="show version and exit")
    return parser


def parse_cli(
    argv: Optional[Sequence[str]] = None,
) -> Tuple[HighlighterSettings, argparse.Namespace]:
    """Parse CLI arguments and return ``(settings, namespace)``."""
    parser = build_parser()
    namespace = parser.parse_args(argv)
    if namespace.version:
        return HighlighterSettings(), namespace
    if namespace.pdf is None or namespace.pdfjs_dir is None:
        parser.error("a PDF path and --pdfjs-dir are required")
    settings = load_settings(namespace.config)
    return settings, namespace


def main(argv=None):
    settings, args = parse_cli(argv)
    if args.version:
        print(get_version())
        return 0
    if args.debug:
        set_log_level(logging.DEBUG)

    pdf_path = Path(args.pdf).expanduser()
    if not pdf_path.is_file():
        logger.error("PDF not found: %s", pdf_path)
        return 1

    from qtpy import QtWidgets

    from varhighlighter.addon import VarHighlighterAddon
    from varhighlighter.gui.application import create_qapp
    from varhighlighter.gui.widgets.reader_widget import PdfJsReaderWidget
    from varhighlighter.utils.prefs import HighlightPreferences
    from varhighlighter.viewer.events import ReaderEventHub

    app = create_qapp([sys.argv[0]])
    prefs = HighlightPreferences()
    if args.first_color is not None or args.other_color is not None:
        if not prefs.set_colors(first=args.first_color, other=args.other_color):
            logger.warning("Highlight colours were not changed")
    logger.info("Qt config file: %s" % prefs.qt_settings.fileName())

    hub = ReaderEventHub()
    addon = VarHighlighterAddon(settings=settings, colors=prefs.colors)
    addon.activate(hub)

    try:
        reader = PdfJsReaderWidget(Path(args.pdfjs_dir).expanduser(), hub)
        reader.load_pdf(str(pdf_path))
    except (FileNotFoundError, RuntimeError) as exc:
        logger.error("Cannot open the reader: %s", exc)
        addon.deactivate()
        return 1

    win = QtWidgets.QMainWindow()
    win.setWindowTitle(f"{pdf_path.name} - varhighlighter")
    win.setCentralWidget(reader)
    win.resize(1100, 900)
    win.show()
    win.raise_()
    try:
        return app.exec_()
    finally:
        addon.deactivate()


if __name__ == "__main__":
    sys.exit(main())

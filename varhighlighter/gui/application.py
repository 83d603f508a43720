from typing import Optional, Sequence

from qtpy import QtCore, QtWidgets

from varhighlighter.utils.logger import __appname__


def create_qapp(argv: Optional[Sequence[str]] = None) -> QtWidgets.QApplication:
    """Create (or return) the singleton QApplication instance."""
    existing_app = QtWidgets.QApplication.instance()
    if existing_app is not None:
        return existing_app
    # QtWebEngine needs shared GL contexts before the application exists.
    QtCore.QCoreApplication.setAttribute(QtCore.Qt.AA_ShareOpenGLContexts, True)
    app = QtWidgets.QApplication(list(argv) if argv is not None else [__appname__])
    app.setApplicationName(__appname__)
    return app

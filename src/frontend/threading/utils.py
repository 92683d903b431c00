import logging

from PySide6.QtCore import QCoreApplication, QTimer

logger = logging.getLogger(__name__)


def run_in_main_thread(callback, *args, **kwargs):
    """Queue ``callback`` on the Qt main event loop.

    Without a running ``QCoreApplication`` the callback runs immediately on
    the calling thread.
    """
    app = QCoreApplication.instance()
    if app is None:
        callback(*args, **kwargs)
        return

    def _invoke():
        try:
            callback(*args, **kwargs)
        except Exception:
            logger.exception("Main-thread callback %r failed", getattr(callback, "__name__", callback))

    QTimer.singleShot(0, app, _invoke)

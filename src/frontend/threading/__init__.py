"""Threading helpers used by the frontend."""

from .utils import run_in_main_thread

__all__ = ["run_in_main_thread"]

"""
PyQt5 host for the markup engine.
"""
from .windows.main_window import MainWindow

__all__ = ["MainWindow"]

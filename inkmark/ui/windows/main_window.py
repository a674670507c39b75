"""
Main application window for Inkmark.
"""
import asyncio
import logging
import os
from typing import Optional

from PyQt5.QtCore import Qt, QTimer
from PyQt5.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QScrollArea,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from inkmark.config import Settings, get_settings
from inkmark.controllers.markup_controller import MarkupController
from inkmark.core.annotations.models import UserPermissions
from inkmark.core.commands import GoToPage
from inkmark.core.document import AnnotationBaker, PdfDocumentSurface
from inkmark.core.errors import MarkupError, PersistenceError
from inkmark.core.persistence import (
    AnnotationEndpoint,
    HttpAnnotationEndpoint,
    LocalFileEndpoint,
)
from inkmark.core.session import MarkupSession
from inkmark.ui.toolbars.markup_toolbar import MarkupToolbar
from inkmark.ui.widgets.markup_page import MarkupPageLabel
from inkmark.ui.widgets.version_history import VersionHistoryDialog

logger = logging.getLogger(__name__)

# How often the asyncio loop gets a turn on the GUI thread
ASYNC_PUMP_INTERVAL_MS = 10


class MainWindow(QMainWindow):
    """Opens one PDF and hosts its markup session."""

    def __init__(self, file_path: Optional[str] = None, drawing_id: Optional[str] = None,
                 permissions: Optional[UserPermissions] = None,
                 settings: Optional[Settings] = None):
        super().__init__()
        self.settings = settings or get_settings()
        self.drawing_id = drawing_id
        self.file_path: Optional[str] = None
        self.permissions = permissions or UserPermissions()

        # Asyncio loop shared with Qt on the GUI thread
        self.loop = asyncio.new_event_loop()
        self._pump_timer = QTimer(self)
        self._pump_timer.timeout.connect(self._pump_event_loop)
        self._pump_timer.start(ASYNC_PUMP_INTERVAL_MS)

        self.surface = PdfDocumentSurface()
        self.session: Optional[MarkupSession] = None
        self.controller: Optional[MarkupController] = None

        self.setWindowTitle("Inkmark")
        self.resize(1200, 900)
        self._show_empty_state()

        if file_path and os.path.exists(file_path):
            self.load_pdf(file_path)

    def _pump_event_loop(self):
        # Run everything that is ready, then hand control back to Qt
        self.loop.call_soon(self.loop.stop)
        self.loop.run_forever()

    def _show_empty_state(self):
        container = QWidget(self)
        layout = QVBoxLayout(container)
        open_button = QToolButton(container)
        open_button.setText("Open PDF...")
        open_button.clicked.connect(self.open_pdf)
        layout.addStretch()
        layout.addWidget(open_button, alignment=Qt.AlignCenter)
        layout.addStretch()
        self.setCentralWidget(container)

    def open_pdf(self):
        file_path, _ = QFileDialog.getOpenFileName(self, "Open PDF", "", "PDF Files (*.pdf)")
        if file_path:
            self.load_pdf(file_path)

    def _create_endpoint(self, file_path: str) -> AnnotationEndpoint:
        if self.settings.api_base_url and self.drawing_id:
            return HttpAnnotationEndpoint(self.settings.api_base_url, self.drawing_id,
                                          timeout=self.settings.api_timeout)
        return LocalFileEndpoint(file_path, self.settings.data_dir)

    def load_pdf(self, file_path: str):
        """Open a PDF, restore its saved annotations and start a session."""
        self.close_session()
        try:
            self.surface.load_pdf(file_path)
        except MarkupError as e:
            QMessageBox.critical(self, "Error", str(e))
            return

        endpoint = self._create_endpoint(file_path)
        snapshot = None
        if isinstance(endpoint, LocalFileEndpoint):
            try:
                snapshot = endpoint.load()
            except MarkupError as e:
                QMessageBox.warning(self, "Annotations Not Loaded", str(e))

        self.session = MarkupSession(
            endpoint=endpoint,
            initial_annotations=snapshot.annotations if snapshot else None,
            initial_layers=snapshot.layers if snapshot else None,
            current_revision_number=(snapshot.revision_number if snapshot and
                                     snapshot.revision_number else 1),
            permissions=self.permissions,
            surface=self.surface,
            baker=AnnotationBaker(file_path) if self.permissions.can_download else None,
            settings=self.settings,
            loop=self.loop,
        )
        if isinstance(endpoint, LocalFileEndpoint):
            try:
                self.session.versions.load(endpoint.load_versions())
            except MarkupError as e:
                QMessageBox.warning(self, "Version History Not Loaded", str(e))

        self.controller = MarkupController(self.session, self)
        self.controller.save_failed.connect(self.controller.show_save_error)
        self.controller.view_changed.connect(self._update_page_label)
        self._build_document_view()
        self.file_path = file_path
        self.setWindowTitle(f"Inkmark - {os.path.basename(file_path)}")
        logger.info("Opened %s", file_path, extra={"document": file_path})

    def _build_document_view(self):
        container = QWidget(self)
        layout = QVBoxLayout(container)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self.toolbar = MarkupToolbar(self.controller, container)
        self.toolbar.history_requested.connect(self.show_version_history)
        self.toolbar.download_requested.connect(self.download_pdf)
        layout.addWidget(self.toolbar)

        self.page_label = MarkupPageLabel(self.controller, self.surface)
        self.scroll_area = QScrollArea(container)
        self.scroll_area.setAlignment(Qt.AlignCenter)
        self.scroll_area.setWidget(self.page_label)
        layout.addWidget(self.scroll_area, 1)

        nav = QHBoxLayout()
        nav.addStretch()
        prev_button = QToolButton(container)
        prev_button.setText("<")
        prev_button.clicked.connect(lambda: self._go_to_page(self.session.page - 1))
        nav.addWidget(prev_button)
        self.page_info = QLabel(container)
        nav.addWidget(self.page_info)
        next_button = QToolButton(container)
        next_button.setText(">")
        next_button.clicked.connect(lambda: self._go_to_page(self.session.page + 1))
        nav.addWidget(next_button)
        nav.addStretch()
        layout.addLayout(nav)

        self.setCentralWidget(container)
        self._update_page_label()
        self.page_label.setFocus()

    def _go_to_page(self, page: int):
        self.controller.dispatch(GoToPage(page))

    def _update_page_label(self):
        self.page_info.setText(f"Page {self.session.page} of {self.session.page_count}")

    def show_version_history(self):
        dialog = VersionHistoryDialog(self.controller, self)
        dialog.exec_()

    def download_pdf(self) -> bool:
        """
        Export the document with the current annotations burned in.

        Returns:
            True if a file was written
        """
        if self.session is None:
            return False
        if not self.permissions.can_download:
            QMessageBox.warning(self, "Not Allowed",
                                "You don't have permission to download this document")
            return False

        base, _ = os.path.splitext(os.path.basename(self.file_path))
        default_path = os.path.join(os.path.dirname(self.file_path), f"{base}_annotated.pdf")
        output_path, _ = QFileDialog.getSaveFileName(self, "Download Annotated PDF",
                                                     default_path, "PDF Files (*.pdf)")
        if not output_path:
            return False

        try:
            AnnotationBaker(self.file_path).export(self.session.store.snapshot(), output_path)
        except (MarkupError, RuntimeError) as e:
            logger.error("Download failed: %s", e)
            QMessageBox.critical(self, "Download Failed", str(e))
            return False
        return True

    def close_session(self):
        """Tear down the current session, flushing pending edits first."""
        if self.session is None:
            return
        session = self.session
        if session.autosave.has_pending_save or session.autosave.is_saving:
            if not self.loop.run_until_complete(session.save_now()):
                logger.error("Final save failed; unsaved annotations were discarded")
        if isinstance(session.endpoint, LocalFileEndpoint):
            try:
                session.endpoint.save_versions(session.versions.get_all_versions())
            except PersistenceError as e:
                logger.error("Version history was not saved: %s", e)
        self.controller.close()
        self.loop.run_until_complete(session.aclose())
        self.session = None
        self.controller = None

    def closeEvent(self, event):
        self.close_session()
        self._pump_timer.stop()
        self.surface.close()
        self.loop.close()
        super().closeEvent(event)

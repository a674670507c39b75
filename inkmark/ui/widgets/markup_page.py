"""
Page widget that shows one rendered page and the annotations on it.
"""
from typing import Optional, Tuple

from PyQt5.QtCore import Qt
from PyQt5.QtGui import QImage, QKeyEvent, QMouseEvent, QPainter, QPixmap
from PyQt5.QtWidgets import QLabel

from inkmark.controllers.markup_controller import MarkupController
from inkmark.core.commands import PointerDown, PointerMove, PointerUp
from inkmark.core.document.surface import PdfDocumentSurface
from inkmark.core.tools.models import ToolMode
from inkmark.ui.qt_renderer import QPainterRenderer

_CURSORS = {
    ToolMode.SELECT: Qt.ArrowCursor,
    ToolMode.MOVE: Qt.SizeAllCursor,
    ToolMode.TEXT: Qt.IBeamCursor,
    ToolMode.ERASER: Qt.PointingHandCursor,
}


def pixmap_from_fitz(pix) -> QPixmap:
    """Copy a PyMuPDF RGB pixmap into a QPixmap."""
    img = QImage(pix.samples, pix.width, pix.height, pix.stride, QImage.Format_RGB888)
    return QPixmap.fromImage(img)


class MarkupPageLabel(QLabel):
    """
    Shows the current page and forwards pointer and key input to the controller.

    Mouse positions are converted to document coordinates before they reach
    the session; annotations are painted on top of the page pixmap.
    """

    def __init__(self, controller: MarkupController,
                 surface: Optional[PdfDocumentSurface] = None, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.surface = surface
        self._pressed = False

        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.StrongFocus)
        self.setAlignment(Qt.AlignLeft | Qt.AlignTop)

        controller.annotations_changed.connect(self.update)
        controller.layers_changed.connect(self.update)
        controller.view_changed.connect(self.refresh)
        controller.tool_changed.connect(self._update_cursor)
        self.refresh()

    @property
    def session(self):
        return self.controller.session

    def refresh(self):
        """Re-render the page pixmap for the current page and zoom."""
        zoom = self.session.zoom
        pix = self.surface.render_page(self.session.page, zoom) if self.surface else None
        if pix is not None:
            pixmap = pixmap_from_fitz(pix)
            self.setPixmap(pixmap)
            self.setFixedSize(pixmap.size())
        self.update()

    def _to_document_coords(self, pos) -> Tuple[float, float]:
        """Convert widget coordinates to document coordinates."""
        return pos.x() / self.session.zoom, pos.y() / self.session.zoom

    def _update_cursor(self, tool: ToolMode):
        self.setCursor(_CURSORS.get(tool, Qt.CrossCursor))

    # Mouse event handlers

    def mousePressEvent(self, event: QMouseEvent):
        self.setFocus()
        if event.button() != Qt.LeftButton:
            return super().mousePressEvent(event)

        self._pressed = True
        x, y = self._to_document_coords(event.pos())
        self.controller.dispatch(PointerDown(x, y))

    def mouseMoveEvent(self, event: QMouseEvent):
        if not self._pressed:
            return super().mouseMoveEvent(event)
        x, y = self._to_document_coords(event.pos())
        self.controller.dispatch(PointerMove(x, y))

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() != Qt.LeftButton or not self._pressed:
            return super().mouseReleaseEvent(event)

        self._pressed = False
        x, y = self._to_document_coords(event.pos())
        self.controller.dispatch(PointerUp(x, y))

    def keyPressEvent(self, event: QKeyEvent):
        if not self.controller.handle_key_event(event):
            super().keyPressEvent(event)

    def paintEvent(self, event):
        super().paintEvent(event)
        painter = QPainter(self)
        try:
            self.session.render(QPainterRenderer(painter))
        finally:
            painter.end()

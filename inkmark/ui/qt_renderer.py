"""
QPainter backend for the render engine.
"""
import math

from PyQt5.QtCore import QPointF, QRectF, Qt
from PyQt5.QtGui import QBrush, QColor, QFont, QPainter, QPainterPath, QPen, QPolygonF

from inkmark.core.annotations.models import (
    ArrowAnnotation,
    Bounds,
    CircleAnnotation,
    HighlightAnnotation,
    NoteAnnotation,
    PenAnnotation,
    RectangleAnnotation,
    StampAnnotation,
    StrikethroughAnnotation,
    TextAnnotation,
    UnderlineAnnotation,
)
from inkmark.core.render.renderer import STAMP_STYLES, Renderer


def qcolor(value: str, alpha: float = 1.0) -> QColor:
    """Build a QColor from ``#RRGGBB`` and a 0-1 alpha."""
    color = QColor(value)
    color.setAlphaF(max(0.0, min(1.0, alpha)))
    return color


class QPainterRenderer(Renderer):
    """
    Draws annotations with a QPainter.

    Zoom is applied as a painter transform, so every draw method works in
    document coordinates.
    """

    PREVIEW_ALPHA = 0.6

    def __init__(self, painter: QPainter):
        self.painter = painter
        self.zoom = 1.0
        self._alpha = 1.0

    def begin_frame(self, page: int, zoom: float) -> None:
        self.zoom = zoom
        self.painter.save()
        self.painter.setRenderHint(QPainter.Antialiasing)
        self.painter.scale(zoom, zoom)

    def end_frame(self) -> None:
        self.painter.restore()

    def draw_highlight(self, annotation: HighlightAnnotation) -> None:
        p = self.painter
        p.setPen(Qt.NoPen)
        p.setBrush(QBrush(qcolor(annotation.color, annotation.opacity * self._alpha)))
        p.drawRect(QRectF(annotation.x, annotation.y, annotation.width, annotation.height))

    def draw_underline(self, annotation: UnderlineAnnotation) -> None:
        self._draw_horizontal(annotation)

    def draw_strikethrough(self, annotation: StrikethroughAnnotation) -> None:
        self._draw_horizontal(annotation)

    def draw_pen(self, annotation: PenAnnotation) -> None:
        if len(annotation.points) < 2:
            return
        p = self.painter
        pen = QPen(qcolor(annotation.color, self._alpha), annotation.stroke_width)
        pen.setCapStyle(Qt.RoundCap)
        pen.setJoinStyle(Qt.RoundJoin)
        p.setPen(pen)
        p.setBrush(Qt.NoBrush)

        path = QPainterPath()
        first = annotation.points[0]
        path.moveTo(first[0], first[1])
        for x, y in annotation.points[1:]:
            path.lineTo(x, y)
        p.drawPath(path)

    def draw_rectangle(self, annotation: RectangleAnnotation) -> None:
        self._apply_shape_style(annotation.color, annotation.stroke_width,
                                annotation.fill_color, annotation.fill_opacity)
        self.painter.drawRect(QRectF(annotation.x, annotation.y,
                                     annotation.width, annotation.height))

    def draw_circle(self, annotation: CircleAnnotation) -> None:
        self._apply_shape_style(annotation.color, annotation.stroke_width,
                                annotation.fill_color, annotation.fill_opacity)
        self.painter.drawEllipse(QPointF(annotation.center_x, annotation.center_y),
                                 annotation.radius, annotation.radius)

    def draw_arrow(self, annotation: ArrowAnnotation) -> None:
        p = self.painter
        color = qcolor(annotation.color, self._alpha)
        pen = QPen(color, annotation.stroke_width)
        pen.setCapStyle(Qt.RoundCap)
        p.setPen(pen)
        start = QPointF(annotation.start_x, annotation.start_y)
        end = QPointF(annotation.end_x, annotation.end_y)
        p.drawLine(start, end)

        if annotation.length == 0:
            return
        angle = math.atan2(annotation.end_y - annotation.start_y,
                           annotation.end_x - annotation.start_x)
        size = annotation.arrow_head_size
        head = QPolygonF([
            end,
            QPointF(end.x() - size * math.cos(angle - math.pi / 6),
                    end.y() - size * math.sin(angle - math.pi / 6)),
            QPointF(end.x() - size * math.cos(angle + math.pi / 6),
                    end.y() - size * math.sin(angle + math.pi / 6)),
        ])
        p.setBrush(QBrush(color))
        p.drawPolygon(head)

    def draw_text(self, annotation: TextAnnotation) -> None:
        p = self.painter
        font = QFont(annotation.font_family) if annotation.font_family else QFont()
        font.setPointSizeF(annotation.font_size)
        p.setFont(font)
        x0, y0, x1, y1 = annotation.bounds()
        rect = QRectF(x0, y0, x1 - x0, y1 - y0)
        if annotation.background_color:
            p.setPen(Qt.NoPen)
            p.setBrush(QBrush(qcolor(annotation.background_color, self._alpha)))
            p.drawRect(rect)
        p.setPen(QPen(qcolor(annotation.color, self._alpha)))
        p.drawText(rect, Qt.AlignLeft | Qt.AlignTop, annotation.text)

    def draw_stamp(self, annotation: StampAnnotation) -> None:
        label, color_hex = STAMP_STYLES[annotation.stamp_type]
        color = qcolor(color_hex, self._alpha)
        p = self.painter
        p.save()
        cx, cy = annotation.center
        p.translate(cx, cy)
        p.rotate(annotation.rotation)
        rect = QRectF(-annotation.width / 2, -annotation.height / 2,
                      annotation.width, annotation.height)

        p.setPen(QPen(color, 3))
        p.setBrush(QBrush(qcolor(color_hex, 0.1 * self._alpha)))
        p.drawRoundedRect(rect, 6, 6)

        font = QFont()
        font.setBold(True)
        font.setPointSizeF(max(6.0, min(14.0, annotation.width / max(len(label), 1) * 1.4)))
        p.setFont(font)
        p.drawText(rect, Qt.AlignCenter, label)
        p.restore()

    def draw_note(self, annotation: NoteAnnotation) -> None:
        p = self.painter
        x0, y0, x1, y1 = annotation.bounds()
        p.setPen(QPen(QColor("#795548"), 1))
        p.setBrush(QBrush(qcolor(annotation.color, self._alpha)))
        p.drawRoundedRect(QRectF(x0, y0, x1 - x0, y1 - y0), 3, 3)

        # Three text lines on the icon
        p.setPen(QPen(QColor("#795548"), 1))
        for i in range(1, 4):
            y = y0 + (y1 - y0) * i / 4
            p.drawLine(QPointF(x0 + 4, y), QPointF(x1 - 4, y))

    def draw_preview(self, annotation) -> None:
        self._alpha = self.PREVIEW_ALPHA
        try:
            annotation.accept(self)
        finally:
            self._alpha = 1.0

    def draw_selection(self, bounds: Bounds) -> None:
        x0, y0, x1, y1 = bounds
        # Keep the outline one screen pixel wide at every zoom
        pen = QPen(QColor("#4a9eff"), 1.0 / self.zoom if self.zoom else 1.0)
        pen.setStyle(Qt.DashLine)
        pad = 3.0 / self.zoom if self.zoom else 3.0
        self.painter.setPen(pen)
        self.painter.setBrush(Qt.NoBrush)
        self.painter.drawRect(QRectF(x0 - pad, y0 - pad, x1 - x0 + 2 * pad, y1 - y0 + 2 * pad))

    def _draw_horizontal(self, annotation: UnderlineAnnotation) -> None:
        pen = QPen(qcolor(annotation.color, self._alpha), annotation.thickness)
        pen.setCapStyle(Qt.FlatCap)
        self.painter.setPen(pen)
        self.painter.drawLine(QPointF(annotation.x, annotation.y),
                              QPointF(annotation.x + annotation.width, annotation.y))

    def _apply_shape_style(self, color: str, width: float, fill_color, fill_opacity) -> None:
        self.painter.setPen(QPen(qcolor(color, self._alpha), width))
        if fill_color:
            alpha = fill_opacity if fill_opacity is not None else 1.0
            self.painter.setBrush(QBrush(qcolor(fill_color, alpha * self._alpha)))
        else:
            self.painter.setBrush(Qt.NoBrush)

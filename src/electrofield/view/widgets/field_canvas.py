"""
Field Canvas
============
The rendering surface and the platform binding for pointer input.

Why is this file needed?
------------------------
1. Drawing: It paints a RenderFrame in layer order
   (heatmap -> glyphs -> carriers -> charges -> overlays).
2. Input: It converts QMouseEvent / QTouchEvent into PointerEvent records
   for the InteractionController (shift or a second finger = duplicate).
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import numpy as np
from PySide6.QtCore import QEvent, QPointF, QRectF, Qt
from PySide6.QtGui import QBrush, QColor, QEventPoint, QFont, QImage, QPainter, QPen, QPointingDevice
from PySide6.QtWidgets import QWidget

from electrofield.config import CANVAS_HEIGHT_PX, CANVAS_WIDTH_PX, CHARGE_DRAW_RADIUS_PX
from electrofield.controller.interaction import GestureKind, PointerEvent, PointerSource

if TYPE_CHECKING:
    from electrofield.controller.interaction import InteractionController
    from electrofield.controller.render_loop import RenderFrame
    from electrofield.model.state import SceneModel

logger = logging.getLogger(__name__)

POSITIVE_COLOR = QColor(220, 50, 47)
NEGATIVE_COLOR = QColor(38, 139, 210)
NEUTRAL_COLOR = QColor(150, 150, 150)
SELECTION_COLOR = QColor(255, 255, 255)
CARRIER_COLOR = QColor(255, 255, 120, 220)
GLYPH_LENGTH_PX = (6.0, 18.0)


class FieldCanvas(QWidget):
    def __init__(self, scene: SceneModel, interaction: InteractionController, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.scene = scene
        self.interaction = interaction
        self.transform = interaction.transform

        self.setFixedSize(CANVAS_WIDTH_PX, CANVAS_HEIGHT_PX)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMouseTracking(False)

        self._frame: Optional[RenderFrame] = None
        self._heat_image: Optional[QImage] = None
        self._primary_touch_id: Optional[int] = None

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    def set_frame(self, frame: RenderFrame) -> None:
        if frame.heat_recomputed or self._heat_image is None:
            self._heat_image = self._to_qimage(frame)
        self._frame = frame
        self.update()

    # ------------------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------------------

    def paintEvent(self, event, /) -> None:
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.fillRect(self.rect(), QColor(12, 12, 20))

        frame = self._frame
        if frame is not None:
            self._draw_heatmap(painter)
            if frame.settings.show_glyphs:
                self._draw_glyphs(painter, frame)
            if frame.settings.show_carriers:
                self._draw_carriers(painter, frame)
            self._draw_charges(painter, frame)
            self._draw_overlays(painter, frame)
        painter.end()

    @staticmethod
    def _to_qimage(frame: RenderFrame) -> Optional[QImage]:
        if frame.heatmap is None:
            return None
        rgba = np.ascontiguousarray(frame.heatmap.rgba)
        h, w = rgba.shape[:2]
        # copy() detaches the image from the numpy buffer
        return QImage(rgba.data, w, h, 4 * w, QImage.Format.Format_RGBA8888).copy()

    def _draw_heatmap(self, painter: QPainter) -> None:
        if self._heat_image is None:
            return
        painter.save()
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        painter.drawImage(QRectF(0, 0, self.width(), self.height()), self._heat_image)
        painter.restore()

    def _draw_glyphs(self, painter: QPainter, frame: RenderFrame) -> None:
        glyphs = frame.glyphs
        lo, hi = GLYPH_LENGTH_PX
        for (x, y), (dx, dy), s in zip(glyphs.positions, glyphs.directions, glyphs.strength):
            if dx == 0.0 and dy == 0.0:
                continue
            cx, cy = self.transform.to_canvas(x, y)
            length = lo + (hi - lo) * s
            tip = QPointF(cx + dx * length / 2, cy + dy * length / 2)
            tail = QPointF(cx - dx * length / 2, cy - dy * length / 2)
            painter.setPen(QPen(QColor(255, 255, 255, int(60 + 160 * s)), 1.2))
            painter.drawLine(tail, tip)
            # arrow head
            head = 4.0
            left = QPointF(tip.x() - head * (dx + 0.5 * dy), tip.y() - head * (dy - 0.5 * dx))
            right = QPointF(tip.x() - head * (dx - 0.5 * dy), tip.y() - head * (dy + 0.5 * dx))
            painter.drawLine(tip, left)
            painter.drawLine(tip, right)

    def _draw_carriers(self, painter: QPainter, frame: RenderFrame) -> None:
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(CARRIER_COLOR))
        for x, y in frame.carriers:
            cx, cy = self.transform.to_canvas(x, y)
            painter.drawEllipse(QPointF(cx, cy), 2.2, 2.2)

    def _draw_charges(self, painter: QPainter, frame: RenderFrame) -> None:
        r = CHARGE_DRAW_RADIUS_PX
        font = QFont()
        font.setBold(True)
        painter.setFont(font)
        for charge in frame.charges:
            cx, cy = self.transform.to_canvas(charge.x, charge.y)
            center = QPointF(cx, cy)
            if charge.q > 0:
                color, sign = POSITIVE_COLOR, "+"
            elif charge.q < 0:
                color, sign = NEGATIVE_COLOR, "−"
            else:
                color, sign = NEUTRAL_COLOR, "0"

            if charge.id == frame.selected_id:
                painter.setPen(QPen(SELECTION_COLOR, 2.0, Qt.PenStyle.DashLine))
                painter.setBrush(Qt.BrushStyle.NoBrush)
                painter.drawEllipse(center, r + 5, r + 5)

            painter.setPen(QPen(QColor(0, 0, 0), 1.5))
            painter.setBrush(QBrush(color))
            painter.drawEllipse(center, r, r)
            painter.setPen(QPen(QColor(255, 255, 255)))
            painter.drawText(QRectF(cx - r, cy - r, 2 * r, 2 * r), Qt.AlignmentFlag.AlignCenter, sign)

    def _draw_overlays(self, painter: QPainter, frame: RenderFrame) -> None:
        m = frame.measurement
        if m is None:
            return
        x0, y0 = self.transform.to_canvas(*m.start)
        x1, y1 = self.transform.to_canvas(*m.end)
        painter.setPen(QPen(QColor(255, 255, 255), 1.5, Qt.PenStyle.DashLine))
        painter.drawLine(QPointF(x0, y0), QPointF(x1, y1))
        painter.setBrush(QBrush(QColor(255, 255, 255)))
        painter.drawEllipse(QPointF(x1, y1), 3, 3)

        text = (
            f"d = {m.distance:.3f} m\n"
            f"V = {m.sample.potential:.4g} V\n"
            f"|E| = {m.sample.magnitude:.4g} V/m"
        )
        box = QRectF(x1 + 10, y1 + 10, 170, 54)
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(QColor(0, 0, 0, 170)))
        painter.drawRoundedRect(box, 4, 4)
        painter.setPen(QPen(QColor(255, 255, 255)))
        painter.drawText(box.adjusted(6, 2, -6, -2), Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter, text)

    # ------------------------------------------------------------------------------
    # Input -> pointer protocol
    # ------------------------------------------------------------------------------

    def _world(self, pos: QPointF) -> tuple[float, float]:
        # Qt reports logical pixels, i.e. device pixel ratio already divided out
        return self.transform.to_world(pos.x(), pos.y())

    @staticmethod
    def _source_of(event) -> PointerSource:
        device = event.pointingDevice()
        if device is not None:
            kind = device.pointerType()
            if kind == QPointingDevice.PointerType.Pen:
                return PointerSource.PEN
            if kind == QPointingDevice.PointerType.Finger:
                return PointerSource.TOUCH
        return PointerSource.MOUSE

    def mousePressEvent(self, event, /) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            return
        self.setFocus()
        duplicate = bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)
        self.interaction.pointer_down(
            PointerEvent(source=self._source_of(event), point=self._world(event.position()), duplicate=duplicate)
        )

    def mouseMoveEvent(self, event, /) -> None:
        if event.buttons() & Qt.MouseButton.LeftButton:
            self.interaction.pointer_move(self._world(event.position()))

    def mouseReleaseEvent(self, event, /) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self.interaction.pointer_up()

    def event(self, event, /) -> bool:
        kind = event.type()
        if kind == QEvent.Type.TouchBegin:
            self._on_touch_begin(event)
            return True
        if kind == QEvent.Type.TouchUpdate:
            self._on_touch_update(event)
            return True
        if kind in (QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            self._primary_touch_id = None
            self.interaction.pointer_up()
            return True
        return super().event(event)

    def _on_touch_begin(self, event) -> None:
        points = event.points()
        if not points:
            return
        primary = points[0]
        self._primary_touch_id = primary.id()
        self.interaction.pointer_down(
            PointerEvent(
                source=PointerSource.TOUCH,
                point=self._world(primary.position()),
                duplicate=len(points) > 1,
                pointer_id=primary.id(),
            )
        )

    def _on_touch_update(self, event) -> None:
        primary = None
        for point in event.points():
            if point.id() == self._primary_touch_id:
                primary = point
            elif point.state() == QEventPoint.State.Pressed:
                self._on_second_finger(point)
        if primary is not None and self.interaction.pointer_state.kind != GestureKind.NONE:
            self.interaction.pointer_move(self._world(primary.position()))

    def _on_second_finger(self, point) -> None:
        self.interaction.add_pointer(point.id())

    def keyPressEvent(self, event, /) -> None:
        if event.key() in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            self.scene.remove_selected()
            return
        super().keyPressEvent(event)

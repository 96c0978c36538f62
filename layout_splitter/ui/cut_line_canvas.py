from __future__ import annotations

import contextlib

from PySide6.QtCore import QLineF, QRectF, QSize, Qt, Signal
from PySide6.QtGui import QColor, QCursor, QPainter, QPen, QPixmap
from PySide6.QtWidgets import QSizePolicy, QWidget

from layout_splitter.app.cut_line_editor import DragSession
from layout_splitter.app.state.editor_state import EditorState
from layout_splitter.errors import CutLineBusyError
from layout_splitter.logger import get_logger
from layout_splitter.models import DisplayGeometry

_logger = get_logger("ui_canvas")


class CutLineCanvas(QWidget):
    """Draws the layout image at display size with its horizontal cut lines.

    Left press on background adds a line, on a line starts a drag (the mouse
    is grabbed until release). Right click or Delete removes the hovered line.
    """

    LINE_COLOR = QColor(230, 57, 70)
    ACTIVE_COLOR = QColor(29, 161, 242)
    LINE_WIDTH = 2

    lineCountChanged = Signal(int)

    def __init__(self, state: EditorState, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._state = state
        self._pixmap: QPixmap | None = None
        self._drag: DragSession | None = None
        self._hover_index: int | None = None
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)

        state.geometryChanged.connect(self._on_geometry_changed)
        state.cutLinesChanged.connect(self._on_lines_changed)

    @property
    def dragging(self) -> bool:
        return self._drag is not None

    def set_pixmap(self, pixmap: QPixmap | None) -> None:
        self._pixmap = pixmap if pixmap is not None and not pixmap.isNull() else None
        self.update()

    def sizeHint(self) -> QSize:  # type: ignore[override]
        g = self._state.geometry
        if g is None:
            return QSize(0, 0)
        return QSize(round(g.display_width), round(g.display_height))

    # ---- state listeners ----
    def _on_geometry_changed(self, geometry: DisplayGeometry) -> None:
        self.setFixedSize(round(geometry.display_width), round(geometry.display_height))
        self.update()

    def _on_lines_changed(self, lines: list[float]) -> None:
        # Indices shift on add, remove and re-derive.
        if not self._state.editor.is_dragging:
            self._hover_index = None
        self.lineCountChanged.emit(len(lines))
        self.update()

    # ---- painting ----
    def paintEvent(self, event) -> None:  # type: ignore[override]
        g = self._state.geometry
        painter = QPainter(self)
        try:
            painter.fillRect(self.rect(), QColor(245, 245, 245))
            if g is None:
                return
            target = QRectF(0.0, 0.0, g.display_width, g.display_height)
            if self._pixmap is not None:
                painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
                painter.drawPixmap(target, self._pixmap, QRectF(self._pixmap.rect()))
            active = self._state.editor.dragging_index
            for i, y in enumerate(self._state.cut_lines):
                color = self.ACTIVE_COLOR if i in (active, self._hover_index) else self.LINE_COLOR
                painter.setPen(QPen(color, self.LINE_WIDTH))
                painter.drawLine(QLineF(0.0, y, g.display_width, y))
        finally:
            painter.end()

    # ---- pointer ----
    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        y = float(event.position().y())
        editor = self._state.editor
        if event.button() == Qt.MouseButton.RightButton:
            index = editor.hit_test(y)
            if index is not None and not editor.is_dragging:
                editor.remove_line(index)
                self._hover_index = None
            event.accept()
            return
        if event.button() != Qt.MouseButton.LeftButton or self._state.geometry is None:
            super().mousePressEvent(event)
            return
        try:
            self._drag = editor.press(y)
        except CutLineBusyError as e:
            _logger.debug("press ignored: %s", e)
            event.accept()
            return
        if self._drag is not None:
            self.grabMouse()
            self.setCursor(QCursor(Qt.CursorShape.ClosedHandCursor))
        event.accept()

    def mouseMoveEvent(self, event) -> None:  # type: ignore[override]
        y = float(event.position().y())
        if self._drag is not None:
            self._drag.move(y)
            event.accept()
            return
        hover = self._state.editor.hit_test(y)
        if hover != self._hover_index:
            self._hover_index = hover
            if hover is None:
                self.unsetCursor()
            else:
                self.setCursor(QCursor(Qt.CursorShape.SizeVerCursor))
            self.update()
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:  # type: ignore[override]
        if self._drag is None:
            super().mouseReleaseEvent(event)
            return
        self._end_drag()
        event.accept()

    def _end_drag(self) -> None:
        drag, self._drag = self._drag, None
        if drag is not None:
            drag.release()
        with contextlib.suppress(RuntimeError):
            self.releaseMouse()
        self.unsetCursor()

    def leaveEvent(self, event) -> None:  # type: ignore[override]
        if self._hover_index is not None and self._drag is None:
            self._hover_index = None
            self.update()
        super().leaveEvent(event)

    def hideEvent(self, event) -> None:  # type: ignore[override]
        # A hidden widget never sees the release.
        if self._drag is not None:
            self._end_drag()
        super().hideEvent(event)

    def keyPressEvent(self, event) -> None:  # type: ignore[override]
        if event.key() in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace) and self._hover_index is not None:
            if not self._state.editor.is_dragging:
                self._state.editor.remove_line(self._hover_index)
                self._hover_index = None
            event.accept()
            return
        if event.key() == Qt.Key.Key_Escape and self._drag is not None:
            self._end_drag()
            event.accept()
            return
        super().keyPressEvent(event)

from __future__ import annotations

import pytest

pytest.importorskip("PySide6")

from PySide6.QtCore import QEvent, QPoint, QPointF, Qt
from PySide6.QtGui import QMouseEvent

from layout_splitter.app.state.editor_state import EditorState
from layout_splitter.ui.cut_line_canvas import CutLineCanvas
from tests.helpers.fakes import make_sections


def _canvas(qtbot) -> tuple[CutLineCanvas, EditorState]:  # noqa: ANN001
    state = EditorState()
    canvas = CutLineCanvas(state)
    qtbot.addWidget(canvas)
    state.load_suggestions(make_sections((0, 40), (40, 30), (70, 30)))
    state.set_container(832)
    state.set_image("layout.png", 1200, 2400)
    canvas.show()
    return canvas, state


def _move(canvas: CutLineCanvas, y: float) -> None:
    pos = QPointF(10.0, float(y))
    event = QMouseEvent(
        QEvent.Type.MouseMove,
        pos,
        canvas.mapToGlobal(pos),
        Qt.MouseButton.NoButton,
        Qt.MouseButton.LeftButton,
        Qt.KeyboardModifier.NoModifier,
    )
    canvas.mouseMoveEvent(event)


def test_canvas_takes_display_size(qtbot) -> None:  # noqa: ANN001
    canvas, _ = _canvas(qtbot)

    assert canvas.width() == 800
    assert canvas.height() == 1600


def test_click_on_background_adds_line(qtbot) -> None:  # noqa: ANN001
    canvas, state = _canvas(qtbot)

    qtbot.mouseClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(10, 300))

    assert state.cut_lines == pytest.approx([300.0, 640.0, 1120.0])
    assert not canvas.dragging


def test_press_move_release_drags_a_line(qtbot) -> None:  # noqa: ANN001
    canvas, state = _canvas(qtbot)

    qtbot.mousePress(canvas, Qt.MouseButton.LeftButton, pos=QPoint(10, 642))
    assert canvas.dragging
    assert state.editor.dragging_index == 0

    _move(canvas, 700)
    qtbot.mouseRelease(canvas, Qt.MouseButton.LeftButton, pos=QPoint(10, 700))

    assert not canvas.dragging
    assert not state.editor.is_dragging
    assert state.cut_lines == pytest.approx([700.0, 1120.0])


def test_right_click_removes_line(qtbot) -> None:  # noqa: ANN001
    canvas, state = _canvas(qtbot)

    qtbot.mouseClick(canvas, Qt.MouseButton.RightButton, pos=QPoint(10, 1121))

    assert state.cut_lines == pytest.approx([640.0])


def test_hiding_mid_drag_releases(qtbot) -> None:  # noqa: ANN001
    canvas, state = _canvas(qtbot)

    qtbot.mousePress(canvas, Qt.MouseButton.LeftButton, pos=QPoint(10, 640))
    canvas.hide()

    assert not canvas.dragging
    assert not state.editor.is_dragging


def test_line_count_signal(qtbot) -> None:  # noqa: ANN001
    canvas, _ = _canvas(qtbot)

    with qtbot.waitSignal(canvas.lineCountChanged, timeout=1000) as blocker:
        qtbot.mouseClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(10, 100))

    assert blocker.args == [3]


def test_line_changes_clear_hover(qtbot) -> None:  # noqa: ANN001
    canvas, state = _canvas(qtbot)
    _move(canvas, 1121)

    qtbot.mouseClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(10, 100))
    qtbot.keyClick(canvas, Qt.Key.Key_Delete)

    assert state.cut_lines == pytest.approx([100.0, 640.0, 1120.0])


def test_delete_after_rederive_does_not_raise(qtbot) -> None:  # noqa: ANN001
    canvas, state = _canvas(qtbot)
    _move(canvas, 1121)

    state.load_suggestions(make_sections((0, 50), (50, 50)))
    qtbot.keyClick(canvas, Qt.Key.Key_Delete)

    assert state.cut_lines == pytest.approx([800.0])

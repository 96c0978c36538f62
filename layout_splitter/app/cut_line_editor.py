"""Interactive cut-line editing: add, drag, remove.

States are Idle and Dragging(index). A drag is a scoped acquisition: the
pointer press opens a `DragSession`, the release closes it, and while it
is open nothing else may mutate the line array. A display height change
during a drag rescales the lines at once, so pointer moves stay in the
same pixel space; dedup is skipped until the release and otherwise runs
at commit points (geometry change, export).

No Qt here; the canvas forwards pointer events and the editor state
listens through `on_changed`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from layout_splitter.errors import CutLineBusyError
from layout_splitter.logger import get_logger
from layout_splitter.ops.cut_lines import dedupe_pixel_lines, rescale_cut_lines

_logger = get_logger("cut_line_editor")

HIT_TOLERANCE_PX = 6.0


class DragSession:
    """Exclusive ownership of one cut line between pointer press and release.

    Usable as a context manager; leaving the block releases the drag.
    """

    def __init__(self, editor: CutLineEditor, index: int) -> None:
        self._editor = editor
        self._index = int(index)
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def index(self) -> int:
        return self._index

    @property
    def position(self) -> float:
        return self._editor._lines[self._index]

    def move(self, y: float) -> float:
        """Move the dragged line, clamped to [0, display_height]. Returns the new offset."""
        if not self._active:
            raise CutLineBusyError("drag session already released")
        return self._editor._drag_move(self._index, y)

    def release(self) -> int:
        """End the drag. Returns the line's index after re-sorting (-1 if already released)."""
        if not self._active:
            return -1
        self._active = False
        return self._editor._drag_release(self)

    def __enter__(self) -> DragSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class CutLineEditor:
    def __init__(
        self,
        lines: Iterable[float] = (),
        display_height: float | None = None,
        *,
        hit_tolerance: float = HIT_TOLERANCE_PX,
        on_changed: Callable[[list[float]], None] | None = None,
    ) -> None:
        self._display_height = float(display_height) if display_height else None
        self._lines: list[float] = sorted(float(v) for v in lines)
        self._hit_tolerance = float(hit_tolerance)
        self._drag: DragSession | None = None
        self._dedupe_on_release = False
        self.on_changed = on_changed

    # ---- read-only views ----
    @property
    def lines(self) -> list[float]:
        return list(self._lines)

    @property
    def display_height(self) -> float | None:
        return self._display_height

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None

    @property
    def dragging_index(self) -> int | None:
        return self._drag.index if self._drag is not None else None

    def _notify(self) -> None:
        if self.on_changed is not None:
            self.on_changed(list(self._lines))

    def _ensure_idle(self, what: str) -> None:
        if self._drag is not None:
            raise CutLineBusyError(f"cannot {what} while line {self._drag.index} is being dragged")

    def _clamp(self, y: float) -> float:
        v = max(0.0, float(y))
        if self._display_height is not None:
            v = min(self._display_height, v)
        return v

    # ---- Idle operations ----
    def reset(self, lines: Iterable[float], display_height: float) -> None:
        """Replace all lines (fresh derivation) at a known display height."""
        self._ensure_idle("reset lines")
        self._display_height = float(display_height)
        self._lines = dedupe_pixel_lines(lines, self._display_height)
        self._notify()

    def hit_test(self, y: float) -> int | None:
        """Index of the line nearest to `y` within the hit tolerance."""
        best: int | None = None
        best_d = self._hit_tolerance
        for i, v in enumerate(self._lines):
            d = abs(v - float(y))
            if d <= best_d:
                best, best_d = i, d
        return best

    def add_line(self, y: float) -> int:
        self._ensure_idle("add a line")
        v = self._clamp(y)
        self._lines.append(v)
        self._lines.sort()
        _logger.debug("add line at %.1f (n=%d)", v, len(self._lines))
        self._notify()
        return self._lines.index(v)

    def remove_line(self, index: int) -> float:
        self._ensure_idle("remove a line")
        removed = self._lines.pop(int(index))
        _logger.debug("remove line %d at %.1f", index, removed)
        self._notify()
        return removed

    def press(self, y: float) -> DragSession | None:
        """Pointer press: start dragging the line under `y`, or add a line on background."""
        index = self.hit_test(y)
        if index is None:
            self.add_line(y)
            return None
        return self.begin_drag(index)

    def begin_drag(self, index: int) -> DragSession:
        if self._drag is not None:
            raise CutLineBusyError(f"line {self._drag.index} is already being dragged")
        if not 0 <= int(index) < len(self._lines):
            raise IndexError(f"no cut line at index {index}")
        self._drag = DragSession(self, index)
        _logger.debug("drag start: line %d at %.1f", index, self._lines[index])
        return self._drag

    # ---- Dragging (called through DragSession only) ----
    def _drag_move(self, index: int, y: float) -> float:
        v = self._clamp(y)
        self._lines[index] = v
        self._notify()
        return v

    def _drag_release(self, session: DragSession) -> int:
        if self._drag is not session:
            return -1
        value = self._lines[session.index]
        self._drag = None
        if self._dedupe_on_release:
            self._dedupe_on_release = False
            self._lines = dedupe_pixel_lines(self._lines, self._display_height)
        else:
            self._lines.sort()
        new_index = min(range(len(self._lines)), key=lambda i: abs(self._lines[i] - value), default=-1)
        _logger.debug("drag end: line at %.1f (index %d)", value, new_index)
        self._notify()
        return new_index

    # ---- commit points ----
    def set_display_height(self, new_height: float) -> bool:
        """Rescale lines proportionally to a new display height, then dedup.

        Returns False when no previous height was known (caller must derive lines).
        While a drag is active the lines (the dragged one included) are rescaled
        at once and the dedup waits for the release.
        """
        h = float(new_height)
        old = self._display_height
        if self._drag is not None:
            if old and h != old:
                self._lines = rescale_cut_lines(self._lines, old, h)
            self._display_height = h
            self._dedupe_on_release = True
            _logger.debug("display height %.1f during drag; dedup deferred until release", h)
            self._notify()
            return True
        if not old:
            self._display_height = h
            return False
        if h != old:
            self._lines = rescale_cut_lines(self._lines, old, h)
            _logger.debug("rescaled %d lines: %.1f -> %.1f", len(self._lines), old, h)
        self._display_height = h
        self._lines = dedupe_pixel_lines(self._lines, h)
        self._notify()
        return True

    def commit(self) -> list[float]:
        """Dedup for export; returns the committed lines."""
        self._ensure_idle("commit lines")
        self._lines = dedupe_pixel_lines(self._lines, self._display_height)
        self._notify()
        return list(self._lines)

from __future__ import annotations

from collections.abc import Iterable

from PySide6.QtCore import Property, QObject, Signal

from layout_splitter.app.cut_line_editor import CutLineEditor
from layout_splitter.errors import GeometryError
from layout_splitter.logger import get_logger
from layout_splitter.models import Bounds, DisplayGeometry, SectionSuggestion, SectionType
from layout_splitter.ops.crop_requests import percent_bounds
from layout_splitter.ops.cut_lines import derive_cut_lines, lines_to_sections
from layout_splitter.ops.geometry import (
    MIN_DISPLAY_SIZE,
    compute_display_geometry,
    height_budget,
    preset_container_width,
)

_logger = get_logger("editor_state")

NEW_SECTION_HEIGHT = 10.0


class EditorState(QObject):
    """Editor state for one open layout image.

    Design:
    - Sections are kept in percent-of-image bounds; fractional detector output is
      normalized on load.
    - Geometry is recomputed from (natural size, container, viewport, preset) and
      every change goes through the cut-line rescaler before anything else.
    - Cut lines are owned by `editor`; this object only re-emits its changes.
    """

    geometryChanged = Signal(object)
    cutLinesChanged = Signal(list)
    sectionsChanged = Signal(list)
    widthPresetChanged = Signal(str)
    errorMessageChanged = Signal(str)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        container_padding: float = 32,
        max_display_height: float = 800,
        viewport_height_ratio: float = 0.7,
        min_size: tuple[int, int] = MIN_DISPLAY_SIZE,
    ) -> None:
        super().__init__(parent)
        self._container_padding = float(container_padding)
        self._max_display_height = float(max_display_height)
        self._viewport_height_ratio = float(viewport_height_ratio)
        self._min_size = (int(min_size[0]), int(min_size[1]))

        self._image_path = ""
        self._natural: tuple[int, int] | None = None
        self._container_width = 0.0
        self._viewport_height: float | None = None
        self._width_preset = "fit"
        self._geometry: DisplayGeometry | None = None
        self._error = ""

        self._suggestions: list[SectionSuggestion] = []
        self._sections: list[SectionSuggestion] = []
        self.editor = CutLineEditor(on_changed=self._on_lines_changed)

    # ---- read-only properties ----
    def _get_display_width(self) -> float:
        return float(self._geometry.display_width) if self._geometry else 0.0

    displayWidth = Property(float, _get_display_width, notify=geometryChanged)  # type: ignore[arg-type]

    def _get_display_height(self) -> float:
        return float(self._geometry.display_height) if self._geometry else 0.0

    displayHeight = Property(float, _get_display_height, notify=geometryChanged)  # type: ignore[arg-type]

    def _get_width_preset(self) -> str:
        return str(self._width_preset)

    widthPreset = Property(str, _get_width_preset, notify=widthPresetChanged)  # type: ignore[arg-type]

    def _get_error_message(self) -> str:
        return str(self._error)

    errorMessage = Property(str, _get_error_message, notify=errorMessageChanged)  # type: ignore[arg-type]

    @property
    def geometry(self) -> DisplayGeometry | None:
        return self._geometry

    @property
    def image_path(self) -> str:
        return self._image_path

    @property
    def sections(self) -> list[SectionSuggestion]:
        return [s.copy() for s in self._sections]

    @property
    def cut_lines(self) -> list[float]:
        return self.editor.lines

    # ---- internal helpers ----
    def _on_lines_changed(self, lines: list[float]) -> None:
        self.cutLinesChanged.emit(lines)

    def _set_error(self, message: str) -> None:
        m = str(message)
        if m == self._error:
            return
        self._error = m
        self.errorMessageChanged.emit(m)

    def _emit_sections(self) -> None:
        for i, s in enumerate(self._sections):
            s.index = i
        self.sectionsChanged.emit(self.sections)

    def _rederive(self) -> None:
        if self._geometry is None or self.editor.is_dragging:
            return
        self.editor.reset(derive_cut_lines(self._sections, self._geometry.display_height), self._geometry.display_height)

    def _recompute_geometry(self) -> None:
        if self._natural is None:
            return
        available = max(0.0, self._container_width - self._container_padding)
        container = preset_container_width(self._width_preset, available)
        budget = None
        if self._viewport_height is not None:
            budget = height_budget(self._viewport_height, self._max_display_height, self._viewport_height_ratio)
        try:
            geometry = compute_display_geometry(
                self._natural[0], self._natural[1], container, budget, min_size=self._min_size
            )
        except GeometryError as e:
            _logger.warning("geometry failed: %s", e)
            self._set_error(str(e))
            return

        if geometry == self._geometry:
            return
        self._geometry = geometry
        # Rescale existing lines first; derive only on the first measurement.
        if not self.editor.set_display_height(geometry.display_height):
            self._rederive()
        self.geometryChanged.emit(geometry)

    # ---- image and layout inputs ----
    def set_image(self, path: str, natural_width: int, natural_height: int) -> None:
        """Record the decoded image size. Non-positive sizes block editing with an error."""
        self._image_path = str(path)
        try:
            w, h = int(natural_width), int(natural_height)
        except (TypeError, ValueError):
            w, h = 0, 0
        if w <= 0 or h <= 0:
            self._natural = None
            self._geometry = None
            self._set_error(f"Could not read image size for {path or 'image'}")
            return
        self._natural = (w, h)
        self._set_error("")
        self._recompute_geometry()

    def set_container(self, width: float, viewport_height: float | None = None) -> None:
        self._container_width = float(width)
        if viewport_height is not None:
            self._viewport_height = float(viewport_height)
        self._recompute_geometry()

    def set_width_preset(self, preset: str) -> None:
        p = str(preset or "fit").lower()
        if p == self._width_preset:
            return
        self._width_preset = p
        self.widthPresetChanged.emit(p)
        self._recompute_geometry()

    # ---- sections ----
    def load_suggestions(self, sections: Iterable[SectionSuggestion]) -> None:
        loaded: list[SectionSuggestion] = []
        for s in sections:
            c = s.copy()
            c.bounds = percent_bounds(c.bounds).clamped()
            loaded.append(c)
        self._suggestions = [s.copy() for s in loaded]
        self._sections = loaded
        self._emit_sections()
        self._rederive()

    def reset_to_suggestions(self) -> None:
        self._sections = [s.copy() for s in self._suggestions]
        self._emit_sections()
        self._rederive()

    def update_section_type(self, index: int, section_type: str | SectionType) -> None:
        self._sections[int(index)].type = SectionType.coerce(section_type)
        self._emit_sections()

    def update_section_bounds(self, index: int, bounds: Bounds) -> None:
        self._sections[int(index)].bounds = bounds.clamped()
        self._emit_sections()
        self._rederive()

    def remove_section(self, index: int) -> SectionSuggestion:
        removed = self._sections.pop(int(index))
        self._emit_sections()
        self._rederive()
        return removed

    def add_section(self, section_type: str | SectionType = SectionType.CONTENT) -> SectionSuggestion:
        """Manual add: a full-width band below the last section (whole image when empty)."""
        ids = {s.id for s in self._sections} | {s.id for s in self._suggestions}
        n = len(self._sections) + 1
        while f"section_{n}" in ids:
            n += 1
        if self._sections:
            top = min(100.0, max(s.bounds.bottom for s in self._sections))
            if top >= 100.0:
                top = 100.0 - NEW_SECTION_HEIGHT
            bounds = Bounds(0.0, top, 100.0, min(NEW_SECTION_HEIGHT, 100.0 - top))
        else:
            bounds = Bounds(0.0, 0.0, 100.0, 100.0)
        section = SectionSuggestion(id=f"section_{n}", index=len(self._sections), type=SectionType.coerce(section_type), bounds=bounds)
        self._sections.append(section)
        self._emit_sections()
        self._rederive()
        return section.copy()

    def committed_sections(self) -> list[SectionSuggestion]:
        """Dedup the cut lines and turn them into the sections to crop."""
        if self._geometry is None:
            return self.sections
        lines = self.editor.commit()
        return lines_to_sections(lines, self._geometry.display_height, self._sections)

    def percent_of(self, pixel_y: float) -> float:
        if self._geometry is None or self._geometry.display_height <= 0:
            return 0.0
        return float(pixel_y) / self._geometry.display_height * 100.0

"""Main editor window: canvas, section list, presets, confirm and gallery."""

from __future__ import annotations

import contextlib

from PySide6.QtCore import QByteArray, QBuffer, QIODevice, Qt
from PySide6.QtGui import QImage, QImageReader, QPixmap
from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QPushButton,
    QScrollArea,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from layout_splitter.app.session import LoadedSplit, PipelineResult, SplitSession
from layout_splitter.app.state.editor_state import EditorState
from layout_splitter.logger import get_logger
from layout_splitter.models import SectionSuggestion, SectionType
from layout_splitter.ops.geometry import WIDTH_PRESETS
from layout_splitter.settings_manager import SettingsManager
from layout_splitter.ui.cut_line_canvas import CutLineCanvas

_logger = get_logger("editor_window")


def _image_size_from_bytes(data: bytes) -> tuple[int, int]:
    buf = QBuffer()
    buf.setData(QByteArray(data))
    buf.open(QIODevice.OpenModeFlag.ReadOnly)
    try:
        size = QImageReader(buf).size()
    finally:
        buf.close()
    return size.width(), size.height()


class EditorWindow(QMainWindow):
    def __init__(
        self,
        session: SplitSession,
        settings: SettingsManager,
        state: EditorState | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Layout Splitter")
        self.session = session
        self._settings = settings
        self.state = state or EditorState(
            self,
            container_padding=float(settings.get("container_padding")),
            max_display_height=float(settings.get("max_display_height")),
            viewport_height_ratio=float(settings.get("viewport_height_ratio")),
            min_size=settings.min_display_size,
        )
        self._image_path = ""
        self._image_bytes: bytes | None = None
        self._image_url: str | None = None
        self._upload_id: str | None = None
        self._last_failed: str | None = None

        self._build_ui()
        self._wire()
        self.state.set_width_preset(str(settings.get("width_preset") or "fit"))

    # ---- layout ----
    def _build_ui(self) -> None:
        self.canvas = CutLineCanvas(self.state)
        self.scroll = QScrollArea()
        self.scroll.setWidget(self.canvas)
        self.scroll.setAlignment(Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop)

        side = QWidget()
        col = QVBoxLayout(side)

        self.preset_combo = QComboBox()
        self.preset_combo.addItems(list(WIDTH_PRESETS))
        col.addWidget(QLabel("Width preset"))
        col.addWidget(self.preset_combo)

        col.addWidget(QLabel("Sections"))
        self.section_list = QListWidget()
        col.addWidget(self.section_list, 2)

        self.type_combo = QComboBox()
        self.type_combo.addItems([t.value for t in SectionType])
        self.type_combo.setEnabled(False)
        col.addWidget(self.type_combo)

        row = QHBoxLayout()
        self.add_button = QPushButton("Add")
        self.remove_button = QPushButton("Remove")
        self.reset_button = QPushButton("Reset")
        for b in (self.add_button, self.remove_button, self.reset_button):
            row.addWidget(b)
        col.addLayout(row)

        self.confirm_button = QPushButton("Confirm sections")
        col.addWidget(self.confirm_button)

        col.addWidget(QLabel("Crops"))
        self.gallery_list = QListWidget()
        col.addWidget(self.gallery_list, 3)

        self.warning_label = QLabel("")
        self.warning_label.setWordWrap(True)
        self.warning_label.setStyleSheet("color: #b7791f;")
        col.addWidget(self.warning_label)

        err_row = QHBoxLayout()
        self.error_label = QLabel("")
        self.error_label.setWordWrap(True)
        self.error_label.setStyleSheet("color: #c53030;")
        self.retry_button = QPushButton("Retry")
        self.retry_button.setVisible(False)
        err_row.addWidget(self.error_label, 1)
        err_row.addWidget(self.retry_button)
        col.addLayout(err_row)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self.scroll)
        splitter.addWidget(side)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 1)
        self.setCentralWidget(splitter)
        self.statusBar().showMessage("Ready")

    def _wire(self) -> None:
        self.preset_combo.currentTextChanged.connect(self.state.set_width_preset)
        self.state.widthPresetChanged.connect(self._on_preset_changed)
        self.state.sectionsChanged.connect(self._on_sections_changed)
        self.state.errorMessageChanged.connect(self._on_state_error)
        self.canvas.lineCountChanged.connect(self._on_line_count)

        self.section_list.currentRowChanged.connect(self._on_section_selected)
        self.type_combo.currentTextChanged.connect(self._on_type_changed)
        self.add_button.clicked.connect(lambda: self.state.add_section())
        self.remove_button.clicked.connect(self._remove_selected)
        self.reset_button.clicked.connect(self.state.reset_to_suggestions)
        self.confirm_button.clicked.connect(self.confirm)
        self.retry_button.clicked.connect(self.retry)

        self.session.splitResolved.connect(self._on_split_resolved)
        self.session.splitLoaded.connect(self._on_split_loaded)
        self.session.imageFetched.connect(self._on_image_fetched)
        self.session.pipelineFinished.connect(self._on_pipeline_finished)
        self.session.errorOccurred.connect(self._on_session_error)
        self.session.busyChanged.connect(self._on_busy)

    # ---- inputs ----
    def open_image(self, path: str) -> bool:
        """Read the natural size and show a local layout image."""
        self._image_path = path
        self._image_bytes = None
        size = QImageReader(path).size()
        self.state.set_image(path, size.width(), size.height())
        if self.state.geometry is None and self.state.errorMessage:
            return False
        self.canvas.set_pixmap(QPixmap(path))
        self._update_container()
        return True

    def open_image_data(self, data: bytes, name: str = "") -> bool:
        self._image_path = ""
        self._image_bytes = bytes(data)
        w, h = _image_size_from_bytes(self._image_bytes)
        self.state.set_image(name or self._image_url or "", w, h)
        if w <= 0 or h <= 0:
            return False
        self.canvas.set_pixmap(QPixmap.fromImage(QImage.fromData(self._image_bytes)))
        self._update_container()
        return True

    def load_split(self, split_id: str) -> None:
        self.statusBar().showMessage(f"Loading split {split_id}...")
        self.session.load_split_async(split_id)

    def load_upload(self, upload_id: str) -> None:
        self._upload_id = upload_id
        self.statusBar().showMessage(f"Looking up split for upload {upload_id}...")
        self.session.resolve_split_async(upload_id)

    def confirm(self) -> None:
        """Commit the cut lines and start crop generation."""
        if self.canvas.dragging or self.state.editor.is_dragging:
            return
        sections = self.state.committed_sections()
        if not sections:
            self._show_error("Nothing to crop: add at least one section")
            return
        self._clear_error()
        self.warning_label.setText("")
        self.statusBar().showMessage(f"Generating {len(sections)} crops...")
        if self.session.generate_async(sections) is not None:
            self.confirm_button.setEnabled(False)

    def retry(self) -> None:
        failed, self._last_failed = self._last_failed, None
        self._clear_error()
        if failed == "geometry":
            if self._image_path:
                self.open_image(self._image_path)
            elif self._image_bytes is not None:
                self.open_image_data(self._image_bytes)
            elif self._image_url:
                self.session.fetch_image_async(self._image_url)
        elif failed == "resolve" and self._upload_id:
            self.load_upload(self._upload_id)
        elif failed in ("load", "image") and self.session.split_id:
            self.load_split(self.session.split_id)
        elif failed == "generate":
            self.confirm()

    # ---- state listeners ----
    def _on_preset_changed(self, preset: str) -> None:
        if self.preset_combo.currentText() != preset:
            self.preset_combo.setCurrentText(preset)

    def _on_sections_changed(self, sections: list[SectionSuggestion]) -> None:
        row = self.section_list.currentRow()
        self.section_list.blockSignals(True)
        try:
            self.section_list.clear()
            for s in sections:
                b = s.bounds
                self.section_list.addItem(f"{s.index + 1}. {s.type.value}  y={b.y:.1f}% h={b.height:.1f}%")
        finally:
            self.section_list.blockSignals(False)
        if sections:
            self.section_list.setCurrentRow(min(max(row, 0), len(sections) - 1))
        self._on_section_selected(self.section_list.currentRow())

    def _on_section_selected(self, row: int) -> None:
        sections = self.state.sections
        valid = 0 <= row < len(sections)
        self.type_combo.setEnabled(valid)
        self.remove_button.setEnabled(valid)
        if valid:
            self.type_combo.blockSignals(True)
            self.type_combo.setCurrentText(sections[row].type.value)
            self.type_combo.blockSignals(False)

    def _on_type_changed(self, value: str) -> None:
        row = self.section_list.currentRow()
        if 0 <= row < len(self.state.sections):
            self.state.update_section_type(row, value)

    def _remove_selected(self) -> None:
        row = self.section_list.currentRow()
        if 0 <= row < len(self.state.sections):
            self.state.remove_section(row)

    def _on_line_count(self, count: int) -> None:
        self.statusBar().showMessage(f"{count} cut lines")

    def _on_state_error(self, message: str) -> None:
        if message:
            self._show_error(message, failed="geometry")
        elif self._last_failed == "geometry":
            self._clear_error()

    # ---- session listeners ----
    def _on_split_resolved(self, split_id: str) -> None:
        self.load_split(split_id)

    def _on_split_loaded(self, loaded: LoadedSplit) -> None:
        summary = loaded.summary
        self.setWindowTitle(f"Layout Splitter - {summary.design_split_id}")
        self.state.load_suggestions(summary.sections)
        self._image_url = loaded.image_url
        self.statusBar().showMessage(f"Loaded {len(summary.sections)} suggested sections")
        if not self._image_path and self._image_bytes is None and loaded.image_url:
            self.session.fetch_image_async(loaded.image_url)

    def _on_image_fetched(self, data: bytes) -> None:
        if not self.open_image_data(data):
            _logger.warning("layout image could not be decoded (%d bytes)", len(data or b""))

    def _on_pipeline_finished(self, result: PipelineResult) -> None:
        self.confirm_button.setEnabled(True)
        self.gallery_list.clear()
        for item in result.gallery:
            label = f"{item.position + 1}. {item.section_id or '?'}"
            if item.thin:
                label += "  (thin)"
            row = QListWidgetItem(label)
            row.setToolTip(item.url)
            row.setData(Qt.ItemDataRole.UserRole, item.url)
            self.gallery_list.addItem(row)
        report = result.report
        self.warning_label.setText(report.warning.message if report.warning else "")
        if report.error:
            self._show_error(report.error, failed="generate")
        self.statusBar().showMessage(f"{len(result.gallery)} crops ready")

    def _on_session_error(self, action: str, message: str) -> None:
        if action == "generate":
            self.confirm_button.setEnabled(True)
        self._show_error(message, failed=action)

    def _on_busy(self, busy: bool) -> None:
        if busy:
            self.statusBar().showMessage("Working...")

    # ---- error line ----
    def _show_error(self, message: str, failed: str | None = None) -> None:
        self.error_label.setText(message)
        self._last_failed = failed
        self.retry_button.setVisible(failed is not None)

    def _clear_error(self) -> None:
        self.error_label.setText("")
        self.retry_button.setVisible(False)

    # ---- Qt events ----
    def _update_container(self) -> None:
        self.state.set_container(self.scroll.viewport().width(), self.height())

    def resizeEvent(self, event) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self._update_container()

    def closeEvent(self, event) -> None:  # type: ignore[override]
        with contextlib.suppress(Exception):
            self.session.close()
        event.accept()

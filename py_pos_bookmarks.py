# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Position Bookmarks - Navigation panel for image stacks
Records, edits and revisits X,Y,Z,T positions of a viewer while keeping
the zoom level.
Features:
- Go to typed coordinates (Enter in any field)
- Add the current view center, Next/Back through the list
- Editable position table with notes, auto-growing blank row
- Paste positions from the clipboard
- Sort by position or note (direction toggles)
- Export/Load as TXT or CSV
- PNG snapshot of every position (background, abortable)
"""
import sys
from pathlib import Path

from PyQt6 import QtWidgets, QtCore, QtGui
from PyQt6.QtCore import Qt, pyqtSignal

from pos_codec import FileFormat, format_for_path
from pos_config import PositionConfig, Settings
from pos_navigator import Viewport, ViewState
from pos_session import PositionSession
from pos_store import SortKey
from pos_viewer import ImageStack, capture_snapshot, to_uint8
from pos_workers import BulkOperationQueue, FileReadWorker, FileWriteWorker, SnapshotWorker
from utils_error_handler import (DuplicateCoordinateError, ErrorHandler, PositionError, handle_errors,
                                 show_error_dialog)
from utils_logger import get_logger


class ZoomableImageView(QtWidgets.QGraphicsView):
    """Graphics View with zoom and pan functionality"""

    def __init__(self, scene):
        super().__init__(scene)
        self.setTransformationAnchor(QtWidgets.QGraphicsView.ViewportAnchor.AnchorUnderMouse)
        self.setResizeAnchor(QtWidgets.QGraphicsView.ViewportAnchor.AnchorUnderMouse)
        self.setBackgroundBrush(QtGui.QBrush(QtGui.QColor(30, 30, 30)))
        self.setFrameShape(QtWidgets.QFrame.Shape.Box)
        self.setDragMode(QtWidgets.QGraphicsView.DragMode.ScrollHandDrag)

    def wheelEvent(self, event):
        """Zoom with mouse wheel"""
        factor = 1.15 if event.angleDelta().y() > 0 else 1 / 1.15
        self.scale(factor, factor)

    def magnification(self):
        return self.transform().m11()


class StackViewport(Viewport):
    """Viewport implementation over an ImageStack shown in a ZoomableImageView"""

    def __init__(self, stack, view, scene):
        self.stack = stack
        self.view = view
        self.scene = scene
        self.z = 1
        self.t = 1
        self.pixmap_item = None
        self.crosshair = []
        self.show_plane(1, 1)

    def title(self):
        return self.stack.title

    def show_plane(self, z, t):
        self.z, self.t = z, t
        plane = to_uint8(self.stack.plane(z, t))
        if plane.ndim == 2:
            plane = plane.copy()
            image = QtGui.QImage(plane.data, plane.shape[1], plane.shape[0], plane.strides[0],
                                 QtGui.QImage.Format.Format_Grayscale8)
        else:
            if plane.shape[2] == 4:
                plane = plane[..., :3]
            plane = plane.copy()
            image = QtGui.QImage(plane.data, plane.shape[1], plane.shape[0], plane.strides[0],
                                 QtGui.QImage.Format.Format_RGB888)
        pixmap = QtGui.QPixmap.fromImage(image.copy())
        if self.pixmap_item is None:
            self.pixmap_item = self.scene.addPixmap(pixmap)
            self.scene.setSceneRect(self.pixmap_item.boundingRect())
        else:
            self.pixmap_item.setPixmap(pixmap)

    def get_bounds(self):
        return self.stack.bounds()

    def get_view_state(self):
        rect = self.view.mapToScene(self.view.viewport().rect()).boundingRect()
        x = int(max(0, rect.x()))
        y = int(max(0, rect.y()))
        w = int(min(rect.width(), self.stack.width))
        h = int(min(rect.height(), self.stack.height))
        return ViewState(x + w // 2, y + h // 2, self.z, self.t,
                         self.view.magnification(), (x, y, w, h))

    def set_view(self, z, t, origin, magnification):
        _, _, w, h = self.get_view_state().window
        if (z, t) != (self.z, self.t):
            self.show_plane(z, t)
        self.view.setTransform(QtGui.QTransform.fromScale(magnification, magnification))
        self.view.centerOn(origin[0] + w / 2, origin[1] + h / 2)

    def update_crosshair(self):
        """Draw a crosshair at the view center"""
        for item in self.crosshair:
            self.scene.removeItem(item)
        state = self.get_view_state()
        size = 10 / max(self.view.magnification(), 0.01)
        pen = QtGui.QPen(QtGui.QColor('#FFFF00'), 0)
        self.crosshair = [
            self.scene.addLine(state.center_x - size, state.center_y, state.center_x + size, state.center_y, pen),
            self.scene.addLine(state.center_x, state.center_y - size, state.center_x, state.center_y + size, pen),
        ]


class ViewerWindow(QtWidgets.QMainWindow):
    """Image viewer whose active stack the panel navigates"""
    viewport_changed = pyqtSignal(object)

    def __init__(self, logger):
        super().__init__()
        self.logger = logger
        self.setWindowTitle("Position Bookmarks - Viewer")
        self.setGeometry(100, 100, 1000, 800)
        self.viewport = None

        self.scene = QtWidgets.QGraphicsScene()
        self.view = ZoomableImageView(self.scene)
        self.setCentralWidget(self.view)

        open_action = QtGui.QAction("Open Image...", self)
        open_action.setShortcut(QtGui.QKeySequence("Ctrl+O"))
        open_action.triggered.connect(self.open_file)
        self.menuBar().addMenu("File").addAction(open_action)

    def open_file(self):
        """Open an image"""
        filename, _ = QtWidgets.QFileDialog.getOpenFileName(
            self, "Open Image", str(Path.home()),
            "Images (*.tif *.tiff *.png *.jpg *.jpeg *.bmp *.gif *.npy)")
        if filename:
            self.load_image(filename)

    @handle_errors(show_dialog=True, default=False)
    def load_image(self, filepath):
        """Load an image stack and make it the active viewport"""
        stack = ImageStack.from_file(filepath)
        self.scene.clear()
        self.viewport = StackViewport(stack, self.view, self.scene)
        self.view.fitInView(self.viewport.pixmap_item, Qt.AspectRatioMode.KeepAspectRatio)
        self.setWindowTitle(f"Position Bookmarks - {stack.title}")
        self.logger.log_file_operation("read", filepath)
        self.viewport_changed.emit(self.viewport)
        return True


class TableGrid:
    """Grid adapter over the QTableWidget of the panel"""

    COLUMNS = ["#", "X,Y,Z,T", "Note"]

    def __init__(self, table):
        self.table = table

    def row_count(self):
        return self.table.rowCount()

    def set_row_count(self, count):
        self.table.setRowCount(count)

    def write_row(self, row, number, coords, note):
        number_item = QtWidgets.QTableWidgetItem(str(number))
        number_item.setFlags(number_item.flags() & ~Qt.ItemFlag.ItemIsEditable)
        self.table.setItem(row, 0, number_item)
        self.table.setItem(row, 1, QtWidgets.QTableWidgetItem(coords))
        self.table.setItem(row, 2, QtWidgets.QTableWidgetItem(note))

    def insert_row(self, row):
        self.table.insertRow(row)

    def remove_row(self, row):
        self.table.removeRow(row)

    def cell_text(self, row, column):
        item = self.table.item(row, column)
        return item.text() if item is not None else ''


class PositionManagerWindow(QtWidgets.QMainWindow):
    """Persistent navigation panel"""

    def __init__(self, viewer, settings, logger):
        super().__init__()
        self.viewer = viewer
        self.settings = settings
        self.logger = logger
        self.session_id = self.logger.create_session_log()
        self.queue = BulkOperationQueue(self)
        self.snapshot_worker = None

        self.setWindowTitle("Position Bookmarks")
        self.setWindowFlag(Qt.WindowType.WindowStaysOnTopHint, True)

        self.setup_ui()
        self.grid = TableGrid(self.table)
        self.session = PositionSession(viewer.viewport, self.grid, logger, settings.min_rows)
        self.setup_handlers()
        self.setup_shortcuts()

        self.viewer.viewport_changed.connect(self.on_active_viewport_changed)
        self.queue.busy_changed.connect(self.on_busy_changed)

        self.timer = QtCore.QTimer(self)
        self.timer.timeout.connect(self.refresh)
        self.timer.start(settings.refresh_interval_ms)
        self.refresh()

    def setup_ui(self):
        """Create user interface"""
        main_widget = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout()
        main_widget.setLayout(layout)

        fixed_font = QtGui.QFont("Monospace", 10)
        fixed_font.setStyleHint(QtGui.QFont.StyleHint.Monospace)

        # Input fields
        input_layout = QtWidgets.QGridLayout()
        self.fields = []
        for column, name in enumerate(("X", "Y", "Z", "T"), start=1):
            input_layout.addWidget(QtWidgets.QLabel(name), 0, column)
            field = QtWidgets.QLineEdit()
            field.setFont(fixed_font)
            field.setMaximumWidth(70)
            input_layout.addWidget(field, 1, column)
            self.fields.append(field)
        input_layout.addWidget(QtWidgets.QLabel("Go to:"), 1, 0)

        self.note_field = QtWidgets.QLineEdit()
        self.note_field.setPlaceholderText("Note for 'Add here'")
        input_layout.addWidget(self.note_field, 2, 1, 1, 4)

        self.go_btn = QtWidgets.QPushButton("Go")
        input_layout.addWidget(self.go_btn, 1, 5)
        self.add_btn = QtWidgets.QPushButton("Add here")
        input_layout.addWidget(self.add_btn, 1, 6)
        layout.addLayout(input_layout)

        # Navigation and list operations
        nav_layout = QtWidgets.QHBoxLayout()
        self.back_btn = QtWidgets.QPushButton("<Back")
        self.next_btn = QtWidgets.QPushButton("Next>")
        self.remove_btn = QtWidgets.QPushButton("Remove")
        self.clear_btn = QtWidgets.QPushButton("Clear All")
        for btn in (self.back_btn, self.next_btn, self.remove_btn, self.clear_btn):
            nav_layout.addWidget(btn)
        layout.addLayout(nav_layout)

        file_layout = QtWidgets.QHBoxLayout()
        self.sort_pos_btn = QtWidgets.QPushButton("Sort Position")
        self.sort_note_btn = QtWidgets.QPushButton("Sort Note")
        self.paste_btn = QtWidgets.QPushButton("Paste")
        self.export_btn = QtWidgets.QPushButton("Export")
        self.load_btn = QtWidgets.QPushButton("Load")
        self.snapshot_btn = QtWidgets.QPushButton("Snapshots")
        self.abort_btn = QtWidgets.QPushButton("Abort")
        self.abort_btn.setEnabled(False)
        for btn in (self.sort_pos_btn, self.sort_note_btn, self.paste_btn, self.export_btn,
                    self.load_btn, self.snapshot_btn, self.abort_btn):
            file_layout.addWidget(btn)
        layout.addLayout(file_layout)

        # Position table
        list_group = QtWidgets.QGroupBox("Position List")
        list_layout = QtWidgets.QVBoxLayout()
        list_group.setLayout(list_layout)
        self.table = QtWidgets.QTableWidget(0, len(TableGrid.COLUMNS))
        self.table.setHorizontalHeaderLabels(TableGrid.COLUMNS)
        self.table.verticalHeader().setVisible(False)
        self.table.setSelectionMode(QtWidgets.QAbstractItemView.SelectionMode.SingleSelection)
        self.table.setSelectionBehavior(QtWidgets.QAbstractItemView.SelectionBehavior.SelectRows)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.setFont(fixed_font)
        list_layout.addWidget(self.table)
        layout.addWidget(list_group, stretch=1)

        self.progress_bar = QtWidgets.QProgressBar()
        self.progress_bar.hide()
        layout.addWidget(self.progress_bar)

        self.current_label = QtWidgets.QLabel("Current: --")
        self.status_label = QtWidgets.QLabel("No image open")
        self.status_label.setWordWrap(True)
        layout.addWidget(self.current_label)
        layout.addWidget(self.status_label)

        self.setCentralWidget(main_widget)
        self.resize(520, 480)

    def setup_handlers(self):
        self.go_btn.clicked.connect(self.go_to_fields)
        self.add_btn.clicked.connect(self.add_current)
        self.next_btn.clicked.connect(lambda: self.step(1))
        self.back_btn.clicked.connect(lambda: self.step(-1))
        self.remove_btn.clicked.connect(self.remove_selected)
        self.clear_btn.clicked.connect(self.clear_all)
        self.sort_pos_btn.clicked.connect(lambda: self.sort(SortKey.POSITION))
        self.sort_note_btn.clicked.connect(lambda: self.sort(SortKey.NOTE))
        self.paste_btn.clicked.connect(self.paste_clipboard)
        self.export_btn.clicked.connect(self.export_positions)
        self.load_btn.clicked.connect(self.load_positions)
        self.snapshot_btn.clicked.connect(self.capture_snapshots)
        self.abort_btn.clicked.connect(self.queue.abort_current)

        for field in self.fields:
            field.returnPressed.connect(self.go_to_fields)

        self.table.itemChanged.connect(self.on_item_changed)
        self.table.itemSelectionChanged.connect(self.on_selection_changed)
        self.table.cellDoubleClicked.connect(self.on_cell_double_clicked)

    def setup_shortcuts(self):
        """Set up keyboard shortcuts"""
        paste_shortcut = QtGui.QShortcut(QtGui.QKeySequence("Ctrl+Shift+V"), self)
        paste_shortcut.activated.connect(self.paste_clipboard)

        next_shortcut = QtGui.QShortcut(QtGui.QKeySequence("Ctrl+Right"), self)
        next_shortcut.activated.connect(lambda: self.step(1))

        back_shortcut = QtGui.QShortcut(QtGui.QKeySequence("Ctrl+Left"), self)
        back_shortcut.activated.connect(lambda: self.step(-1))

        save_shortcut = QtGui.QShortcut(QtGui.QKeySequence("Ctrl+S"), self)
        save_shortcut.activated.connect(self.export_positions)

    # -- status ---------------------------------------------------------------

    def show_status(self, message=None):
        self.status_label.setText(message if message is not None else self.session.status)

    def refresh(self):
        """Timer tick: read-only update of the current position"""
        current, status = self.session.refresh()
        self.current_label.setText(current)
        self.go_btn.setEnabled(self.session.viewport is not None)
        if self.session.viewport is not None:
            self.viewer.viewport.update_crosshair()
        self.setWindowTitle(f"Position Bookmarks - {status}")

    def on_active_viewport_changed(self, viewport):
        self.session.on_active_viewport_changed(viewport)
        self.refresh()
        self.show_status(f"Active image: {viewport.title()}")

    def on_busy_changed(self, busy):
        for btn in (self.export_btn, self.load_btn, self.snapshot_btn, self.paste_btn,
                    self.sort_pos_btn, self.sort_note_btn, self.clear_btn):
            btn.setEnabled(not busy)
        self.abort_btn.setEnabled(busy and self.snapshot_worker is not None)
        self.progress_bar.setVisible(busy)

    def clear_table_selection(self):
        """Drop selection and current cell without touching the cursor"""
        self.table.blockSignals(True)
        self.table.clearSelection()
        self.table.setCurrentCell(-1, -1)
        self.table.blockSignals(False)

    def select_cursor_row(self):
        if self.session.cursor >= 0:
            self.table.blockSignals(True)
            self.table.selectRow(self.session.cursor)
            self.table.blockSignals(False)

    # -- navigation -----------------------------------------------------------

    def go_to_fields(self):
        self.logger.log_user_action("go")
        with ErrorHandler(self.logger, "go to position") as handler:
            self.session.go_to_fields(*(f.text() for f in self.fields))
        self.show_status(str(handler.error) if handler.error else None)

    def on_cell_double_clicked(self, row, column):
        # The number column is read-only, double-click there jumps
        if column == 0:
            self.go_to_row(row)

    def go_to_row(self, row):
        self.session.go_to_row(row)
        self.show_status()

    def step(self, direction):
        self.logger.log_user_action("next" if direction > 0 else "back")
        if direction > 0:
            self.session.next()
        else:
            self.session.back()
        if self.session.cursor >= 0:
            self.select_cursor_row()
            self.fill_fields(self.session.select_row(self.session.cursor))
        self.show_status()

    # -- editing --------------------------------------------------------------

    def fill_fields(self, values):
        for field, text in zip(self.fields, (values.x, values.y, values.z, values.t)):
            field.setText(text)

    def add_current(self):
        self.logger.log_user_action("add_here")
        note = self.note_field.text()
        with ErrorHandler(self.logger, "add position") as handler:
            try:
                self.session.add_current(note)
            except DuplicateCoordinateError as e:
                reply = QtWidgets.QMessageBox.question(
                    self, "Duplicate Position",
                    f"{e}\nAdd it anyway?",
                    QtWidgets.QMessageBox.StandardButton.Yes | QtWidgets.QMessageBox.StandardButton.No
                )
                if reply == QtWidgets.QMessageBox.StandardButton.Yes:
                    self.session.add_current(note, allow_duplicate=True)
                else:
                    self.session.status = "Add cancelled"
        self.note_field.clear()
        self.show_status(str(handler.error) if handler.error else None)

    def on_item_changed(self, item):
        if item.column() == 0:
            return
        row = item.row()
        self.session.apply_edit(row, self.grid.cell_text(row, 1), self.grid.cell_text(row, 2))
        self.show_status()

    def on_selection_changed(self):
        if not self.table.selectedItems():
            return
        row = self.table.currentRow()
        if row >= 0:
            self.fill_fields(self.session.select_row(row))

    def remove_selected(self):
        with ErrorHandler(self.logger, "remove position") as handler:
            self.session.remove_row(self.table.currentRow())
        self.show_status(str(handler.error) if handler.error else None)

    def clear_all(self):
        reply = QtWidgets.QMessageBox.question(
            self, "Confirmation",
            "Really remove all positions?",
            QtWidgets.QMessageBox.StandardButton.Yes | QtWidgets.QMessageBox.StandardButton.No
        )
        if reply == QtWidgets.QMessageBox.StandardButton.Yes:
            self.session.clear_all()
            self.clear_table_selection()
            self.show_status()

    def sort(self, key):
        self.logger.log_user_action("sort", key.value)
        self.session.sort(key)
        self.clear_table_selection()
        self.show_status()

    def paste_clipboard(self):
        self.logger.log_user_action("paste")
        text = QtWidgets.QApplication.clipboard().text()
        self.session.paste_text(text)
        self.show_status()

    # -- files ----------------------------------------------------------------

    def export_positions(self):
        with ErrorHandler(self.logger, "export", show_dialog=True, parent=self) as handler:
            default = Path(self.settings.last_directory) / PositionConfig.DEFAULT_FILENAME
            filename, _ = QtWidgets.QFileDialog.getSaveFileName(
                self, "Export Positions", str(default),
                "Text Files (*.txt);;CSV Files (*.csv)")
            if not filename:
                return
            text = self.session.export_text(format_for_path(filename))
            self.remember_directory(filename)
            worker = FileWriteWorker(filename, text, self.logger)
            worker.finished.connect(self.on_export_finished)
            worker.error.connect(self.on_file_error)
            self.queue.submit(worker)
        if handler.error:
            self.show_status(str(handler.error))

    def on_export_finished(self, path, lines):
        count = lines - 1 if format_for_path(path) == FileFormat.CSV else lines
        QtWidgets.QMessageBox.information(
            self, "Export Successful",
            f"Exported {count} positions to {Path(path).name}")
        self.show_status(f"Exported {count} positions")

    def load_positions(self):
        default = Path(self.settings.last_directory) / PositionConfig.DEFAULT_FILENAME
        filename, _ = QtWidgets.QFileDialog.getOpenFileName(
            self, "Load Positions", str(default),
            "Position Files (*.txt *.csv);;All Files (*)")
        if not filename:
            return
        self.remember_directory(filename)
        worker = FileReadWorker(filename, self.logger)
        worker.finished.connect(self.on_load_finished)
        worker.error.connect(self.on_file_error)
        self.queue.submit(worker)

    def on_load_finished(self, text, path):
        result = self.session.load_text(text, format_for_path(path), Path(path).name)
        self.clear_table_selection()
        if result.errors:
            QtWidgets.QMessageBox.warning(
                self, "Load Warning",
                "\n".join(result.errors[:10]) + ("\n..." if len(result.errors) > 10 else ""))
        QtWidgets.QMessageBox.information(self, "Load Successful", result.summary(Path(path).name))
        self.show_status()

    def on_file_error(self, message):
        self.logger.error(message)
        QtWidgets.QMessageBox.critical(self, "File Error", message)
        self.show_status(message)

    def remember_directory(self, filename):
        self.settings.set('last_directory', str(Path(filename).parent))
        try:
            self.settings.save()
        except OSError as e:
            self.logger.warning(f"Could not save settings: {e}")

    # -- snapshots ------------------------------------------------------------

    def capture_snapshots(self):
        viewport = self.viewer.viewport
        if viewport is None:
            self.show_status("No image open")
            return
        records = self.session.store.records()
        if not records:
            self.show_status("No positions to capture")
            return
        directory = QtWidgets.QFileDialog.getExistingDirectory(
            self, "Snapshot Folder", self.settings.last_directory)
        if not directory:
            return

        stack = viewport.stack
        size = self.settings.snapshot_size
        worker = SnapshotWorker(records, lambda record, path: capture_snapshot(stack, record, size, path),
                                directory, self.logger)
        worker.progress.connect(self.on_snapshot_progress)
        worker.finished.connect(self.on_snapshots_finished)
        worker.error.connect(self.on_file_error)
        self.snapshot_worker = worker
        self.progress_bar.setValue(0)
        self.queue.submit(worker)

    def on_snapshot_progress(self, done, total):
        self.progress_bar.setValue(int(done * 100 / max(total, 1)))
        self.show_status(f"Snapshot {done}/{total}")

    def on_snapshots_finished(self, saved, failures, aborted):
        self.snapshot_worker = None
        self.abort_btn.setEnabled(False)
        message = f"Saved {saved} snapshots"
        if failures:
            message += f", {len(failures)} failed"
        if aborted:
            message += " (aborted)"
        self.show_status(message)

    def closeEvent(self, event):
        """Stop the timer and any running batch on close"""
        self.timer.stop()
        self.queue.abort_current()
        if self.queue.current is not None:
            self.queue.current.wait(2000)
        self.logger.end_session_log(self.session_id)
        event.accept()


def main():
    """Open the viewer and the position panel"""
    settings = Settings.load()
    logger = get_logger("pos_bookmarks", log_level=settings.log_level,
                        log_to_file=settings.log_to_file)
    if settings.load_error:
        logger.warning(f"Settings not loaded, using defaults: {settings.load_error}")

    try:
        app = QtWidgets.QApplication(sys.argv)
        viewer = ViewerWindow(logger)
        viewer.show()
        panel = PositionManagerWindow(viewer, settings, logger)
        panel.show()
        if len(sys.argv) > 1:
            viewer.load_image(sys.argv[1])
        exit_code = app.exec()
        logger.info(f"Application exited with code: {exit_code}")
        sys.exit(exit_code)
    except PositionError as e:
        logger.exception(f"Fatal error: {e}")
        show_error_dialog(e)
        sys.exit(1)


if __name__ == "__main__":
    main()

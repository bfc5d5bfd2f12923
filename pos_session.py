# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Position Session
GUI-independent controller of the bookmark manager: owns the position
store, the cursor and the table synchronizer and routes every user
operation through them.

Only the foreground (UI) thread calls into a session. Background workers
hand their results back to it.
"""
from pos_codec import FileFormat, load_into, serialize
from pos_navigator import Navigator, parse_fields
from pos_parser import BulkParser, ParseMode
from pos_store import PositionStore, SortEngine, SortKey
from pos_table import FieldValues, TableSynchronizer
from utils_error_handler import DuplicateCoordinateError, ErrorSeverity, PositionError


class NullGrid:
    """Grid stand-in for sessions without a visible table"""

    def __init__(self):
        self.rows = 0

    def row_count(self):
        return self.rows

    def set_row_count(self, count):
        self.rows = count

    def write_row(self, row, number, coords, note):
        pass

    def insert_row(self, row):
        self.rows += 1

    def remove_row(self, row):
        self.rows -= 1


class PositionSession:
    """State and operations of one manager session"""

    def __init__(self, viewport=None, grid=None, logger=None, min_rows=5):
        self.logger = logger
        self.store = PositionStore(min_rows)
        self.table = TableSynchronizer(self.store, grid if grid is not None else NullGrid(), logger)
        self.navigator = Navigator(viewport, logger)
        self.sorter = SortEngine(self.store)
        self.parser = BulkParser(self.store, logger)
        self.cursor = -1
        self.status = "No image open"
        self.table.push_all()

    # -- helpers -----------------------------------------------------------

    @property
    def viewport(self):
        return self.navigator.viewport

    def _set_status(self, message):
        self.status = message
        return message

    def _bounds(self):
        viewport = self.navigator.viewport
        return viewport.get_bounds() if viewport is not None else None

    def _fix_cursor(self):
        if self.cursor >= self.store.count():
            self.cursor = self.store.count() - 1

    # -- navigation --------------------------------------------------------

    def go_to_fields(self, x_text, y_text, z_text, t_text):
        """Navigate to typed coordinates; raises InvalidFormatError"""
        result = self.navigator.go_to_fields(x_text, y_text, z_text, t_text)
        self._set_status(result.message)
        return result

    def go_to_row(self, row):
        self.cursor = row
        result = self.navigator.go_to(self.store.get(row))
        self._set_status(result.message)
        return result

    def next(self):
        self.cursor, result = self.navigator.step(self.store, self.cursor, 1)
        self._set_status(result.message)
        return result

    def back(self):
        self.cursor, result = self.navigator.step(self.store, self.cursor, -1)
        self._set_status(result.message)
        return result

    def refresh(self):
        """
        Periodic read-only poll of the viewport.

        Returns (current position text, image status text).
        """
        current = self.navigator.describe_current()
        viewport = self.navigator.viewport
        bounds = self._bounds()
        if bounds is None:
            return current, "No image open"
        return current, f"{viewport.title()} [{bounds.describe()}]"

    def on_active_viewport_changed(self, viewport):
        """Called by the viewer when the active image changes"""
        self.navigator.viewport = viewport
        bounds = self._bounds()
        if self.logger:
            if bounds is None:
                self.logger.info("Active viewport cleared")
            else:
                self.logger.info(f"Active viewport: {viewport.title()} [{bounds.describe()}]")
        return self.refresh()

    # -- editing -----------------------------------------------------------

    def add_record(self, record, allow_duplicate=False):
        """
        Add a record, filling the first empty row.

        Raises:
            DuplicateCoordinateError: coordinates already listed and
                allow_duplicate is False
        """
        duplicate = self.store.is_duplicate_coordinate(*record.coords)
        if duplicate is not None and not allow_duplicate:
            raise DuplicateCoordinateError(record, duplicate)

        index = self.store.insert_or_append(record)
        self.table.push_row(index)
        if index == self.store.count() - 1:
            self.table.append_empty_row()
        self._set_status(f"Added position: {record.coords_text()}")
        return index

    def add_current(self, note='', allow_duplicate=False):
        """Add the position at the current view center; raises NoImageError"""
        return self.add_record(self.navigator.current_record(note), allow_duplicate)

    def add_fields(self, x_text, y_text, z_text, t_text, note='', allow_duplicate=False):
        return self.add_record(parse_fields(x_text, y_text, z_text, t_text, note), allow_duplicate)

    def apply_edit(self, row, coords_text, note_text=''):
        result = self.table.apply_edit(row, coords_text, note_text)
        if result is not None:
            self._set_status(result.message)
        return result

    def select_row(self, row):
        if not 0 <= row < self.store.count():
            return FieldValues()
        self.cursor = row
        return self.table.select_row(row)

    def remove_row(self, row):
        if row is None or not 0 <= row < self.store.count():
            raise PositionError("Please select a position to remove", severity=ErrorSeverity.WARNING)
        self.table.remove_row(row)
        if self.cursor > row:
            self.cursor -= 1
        elif self.cursor == row:
            self.cursor = -1
        self._fix_cursor()
        return self._set_status(f"Removed position at row {row + 1}")

    def clear_all(self):
        self.store.clear()
        self.table.push_all()
        self.cursor = -1
        return self._set_status("All positions cleared")

    def sort(self, key):
        """Sort by key, toggling the direction on every call"""
        ascending = self.sorter.toggle(key)
        self.table.push_all()
        self.cursor = -1
        direction = "ascending" if ascending else "descending"
        name = "position" if key == SortKey.POSITION else "note"
        return self._set_status(f"Sorted by {name} ({direction})")

    # -- bulk --------------------------------------------------------------

    def paste_text(self, text, mode=ParseMode.FREEFORM):
        """Parse clipboard text into the list; the cursor is kept"""
        if not text or not text.strip():
            self._set_status("Clipboard is empty")
            return None
        result = self.parser.parse(text, self._bounds(), mode)
        if self.store.get(self.store.count() - 1) is not None:
            self.store.append(None)
        self.table.push_all()
        self._fix_cursor()
        self._set_status(result.summary())
        return result

    def export_text(self, fmt=FileFormat.TXT):
        if self.store.is_empty():
            raise PositionError("No positions to export", severity=ErrorSeverity.WARNING)
        return serialize(self.store, fmt)

    def load_text(self, text, fmt=FileFormat.TXT, name=None):
        """Replace the list with file contents; the cursor is reset"""
        result = load_into(self.store, text, fmt, self._bounds())
        if self.store.get(self.store.count() - 1) is not None:
            self.store.append(None)
        self.table.push_all()
        self.cursor = -1
        if self.logger:
            for message in result.errors:
                self.logger.warning(message)
        self._set_status(result.summary(name))
        return result

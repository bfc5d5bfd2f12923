# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Table Synchronizer
Keeps the editable position table and the PositionStore in step.

The grid is any object offering:
    row_count()
    set_row_count(n)
    write_row(row, number, coords, note)
    insert_row(row)
    remove_row(row)
Writes pushed to the grid fire the grid's change notifications; those
echoes are ignored while a push is running.
"""
from contextlib import contextmanager
from typing import NamedTuple, Optional

from pos_store import Record
from pos_validator import parse_int


class EditResult(NamedTuple):
    row: int
    record: Optional[Record]
    message: str
    extended: bool = False

    @property
    def valid(self):
        return self.record is not None


class FieldValues(NamedTuple):
    """Text shown in the X/Y/Z/T/note input fields"""
    x: str = ''
    y: str = ''
    z: str = ''
    t: str = ''
    note: str = ''

    @classmethod
    def from_record(cls, record):
        if record is None:
            return cls()
        return cls(str(record.x), str(record.y), str(record.z), str(record.t), record.note)


def parse_coords_cell(text, note=''):
    """Exactly four comma separated integers, else None"""
    if text is None:
        return None
    parts = str(text).split(',')
    if len(parts) != 4:
        return None
    values = [parse_int(p) for p in parts]
    if any(v is None for v in values):
        return None
    return Record(*values, note=note or '')


class TableSynchronizer:
    """Two-way sync between a PositionStore and a grid"""

    def __init__(self, store, grid, logger=None):
        self.store = store
        self.grid = grid
        self.logger = logger
        self._pushing = False
        self._applying = False

    @property
    def busy(self):
        return self._pushing or self._applying

    @contextmanager
    def _guard(self, flag):
        setattr(self, flag, True)
        try:
            yield
        finally:
            setattr(self, flag, False)

    def _write(self, row):
        record = self.store.get(row)
        if record is None:
            self.grid.write_row(row, row + 1, '', '')
        else:
            self.grid.write_row(row, row + 1, record.coords_text(), record.note)

    def push_all(self):
        """Rewrite every grid row from the store"""
        if self._applying:
            return
        with self._guard('_pushing'):
            self.grid.set_row_count(self.store.count())
            for row in range(self.store.count()):
                self._write(row)

    def push_row(self, row):
        """Rewrite one grid row from the store"""
        if self._applying:
            return
        with self._guard('_pushing'):
            if self.grid.row_count() != self.store.count():
                self.grid.set_row_count(self.store.count())
            self._write(row)

    def renumber(self):
        """Refresh the row-number column (1..N)"""
        with self._guard('_pushing'):
            for row in range(self.store.count()):
                self._write(row)

    def remove_row(self, row):
        """Delete a row from store and grid, then renumber"""
        removed = self.store.remove_at(row)
        with self._guard('_pushing'):
            self.grid.remove_row(row)
            while self.grid.row_count() < self.store.count():
                self.grid.insert_row(self.grid.row_count())
        self.renumber()
        return removed

    def append_empty_row(self):
        index = self.store.append(None)
        with self._guard('_pushing'):
            self.grid.insert_row(index)
            self._write(index)
        return index

    def apply_edit(self, row, coords_text, note_text=''):
        """
        Apply a user edit of a grid row to the store.

        Returns None while a push is running (the edit is our own echo),
        otherwise an EditResult.
        """
        if self._pushing or self._applying:
            return None

        with self._guard('_applying'):
            record = parse_coords_cell(coords_text, note_text)
            self.store.set(row, record)
            if record is not None:
                message = f"Updated row {row + 1}: {record.coords_text()}"
            elif coords_text is None or not str(coords_text).strip():
                message = f"Row {row + 1} cleared"
            else:
                message = f"Invalid position format at row {row + 1}"

        extended = False
        is_last = row == self.store.count() - 1
        if is_last and coords_text is not None and str(coords_text).strip():
            self.append_empty_row()
            extended = True

        if self.logger:
            if record is None and coords_text and str(coords_text).strip():
                self.logger.warning(message)
            else:
                self.logger.debug(message)
        return EditResult(row, record, message, extended)

    def select_row(self, row):
        """Field values for the selected row (blank for an empty slot)"""
        if not 0 <= row < self.store.count():
            return FieldValues()
        return FieldValues.from_record(self.store.get(row))

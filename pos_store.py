# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Position Store
Ordered, index-addressable list of bookmark records.

Slots are either a Record or None (empty row). Index order is the display
and navigation order. The list never gets shorter than ``min_rows``.
"""
from enum import Enum
from typing import NamedTuple

from pos_config import PositionConfig


class Record(NamedTuple):
    """A stored 4D position (1-based) with an optional note"""
    x: int
    y: int
    z: int
    t: int
    note: str = ''

    @property
    def coords(self):
        return (self.x, self.y, self.z, self.t)

    def coords_text(self):
        return f"{self.x},{self.y},{self.z},{self.t}"

    def with_note(self, note):
        return self._replace(note=note or '')

    def __str__(self):
        return self.coords_text()


class PositionStore:
    """Dense list of slots backing the position table"""

    def __init__(self, min_rows=PositionConfig.MIN_ROWS):
        self.min_rows = max(1, int(min_rows))
        self._slots = []
        self._pad()

    def _pad(self):
        while len(self._slots) < self.min_rows:
            self._slots.append(None)

    def _check_index(self, index):
        if not 0 <= index < len(self._slots):
            raise IndexError(f"Row {index} out of range (0-{len(self._slots) - 1})")

    def __len__(self):
        return len(self._slots)

    def __iter__(self):
        return iter(list(self._slots))

    def count(self):
        """Number of slots including empty ones"""
        return len(self._slots)

    def get(self, index):
        self._check_index(index)
        return self._slots[index]

    def set(self, index, record):
        self._check_index(index)
        if record is not None and not isinstance(record, Record):
            raise TypeError("slot value must be a Record or None")
        self._slots[index] = record

    def append(self, record=None):
        """Append a slot and return its index"""
        self._slots.append(record)
        return len(self._slots) - 1

    def remove_at(self, index):
        """Physically remove a slot; later slots move up by one"""
        self._check_index(index)
        removed = self._slots.pop(index)
        self._pad()
        return removed

    def clear(self):
        """Reset to the minimum number of empty slots"""
        self._slots = []
        self._pad()

    def find_first_empty(self):
        for index, record in enumerate(self._slots):
            if record is None:
                return index
        return None

    def insert_or_append(self, record):
        """Put the record into the first empty slot, else append it"""
        index = self.find_first_empty()
        if index is None:
            return self.append(record)
        self._slots[index] = record
        return index

    def is_duplicate_coordinate(self, x, y, z, t):
        """Index of the first record with these coordinates (note ignored)"""
        for index, record in enumerate(self._slots):
            if record is not None and record.coords == (x, y, z, t):
                return index
        return None

    def records(self):
        """List of (index, record) for filled slots"""
        return [(i, r) for i, r in enumerate(self._slots) if r is not None]

    def filled(self):
        return [r for r in self._slots if r is not None]

    def filled_count(self):
        return sum(1 for r in self._slots if r is not None)

    def is_empty(self):
        return self.filled_count() == 0

    def replace_all(self, records):
        """Replace the whole list with the given records, then pad"""
        self._slots = list(records)
        self._pad()


class SortKey(Enum):
    POSITION = 'position'
    NOTE = 'note'


def sort_records(records, key, ascending=True):
    """
    Sort filled records.

    Position sorts on (x, y, z, t). Note sorts case-insensitively; records
    without a note always come last, whatever the direction.
    """
    records = [r for r in records if r is not None]
    if key == SortKey.POSITION:
        return sorted(records, key=lambda r: r.coords, reverse=not ascending)

    with_note = [r for r in records if r.note]
    without_note = [r for r in records if not r.note]
    with_note.sort(key=lambda r: r.note.lower(), reverse=not ascending)
    return with_note + without_note


class SortEngine:
    """Sorts a store, remembering the next direction per key"""

    def __init__(self, store):
        self.store = store
        self._ascending = {key: True for key in SortKey}

    def next_direction(self, key):
        return self._ascending[key]

    def sort_by(self, key, ascending):
        """Reorder the store; empty slots go to the end"""
        ordered = sort_records(self.store.filled(), key, ascending)
        padding = self.store.count() - len(ordered)
        self.store.replace_all(ordered + [None] * padding)
        return ordered

    def toggle(self, key):
        """Sort with the remembered direction and flip it for next time"""
        ascending = self._ascending[key]
        self.sort_by(key, ascending)
        self._ascending[key] = not ascending
        return ascending

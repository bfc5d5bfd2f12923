# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Navigator
Moves the image viewport to a stored or typed position while keeping the
current magnification, and walks the position list with Next/Back.
"""
from enum import Enum
from typing import NamedTuple, Optional, Tuple

from pos_store import Record
from pos_validator import clamp, parse_int, validate
from utils_error_handler import InvalidFormatError, NoImageError, OutOfBoundsError


class ViewState(NamedTuple):
    """What the viewport currently shows"""
    center_x: int
    center_y: int
    z: int
    t: int
    magnification: float
    window: Tuple[int, int, int, int]  # x, y, width, height of the source rect


class Viewport:
    """
    Interface of the image viewer the navigator drives.

    get_bounds() returns ViewportBounds or None when no image is open.
    """

    def get_bounds(self):
        raise NotImplementedError

    def get_view_state(self):
        raise NotImplementedError

    def set_view(self, z, t, origin, magnification):
        """Apply Z, T, window origin and magnification as one update"""
        raise NotImplementedError

    def title(self):
        return ''


class Outcome(Enum):
    MOVED = 'moved'
    MOVED_ADJUSTED = 'moved (Z/T adjusted)'
    OUT_OF_BOUNDS = 'out of bounds'
    NO_IMAGE = 'no image'
    EMPTY_RECORD = 'empty record'

    @property
    def moved(self):
        return self in (Outcome.MOVED, Outcome.MOVED_ADJUSTED)


class NavigationResult(NamedTuple):
    outcome: Outcome
    target: Optional[Record]
    message: str


def window_origin(x, y, window, width, height):
    """Top-left of a window of the same size centered on (x, y), kept inside the image"""
    _, _, win_w, win_h = window
    new_x = x - win_w // 2
    new_y = y - win_h // 2
    new_x = max(0, min(new_x, width - win_w))
    new_y = max(0, min(new_y, height - win_h))
    return new_x, new_y


def parse_fields(x_text, y_text, z_text, t_text, note=''):
    """Record from typed field values; raises InvalidFormatError"""
    values = [parse_int(v) for v in (x_text, y_text, z_text, t_text)]
    if any(v is None for v in values):
        raise InvalidFormatError("Please enter valid numbers",
                                 details={'fields': (x_text, y_text, z_text, t_text)})
    return Record(*values, note=note or '')


class Navigator:
    """Validates targets and asks the viewport to move"""

    def __init__(self, viewport, logger=None):
        self.viewport = viewport
        self.logger = logger

    def _log(self, outcome, record):
        if self.logger and record is not None:
            self.logger.log_navigation(outcome.value, record.x, record.y, record.z, record.t)

    def go_to(self, record):
        """Navigate to a record and report the outcome"""
        if record is None:
            return NavigationResult(Outcome.EMPTY_RECORD, None, "Empty row")

        bounds = self.viewport.get_bounds() if self.viewport is not None else None
        state = self.viewport.get_view_state() if bounds is not None else None
        if bounds is None or state is None:
            self._log(Outcome.NO_IMAGE, record)
            return NavigationResult(Outcome.NO_IMAGE, record, str(NoImageError()))

        checked = validate(record.x, record.y, record.z, record.t, bounds)
        if checked.out_of_bounds_xy:
            self._log(Outcome.OUT_OF_BOUNDS, record)
            error = OutOfBoundsError(record.x, record.y, bounds.width, bounds.height)
            return NavigationResult(Outcome.OUT_OF_BOUNDS, record, str(error))

        target = Record(checked.x, checked.y, checked.z, checked.t, record.note)
        origin = window_origin(target.x, target.y, state.window, bounds.width, bounds.height)
        self.viewport.set_view(target.z, target.t, origin, state.magnification)

        if checked.adjusted_zt:
            outcome = Outcome.MOVED_ADJUSTED
            message = (f"Moved to: {target.coords_text()} "
                       f"(Z/T adjusted to 1-{bounds.max_z}/1-{bounds.max_t})")
        else:
            outcome = Outcome.MOVED
            message = f"Moved to: {target.coords_text()}"
        self._log(outcome, target)
        return NavigationResult(outcome, target, message)

    def go_to_fields(self, x_text, y_text, z_text, t_text):
        """Navigate to typed coordinates; raises InvalidFormatError"""
        return self.go_to(parse_fields(x_text, y_text, z_text, t_text))

    @staticmethod
    def find_step(store, cursor, direction):
        """
        Index of the next filled slot from ``cursor`` in ``direction``
        (+1 Next, -1 Back), wrapping around; None when every slot is empty.
        """
        count = store.count()
        if count == 0:
            return None
        if cursor is None or cursor < 0:
            index = -1 if direction > 0 else count
        else:
            index = cursor
        for _ in range(count):
            index = (index + direction) % count
            if store.get(index) is not None:
                return index
        return None

    def step(self, store, cursor, direction):
        """
        Move to the next (direction=1) or previous (direction=-1) position.

        Returns (new_cursor, NavigationResult). The cursor is unchanged when
        the list holds no positions.
        """
        index = self.find_step(store, cursor, direction)
        if index is None:
            return cursor, NavigationResult(Outcome.EMPTY_RECORD, None, "No valid positions in list")
        return index, self.go_to(store.get(index))

    def current_record(self, note=''):
        """Record for the current view center; raises NoImageError"""
        bounds = self.viewport.get_bounds() if self.viewport is not None else None
        state = self.viewport.get_view_state() if bounds is not None else None
        if state is None:
            raise NoImageError()
        x = clamp(state.center_x, 1, bounds.width)
        y = clamp(state.center_y, 1, bounds.height)
        return Record(x, y, state.z, state.t, note)

    def describe_current(self):
        """Status text for the refresh tick; read-only"""
        if self.viewport is None or self.viewport.get_bounds() is None:
            return "Current: --"
        state = self.viewport.get_view_state()
        if state is None:
            return "Current: --"
        return f"Current: X={state.center_x}, Y={state.center_y}, Z={state.z}, T={state.t}"

import os
import sys
from pathlib import Path

import pytest

# Allow importing the tool modules from repository root
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from pos_navigator import Viewport, ViewState  # noqa: E402
from pos_validator import ViewportBounds  # noqa: E402
from utils_logger import get_logger  # noqa: E402


class FakeViewport(Viewport):
    """In-memory viewport recording every set_view call"""

    def __init__(self, bounds=ViewportBounds(100, 100, 5, 5), window=(0, 0, 20, 20),
                 magnification=2.0, z=1, t=1):
        self.bounds = bounds
        self.window = window
        self.magnification = magnification
        self.z = z
        self.t = t
        self.calls = []

    def title(self):
        return "stack.tif"

    def get_bounds(self):
        return self.bounds

    def get_view_state(self):
        if self.bounds is None:
            return None
        x, y, w, h = self.window
        return ViewState(x + w // 2, y + h // 2, self.z, self.t, self.magnification, self.window)

    def set_view(self, z, t, origin, magnification):
        self.calls.append((z, t, origin, magnification))
        self.z, self.t = z, t
        _, _, w, h = self.window
        self.window = (origin[0], origin[1], w, h)
        self.magnification = magnification


class ListGrid:
    """Grid keeping rows as [number, coords, note] lists"""

    def __init__(self):
        self.rows = []
        self.writes = 0

    def row_count(self):
        return len(self.rows)

    def set_row_count(self, count):
        self.rows = self.rows[:count] + [['', '', ''] for _ in range(count - len(self.rows))]

    def write_row(self, row, number, coords, note):
        self.writes += 1
        self.rows[row] = [str(number), coords, note]

    def insert_row(self, row):
        self.rows.insert(row, ['', '', ''])

    def remove_row(self, row):
        del self.rows[row]

    def coords(self):
        return [r[1] for r in self.rows]

    def numbers(self):
        return [r[0] for r in self.rows]


@pytest.fixture
def logger():
    return get_logger("pos_bookmarks_test", log_to_file=False, log_to_console=False)


@pytest.fixture
def viewport():
    return FakeViewport()


@pytest.fixture
def make_viewport():
    return FakeViewport


@pytest.fixture
def grid():
    return ListGrid()


@pytest.fixture(scope="session")
def qapp():
    """Offscreen QApplication shared by the Qt tests"""
    QtWidgets = pytest.importorskip("PyQt6.QtWidgets")
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
    return app

import pytest

from pos_navigator import Navigator, Outcome, parse_fields, window_origin
from pos_store import PositionStore, Record
from pos_validator import ViewportBounds
from utils_error_handler import InvalidFormatError, NoImageError


def test_move_centers_window_and_keeps_magnification(viewport):
    result = Navigator(viewport).go_to(Record(50, 60, 2, 3))
    assert result.outcome == Outcome.MOVED
    assert viewport.calls == [(2, 3, (40, 50), 2.0)]


def test_window_is_clamped_inside_image():
    assert window_origin(2, 3, (0, 0, 20, 20), 100, 100) == (0, 0)
    assert window_origin(99, 100, (0, 0, 20, 20), 100, 100) == (80, 80)


@pytest.mark.parametrize("x, y", [(0, 5), (101, 5), (5, 0), (5, 101)])
def test_out_of_bounds_leaves_viewport_alone(viewport, x, y):
    before = viewport.get_view_state()
    result = Navigator(viewport).go_to(Record(x, y, 1, 1))
    assert result.outcome == Outcome.OUT_OF_BOUNDS
    assert viewport.calls == []
    assert viewport.get_view_state() == before


@pytest.mark.parametrize("z, expected", [(0, 1), (9, 5)])
def test_z_outside_range_is_clamped(viewport, z, expected):
    result = Navigator(viewport).go_to(Record(10, 10, z, 1))
    assert result.outcome == Outcome.MOVED_ADJUSTED
    assert result.target.z == expected
    assert viewport.z == expected


def test_no_image(make_viewport):
    result = Navigator(make_viewport(bounds=None)).go_to(Record(1, 1, 1, 1))
    assert result.outcome == Outcome.NO_IMAGE
    assert Navigator(None).go_to(Record(1, 1, 1, 1)).outcome == Outcome.NO_IMAGE


def test_empty_record(viewport):
    assert Navigator(viewport).go_to(None).outcome == Outcome.EMPTY_RECORD


def test_typed_fields(viewport):
    result = Navigator(viewport).go_to_fields("10", " 10", "1", "1")
    assert result.outcome.moved
    with pytest.raises(InvalidFormatError):
        Navigator(viewport).go_to_fields("10", "ten", "1", "1")


def test_parse_fields_keeps_note():
    assert parse_fields("1", "2", "3", "4", "n") == Record(1, 2, 3, 4, "n")


def sparse_store():
    store = PositionStore(min_rows=6)
    store.set(1, Record(10, 10, 1, 1))
    store.set(4, Record(20, 20, 1, 1))
    return store


def test_next_skips_empty_and_wraps(viewport):
    store = sparse_store()
    navigator = Navigator(viewport)
    cursor, _ = navigator.step(store, -1, 1)
    assert cursor == 1
    cursor, _ = navigator.step(store, cursor, 1)
    assert cursor == 4
    cursor, result = navigator.step(store, cursor, 1)
    assert cursor == 1
    assert result.outcome == Outcome.MOVED


def test_back_from_none_starts_at_end(viewport):
    cursor, _ = Navigator(viewport).step(sparse_store(), -1, -1)
    assert cursor == 4


@pytest.mark.parametrize("start", [1, 4])
def test_next_then_back_returns_to_start(viewport, start):
    store = sparse_store()
    navigator = Navigator(viewport)
    cursor, _ = navigator.step(store, start, 1)
    cursor, _ = navigator.step(store, cursor, -1)
    assert cursor == start


def test_step_over_empty_list_terminates(viewport):
    store = PositionStore()
    cursor, result = Navigator(viewport).step(store, 2, 1)
    assert cursor == 2
    assert result.outcome == Outcome.EMPTY_RECORD
    assert "No valid positions" in result.message
    assert viewport.calls == []


def test_current_record_and_description(viewport, make_viewport):
    navigator = Navigator(viewport)
    assert navigator.current_record("n") == Record(10, 10, 1, 1, "n")
    assert navigator.describe_current() == "Current: X=10, Y=10, Z=1, T=1"

    empty = Navigator(make_viewport(bounds=None))
    assert empty.describe_current() == "Current: --"
    with pytest.raises(NoImageError):
        empty.current_record()


def test_navigation_is_logged(viewport, logger, caplog):
    logger.logger.propagate = True
    with caplog.at_level("INFO", logger=logger.tool_name):
        Navigator(viewport, logger).go_to(Record(5, 5, 1, 1))
    assert "Navigation moved" in caplog.text


def test_bounds_with_single_slice_clamps_z(make_viewport):
    viewport = make_viewport(bounds=ViewportBounds(50, 50, 1, 1))
    result = Navigator(viewport).go_to(Record(25, 25, 3, 1))
    assert result.outcome == Outcome.MOVED_ADJUSTED
    assert viewport.calls[0][0] == 1

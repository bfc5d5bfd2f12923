import pytest

from pos_codec import FileFormat
from pos_navigator import Outcome
from pos_session import PositionSession
from pos_store import Record, SortKey
from utils_error_handler import DuplicateCoordinateError, InvalidFormatError, NoImageError, PositionError


@pytest.fixture
def session(viewport, grid, logger):
    return PositionSession(viewport, grid, logger)


def test_session_starts_with_padded_table(session, grid):
    assert session.store.count() == 5
    assert grid.row_count() == 5
    assert session.cursor == -1


def test_add_current_fills_first_empty_row(session, grid):
    session.store.set(0, Record(1, 1, 1, 1))
    session.table.push_all()
    index = session.add_current("here")
    assert index == 1
    assert session.store.get(1) == Record(10, 10, 1, 1, "here")
    assert grid.coords()[1] == "10,10,1,1"
    assert session.status == "Added position: 10,10,1,1"


def test_add_duplicate_needs_confirmation(session):
    session.add_current()
    with pytest.raises(DuplicateCoordinateError) as info:
        session.add_current("again")
    assert info.value.row == 0
    assert session.store.filled_count() == 1
    assert session.add_current("again", allow_duplicate=True) == 1


def test_add_without_image(make_viewport, grid):
    session = PositionSession(make_viewport(bounds=None), grid)
    with pytest.raises(NoImageError):
        session.add_current()


def test_add_into_last_row_keeps_blank_row(session, grid):
    for i in range(5):
        session.add_record(Record(i + 1, 1, 1, 1))
    assert session.store.count() == 6
    assert session.store.get(5) is None
    assert grid.row_count() == 6


def test_add_fields_rejects_bad_numbers(session):
    with pytest.raises(InvalidFormatError):
        session.add_fields("1", "", "1", "1")


def test_go_to_fields_and_status(session, viewport):
    result = session.go_to_fields("30", "30", "9", "1")
    assert result.outcome == Outcome.MOVED_ADJUSTED
    assert viewport.z == 5
    assert session.status.startswith("Moved to: 30,30,5,1")


def test_next_back_move_cursor(session, viewport):
    session.add_record(Record(10, 10, 1, 1))
    session.add_record(Record(20, 20, 1, 1))
    session.next()
    assert session.cursor == 0
    session.next()
    assert session.cursor == 1
    session.back()
    assert session.cursor == 0
    assert len(viewport.calls) == 3


def test_next_over_empty_list(session):
    session.next()
    assert session.cursor == -1
    assert session.status == "No valid positions in list"


def test_select_row_sets_cursor(session):
    session.add_record(Record(3, 4, 5, 1, "n"))
    values = session.select_row(0)
    assert session.cursor == 0
    assert (values.x, values.y, values.z, values.t) == ("3", "4", "5", "1")


def test_remove_row_adjusts_cursor(session, grid):
    for i in range(3):
        session.add_record(Record(i + 1, 1, 1, 1))
    session.select_row(2)
    session.remove_row(0)
    assert session.cursor == 1
    assert session.store.get(0) == Record(2, 1, 1, 1)
    assert grid.numbers()[:3] == ["1", "2", "3"]
    with pytest.raises(PositionError):
        session.remove_row(-1)


def test_sort_resets_cursor_and_toggles(session, grid):
    session.store.replace_all([Record(10, 10, 1, 1, "a"), None, Record(5, 5, 2, 1, "")])
    session.table.push_all()
    session.select_row(2)

    session.sort(SortKey.POSITION)
    assert session.cursor == -1
    assert grid.coords()[:3] == ["5,5,2,1", "10,10,1,1", ""]
    assert "ascending" in session.status

    session.sort(SortKey.POSITION)
    assert grid.coords()[:2] == ["10,10,1,1", "5,5,2,1"]
    assert "descending" in session.status


def test_paste_keeps_cursor(session):
    session.add_record(Record(1, 1, 1, 1))
    session.select_row(0)
    result = session.paste_text("3,4,1,1,start\n9 9 2 2\nbad,line")
    assert result.added_count == 2
    assert result.errors == 1
    assert session.cursor == 0
    assert session.store.get(1) == Record(3, 4, 1, 1, "start")


def test_paste_of_empty_clipboard(session):
    assert session.paste_text("") is None
    assert session.status == "Clipboard is empty"


def test_paste_keeps_trailing_blank_row(session):
    session.paste_text("\n".join(f"{i},1,1,1" for i in range(1, 6)))
    assert session.store.filled_count() == 5
    assert session.store.get(session.store.count() - 1) is None


def test_load_replaces_and_resets_cursor(session, grid):
    session.add_record(Record(1, 1, 1, 1))
    session.select_row(0)
    result = session.load_text("X,Y,Z,T,Note\n1,2,3,4,foo\n1,2,3,4,foo", FileFormat.CSV, "p.csv")
    assert result.loaded_count == 2
    assert session.cursor == -1
    assert grid.coords()[:3] == ["1,2,3,4", "1,2,3,4", ""]
    assert session.status == "Loaded 2 positions from p.csv"


def test_export(session):
    with pytest.raises(PositionError):
        session.export_text()
    session.add_record(Record(1, 2, 3, 4, "a,b"))
    assert session.export_text(FileFormat.CSV) == "X,Y,Z,T,Note\n1,2,3,4,a;b\n"


def test_clear_all(session, grid):
    session.add_record(Record(1, 2, 3, 4))
    session.select_row(0)
    session.clear_all()
    assert session.store.is_empty()
    assert session.cursor == -1
    assert grid.coords() == [""] * 5


def test_table_edit_goes_through_session(session):
    result = session.apply_edit(0, "1,2,3,4", "note")
    assert result.valid
    assert session.store.get(0).note == "note"


def test_refresh_is_read_only(session, viewport):
    session.add_record(Record(1, 2, 3, 4))
    before = list(session.store)
    current, status = session.refresh()
    assert current == "Current: X=10, Y=10, Z=1, T=1"
    assert status == "stack.tif [100x100x5x5]"
    assert list(session.store) == before
    assert viewport.calls == []


def test_viewport_change_hook(session, make_viewport):
    current, status = session.on_active_viewport_changed(make_viewport(bounds=None))
    assert current == "Current: --"
    assert status == "No image open"
    assert session.go_to_row(0).outcome == Outcome.EMPTY_RECORD

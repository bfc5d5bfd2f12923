import pytest

from pos_codec import (FileFormat, deserialize, format_for_path, load_into, read_text,
                       serialize, write_text)
from pos_store import PositionStore, Record
from utils_error_handler import IOFailureError

RECORDS = [Record(1, 2, 3, 4, "first"), Record(10, 20, 1, 1, ""), Record(7, 7, 2, 2, "Cell B")]


def store_with(records):
    store = PositionStore()
    store.replace_all([records[0], None] + records[1:])
    return store


def test_txt_format_is_exact():
    text = serialize(store_with(RECORDS), FileFormat.TXT)
    assert text == "1,2,3,4\n10,20,1,1\n7,7,2,2\n"


def test_csv_format_escapes_note_commas():
    store = store_with([Record(1, 2, 3, 4, "a, b,c")])
    assert serialize(store, FileFormat.CSV) == "X,Y,Z,T,Note\n1,2,3,4,a; b;c\n"


def test_empty_store_serializes_to_nothing():
    assert serialize(PositionStore(), FileFormat.TXT) == ""


@pytest.mark.parametrize("fmt", [FileFormat.TXT, FileFormat.CSV])
def test_round_trip(fmt):
    text = serialize(store_with(RECORDS), fmt)
    loaded = deserialize(text, fmt)
    assert not loaded.errors
    if fmt == FileFormat.CSV:
        assert loaded.records == RECORDS
    else:
        assert [r.coords for r in loaded.records] == [r.coords for r in RECORDS]


def test_csv_load_keeps_duplicates():
    store = PositionStore()
    result = load_into(store, "X,Y,Z,T,Note\n1,2,3,4,foo\n1,2,3,4,foo", FileFormat.CSV)
    assert result.loaded_count == 2
    assert store.get(0) == store.get(1) == Record(1, 2, 3, 4, "foo")


def test_load_replaces_existing_positions():
    store = store_with(RECORDS)
    load_into(store, "5,5,5,5\n", FileFormat.TXT)
    assert store.filled() == [Record(5, 5, 5, 5)]
    assert store.count() == 5


def test_load_counts_bad_lines():
    result = deserialize("1,2,3,4\nnope\n", FileFormat.TXT)
    assert result.loaded_count == 1
    assert len(result.errors) == 1
    assert "1 invalid" in result.summary("p.txt")


def test_format_for_path():
    assert format_for_path("a/b/positions.CSV") == FileFormat.CSV
    assert format_for_path("positions.txt") == FileFormat.TXT
    assert format_for_path("positions") == FileFormat.TXT


def test_write_then_read(tmp_path, logger):
    path = tmp_path / "positions.txt"
    write_text(path, "1,2,3,4\n", logger)
    assert read_text(path, logger) == "1,2,3,4\n"


def test_missing_file_is_io_failure(tmp_path):
    with pytest.raises(IOFailureError) as info:
        read_text(tmp_path / "missing.txt")
    assert info.value.details['operation'] == "read"


def test_unwritable_path_is_io_failure(tmp_path):
    with pytest.raises(IOFailureError):
        write_text(tmp_path / "no" / "such" / "dir.txt", "x")

# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Persistence Codec
Reads and writes position lists as plain text or CSV.

TXT: one "x,y,z,t" line per position, no header, no note.
CSV: header "X,Y,Z,T,Note", then one row per position. Commas inside notes
     are written as ';'.
"""
from enum import Enum
from pathlib import Path

from pos_config import PositionConfig
from pos_parser import ParseMode, iter_line_results
from utils_error_handler import safe_file_operation


class FileFormat(Enum):
    TXT = 'txt'
    CSV = 'csv'

    @property
    def parse_mode(self):
        return ParseMode.CSV if self == FileFormat.CSV else ParseMode.FREEFORM


def format_for_path(path):
    """CSV for *.csv files, TXT for anything else"""
    return FileFormat.CSV if Path(path).suffix.lower() == '.csv' else FileFormat.TXT


def escape_note(note):
    return note.replace(',', ';').replace('\r', ' ').replace('\n', ' ')


def serialize(records, fmt):
    """
    Serialize records to text.

    Args:
        records: PositionStore or iterable of Record/None slots
        fmt: FileFormat
    """
    filled = [r for r in records if r is not None]
    lines = []
    if fmt == FileFormat.CSV:
        lines.append(PositionConfig.CSV_HEADER)
        lines.extend(f"{r.coords_text()},{escape_note(r.note)}" for r in filled)
    else:
        lines.extend(r.coords_text() for r in filled)
    return "\n".join(lines) + "\n" if lines else ""


class LoadResult:
    """Records read from a file plus what went wrong on the way"""

    def __init__(self):
        self.records = []
        self.warnings = []
        self.errors = []

    @property
    def loaded_count(self):
        return len(self.records)

    def summary(self, name=None):
        text = f"Loaded {self.loaded_count} positions"
        if name:
            text += f" from {name}"
        if self.errors:
            text += f" ({len(self.errors)} invalid lines skipped)"
        return text


def deserialize(text, fmt, bounds=None):
    """Parse file contents; duplicates are kept as they are"""
    result = LoadResult()
    for line_result in iter_line_results(text, bounds, fmt.parse_mode):
        if line_result.ok:
            result.records.append(line_result.record)
            result.warnings.extend(line_result.warnings)
        else:
            result.errors.append(line_result.error)
    return result


def load_into(store, text, fmt, bounds=None):
    """Replace the whole store with the contents of ``text``"""
    result = deserialize(text, fmt, bounds)
    store.replace_all(result.records)
    return result


def read_text(path, logger=None):
    """Read a positions file (UTF-8); raises IOFailureError"""
    path = Path(path)
    return safe_file_operation(lambda: path.read_text(encoding='utf-8'), path, "read", logger)


def write_text(path, text, logger=None):
    """Write a positions file (UTF-8); raises IOFailureError"""
    path = Path(path)

    def _write():
        with open(path, 'w', encoding='utf-8', newline='\n') as f:
            f.write(text)
        return path

    return safe_file_operation(_write, path, "write", logger)

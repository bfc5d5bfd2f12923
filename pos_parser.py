# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Bulk Parser
Turns freeform multi-line text (clipboard paste or file contents) into
position records.

Accepted lines:
    X,Y                    Z and T default to 1 (warning)
    X,Y,Z,T
    X Y Z T some note      freeform: commas, spaces or tabs
    X,Y,Z,T,note           CSV: strictly comma separated
Malformed lines are counted, never raised.
"""
import re
from enum import Enum

from pos_config import PositionConfig
from pos_store import Record
from pos_validator import check_import_fields

# One comma with optional blanks around it, or a run of blanks. Two commas in
# a row leave an empty field, which the validator reports as missing.
_FREEFORM_SPLIT = re.compile(r'\s*,\s*|\s+')


class ParseMode(Enum):
    FREEFORM = 'freeform'
    CSV = 'csv'


class LineResult:
    """Parse outcome of a single line"""

    def __init__(self, line_number, record=None, error=None, warnings=()):
        self.line_number = line_number
        self.record = record
        self.error = error
        self.warnings = list(warnings)

    @property
    def ok(self):
        return self.record is not None


class ParseResult:
    """Summary of a bulk parse"""

    def __init__(self):
        self.added = []  # (index, Record), index is None when not stored
        self.errors = 0
        self.warnings = []
        self.error_lines = []

    @property
    def records(self):
        return [record for _, record in self.added]

    @property
    def added_count(self):
        return len(self.added)

    def summary(self):
        text = f"Added {self.added_count} positions"
        if self.errors:
            text += f", {self.errors} invalid lines skipped"
        if self.warnings:
            text += f", {len(self.warnings)} warnings"
        return text


def is_header_line(line):
    compact = line.strip().replace(' ', '').lower()
    return compact in PositionConfig.HEADER_LINES


def tokenize(line, mode):
    """Split a line into at most five fields"""
    max_split = PositionConfig.MAX_FIELDS - 1
    if mode == ParseMode.CSV:
        return line.split(',', max_split)

    stripped = line.strip()
    if not stripped:
        return []
    return _FREEFORM_SPLIT.split(stripped, maxsplit=max_split)


def parse_line(line, line_number=0, bounds=None, mode=ParseMode.FREEFORM):
    """Parse one non-blank line into a LineResult"""
    tokens = tokenize(line, mode)
    if len(tokens) < 2:
        return LineResult(line_number, error=f"Invalid format at line {line_number}: {line.strip()}")

    z_text = tokens[2] if len(tokens) >= 4 else None
    t_text = tokens[3] if len(tokens) >= 4 else None
    check = check_import_fields(tokens[0], tokens[1], z_text, t_text, bounds)
    if check.rejected:
        return LineResult(line_number, error=f"Invalid number format at line {line_number}: {line.strip()}")

    note = ''
    if len(tokens) >= PositionConfig.MAX_FIELDS:
        note = tokens[4] if mode == ParseMode.CSV else tokens[4].strip()

    warnings = [f"Line {line_number}: {w}" for w in check.warnings]
    return LineResult(line_number, Record(check.x, check.y, check.z, check.t, note), warnings=warnings)


def iter_line_results(text, bounds=None, mode=ParseMode.FREEFORM):
    """Yield a LineResult for every non-blank, non-header line"""
    header_skipped = False
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        if not header_skipped and is_header_line(line):
            header_skipped = True
            continue
        yield parse_line(line, line_number, bounds, mode)


def _collect(text, bounds, mode, store):
    result = ParseResult()
    for line_result in iter_line_results(text, bounds, mode):
        if not line_result.ok:
            result.errors += 1
            result.error_lines.append(line_result.error)
            continue
        index = store.insert_or_append(line_result.record) if store is not None else None
        result.added.append((index, line_result.record))
        result.warnings.extend(line_result.warnings)
    return result


def parse_records(text, bounds=None, mode=ParseMode.FREEFORM):
    """Parse text without storing the records"""
    return _collect(text, bounds, mode, None)


class BulkParser:
    """Parses pasted text straight into a position store"""

    def __init__(self, store, logger=None):
        self.store = store
        self.logger = logger

    def parse(self, text, bounds=None, mode=ParseMode.FREEFORM):
        """
        Parse ``text`` and insert every valid line with insert_or_append,
        filling empty rows first.

        Args:
            text: Multi-line input
            bounds: ViewportBounds for out-of-image warnings, or None
            mode: ParseMode.FREEFORM for pasted text, ParseMode.CSV for CSV

        Returns:
            ParseResult
        """
        result = _collect(text or '', bounds, mode, self.store)
        if self.logger:
            for message in result.error_lines:
                self.logger.warning(message)
            for message in result.warnings:
                self.logger.debug(message)
            self.logger.info(f"Bulk parse: {result.summary()}")
        return result

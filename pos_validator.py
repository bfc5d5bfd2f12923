# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Coordinate validation against the bounds of the active image.

Navigation: X/Y outside the image abort, Z/T are clamped.
Import: X/Y must parse, Z/T default to 1, bounds problems are warnings only.
"""
import re
from typing import NamedTuple, Optional

from utils_error_handler import NoImageError

_INT_RE = re.compile(r'^[+-]?\d+$')


class ViewportBounds(NamedTuple):
    """Dimensions of the active image (all 1-based maxima)"""
    width: int
    height: int
    max_z: int = 1
    max_t: int = 1

    def contains_xy(self, x, y):
        return 1 <= x <= self.width and 1 <= y <= self.height

    def describe(self):
        return f"{self.width}x{self.height}x{self.max_z}x{self.max_t}"


class ValidationResult(NamedTuple):
    x: int
    y: int
    z: int
    t: int
    adjusted_zt: bool
    out_of_bounds_xy: bool


class ImportCheck(NamedTuple):
    """Outcome of checking one imported line"""
    x: Optional[int]
    y: Optional[int]
    z: int
    t: int
    rejected: bool
    warnings: tuple


def parse_int(text):
    """Parse a trimmed integer, returning None for anything else"""
    if text is None:
        return None
    text = str(text).strip()
    if not _INT_RE.match(text):
        return None
    return int(text)


def clamp(value, low, high):
    return max(low, min(value, high))


def validate(x, y, z, t, bounds):
    """
    Validate a coordinate for navigation.

    Raises:
        NoImageError: when there are no bounds (no active image)
    """
    if bounds is None:
        raise NoImageError()

    out_of_bounds = not bounds.contains_xy(x, y)
    new_z = clamp(z, 1, max(1, bounds.max_z))
    new_t = clamp(t, 1, max(1, bounds.max_t))
    adjusted = new_z != z or new_t != t
    return ValidationResult(x, y, new_z, new_t, adjusted, out_of_bounds)


def check_import_fields(x_text, y_text, z_text=None, t_text=None, bounds=None):
    """
    Check the coordinate fields of an imported line.

    Unparsable X or Y rejects the line. Missing or unparsable Z/T become 1
    with a warning. With bounds, X/Y outside the image only add a warning.
    """
    warnings = []
    x = parse_int(x_text)
    y = parse_int(y_text)
    if x is None or y is None:
        return ImportCheck(x, y, 1, 1, True, ("invalid X/Y",))

    z = parse_int(z_text)
    if z is None:
        z = 1
        warnings.append("Z missing or invalid, using 1")
    t = parse_int(t_text)
    if t is None:
        t = 1
        warnings.append("T missing or invalid, using 1")

    if bounds is not None and not bounds.contains_xy(x, y):
        warnings.append(f"X/Y outside image {bounds.width}x{bounds.height}")

    return ImportCheck(x, y, z, t, False, tuple(warnings))

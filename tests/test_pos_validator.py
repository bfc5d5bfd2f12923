import pytest

from pos_validator import ViewportBounds, check_import_fields, parse_int, validate
from utils_error_handler import NoImageError

BOUNDS = ViewportBounds(100, 80, 5, 3)


def test_inside_bounds_is_unchanged():
    result = validate(10, 20, 2, 3, BOUNDS)
    assert (result.x, result.y, result.z, result.t) == (10, 20, 2, 3)
    assert not result.adjusted_zt
    assert not result.out_of_bounds_xy


@pytest.mark.parametrize("x, y", [(0, 10), (101, 10), (10, 0), (10, 81), (-5, -5)])
def test_xy_outside_is_reported_not_clamped(x, y):
    result = validate(x, y, 1, 1, BOUNDS)
    assert result.out_of_bounds_xy
    assert (result.x, result.y) == (x, y)


@pytest.mark.parametrize("z, t, expected", [(0, 1, (1, 1)), (9, 1, (5, 1)), (2, 7, (2, 3)), (-1, 0, (1, 1))])
def test_zt_are_clamped(z, t, expected):
    result = validate(50, 50, z, t, BOUNDS)
    assert (result.z, result.t) == expected
    assert result.adjusted_zt


def test_no_bounds_means_no_image():
    with pytest.raises(NoImageError):
        validate(1, 1, 1, 1, None)


def test_parse_int():
    assert parse_int(" 42 ") == 42
    assert parse_int("-3") == -3
    assert parse_int("4.5") is None
    assert parse_int("") is None
    assert parse_int(None) is None


def test_import_rejects_bad_xy():
    assert check_import_fields("a", "2").rejected
    assert check_import_fields("1", "").rejected


def test_import_defaults_zt_with_warning():
    check = check_import_fields("1", "2", None, "x")
    assert not check.rejected
    assert (check.z, check.t) == (1, 1)
    assert len(check.warnings) == 2


def test_import_out_of_bounds_is_only_a_warning():
    check = check_import_fields("500", "2", "1", "1", BOUNDS)
    assert not check.rejected
    assert check.x == 500
    assert any("outside" in w for w in check.warnings)


def test_bounds_describe():
    assert BOUNDS.describe() == "100x80x5x3"

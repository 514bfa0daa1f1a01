import json
import math

import pytest

from snowplow.encoder import dumps


def test_scalars():
    assert dumps(None) == "null"
    assert dumps(True) == "true"
    assert dumps(False) == "false"
    assert dumps(41) == "41"


def test_nan_is_null():
    assert dumps(math.nan) == "null"


def test_infinity_is_clamped():
    assert json.loads(dumps(math.inf)) == 1.7976931348623157e308
    assert json.loads(dumps(-math.inf)) == -1.7976931348623157e308


def test_integral_float_without_fraction():
    assert dumps(2.0) == "2"


def test_small_exponent_cleanup():
    assert dumps(1e-9) == "1e-9"


@pytest.mark.parametrize("value", [0.5, 1.25, 1e-7, 3.5e22, -0.001, 123456.789])
def test_float_round_trip(value):
    assert json.loads(dumps(value)) == value


def test_string_escapes():
    text = 'a"b\\c\nd\te\x01\x7f'
    out = dumps(text)
    assert "\\u0001" in out and "\\u007f" in out
    assert json.loads(out) == text


def test_non_ascii_kept():
    assert dumps("città") == '"città"'


def test_lone_surrogate_replaced():
    assert json.loads(dumps("a\ud800b")) == "a\ufffdb"


def test_keys_sorted_compact():
    assert dumps({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'


def test_indented_round_trip():
    value = {"z": {"y": [1, {"x": None}]}, "a": []}
    out = dumps(value, indent=2)
    assert json.loads(out) == value
    assert "\n  " in out
    assert "[]" in out


def test_tab_indentation():
    out = dumps([1], indent=1, tab=True)
    assert out == "[\n\t1\n]"


def test_invalid_type():
    with pytest.raises(TypeError):
        dumps(object())
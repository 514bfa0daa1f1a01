import time
from datetime import datetime, timedelta, timezone

import pytest

from snowplow import shortid
from snowplow.shortid import DEFAULT_ABC, Abc, ShortId

SEED1_ABC = "gzmZM7VINvOFcpho01x-fYPs8Q_urjq6RkiWGn4SHDdK5t2TAJbaBLEyUwlX9C3e"
EPOCH_TEXT = "2016-01-01 00:00:00 +0000 UTC"


def _expected(worker, alphabet):
    return f"ShortId(worker={worker}, epoch={EPOCH_TEXT}, abc=Abc{{alphabet='{alphabet}'))"


@pytest.fixture
def restore_default():
    original = shortid.get_default()
    yield
    shortid.set_default(original)


def test_get_default_instance():
    assert str(shortid.get_default()) == _expected(0, SEED1_ABC)


def test_set_default_replaces_instance(restore_default):
    assert str(shortid.get_default()) == _expected(0, SEED1_ABC)
    shortid.set_default(ShortId(1, DEFAULT_ABC, 2))
    assert str(shortid.get_default()) == _expected(
        1, "ip8bKduCDxnMQy-JrVHAN5h1s396jBvmFZOL0Pg2WTqwIE7f4ackXzoUSYlGt_eR"
    )


def test_generate_default_success():
    time.sleep(0.002)
    assert len(shortid.generate()) == 9
    time.sleep(0.002)
    assert len(shortid.generate()) == 9


@pytest.mark.parametrize("worker", [5, 31])
def test_new_success(worker):
    assert str(ShortId(worker, DEFAULT_ABC, 1)) == _expected(worker, SEED1_ABC)


def test_new_with_different_seed_shuffles_differently():
    assert str(ShortId(2, DEFAULT_ABC, 1)) == _expected(2, SEED1_ABC)
    assert str(ShortId(2, DEFAULT_ABC, 345234)) == _expected(
        2, "U8dEc3Hnuq_RfyDApaT1ZxQmYePBCNMkF4-KJSvhjw609I7GlbzsriOL52XVoWgt"
    )


def test_new_worker_above_31_error():
    with pytest.raises(ValueError):
        ShortId(32, DEFAULT_ABC, 1)


def test_new_incorrect_alphabet_error():
    with pytest.raises(ValueError):
        ShortId(1, "aasefvowefvjaHEFV", 1)


def test_generate_success():
    sid = ShortId(1, DEFAULT_ABC, 1)
    assert len(sid.generate()) == 9
    time.sleep(0.002)
    assert len(sid.generate()) == 9


def test_generate_internal_same_ms_appends_counter():
    sid = ShortId(7, DEFAULT_ABC, 1)
    epoch = datetime(2016, 1, 1, tzinfo=timezone.utc)
    tm = epoch + timedelta(days=100)
    first = sid.generate_internal(tm, epoch)
    second = sid.generate_internal(tm, epoch)
    third = sid.generate_internal(tm, epoch)
    assert len(first) == 9
    assert len(second) == 10
    assert second[9] == sid.abc.alphabet[1]
    assert third[9] == sid.abc.alphabet[2]
    assert sid.abc.alphabet.index(first[8]) % 32 == 7


def test_generate_internal_before_epoch_error():
    sid = ShortId(1, DEFAULT_ABC, 1)
    epoch = datetime(2016, 1, 1, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        sid.generate_internal(epoch - timedelta(seconds=1), epoch)


def test_abc_of_generator():
    sid = ShortId(1, DEFAULT_ABC, 1)
    assert str(sid.abc) == f"Abc{{alphabet='{SEED1_ABC}')"


def test_epoch():
    sid = ShortId(1, DEFAULT_ABC, 1)
    assert sid.epoch == datetime(2016, 1, 1, tzinfo=timezone.utc)


def test_worker():
    assert ShortId(25, DEFAULT_ABC, 1).worker == 25


def test_new_abc_success():
    assert str(Abc(DEFAULT_ABC, 1)) == f"Abc{{alphabet='{SEED1_ABC}')"


@pytest.mark.parametrize(
    "alphabet",
    [
        "asgliaeprugb",
        "1234567890qwertzuiopüäsdfghjklöä$<yxcvbnm,.->YXCVBNM;:_ASDFGHJKLQWERTZ",
    ],
)
def test_new_abc_wrong_length_error(alphabet):
    with pytest.raises(ValueError):
        Abc(alphabet, 1)


def test_new_abc_non_unique_error():
    assert Abc(DEFAULT_ABC, 1).alphabet == SEED1_ABC
    chars = list(DEFAULT_ABC)
    chars[5] = "A"
    with pytest.raises(ValueError):
        Abc("".join(chars), 1)


def test_encode_val0():
    abc = Abc(DEFAULT_ABC, 1)
    assert len(abc.encode(0, 1, 4)) == 1


def test_encode_val_small():
    abc = Abc(DEFAULT_ABC, 1)
    with pytest.raises(ValueError):
        abc.encode(48, 1, 4)
    assert len(abc.encode(48, 2, 4)) == 2


def test_encode_val_huge():
    abc = Abc(DEFAULT_ABC, 1)
    with pytest.raises(ValueError):
        abc.encode(214235345234524356, 14, 4)
    assert len(abc.encode(214235345234524356, 15, 4)) == 15


def test_encode_nsymbols0():
    abc = Abc(DEFAULT_ABC, 1)
    assert len(abc.encode(214235345234524356, 0, 4)) == 15


def test_encode_digits6():
    abc = Abc(DEFAULT_ABC, 1)
    assert len(abc.encode(214235345234524356, 0, 6)) == 10


def test_encode_digits6_is_deterministic():
    abc = Abc(DEFAULT_ABC, 1)
    assert abc.encode(0, 1, 6) == SEED1_ABC[0]
    assert abc.encode(64, 0, 6) == SEED1_ABC[0] + SEED1_ABC[1]


@pytest.mark.parametrize("digits", [3, 7, 2])
def test_encode_digits_wrong_error(digits):
    abc = Abc(DEFAULT_ABC, 1)
    with pytest.raises(ValueError):
        abc.encode(25, 0, digits)


@pytest.mark.parametrize("digits,length", [(4, 2), (5, 1), (6, 1)])
def test_encode_digits_allowed(digits, length):
    abc = Abc(DEFAULT_ABC, 1)
    assert len(abc.encode(25, 0, digits)) == length


def test_alphabet():
    assert Abc(DEFAULT_ABC, 1).alphabet == SEED1_ABC
import json
import re

import pytest

from snowplow.jq import JQError, func_map, jq, parse


@pytest.fixture
def data():
    return {
        "metadata": {"labels": {"krateo.io/composition-id": "XXXXXX"}},
        "__internal_ep_ref_name": "tizio-clientconfig",
        "firstName": "Charles",
        "age": 41,
        "location": {"city": "San Fracisco", "postalCode": "94103"},
        "hobbies": ["chess", "netflix"],
        "id": 1,
    }


def run(query, value):
    return list(parse(query).run(value))


def test_field_access(data):
    assert run(".age", data) == [41]
    assert run(".location.city", data) == ["San Fracisco"]
    assert run(".__internal_ep_ref_name", data) == ["tizio-clientconfig"]


def test_join(data):
    assert run('.hobbies | join(",")', data) == ["chess,netflix"]
    assert jq('.hobbies | join(",")', data) == '"chess,netflix"'


def test_string_concat(data):
    assert run('"/todos/" + (.id|tostring) +  "/comments"', data) == ["/todos/1/comments"]


def test_object_with_bracket_key(data):
    out = jq('{firstName: .metadata.labels["krateo.io/composition-id"]}', data)
    assert json.loads(out) == {"firstName": "XXXXXX"}


def test_iterate_comma_and_array(data):
    assert run(".hobbies[]", data) == ["chess", "netflix"]
    assert run(".age, .id", data) == [41, 1]
    assert run("[.hobbies[] | ascii_upcase]", data) == [["CHESS", "NETFLIX"]]


def test_map_select_length(data):
    assert run('.hobbies | map(select(startswith("c")))', data) == [["chess"]]
    assert run(".hobbies | length", data) == [2]


def test_alternative_and_conditional(data):
    assert run(".missing // .firstName", data) == ["Charles"]
    assert run('if .age > 40 then "old" else "young" end', data) == ["old"]


def test_keys_sorted(data):
    assert run(".location | keys", data) == [["city", "postalCode"]]


def test_index_error(data):
    with pytest.raises(JQError):
        run(".age.foo", data)


def test_optional_suppresses_error(data):
    assert run(".age.foo?", data) == []


def test_syntax_error():
    with pytest.raises(JQError):
        parse(".foo | ")
    with pytest.raises(JQError):
        parse("nosuchfunction")


def test_identity_round_trip(data):
    assert json.loads(jq(".", data)) == data


def test_func_map():
    funcs = func_map()
    assert set(funcs) == {"now", "empty", "jq"}
    assert funcs["empty"]("   ") is True
    assert funcs["empty"](" x ") is False
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", funcs["now"]())
    assert funcs["jq"](".a", {"a": 1}) == "1"
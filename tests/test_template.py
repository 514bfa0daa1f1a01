import json

import pytest

from snowplow.jq import JQError
from snowplow.template import JQTemplate

SAMPLE = """
{
    "metadata": {
        "labels": {
            "krateo.io/composition-id": "XXXXXX"
        }
    },
    "__internal_ep_ref_name": "tizio-clientconfig",
    "__internal_ep_ref_namespace": "demo-system",
    "firstName": "Charles",
    "lastName": "Doe",
    "age": 41,
    "location": {
        "city": "San Fracisco",
        "postalCode": "94103"
    },
    "hobbies": [
        "chess",
        "netflix"
    ],
    "id": 1
}
"""


@pytest.fixture
def data():
    return json.loads(SAMPLE)


@pytest.fixture
def tpl():
    return JQTemplate("${", "}")


@pytest.mark.parametrize(
    "text, want",
    [
        ("${ .age }", "41"),
        (" .age }}", " .age }}"),
        ("${ .location.city }", "San Fracisco"),
        ("hello world", "hello world"),
        ('${ .hobbies | join(",") }', "chess,netflix"),
        ("${ .id }", "1"),
        ('${ "/todos/" + (.id|tostring) +  "/comments" }', "/todos/1/comments"),
        ("${ .__internal_ep_ref_name }", "tizio-clientconfig"),
        ("${ .__internal_ep_ref_namespace }", "demo-system"),
    ],
)
def test_execute(tpl, data, text, want):
    assert tpl.execute(text, data) == want


@pytest.mark.parametrize(
    "text, want, ok",
    [
        ("${ .age }", ".age", True),
        (" .age }}", " .age }}", False),
        ("${ .location.city }", ".location.city", True),
        ("hello world", "hello world", False),
        ('${ .hobbies | join(",") }', '.hobbies | join(",")', True),
    ],
)
def test_parse_query(tpl, text, want, ok):
    assert tpl.parse_query(text) == (want, ok)


def test_parse_query_requires_whitespace_after_left_delimiter(tpl):
    assert tpl.parse_query("${.age}") == ("${.age}", False)


def test_q_object_with_bracket_key(tpl, data):
    result = tpl.q('{firstName: .metadata.labels["krateo.io/composition-id"]}', data)
    assert result == [{"firstName": "XXXXXX"}]


def test_q_join(tpl, data):
    assert tpl.q('.hobbies | join(",")', data) == ["chess,netflix"]


def test_q_empty_query_returns_empty_list(tpl, data):
    assert tpl.q("", data) == []


def test_q_multiple_results(tpl, data):
    assert tpl.q(".hobbies[]", data) == ["chess", "netflix"]


def test_q_invalid_query_raises(tpl, data):
    with pytest.raises(JQError):
        tpl.q(".age |", data)


def test_execute_invalid_query_raises(tpl, data):
    with pytest.raises(JQError):
        tpl.execute("${ .age | nosuchfunction }", data)


def test_execute_multiple_strings_are_not_unquoted(tpl, data):
    assert tpl.execute("${ .hobbies[] }", data) == '"chess""netflix"'


def test_execute_missing_key_gives_null(tpl, data):
    assert tpl.execute("${ .missing }", data) == "null"


def test_execute_object_result_is_compact_json(tpl, data):
    assert tpl.execute("${ {a: .id, b: .age} }", data) == '{"a":1,"b":41}'


def test_execute_unquotes_escapes(tpl, data):
    assert tpl.execute('${ "a\\nb" }', data) == "a\nb"


def test_execute_without_unquote_keeps_quotes(tpl, data):
    tpl.unquote = False
    assert tpl.execute("${ .location.city }", data) == '"San Fracisco"'


def test_custom_delimiters(data):
    tpl = JQTemplate("{{", "}}")
    assert tpl.execute("{{ .age }}", data) == "41"
    assert tpl.parse_query("${ .age }") == ("${ .age }", False)
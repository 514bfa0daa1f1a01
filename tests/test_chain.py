import pytest

from snowplow.chain import (
    Chain,
    Headers,
    Request,
    Response,
    canonical_header_key,
    not_found_handler,
)


def tag_middleware(tag):
    def constructor(handler):
        def wrapped(request, response):
            response.write(tag)
            handler(request, response)

        return wrapped

    return constructor


def app(request, response):
    response.write("app\n")


def serve(handler):
    response = Response()
    handler(Request(method="GET", url="/"), response)
    return response


def test_new_adds_constructors():
    def c1(h):
        return None

    def c2(h):
        return h

    chain = Chain(c1, c2)
    assert chain.constructors == (c1, c2)


def test_then_works_with_no_middleware():
    assert Chain().then(app) is app


def test_then_treats_none_as_not_found():
    assert Chain().then(None) is not_found_handler


def test_not_found_handler_replies_404():
    response = serve(Chain().then(None))
    assert response.status_code == 404
    assert response.text == "404 page not found\n"


def test_then_with_plain_function():
    def handler(request, response):
        response.write_header(200)

    response = serve(Chain().then(handler))
    assert response.status_code == 200


def test_then_orders_handlers_correctly():
    chained = Chain(tag_middleware("t1\n"), tag_middleware("t2\n"), tag_middleware("t3\n")).then(app)
    assert serve(chained).text == "t1\nt2\nt3\napp\n"


def test_append_adds_handlers_correctly():
    chain = Chain(tag_middleware("t1\n"), tag_middleware("t2\n"))
    new_chain = chain.append(tag_middleware("t3\n"), tag_middleware("t4\n"))
    assert len(chain.constructors) == 2
    assert len(new_chain.constructors) == 4
    assert serve(new_chain.then(app)).text == "t1\nt2\nt3\nt4\napp\n"


def test_append_respects_immutability():
    chain = Chain(tag_middleware(""))
    new_chain = chain.append(tag_middleware(""))
    assert new_chain is not chain
    assert len(chain) == 1
    assert len(new_chain) == 2


def test_extend_adds_handlers_correctly():
    chain1 = Chain(tag_middleware("t1\n"), tag_middleware("t2\n"))
    chain2 = Chain(tag_middleware("t3\n"), tag_middleware("t4\n"))
    new_chain = chain1.extend(chain2)
    assert len(chain1.constructors) == 2
    assert len(chain2.constructors) == 2
    assert len(new_chain.constructors) == 4
    assert serve(new_chain.then(app)).text == "t1\nt2\nt3\nt4\napp\n"


def test_extend_respects_immutability():
    chain = Chain(tag_middleware(""))
    new_chain = chain.extend(Chain(tag_middleware("")))
    assert len(chain) == 1
    assert len(new_chain) == 2


def test_chain_reusable():
    chain = Chain(tag_middleware("a"))
    first = serve(chain.then(app)).text
    second = serve(chain.then(app)).text
    assert first == second == "aapp\n"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("content-type", "Content-Type"),
        ("ACCESS-CONTROL-ALLOW-ORIGIN", "Access-Control-Allow-Origin"),
        ("x-header-2", "X-Header-2"),
        ("bad header", "bad header"),
        ("", ""),
    ],
)
def test_canonical_header_key(raw, expected):
    assert canonical_header_key(raw) == expected


def test_headers_case_insensitive_and_multi_valued():
    headers = Headers({"vary": "Origin"})
    headers.add("VARY", "Accept")
    assert headers.values("Vary") == ["Origin", "Accept"]
    assert headers.get("vary") == "Origin"
    headers.set("Vary", "X")
    assert headers.values("vary") == ["X"]
    assert headers.get("missing") == ""
    assert "vary" in headers


def test_headers_copy_is_deep():
    headers = Headers([("A", "1")])
    clone = headers.copy()
    clone.add("A", "2")
    assert headers.values("A") == ["1"]
    assert clone.values("A") == ["1", "2"]


def test_response_ignores_second_write_header():
    response = Response()
    response.write_header(201)
    response.write_header(500)
    assert response.status_code == 201


def test_response_rejects_invalid_code():
    with pytest.raises(ValueError):
        Response().write_header(0)
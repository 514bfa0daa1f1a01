# snowplow

Small building blocks for HTTP services, with no dependencies beyond the
standard library. Each module can be used on its own:

- `snowplow.shortid` – short, unique, non-sequential, URL-friendly ids
  (`generate()`, `get_default()`, `set_default()`, `ShortId`, `Abc`).
- `snowplow.chain` – an in-memory request/response model (`Request`,
  `Response`, `Headers`, `canonical_header_key`) and an immutable middleware
  `Chain`. A handler is any callable `handler(request, response)`; a
  middleware takes a handler and returns a new one.
- `snowplow.cors` – CORS handling for that model (`Cors`, `Options`,
  `Wildcard`, `parse_header_list`, `cors_middleware`).
- `snowplow.status` – status payloads (`Status`, `StatusReason`) and the
  helpers `encode`, `bad_request`, `unauthorized`, `forbidden`, `not_found`,
  `method_not_allowed`, `internal_error` and `service_unavailable`, which
  write a status as a JSON body with its code.
- `snowplow.kubeconfig` – builds a JSON kubeconfig document with a single
  cluster, context and user named `krateo` (`marshal`, `KubeConfig` and its
  parts).
- `snowplow.prettylog` – a `logging` formatter and handler that write each
  record as indented JSON (`PrettyJSONFormatter`, `new_pretty_json_handler`).
- `snowplow.encoder` – compact or indented JSON with sorted keys (`dumps`).
- `snowplow.jq` – an interpreter for a commonly used subset of the jq query
  language (`parse`, `Query`, `jq`, `JQError`, `func_map`).
- `snowplow.template` – `JQTemplate`, which evaluates strings such as
  `${ .name }` as jq queries and leaves other text unchanged.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Examples

Short ids:

```python
from snowplow.shortid import DEFAULT_ABC, ShortId, generate

generate()                  # a 9-symbol id such as 'NVDve6-9Q'
sid = ShortId(1, DEFAULT_ABC, 1)   # worker 1, seed 1
sid.generate()
```

The worker must lie in 0–31 and the alphabet must hold 64 unique
characters; otherwise `ValueError` is raised. Ids requested within the same
millisecond get a counter appended and are longer.

Middleware chains with CORS:

```python
from snowplow.chain import Chain, Request, Response
from snowplow.cors import Options, cors_middleware

def app(request, response):
    response.write(b"hello")

handler = Chain(cors_middleware(Options(allowed_origins=["http://*.example.com"]))).then(app)

request = Request(method="GET", url="/")
request.headers.set("Origin", "http://api.example.com")
response = Response()
handler(request, response)
response.headers.get("Access-Control-Allow-Origin")   # 'http://api.example.com'
response.text                                          # 'hello'
```

`Chain(m1, m2).then(h)` is `m1(m2(h))`; `append` and `extend` return new
chains. `then(None)` uses `not_found_handler`, which answers 404.

Status payloads:

```python
from snowplow.chain import Response
from snowplow.status import Status, not_found

Status.from_code(404, ValueError("missing")).to_dict()
# {'kind': 'Status', 'apiVersion': 'v1', 'status': 'Failure',
#  'message': 'missing', 'reason': 'NotFound', 'code': 404}

response = Response()
not_found(response, "no such item")
response.status_code                      # 404
response.headers.get("Content-Type")      # 'application/json'
```

Kubeconfig:

```python
from snowplow.kubeconfig import marshal

marshal("https://cluster.example.com:6443", username="cyberjoker")
# b'{"apiVersion":"v1","clusters":[...],"current-context":"krateo",...}'
```

Logging:

```python
import logging
from snowplow.prettylog import new_pretty_json_handler

log = logging.getLogger("app")
log.addHandler(new_pretty_json_handler(level=logging.DEBUG))
log.setLevel(logging.DEBUG)
log.info("started", extra={"port": 8080})
```

Each record becomes an indented JSON object with `time`, `level`, `msg` and
any extra attributes.

jq queries and templates:

```python
from snowplow.jq import jq
from snowplow.template import JQTemplate

data = {"id": 1, "hobbies": ["chess", "netflix"]}

jq('.hobbies | join(",")', data)          # '"chess,netflix"'

tpl = JQTemplate("${", "}")
tpl.execute('${ .hobbies | join(",") }', data)                  # 'chess,netflix'
tpl.execute('${ "/todos/" + (.id|tostring) + "/comments" }', data)  # '/todos/1/comments'
tpl.execute("hello world", data)                                # 'hello world'
tpl.q(".hobbies[]", data)                                       # ['chess', 'netflix']
```

## What it does not do

- There is no HTTP server and no HTTP client. `Request` and `Response` are
  plain in-memory objects; connecting handlers to a network server is left
  to the caller.
- `snowplow.kubeconfig` only produces the document; it does not talk to a
  cluster.
- The jq interpreter covers paths, slices, iteration, pipes, commas,
  arithmetic, comparisons, `and`/`or`/`//`, `if`, `try`, object and array
  construction and a set of built-in functions. `reduce`, `foreach`, `def`,
  `as`, `label`, modules and string interpolation are not supported and
  raise `JQError`.
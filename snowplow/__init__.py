"""HTTP plumbing helpers: short ids, middleware chains, CORS, status payloads, kubeconfig, JSON logging and jq-style templates."""

__version__ = "0.1.0"

__all__ = [
    "chain",
    "cors",
    "encoder",
    "jq",
    "kubeconfig",
    "prettylog",
    "shortid",
    "status",
    "template",
]
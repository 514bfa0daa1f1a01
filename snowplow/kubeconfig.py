"""Generation of kubeconfig documents for a single endpoint."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "DEFAULT_CLUSTER_NAME",
    "ClusterInfo",
    "NamedCluster",
    "Context",
    "NamedContext",
    "CertInfo",
    "NamedUser",
    "KubeConfig",
    "marshal",
]

DEFAULT_CLUSTER_NAME = "krateo"


def _go_json(obj: Any) -> str:
    text = json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


@dataclass
class ClusterInfo:
    """Cluster connection data."""

    certificate_authority_data: str = ""
    server: str = ""
    proxy_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"certificate-authority-data": self.certificate_authority_data}
        if self.proxy_url:
            data["proxy-url"] = self.proxy_url
        data["server"] = self.server
        return data


@dataclass
class NamedCluster:
    cluster: ClusterInfo
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"cluster": self.cluster.to_dict(), "name": self.name}


@dataclass
class Context:
    """A pairing of cluster and user."""

    cluster: str
    user: str

    def to_dict(self) -> dict[str, Any]:
        return {"cluster": self.cluster, "user": self.user}


@dataclass
class NamedContext:
    context: Context
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"context": self.context.to_dict(), "name": self.name}


@dataclass
class CertInfo:
    """Client certificate authentication data."""

    client_certificate_data: str = ""
    client_key_data: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "client-certificate-data": self.client_certificate_data,
            "client-key-data": self.client_key_data,
        }


@dataclass
class NamedUser:
    user: CertInfo
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"user": self.user.to_dict(), "name": self.name}


@dataclass
class KubeConfig:
    """A kubeconfig document."""

    clusters: list[NamedCluster] = field(default_factory=list)
    contexts: list[NamedContext] = field(default_factory=list)
    current_context: str = ""
    users: list[NamedUser] = field(default_factory=list)
    api_version: str = "v1"
    kind: str = "Config"

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "clusters": [c.to_dict() for c in self.clusters],
            "contexts": [c.to_dict() for c in self.contexts],
            "current-context": self.current_context,
            "kind": self.kind,
            "users": [u.to_dict() for u in self.users],
        }

    def to_json(self) -> bytes:
        return _go_json(self.to_dict()).encode("utf-8")


def marshal(
    server_url: str,
    certificate_authority_data: str = "",
    username: str = "",
    client_certificate_data: str = "",
    client_key_data: str = "",
) -> bytes:
    """Return a JSON kubeconfig with one cluster, context and user."""
    config = KubeConfig(
        clusters=[
            NamedCluster(
                cluster=ClusterInfo(
                    certificate_authority_data=certificate_authority_data,
                    server=server_url,
                ),
                name=DEFAULT_CLUSTER_NAME,
            )
        ],
        contexts=[
            NamedContext(
                context=Context(cluster=DEFAULT_CLUSTER_NAME, user=username),
                name=DEFAULT_CLUSTER_NAME,
            )
        ],
        current_context=DEFAULT_CLUSTER_NAME,
        users=[
            NamedUser(
                user=CertInfo(
                    client_certificate_data=client_certificate_data,
                    client_key_data=client_key_data,
                ),
                name=username,
            )
        ],
    )
    return config.to_json()
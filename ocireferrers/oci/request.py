from dataclasses import dataclass, field
from urllib.parse import urlencode

from ocireferrers.oci.host import DOCKER_HUB, DOCKER_IO, RegistryHost


def is_proxy(host: str, namespace: str) -> bool:
    """Return True if `host` serves content on behalf of `namespace`"""
    if host == namespace:
        return False
    return not (namespace == DOCKER_IO and host == DOCKER_HUB)


@dataclass(slots=True)
class Request:
    """A request against a single registry host"""

    host: RegistryHost
    method: str
    path: str
    query: list[tuple[str, str]] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)
    scope: str | None = None

    def __str__(self):
        url = self.url
        if self.query:
            url += f"?{urlencode(self.query)}"
        return f"{self.method} {url}"

    @property
    def url(self) -> str:
        return f"{self.host.base_url}{self.path}"

    def add_query(self, key: str, value: str):
        if not key:
            raise ValueError("Query parameter name must not be empty")
        self.query.append((key, value))

    def add_namespace(self, namespace: str):
        """Tell a mirror which upstream registry the request is for

        ref: https://github.com/containerd/containerd/blob/main/docs/hosts.md
        """
        if is_proxy(self.host.host, namespace):
            self.add_query("ns", namespace)


def build_request(
    host: RegistryHost, method: str, repository: str, *segments: str
) -> Request:
    path = "/".join(["", repository, *segments])
    return Request(host=host, method=method, path=path)

import enum
from dataclasses import dataclass
from urllib.parse import urlparse

DOCKER_IO = "docker.io"
DOCKER_HUB = "registry-1.docker.io"


class HostCapabilities(enum.Flag):
    """Registry API surfaces a host is trusted to serve"""

    NONE = 0
    PULL = enum.auto()
    RESOLVE = enum.auto()
    PUSH = enum.auto()
    REFERRERS = enum.auto()

    def includes(self, capability: "HostCapabilities") -> bool:
        return bool(capability) and (self & capability) == capability

    @classmethod
    def parse(cls, value: str) -> "HostCapabilities":
        """Parse a comma separated list like 'pull,resolve'"""
        result = cls.NONE
        for name in value.split(","):
            name = name.strip()
            if not name:
                continue
            try:
                result |= cls[name.upper()]
            except KeyError:
                raise ValueError(f"Unknown host capability: {name!r}") from None
        return result


MIRROR_CAPABILITIES = HostCapabilities.PULL | HostCapabilities.RESOLVE
ORIGIN_CAPABILITIES = (
    HostCapabilities.PULL
    | HostCapabilities.RESOLVE
    | HostCapabilities.PUSH
    | HostCapabilities.REFERRERS
)


@dataclass(frozen=True, slots=True)
class RegistryHost:
    host: str
    capabilities: HostCapabilities = ORIGIN_CAPABILITIES
    scheme: str = "https"
    path: str = "/v2"

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}{self.path}"


def _host_from_url(
    url: str, capabilities: HostCapabilities, insecure: bool
) -> RegistryHost:
    if "://" not in url:
        url = f"{'http' if insecure else 'https'}://{url}"
    parts = urlparse(url)
    host = DOCKER_HUB if parts.netloc == DOCKER_IO else parts.netloc
    return RegistryHost(
        host=host,
        capabilities=capabilities,
        scheme=parts.scheme,
        path=parts.path.rstrip("/") or "/v2",
    )


def configure_hosts(
    hostname: str,
    mirrors: tuple[str, ...] | list[str] = (),
    mirror_capabilities: HostCapabilities = MIRROR_CAPABILITIES,
    insecure: bool = False,
) -> list[RegistryHost]:
    """Return the hosts to try for `hostname`, mirrors first and origin last"""
    hosts = [_host_from_url(m, mirror_capabilities, insecure) for m in mirrors]
    hosts.append(_host_from_url(hostname, ORIGIN_CAPABILITIES, insecure))
    return hosts


def filter_hosts(
    hosts: list[RegistryHost], *capabilities: HostCapabilities
) -> list[RegistryHost]:
    """Return the hosts holding at least one of `capabilities`, order kept"""
    return [
        host
        for host in hosts
        if any(host.capabilities.includes(cap) for cap in capabilities)
    ]

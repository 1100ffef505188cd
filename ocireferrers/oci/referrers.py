"""Resolve the referrers of a digest across the configured registry hosts.

Each host is tried in order with every fetch strategy its capabilities
allow. The first success ends the walk, a not-found answer moves on to
the next strategy or host, any other error ends the walk immediately.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Sequence

from ocireferrers.oci.client import Client, ContentStream
from ocireferrers.oci.descriptor import INDEX_MEDIA_TYPE, Descriptor
from ocireferrers.oci.digest import Digest
from ocireferrers.oci.errors import NotFoundError, is_not_found
from ocireferrers.oci.host import HostCapabilities, RegistryHost, filter_hosts
from ocireferrers.oci.reference import Reference, repository_scope
from ocireferrers.oci.request import Request, build_request

ARTIFACT_TYPE_QUERY = "artifactType"


def referrers_request(
    host: RegistryHost,
    reference: Reference,
    digest: Digest,
    artifact_types: Sequence[str],
) -> Request:
    """GET <base>/<repository>/referrers/<digest>

    ref: https://github.com/opencontainers/distribution-spec/blob/main/spec.md#listing-referrers
    """
    request = build_request(host, "GET", reference.repository, "referrers", str(digest))
    for artifact_type in artifact_types:
        request.add_query(ARTIFACT_TYPE_QUERY, artifact_type)
    request.add_namespace(reference.hostname)
    return request


def signature_tag_request(
    host: RegistryHost,
    reference: Reference,
    digest: Digest,
    artifact_types: Sequence[str],
) -> Request:
    """GET <base>/<repository>/manifests/<algorithm>-<encoded>.sig

    Registries without the referrers API store signatures as a manifest
    under a tag derived from the signed digest. Artifact types can't be
    filtered on this path.
    """
    request = build_request(
        host, "GET", reference.repository, "manifests", digest.signature_tag()
    )
    request.add_namespace(reference.hostname)
    return request


@dataclass(frozen=True, slots=True)
class Strategy:
    name: str
    capability: HostCapabilities
    build: Callable[[RegistryHost, Reference, Digest, Sequence[str]], Request]


STRATEGIES: tuple[Strategy, ...] = (
    Strategy("referrers", HostCapabilities.REFERRERS, referrers_request),
    Strategy("signature tag", HostCapabilities.RESOLVE, signature_tag_request),
)


class ReferrerFetcher:
    """Fetch the referrers of digests in the repository of `reference`"""

    def __init__(
        self,
        client: Client,
        reference: Reference,
        hosts: list[RegistryHost],
        logger: logging.Logger | None = None,
        strategies: Sequence[Strategy] = STRATEGIES,
    ):
        self.client = client
        self.reference = reference
        self.hosts = hosts
        self.logger = logger or logging.getLogger(__name__)
        self.strategies = tuple(strategies)

    def fetch_referrers(
        self,
        digest: Digest | str,
        artifact_types: Sequence[str] = (),
        cancel: threading.Event | None = None,
    ) -> tuple[ContentStream, Descriptor]:
        """Return the referrers body of `digest` and a descriptor for it

        The descriptor always carries the image index media type and no
        digest, the registry does not tell us the digest of a referrers
        response. Closing the returned stream is up to the caller.

        :raises NotFoundError: no host could provide the referrers.
        """
        digest = Digest.parse(digest)
        log = logging.LoggerAdapter(self.logger, {"digest": str(digest)})

        artifact_types = tuple(artifact_types)
        hosts = filter_hosts(self.hosts, *(s.capability for s in self.strategies))
        if not hosts:
            raise NotFoundError("no pull hosts")

        scope = repository_scope(self.reference, push=False)

        for host in hosts:
            log.debug(
                "Trying to fetch referrers of %s from %s (capabilities: %s)",
                digest,
                host.host,
                host.capabilities,
            )
            for strategy in self.strategies:
                if not host.capabilities.includes(strategy.capability):
                    continue
                request = strategy.build(host, self.reference, digest, artifact_types)
                request.scope = scope
                log.debug("Trying %s strategy: %s", strategy.name, request)
                try:
                    stream, length = self.client.open(
                        request,
                        INDEX_MEDIA_TYPE,
                        0,
                        allow_fallback=True,
                        cancel=cancel,
                    )
                except Exception as e:
                    if not is_not_found(e):
                        raise
                    log.debug("%s", e)
                    continue
                return stream, Descriptor(mediaType=INDEX_MEDIA_TYPE, size=length)

        raise NotFoundError("could not be found at any host")

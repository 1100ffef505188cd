"""OCI referrers client library for Python

This module resolves the referrers (signatures, attestations, SBOMs) of a
digest in an OCI registry, using the referrers API where a host offers it
and the signature tag convention where it does not.
"""
import logging
import threading
from typing import Sequence

from .client import Client, ContentStream
from .descriptor import INDEX_MEDIA_TYPE, Descriptor
from .digest import Digest
from .errors import (
    AuthenticationError,
    ContentSizeMismatch,
    InvalidDigestError,
    InvalidReferenceError,
    NotFoundError,
    OCIError,
    OperationCancelled,
    RegistryError,
    is_not_found,
)
from .host import HostCapabilities, RegistryHost, configure_hosts, filter_hosts
from .index import Index, Manifest, list_referrers
from .reference import Reference, repository_scope
from .referrers import STRATEGIES, ReferrerFetcher, Strategy

logger = logging.getLogger(__name__)


def fetch_referrers(
    reference: str | Reference,
    client: Client,
    digest: str | Digest | None = None,
    artifact_types: Sequence[str] = (),
    hosts: list[RegistryHost] | None = None,
    cancel: threading.Event | None = None,
) -> tuple[ContentStream, Descriptor]:
    """Fetch the referrers of a digest

    :param reference: '<hostname>/<repository>[@<digest>]' to look in.
    :param client: The OCI client to use.
    :param digest: The subject digest, defaults to the digest of `reference`.
    :param artifact_types: Only return referrers of these artifact types.
    :param hosts: Hosts to try in order, defaults to the reference hostname.
    :param cancel: Abort before the next registry request once set.
    """
    if not isinstance(reference, Reference):
        reference = Reference.parse(reference)
    if digest is None:
        if reference.digest is None:
            raise InvalidDigestError(f"{reference} does not include a digest")
        digest = reference.digest
    if hosts is None:
        hosts = configure_hosts(reference.hostname)

    logger.info("Fetching referrers of %s@%s", reference.locator, digest)
    fetcher = ReferrerFetcher(client=client, reference=reference, hosts=hosts)
    return fetcher.fetch_referrers(digest, artifact_types=artifact_types, cancel=cancel)


__all__ = [
    "AuthenticationError",
    "Client",
    "ContentSizeMismatch",
    "ContentStream",
    "Descriptor",
    "Digest",
    "HostCapabilities",
    "INDEX_MEDIA_TYPE",
    "Index",
    "InvalidDigestError",
    "InvalidReferenceError",
    "Manifest",
    "NotFoundError",
    "OCIError",
    "OperationCancelled",
    "Reference",
    "ReferrerFetcher",
    "RegistryError",
    "RegistryHost",
    "STRATEGIES",
    "Strategy",
    "configure_hosts",
    "fetch_referrers",
    "filter_hosts",
    "is_not_found",
    "list_referrers",
    "repository_scope",
]

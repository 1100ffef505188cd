import json
from typing import Callable

import httpx
import pytest

from ocireferrers.oci import Client
from ocireferrers.oci.descriptor import INDEX_MEDIA_TYPE, MANIFEST_MEDIA_TYPE

REGISTRY = "registry.example.com"
MIRROR = "mirror.example.com"
SUBJECT = "sha256:abc123"
REFERRERS_PATH = "/v2/org/app/referrers/sha256:abc123"
SIGNATURE_PATH = "/v2/org/app/manifests/sha256-abc123.sig"


class FakeRegistry:
    """Registry endpoints served through httpx.MockTransport

    Unknown paths answer 404 with an OCI error body.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.url.netloc.decode("ascii"), request.url.path))
        if handler is None:
            return httpx.Response(
                404,
                json={"errors": [{"code": "NOT_FOUND", "message": "not found"}]},
            )
        return handler(request)

    def add(self, host: str, path: str, status_code: int = 200, **kwargs):
        self.routes[(host, path)] = lambda request: httpx.Response(status_code, **kwargs)

    def route(self, host: str, path: str):
        def decorator(handler):
            self.routes[(host, path)] = handler
            return handler

        return decorator

    @property
    def paths(self) -> list[tuple[str, str]]:
        return [(r.url.netloc.decode("ascii"), r.url.path) for r in self.requests]


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def client(registry) -> Client:
    with Client(transport=httpx.MockTransport(registry)) as client:
        yield client


@pytest.fixture
def referrers_index() -> bytes:
    """An OCI referrers response listing a single sigstore bundle"""
    return json.dumps(
        {
            "schemaVersion": 2,
            "mediaType": INDEX_MEDIA_TYPE,
            "manifests": [
                {
                    "mediaType": MANIFEST_MEDIA_TYPE,
                    "digest": "sha256:def456",
                    "size": 1024,
                    "artifactType": "application/vnd.dev.sigstore.bundle.v0.3+json",
                }
            ],
        }
    ).encode("utf-8")


@pytest.fixture
def signature_manifest() -> bytes:
    """A cosign signature manifest as stored under the '.sig' tag"""
    return json.dumps(
        {
            "schemaVersion": 2,
            "mediaType": MANIFEST_MEDIA_TYPE,
            "config": {
                "mediaType": "application/vnd.oci.image.config.v1+json",
                "digest": "sha256:c0ffee",
                "size": 233,
            },
            "layers": [
                {
                    "mediaType": "application/vnd.dev.cosign.simplesigning.v1+json",
                    "digest": "sha256:5161",
                    "size": 250,
                    "annotations": {"dev.cosignproject.cosign/signature": "MEUC"},
                }
            ],
        }
    ).encode("utf-8")

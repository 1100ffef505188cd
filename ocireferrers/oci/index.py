import json

from pydantic import BaseModel

from ocireferrers.oci.descriptor import INDEX_MEDIA_TYPE, MANIFEST_MEDIA_TYPE, Descriptor


class Index(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/image-index.md
    """

    artifactType: str | None = None
    manifests: list[Descriptor] = []
    subject: Descriptor | None = None
    annotations: dict[str, str] | None = None
    schemaVersion: int = 2
    mediaType: str = INDEX_MEDIA_TYPE


class Manifest(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/manifest.md
    """

    config: Descriptor
    artifactType: str | None = None
    layers: list[Descriptor] = []
    subject: Descriptor | None = None
    annotations: dict[str, str] | None = None
    schemaVersion: int = 2
    mediaType: str = MANIFEST_MEDIA_TYPE


def list_referrers(data: bytes) -> list[Descriptor]:
    """Return the referrer descriptors contained in a fetched referrers body.

    The referrers API answers with an image index listing one descriptor
    per referrer. The signature tag holds a single image manifest in which
    every signature is a layer.
    """
    try:
        document = json.loads(data)
    except json.JSONDecodeError as e:
        raise ValueError(f"Referrers document is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise ValueError(
            f"Referrers document should be a JSON object, got {type(document).__name__}"
        )
    if "manifests" in document:
        return Index.model_validate(document).manifests
    if "layers" in document:
        return Manifest.model_validate(document).layers
    raise ValueError(f"Unknown referrers document type: {document.get('mediaType')}")

from pydantic import BaseModel, Field

INDEX_MEDIA_TYPE = "application/vnd.oci.image.index.v1+json"
MANIFEST_MEDIA_TYPE = "application/vnd.oci.image.manifest.v1+json"


class Descriptor(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/descriptor.md
    """

    mediaType: str
    size: int = Field(default=0, ge=0)
    digest: str | None = None
    urls: list[str] | None = None
    annotations: dict[str, str] | None = None
    artifactType: str | None = None

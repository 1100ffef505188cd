import re
from dataclasses import dataclass

from ocireferrers.oci.errors import InvalidDigestError

ALGORITHM_PATTERN = r"[a-z0-9]+(?:[+._-][a-z0-9]+)*"
ENCODED_PATTERN = r"[a-zA-Z0-9=_-]+"
DIGEST_PATTERN = rf"{ALGORITHM_PATTERN}:{ENCODED_PATTERN}"
DIGEST_RE = re.compile(
    rf"(?P<algorithm>{ALGORITHM_PATTERN}):(?P<encoded>{ENCODED_PATTERN})"
)

SIGNATURE_TAG_SUFFIX = ".sig"


@dataclass(frozen=True, slots=True)
class Digest:
    """Content addressable identifier

    ref: https://github.com/opencontainers/image-spec/blob/main/descriptor.md#digests
    """

    algorithm: str
    encoded: str

    def __str__(self):
        return f"{self.algorithm}:{self.encoded}"

    @classmethod
    def parse(cls, value: "str | Digest") -> "Digest":
        """Parse a '<algorithm>:<encoded>' string into a Digest"""
        if isinstance(value, Digest):
            return value
        match = DIGEST_RE.fullmatch(value)
        if match is None:
            raise InvalidDigestError(f"Invalid digest: {value!r}")
        return cls(algorithm=match["algorithm"], encoded=match["encoded"])

    def signature_tag(self) -> str:
        """Return the tag cosign-style signatures are stored under.

        Registries without a referrers API keep signatures as a manifest
        tagged '<algorithm>-<encoded>.sig'.
        """
        return str(self).replace(":", "-", 1) + SIGNATURE_TAG_SUFFIX

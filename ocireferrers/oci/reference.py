from dataclasses import dataclass

from ocireferrers.oci.digest import Digest
from ocireferrers.oci.errors import InvalidReferenceError
from ocireferrers.oci.host import DOCKER_IO


@dataclass(frozen=True, slots=True)
class Reference:
    """A fully qualified image reference

    '<hostname>/<repository>[:<tag>][@<digest>]'
    """

    hostname: str
    repository: str
    tag: str | None = None
    digest: Digest | None = None

    def __str__(self):
        value = self.locator
        if self.tag:
            value += f":{self.tag}"
        if self.digest:
            value += f"@{self.digest}"
        return value

    @property
    def locator(self) -> str:
        return f"{self.hostname}/{self.repository}"

    @classmethod
    def parse(cls, value: str) -> "Reference":
        locator, _, digest = value.partition("@")
        hostname, _, repository = locator.partition("/")
        if not hostname or not repository:
            raise InvalidReferenceError(
                f"Reference {value!r} should be '<hostname>/<repository>'"
            )
        tag = None
        if ":" in repository.rsplit("/", 1)[-1]:
            repository, tag = repository.rsplit(":", 1)
        if repository != repository.lower() or not all(repository.split("/")):
            raise InvalidReferenceError(f"Invalid repository name: {repository!r}")
        if hostname == DOCKER_IO and "/" not in repository:
            # Official images live under library/ on Docker Hub
            repository = f"library/{repository}"
        return cls(
            hostname=hostname,
            repository=repository,
            tag=tag or None,
            digest=Digest.parse(digest) if digest else None,
        )


def repository_scope(reference: Reference, push: bool = False) -> str:
    """Return the token scope granting access to the repository of `reference`

    ref: https://distribution.github.io/distribution/spec/auth/scope/
    """
    if not reference.repository:
        raise InvalidReferenceError(f"{reference} has no repository")
    actions = "pull,push" if push else "pull"
    return f"repository:{reference.repository}:{actions}"

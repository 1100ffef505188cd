import base64
import binascii
import logging
from typing import Annotated

from fastapi import FastAPI, Header, Query, Response
from fastapi import Path as PydanticPath

import ocireferrers
from ocireferrers.oci import (
    AuthenticationError,
    NotFoundError,
    Reference,
    RegistryError,
)
from ocireferrers.oci.digest import DIGEST_PATTERN

app = FastAPI()
logger = logging.getLogger(__name__)


def parse_auth_header(authorization: str) -> tuple[str, str]:
    """Parse the Authorization header into username and password."""
    username, password = (
        base64.b64decode(authorization.removeprefix("Basic ").encode("utf-8"))
        .decode("utf-8")
        .split(":", 1)
    )
    return username, password


@app.get("/{registry}/{repository:path}/referrers/{digest}", name="referrers")
def fetch_referrers(
    registry: str,
    repository: str,
    digest: Annotated[str, PydanticPath(pattern=f"^{DIGEST_PATTERN}$")],
    response: Response,
    artifact_type: Annotated[list[str], Query(alias="artifactType")] = [],
    authorization: Annotated[str | None, Header()] = None,
    oci_insecure: Annotated[bool, Header(alias="X-OCI-Insecure")] = False,
):
    try:
        reference = Reference.parse(f"{registry}/{repository}")
    except ValueError as e:
        response.status_code = 400
        return str(e)
    username = password = None
    if authorization is not None:
        try:
            username, password = parse_auth_header(authorization)
        except (binascii.Error, UnicodeDecodeError, ValueError):
            response.status_code = 400
            return "Invalid Authorization header"

    hosts = ocireferrers.oci.configure_hosts(
        reference.hostname, insecure=oci_insecure
    )
    logger.info("Fetching referrers of '%s@%s'", reference, digest)
    with ocireferrers.oci.Client(username=username, password=password) as client:
        try:
            stream, descriptor = ocireferrers.oci.fetch_referrers(
                reference=reference,
                client=client,
                digest=digest,
                artifact_types=artifact_type,
                hosts=hosts,
            )
        except NotFoundError:
            response.status_code = 404
            return "Not Found"
        except AuthenticationError:
            response.status_code = 401
            return "Unauthorized"
        except RegistryError as e:
            response.status_code = e.status_code
            return str(e)
        with stream:
            data = stream.read()

    return Response(content=data, media_type=descriptor.mediaType)

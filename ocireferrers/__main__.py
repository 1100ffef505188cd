import logging
from pathlib import Path

import click
import uvicorn

import ocireferrers
from ocireferrers.oci import HostCapabilities, NotFoundError, Reference


@click.group()
def cli():
    pass


class OCI:
    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        insecure: bool = False,
        debug: bool = False,
    ):
        if debug:
            logging.basicConfig(level=logging.DEBUG)
        self.insecure = insecure
        self.client = ocireferrers.oci.Client(username=username, password=password)


@cli.group()
@click.option("-u", "--username", help="Username", default=None)
@click.option("-p", "--password", help="Password", default=None)
@click.option("--insecure", help="Use plain HTTP", is_flag=True)
@click.option("-d", "--debug", help="Debug output", is_flag=True)
@click.pass_context
def oci(ctx, username, password, insecure, debug):
    ctx.obj = OCI(username=username, password=password, insecure=insecure, debug=debug)


def _capabilities(ctx, param, value: str) -> HostCapabilities:
    try:
        return HostCapabilities.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


@oci.command()
@click.argument("reference")
@click.argument("digest", required=False)
@click.option(
    "-t",
    "--artifact-type",
    "artifact_types",
    help="Only return referrers of this artifact type, can be repeated",
    multiple=True,
)
@click.option(
    "-m",
    "--mirror",
    "mirrors",
    help="Mirror to try before the registry itself, can be repeated",
    multiple=True,
)
@click.option(
    "--mirror-capabilities",
    help="Capabilities of the mirrors",
    default="pull,resolve",
    show_default=True,
    callback=_capabilities,
)
@click.option(
    "-o",
    "--output",
    help="Write the referrers document to this file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
)
@click.option("-l", "--list", "list_", help="List the referrers", is_flag=True)
@click.pass_context
def referrers(
    ctx,
    reference: str,
    digest: str | None,
    artifact_types: tuple[str, ...],
    mirrors: tuple[str, ...],
    mirror_capabilities: HostCapabilities,
    output: Path | None,
    list_: bool,
):
    """Fetch the referrers of REFERENCE's digest, or of DIGEST."""
    obj: OCI = ctx.ensure_object(OCI)
    try:
        ref = Reference.parse(reference)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="REFERENCE") from e
    if digest is None and ref.digest is None:
        raise click.UsageError("Provide a DIGEST or a REFERENCE ending in @<digest>")

    hosts = ocireferrers.oci.configure_hosts(
        ref.hostname,
        mirrors=mirrors,
        mirror_capabilities=mirror_capabilities,
        insecure=obj.insecure,
    )
    with obj.client as client:
        try:
            stream, descriptor = ocireferrers.oci.fetch_referrers(
                reference=ref,
                client=client,
                digest=digest,
                artifact_types=artifact_types,
                hosts=hosts,
            )
        except NotFoundError as e:
            raise click.ClickException(f"No referrers found: {e}") from e
        with stream:
            data = stream.read()

    if list_:
        try:
            listed = ocireferrers.oci.list_referrers(data)
        except ValueError as e:
            raise click.ClickException(str(e)) from e
        for referrer in listed:
            print(referrer.artifactType or referrer.mediaType, referrer.digest)
    if output is not None:
        output.write_bytes(data)
        print(f"Done downloading: {output} ({descriptor.size} bytes)")
    elif not list_:
        click.echo(data, nl=False)


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "()": "uvicorn.logging.DefaultFormatter",
            "fmt": "%(levelprefix)s %(message)s",
            "use_colors": None,
        },
        "access": {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": '%(levelprefix)s %(client_addr)s - "%(request_line)s" %(status_code)s',  # noqa: E501
        },
    },
    "handlers": {
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
        "access": {
            "formatter": "access",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"level": "INFO"},
        "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
        "ocireferrers": {"handlers": ["default"], "level": "INFO", "propagate": False},
    },
}


@cli.command()
@click.option("--reload", help="Watch for changes", is_flag=True)
@click.option("-p", "--port", type=int, default=8080)
def server(reload: bool = False, port: int = 8080):
    uvicorn.run(
        "ocireferrers.server:app",
        port=port,
        log_level="info",
        log_config=LOGGING_CONFIG,
        reload=reload,
    )


if __name__ == "__main__":
    cli()

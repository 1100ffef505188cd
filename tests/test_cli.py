from functools import partial

import httpx
import pytest
from click.testing import CliRunner

import ocireferrers
from conftest import MIRROR, REFERRERS_PATH, REGISTRY, SIGNATURE_PATH, SUBJECT
from ocireferrers.__main__ import cli


@pytest.fixture
def runner(registry, monkeypatch) -> CliRunner:
    monkeypatch.setattr(
        ocireferrers.oci,
        "Client",
        partial(ocireferrers.oci.Client, transport=httpx.MockTransport(registry)),
    )
    return CliRunner()


def test_referrers_list(runner, registry, referrers_index):
    registry.add(REGISTRY, REFERRERS_PATH, content=referrers_index)

    result = runner.invoke(
        cli, ["oci", "referrers", f"{REGISTRY}/org/app@{SUBJECT}", "--list"]
    )

    assert result.exit_code == 0, result.output
    assert result.output == (
        "application/vnd.dev.sigstore.bundle.v0.3+json sha256:def456\n"
    )


def test_referrers_raw(runner, registry, referrers_index):
    registry.add(REGISTRY, REFERRERS_PATH, content=referrers_index)

    result = runner.invoke(cli, ["oci", "referrers", f"{REGISTRY}/org/app", SUBJECT])

    assert result.exit_code == 0, result.output
    assert result.stdout_bytes == referrers_index


def test_referrers_output(runner, registry, signature_manifest, tmp_path):
    registry.add(REGISTRY, SIGNATURE_PATH, content=signature_manifest)
    destination = tmp_path / "signatures.json"

    result = runner.invoke(
        cli,
        ["oci", "referrers", f"{REGISTRY}/org/app@{SUBJECT}", "-o", str(destination)],
    )

    assert result.exit_code == 0, result.output
    assert destination.read_bytes() == signature_manifest


def test_referrers_mirrors(runner, registry, referrers_index):
    registry.add(MIRROR, REFERRERS_PATH, content=referrers_index)

    result = runner.invoke(
        cli,
        [
            "oci",
            "referrers",
            f"{REGISTRY}/org/app@{SUBJECT}",
            "--mirror",
            MIRROR,
            "--mirror-capabilities",
            "referrers",
            "-t",
            "application/example",
        ],
    )

    assert result.exit_code == 0, result.output
    assert registry.paths == [(MIRROR, REFERRERS_PATH)]
    assert registry.requests[0].url.params.get("ns") == REGISTRY
    assert registry.requests[0].url.params.get("artifactType") == "application/example"


def test_referrers_not_found(runner):
    result = runner.invoke(cli, ["oci", "referrers", f"{REGISTRY}/org/app@{SUBJECT}"])

    assert result.exit_code == 1
    assert "could not be found at any host" in result.output


def test_referrers_without_digest(runner):
    result = runner.invoke(cli, ["oci", "referrers", f"{REGISTRY}/org/app"])
    assert result.exit_code == 2


def test_referrers_unknown_capability(runner):
    result = runner.invoke(
        cli,
        [
            "oci",
            "referrers",
            f"{REGISTRY}/org/app@{SUBJECT}",
            "--mirror-capabilities",
            "delete",
        ],
    )
    assert result.exit_code == 2


@pytest.mark.parametrize("content", [b"[]", b"<html>mirror error</html>"])
def test_referrers_list_invalid_document(runner, registry, content):
    registry.add(REGISTRY, REFERRERS_PATH, content=content)

    result = runner.invoke(
        cli, ["oci", "referrers", f"{REGISTRY}/org/app@{SUBJECT}", "--list"]
    )

    assert result.exit_code == 1
    assert "Referrers document" in result.output

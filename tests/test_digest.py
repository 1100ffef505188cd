import pytest

from ocireferrers.oci import Digest, InvalidDigestError


@pytest.mark.parametrize(
    "value,algorithm,encoded",
    [
        ("sha256:abc123", "sha256", "abc123"),
        (
            "sha512:" + "f" * 128,
            "sha512",
            "f" * 128,
        ),
        (
            "multihash+base58:QmRZxt2b1FVZPNqd8hsiykDL3TdBDeTSPX9Kv46HmX4Gx8",
            "multihash+base58",
            "QmRZxt2b1FVZPNqd8hsiykDL3TdBDeTSPX9Kv46HmX4Gx8",
        ),
    ],
)
def test_parse(value, algorithm, encoded):
    digest = Digest.parse(value)
    assert digest == Digest(algorithm=algorithm, encoded=encoded)
    assert str(digest) == value


def test_parse_digest_instance():
    digest = Digest("sha256", "abc123")
    assert Digest.parse(digest) is digest


@pytest.mark.parametrize(
    "value", ["", "sha256", "sha256:", ":abc", "SHA256:abc", "sha256:ab/c"]
)
def test_parse_invalid(value):
    with pytest.raises(InvalidDigestError):
        Digest.parse(value)
    with pytest.raises(ValueError):
        Digest.parse(value)


@pytest.mark.parametrize(
    "digest,expected",
    [
        (Digest.parse("sha256:abc123"), "sha256-abc123.sig"),
        (Digest("sha256", "ab:cd"), "sha256-ab:cd.sig"),
    ],
)
def test_signature_tag(digest, expected):
    """Only the first ':' is replaced"""
    assert digest.signature_tag() == expected

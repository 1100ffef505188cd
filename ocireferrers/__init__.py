from ocireferrers import oci

__version__ = "0.1.0"

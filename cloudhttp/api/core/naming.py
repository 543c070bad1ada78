"""
Deterministic resource naming.

Names derive from a truncated SHA1 of the route identity so that publishing
the same route set again yields the same resource names. Truncation keeps
names short; with 8 hex chars a collision inside one API is unlikely but
possible, and DeploymentContext rejects it when it happens.
"""

import hashlib
import re

from ..config import config


def sha1hash(value: str, length: int = 0) -> str:
    """Return the (optionally truncated) SHA1 hex digest of value."""
    digest = hashlib.sha1(value.encode("utf-8")).hexdigest()
    length = length or config.COMPUTE_UNIT_HASH_LENGTH
    return digest[:length]


def compute_unit_name(api_name: str, method: str, path: str) -> str:
    """
    Name of the compute unit serving (method, path).

    `method` is the normalized routing-document method key.
    """
    return api_name + sha1hash(f"{method}:{path}")


def permission_name(api_name: str, method: str, path: str) -> str:
    return f"{api_name}-{sha1hash(f'{method}:{path}')}"


def safe_bucket_name(api_name: str) -> str:
    """Lower-case and strip characters a storage bucket name cannot hold."""
    return re.sub(r"[^a-z0-9\-]", "", api_name.lower())

"""Content-addressed cache keys for lint tasks."""

import hashlib


def compute_cache_key(
    file_fingerprint: str,
    rule_fingerprint: str,
    model_fingerprint: str,
) -> str:
    """Digest the three fingerprints that fully determine a task.

    The file *path* is deliberately absent: renaming an unchanged file
    keeps hitting the same entry. Null-byte delimiters keep the fields
    from running into each other.
    """
    payload = (
        f"{file_fingerprint}\x00{rule_fingerprint}\x00{model_fingerprint}"
    )
    return hashlib.sha256(payload.encode()).hexdigest()

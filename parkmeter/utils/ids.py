# utils/ids.py

import secrets

SESSION_PREFIX = "PK"
PASS_PREFIX = "MS"


def generate_id(prefix: str) -> str:
    """Short human-readable id, e.g. PK-3F9A61C0."""
    return f"{prefix}-{secrets.token_hex(4).upper()}"

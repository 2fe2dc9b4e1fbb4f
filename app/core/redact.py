from typing import Optional


def preview(value: Optional[str | bytes], keep: int = 8) -> str:
    """Truncated diagnostic view of a secret, e.g. ``"5eb00bbd..."``."""
    if not value:
        return "<empty>"
    if isinstance(value, bytes):
        value = value.hex()
    if len(value) <= keep:
        return "*" * len(value)
    return value[:keep] + "..."

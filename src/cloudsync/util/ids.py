from __future__ import annotations

import uuid


def new_boundary() -> str:
    """Generate a multipart boundary."""
    return f"cloudsync-{uuid.uuid4().hex}"

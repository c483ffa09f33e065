from __future__ import annotations

import uuid


def new_id() -> str:
    """Primary keys are opaque UUID strings; the first 8 chars make a readable reference."""
    return str(uuid.uuid4())

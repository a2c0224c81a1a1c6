from __future__ import annotations

import hashlib
import json


def derive_seed(user_id: str, kind: str, variant: int) -> int:
    """Combine (user, test kind, variant) into a stable unsigned 32-bit seed.

    The inputs are encoded as a compact JSON array so that no two distinct
    triples share an encoding, then hashed with SHA-256; the first four digest
    bytes (big-endian) form the seed.
    """

    tag = getattr(kind, "value", kind)
    payload = json.dumps(
        [str(user_id), str(tag), int(variant)],
        ensure_ascii=False,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(payload.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big")


def session_seed(user_id: str | None, kind: str, variant: int) -> int | None:
    """Seed for a session, or None when the user is anonymous.

    None means the bank's natural order is kept.
    """

    if user_id is None or str(user_id).strip() == "":
        return None
    return derive_seed(user_id, kind, variant)

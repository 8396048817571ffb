from __future__ import annotations

import hashlib

from grportfolio.utils.normalize import normalize_client_name


def _sha(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def client_key(user_id: int | str, client_name: str) -> str:
    """Stable client id derived from the owning user and the matching name."""
    name = normalize_client_name(client_name)
    if not name:
        raise ValueError("client_key requires a non-blank client name")
    return "client_" + _sha(f"{str(user_id).strip()}|{name}")[:24]

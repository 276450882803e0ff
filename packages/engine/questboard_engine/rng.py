from __future__ import annotations

import hashlib
import random


def derive_seed(salt: str, username: str, session_index: int | str) -> int:
    msg = f"{salt}:{username}:{session_index}".encode("utf-8")
    digest = hashlib.sha256(msg).digest()
    return int.from_bytes(digest[:8], "little", signed=False) % (2**32)


def session_rng(*, salt: str, username: str, session_index: int) -> random.Random:
    return random.Random(derive_seed(salt, username, session_index))

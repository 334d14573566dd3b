# loadtest/services/payload.py
from __future__ import annotations

import random
import string
from typing import Optional

from loadtest.schemas.author import AuthorPayload

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + " "
STRING_LENGTH = 10


def generate_string(length: int = STRING_LENGTH, rng: Optional[random.Random] = None) -> str:
    """
    Random string of exactly `length` chars, each drawn uniformly from ALPHABET.
    Uses the module-level random source unless an explicit rng is passed.
    """
    if length < 0:
        raise ValueError(f"length must be >= 0, got {length}")
    src = rng if rng is not None else random
    return "".join(src.choices(ALPHABET, k=length))


def build_author_payload(rng: Optional[random.Random] = None, length: int = STRING_LENGTH) -> AuthorPayload:
    full_name = generate_string(length, rng)
    nick_name = generate_string(length, rng)
    specialization = generate_string(length, rng)
    return AuthorPayload(
        full_name=full_name,
        nick_name=nick_name,
        specialization=specialization,
    )

"""Per-session secret words for self-service role elevation.

Only a random salt and base64(sha256(salt + word)) are stored. Verification
compares the digests with plain equality.
"""

import base64
import hashlib
import random
import secrets
import time
from typing import Optional, Sequence

from playlistify.models.session import SecretWord

SALT_BYTES = 16


def hash_word(word: str, salt: str) -> str:
    digest = hashlib.sha256(base64.b64decode(salt) + word.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def make_secret(word: str) -> SecretWord:
    salt = base64.b64encode(secrets.token_bytes(SALT_BYTES)).decode("ascii")
    return SecretWord(
        salt=salt,
        hash=hash_word(word, salt),
        enabled=True,
        version=int(time.time() * 1000),
    )


def verify_word(secret: SecretWord, attempt: str) -> bool:
    # Not constant-time.
    return hash_word(attempt, secret.salt) == secret.hash


def pick_word(pool: Sequence[str]) -> Optional[str]:
    if not pool:
        return None
    return random.choice(list(pool))

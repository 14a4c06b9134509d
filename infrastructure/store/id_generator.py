# infrastructure/store/id_generator.py
# Unguessable, URL-safe paste identifiers.

import secrets

# base64url alphabet produced by secrets.token_urlsafe
ID_ALPHABET: str = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789-_"
)

DEFAULT_ID_LENGTH: int = 8


def generate_id(length: int = DEFAULT_ID_LENGTH) -> str:
    """Return a random identifier of exactly *length* characters.

    token_urlsafe(n) encodes n random bytes, i.e. at least 8n/6 characters,
    so the first *length* characters each carry six uniformly random bits.
    Collisions are the caller's problem.
    """
    if length < 1:
        raise ValueError(f"Identifier length must be at least 1. Got: {length}.")
    return secrets.token_urlsafe(length)[:length]


def is_valid_id(blob_id: str, max_length: int = 64) -> bool:
    """Return True if *blob_id* could have been produced by generate_id()."""
    if not blob_id or len(blob_id) > max_length:
        return False
    return all(c in ID_ALPHABET for c in blob_id)

"""bcrypt hashing for login tokens.

bcrypt is CPU bound, so both calls run in a worker thread to keep the
event loop responsive while a hash is being computed.
"""

import asyncio

import bcrypt

# Work factor for every stored hash. Kept constant so hashes written by any
# deployment verify the same way everywhere.
BCRYPT_ROUNDS = 10

# bcrypt only looks at the first 72 bytes of its input
_MAX_INPUT_BYTES = 72


def _encode(token: str) -> bytes:
    return token.encode("utf-8")[:_MAX_INPUT_BYTES]


def _hash_sync(token: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_encode(token), salt).decode("ascii")


def _verify_sync(token: str, token_hash: str) -> bool:
    return bcrypt.checkpw(_encode(token), token_hash.encode("ascii"))


async def hash_token(token: str) -> str:
    """Compute a salted bcrypt hash of a token.

    Args:
        token: Plaintext token

    Returns:
        Hash string with the salt and cost factor embedded
    """
    return await asyncio.to_thread(_hash_sync, token)


async def verify_token(token: str, token_hash: str) -> bool:
    """Check a plaintext token against a stored bcrypt hash.

    Args:
        token: Plaintext token presented by the caller
        token_hash: Hash previously produced by :func:`hash_token`

    Returns:
        True if the token matches the hash

    Raises:
        ValueError: If ``token_hash`` is not a valid bcrypt hash
    """
    return await asyncio.to_thread(_verify_sync, token, token_hash)

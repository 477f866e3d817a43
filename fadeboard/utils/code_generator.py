"""
Cryptographically secure identifiers for posts, rooms and delete tokens.
"""
import secrets
import string
from typing import Callable, Container

# Exclude ambiguous characters: 0, 1, O, I, L
ALPHABET = "".join(c for c in string.ascii_uppercase + string.digits
                   if c not in "01OIL")


def generate_room_key(length: int = 6) -> str:
    """
    Generate a room key in format XXX-XXX.

    Excludes ambiguous characters (0, 1, O, I, L) so keys can be read aloud.

    Returns:
        str: A key like "9QK-X7M"
    """
    part1 = "".join(secrets.choice(ALPHABET) for _ in range(length // 2))
    part2 = "".join(secrets.choice(ALPHABET) for _ in range(length // 2))
    return f"{part1}-{part2}"


def generate_post_id() -> str:
    """Short url-safe post id (8 characters)."""
    return secrets.token_urlsafe(6)


def generate_delete_token() -> str:
    """Secret required to delete a post (16 characters)."""
    return secrets.token_urlsafe(12)


def ensure_unique(generate: Callable[[], str], taken: Container[str]) -> str:
    """
    Generate an identifier not already in use.

    Args:
        generate: Identifier factory
        taken: Identifiers currently in the snapshot

    Returns:
        str: A fresh identifier
    """
    for _ in range(10):  # Max 10 attempts
        candidate = generate()
        if candidate not in taken:
            return candidate
    raise RuntimeError("Failed to generate unique identifier after 10 attempts")

"""
Hash Utilities for Answer Anonymization

Provides functions for hashing submitted answers so telemetry can group
identical submissions without ever storing the raw text.

Usage:
    from grader.utils.hash_utils import hash_answer

    hashed = hash_answer("def f(x): return x + 1")
"""

import hashlib


def calculate_content_hash(content: str) -> str:
    """
    Calculate the SHA-256 hash of text content.

    Args:
        content: Text content to hash

    Returns:
        Hex string of the hash
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def short_hash(hash_value: str, length: int = 8) -> str:
    """
    Return a shortened version of a hash for display/logging.

    Args:
        hash_value: Full hash string
        length: Number of characters to return

    Returns:
        Shortened hash string
    """
    return hash_value[:length]


def hash_answer(answer: str, length: int = 16) -> str:
    """
    Privacy-preserving fingerprint of a submitted answer.

    Args:
        answer: Raw submitted text
        length: Number of hex characters to keep

    Returns:
        Shortened SHA-256 hex digest
    """
    return short_hash(calculate_content_hash(answer), length=length)

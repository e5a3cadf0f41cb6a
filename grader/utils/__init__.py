"""Shared utilities."""

from grader.utils.hash_utils import calculate_content_hash, hash_answer, short_hash

__all__ = [
    "calculate_content_hash",
    "hash_answer",
    "short_hash",
]

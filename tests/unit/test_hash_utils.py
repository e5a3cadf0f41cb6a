"""
Unit tests for hash utilities.
"""

import hashlib

from grader.utils.hash_utils import calculate_content_hash, hash_answer, short_hash


class TestCalculateContentHash:
    """Tests for calculate_content_hash function."""

    def test_sha256(self):
        content = "print('hello')"
        assert calculate_content_hash(content) == hashlib.sha256(content.encode()).hexdigest()

    def test_unicode_content(self):
        assert len(calculate_content_hash("名前 = 'ß'")) == 64


class TestShortHash:
    """Tests for short_hash function."""

    def test_default_length(self):
        assert short_hash("abcdef0123456789") == "abcdef01"

    def test_custom_length(self):
        assert short_hash("abcdef0123456789", length=4) == "abcd"


class TestHashAnswer:
    """Tests for hash_answer function."""

    def test_stable_and_short(self):
        assert hash_answer("x = 1") == hash_answer("x = 1")
        assert len(hash_answer("x = 1")) == 16

    def test_prefix_of_sha256(self):
        digest = hashlib.sha256(b"x = 1").hexdigest()
        assert hash_answer("x = 1") == digest[:16]

    def test_different_answers_differ(self):
        assert hash_answer("x = 1") != hash_answer("x = 2")

"""Tests for identicon.core.digest - input identifier to digest.

Tests cover:
- Known MD5 digests (the visual-compatibility contract).
- Determinism and fixed output length.
- The maximum input length boundary.
- Rejection of non-bytes input.
"""

from __future__ import annotations

import pytest

from identicon.core.digest import DIGEST_ALGORITHM, DIGEST_SIZE, MAX_INPUT_LENGTH, derive
from identicon.core.errors import InputTooLong


class TestDerive:
    """Test derive() output."""

    def test_algorithm_is_md5(self):
        """Changing the algorithm changes every identicon; pin it."""
        assert DIGEST_ALGORITHM == "md5"
        assert DIGEST_SIZE == 16

    def test_known_digest(self, alice):
        """alice@example.com has a fixed digest."""
        assert derive(alice.data).hex() == alice.digest_hex

    def test_empty_input(self):
        """The empty input is valid and hashes like any other."""
        assert derive(b"").hex() == "d41d8cd98f00b204e9800998ecf8427e"

    def test_deterministic(self):
        """The same input always yields the same digest."""
        assert derive(b"bob@example.com") == derive(b"bob@example.com")

    def test_fixed_length(self):
        """Every digest has DIGEST_SIZE bytes regardless of input length."""
        for n in (0, 1, 17, MAX_INPUT_LENGTH):
            assert len(derive(b"x" * n)) == DIGEST_SIZE

    def test_accepts_bytearray(self, alice):
        """Bytes-like inputs hash the same as bytes."""
        assert derive(bytearray(alice.data)) == derive(alice.data)


class TestDeriveLimits:
    """Test input validation."""

    def test_max_length_accepted(self):
        """Input of exactly the maximum length is accepted."""
        derive(b"a" * MAX_INPUT_LENGTH)

    def test_over_max_length_rejected(self):
        """One byte over the maximum raises InputTooLong."""
        with pytest.raises(InputTooLong) as exc_info:
            derive(b"a" * (MAX_INPUT_LENGTH + 1))
        assert exc_info.value.length == MAX_INPUT_LENGTH + 1
        assert exc_info.value.max_length == MAX_INPUT_LENGTH
        assert exc_info.value.status_code == 400

    def test_custom_max_length(self):
        """A tighter limit can be passed explicitly."""
        with pytest.raises(InputTooLong):
            derive(b"abcd", max_length=3)

    def test_str_rejected(self):
        """Text must be encoded by the caller."""
        with pytest.raises(TypeError):
            derive("alice@example.com")  # type: ignore[arg-type]

"""Unit tests for auth/hashing.py -- digest and bcrypt strategies.

Covers:
- uppercase hex encoding
- SHA-512 known-answer vector and salt-prefix concatenation
- determinism and salt sensitivity
- column extraction, including unsalted rows
- UnsupportedAlgorithm at construction
- bcrypt strategy reproduces a stored hash from its embedded salt
"""

import pytest

from auth.errors import InvalidCredentials, UnsupportedAlgorithm
from auth.hashing import (
    BcryptHashStrategy,
    DefaultHashStrategy,
    HashStrategy,
    bytes_to_hex,
    compute_hash,
    strategy_for,
)

# SHA-512("abc"), FIPS 180-2 test vector
_SHA512_ABC = (
    "DDAF35A193617ABACC417349AE20413112E6FA4E89A97EA20A9EEEE64B55D39A"
    "2192992A274FC1A836BA3C23A3FEEBBD454D4423643CE80E2A9AC94FA54CA49F"
)

# ---------------------------------------------------------------------------
# bytes_to_hex / compute_hash
# ---------------------------------------------------------------------------


class TestBytesToHex:
    def test_uppercase_two_chars_per_byte(self):
        assert bytes_to_hex(b"\x00\x0f\xab\xff") == "000FABFF"

    def test_empty(self):
        assert bytes_to_hex(b"") == ""


class TestComputeHash:
    def test_known_vector_unsalted(self):
        assert compute_hash("abc", None) == _SHA512_ABC

    def test_salt_is_prepended_to_password(self):
        assert compute_hash("c", "ab") == _SHA512_ABC

    def test_empty_salt_same_as_none(self):
        assert compute_hash("pw", "") == compute_hash("pw", None)

    def test_other_algorithm(self):
        assert compute_hash("abc", None, "sha256") == (
            "BA7816BF8F01CFEA414140DE5DAE2223B00361A396177A9CB410FF61F20015AD"
        )

    def test_unknown_algorithm_raises(self):
        with pytest.raises(UnsupportedAlgorithm):
            compute_hash("pw", None, "not-a-digest")


# ---------------------------------------------------------------------------
# DefaultHashStrategy
# ---------------------------------------------------------------------------


class TestDefaultHashStrategy:
    def test_deterministic(self):
        s = DefaultHashStrategy()
        assert s.compute_hash("sausages", "SALT") == s.compute_hash("sausages", "SALT")

    def test_different_salts_different_hashes(self):
        s = DefaultHashStrategy()
        assert s.compute_hash("sausages", "SALT1") != s.compute_hash("sausages", "SALT2")

    def test_output_is_128_uppercase_hex_chars(self):
        h = DefaultHashStrategy().compute_hash("pw", "salt")
        assert len(h) == 128
        assert h == h.upper()
        int(h, 16)

    def test_reads_hash_and_salt_columns(self):
        s = DefaultHashStrategy()
        row = ("HASH", "SALT")
        assert s.stored_hash(row) == "HASH"
        assert s.salt(row) == "SALT"

    def test_null_salt_column(self):
        assert DefaultHashStrategy().salt(("HASH", None)) is None

    def test_single_column_row_has_no_salt(self):
        assert DefaultHashStrategy().salt(("HASH",)) is None

    def test_custom_columns(self):
        s = DefaultHashStrategy(hash_column=2, salt_column=0)
        row = ("SALT", "ignored", "HASH")
        assert s.stored_hash(row) == "HASH"
        assert s.salt(row) == "SALT"

    def test_unsupported_algorithm_fails_at_construction(self):
        with pytest.raises(UnsupportedAlgorithm) as exc_info:
            DefaultHashStrategy("sha-9000")
        assert exc_info.value.algorithm == "sha-9000"
        assert exc_info.value.code == "unsupported_algorithm"

    def test_satisfies_protocol(self):
        assert isinstance(DefaultHashStrategy(), HashStrategy)


# ---------------------------------------------------------------------------
# BcryptHashStrategy
# ---------------------------------------------------------------------------


class TestBcryptHashStrategy:
    def test_recomputes_stored_hash_from_embedded_salt(self):
        s = BcryptHashStrategy()
        stored = s.new_hash("sausages")
        row = (stored, None)
        assert s.compute_hash("sausages", s.salt(row)) == s.stored_hash(row)

    def test_wrong_password_differs(self):
        s = BcryptHashStrategy()
        stored = s.new_hash("sausages")
        assert s.compute_hash("bacon", s.salt((stored,))) != stored

    def test_no_salt_for_empty_or_short_values(self):
        s = BcryptHashStrategy()
        assert s.salt(("",)) is None
        assert s.salt((None,)) is None
        assert s.salt(("short",)) is None

    def test_missing_salt_never_produces_a_hash(self):
        with pytest.raises(InvalidCredentials):
            BcryptHashStrategy().compute_hash("anything", None)
        with pytest.raises(InvalidCredentials):
            BcryptHashStrategy().compute_hash("anything", "")

    def test_non_bcrypt_salt_never_produces_a_hash(self):
        with pytest.raises(InvalidCredentials):
            BcryptHashStrategy().compute_hash("anything", "X" * 29)

    def test_salt_from_blob_column(self):
        s = BcryptHashStrategy()
        stored = s.new_hash("sausages")
        assert s.salt((stored.encode("utf-8"),)) == stored[:29]

    def test_satisfies_protocol(self):
        assert isinstance(BcryptHashStrategy(), HashStrategy)


class TestStrategyFor:
    def test_digest(self):
        s = strategy_for("digest", "sha256")
        assert isinstance(s, DefaultHashStrategy)
        assert s.algorithm == "sha256"

    def test_bcrypt(self):
        assert isinstance(strategy_for("bcrypt"), BcryptHashStrategy)

    def test_unknown_scheme(self):
        with pytest.raises(UnsupportedAlgorithm):
            strategy_for("rot13")

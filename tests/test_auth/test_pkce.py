"""Tests for random parameter generation and the S256 code challenge."""

from __future__ import annotations

import base64
import hashlib
import secrets

import pytest

from fitbit_link.auth.pkce import code_challenge, generate_random_string
from fitbit_link.constants import RANDOM_ALPHABET
from fitbit_link.exceptions import GenerationError


# ---------------------------------------------------------------------------
# generate_random_string
# ---------------------------------------------------------------------------


class TestGenerateRandomString:
    @pytest.mark.parametrize("length", [1, 43, 128, 500])
    def test_exact_length(self, length: int) -> None:
        assert len(generate_random_string(length)) == length

    def test_alphabet_is_ascii_alphanumeric(self) -> None:
        value = generate_random_string(2000)
        assert set(value) <= set(RANDOM_ALPHABET)
        assert len(RANDOM_ALPHABET) == 62

    def test_successive_calls_differ(self) -> None:
        assert generate_random_string(128) != generate_random_string(128)

    def test_custom_alphabet(self) -> None:
        assert set(generate_random_string(50, alphabet="ab")) <= {"a", "b"}

    @pytest.mark.parametrize("length", [0, -1])
    def test_rejects_non_positive_length(self, length: int) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            generate_random_string(length)

    def test_unavailable_randomness_raises_generation_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _broken(seq: str) -> str:
            raise NotImplementedError("no urandom")

        monkeypatch.setattr(secrets, "choice", _broken)
        with pytest.raises(GenerationError, match="no urandom"):
            generate_random_string(10)


# ---------------------------------------------------------------------------
# code_challenge
# ---------------------------------------------------------------------------


class TestCodeChallenge:
    def test_matches_reference_computation(self) -> None:
        verifier = generate_random_string(128)
        expected = (
            base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest())
            .decode()
            .rstrip("=")
        )
        assert code_challenge(verifier) == expected

    def test_rfc7636_appendix_b_vector(self) -> None:
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_deterministic_43_chars_without_padding(self) -> None:
        verifier = "Vxyz" * 20
        first = code_challenge(verifier)
        assert first == code_challenge(verifier)
        assert len(first) == 43
        assert "=" not in first
        assert "+" not in first and "/" not in first

    def test_distinct_verifiers_give_distinct_challenges(self) -> None:
        verifiers = {generate_random_string(43) for _ in range(1000)}
        assert len({code_challenge(v) for v in verifiers}) == len(verifiers)

"""
Tests for password strength scoring and hashing.
"""

import pytest

from bookkeeper.auth import (
    AuthResult,
    AuthStatus,
    InvalidCodeError,
    PasswordHasher,
    PasswordStrength,
    evaluate_password_strength,
)
from bookkeeper.auth.errors import AuthError, CodeNotIssuedError, WeakPasswordError
from bookkeeper.auth.results import LoginState


class TestPasswordStrength:
    """Tests for the five-point rubric."""

    @pytest.mark.parametrize("password, score, label", [
        ("abc12345", 3, PasswordStrength.MEDIUM),
        ("Abc123!@", 5, PasswordStrength.STRONG),
        ("abc", 1, PasswordStrength.WEAK),
        ("", 0, PasswordStrength.WEAK),
        ("abcdefgh", 2, PasswordStrength.WEAK),
        ("Abcdefgh1", 4, PasswordStrength.MEDIUM),
    ])
    def test_scores(self, password, score, label):
        """Test score and label for representative passwords."""
        report = evaluate_password_strength(password)
        assert report.score == score
        assert report.label == label

    def test_non_ascii_letters_do_not_count_as_case(self):
        """Test that only ASCII letters satisfy the case checks."""
        report = evaluate_password_strength("пароль12")
        # length + digit
        assert report.score == 2

    def test_special_characters(self):
        """Test that each listed special character counts."""
        for char in '!@#$%^&*(),.?":{}|<>':
            assert evaluate_password_strength(char).score == 1


class TestPasswordHasher:
    """Tests for salted hashing."""

    def test_hash_and_verify(self, hasher):
        """Test that the right password verifies."""
        hashed = hasher.hash("Passw0rd!")
        assert hasher.verify("Passw0rd!", hashed) is True
        assert hasher.verify("passw0rd!", hashed) is False

    def test_hash_is_salted(self, hasher):
        """Test that the same password hashes differently each time."""
        assert hasher.hash("Passw0rd!") != hasher.hash("Passw0rd!")

    def test_unknown_hash_format(self, hasher):
        """Test that garbage hashes do not verify."""
        assert hasher.verify("Passw0rd!", "not-a-hash") is False

    def test_rounds_only_affect_new_hashes(self):
        """Test that a hash made with other rounds still verifies."""
        old = PasswordHasher(rounds=1000).hash("Passw0rd!")
        assert PasswordHasher(rounds=2000).verify("Passw0rd!", old) is True


class TestAuthResult:
    """Tests for the result wrapper and error taxonomy."""

    def test_failure_carries_code_and_message(self):
        """Test AuthResult.failure."""
        result = AuthResult.failure(WeakPasswordError())
        assert result.status == AuthStatus.FAILED
        assert result.error_code == "weak_password"
        assert result.message.startswith("Password is too weak")
        assert result.state == LoginState.TERMINAL

    def test_generic_error_message(self):
        """Test the fallback message for unexpected failures."""
        assert AuthError().message == "An error occurred, please try again"

    def test_code_not_issued_is_invalid_code(self):
        """Test that a missing code is a kind of invalid code."""
        assert issubclass(CodeNotIssuedError, InvalidCodeError)

    def test_pending_states(self):
        """Test state for verification statuses."""
        pending = AuthResult(status=AuthStatus.SECOND_FACTOR_REQUIRED)
        assert pending.ok is False
        assert pending.state == LoginState.SECOND_FACTOR_PENDING
        verify = AuthResult(status=AuthStatus.EMAIL_VERIFICATION_REQUIRED)
        assert verify.state == LoginState.EMAIL_VERIFICATION_PENDING


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

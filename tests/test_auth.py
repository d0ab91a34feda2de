# tests/test_auth.py
import pyotp
import pytest

from freelancer.errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidSecondFactorCode,
    RateLimited,
    SecondFactorNotSetUp,
    SecondFactorRequired,
    UserNotFound,
)

EMAIL = "alice@example.com"
PASSWORD = "P@ssw0rd!"
IP = "203.0.113.7"


def _wrong_code(secret):
    return f"{(int(pyotp.TOTP(secret).now()) + 500000) % 1000000:06d}"


def _enable_2fa(auth_manager, user_id):
    enrollment = auth_manager.setup_second_factor(user_id)
    auth_manager.verify_second_factor(user_id, pyotp.TOTP(enrollment.secret).now())
    return enrollment.secret


def test_register_then_login_yields_token_for_user(auth_manager):
    user = auth_manager.register(EMAIL, PASSWORD)
    token = auth_manager.login(EMAIL, PASSWORD, None, IP)
    assert auth_manager.sessions.validate(token) == user.id


def test_password_is_stored_hashed(auth_manager):
    user = auth_manager.register(EMAIL, PASSWORD)
    assert user.password_hash != PASSWORD
    assert user.password_hash.startswith("$2")
    assert auth_manager.verify_password(PASSWORD, user.password_hash)


def test_duplicate_email_fails_regardless_of_password(auth_manager):
    auth_manager.register(EMAIL, PASSWORD)
    with pytest.raises(DuplicateEmail):
        auth_manager.register(EMAIL, PASSWORD)
    with pytest.raises(DuplicateEmail):
        auth_manager.register(EMAIL, "something-else")


def test_email_match_is_exact(auth_manager):
    auth_manager.register(EMAIL, PASSWORD)
    other = auth_manager.register("Alice@example.com", PASSWORD)
    assert other.email == "Alice@example.com"
    assert auth_manager.find_by_email("ALICE@example.com") is None


def test_unknown_user_and_wrong_password_are_distinct(auth_manager):
    auth_manager.register(EMAIL, PASSWORD)
    with pytest.raises(UserNotFound) as missing:
        auth_manager.login("bob@example.com", PASSWORD, None, IP)
    with pytest.raises(InvalidCredentials) as wrong:
        auth_manager.login(EMAIL, "wrong-password", None, IP)
    assert missing.value.code != wrong.value.code
    assert missing.value.message == wrong.value.message


def test_unknown_email_still_runs_a_password_check(auth_manager, monkeypatch):
    auth_manager.register(EMAIL, PASSWORD)
    real_verify = auth_manager.verify_password
    checked = []

    def verify(password, hashed):
        checked.append(hashed)
        return real_verify(password, hashed)

    monkeypatch.setattr(auth_manager, "verify_password", verify)

    with pytest.raises(UserNotFound):
        auth_manager.login("bob@example.com", PASSWORD, None, IP)
    assert len(checked) == 1
    assert checked[0].startswith("$2")

    # the dummy hash is made once and reused
    with pytest.raises(UserNotFound):
        auth_manager.login("carol@example.com", PASSWORD, None, IP)
    assert checked[1] == checked[0]


def test_sixth_attempt_is_rate_limited_even_with_right_password(auth_manager, clock):
    auth_manager.register(EMAIL, PASSWORD)
    for _ in range(5):
        with pytest.raises(InvalidCredentials):
            auth_manager.login(EMAIL, "wrong-password", None, IP)

    with pytest.raises(RateLimited):
        auth_manager.login(EMAIL, PASSWORD, None, IP)

    clock.advance(601)
    assert auth_manager.login(EMAIL, PASSWORD, None, IP)


def test_success_does_not_reset_failure_count(auth_manager, clock):
    auth_manager.register(EMAIL, PASSWORD)
    for _ in range(3):
        with pytest.raises(InvalidCredentials):
            auth_manager.login(EMAIL, "wrong-password", None, IP)

    assert auth_manager.login(EMAIL, PASSWORD, None, IP)

    for _ in range(2):
        with pytest.raises(UserNotFound):
            auth_manager.login("nobody@example.com", PASSWORD, None, IP)

    with pytest.raises(RateLimited):
        auth_manager.login(EMAIL, PASSWORD, None, IP)


def test_pending_secret_is_not_required_at_login(auth_manager):
    user = auth_manager.register(EMAIL, PASSWORD)
    auth_manager.setup_second_factor(user.id)
    assert auth_manager.find_by_id(user.id).is_two_fa_enabled is False
    assert auth_manager.login(EMAIL, PASSWORD, None, IP)


def test_second_factor_login(auth_manager, clock):
    user = auth_manager.register(EMAIL, PASSWORD)
    secret = _enable_2fa(auth_manager, user.id)
    assert auth_manager.find_by_id(user.id).is_two_fa_enabled is True

    with pytest.raises(SecondFactorRequired):
        auth_manager.login(EMAIL, PASSWORD, None, IP)
    with pytest.raises(InvalidSecondFactorCode):
        auth_manager.login(EMAIL, PASSWORD, _wrong_code(secret), IP)

    token = auth_manager.login(EMAIL, PASSWORD, pyotp.TOTP(secret).now(), IP)
    assert auth_manager.sessions.validate(token) == user.id
    # both second-factor failures were counted
    assert auth_manager.throttle.failures(IP) == 2


def test_setup_verification_with_wrong_code_keeps_it_disabled(auth_manager):
    user = auth_manager.register(EMAIL, PASSWORD)
    enrollment = auth_manager.setup_second_factor(user.id)
    with pytest.raises(InvalidSecondFactorCode):
        auth_manager.verify_second_factor(user.id, _wrong_code(enrollment.secret))
    assert auth_manager.find_by_id(user.id).is_two_fa_enabled is False


def test_setup_can_be_restarted_before_enabling(auth_manager):
    user = auth_manager.register(EMAIL, PASSWORD)
    first = auth_manager.setup_second_factor(user.id)
    second = auth_manager.setup_second_factor(user.id)
    assert auth_manager.find_by_id(user.id).two_fa_secret == second.secret
    assert first.secret != second.secret


def test_verify_without_setup(auth_manager):
    user = auth_manager.register(EMAIL, PASSWORD)
    with pytest.raises(SecondFactorNotSetUp):
        auth_manager.verify_second_factor(user.id, "123456")

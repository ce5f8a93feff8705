import pytest

from app.core.errors import RateLimitedError, ValidationError


def test_issue_and_verify_returns_single_use_token(otp):
    code = otp.issue("visitor", "Guest@Example.com")

    assert len(code) == 6 and code.isdigit()

    token = otp.verify("visitor", "guest@example.com", code)

    assert otp.consume_token(token, "visitor", "guest@example.com") is True
    assert otp.consume_token(token, "visitor", "guest@example.com") is False


def test_code_is_gone_after_successful_verify(otp):
    code = otp.issue("visitor", "a@x.com")
    otp.verify("visitor", "a@x.com", code)

    with pytest.raises(ValidationError):
        otp.verify("visitor", "a@x.com", code)


def test_codes_are_scoped_by_role(otp):
    code = otp.issue("speaker", "a@x.com")

    with pytest.raises(ValidationError):
        otp.verify("visitor", "a@x.com", code)


def test_resend_refused_during_cooldown(otp, clock):
    otp.issue("visitor", "a@x.com")
    clock.advance(20)

    with pytest.raises(RateLimitedError) as exc_info:
        otp.issue("visitor", "a@x.com")

    assert exc_info.value.status_code == 429
    assert 0 < exc_info.value.retry_after <= 41

    clock.advance(41)
    assert otp.issue("visitor", "a@x.com")


def test_expired_code_is_rejected(otp, clock):
    code = otp.issue("visitor", "a@x.com")
    clock.advance(301)

    with pytest.raises(ValidationError):
        otp.verify("visitor", "a@x.com", code)


def test_wrong_codes_exhaust_attempts(otp):
    code = otp.issue("visitor", "a@x.com")
    wrong = "000000" if code != "000000" else "111111"

    for _ in range(4):
        with pytest.raises(ValidationError):
            otp.verify("visitor", "a@x.com", wrong)
    with pytest.raises(RateLimitedError):
        otp.verify("visitor", "a@x.com", wrong)

    # The entry is dropped, even the right code no longer works
    with pytest.raises(ValidationError):
        otp.verify("visitor", "a@x.com", code)


@pytest.mark.parametrize(
    "role,email",
    [
        ("exhibitor", "a@x.com"),
        ("visitor", "b@x.com"),
    ],
)
def test_token_bound_to_role_and_email(otp, role, email):
    token = otp.verify("visitor", "a@x.com", otp.issue("visitor", "a@x.com"))

    assert otp.consume_token(token, role, email) is False
    assert otp.consume_token(token, "visitor", "a@x.com") is True


def test_token_expires(otp, clock):
    token = otp.verify("visitor", "a@x.com", otp.issue("visitor", "a@x.com"))
    clock.advance(901)

    assert otp.consume_token(token, "visitor") is False


def test_missing_token_is_rejected(otp):
    assert otp.consume_token(None, "visitor") is False
    assert otp.consume_token("", "visitor") is False
    assert otp.consume_token("made-up", "visitor") is False


def test_sweep_drops_expired_entries(otp, clock):
    otp.issue("visitor", "a@x.com")
    otp.verify("speaker", "b@x.com", otp.issue("speaker", "b@x.com"))
    otp.issue("partner", "c@x.com")

    assert otp.sweep() == 0

    clock.advance(1000)

    assert otp.sweep() == 3
    assert otp.sweep() == 0


def test_discard_allows_immediate_reissue(otp):
    otp.issue("visitor", "a@x.com")
    otp.discard("visitor", "a@x.com")

    assert otp.issue("visitor", "a@x.com")

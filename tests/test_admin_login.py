"""
Test: Two-step admin sign-in - attempt counting, codes, session routing.
"""
from datetime import datetime, timedelta, timezone

import pytest

from easymind.errors import NotFoundError, VerificationError
from easymind.services import admin_login
from easymind.services.admin_login import LoginError

NOW = datetime(2026, 10, 14, 4, 0, tzinfo=timezone.utc)
EMAIL = "admin@easymind.app"


@pytest.fixture
def admin_account(monkeypatch, db, fake_identity, attempts):
    """An admin 'admin1' and a teacher 'teacher1' known to the auth provider."""
    import easymind.auth as auth
    fake_identity.accounts[EMAIL] = ("secret", "admin1")
    fake_identity.accounts["ana@school.ph"] = ("secret", "teacher1")
    roles = {"token-admin1": "admin", "token-teacher1": "teacher"}
    monkeypatch.setattr(auth, "validate_token", lambda token: {"role": roles.get(token)})
    return fake_identity


class TestPasswordStep:
    def test_success_stores_code_and_emails_it(self, db, admin_account, emailer):
        result = admin_login.password_step(EMAIL, "secret", emailer=emailer)

        assert result["uid"] == "admin1"
        assert result["email_sent"] is True
        assert result["message"] == "A verification code has been sent to your email."

        user = db.doc("users", "admin1")
        assert user["verified"] is False
        assert len(user["verificationCode"]) == 6
        assert user["codeTimestamp"] == NOW
        assert emailer.sent == [("code", EMAIL, user["verificationCode"])]

    def test_attempts_count_down(self, admin_account, emailer):
        for remaining in (3, 2, 1):
            with pytest.raises(LoginError) as exc:
                admin_login.password_step(EMAIL, "wrong", emailer=emailer)
            assert exc.value.message == f"Invalid admin credentials. {remaining} attempt(s) remaining."
            assert exc.value.show_reset is False

    def test_fourth_failure_offers_reset(self, admin_account, emailer):
        for _ in range(3):
            with pytest.raises(LoginError):
                admin_login.password_step(EMAIL, "wrong", emailer=emailer)
        with pytest.raises(LoginError) as exc:
            admin_login.password_step(EMAIL, "wrong", emailer=emailer)
        assert exc.value.show_reset is True
        assert "maximum login attempts" in exc.value.message
        assert exc.value.to_dict()["show_reset"] is True

    def test_counter_is_case_insensitive(self, admin_account, emailer, attempts):
        with pytest.raises(LoginError):
            admin_login.password_step(EMAIL.upper(), "wrong", emailer=emailer)
        assert attempts.count(EMAIL) == 1

    def test_non_admin_rejected(self, db, admin_account, emailer, attempts):
        with pytest.raises(LoginError) as exc:
            admin_login.password_step("ana@school.ph", "secret", emailer=emailer)
        assert exc.value.message == "Access denied: Only admins can sign in at this time."
        assert attempts.count("ana@school.ph") == 1
        assert db.doc("users", "teacher1") is None

    def test_success_resets_counter(self, admin_account, emailer, attempts):
        with pytest.raises(LoginError):
            admin_login.password_step(EMAIL, "wrong", emailer=emailer)
        admin_login.password_step(EMAIL, "secret", emailer=emailer)
        assert attempts.count(EMAIL) == 0

    def test_email_failure_counts_as_attempt(self, db, admin_account, attempts):
        class BrokenEmailer:
            def send_verification_code(self, email, code):
                raise ConnectionError("resend down")

        with pytest.raises(LoginError) as exc:
            admin_login.password_step(EMAIL, "secret", emailer=BrokenEmailer())
        assert exc.value.message == "Sign-in failed. Please try again."
        assert attempts.count(EMAIL) == 1


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestLoginAttemptTracker:
    @pytest.fixture
    def clock(self):
        return FakeClock()

    def test_counter_expires_after_window(self, clock):
        tracker = admin_login.LoginAttemptTracker(window_seconds=60, clock=clock)
        tracker.record_failure(EMAIL)
        tracker.record_failure(EMAIL)
        clock.now += 59
        assert tracker.count(EMAIL) == 2
        clock.now += 1
        assert tracker.count(EMAIL) == 0
        assert tracker.record_failure(EMAIL) == 1

    def test_window_starts_at_first_failure(self, clock):
        tracker = admin_login.LoginAttemptTracker(window_seconds=60, clock=clock)
        tracker.record_failure(EMAIL)
        clock.now += 50
        tracker.record_failure(EMAIL)
        clock.now += 10
        assert tracker.count(EMAIL) == 0

    def test_expired_entries_are_dropped(self, clock):
        tracker = admin_login.LoginAttemptTracker(window_seconds=60, clock=clock)
        for i in range(100):
            tracker.record_failure(f"user{i}@example.com")
        clock.now += 61
        tracker.record_failure("late@example.com")
        assert len(tracker) == 1

    def test_size_is_capped(self, clock):
        tracker = admin_login.LoginAttemptTracker(max_entries=10, clock=clock)
        for i in range(1000):
            clock.now += 1
            tracker.record_failure(f"user{i}@example.com")
        assert len(tracker) == 10
        assert tracker.count("user0@example.com") == 0
        assert tracker.count("user999@example.com") == 1


class TestVerifyCode:
    @pytest.fixture
    def pending_code(self, db):
        db.seed("users", "admin1", {
            "email": EMAIL, "verificationCode": "123456",
            "codeTimestamp": NOW, "verified": False,
        })

    def test_valid_code(self, db, pending_code):
        assert admin_login.verify_code("admin1", "123456", now=NOW + timedelta(minutes=5)) == {"verified": True}
        user = db.doc("users", "admin1")
        assert user["verified"] is True
        assert user["verificationCode"] is None
        assert user["codeTimestamp"] is None

    def test_wrong_code(self, pending_code):
        with pytest.raises(VerificationError, match="Invalid verification code."):
            admin_login.verify_code("admin1", "654321", now=NOW)

    def test_expired_code(self, pending_code):
        with pytest.raises(VerificationError, match="expired"):
            admin_login.verify_code("admin1", "123456", now=NOW + timedelta(minutes=11))

    def test_unknown_user(self, db):
        with pytest.raises(NotFoundError, match="User not found."):
            admin_login.verify_code("ghost", "123456", now=NOW)


class TestForgotPassword:
    def test_sends_reset_and_clears_counter(self, admin_account, emailer, attempts):
        with pytest.raises(LoginError):
            admin_login.password_step(EMAIL, "wrong", emailer=emailer)
        result = admin_login.forgot_password(EMAIL)
        assert result["message"] == "Password reset email sent. Please check your inbox."
        assert admin_account.reset_emails == [EMAIL]
        assert attempts.count(EMAIL) == 0


class TestSessionState:
    def test_verified_admin(self, db):
        db.seed("users", "admin1", {"verified": True})
        assert admin_login.session_state("admin1", "admin") == {"next": "dashboard"}

    def test_unverified_admin(self, db):
        db.seed("users", "admin1", {"verified": False})
        assert admin_login.session_state("admin1", "admin") == {"next": "verify"}

    def test_active_teacher(self, db):
        db.seed("teacherRequests", "t1", {"status": "Active"})
        assert admin_login.session_state("t1", "teacher") == {"next": "teacher-dashboard"}

    def test_pending_teacher(self, db):
        db.seed("teacherRequests", "t1", {"status": "Pending"})
        assert admin_login.session_state("t1", "teacher")["next"] == "denied"

    def test_no_role(self, db):
        assert admin_login.session_state("x", None)["error"] == "Access denied: Invalid role."


class TestVerificationCode:
    def test_six_digits(self):
        for _ in range(50):
            code = admin_login.generate_verification_code()
            assert len(code) == 6
            assert 100000 <= int(code) <= 999999

"""
Test: Identity Toolkit REST client.
requests.post is replaced; no network calls.
"""
import pytest
import requests

from easymind import identity


class FakeResponse:
    def __init__(self, status_code, data):
        self.status_code = status_code
        self._data = data
        self.content = b"{}" if data is not None else b""

    def json(self):
        return self._data


@pytest.fixture
def post(monkeypatch):
    monkeypatch.setattr(identity, "FIREBASE_WEB_API_KEY", "web-key")
    calls = []
    replies = []

    def fake_post(url, params=None, json=None, timeout=None):
        calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        reply = replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(identity.requests, "post", fake_post)
    return calls, replies


class TestSignIn:
    def test_success(self, post):
        calls, replies = post
        replies.append(FakeResponse(200, {
            "localId": "uid1", "email": "ana@school.ph", "idToken": "id", "refreshToken": "refresh",
        }))
        account = identity.sign_in_with_password("ana@school.ph", "secret")
        assert account == {"uid": "uid1", "email": "ana@school.ph", "id_token": "id", "refresh_token": "refresh"}
        assert calls[0]["url"].endswith("accounts:signInWithPassword")
        assert calls[0]["params"] == {"key": "web-key"}
        assert calls[0]["json"]["returnSecureToken"] is True

    @pytest.mark.parametrize("provider,code", [
        ("INVALID_LOGIN_CREDENTIALS", "auth/invalid-credential"),
        ("USER_DISABLED", "auth/user-disabled"),
        ("TOO_MANY_ATTEMPTS_TRY_LATER : Access disabled", "auth/too-many-requests"),
        ("SOMETHING_NEW", "auth/internal-error"),
    ])
    def test_error_mapping(self, post, provider, code):
        _, replies = post
        replies.append(FakeResponse(400, {"error": {"message": provider}}))
        with pytest.raises(identity.IdentityError) as exc:
            identity.sign_in_with_password("ana@school.ph", "wrong")
        assert exc.value.code == code

    def test_network_error(self, post):
        _, replies = post
        replies.append(requests.ConnectionError("offline"))
        with pytest.raises(identity.IdentityError) as exc:
            identity.sign_in_with_password("ana@school.ph", "secret")
        assert exc.value.code == "auth/network-request-failed"

    def test_missing_key(self, monkeypatch):
        monkeypatch.setattr(identity, "FIREBASE_WEB_API_KEY", "")
        with pytest.raises(identity.IdentityError) as exc:
            identity.sign_in_with_password("ana@school.ph", "secret")
        assert exc.value.code == "auth/configuration-not-found"


class TestOutOfBand:
    def test_sign_up_weak_password(self, post):
        _, replies = post
        replies.append(FakeResponse(400, {"error": {"message": "WEAK_PASSWORD : Password should be at least 6 characters"}}))
        with pytest.raises(identity.IdentityError) as exc:
            identity.sign_up("ana@school.ph", "123")
        assert exc.value.code == "auth/weak-password"

    def test_password_reset(self, post):
        calls, replies = post
        replies.append(FakeResponse(200, {"email": "ana@school.ph"}))
        identity.send_password_reset("ana@school.ph")
        assert calls[0]["json"] == {"requestType": "PASSWORD_RESET", "email": "ana@school.ph"}

    def test_email_verification(self, post):
        calls, replies = post
        replies.append(FakeResponse(200, None))
        identity.send_email_verification("id-token")
        assert calls[0]["url"].endswith("accounts:sendOobCode")
        assert calls[0]["json"] == {"requestType": "VERIFY_EMAIL", "idToken": "id-token"}

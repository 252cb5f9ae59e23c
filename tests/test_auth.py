import pytest
import requests

from subharvest.auth import AccessToken, TokenManager, fetch_token
from subharvest.config import Credentials
from subharvest.errors import AuthError, BadAppCredentials, BadUserCredentials, MalformedResponse, TransportError

CREDS = Credentials(username="user", password="pw", app_id="app", app_secret="secret")


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    def __init__(self, *responses):
        self._responses = list(responses)
        self.posts = []

    def post(self, url, data=None, auth=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": data, "auth": auth, "headers": headers})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def ok(token="abc", expires_in=3600):
    return FakeResponse(body={"access_token": token, "token_type": "bearer", "expires_in": expires_in})


def test_fetch_token_posts_password_grant():
    session = FakeSession(ok())

    token = fetch_token(session, CREDS, "agent/1.0", clock=lambda: 50.0)

    assert token == AccessToken(access_token="abc", ttl=3600.0, fetched_at=50.0)
    post = session.posts[0]
    assert post["url"] == "https://www.reddit.com/api/v1/access_token"
    assert post["data"] == {"grant_type": "password", "username": "user", "password": "pw"}
    assert post["auth"] == ("app", "secret")
    assert post["headers"] == {"User-Agent": "agent/1.0"}


def test_fetch_token_bad_app_credentials():
    with pytest.raises(BadAppCredentials):
        fetch_token(FakeSession(FakeResponse(status_code=401)), CREDS, "agent")


def test_fetch_token_bad_user_credentials():
    session = FakeSession(FakeResponse(body={"error": "invalid_grant"}))

    with pytest.raises(BadUserCredentials):
        fetch_token(session, CREDS, "agent")


def test_fetch_token_other_error_body():
    session = FakeSession(FakeResponse(body={"error": "unsupported_grant_type"}))

    with pytest.raises(AuthError):
        fetch_token(session, CREDS, "agent")


def test_fetch_token_missing_fields():
    with pytest.raises(MalformedResponse):
        fetch_token(FakeSession(FakeResponse(body={"token_type": "bearer"})), CREDS, "agent")


def test_fetch_token_network_failure():
    with pytest.raises(TransportError):
        fetch_token(FakeSession(requests.Timeout("slow")), CREDS, "agent")


def test_should_renew_two_minutes_before_expiry():
    token = AccessToken(access_token="abc", ttl=3600, fetched_at=0)

    assert not token.should_renew(3479)
    assert token.should_renew(3480)
    assert token.should_renew(4000)


def test_token_manager_reuses_until_near_expiry():
    now = [0.0]
    session = FakeSession(ok("first"), ok("second"))
    manager = TokenManager(CREDS, "agent", session=session, clock=lambda: now[0])

    assert manager.token() == "first"
    now[0] = 1000
    assert manager.token() == "first"
    now[0] = 3500
    assert manager.token() == "second"
    assert len(session.posts) == 2


def test_token_manager_invalidate_forces_fetch():
    session = FakeSession(ok("first"), ok("second"))
    manager = TokenManager(CREDS, "agent", session=session, clock=lambda: 0.0)

    manager.token()
    manager.invalidate()

    assert manager.token() == "second"

import pytest
import jwt
from datetime import datetime, timedelta, timezone

from backend.auth_service.models import Identity
from backend.auth_service.utils import (
    InvalidToken,
    TokenService,
    authenticate_request,
    optional_identity,
)
from backend.common.errors import Unauthorized

SECRET = "test_secret_with_at_least_32_bytes!"


@pytest.fixture
def service():
    return TokenService(SECRET, expiration_minutes=60)


def test_issue_token_contents(service):
    token = service.issue(Identity(123, "organizer"))

    assert isinstance(token, str)

    payload = jwt.decode(token, SECRET, algorithms=["HS256"])
    assert payload["sub"] == "123"
    assert payload["role"] == "organizer"
    assert payload["exp"] - payload["iat"] == 3600


@pytest.mark.parametrize("identity", [Identity(1, "student"), Identity(987654, "organizer")])
def test_verify_round_trip(service, identity):
    assert service.verify(service.issue(identity)) == identity


def test_verify_expired(service):
    issued = datetime.now(timezone.utc) - timedelta(hours=2)
    token = service.issue(Identity(5, "student"), issued_at=issued)

    with pytest.raises(InvalidToken) as exc:
        service.verify(token)
    assert exc.value.reason == "expired"


def test_verify_wrong_signature(service):
    token = TokenService("another_secret_with_at_least_32_bytes").issue(Identity(5, "student"))

    with pytest.raises(InvalidToken) as exc:
        service.verify(token)
    assert exc.value.reason == "signature"


def test_verify_malformed(service):
    with pytest.raises(InvalidToken) as exc:
        service.verify("invalid.token.here")
    assert exc.value.reason == "malformed"


def test_verify_missing_role(service):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "5", "iat": now, "exp": now + timedelta(minutes=5)},
        SECRET,
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        service.verify(token)


def test_missing_secret_is_fatal():
    with pytest.raises(RuntimeError):
        TokenService("")


def test_authenticate_request_valid(app, auth_headers):
    with app.test_request_context(headers=auth_headers(789, "organizer")):
        assert authenticate_request() == Identity(789, "organizer")


def test_authenticate_request_missing_header(app):
    with app.test_request_context():
        with pytest.raises(Unauthorized) as exc:
            authenticate_request()
        assert exc.value.message == "missing token"


def test_authenticate_request_invalid_format(app):
    with app.test_request_context(headers={"Authorization": "InvalidFormat"}):
        with pytest.raises(Unauthorized) as exc:
            authenticate_request()
        assert exc.value.message == "missing token"


def test_authenticate_request_bad_token(app):
    with app.test_request_context(headers={"Authorization": "Bearer nonsense"}):
        with pytest.raises(Unauthorized) as exc:
            authenticate_request()
        assert exc.value.message == "invalid token"


def test_optional_identity(app, auth_headers):
    with app.test_request_context():
        assert optional_identity() is None
    with app.test_request_context(headers={"Authorization": "Bearer nonsense"}):
        assert optional_identity() is None
    with app.test_request_context(headers=auth_headers(3)):
        assert optional_identity() == Identity(3, "student")


def test_protected_route_rejects_expired_token(client, token_service):
    issued = datetime.now(timezone.utc) - timedelta(days=2)
    token = token_service.issue(Identity(1, "student"), issued_at=issued)

    response = client.get("/user/details", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.get_json()["error"] == "invalid token"

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from jose import jwt

from treasury.api.dependencies import get_db
from treasury.auth.jwt import create_access_token, resolve_token_user
from treasury.config import settings
from treasury.main import app


def _override_get_db(session):
    def _generator():
        try:
            yield session
        finally:
            pass

    return _generator


def test_resolve_token_user_accepts_valid_token(db_session, create_user):
    user = create_user()

    assert resolve_token_user(db_session, create_access_token({"sub": str(user.id)})).id == user.id


def test_resolve_token_user_rejects_bad_tokens(db_session, create_user):
    user = create_user()
    inactive = create_user()
    inactive.is_active = False
    db_session.commit()
    expired = jwt.encode(
        {"sub": str(user.id), "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )

    assert resolve_token_user(db_session, "not-a-token") is None
    assert resolve_token_user(db_session, expired) is None
    assert resolve_token_user(db_session, create_access_token({"sub": "abc"})) is None
    assert resolve_token_user(db_session, create_access_token({"sub": str(user.id), "type": "refresh"})) is None
    assert resolve_token_user(db_session, create_access_token({"sub": str(inactive.id)})) is None


def test_me_lists_memberships_by_role_priority(db_session, create_organization, create_user, create_membership):
    first = create_organization("RT 05")
    second = create_organization("RT 06")
    user = create_user(name="Sari")
    create_membership(user, first, role="VIEWER")
    create_membership(user, second, role="ADMIN")

    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)
    try:
        token = create_access_token({"sub": str(user.id)})
        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Sari"
        assert [item["organization_name"] for item in body["memberships"]] == ["RT 06", "RT 05"]
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_missing_token_is_401():
    client = TestClient(app)

    response = client.get("/dues/unpaid", params={"organization_id": 1})

    assert response.status_code == 401

from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from treasury.core.errors import (
    INTERNAL_ERROR_DETAIL,
    AccessDenied,
    ConflictError,
    NotFound,
    StoreError,
    ValidationError,
    register_exception_handlers,
)
from treasury.main import app as treasury_app


class Body(BaseModel):
    amount: int


def _build_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/validation")
    def validation_route():
        raise ValidationError("month must be between 1 and 12")

    @app.get("/missing")
    def missing_route():
        raise NotFound("Dues not found")

    @app.get("/denied")
    def denied_route():
        raise AccessDenied("Access denied to organization")

    @app.get("/store")
    def store_route():
        raise StoreError("database is locked: INSERT INTO payments ...")

    @app.get("/conflict")
    def conflict_route():
        raise ConflictError("UNIQUE constraint failed: dues.member_id")

    @app.get("/crash")
    def crash_route():
        raise RuntimeError("secret stack detail")

    @app.post("/body")
    def body_route(payload: Body):
        return {"amount": payload.amount}

    return app


def test_domain_errors_map_to_status_codes():
    client = TestClient(_build_app())

    assert client.get("/validation").status_code == 400
    assert client.get("/missing").status_code == 404
    assert client.get("/denied").status_code == 403
    assert client.get("/validation").json()["detail"] == "month must be between 1 and 12"


def test_server_errors_hide_internal_detail():
    client = TestClient(_build_app(), raise_server_exceptions=False)

    for path in ("/store", "/conflict", "/crash"):
        response = client.get(path)
        assert response.status_code == 500
        assert response.json()["detail"] == INTERNAL_ERROR_DETAIL


def test_request_body_validation_is_400():
    client = TestClient(_build_app())

    response = client.post("/body", json={"amount": "not-a-number"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Validation failed."
    assert response.json()["errors"][0]["loc"] == ["body", "amount"]


def test_response_carries_request_id():
    client = TestClient(treasury_app)
    response = client.get("/system/version", headers={"X-Request-ID": "abc-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc-123"

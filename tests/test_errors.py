import pytest
from fastapi import APIRouter
from httpx import ASGITransport, AsyncClient

from core.errors import (
    AppError,
    Conflict,
    ErrorKind,
    Internal,
    NotFound,
    Unauthorized,
    ValidationFailure,
    build_error_envelope,
    http_mapping,
)
from main import create_app


def test_every_kind_has_one_http_mapping():
    assert http_mapping(ErrorKind.VALIDATION) == (400, "invalid_request")
    assert http_mapping(ErrorKind.UNAUTHORIZED) == (401, "unauthorized")
    assert http_mapping(ErrorKind.NOT_FOUND) == (404, "not_found")
    assert http_mapping(ErrorKind.CONFLICT) == (409, "conflict")
    assert http_mapping(ErrorKind.INTERNAL) == (500, "internal_error")


def test_error_classes_carry_their_kind():
    assert ValidationFailure("x").kind is ErrorKind.VALIDATION
    assert NotFound("x").kind is ErrorKind.NOT_FOUND
    assert Conflict("x").kind is ErrorKind.CONFLICT
    assert Unauthorized("x").kind is ErrorKind.UNAUTHORIZED
    assert Internal("x").kind is ErrorKind.INTERNAL
    assert AppError("x").kind is ErrorKind.INTERNAL


def test_envelope_omits_empty_details():
    assert build_error_envelope(code="conflict", message="m", request_id="r") == {
        "error": {"code": "conflict", "message": "m", "request_id": "r"}
    }
    with_details = build_error_envelope(code="invalid_request", message="m", request_id="r", details=[1])
    assert with_details["error"]["details"] == [1]


@pytest.mark.asyncio
async def test_request_id_is_echoed_in_header_and_envelope(client, store):
    res = await client.post("/orgs", json={"name": ""}, headers={"X-Request-ID": "req-123"})

    assert res.status_code == 400
    assert res.headers["X-Request-ID"] == "req-123"
    assert res.json()["error"]["request_id"] == "req-123"


@pytest.mark.asyncio
async def test_request_id_is_generated_when_absent(client, store):
    res = await client.post("/orgs", json={"name": ""})

    generated = res.headers["X-Request-ID"]
    assert generated
    assert res.json()["error"]["request_id"] == generated


@pytest.mark.asyncio
async def test_malformed_body_is_invalid_request_without_echoing_input(client, store):
    res = await client.post(
        "/tokens",
        content=b'{"project_id": ["secret-value"]}',
        headers={"Content-Type": "application/json"},
    )

    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "invalid_request"
    assert error["message"] == "Validation failed"
    assert error["details"]
    assert "secret-value" not in res.text


@pytest.mark.asyncio
async def test_unknown_route_uses_the_envelope(client, store):
    res = await client.get("/nope")

    assert res.status_code == 404
    assert res.json()["error"]["code"] == "not_found"


@pytest.mark.asyncio
async def test_wrong_method_uses_the_envelope(client, store):
    res = await client.get("/orgs")

    assert res.status_code == 405
    assert res.json()["error"]["code"] == "method_not_allowed"


@pytest.mark.asyncio
async def test_health(client):
    res = await client.get("/health")

    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_internal_error(fake_db, app_settings):
    app = create_app(settings=app_settings, database=fake_db)
    boom = APIRouter()

    @boom.get("/boom")
    async def explode():
        raise RuntimeError("connection to 10.0.0.5 refused")

    app.include_router(boom)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        res = await ac.get("/boom")

    assert res.status_code == 500
    assert res.json()["error"]["code"] == "internal_error"
    assert res.json()["error"]["message"] == "An internal server error occurred"
    assert "10.0.0.5" not in res.text

# tests/test_db_errors.py
import psycopg2
import pytest

import routes.requests as request_routes
from app.requests.errors import DuplicateError, NotFound, ValidationError
from services.db_errors import raise_for_db_error, translate_db_error
from tests.conftest import _auth_headers


class FakeDiag:
    def __init__(self, constraint_name=None, table_name=None):
        self.constraint_name = constraint_name
        self.table_name = table_name


class FakePgError(Exception):
    def __init__(self, pgcode, constraint_name=None, table_name=None):
        super().__init__(f"pg error {pgcode}")
        self.pgcode = pgcode
        self.diag = FakeDiag(constraint_name, table_name)


def test_unique_violation_names_the_field():
    err = translate_db_error(FakePgError("23505", "equipment_serial_number_key", "equipment"))
    assert isinstance(err, DuplicateError)
    assert err.data == {"field": "serial_number"}
    assert "serial_number" in err.message


def test_foreign_key_violation_is_not_found():
    err = translate_db_error(FakePgError("23503", "maintenance_requests_equipment_id_fkey", "maintenance_requests"))
    assert isinstance(err, NotFound)
    assert err.data == {"field": "equipment_id"}


def test_check_violation_is_validation_error():
    assert isinstance(translate_db_error(FakePgError("23514")), ValidationError)


def test_unknown_code_is_not_translated():
    assert translate_db_error(FakePgError("40P01")) is None
    assert translate_db_error(RuntimeError("no pgcode")) is None


def test_raise_for_db_error_reraises_unknown():
    original = FakePgError("57014")
    with pytest.raises(FakePgError) as exc:
        raise_for_db_error(original)
    assert exc.value is original


def test_raise_for_db_error_translates_known():
    with pytest.raises(DuplicateError):
        raise_for_db_error(FakePgError("23505"))


def test_unknown_db_error_returns_500(client, world, monkeypatch):
    """
    Force an unknown DB exception inside a route and assert we fail closed:
      - status_code = 500
      - detail = "Internal server error"
      - no raw exception details leaked
    """

    class DummyConn:
        def __enter__(self):  # pragma: no cover
            raise psycopg2.OperationalError("SOME_RANDOM_DB_BLOWUP_123")
        def __exit__(self, exc_type, exc, tb):  # pragma: no cover
            return False

    monkeypatch.setattr(request_routes, "get_conn", lambda: DummyConn(), raising=True)

    r = client.get(
        "/v1/requests/00000000-0000-0000-0000-000000000001",
        headers=_auth_headers(world.manager),
    )

    assert r.status_code == 500, r.text
    body = r.json()
    assert body.get("detail") == "Internal server error"

    # Ensure raw exception text isn't leaked
    assert "SOME_RANDOM_DB_BLOWUP_123" not in r.text

"""Tests for the HTTP surface: status codes, bodies and error mapping."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_disguise_context
from disguiser.errors import InvalidInputError, NoMatchError, NotFoundError
from main import app
from schemas.entities import DisguiseRecord, FunctionRecord, PlaceholderLocator, VaultIdentity
from services import disguise_service, vault_service

from conftest import NOW

SCRUB_BODY = {
    "disguise_name": "userscrub",
    "vault_id": "19",
    "transformations": [
        {"transform_type": "decorrelation", "table_name": "review", "predicate": "contact_id=19"},
        {"transform_type": "removal", "table_name": "contact_info", "predicate": "contact_id=19"},
    ],
}


def _record(functions: int = 3) -> DisguiseRecord:
    return DisguiseRecord(
        policy_name="userscrub",
        vault_id="19",
        applied_at=NOW,
        functions=[
            FunctionRecord("removal", "contact_info", f"contact_id={i}", "", "")
            for i in range(functions)
        ],
        disguise_id=7,
    )


@pytest.fixture
def client():
    # no lifespan: the stores are never touched, services are mocked
    app.dependency_overrides[get_disguise_context] = lambda: object()
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client: TestClient):
        assert client.get("/api/health").json() == {"status": "ok"}


class TestDisguiseRoutes:
    def test_userscrub(self, client: TestClient, monkeypatch):
        mock = AsyncMock(return_value=_record())
        monkeypatch.setattr(disguise_service, "scrub_user", mock)

        resp = client.post("/disguise/userscrub", json=SCRUB_BODY)

        assert resp.status_code == 200
        assert resp.json() == {
            "message": "The policy has been applied.",
            "disguise_id": 7,
            "functions": 3,
        }
        requirement = mock.await_args.args[1]
        assert requirement.vault_id == "19"
        assert [t.kind for t in requirement.to_transformations()] == ["decorrelation", "removal"]

    def test_recover(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(
            disguise_service, "recover_disguise", AsyncMock(return_value=_record(2))
        )
        resp = client.post("/disguise/recover", json={"disguise_name": "userscrub", "vault_id": "19"})
        assert resp.status_code == 200
        assert resp.json()["message"] == "The disguise has been recovered."

    def test_clearvault(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(disguise_service, "clear_vault", AsyncMock(return_value=4))
        resp = client.post("/disguise/clearvault", json={"disguise_name": "clearvault", "delete_age": 3})
        assert resp.status_code == 200
        assert resp.json()["disguises_removed"] == 4

    def test_malformed_body_is_400(self, client: TestClient):
        resp = client.post("/disguise/anonymize", json={"vault_id": "19"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Please provide valid Json input"

    def test_negative_age_is_400(self, client: TestClient):
        resp = client.post(
            "/disguise/expiration",
            json={"disguise_name": "expiration", "vault_id": "19", "delete_age": -1},
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "error, status",
        [
            (InvalidInputError("The disguise name is not correct."), 400),
            (NotFoundError("Vault id is not found."), 404),
            (NoMatchError("review", "contact_id=404"), 404),
        ],
    )
    def test_engine_errors_map_to_status(self, client: TestClient, monkeypatch, error, status):
        monkeypatch.setattr(disguise_service, "anonymize", AsyncMock(side_effect=error))
        resp = client.post("/disguise/anonymize", json=SCRUB_BODY | {"disguise_name": "anonymize"})
        assert resp.status_code == status
        assert resp.json() == {"detail": error.message}


class TestVaultRoutes:
    def test_generate(self, client: TestClient, monkeypatch):
        identity = VaultIdentity(
            vault_id="19",
            email="bea@mail.com",
            placeholder=PlaceholderLocator(table="contact_info", predicate="contact_id=0"),
        )
        monkeypatch.setattr(vault_service, "generate_vault", AsyncMock(return_value=identity))

        resp = client.post("/vault/generate", json={
            "vault_id": "19",
            "email": "bea@mail.com",
            "generate_placeholder": {
                "table": "contact_info",
                "primary_key_name": "contact_id",
                "fields": "name, last_login",
                "field_values": "'placeholder', '2000-01-01 00:00:00'",
            },
        })

        assert resp.status_code == 201
        assert resp.json()["placeholder_predicate"] == "contact_id=0"

    def test_lookup_by_email_and_id(self, client: TestClient, monkeypatch):
        from api.routes import vault as vault_routes

        identity = VaultIdentity(
            vault_id="19",
            email="bea@mail.com",
            placeholder=PlaceholderLocator(table="contact_info", predicate="contact_id=0"),
        )
        ledger = AsyncMock()
        ledger.get_vault_by_email.return_value = identity
        ledger.get_vault.side_effect = NotFoundError("Vault id is not found.")
        monkeypatch.setattr(vault_routes, "VaultLedger", lambda ctx: ledger)

        resp = client.get("/vault", params={"email": "bea@mail.com"})
        assert resp.status_code == 200
        assert resp.json()["vault_id"] == "19"

        resp = client.get("/vault/404")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Vault id is not found."}

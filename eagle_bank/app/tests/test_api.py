import re
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from ..core.db import create_engine_for_url, get_session, init_db, reset_db, set_engine
from ..main import app

@pytest.fixture
def client(tmp_path) -> TestClient:
    test_db = tmp_path / "test.db"
    engine = create_engine_for_url(f"sqlite:///{test_db}")
    original_engine = set_engine(engine)
    reset_db(engine)

    def _get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override
    init_db()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    set_engine(original_engine)
    engine.dispose()


def register(client: TestClient, name: str = "Alice") -> tuple[int, dict[str, str]]:
    email = f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com"
    created = client.post(
        "/v1/users",
        json={
            "name": name,
            "email": email,
            "phone_number": "+447700900123",
            "password": "correct-horse",
            "address": {"line1": "1 High Street", "town": "London", "postcode": "E1 6AN"},
        },
    )
    assert created.status_code == 201
    token = client.post(
        "/v1/auth/login", json={"email": email, "password": "correct-horse"}
    ).json()["access_token"]
    return created.json()["id"], {"Authorization": f"Bearer {token}"}


def open_account(client: TestClient, headers: dict[str, str], account_type: str = "personal") -> str:
    response = client.post(
        "/v1/accounts",
        json={"name": "Main", "account_type": account_type},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["account_number"]


def transact(client, headers, account_number, amount, tx_type, currency="GBP", reference=None):
    return client.post(
        f"/v1/accounts/{account_number}/transactions",
        json={"amount": amount, "currency": currency, "type": tx_type, "reference": reference},
        headers=headers,
    )


def test_create_account_starts_empty(client: TestClient) -> None:
    _, headers = register(client)
    response = client.post(
        "/v1/accounts", json={"name": "Savings pot", "account_type": "SAVINGS"}, headers=headers
    )
    assert response.status_code == 201
    account = response.json()
    assert re.fullmatch(r"\d{8}", account["account_number"])
    assert re.fullmatch(r"\d{2}-\d{2}-\d{2}", account["sort_code"])
    assert account["account_type"] == "savings"
    assert account["balance"] == "0.00"
    assert account["currency"] == "GBP"

    listing = client.get("/v1/accounts", headers=headers)
    assert [a["account_number"] for a in listing.json()] == [account["account_number"]]

def test_deposit_withdraw_scenario(client: TestClient) -> None:
    _, headers = register(client)
    number = open_account(client, headers)

    deposit = transact(client, headers, number, "100.00", "deposit", reference="salary")
    assert deposit.status_code == 201
    assert deposit.json()["id"].startswith("tan-")
    assert client.get(f"/v1/accounts/{number}", headers=headers).json()["balance"] == "100.00"

    too_much = transact(client, headers, number, "150.00", "withdrawal")
    assert too_much.status_code == 422
    assert client.get(f"/v1/accounts/{number}", headers=headers).json()["balance"] == "100.00"

    withdrawal = transact(client, headers, number, "100.00", "withdrawal")
    assert withdrawal.status_code == 201
    assert client.get(f"/v1/accounts/{number}", headers=headers).json()["balance"] == "0.00"

    history = client.get(f"/v1/accounts/{number}/transactions", headers=headers)
    assert history.status_code == 200
    assert [t["id"] for t in history.json()] == [withdrawal.json()["id"], deposit.json()["id"]]
    assert [t["type"] for t in history.json()] == ["withdrawal", "deposit"]

def test_other_users_account_is_forbidden_and_unknown_is_not_found(client: TestClient) -> None:
    _, alice = register(client, "Alice")
    _, bob = register(client, "Bob")
    bobs_account = open_account(client, bob)

    assert client.get(f"/v1/accounts/{bobs_account}", headers=alice).status_code == 403
    assert client.get("/v1/accounts/00000000", headers=alice).status_code == 404

    assert client.patch(
        f"/v1/accounts/{bobs_account}",
        json={"name": "Mine now", "account_type": "business"},
        headers=alice,
    ).status_code == 403
    assert client.delete(f"/v1/accounts/{bobs_account}", headers=alice).status_code == 403
    assert transact(client, alice, bobs_account, "10.00", "deposit").status_code == 403
    assert client.get(f"/v1/accounts/{bobs_account}/transactions", headers=alice).status_code == 403
    assert transact(client, alice, "00000000", "10.00", "deposit").status_code == 404

def test_forbidden_transaction_does_not_touch_balance(client: TestClient) -> None:
    _, alice = register(client, "Alice")
    _, bob = register(client, "Bob")
    bobs_account = open_account(client, bob)
    transact(client, bob, bobs_account, "50.00", "deposit")

    assert transact(client, alice, bobs_account, "50.00", "withdrawal").status_code == 403
    assert client.get(f"/v1/accounts/{bobs_account}", headers=bob).json()["balance"] == "50.00"

def test_transaction_detail_through_other_account_is_not_found(client: TestClient) -> None:
    _, headers = register(client)
    first = open_account(client, headers)
    second = open_account(client, headers)
    tx_id = transact(client, headers, first, "25.50", "deposit").json()["id"]

    found = client.get(f"/v1/accounts/{first}/transactions/{tx_id}", headers=headers)
    assert found.status_code == 200
    assert found.json()["amount"] == "25.50"

    crossed = client.get(f"/v1/accounts/{second}/transactions/{tx_id}", headers=headers)
    assert crossed.status_code == 404

    missing = client.get(f"/v1/accounts/{first}/transactions/tan-missing", headers=headers)
    assert missing.status_code == 404

def test_transaction_detail_on_foreign_account_is_forbidden(client: TestClient) -> None:
    _, alice = register(client, "Alice")
    _, bob = register(client, "Bob")
    bobs_account = open_account(client, bob)
    tx_id = transact(client, bob, bobs_account, "5.00", "deposit").json()["id"]

    response = client.get(f"/v1/accounts/{bobs_account}/transactions/{tx_id}", headers=alice)
    assert response.status_code == 403

@pytest.mark.parametrize(
    "body",
    [
        {"amount": "0.00", "currency": "GBP", "type": "deposit"},
        {"amount": "-5.00", "currency": "GBP", "type": "deposit"},
        {"amount": "10000.01", "currency": "GBP", "type": "deposit"},
        {"amount": "1.001", "currency": "GBP", "type": "deposit"},
        {"currency": "GBP", "type": "deposit"},
        {"amount": "5.00", "currency": "GBP", "type": "transfer"},
        {"amount": "5.00", "currency": "USD", "type": "deposit"},
        {"amount": "5.00", "currency": "gbp", "type": "deposit"},
    ],
)
def test_invalid_transaction_requests_return_400(client: TestClient, body: dict) -> None:
    _, headers = register(client)
    number = open_account(client, headers)

    response = client.post(f"/v1/accounts/{number}/transactions", json=body, headers=headers)
    assert response.status_code == 400
    assert client.get(f"/v1/accounts/{number}/transactions", headers=headers).json() == []

def test_maximum_amount_is_accepted(client: TestClient) -> None:
    _, headers = register(client)
    number = open_account(client, headers)

    assert transact(client, headers, number, "10000.00", "deposit").status_code == 201

def test_update_and_delete_account(client: TestClient) -> None:
    _, headers = register(client)
    number = open_account(client, headers)
    transact(client, headers, number, "20.00", "deposit")

    updated = client.patch(
        f"/v1/accounts/{number}",
        json={"name": "Business", "account_type": "BUSINESS"},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Business"
    assert updated.json()["account_type"] == "business"
    assert updated.json()["balance"] == "20.00"

    # Accounts can be closed with money still in them.
    assert client.delete(f"/v1/accounts/{number}", headers=headers).status_code == 204
    assert client.get(f"/v1/accounts/{number}", headers=headers).status_code == 404

def test_requests_without_token_are_unauthorized(client: TestClient) -> None:
    assert client.get("/v1/accounts").status_code == 401
    bad = client.get("/v1/accounts", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401
    assert bad.headers["WWW-Authenticate"] == "Bearer"

def test_login_with_wrong_password_fails(client: TestClient) -> None:
    email = "carol@example.com"
    client.post(
        "/v1/users",
        json={"name": "Carol", "email": email, "phone_number": "07700900123", "password": "s3cret-pass"},
    )
    response = client.post("/v1/auth/login", json={"email": email, "password": "wrong-pass"})
    assert response.status_code == 401

def test_duplicate_email_conflicts(client: TestClient) -> None:
    body = {"name": "Dan", "email": "dan@example.com", "phone_number": "07700900123", "password": "s3cret-pass"}
    assert client.post("/v1/users", json=body).status_code == 201
    assert client.post("/v1/users", json=body).status_code == 409

def test_user_access_is_limited_to_self(client: TestClient) -> None:
    alice_id, alice = register(client, "Alice")
    bob_id, _ = register(client, "Bob")

    own = client.get(f"/v1/users/{alice_id}", headers=alice)
    assert own.status_code == 200
    assert own.json()["address"]["town"] == "London"
    assert client.get(f"/v1/users/{bob_id}", headers=alice).status_code == 403
    assert client.get("/v1/users/999999", headers=alice).status_code == 404

    patched = client.patch(f"/v1/users/{alice_id}", json={"name": "Alice Smith"}, headers=alice)
    assert patched.status_code == 200
    assert patched.json()["name"] == "Alice Smith"
    assert patched.json()["phone_number"] == "+447700900123"

def test_user_with_accounts_cannot_be_deleted(client: TestClient) -> None:
    user_id, headers = register(client)
    number = open_account(client, headers)

    assert client.delete(f"/v1/users/{user_id}", headers=headers).status_code == 409

    client.delete(f"/v1/accounts/{number}", headers=headers)
    assert client.delete(f"/v1/users/{user_id}", headers=headers).status_code == 204
    assert client.get("/v1/accounts", headers=headers).status_code == 401

def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}

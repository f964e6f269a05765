# mypy: ignore-errors
"""Tests for establishment and user endpoints."""

from __future__ import annotations

import uuid

from eth_account import Account
from fastapi import status


def test_admin_creates_establishment(client, admin_token) -> None:
    response = client.post(
        "/api/v1/establishments",
        json={"name": "Bodega Norte", "category": "restaurant", "country": "CL"},
        headers=admin_token,
    )
    assert response.status_code == status.HTTP_201_CREATED
    created = response.json()

    fetched = client.get(f"/api/v1/establishments/{created['id']}")
    assert fetched.status_code == status.HTTP_200_OK
    assert fetched.json()["name"] == "Bodega Norte"


def test_regular_user_cannot_create_establishment(client, auth_token) -> None:
    response = client.post(
        "/api/v1/establishments",
        json={"name": "Nope", "category": "bar"},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_unknown_establishment(client) -> None:
    response = client.get(f"/api/v1/establishments/{uuid.uuid4()}")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": {"message": "establishment not found"}}


def test_register_user_with_wallet_defaults(client) -> None:
    address = Account.create().address
    response = client.post("/api/v1/users", json={"wallet_address": address.lower()})

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["wallet_address"] == address
    assert data["name"] == f"user-{address[2:8].lower()}"
    assert data["avatar_url"]
    assert data["role"] == "user"


def test_register_duplicate_wallet_conflicts(client, test_user) -> None:
    response = client.post("/api/v1/users", json={"wallet_address": test_user.wallet_address})
    assert response.status_code == status.HTTP_409_CONFLICT


def test_register_without_wallet_needs_name(client) -> None:
    assert client.post("/api/v1/users", json={"email": "a@example.com"}).status_code == 400
    named = client.post("/api/v1/users", json={"email": "a@example.com", "name": "Ana"})
    assert named.status_code == status.HTTP_201_CREATED
    assert named.json()["wallet_address"] is None


def test_read_user(client, test_user) -> None:
    response = client.get(f"/api/v1/users/{test_user.id}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["name"] == "Test User"


def test_read_unknown_user(client) -> None:
    assert client.get(f"/api/v1/users/{uuid.uuid4()}").status_code == status.HTTP_404_NOT_FOUND

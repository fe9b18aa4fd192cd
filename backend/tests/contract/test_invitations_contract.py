"""Contract tests for invitation endpoints.

These tests pin the response shapes clients rely on, including which
endpoints may and may not expose the invitation token.
"""

import pytest
from httpx import AsyncClient

from teamdesk.models.user import User

INVITATION_FIELDS = {
    "id",
    "email",
    "role",
    "status",
    "inviter_user_id",
    "team_ids",
    "permissions",
    "custom_message",
    "expires_at",
    "accepted_at",
    "created_at",
}


@pytest.mark.asyncio
class TestInvitationContract:
    async def test_create_response_schema(self, client: AsyncClient, auth_headers, test_admin: User):
        response = await client.post(
            "/api/invitations",
            headers=auth_headers(test_admin),
            json={"email": "newuser@acme.example.com", "role": "agent"},
        )

        assert response.status_code == 201
        data = response.json()
        assert set(data) == INVITATION_FIELDS | {"token", "notified"}
        assert data["inviter_user_id"] == str(test_admin.id)
        assert isinstance(data["token"], str)
        assert len(data["token"]) >= 43

    async def test_list_response_omits_token(self, client, auth_headers, test_admin):
        await client.post(
            "/api/invitations",
            headers=auth_headers(test_admin),
            json={"email": "newuser@acme.example.com", "role": "agent"},
        )

        response = await client.get("/api/invitations", headers=auth_headers(test_admin))

        assert response.status_code == 200
        assert set(response.json()[0]) == INVITATION_FIELDS

    async def test_stats_response_schema(self, client, auth_headers, test_admin):
        response = await client.get("/api/invitations/stats", headers=auth_headers(test_admin))

        assert response.status_code == 200
        assert set(response.json()) == {
            "total_sent",
            "total_accepted",
            "total_pending",
            "total_expired",
            "acceptance_rate",
            "recent_invitations",
        }
        assert response.json()["acceptance_rate"] == 0

    async def test_validate_response_schema(self, client):
        response = await client.get("/api/invitations/validate/unknown")

        assert response.status_code == 200
        assert set(response.json()) == {"valid", "message", "email", "role", "tenant_name", "expires_at"}

    async def test_accept_response_schema(self, client):
        response = await client.post(
            "/api/invitations/accept", json={"token": "unknown", "first_name": "A", "last_name": "B"}
        )

        assert response.status_code == 200
        assert set(response.json()) == {"success", "message", "user"}

    async def test_error_response_schema(self, client, auth_headers, test_admin):
        response = await client.post(
            "/api/invitations/00000000-0000-0000-0000-000000000000/cancel",
            headers=auth_headers(test_admin),
        )

        assert response.status_code == 404
        assert set(response.json()) == {"detail"}

    async def test_unauthenticated(self, client):
        response = await client.post("/api/invitations", json={"email": "x@acme.example.com", "role": "agent"})

        assert response.status_code in [401, 403]

"""Integration tests for tenant bootstrap, tenant details and configuration."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from teamdesk.models.team import Team
from teamdesk.models.user import User


def new_tenant(**overrides) -> dict:
    return {
        "name": "Initech",
        "owner_email": "bill@initech.example.com",
        "owner_password": "Str0ng!Passw0rd",
        "first_name": "Bill",
        "last_name": "Lumbergh",
        **overrides,
    }


@pytest.mark.asyncio
class TestTenantBootstrap:
    async def test_create_tenant(self, client: AsyncClient, db, bootstrap_headers, auth_headers):
        response = await client.post("/api/tenants", headers=bootstrap_headers, json=new_tenant())

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Initech"
        assert "owner_id" in data

        owner = await db.scalar(select(User).where(User.email == "bill@initech.example.com"))
        me = await client.get("/api/me", headers=auth_headers(owner))
        assert me.json()["role"] == "owner"
        assert me.json()["id"] == data["owner_id"]

        teams = (await client.get("/api/teams", headers=auth_headers(owner))).json()
        assert [(t["name"], t["is_default"]) for t in teams] == [("General", True)]

    async def test_wrong_bootstrap_token(self, client):
        response = await client.post(
            "/api/tenants", headers={"X-Bootstrap-Token": "guess"}, json=new_tenant()
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Invalid bootstrap token"

    async def test_missing_bootstrap_token(self, client, db):
        response = await client.post("/api/tenants", json=new_tenant())

        assert response.status_code == 403
        assert await db.scalar(select(Team).where(Team.name == "General")) is None

    async def test_duplicate_tenant(self, client, bootstrap_headers, test_tenant):
        response = await client.post(
            "/api/tenants", headers=bootstrap_headers, json=new_tenant(name=test_tenant.name)
        )

        assert response.status_code == 409

    async def test_weak_owner_password(self, client, bootstrap_headers):
        response = await client.post(
            "/api/tenants", headers=bootstrap_headers, json=new_tenant(owner_password="password1")
        )

        assert response.status_code == 400

    async def test_blank_name(self, client, bootstrap_headers):
        response = await client.post("/api/tenants", headers=bootstrap_headers, json=new_tenant(name="   "))

        assert response.status_code == 422


@pytest.mark.asyncio
class TestTenantDetails:
    async def test_get_own_tenant(self, client, auth_headers, test_tenant, test_viewer):
        response = await client.get("/api/tenants/me", headers=auth_headers(test_viewer))

        assert response.status_code == 200
        assert response.json()["id"] == str(test_tenant.id)
        assert response.json()["name"] == "Acme Support"

    async def test_admin_renames_tenant(self, client, auth_headers, test_admin):
        response = await client.patch(
            "/api/tenants/me", headers=auth_headers(test_admin), json={"name": "Acme Global"}
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Acme Global"

    async def test_agent_cannot_rename(self, client, auth_headers, test_agent):
        response = await client.patch(
            "/api/tenants/me", headers=auth_headers(test_agent), json={"name": "Mine Now"}
        )

        assert response.status_code == 403


@pytest.mark.asyncio
class TestTenantConfiguration:
    async def test_empty_configuration(self, client, auth_headers, test_viewer):
        response = await client.get("/api/tenants/me/configuration", headers=auth_headers(test_viewer))

        assert response.status_code == 200
        data = response.json()
        assert data["branding"] is None
        assert data["channels"] == {}
        assert data["workflow"]["business_hours"]["timezone"] == "UTC"

    async def test_colors_need_branding(self, client, auth_headers, test_admin):
        colors = {"primary": "#000000", "secondary": "#111111", "accent": "#222222"}

        before = await client.put(
            "/api/tenants/me/configuration/colors", headers=auth_headers(test_admin), json=colors
        )
        assert before.status_code == 400
        assert before.json()["detail"] == "Branding must be configured before colors"

        branding = await client.put(
            "/api/tenants/me/configuration/branding",
            headers=auth_headers(test_admin),
            json={"company_name": "Acme", "logo_url": "https://acme.example.com/logo.png"},
        )
        assert branding.status_code == 200
        assert branding.json()["colors"]["primary"] == "#3B82F6"

        after = await client.put(
            "/api/tenants/me/configuration/colors", headers=auth_headers(test_admin), json=colors
        )
        assert after.status_code == 200
        assert after.json()["company_name"] == "Acme"
        assert after.json()["colors"] == colors

    async def test_branding_rejects_non_http_logo(self, client, auth_headers, test_admin):
        response = await client.put(
            "/api/tenants/me/configuration/branding",
            headers=auth_headers(test_admin),
            json={"company_name": "Acme", "logo_url": "ftp://acme.example.com/logo.png"},
        )

        assert response.status_code == 422

    async def test_channel_secrets_are_masked(self, client, auth_headers, test_admin):
        saved = await client.put(
            "/api/tenants/me/configuration/channels",
            headers=auth_headers(test_admin),
            json={
                "type": "whatsapp",
                "business_account_id": "ba-1",
                "access_token": "secret-token",
                "phone_number_id": "ph-1",
            },
        )

        assert saved.status_code == 200
        assert saved.json()["access_token"] == "********"

        config = (
            await client.get("/api/tenants/me/configuration", headers=auth_headers(test_admin))
        ).json()
        assert config["channels"]["whatsapp"]["access_token"] == "********"
        assert config["channels"]["whatsapp"]["phone_number_id"] == "ph-1"

    async def test_unknown_channel_type(self, client, auth_headers, test_admin):
        response = await client.put(
            "/api/tenants/me/configuration/channels",
            headers=auth_headers(test_admin),
            json={"type": "fax", "number": "555"},
        )

        assert response.status_code == 422

    async def test_remove_channel(self, client, auth_headers, test_admin):
        await client.put(
            "/api/tenants/me/configuration/channels",
            headers=auth_headers(test_admin),
            json={"type": "instagram", "page_id": "pg-1", "access_token": "tok"},
        )

        first = await client.delete(
            "/api/tenants/me/configuration/channels/instagram", headers=auth_headers(test_admin)
        )
        second = await client.delete(
            "/api/tenants/me/configuration/channels/instagram", headers=auth_headers(test_admin)
        )

        assert first.status_code == 204
        assert second.status_code == 404
        assert second.json()["detail"] == "Channel not configured"

    async def test_workflow(self, client, auth_headers, test_admin):
        workflow = {
            "business_hours": {"timezone": "Europe/Berlin", "days": ["mon", "tue"], "start": "08:00", "end": "16:00"},
            "sla_rules": [{"priority": "urgent", "first_response_minutes": 15, "resolution_minutes": 240}],
            "auto_assign": True,
        }

        saved = await client.put(
            "/api/tenants/me/configuration/workflow", headers=auth_headers(test_admin), json=workflow
        )
        config = (
            await client.get("/api/tenants/me/configuration", headers=auth_headers(test_admin))
        ).json()

        assert saved.status_code == 200
        assert config["workflow"]["auto_assign"] is True
        assert config["workflow"]["sla_rules"][0]["priority"] == "urgent"
        assert config["workflow"]["business_hours"]["timezone"] == "Europe/Berlin"

    async def test_viewer_cannot_configure(self, client, auth_headers, test_viewer):
        response = await client.put(
            "/api/tenants/me/configuration/workflow", headers=auth_headers(test_viewer), json={}
        )

        assert response.status_code == 403

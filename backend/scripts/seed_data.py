"""Seed script for development data.

Creates:
- Tenant "TeamDesk Dev" with its owner "owner@teamdesk.local" (password via env)
- Default team "General" (created with the tenant)
- A pending agent invitation, printed with its accept link

Can be run multiple times safely (skips if exists).
"""
import asyncio
import os
import sys
from pathlib import Path

# Make the teamdesk package importable when run from a checkout
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from sqlalchemy import select

from teamdesk.core.config import get_settings
from teamdesk.core.database import get_db
from teamdesk.core.errors import ServiceError
from teamdesk.models.enums import InvitationRole
from teamdesk.models.tenant import Tenant
from teamdesk.models.user import User
from teamdesk.services.event_dispatcher import EventDispatcher
from teamdesk.services.invitation_service import InvitationService
from teamdesk.services.tenant_service import TenantService


async def seed_data():
    """Seed development data."""
    print("Starting database seeding...")

    tenant_name = os.environ.get("SEED_TENANT_NAME", "TeamDesk Dev")
    owner_email = os.environ.get("SEED_OWNER_EMAIL", "owner@teamdesk.local")
    owner_password = os.environ.get("SEED_OWNER_PASSWORD")
    invite_email = os.environ.get("SEED_INVITE_EMAIL", "agent@teamdesk.local")
    if not owner_password:
        print("✗ Missing SEED_OWNER_PASSWORD environment variable")
        print("  Example: SEED_OWNER_PASSWORD='YourStrongPassword123!' python scripts/seed_data.py")
        return

    async for db in get_db():
        result = await db.execute(select(Tenant).where(Tenant.name == tenant_name))
        tenant = result.scalar_one_or_none()

        if tenant:
            print(f"✓ Tenant '{tenant_name}' already exists (ID: {tenant.id})")
            result = await db.execute(
                select(User).where(User.tenant_id == tenant.id, User.email == owner_email)
            )
            owner = result.scalar_one_or_none()
            if owner is None:
                print(f"✗ Owner '{owner_email}' not found in '{tenant_name}'")
                return
        else:
            try:
                tenant, owner = await TenantService(db).create(
                    name=tenant_name,
                    owner_email=owner_email,
                    owner_password=owner_password,
                    first_name="Dev",
                    last_name="Owner",
                )
            except ServiceError as e:
                print(f"✗ Tenant bootstrap failed: {e}")
                return
            print(f"✓ Created tenant '{tenant_name}' (ID: {tenant.id}) with default team")

        service = InvitationService(db)
        try:
            outcome = await service.invite(
                tenant_id=tenant.id,
                inviter=owner,
                email=invite_email,
                role=InvitationRole.AGENT,
            )
        except ServiceError as e:
            print(f"✓ Skipped invitation for '{invite_email}': {e}")
        else:
            await EventDispatcher(db).dispatch(outcome.events)
            accept_url = f"{get_settings().app_url}/invite/accept?token={outcome.invitation.token}"
            print(f"✓ Invited '{invite_email}' as agent")
            print(f"  Accept link: {accept_url}")

        await db.commit()

    print("\n✓ Database seeding completed successfully!")
    print("\nOwner account:")
    print(f"  Email: {owner_email}")


if __name__ == "__main__":
    asyncio.run(seed_data())

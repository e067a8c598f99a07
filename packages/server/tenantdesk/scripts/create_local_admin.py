"""
Script to create an initial user and an org they administer, for local testing.

    python -m tenantdesk.scripts.create_local_admin --email me@example.com --password secret123
"""

import argparse
import asyncio

from sqlmodel import select

from tenantdesk.core.auth import hash_password
from tenantdesk.core.database import get_session_context, init_db
from tenantdesk.models.organization import OrgMember
from tenantdesk.models.user import User
from tenantdesk.services import organizations as org_service
from tenantdesk_shared.schemas.organizations import OrgCreateRequest


async def create_admin(email: str, password: str, org_name: str) -> None:
    await init_db()

    async with get_session_context() as session:
        result = await session.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()

        if not user:
            user = User(
                email=email.lower(),
                name=email.split("@")[0],
                password_hash=hash_password(password),
            )
            session.add(user)
            await session.flush()
            print(f"Created user: {email}")
        else:
            print(f"User {email} already exists.")

        result = await session.execute(select(OrgMember).where(OrgMember.user_id == user.id))
        if result.scalars().first():
            print(f"{email} already belongs to an organization.")
            return

        org, _ = await org_service.create_org(
            session,
            OrgCreateRequest(
                name=org_name,
                legal_name=org_name,
                country="N/A",
                address="N/A",
                contact_email=email,
                contact_phone="N/A",
            ),
            user.id,
        )
        print(f"Created organization {org.name} ({org.id}) with {email} as ADMIN.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a local admin user.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--org-name", default="Default Organization", help="Name of the org to create")

    args = parser.parse_args()

    asyncio.run(create_admin(args.email, args.password, args.org_name))

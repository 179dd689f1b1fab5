"""
Script to create the tables and an initial user for local development.

Optionally creates an organization owned by that user.
"""

import argparse
import asyncio
from typing import Optional

from app.core.database import get_session_context, init_db
from app.core.errors import Conflict
from app.services.organizations import create_org
from app.services.users import create_user, find_user_by_email
from confhub_shared.schemas.organizations import OrgCreateRequest


async def bootstrap(email: str, password: str, name: str, org_slug: Optional[str]) -> None:
    await init_db()

    async with get_session_context() as session:
        user = await find_user_by_email(email, session)
        if user is None:
            user = await create_user(email, password, name, session, email_verified=True)
            await session.commit()
            print(f"Created user: {user.email}")
        else:
            print(f"User {user.email} already exists.")

        if org_slug:
            try:
                org = await create_org(
                    OrgCreateRequest(name=org_slug.replace("-", " ").title(), slug=org_slug),
                    user.id,
                    session,
                )
                print(f"Created organization '{org.slug}' owned by {user.email}.")
            except Conflict:
                print(f"Organization '{org_slug}' already exists.")

    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a local user (and org).")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--name", default="Local Admin", help="Display name")
    parser.add_argument("--org", default=None, help="Slug of an organization to create")

    args = parser.parse_args()

    asyncio.run(bootstrap(args.email, args.password, args.name, args.org))

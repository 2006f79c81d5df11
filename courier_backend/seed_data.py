"""
Database seeding script for directory data.

Creates an admin, two agents, a customer and a main branch for local
development. Tokens for these users come from the identity provider;
`--tokens` prints locally minted ones for manual testing.
"""

import argparse
import asyncio
import logging

from sqlalchemy import select

from courier_backend.app.core.jwt import create_principal_token
from courier_backend.app.core.observability import configure_logging
from courier_backend.app.db.session import AsyncSessionLocal, engine, Base
from courier_backend.app.models.enums import UserRole
from courier_backend.app.models.user import User
from courier_backend.app.services import directory

import courier_backend.app.main  # noqa: F401  registers every model with Base

logger = logging.getLogger("courier_backend.seed")

SEED_USERS = [
    {"name": "Admin", "email": "admin@courier.local", "role": UserRole.ADMIN, "phone": "9000000001"},
    {"name": "Ravi Kumar", "email": "ravi@courier.local", "role": UserRole.AGENT, "phone": "9000000002"},
    {"name": "Meera Shah", "email": "meera@courier.local", "role": UserRole.AGENT, "phone": "9000000003"},
    {"name": "Jane Doe", "email": "jane@courier.local", "role": UserRole.CUSTOMER, "phone": "9000000004"},
]

SEED_BRANCH = {"name": "Main Hub", "address": "1 Depot Road", "phone": "9000000010"}


async def seed(print_tokens: bool = False):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        existing = await db.execute(select(User).where(User.email == SEED_USERS[0]["email"]))
        if existing.scalar_one_or_none():
            logger.info("Seed users already exist, skipping seeding")
            users = (await db.execute(select(User).order_by(User.id))).scalars().all()
        else:
            users = [await directory.create_user(db, data) for data in SEED_USERS]
            await directory.create_branch(db, SEED_BRANCH)
            logger.info("Seeded %d users and branch '%s'", len(users), SEED_BRANCH["name"])

    if print_tokens:
        for user in users:
            token = create_principal_token(user.id, user.role, user.name, user.phone)
            print(f"{user.role.value:<9} {user.email:<24} {token}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed directory data")
    parser.add_argument("--tokens", action="store_true", help="print development tokens")
    args = parser.parse_args()

    configure_logging("INFO")
    asyncio.run(seed(print_tokens=args.tokens))

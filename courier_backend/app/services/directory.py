"""
User and Branch directories.

Simple reference data with uniqueness rules and no lifecycle logic.
"""

import logging
from typing import Optional, Union, Mapping, Any
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from courier_backend.app.core.exceptions import (
    ConflictError, NotFoundError, StorageError, ValidationError
)
from courier_backend.app.models.branch import Branch
from courier_backend.app.models.enums import UserRole
from courier_backend.app.models.user import User
from courier_backend.app.schemas.branch import BranchCreate, BranchUpdate
from courier_backend.app.schemas.user import UserCreate

logger = logging.getLogger(__name__)


def _parse(model, payload):
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


async def _commit(db: AsyncSession, conflict_message: str) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(conflict_message) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Directory write failed: %s", exc)
        raise StorageError() from exc


# Users

async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    return await db.get(User, user_id)


async def get_agent(db: AsyncSession, agent_id: int) -> User:
    """Active agent by ID, NotFoundError otherwise."""
    agent = await db.get(User, agent_id)
    if not agent or agent.role != UserRole.AGENT or not agent.is_active:
        raise NotFoundError("Agent", agent_id)
    return agent


async def list_agents(db: AsyncSession, active_only: bool = True) -> list[User]:
    query = select(User).where(User.role == UserRole.AGENT)
    if active_only:
        query = query.where(User.is_active == True)
    result = await db.execute(query.order_by(User.name))
    return list(result.scalars().all())


async def create_user(db: AsyncSession, payload: Union[UserCreate, Mapping[str, Any]]) -> User:
    data = _parse(UserCreate, payload)
    email = data.email.lower()

    existing = await db.execute(select(func.count(User.id)).where(func.lower(User.email) == email))
    if existing.scalar():
        raise ConflictError(f"User with email '{email}' already exists", details={"field": "email"})

    user = User(name=data.name.strip(), email=email, role=data.role, phone=data.phone, is_active=True)
    db.add(user)
    await _commit(db, f"User with email '{email}' already exists")
    await db.refresh(user)

    logger.info("User %s created with role %s", user.id, user.role.value)
    return user


# Branches

async def get_branch(db: AsyncSession, branch_id: int) -> Branch:
    branch = await db.get(Branch, branch_id)
    if not branch:
        raise NotFoundError("Branch", branch_id)
    return branch


async def list_branches(db: AsyncSession) -> list[Branch]:
    result = await db.execute(select(Branch).order_by(Branch.created_at.desc(), Branch.id.desc()))
    return list(result.scalars().all())


async def _ensure_unique_branch_name(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> None:
    query = select(func.count(Branch.id)).where(func.lower(Branch.name) == name.lower())
    if exclude_id is not None:
        query = query.where(Branch.id != exclude_id)
    if (await db.execute(query)).scalar():
        raise ConflictError(f"Branch with name '{name}' already exists", details={"field": "name"})


async def _ensure_manager(db: AsyncSession, manager_id: Optional[int]) -> None:
    if manager_id is not None and not await db.get(User, manager_id):
        raise NotFoundError("User", manager_id)


async def create_branch(db: AsyncSession, payload: Union[BranchCreate, Mapping[str, Any]]) -> Branch:
    data = _parse(BranchCreate, payload)

    await _ensure_unique_branch_name(db, data.name)
    await _ensure_manager(db, data.manager_id)

    branch = Branch(name=data.name, address=data.address, phone=data.phone, manager_id=data.manager_id)
    db.add(branch)
    await _commit(db, f"Branch with name '{data.name}' already exists")
    await db.refresh(branch)

    logger.info("Branch %s created: %s", branch.id, branch.name)
    return branch


async def update_branch(
    db: AsyncSession,
    branch_id: int,
    payload: Union[BranchUpdate, Mapping[str, Any]]
) -> Branch:
    data = _parse(BranchUpdate, payload)
    branch = await get_branch(db, branch_id)

    changes = data.model_dump(exclude_unset=True)
    if "name" in changes:
        await _ensure_unique_branch_name(db, changes["name"], exclude_id=branch_id)
    if "manager_id" in changes:
        await _ensure_manager(db, changes["manager_id"])

    for field, value in changes.items():
        setattr(branch, field, value)

    await _commit(db, f"Branch with name '{branch.name}' already exists")
    await db.refresh(branch)
    return branch


async def delete_branch(db: AsyncSession, branch_id: int) -> None:
    """Delete a branch; shipments routed through it keep a null branch."""
    branch = await get_branch(db, branch_id)
    await db.delete(branch)
    await _commit(db, "Branch could not be deleted")
    logger.info("Branch %s deleted", branch_id)

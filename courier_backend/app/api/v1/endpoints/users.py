"""
User Directory API Endpoints.

Admin-only management of the people shipments are assigned to and booked by.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from courier_backend.app.db.session import get_db
from courier_backend.app.core.guards import require_admin
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.schemas.user import UserCreate, UserResponse, UserListResponse
from courier_backend.app.services import directory

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/agents", response_model=UserListResponse)
async def list_agents(
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Active agents, for the assignment picker."""
    agents = await directory.list_agents(db)
    return UserListResponse(
        users=[UserResponse.model_validate(a) for a in agents],
        total=len(agents)
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Add a user to the directory; emails are unique (409 on duplicates)."""
    user = await directory.create_user(db, user_data)
    return UserResponse.model_validate(user)

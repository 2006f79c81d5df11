"""
Branch Directory API Endpoints.

Any authenticated user can list branches; only admins manage them.
"""

from fastapi import APIRouter, Depends, status, Path, Response
from sqlalchemy.ext.asyncio import AsyncSession
from courier_backend.app.db.session import get_db
from courier_backend.app.core.dependencies import get_current_principal
from courier_backend.app.core.guards import require_admin
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.schemas.branch import BranchCreate, BranchUpdate, BranchResponse, BranchListResponse
from courier_backend.app.services import directory

router = APIRouter(prefix="/branches", tags=["Branches"])


@router.get("", response_model=BranchListResponse)
async def list_branches(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    branches = await directory.list_branches(db)
    return BranchListResponse(
        branches=[BranchResponse.model_validate(b) for b in branches],
        total=len(branches)
    )


@router.post("", response_model=BranchResponse, status_code=status.HTTP_201_CREATED)
async def create_branch(
    branch_data: BranchCreate,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create a branch; names are unique (409 on duplicates)."""
    branch = await directory.create_branch(db, branch_data)
    return BranchResponse.model_validate(branch)


@router.patch("/{branch_id}", response_model=BranchResponse)
async def update_branch(
    branch_data: BranchUpdate,
    branch_id: int = Path(..., description="Branch ID"),
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    branch = await directory.update_branch(db, branch_id, branch_data)
    return BranchResponse.model_validate(branch)


@router.delete("/{branch_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_branch(
    branch_id: int = Path(..., description="Branch ID"),
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    await directory.delete_branch(db, branch_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

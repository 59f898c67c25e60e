from fastapi import APIRouter, Depends, Query

from app.dependencies import get_current_user, get_ledger
from app.schemas.tryon import OutfitInfo
from app.services.identity import AuthenticatedUser
from app.services.ledger import OutfitLedger

router = APIRouter(prefix="/outfits", tags=["outfits"])


@router.get("", response_model=list[OutfitInfo])
async def list_outfits(
    limit: int | None = Query(default=None, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: AuthenticatedUser = Depends(get_current_user),
    ledger: OutfitLedger = Depends(get_ledger),
):
    """Get the caller's outfit history, newest first."""
    outfits = await ledger.list_for_user(user.id, limit=limit, offset=offset)
    return [OutfitInfo.model_validate(o) for o in outfits]

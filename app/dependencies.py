from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services.identity import AuthenticatedUser, IdentityService, identity_service
from app.services.ledger import OutfitLedger
from app.services.tryon import TryOnService, tryon_service
from app.services.uploads import UploadOrchestrator, upload_orchestrator


def get_identity_service() -> IdentityService:
    return identity_service


def get_tryon_service() -> TryOnService:
    return tryon_service


def get_upload_orchestrator() -> UploadOrchestrator:
    return upload_orchestrator


def get_ledger(db: AsyncSession = Depends(get_db)) -> OutfitLedger:
    return OutfitLedger(db)


async def get_current_user(
    authorization: str | None = Header(default=None),
    identity: IdentityService = Depends(get_identity_service),
) -> AuthenticatedUser:
    """Verified caller. The user id never comes from the request itself."""
    return await identity.authenticate(authorization)

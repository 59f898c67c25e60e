import logging

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.logging_conf import log_event
from app.models import Outfit

logger = logging.getLogger(__name__)

IDENTITY_KEY = ["user_id", "man_image_path", "cloth_image_path"]

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class OutfitLedger:
    """
    History of successful try-on generations.

    Writes are first-writer-wins on (user_id, man_image_path, cloth_image_path):
    re-submitting the same triple neither adds a row nor updates the old one.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        try:
            return _DIALECT_INSERTS[dialect]
        except KeyError:
            raise NotImplementedError(f"Ledger upsert not supported on {dialect}")

    async def record(
        self,
        user_id: str,
        man_image_path: str,
        cloth_image_path: str,
        result_image_path: str,
    ) -> bool:
        """
        Upsert a ledger row, doing nothing on conflict.

        Returns True if a new row was written, False if the triple was
        already recorded.
        """
        stmt = (
            self._insert()(Outfit.__table__)
            .values(
                user_id=user_id,
                man_image_path=man_image_path,
                cloth_image_path=cloth_image_path,
                result_image_path=result_image_path,
            )
            .on_conflict_do_nothing(index_elements=IDENTITY_KEY)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        inserted = result.rowcount == 1
        if not inserted:
            log_event(
                logger, logging.INFO, "LEDGER_DUPLICATE",
                "outfit already recorded", user_id=user_id,
            )
        return inserted

    async def list_for_user(
        self, user_id: str, limit: int | None = None, offset: int = 0
    ) -> list[Outfit]:
        """All outfits for a user, newest first."""
        query = (
            select(Outfit)
            .where(Outfit.user_id == user_id)
            .order_by(Outfit.created_at.desc(), Outfit.id.desc())
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

from datetime import datetime
from sqlalchemy import String, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from uuid_extensions import uuid7

from app.database import Base


class Outfit(Base):
    __tablename__ = "outfits"
    __table_args__ = (
        # One ledger row per (user, person photo, garment photo)
        UniqueConstraint(
            "user_id",
            "man_image_path",
            "cloth_image_path",
            name="uq_outfits_user_images",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid7())
    )

    # Verified caller id from the identity service
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # Image URLs as submitted by the caller
    man_image_path: Mapped[str] = mapped_column(Text, nullable=False)
    cloth_image_path: Mapped[str] = mapped_column(Text, nullable=False)

    # Re-hosted result URL in our own storage
    result_image_path: Mapped[str] = mapped_column(Text, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Outfit(id={self.id}, user_id={self.user_id})>"

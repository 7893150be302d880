# backend/storeconsole/models/store_membership.py

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from storeconsole.db.base import Base


class StoreMembership(Base):
    __tablename__ = "user_store_access"
    __table_args__ = (
        # The bootstrap grant relies on this to stay idempotent under concurrent requests.
        UniqueConstraint("user_id", "store_id", name="uq_user_store_access_user_store"),
        Index("ix_user_store_access_store_role", "store_id", "role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
    )

    # owner | admin | manager | staff
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="staff")
    # pending | active | suspended
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

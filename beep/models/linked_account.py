"""
LinkedAccount model — a financial account exposed by an Enrollment.

Rows are created from Teller's account list when an enrollment is
registered. `account_id` is Teller's identifier and is what transaction
requests are made against; `id` is our own primary key and is what the
API exposes for deletion.

`user_id` is denormalized from the enrollment so that ownership checks and
"all of this user's accounts" queries need no JOIN.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from beep.database import Base


class LinkedAccount(Base):
    __tablename__ = "linked_accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # Local enrollment row (not Teller's enrollment id string)
    enrollment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("enrollments.id"),
        nullable=False,
        index=True,
    )

    # Teller's account identifier (e.g., "acc_xyz789")
    account_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    account_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    # "depository" or "credit"
    account_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # e.g. "checking", "savings", "credit_card"
    account_subtype: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    last_four: Mapped[str | None] = mapped_column(
        String(4),
        nullable=True,
    )

    institution_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    enrollment: Mapped["Enrollment"] = relationship(
        back_populates="accounts",
    )

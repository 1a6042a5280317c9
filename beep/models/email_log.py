"""
EmailLog model — audit trail of outgoing emails.

Every spending-report send attempt writes one row, whether it succeeded or
failed, so a failed batch can be investigated after the fact.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column

from beep.database import Base


class EmailLog(Base):
    __tablename__ = "email_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # "spending_report" or "magic_link"
    email_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # "sent" or "failed"
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    # Free-form context: report period, provider message id, error text
    details: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
    )

    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

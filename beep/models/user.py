"""
User model — the authentication identity.

Users sign in with a magic link, so there is no password column. Instead
each User holds at most one outstanding `login_nonce`: requesting a link
replaces it, and following a link clears it. A magic-link token is only
accepted if the nonce inside it matches the stored one, which makes every
link single-use.

The relationship chain is:
    User --> Enrollment(s) --> LinkedAccount(s)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from beep.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Login identifier, stored lowercase
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Used to greet the user in report emails
    first_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    # Nonce of the most recently issued magic link; None once consumed
    login_nonce: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    # Soft-disable: deactivated users can't sign in and get no reports
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
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
    enrollments: Mapped[list["Enrollment"]] = relationship(
        back_populates="user",
    )

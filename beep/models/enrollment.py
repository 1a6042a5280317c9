"""
Enrollment model — one linked bank login from Teller.

A single enrollment (one bank login session) can expose several financial
accounts. Teller returns the same enrollment's transactions for each of
them, which is why spending aggregation processes only one account per
enrollment.

The Teller access token is encrypted with Fernet before it is stored. Use
the `access_token` property to read it; the ciphertext column is never
returned by the API.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, LargeBinary
from sqlalchemy.orm import Mapped, mapped_column, relationship

from beep.database import Base
from beep.security import decrypt_value, encrypt_value


class Enrollment(Base):
    __tablename__ = "enrollments"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # Teller's identifier for the enrollment (e.g., "enr_abc123")
    enrollment_id: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )

    # Fernet ciphertext of the Teller access token
    encrypted_access_token: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
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
    user: Mapped["User"] = relationship(
        back_populates="enrollments",
    )

    accounts: Mapped[list["LinkedAccount"]] = relationship(
        back_populates="enrollment",
        cascade="all, delete-orphan",
    )

    @property
    def access_token(self) -> str:
        return decrypt_value(self.encrypted_access_token)

    @access_token.setter
    def access_token(self, value: str) -> None:
        self.encrypted_access_token = encrypt_value(value)

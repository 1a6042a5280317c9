"""
Enrollment service — connecting and disconnecting bank accounts.

Registering an enrollment:
  1. Save the enrollment (with its encrypted access token) first, so it is
     captured even if the Teller call below fails
  2. Ask Teller for the enrollment's accounts and save each one
  3. If Teller fails, keep the enrollment and report a warning; the user
     can reconnect later

Deleting an account:
  Removes one linked account. When it was the last account of its
  enrollment, the enrollment (and its stored token) is removed too.

Ownership enforcement:
  Every function takes the authenticated user's id; nothing here can read
  or modify another user's rows.
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from beep.exceptions import (
    AccountNotFoundError,
    DuplicateEnrollmentError,
    ProviderError,
    UnauthorizedAccessError,
)
from beep.models.enrollment import Enrollment
from beep.models.linked_account import LinkedAccount

logger = logging.getLogger(__name__)

PROVIDER_WARNING = (
    "Enrollment was saved but could not fetch accounts. "
    "You may need to reconnect later."
)


async def register_enrollment(
    db: AsyncSession,
    teller,
    user_id: uuid.UUID,
    access_token: str,
    enrollment_id: str,
    institution_name: str,
) -> tuple[Enrollment, list[LinkedAccount], str | None]:
    """
    Save a Teller enrollment and the accounts it exposes.

    Returns:
        Tuple of (Enrollment, saved LinkedAccounts, warning or None).

    Raises:
        DuplicateEnrollmentError: If the enrollment id is already registered.
    """
    existing = await db.execute(
        select(Enrollment).where(Enrollment.enrollment_id == enrollment_id)
    )
    if existing.scalar_one_or_none() is not None:
        raise DuplicateEnrollmentError(enrollment_id)

    enrollment = Enrollment(
        user_id=user_id,
        enrollment_id=enrollment_id,
        institution_name=institution_name,
    )
    enrollment.access_token = access_token
    db.add(enrollment)
    await db.flush()

    try:
        teller_accounts = await teller.list_accounts(access_token)
    except ProviderError as exc:
        logger.warning("Enrollment %s saved but account fetch failed: %s", enrollment_id, exc)
        return enrollment, [], PROVIDER_WARNING

    logger.info("Retrieved %d accounts from Teller", len(teller_accounts))

    accounts = []
    for teller_account in teller_accounts:
        account = LinkedAccount(
            user_id=user_id,
            enrollment_id=enrollment.id,
            account_id=teller_account.id,
            account_name=teller_account.name,
            account_type=teller_account.type,
            account_subtype=teller_account.subtype,
            last_four=teller_account.last_four,
            institution_name=institution_name,
        )
        db.add(account)
        accounts.append(account)
    await db.flush()

    return enrollment, accounts, None


async def get_accounts(db: AsyncSession, user_id: uuid.UUID) -> list[LinkedAccount]:
    """List a user's linked accounts, oldest first."""
    result = await db.execute(
        select(LinkedAccount)
        .where(LinkedAccount.user_id == user_id)
        .order_by(LinkedAccount.created_at.asc())
    )
    return list(result.scalars().all())


async def delete_account(
    db: AsyncSession,
    account_id: uuid.UUID,
    user_id: uuid.UUID,
) -> bool:
    """
    Delete a linked account, and its enrollment if no accounts remain.

    Returns:
        True if this was the enrollment's last account.

    Raises:
        AccountNotFoundError: If the account doesn't exist.
        UnauthorizedAccessError: If the account belongs to someone else.
    """
    account = await db.get(LinkedAccount, account_id)
    if account is None:
        raise AccountNotFoundError(account_id)
    if account.user_id != user_id:
        raise UnauthorizedAccessError("You do not have access to this account")

    enrollment_id = account.enrollment_id
    await db.delete(account)
    await db.flush()

    remaining = await db.execute(
        select(func.count(LinkedAccount.id))
        .where(LinkedAccount.enrollment_id == enrollment_id)
    )
    was_last_account = remaining.scalar() == 0

    if was_last_account:
        enrollment = await db.get(Enrollment, enrollment_id)
        if enrollment is not None:
            await db.delete(enrollment)
            await db.flush()
        logger.info("Removed enrollment %s with its last account", enrollment_id)

    return was_last_account

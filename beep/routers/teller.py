"""
Teller router — connecting bank accounts and managing linked accounts.

Endpoints (all require a session JWT):
  POST   /teller/enrollment           — Register a Teller Connect enrollment
  GET    /teller/accounts             — List linked accounts
  DELETE /teller/accounts/{id}        — Remove a linked account

The enrollment is always attributed to the authenticated user, never to
a user id supplied in the request body.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from beep.database import get_db
from beep.dependencies import get_current_user, get_teller_client
from beep.models.user import User
from beep.schemas.enrollment import (
    AccountDeleteResponse,
    EnrollmentCreateRequest,
    EnrollmentCreateResponse,
    EnrollmentResponse,
    LinkedAccountResponse,
)
from beep.services import enrollment_service

router = APIRouter()


@router.post(
    "/enrollment",
    response_model=EnrollmentCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a Teller enrollment",
)
async def create_enrollment(
    request: EnrollmentCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    teller=Depends(get_teller_client),
):
    """
    Save the enrollment returned by Teller Connect and import its accounts.

    If Teller cannot list the accounts right now, the enrollment is still
    saved and the response carries a `warning` with an empty account list.
    Registering the same enrollment twice returns 409.
    """
    enrollment, accounts, warning = await enrollment_service.register_enrollment(
        db=db,
        teller=teller,
        user_id=user.id,
        access_token=request.access_token,
        enrollment_id=request.enrollment_id,
        institution_name=request.institution_name,
    )
    return EnrollmentCreateResponse(
        enrollment=EnrollmentResponse.model_validate(enrollment),
        accounts=[LinkedAccountResponse.model_validate(a) for a in accounts],
        warning=warning,
    )


@router.get(
    "/accounts",
    response_model=list[LinkedAccountResponse],
    summary="List your linked accounts",
)
async def list_accounts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List every bank account the authenticated user has connected."""
    return await enrollment_service.get_accounts(db, user.id)


@router.delete(
    "/accounts/{account_id}",
    response_model=AccountDeleteResponse,
    summary="Remove a linked account",
)
async def delete_account(
    account_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Disconnect one linked account.

    When it was the last account of its bank login, the stored enrollment
    is removed as well (`was_last_account: true`). Returns 403 for another
    user's account and 404 for an unknown one.
    """
    was_last_account = await enrollment_service.delete_account(db, account_id, user.id)
    return AccountDeleteResponse(was_last_account=was_last_account)

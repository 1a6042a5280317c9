"""
Pydantic schemas for Teller enrollment and linked-account endpoints.

The Teller access token is accepted on registration but never appears in
any response model.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class EnrollmentCreateRequest(BaseModel):
    """Request body for POST /teller/enrollment, as returned by Teller Connect."""
    access_token: str = Field(min_length=1)
    enrollment_id: str = Field(min_length=1, max_length=100)
    institution_name: str = Field(min_length=1, max_length=200)


class EnrollmentResponse(BaseModel):
    id: uuid.UUID
    enrollment_id: str
    institution_name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class LinkedAccountResponse(BaseModel):
    """Public representation of a linked bank account."""
    id: uuid.UUID
    enrollment_id: uuid.UUID
    account_id: str
    account_name: str
    account_type: str
    account_subtype: str | None
    last_four: str | None
    institution_name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class EnrollmentCreateResponse(BaseModel):
    """
    Result of registering an enrollment.

    `warning` is set when the enrollment was saved but Teller could not
    list its accounts; `accounts` is then empty.
    """
    success: bool = True
    enrollment: EnrollmentResponse
    accounts: list[LinkedAccountResponse]
    warning: str | None = None


class AccountDeleteResponse(BaseModel):
    message: str = "Account deleted successfully"
    was_last_account: bool

from fastapi import APIRouter, HTTPException, status

from packages.accounts.services.account_service import AccountService
from packages.accounts.models.domain.account import AccountUpdateModel
from packages.accounts.models.schemas.account import (
    AccountCreate,
    AccountUpdate,
    AccountResponse,
)

router = APIRouter()


@router.post(
    "/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED
)
async def register_account(account_data: AccountCreate):
    """Register an account. Starts with no subscription and an empty usage window."""
    account = await AccountService().register_account(
        account_id=account_data.account_id,
        email=account_data.email,
        is_registered=account_data.is_registered,
    )
    return AccountResponse.from_domain(account)


@router.get("/accounts/{account_id}", response_model=AccountResponse)
async def get_account(account_id: str):
    account = await AccountService().get_account(account_id)
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")
    return AccountResponse.from_domain(account)


@router.patch("/accounts/{account_id}", response_model=AccountResponse)
async def update_account(account_id: str, account_update: AccountUpdate):
    account = await AccountService().update_account(
        account_id,
        AccountUpdateModel(**account_update.model_dump(exclude_unset=True)),
    )
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")
    return AccountResponse.from_domain(account)

from fastapi import APIRouter, Depends, Response, status

from ..core.dependencies import get_account_service, get_current_user_id, get_user_service
from ..models import (
    AccountCreate,
    AccountResponse,
    AccountUpdate,
    LoginRequest,
    TokenResponse,
    TransactionCreate,
    TransactionResponse,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from ..services import AccountService, UserService


router = APIRouter(prefix="/v1/accounts", tags=["accounts"])

@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    user_id: int = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.create_account(user_id, payload)

@router.get("", response_model=list[AccountResponse])
def list_accounts(
    user_id: int = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> list[AccountResponse]:
    return service.list_accounts(user_id)

@router.get("/{account_number}", response_model=AccountResponse)
def get_account(
    account_number: str,
    user_id: int = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.get_account(account_number, user_id)

@router.patch("/{account_number}", response_model=AccountResponse)
def update_account(
    account_number: str,
    payload: AccountUpdate,
    user_id: int = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.update_account(account_number, user_id, payload)

@router.delete("/{account_number}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_number: str,
    user_id: int = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> Response:
    service.delete_account(account_number, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post(
    "/{account_number}/transactions",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_transaction(
    account_number: str,
    payload: TransactionCreate,
    user_id: int = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> TransactionResponse:
    return service.create_transaction(account_number, user_id, payload)

@router.get("/{account_number}/transactions", response_model=list[TransactionResponse])
def list_transactions(
    account_number: str,
    user_id: int = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> list[TransactionResponse]:
    return service.get_transaction_history(account_number, user_id)

@router.get(
    "/{account_number}/transactions/{transaction_id}",
    response_model=TransactionResponse,
)
def get_transaction(
    account_number: str,
    transaction_id: str,
    user_id: int = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> TransactionResponse:
    return service.get_transaction(account_number, transaction_id, user_id)

user_router = APIRouter(prefix="/v1/users", tags=["users"])

@user_router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return service.register(payload)

@user_router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    caller_id: int = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return service.get_user(user_id, caller_id)

@user_router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    payload: UserUpdate,
    caller_id: int = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return service.update_user(user_id, caller_id, payload)

@user_router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    caller_id: int = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
) -> Response:
    service.delete_user(user_id, caller_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

auth_router = APIRouter(prefix="/v1/auth", tags=["auth"])

@auth_router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    service: UserService = Depends(get_user_service),
) -> TokenResponse:
    return service.login(payload)

__all__ = ["router", "user_router", "auth_router"]

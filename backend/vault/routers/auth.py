from fastapi import APIRouter, Depends, Request

from vault.auth import get_current_user_id
from vault.schemas import AuthOut, LoginIn, MeOut, RegisterIn
from vault.services.accounts import AccountService

router = APIRouter(prefix="/auth", tags=["auth"])


def get_account_service(request: Request) -> AccountService:
    state = request.app.state
    return AccountService(state.gateway, state.tokens, bcrypt_rounds=state.bcrypt_rounds)


# These endpoints are plain `def` on purpose: bcrypt is slow, and FastAPI runs
# sync endpoints on its threadpool instead of the event loop.

@router.post("/register", response_model=AuthOut)
def register(data: RegisterIn, accounts: AccountService = Depends(get_account_service)):
    return accounts.register(data.username, data.email, data.password)


@router.post("/login", response_model=AuthOut)
def login(data: LoginIn, accounts: AccountService = Depends(get_account_service)):
    return accounts.login(data.email, data.password)


@router.get("/me", response_model=MeOut)
def me(
    user_id: str = Depends(get_current_user_id),
    accounts: AccountService = Depends(get_account_service),
):
    return MeOut(user=accounts.current_user(user_id))

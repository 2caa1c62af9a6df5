"""Account routes: register, log in, who am I."""
from fastapi import APIRouter, status

from live_auction.deps import CurrentUser, Users
from live_auction.schemas import LoginRequest, TokenResponse, UserCreate, UserOut

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(data: UserCreate, users: Users) -> UserOut:
    """Create an account. 409 if the username is taken."""
    return await users.register(data)


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, users: Users) -> TokenResponse:
    """Exchange username and password for a bearer token."""
    return await users.login(data)


@router.get("/me", response_model=UserOut)
async def me(identity: CurrentUser) -> UserOut:
    return UserOut(id=identity.user_id, username=identity.username)

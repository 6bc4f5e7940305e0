"""Authentication API endpoints and caller identity dependencies"""

from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shop_reservations.actors import Actor, Admin, ShopOwner, Customer
from shop_reservations.config import settings
from shop_reservations.database import get_db
from shop_reservations.models.app_user import AppUser
from shop_reservations.models.user import User, UserRole
from shop_reservations.schemas.auth import Token, LoginRequest, UserResponse
from shop_reservations.services.time_slots import utcnow

router = APIRouter()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# OAuth2 scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

credentials_exception = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash password"""
    return pwd_context.hash(password)


def _encode(subject: UUID, token_type: str, **claims) -> str:
    expire = utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": str(subject), "exp": expire, "type": token_type, **claims}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user: User) -> str:
    """Create JWT access token for a dashboard user"""
    return _encode(
        user.id,
        "access",
        shop_id=str(user.shop_id) if user.shop_id else None,
        role=user.role.value,
    )


def create_app_user_token(app_user: AppUser) -> str:
    """Create JWT access token for an app user (customer)"""
    return _encode(app_user.id, "app_user")


def _decode(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise credentials_exception
    if payload.get("sub") is None:
        raise credentials_exception
    try:
        UUID(payload["sub"])
    except (TypeError, ValueError):
        raise credentials_exception
    return payload


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current dashboard user from token"""
    payload = _decode(token)
    if payload.get("type") != "access":
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == UUID(payload["sub"])))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise credentials_exception

    return user


async def get_current_actor(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """Resolve the bearer token to an admin, shop owner or customer"""
    payload = _decode(token)
    subject = UUID(payload["sub"])

    if payload.get("type") == "app_user":
        result = await db.execute(select(AppUser.id).where(AppUser.id == subject))
        if result.scalar_one_or_none() is None:
            raise credentials_exception
        return Customer(app_user_id=subject)

    user = await get_current_user(token, db)
    if user.role == UserRole.SUPER_ADMIN:
        return Admin(user_id=user.id)
    if user.shop_id is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User has no shop")
    return ShopOwner(shop_id=user.shop_id, user_id=user.id)


async def require_shop_owner(actor: Actor = Depends(get_current_actor)) -> ShopOwner:
    """Shop-admin endpoints act on the caller's own shop"""
    if not isinstance(actor, ShopOwner):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Shop owner access required")
    return actor


async def require_customer(actor: Actor = Depends(get_current_actor)) -> Customer:
    if not isinstance(actor, Customer):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="App user access required")
    return actor


@router.post("/login", response_model=Token)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate a dashboard user and return an access token"""
    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is disabled",
        )

    user.last_login = utcnow()
    await db.commit()

    return Token(
        access_token=create_access_token(user),
        expires_in=settings.access_token_expire_minutes * 60,
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
):
    """Get current user information"""
    return current_user

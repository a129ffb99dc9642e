"""Authentication endpoints — admin login + current admin."""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, EmailStr
from sqlmodel import select

from hostwp.api.deps import Admin, Session
from hostwp.core.security import create_jwt, verify_password
from hostwp.models.admin_user import AdminUser, AdminUserRead

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin: AdminUserRead


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, session: Session) -> LoginResponse:
    """Authenticate with email + password, receive a JWT."""
    stmt = select(AdminUser).where(AdminUser.email == body.email.lower())
    result = await session.execute(stmt)
    admin = result.scalar_one_or_none()

    if admin is None or not verify_password(body.password, admin.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )

    return LoginResponse(
        access_token=create_jwt(subject=str(admin.id)),
        admin=AdminUserRead.model_validate(admin),
    )


@router.get("/me", response_model=AdminUserRead)
async def get_me(admin: Admin) -> AdminUserRead:
    return AdminUserRead.model_validate(admin)

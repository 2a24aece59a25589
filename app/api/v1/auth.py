from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ...core.database import get_db
from ...api.deps import (
    get_current_user, get_current_user_optional, get_current_user_token, rate_limit_check
)
from ...services.auth_service import AuthService
from ...services.scan_sessions import ScanSessionRegistry, get_scan_sessions
from ...schemas.auth import (
    UserLogin, UserRegister, TokenResponse, UserResponse, RefreshTokenRequest,
    LogoutRequest, LogoutResponse, ChangePassword
)
from ...models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/register", response_model=UserResponse)
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a new account. Patients are signed up with their profile."""
    auth_service = AuthService(db)
    user = auth_service.register_user(user_data)
    return UserResponse.model_validate(user)

@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
):
    """Authenticate user and return access tokens."""
    auth_service = AuthService(db)
    return auth_service.authenticate_user(login_data)

@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Refresh access token using refresh token."""
    auth_service = AuthService(db)
    return auth_service.refresh_access_token(refresh_data.refresh_token)

@router.post("/logout", response_model=LogoutResponse)
async def logout(
    logout_data: Optional[LogoutRequest] = None,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
    sessions: ScanSessionRegistry = Depends(get_scan_sessions),
):
    """End the session: revoke refresh tokens, release scan devices, send to role selection."""
    auth_service = AuthService(db)
    refresh = logout_data.refresh_token if logout_data else None
    auth_service.logout_user(refresh_token=refresh, user=current_user)

    closed = 0
    if current_user is not None:
        closed = sessions.close_all_for(current_user.id)
        logger.info(f"User {current_user.id} logged out, closed {closed} scan session(s)")

    return LogoutResponse(message="Successfully logged out", scan_sessions_closed=closed)

@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return UserResponse.model_validate(current_user)

@router.post("/change-password")
async def change_password(
    password_data: ChangePassword,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change user password."""
    AuthService(db).change_password(
        current_user, password_data.current_password, password_data.new_password
    )
    return {"message": "Password changed successfully"}

@router.post("/verify-token")
async def verify_token_endpoint(
    token_payload = Depends(get_current_user_token)
):
    """Verify if token is valid."""
    return {
        "valid": True,
        "user_id": token_payload.sub,
        "email": token_payload.email,
        "role": token_payload.role,
        "expires": token_payload.exp
    }

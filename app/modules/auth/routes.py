from fastapi import APIRouter, Depends
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    RefreshRequest, ForgotPasswordRequest, ResetPasswordRequest, MessageResponse
)
from app.modules.auth.service import AuthService
from app.core.dependencies import get_auth_service, get_current_token, get_current_profile
from app.config.permissions_config import get_role_permissions, get_permission_matrix
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new student or teacher"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    refresh_data: RefreshRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Exchange a refresh token for a new access token"""
    return service.refresh(refresh_data.refresh_token)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Signed out successfully"}


@router.get("/me")
async def get_me(profile: Dict = Depends(get_current_profile)):
    """Get the current profile and the permissions its role grants (for frontend UI)."""
    return {**profile, "permissions": get_role_permissions(profile.get("role"))}


@router.get("/permissions")
async def get_permissions(profile: Dict = Depends(get_current_profile)):
    """Every permission and the roles granting it"""
    return get_permission_matrix()


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Send a password reset link"""
    return MessageResponse(message=service.forgot_password(request.email))


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    request: ResetPasswordRequest,
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Set a new password using the recovery token from the reset link"""
    service.reset_password(token, request.new_password)
    return MessageResponse(message="Password updated successfully")

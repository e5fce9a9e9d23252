import hashlib
import logging
import time
from supabase import Client
from app.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
from app.config.settings import settings
from fastapi import HTTPException
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500

FORGOT_PASSWORD_MESSAGE = "If an account exists for this email, a password reset link has been sent"


def _token_cache_key(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def clear_auth_cache():
    _AUTH_USER_CACHE.clear()


class AuthService:
    def __init__(self, supabase: Client, service_client: Optional[Client] = None):
        self.supabase = supabase
        self.service_client = service_client

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Register a new student or teacher using Supabase Auth"""
        try:
            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {
                    "data": register_data.to_user_metadata(),
                    "email_redirect_to": settings.auth_redirect_url("/auth/callback")
                }
            })

            if not auth_response.user:
                raise HTTPException(status_code=400, detail="Failed to register user")

            logger.info("Registered %s user %s", register_data.role, auth_response.user.id)
            return RegisterResponse(
                user_id=auth_response.user.id,
                email=auth_response.user.email or register_data.email,
                message="Registration successful! Please check your email to verify your account."
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "already registered" in error_message.lower() or "already exists" in error_message.lower():
                raise HTTPException(status_code=400, detail="User already exists")
            raise HTTPException(status_code=500, detail=f"Registration failed: {error_message}")

    def _lookup_role(self, user_id: str) -> Optional[str]:
        try:
            result = self.supabase.table("profiles")\
                .select("role")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.warning("Profile role lookup failed for %s: %s", user_id, e)
            return None
        return result.data[0].get("role") if result.data else None

    def _token_response(self, auth_response, fallback_email: str = "") -> TokenResponse:
        session = auth_response.session
        user = auth_response.user
        return TokenResponse(
            access_token=session.access_token,
            refresh_token=getattr(session, "refresh_token", None),
            token_type="bearer",
            expires_in=getattr(session, "expires_in", None),
            user_id=user.id,
            email=user.email or fallback_email,
            role=self._lookup_role(user.id)
        )

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate user using Supabase Auth"""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })

            if not auth_response.user or not auth_response.session:
                raise HTTPException(status_code=401, detail="Invalid credentials")

            return self._token_response(auth_response, login_data.email)
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                raise HTTPException(status_code=401, detail="Invalid email or password")
            if "not confirmed" in error_message.lower():
                raise HTTPException(status_code=401, detail="Email not confirmed")
            raise HTTPException(status_code=500, detail=f"Login failed: {error_message}")

    def refresh(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new session"""
        try:
            auth_response = self.supabase.auth.refresh_session(refresh_token)
            if not auth_response.user or not auth_response.session:
                raise HTTPException(status_code=401, detail="Invalid refresh token")
            return self._token_response(auth_response)
        except HTTPException:
            raise
        except Exception as e:
            logger.info("Token refresh rejected: %s", e)
            raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = _token_cache_key(token)
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "app_metadata": user.app_metadata or {},
                "created_at": user.created_at,
                "updated_at": user.updated_at
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def logout(self, token: str) -> bool:
        """Logout user using Supabase Auth"""
        _AUTH_USER_CACHE.pop(_token_cache_key(token), None)
        try:
            # Supabase tokens are stateless JWTs; they expire on their own schedule
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.warning("Sign out failed: %s", e)
            return False

    def forgot_password(self, email: str) -> str:
        """Send a reset link. The answer never reveals whether the account exists."""
        try:
            self.supabase.auth.reset_password_for_email(
                email,
                {"redirect_to": settings.auth_redirect_url("/auth/reset-password")}
            )
        except Exception as e:
            logger.warning("Password reset email failed for %s: %s", email, e)
        return FORGOT_PASSWORD_MESSAGE

    def reset_password(self, recovery_token: str, new_password: str) -> bool:
        """Set a new password for the holder of a recovery token (requires service role key)"""
        user_data = self.get_current_user(recovery_token)
        if self.service_client is None:
            raise HTTPException(
                status_code=500,
                detail="Service role key not configured. Cannot update password."
            )
        try:
            response = self.service_client.auth.admin.update_user_by_id(
                user_data["id"],
                {"password": new_password}
            )
            if not response.user:
                raise HTTPException(status_code=404, detail="User not found")
            _AUTH_USER_CACHE.pop(_token_cache_key(recovery_token), None)
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(
                status_code=500,
                detail=f"Failed to update password: {str(e)}"
            )

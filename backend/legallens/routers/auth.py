"""
Authentication Router
Unverified login, logout and profile endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from legallens.schemas.auth import (
    LoginRequest,
    UpdateProfileRequest,
    TokenResponse,
    ProfileStatsResponse,
)
from legallens.schemas.domain import User
from legallens.services.ai_service import AIService, get_ai_service
from legallens.services.auth_service import AuthService
from legallens.services.contract_service import ContractService
from legallens.services.session_service import AppSession
from legallens.services.storage_service import StorageService, get_storage


router = APIRouter()
security = HTTPBearer(auto_error=False)


async def require_auth(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    storage: StorageService = Depends(get_storage)
) -> User:
    """Require valid JWT token."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header"
        )

    user = AuthService().resolve_user(credentials.credentials, storage)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    return user


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    storage: StorageService = Depends(get_storage),
    ai_service: AIService = Depends(get_ai_service)
):
    """Log in with any email; the account is created on first use."""
    user = AppSession(storage, ai_service).login(request.email, request.name)

    return TokenResponse(
        success=True,
        token=AuthService().generate_token(user),
        user=user
    )


@router.post("/logout")
async def logout(
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage)
):
    """Clear the current-user marker."""
    storage.set_current_user(None)
    return {"success": True}


@router.get("/me", response_model=User)
async def get_me(current_user: User = Depends(require_auth)):
    """Get current authenticated user info."""
    return current_user


@router.put("/me", response_model=User)
async def update_me(
    request: UpdateProfileRequest,
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage),
    ai_service: AIService = Depends(get_ai_service)
):
    """Update the display name."""
    session = AppSession(storage, ai_service)
    session.resume(current_user)
    session.open_profile()
    return session.update_profile(request.name)


@router.get("/me/stats", response_model=ProfileStatsResponse)
async def get_my_stats(
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage)
):
    """Contract statistics shown on the profile page."""
    return ProfileStatsResponse(**ContractService(storage).profile_stats(current_user.id))

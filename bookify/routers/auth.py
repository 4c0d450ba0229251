from fastapi import APIRouter, Depends, HTTPException, Request, Response, Form, File, UploadFile
from typing import Optional
import logging
from bookify.config import settings
from bookify.core.dependencies import get_authenticated_user, AuthenticatedUser
from bookify.core.forms import parse_form, blank_to_none, upload_optional, upload_or_default
from bookify.core.security import REFRESH_COOKIE_NAME, set_refresh_cookie, clear_refresh_cookie
from bookify.models.user import (
    LoginRequest, RegisterData, ChangePasswordRequest, ForgotPasswordRequest,
    ResetPasswordRequest, ConfirmEmailRequest, ResendConfirmationRequest, ProfileUpdate,
    UserProfile, TokenResponse, AccessTokenResponse, RegisterResponse, MessageResponse
)
from bookify.services import auth_service

router = APIRouter()
logger = logging.getLogger(__name__)


def _token_response(response: Response, profile: UserProfile) -> TokenResponse:
    access_token, refresh_token = auth_service.issue_tokens(profile)
    set_refresh_cookie(response, refresh_token)
    return TokenResponse(
        access_token=access_token,
        expires_in=settings.access_token_expire_minutes * 60,
        user=profile
    )


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    username: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    name: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None)
):
    """
    Create an account with the User role.

    Multipart form. The profile picture is optional; without one the default image is used.
    A confirmation link is emailed when email confirmation is enabled.
    """
    data = parse_form(
        RegisterData,
        username=username,
        email=email,
        password=password,
        name=blank_to_none(name),
        address=blank_to_none(address)
    )

    # Duplicates are rejected before anything is uploaded
    await auth_service.ensure_registration_available(data.email, data.username)
    picture_url = await upload_or_default(profile_picture, "profiles")
    profile = await auth_service.register_user(data, picture_url)

    confirmation_required = not profile.email_confirmed
    message = (
        "Account created. Check your email to confirm your account."
        if confirmation_required else "Account created"
    )
    return RegisterResponse(
        message=message,
        user_id=profile.id,
        email_confirmation_required=confirmation_required
    )


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, response: Response):
    """Authenticate with email and password. Sets the refresh token cookie."""
    profile = await auth_service.authenticate(data.email, data.password)
    return _token_response(response, profile)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    clear_refresh_cookie(response)
    logger.info(f"User {user.user_id[:8]} logged out")
    return MessageResponse(message="Logged out")


@router.get("/refresh-token", response_model=AccessTokenResponse)
async def refresh_token(request: Request, response: Response):
    """Issue a new access token from the refresh token cookie"""
    profile = await auth_service.refresh(request.cookies.get(REFRESH_COOKIE_NAME))
    access_token, new_refresh_token = auth_service.issue_tokens(profile)
    set_refresh_cookie(response, new_refresh_token)
    return AccessTokenResponse(
        access_token=access_token,
        expires_in=settings.access_token_expire_minutes * 60
    )


@router.get("/me", response_model=UserProfile)
async def get_me(user: AuthenticatedUser = Depends(get_authenticated_user)):
    profile = await auth_service.get_profile(user.user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return profile


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    await auth_service.change_password(user.user_id, data.current_password, data.new_password)
    return MessageResponse(message="Password changed")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(data: ForgotPasswordRequest):
    """Always answers the same way so account existence is not revealed"""
    await auth_service.request_password_reset(data.email)
    return MessageResponse(message="If the account exists, a reset link has been sent")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(data: ResetPasswordRequest):
    await auth_service.reset_password(data.token, data.new_password)
    return MessageResponse(message="Password has been reset")


@router.post("/confirm-email", response_model=TokenResponse)
async def confirm_email(data: ConfirmEmailRequest, response: Response):
    """Confirm the account email and sign the user in"""
    profile = await auth_service.confirm_email(data.user_id, data.token)
    return _token_response(response, profile)


@router.post("/resend-confirmation", response_model=MessageResponse)
async def resend_confirmation(data: ResendConfirmationRequest):
    await auth_service.resend_confirmation(data.email)
    return MessageResponse(message="If the account exists, a confirmation link has been sent")


@router.put("/editprofile", response_model=UserProfile)
async def edit_profile(
    username: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None),
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    """Update the caller's profile. Blank fields are left unchanged."""
    data = parse_form(
        ProfileUpdate,
        username=blank_to_none(username),
        name=blank_to_none(name),
        address=blank_to_none(address)
    )

    picture_url = await upload_optional(profile_picture, "profiles")
    return await auth_service.update_profile(user.user_id, data, picture_url)

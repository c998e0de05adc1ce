from fastapi import APIRouter, HTTPException, status, Response, Cookie, Request
from datetime import timedelta
import logging
import secrets
import httpx
from taxitao.models.user import CreateUser, PasswordUpdate, EmailPasswordRequestForm, ResetPassword, UpdateUser, UserResponse
from taxitao.services.utils import Utils, AuthHelpers
from taxitao.services.auth_errors import AuthError, auth_http_error, sanitize_auth_error
from taxitao.services.email_service import send_email, EmailNotConfigured, EmailProviderError
from taxitao.services.email_templates import get_confirmation_email_template, get_password_reset_email_template
from taxitao.core.config import Settings
from taxitao.core.db_session import SessionDep
from taxitao.schemas.schemas import Users, Driver

logger = logging.getLogger(__name__)

utils = Utils()
auth = AuthHelpers()
settings = Settings()

router = APIRouter(prefix="/v1/auth", tags=["Auth"])

REFRESH_COOKIES = ["refresh_token", "expires_at"]


def _check_password(password: str):
    try:
        utils.validate_password(password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=sanitize_auth_error(str(e)))


async def _send_account_email(to: str, template):
    try:
        await send_email(to, template.subject, template.html)
    except (EmailNotConfigured, EmailProviderError, httpx.HTTPError) as e:
        logger.warning(f"Account email to {to} not sent: {e!r}")


def _session(db, response: Response, user: Users) -> dict:
    metadata = auth.session_metadata(user)
    access_token_data = auth.encode_token(str(user.id), metadata)
    raw, token_hash, exp = auth.gen_refresh_token()

    auth.save_refresh_in_db(db, user.id, token_hash, exp)
    utils.set_cookies(response, {
        "refresh_token": raw,
        "expires_at": exp
    })

    return {
        "data": {
            "session": {
                "access_token": access_token_data["access_token"],
                "issued_at": access_token_data["iat"],
                "expires_at": access_token_data["exp"],
                "type": "Bearer"
            },
            "user_data": metadata
        }
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(user_raw: CreateUser, db: SessionDep) -> dict:
    _check_password(user_raw.password)

    try:
        auth.verify_if_exist(db, user_raw.email, user_raw.phone)
    except AuthError as e:
        raise auth_http_error(e)

    user = Users(
        email=user_raw.email.lower(),
        password_hash=auth.hash_password(user_raw.password),
        full_name=user_raw.full_name,
        phone=user_raw.phone,
        role=user_raw.role.value
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    metadata = {
        "email": user.email,
        "purpose": "email_verification"
    }
    token = auth.encode_token(str(user.id), metadata, expires_in=timedelta(hours=24))

    confirmation_url = f"{settings.FRONTEND_URL}/verify-email?token={token['access_token']}"
    await _send_account_email(user.email, get_confirmation_email_template(confirmation_url))

    logger.info("User %s registered as %s", user.id, user.role)
    return {"message": "User registered successfully. Check your email."}


@router.post("/sign-in")
async def sign_in(user_data: EmailPasswordRequestForm, db: SessionDep, response: Response):
    user = auth.get_user_by_email(db, email=user_data.email)

    if not user or not auth.verify_password(user_data.password, user.password_hash, db, user.id):
        raise auth_http_error(AuthError("auth/invalid-credential"))

    if not user.email_verified_at:
        raise auth_http_error(AuthError("permission-denied", "email not verified"))

    return _session(db, response, user)


@router.post("/refresh")
async def refresh_token(
    db: SessionDep,
    response: Response,
    refresh_token: str | None = Cookie(default=None, alias="refresh_token")
):
    if not refresh_token:
        raise HTTPException(status_code=401, detail="Missing refresh token")

    rec = auth.get_refresh_by_hash(db, refresh_token)

    if not rec:
        raise HTTPException(status_code=401, detail="Invalid refresh")

    if rec.revoked:
        # A rotated token came back: treat the whole family as leaked
        auth.revoke_all_user_refresh(db, rec.user_id)
        logger.warning("Refresh token reuse detected for user %s", rec.user_id)
        raise HTTPException(status_code=401, detail="Reused refresh detected")

    if utils.as_utc(rec.expires_at) <= utils.now_utc():
        auth.revoke_refresh(db, rec.id)
        raise HTTPException(status_code=401, detail="Expired refresh")

    auth.revoke_refresh(db, rec.id)

    new_raw, new_h, new_exp = auth.gen_refresh_token()
    auth.save_refresh_in_db(db, user_id=rec.user_id, token_hash=new_h, exp=new_exp)

    user = auth.get_current_user(db, rec.user_id)
    access_token = auth.encode_token(sub=str(user.id), metadata=auth.session_metadata(user))
    access_token.update({"token_type": "bearer"})

    utils.set_cookies(response, {
        "refresh_token": new_raw,
        "expires_at": new_exp
    })
    return {"data": {"session": access_token}}


@router.post("/sign-out")
async def sign_out(
    response: Response,
    db: SessionDep,
    refresh_token: str | None = Cookie(default=None, alias="refresh_token")
):
    if refresh_token:
        rec = auth.get_refresh_by_hash(db, refresh_token)
        if rec:
            auth.revoke_refresh(db, rec.id)
    utils.delete_cookies(response, REFRESH_COOKIES)

    return {"message": "Signed out successfully"}


@router.put("/change-password")
async def change_password(
    data: PasswordUpdate,
    db: SessionDep,
    request: Request,
    response: Response,
):
    user_data = request.state.user

    if data.old_password == data.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="New password should be different from your old password"
        )

    _check_password(data.new_password)

    db_user = auth.get_current_user(db, user_data["sub"])
    if not db_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if not auth.verify_password(data.old_password, db_user.password_hash):
        raise auth_http_error(AuthError("auth/wrong-password"))

    db_user.password_hash = auth.hash_password(data.new_password)
    db_user.updated_at = utils.now_utc()
    db.add(db_user)
    db.commit()

    auth.revoke_all_user_refresh(db, db_user.id)
    utils.delete_cookies(response, REFRESH_COOKIES)

    return {
        "message": "Password changed. Please sign in again with your new password."
    }


@router.get("/verify-email")
async def verify_email(token: str, db: SessionDep):
    """Marks the account's email as verified using the link sent at registration."""
    try:
        payload = auth.decode_raw_token(token)
    except HTTPException:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired token")

    if (payload.get("metadata") or {}).get("purpose") != "email_verification":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid verification token")

    user = auth.get_current_user(db, payload.get("sub"))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if user.email_verified_at:
        return {"message": "Email already verified"}

    user.email_verified_at = utils.now_utc()
    db.add(user)
    db.commit()
    return {"message": "Email verified successfully"}


@router.post("/forgot-password")
async def forgot_password(email: str, db: SessionDep):
    message = {"message": "If the email exists, you will receive a password reset link"}

    user = auth.get_user_by_email(db, email=email)
    if not user or user.email_verified_at is None:
        return message

    user.password_reset_nonce = secrets.token_urlsafe(16)
    db.add(user)
    db.commit()
    db.refresh(user)

    metadata = {
        "email": user.email,
        "purpose": "password_reset",
        "nonce": user.password_reset_nonce
    }
    token = auth.encode_token(sub=str(user.id), metadata=metadata, expires_in=timedelta(minutes=60))

    reset_url = f"{settings.FRONTEND_URL}/reset-password?token={token['access_token']}"
    await _send_account_email(user.email, get_password_reset_email_template(reset_url))
    return message


@router.post("/reset-password")
async def reset_password(data: ResetPassword, db: SessionDep, response: Response):
    try:
        payload = auth.decode_raw_token(data.token)
    except HTTPException:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired token")

    meta = payload.get("metadata") or {}
    if meta.get("purpose") != "password_reset":
        raise HTTPException(status_code=400, detail="Invalid reset token")

    user = db.get(Users, payload["sub"])
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if not user.password_reset_nonce or user.password_reset_nonce != meta.get("nonce"):
        raise HTTPException(status_code=400, detail="Token already used or invalid")

    _check_password(data.new_password)
    user.password_hash = auth.hash_password(data.new_password)
    user.updated_at = utils.now_utc()
    user.password_reset_nonce = None
    db.add(user)
    db.commit()

    auth.revoke_all_user_refresh(db, user.id)
    utils.delete_cookies(response, REFRESH_COOKIES)

    return {"message": "Password updated. Sign in again."}


@router.get("/me", response_model=UserResponse)
async def me(request: Request, db: SessionDep):
    user = auth.get_current_user(db, request.state.user["sub"])
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.put("/me", response_model=UserResponse)
async def update_me(data: UpdateUser, request: Request, db: SessionDep):
    user = auth.get_current_user(db, request.state.user["sub"])
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    changes = data.model_dump(exclude_unset=True)
    if changes.get("phone") and changes["phone"] != user.phone:
        try:
            auth.verify_if_exist(db, "", changes["phone"])
        except AuthError as e:
            raise auth_http_error(e)

    for key, value in changes.items():
        setattr(user, key, value)
    user.updated_at = utils.now_utc()
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.post("/me/saved-drivers/{driver_id}", response_model=UserResponse)
async def save_driver(driver_id: str, request: Request, db: SessionDep):
    user = auth.get_current_user(db, request.state.user["sub"])
    if not db.get(Driver, driver_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Driver not found")

    if driver_id not in (user.saved_drivers or []):
        user.saved_drivers = [*(user.saved_drivers or []), driver_id]
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


@router.delete("/me/saved-drivers/{driver_id}", response_model=UserResponse)
async def unsave_driver(driver_id: str, request: Request, db: SessionDep):
    user = auth.get_current_user(db, request.state.user["sub"])
    user.saved_drivers = [d for d in (user.saved_drivers or []) if d != driver_id]
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

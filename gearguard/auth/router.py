import secrets
import smtplib
from datetime import datetime, timedelta, timezone
from email.message import EmailMessage
from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..errors import Conflict, NotFound, Unauthorized, ValidationError
from ..models.models import PasswordReset, User
from ..responses import ok
from ..schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    PasswordStrengthRequest,
    RefreshRequest,
    ResetPasswordRequest,
    SignupRequest,
    UserOut,
)
from .security import (
    MIN_PASSWORD_LENGTH,
    compute_password_strength,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    get_password_hash,
    verify_password,
)


router = APIRouter(prefix="/auth", tags=["auth"])


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _check_new_password(password: str, confirm: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password")
    if password != confirm:
        raise ValidationError("Passwords do not match", field="password")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _token_payload(user: User) -> dict:
    return {
        "user": UserOut.model_validate(user).model_dump(mode="json"),
        "access_token": create_access_token(user.id, role=user.role),
        "refresh_token": create_refresh_token(user.id),
        "token_type": "bearer",
    }


def _send_reset_email(user: User, token: str) -> None:
    if not (settings.smtp_host and settings.mail_from and settings.public_base_url):
        return
    try:
        link = f"{settings.public_base_url}/#/reset-password?token={token}"
        msg = EmailMessage()
        msg["Subject"] = f"Reset your {settings.app_name} password"
        msg["From"] = settings.mail_from
        msg["To"] = user.email
        msg.set_content(f"Click to reset your password: {link}")
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as s:
            if settings.smtp_tls:
                s.starttls()
            if settings.smtp_username and settings.smtp_password:
                s.login(settings.smtp_username, settings.smtp_password)
            s.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        structlog.get_logger().warning("password_reset_email_failed", user_id=user.id, error=str(e))


@router.post("/signup", status_code=201)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    name = (payload.name or "").strip()
    if not name:
        raise ValidationError("Name is required", field="name")
    _check_new_password(payload.password, payload.re_enter_password)
    email = _normalize_email(payload.email)
    if db.query(User).filter(User.email == email).first():
        raise Conflict("An account with this email already exists")
    user = User(name=name, email=email, password_hash=get_password_hash(payload.password), role="user")
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("An account with this email already exists")
    db.refresh(user)
    structlog.get_logger().info("user_signed_up", user_id=user.id)
    return ok(UserOut.model_validate(user).model_dump(mode="json"), "Account created successfully")


@router.post("/login")
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == _normalize_email(req.email)).first()
    if not user:
        raise NotFound("Account not found")
    if not user.is_active or not verify_password(req.password, user.password_hash):
        raise Unauthorized("Invalid email or password")
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return ok(_token_payload(user), "Login successful")


@router.post("/refresh")
def refresh(req: RefreshRequest, db: Session = Depends(get_db)):
    payload = decode_token(req.refresh_token)
    if payload.get("type") != "refresh":
        raise ValidationError("Invalid refresh token")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise ValidationError("Invalid refresh token")
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        raise Unauthorized("User not active")
    return ok(_token_payload(user))


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return ok(UserOut.model_validate(user).model_dump(mode="json"))


@router.post("/password-strength")
def password_strength(req: PasswordStrengthRequest):
    return ok(compute_password_strength(req.password))


# Password reset
@router.post("/forget-password")
def forget_password(req: ForgotPasswordRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == _normalize_email(req.email)).first()
    if not user:
        raise NotFound("No account found with this email address")
    token = secrets.token_urlsafe(32)
    pr = PasswordReset(
        user_id=user.id,
        token=token,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=settings.password_reset_ttl_seconds),
    )
    db.add(pr)
    db.commit()
    _send_reset_email(user, token)
    structlog.get_logger().info("password_reset_requested", user_id=user.id)
    return ok(None, "Password reset email sent")


@router.post("/reset-password")
def reset_password(req: ResetPasswordRequest, db: Session = Depends(get_db)):
    pr = db.query(PasswordReset).filter(PasswordReset.token == req.token).first()
    now_utc = datetime.now(timezone.utc)
    if not pr or pr.used_at is not None or _as_utc(pr.expires_at) < now_utc:
        raise ValidationError("Invalid or expired reset token")
    _check_new_password(req.new_password, req.confirm_password)
    user = db.query(User).filter(User.id == pr.user_id).first()
    if not user:
        raise NotFound("Account not found")
    user.password_hash = get_password_hash(req.new_password)
    pr.used_at = now_utc
    db.commit()
    structlog.get_logger().info("password_reset_completed", user_id=user.id)
    return ok(None, "Password reset successfully")

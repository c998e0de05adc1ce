from fastapi import Response, Request, HTTPException, status
from jose import jwt, JWTError
import secrets
import hashlib
import logging
from datetime import datetime, timedelta, timezone
import re
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHashError
from sqlmodel import select
from taxitao.schemas.schemas import Users, RefreshToken
from taxitao.core.config import Settings
from taxitao.services.auth_errors import AuthError

logger = logging.getLogger(__name__)

settings = Settings()

ph = PasswordHasher()

KE_PHONE_RE = re.compile(r"^(?:\+?254|0)?([17]\d{8})$")


class Utils:

    @staticmethod
    def validate_password(v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        if not any(c.isupper() for c in v):
            raise ValueError("Password must contain at least one upper case letter")
        if not any(c.islower() for c in v):
            raise ValueError("Password must contain at least one lower case letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one digit")
        special_chars = set("!@#$%^&*()_=+[]{};:,.<>?/\\|~`'\"-")
        if not any(c in special_chars for c in v):
            raise ValueError("Password must contain at least one non-alphanumeric character")

        return v

    @staticmethod
    def validate_ke_phone(v: str) -> str:
        """
        Validates a Kenyan mobile number and normalizes it to +2547XXXXXXXX.
        Accepts 07.., 01.., 2547.., +2547.. with spaces or dashes.
        """
        compact = re.sub(r"[\s\-()]", "", v)
        match = KE_PHONE_RE.match(compact)
        if not match:
            raise ValueError("Invalid phone number. Examples: 0712 345 678, +254712345678")

        return f"+254{match.group(1)}"

    @staticmethod
    def set_cookies(response: Response, data: dict):
        for k, v in data.items():
            response.set_cookie(
                key=k,
                value=str(v),
                httponly=True,
                secure=True,
                samesite="lax",
                path="/",
                max_age=settings.REFRESH_TOKEN_DAYS * 24 * 60 * 60
                )

    @staticmethod
    def delete_cookies(response: Response, cookies: list):
        for cookie in cookies:
            response.delete_cookie(key=cookie, path="/")

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def as_utc(value: datetime | None) -> datetime | None:
        # SQLite hands datetimes back without tzinfo
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class AuthHelpers:

    @staticmethod
    def get_current_user(db, id) -> Users | None:
        return db.get(Users, id)

    @staticmethod
    def hash_password(plain: str) -> str:
        return ph.hash(plain + settings.PEPPER)

    @staticmethod
    def verify_password(plain: str, hashed: str, db=None, user_id=None) -> bool:
        try:
            ph.verify(hashed, plain + settings.PEPPER)
        except (VerifyMismatchError, InvalidHashError):
            return False

        if ph.check_needs_rehash(hashed) and db is not None and user_id:
            user = db.get(Users, user_id)
            user.password_hash = ph.hash(plain + settings.PEPPER)
            db.add(user)
            db.commit()
            logger.info("Password rehashed for user %s", user_id)
        return True

    @staticmethod
    def get_token(request: Request) -> str:
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing authentication token")

        token = auth_header.split(" ", 1)[1].strip()

        if not token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing authentication token")
        return token

    @staticmethod
    def encode_token(
        sub: str,
        metadata: dict | None = None,
        expires_in: timedelta | None = None
        ) -> dict:

        if expires_in is None:
            expires_in = timedelta(minutes=int(settings.TOKEN_DURATION))

        now = datetime.now(timezone.utc)
        iat = int(now.timestamp())
        exp = int((now + expires_in).timestamp())

        payload = {
            "sub": sub,
            "iat": iat,
            "exp": exp
        }

        if metadata:
            payload["metadata"] = metadata

        token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm="HS256")

        return {
            "access_token": token,
            "iat": iat,
            "exp": exp
        }

    @staticmethod
    def decode_raw_token(token: str) -> dict:
        try:
            return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=["HS256"])
        except JWTError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    @staticmethod
    def decode_token(request: Request) -> dict:
        token = AuthHelpers.get_token(request)
        return AuthHelpers.decode_raw_token(token)

    @staticmethod
    def gen_refresh_token() -> tuple[str, str, datetime]:
        raw = secrets.token_urlsafe(64)
        token_hash = hashlib.sha256(raw.encode()).hexdigest()
        exp = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_DAYS)

        return raw, token_hash, exp

    @staticmethod
    def get_refresh_by_hash(db, refresh_token: str) -> RefreshToken | None:
        token_hash = hashlib.sha256(refresh_token.encode()).hexdigest()
        stmt = select(RefreshToken).where(RefreshToken.token_hash == token_hash)
        return db.exec(stmt).first()

    @staticmethod
    def save_refresh_in_db(db, user_id: str, token_hash: str, exp: datetime) -> RefreshToken:
        refresh_token = RefreshToken(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=exp,
            revoked=False
        )
        db.add(refresh_token)
        db.commit()
        db.refresh(refresh_token)
        return refresh_token

    @staticmethod
    def revoke_refresh(db, refresh_id: int):
        rec = db.get(RefreshToken, refresh_id)
        if rec and not rec.revoked:
            rec.revoked = True
            db.add(rec)
            db.commit()
        return rec

    @staticmethod
    def revoke_all_user_refresh(db, user_id: str) -> int:
        stmt = select(RefreshToken).where(RefreshToken.user_id == user_id, RefreshToken.revoked == False)  # noqa: E712
        rows = db.exec(stmt).all()
        for r in rows:
            r.revoked = True
            db.add(r)
        db.commit()
        return len(rows)

    @staticmethod
    def verify_role(roles: list | str):
        allowed = {roles} if isinstance(roles, str) else set(roles)

        def _dep(request: Request) -> dict:
            user: dict | None = getattr(request.state, "user", None)
            if not user:
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
            role = (user.get("metadata") or {}).get("role")
            if role not in allowed:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Not Authorized: We couldn't validate the role"
                )
            return user
        return _dep

    @staticmethod
    def get_user_by_email(db, email: str) -> Users | None:
        return db.exec(select(Users).where(Users.email == email.strip().lower())).first()

    @staticmethod
    def verify_if_exist(db, email: str, phone: str | None):
        from sqlalchemy import or_, func
        conds = [func.lower(Users.email) == email.lower()]
        if phone:
            conds.append(Users.phone == phone)

        row = db.exec(
            select(Users.email, Users.phone).where(or_(*conds))
        ).first()

        if not row:
            return

        if row[0] and row[0].lower() == email.lower():
            raise AuthError("auth/email-already-in-use")
        if phone and row[1] == phone:
            raise AuthError("auth/phone-already-in-use")

    @staticmethod
    def session_metadata(user: Users) -> dict:
        return {
            "id": user.id,
            "email": user.email,
            "phone": user.phone,
            "role": user.role,
            "driver_id": user.driver_id,
        }

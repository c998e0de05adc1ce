"""
Maps authentication failures to messages that are safe to show to users.

Internal failures carry a provider-style code (``auth/user-not-found``,
``auth/wrong-password``...). The codes never leave the service; clients only
see the sanitized text.
"""
from fastapi import HTTPException, status

DEFAULT_MESSAGE = "An error occurred. Please try again."

PASSWORD_REQUIREMENTS_MESSAGE = "Password does not meet security requirements. Please use a stronger password."

_PASSWORD_HINTS = (
    "password-does-not-meet-requirements",
    "Password must contain",
    "lower case",
    "upper case",
    "non-alphanumeric",
)

AUTH_ERROR_MESSAGES = {
    "auth/email-already-in-use": "This email is already registered. Please sign in instead.",
    "auth/phone-already-in-use": "This phone number is already registered. Please sign in instead.",
    "auth/invalid-email": "Invalid email address. Please check and try again.",
    "auth/weak-password": "Password is too weak. Please use a stronger password.",
    "auth/user-disabled": "This account has been disabled. Please contact support.",
    "auth/user-not-found": "No account found with this email address.",
    "auth/wrong-password": "Invalid email or password. Please check your credentials and try again.",
    "auth/invalid-credential": "Invalid email or password. Please check your credentials and try again.",
    "auth/too-many-requests": "Too many attempts. Please wait a moment and try again.",
    "auth/network-request-failed": "Network error. Please check your connection and try again.",
    "auth/operation-not-allowed": "This operation is not allowed. Please contact support.",
    "auth/requires-recent-login": "For security, please sign in again to continue.",
}

AUTH_ERROR_STATUS = {
    "auth/email-already-in-use": status.HTTP_409_CONFLICT,
    "auth/phone-already-in-use": status.HTTP_409_CONFLICT,
    "auth/user-not-found": status.HTTP_401_UNAUTHORIZED,
    "auth/wrong-password": status.HTTP_401_UNAUTHORIZED,
    "auth/invalid-credential": status.HTTP_401_UNAUTHORIZED,
    "auth/user-disabled": status.HTTP_403_FORBIDDEN,
    "auth/too-many-requests": status.HTTP_429_TOO_MANY_REQUESTS,
    "auth/requires-recent-login": status.HTTP_401_UNAUTHORIZED,
    "permission-denied": status.HTTP_403_FORBIDDEN,
}


class AuthError(Exception):
    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code
        self.message = message


def _mentions_password_rules(text: str) -> bool:
    return any(hint in text for hint in _PASSWORD_HINTS)


def sanitize_auth_error(error, default_message: str = DEFAULT_MESSAGE) -> str:
    if isinstance(error, str):
        if _mentions_password_rules(error):
            return PASSWORD_REQUIREMENTS_MESSAGE
        return error

    code = getattr(error, "code", None)
    if not error or not code:
        return default_message

    message = getattr(error, "message", "") or ""

    if code == "auth/password-does-not-meet-requirements" or _mentions_password_rules(message):
        return PASSWORD_REQUIREMENTS_MESSAGE

    if code in AUTH_ERROR_MESSAGES:
        return AUTH_ERROR_MESSAGES[code]

    if "permission-denied" in code or "Missing or insufficient permissions" in message:
        if "email" in message or "verified" in message:
            return "Please verify your email address to perform this action. Check your inbox for the verification link."
        if "subscription" in message or "visible" in message:
            return "You need an active subscription to perform this action."
        return "Permission denied. This may be due to unverified email, inactive subscription, or account restrictions."

    return default_message


def auth_http_error(error: AuthError) -> HTTPException:
    status_code = AUTH_ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST)
    if "permission-denied" in error.code:
        status_code = status.HTTP_403_FORBIDDEN
    return HTTPException(status_code=status_code, detail=sanitize_auth_error(error))

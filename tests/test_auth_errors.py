from taxitao.services.auth_errors import AuthError, sanitize_auth_error, auth_http_error, DEFAULT_MESSAGE


def test_known_codes_map_to_messages():
    assert sanitize_auth_error(AuthError("auth/user-not-found")) == "No account found with this email address."
    assert sanitize_auth_error(AuthError("auth/email-already-in-use")).startswith("This email is already registered")


def test_password_rule_leaks_are_hidden():
    error = AuthError("auth/weak-password", "Password must contain at least one digit")
    assert "security requirements" in sanitize_auth_error(error)
    assert "security requirements" in sanitize_auth_error("Password must contain an upper case letter")


def test_permission_denied_variants():
    unverified = AuthError("permission-denied", "email not verified")
    assert "verify your email" in sanitize_auth_error(unverified)

    unpaid = AuthError("permission-denied", "inactive subscription")
    assert sanitize_auth_error(unpaid) == "You need an active subscription to perform this action."


def test_unknown_and_empty_errors():
    assert sanitize_auth_error(AuthError("auth/something-new")) == DEFAULT_MESSAGE
    assert sanitize_auth_error(None) == DEFAULT_MESSAGE
    assert sanitize_auth_error(None, "Sign in failed") == "Sign in failed"


def test_http_status_mapping():
    assert auth_http_error(AuthError("auth/email-already-in-use")).status_code == 409
    assert auth_http_error(AuthError("auth/wrong-password")).status_code == 401
    assert auth_http_error(AuthError("permission-denied", "inactive subscription")).status_code == 403
    assert auth_http_error(AuthError("auth/invalid-email")).status_code == 400

import hmac
from typing import Mapping, Optional

AUTH_COOKIE = "auth"
AUTH_COOKIE_VALUE = "ok"
AUTH_COOKIE_MAX_AGE = 60 * 60 * 24


def check_credentials(
    username: Optional[str],
    password: Optional[str],
    expected_username: str,
    expected_password: str,
) -> bool:
    """Constant-time comparison of submitted credentials against configured ones."""
    if not isinstance(username, str) or not isinstance(password, str):
        return False
    user_ok = hmac.compare_digest(username.encode("utf-8"), expected_username.encode("utf-8"))
    pass_ok = hmac.compare_digest(password.encode("utf-8"), expected_password.encode("utf-8"))
    return user_ok and pass_ok


def has_session(cookies: Mapping[str, str]) -> bool:
    """True when the auth cookie is present and non-empty."""
    return bool(cookies.get(AUTH_COOKIE))

# facetstudio/auth.py
# Email/password auth against the PocketBase users collection.

import logging
import re
from typing import Optional

from facetstudio.backend import PocketBase
from facetstudio.errors import AuthError, ClientResponseError, parse_pocketbase_error
from facetstudio.models import AuthUser

log = logging.getLogger(__name__)

USERS = "users"
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match((email or "").strip()))


def login(pb: PocketBase, email: str, password: str) -> AuthUser:
    try:
        data = pb.collection(USERS).auth_with_password(email.strip(), password)
    except Exception as e:
        log.error("Login failed: %s", e)
        msg = parse_pocketbase_error(e).message if isinstance(e, ClientResponseError) else ""
        raise AuthError(msg or "Login failed. Please check your credentials.") from e
    return AuthUser.from_record(data.get("record") or {})


def logout(pb: PocketBase):
    pb.auth_store.clear()


def get_current_user(pb: PocketBase) -> Optional[AuthUser]:
    if not pb.auth_store.is_valid or not pb.auth_store.model:
        return None
    return AuthUser.from_record(pb.auth_store.model)


def is_authenticated(pb: PocketBase) -> bool:
    return pb.auth_store.is_valid


def get_auth_token(pb: PocketBase) -> Optional[str]:
    return pb.auth_store.token or None


def register(pb: PocketBase, email: str, password: str, name: Optional[str] = None) -> AuthUser:
    email = email.strip()
    payload = {
        "email": email,
        "password": password,
        "passwordConfirm": password,
        "name": name or email.split("@")[0],
    }
    try:
        pb.collection(USERS).create(payload)
    except Exception as e:
        log.error("Registration failed: %s", e)
        msg = parse_pocketbase_error(e).message if isinstance(e, ClientResponseError) else ""
        raise AuthError(msg or "Registration failed. Please try again.") from e

    # auto-login after registration
    return login(pb, email, password)


def request_magic_link(pb: PocketBase, email: str) -> bool:
    if not is_valid_email(email):
        raise AuthError("Please enter a valid email address")
    try:
        return pb.collection(USERS).request_verification(email.strip())
    except Exception as e:
        log.error("Magic link request failed: %s", e)
        raise AuthError("Failed to send magic link") from e

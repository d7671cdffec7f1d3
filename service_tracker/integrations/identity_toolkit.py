"""
Email/password client for the hosted identity provider (Identity Toolkit REST API).
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

import requests

from service_tracker.errors import AuthError, AuthReason
from service_tracker.models import UserIdentity

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
SIGN_UP_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signUp"

# Provider error codes; WEAK_PASSWORD arrives as "WEAK_PASSWORD : <detail>"
ERROR_REASONS = {
    "EMAIL_EXISTS": AuthReason.EMAIL_IN_USE,
    "EMAIL_NOT_FOUND": AuthReason.INVALID_CREDENTIALS,
    "INVALID_PASSWORD": AuthReason.INVALID_CREDENTIALS,
    "INVALID_LOGIN_CREDENTIALS": AuthReason.INVALID_CREDENTIALS,
    "USER_DISABLED": AuthReason.INVALID_CREDENTIALS,
    "MISSING_PASSWORD": AuthReason.INVALID_CREDENTIALS,
    "WEAK_PASSWORD": AuthReason.WEAK_PASSWORD,
    "INVALID_EMAIL": AuthReason.INVALID_EMAIL,
    "MISSING_EMAIL": AuthReason.INVALID_EMAIL,
}

log = logging.getLogger(__name__)

AuthListener = Callable[[Optional[UserIdentity]], None]


def reason_for(code: str) -> AuthReason:
    key = str(code or "").split(":", 1)[0].strip().upper()
    return ERROR_REASONS.get(key, AuthReason.UNKNOWN)


class IdentityToolkitClient:
    """Signs users in and up, and keeps the current user for this browser session."""

    def __init__(self, api_key: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self._current_user: Optional[UserIdentity] = None
        self._listeners: List[AuthListener] = []

    @property
    def current_user(self) -> Optional[UserIdentity]:
        return self._current_user

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_user(self, user: Optional[UserIdentity]) -> None:
        self._current_user = user
        for listener in list(self._listeners):
            listener(user)

    def _post(self, url: str, email: str, password: str) -> UserIdentity:
        if not self.api_key:
            raise AuthError(AuthReason.NETWORK, "Sign-in is not configured: IDENTITY_API_KEY is missing.")
        payload = {"email": email, "password": password, "returnSecureToken": True}
        try:
            response = self.session.post(url, params={"key": self.api_key}, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            log.warning("Identity provider unreachable: %s", exc)
            raise AuthError(AuthReason.NETWORK) from exc

        if not response.ok:
            try:
                code = response.json().get("error", {}).get("message", "")
            except ValueError:
                code = ""
            reason = reason_for(code)
            log.info("Identity provider rejected request: %s (%s)", code or response.status_code, reason.value)
            raise AuthError(reason)

        data = response.json()
        return UserIdentity(
            uid=data["localId"],
            email=data.get("email", email),
            id_token=data.get("idToken", ""),
            refresh_token=data.get("refreshToken", ""),
        )

    def sign_in(self, email: str, password: str) -> UserIdentity:
        user = self._post(SIGN_IN_URL, email, password)
        self._set_user(user)
        return user

    def sign_up(self, email: str, password: str) -> UserIdentity:
        user = self._post(SIGN_UP_URL, email, password)
        self._set_user(user)
        return user

    def sign_out(self) -> None:
        self._set_user(None)

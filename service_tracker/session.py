from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional, Protocol

from service_tracker.errors import AuthError, AuthReason
from service_tracker.models import UserIdentity

log = logging.getLogger(__name__)

SessionListener = Callable[[Optional[UserIdentity]], None]


class AuthProvider(Protocol):
    @property
    def current_user(self) -> Optional[UserIdentity]: ...

    def on_auth_state_changed(self, listener: SessionListener) -> Callable[[], None]: ...

    def sign_in(self, email: str, password: str) -> UserIdentity: ...

    def sign_up(self, email: str, password: str) -> UserIdentity: ...

    def sign_out(self) -> None: ...


class SessionState(str, Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class IdentitySession:
    """
    Current-user state for one browser session.

    Starts in LOADING; ``start()`` subscribes to the provider's auth stream and
    settles into AUTHENTICATED or ANONYMOUS. ``close()`` drops the provider
    subscription and every listener.
    """

    def __init__(self, provider: AuthProvider):
        self._provider = provider
        self._user: Optional[UserIdentity] = None
        self._state = SessionState.LOADING
        self._listeners: List[SessionListener] = []
        self._unsubscribe_provider: Optional[Callable[[], None]] = None
        self._closed = False

    @property
    def current_user(self) -> Optional[UserIdentity]:
        return self._user

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state is SessionState.LOADING

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    def start(self) -> "IdentitySession":
        if self._unsubscribe_provider is None:
            self._unsubscribe_provider = self._provider.on_auth_state_changed(self._handle_change)
        self._handle_change(self._provider.current_user)
        return self

    def _handle_change(self, user: Optional[UserIdentity]) -> None:
        self._user = user
        self._state = SessionState.AUTHENTICATED if user else SessionState.ANONYMOUS
        for listener in list(self._listeners):
            listener(user)

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def sign_in(self, email: str, password: str) -> UserIdentity:
        email = (email or "").strip().lower()
        if not email or not password:
            raise AuthError(AuthReason.INVALID_CREDENTIALS, "Please enter your email address and password.")
        try:
            return self._provider.sign_in(email, password)
        except AuthError as exc:
            log.warning("Sign-in failed for %s: %s", email, exc.reason.value)
            raise

    def sign_up(self, email: str, password: str) -> UserIdentity:
        email = (email or "").strip().lower()
        if not email:
            raise AuthError(AuthReason.INVALID_EMAIL)
        if not password:
            raise AuthError(AuthReason.WEAK_PASSWORD)
        try:
            return self._provider.sign_up(email, password)
        except AuthError as exc:
            log.warning("Sign-up failed for %s: %s", email, exc.reason.value)
            raise

    def sign_out(self) -> None:
        self._provider.sign_out()
        # Providers that don't echo the change still leave the session anonymous
        if self._user is not None:
            self._handle_change(None)

    def close(self) -> None:
        if self._unsubscribe_provider is not None:
            self._unsubscribe_provider()
            self._unsubscribe_provider = None
        self._listeners.clear()
        self._closed = True

# =============================================================================
# Authentication Session
# =============================================================================
# Bearer-token session used to gate access to the upload workflows.
# Token storage and the clock are injected so that expiry checks can be
# exercised without touching the filesystem or waiting for real time.
# =============================================================================

import base64
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import httpx

from agri_upload.errors import AuthenticationError

__all__ = [
    "AuthenticatedUser",
    "TokenStorage",
    "MemoryTokenStorage",
    "FileTokenStorage",
    "AuthSession",
    "token_expiry",
]

log = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class AuthenticatedUser:
    """Represents the logged-in user."""

    email: str
    token: str
    profile: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Token Storage
# =============================================================================

class TokenStorage(ABC):
    """Abstract key/value store for the session token and user profile."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class MemoryTokenStorage(TokenStorage):
    """Process-local storage; the session ends with the process."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)


class FileTokenStorage(TokenStorage):
    """Storage backed by a small JSON file, shared between CLI invocations."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            log.warning(f"Ignoring unreadable token file: {self._path}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, items: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(items), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._save(items)

    def remove(self, key: str) -> None:
        items = self._load()
        if key in items:
            del items[key]
            self._save(items)


# =============================================================================
# Token Inspection
# =============================================================================

def token_expiry(token: str) -> Optional[float]:
    """
    Read the ``exp`` claim (epoch seconds) from a JWT without verifying it.

    Returns:
        The expiry, or None when the payload carries no ``exp`` claim

    Raises:
        ValueError: If the token is not a decodable JWT
    """
    parts = token.split(".")
    if len(parts) < 2:
        raise ValueError("token is not a JWT")
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(segment.encode("ascii")))
    except (UnicodeEncodeError, ValueError) as e:
        raise ValueError(f"token payload is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ValueError("token payload is not an object")
    exp = payload.get("exp")
    return None if exp is None else float(exp)


# =============================================================================
# Session
# =============================================================================

class AuthSession:
    """
    Explicit authentication state for the upload workflows.

    Args:
        login_url: Endpoint accepting {"email", "password"} and returning
                   {"token", "user"?} on success or {"message"} on failure
        storage: Where the token and user profile live (default: memory)
        clock: Returns the current time in epoch seconds (default: time.time)
        client: httpx client used for login (default: a new one per call)
        timeout: HTTP timeout in seconds
    """

    TOKEN_KEY = "auth_token"
    USER_KEY = "auth_user"
    REDIRECT_KEY = "redirectAfterLogin"

    def __init__(
        self,
        login_url: str,
        storage: Optional[TokenStorage] = None,
        clock: Clock = time.time,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self._login_url = login_url
        self._storage = storage or MemoryTokenStorage()
        self._clock = clock
        self._client = client
        self._timeout = timeout

    @property
    def token(self) -> Optional[str]:
        return self._storage.get(self.TOKEN_KEY)

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        raw = self._storage.get(self.USER_KEY)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    def set_auth_data(self, token: str, user: Optional[Dict[str, Any]] = None) -> None:
        self._storage.set(self.TOKEN_KEY, token)
        self._storage.set(self.USER_KEY, json.dumps(user or {}))

    def is_authenticated(self) -> bool:
        """
        True when a token is stored and has not expired.

        Expired or undecodable tokens are cleared as a side effect.
        """
        token = self.token
        if not token:
            return False

        try:
            expiry = token_expiry(token)
        except ValueError as e:
            log.info(f"Discarding malformed session token: {e}")
            self.logout()
            return False

        if expiry is not None and self._clock() > expiry:
            log.info("Session token expired")
            self.logout()
            return False
        return True

    def login(self, email: str, password: str) -> AuthenticatedUser:
        """
        Exchange credentials for a token and store it.

        Raises:
            AuthenticationError: Missing credentials, refused login, or an
                unreachable endpoint
        """
        if not email or not password:
            raise AuthenticationError("Please enter email and password")

        try:
            if self._client is not None:
                response = self._client.post(
                    self._login_url,
                    json={"email": email, "password": password},
                    timeout=self._timeout,
                )
            else:
                response = httpx.post(
                    self._login_url,
                    json={"email": email, "password": password},
                    timeout=self._timeout,
                )
        except httpx.HTTPError as e:
            raise AuthenticationError("Something went wrong. Try again.") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not response.is_success:
            raise AuthenticationError(data.get("message") or "Login failed")

        token = data.get("token")
        if not token:
            raise AuthenticationError("Login response did not include a token")

        user = data.get("user") if isinstance(data.get("user"), dict) else {}
        self.set_auth_data(token, user)
        log.info(f"Logged in as {email}")
        return AuthenticatedUser(email=email, token=token, profile=user)

    def logout(self) -> None:
        for key in (self.TOKEN_KEY, self.USER_KEY, self.REDIRECT_KEY):
            self._storage.remove(key)

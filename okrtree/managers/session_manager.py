"""
SessionManager - bearer token and user snapshot.

The token is the only credential; the transport reads it through `token` on
every request. The stored user snapshot is a fallback for when the profile
endpoint cannot be reached, never the source of truth.
"""

import base64
import json
import logging
from typing import Any, Dict, Optional, Tuple

from okrtree.exceptions import AuthenticationError, InvalidOperationError, OkrError
from okrtree.managers.storage_manager import StorageManager
from okrtree.models.base import User
from okrtree.models.files import SessionFile
from okrtree.remote.users import UsersAPI

logger = logging.getLogger(__name__)


def decode_token_subject(token: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Read `sub` and `role` from a JWT payload without verifying it.

    Returns:
        (sub, role); (None, None) if the token is not a readable JWT.
    """
    parts = token.split(".")
    if len(parts) < 2:
        return None, None
    segment = parts[1]
    segment += "=" * (-len(segment) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(segment.encode("ascii")))
    except (ValueError, UnicodeError):
        return None, None
    if not isinstance(payload, dict):
        return None, None
    sub = payload.get("sub")
    role = payload.get("role")
    return (str(sub) if sub is not None else None), role


class SessionManager:
    """
    Login state for the current user.

    Args:
        storage: Where session.json lives.
        users: User endpoints.
    """

    def __init__(self, storage: StorageManager, users: UsersAPI) -> None:
        self.storage = storage
        self.users = users
        self._session: SessionFile = storage.load_session()

    @property
    def token(self) -> Optional[str]:
        return self._session.token

    @property
    def user(self) -> Optional[User]:
        """Last known user snapshot."""
        return self._session.user

    @property
    def is_authenticated(self) -> bool:
        return bool(self._session.token)

    def _save(self, token: Optional[str], user: Optional[User]) -> None:
        self._session = SessionFile(token=token, user=user)
        self.storage.save_session(self._session)

    async def login(self, credentials: Dict[str, Any]) -> Optional[User]:
        """
        Exchange credentials for a token and persist the session.

        Raises:
            AuthenticationError: Credentials rejected.
            TransportError: Store unreachable.
        """
        result = await self.users.login(credentials)
        self._save(result.token, result.user)
        logger.info("Logged in as %s", result.user.emp_id if result.user else "<unknown>")
        return result.user

    async def register(self, fields: Dict[str, Any]) -> Any:
        return await self.users.register(fields)

    def logout(self) -> None:
        self._session = SessionFile()
        self.storage.clear_session()

    def invalidate(self) -> None:
        """Drop the credential after the store rejected it."""
        if self._session.token is None and self._session.user is None:
            return
        logger.warning("Session rejected by the store; clearing credentials")
        self.logout()

    async def current_user(self) -> Optional[User]:
        """
        Resolve the logged-in user.

        Prefers the profile endpoint; falls back to the stored snapshot for
        the same empId, then to what the token itself says.
        """
        token = self.token
        if not token:
            return None

        sub, role = decode_token_subject(token)
        if sub is None:
            logger.warning("Stored token is not readable; clearing session")
            self.logout()
            return None

        snapshot = self.user
        try:
            fetched = await self.users.get(sub)
        except AuthenticationError:
            raise
        except OkrError as e:
            logger.warning("Fetching profile for %s failed: %s", sub, e)
            if snapshot is not None and snapshot.emp_id == sub:
                return snapshot
            return User(emp_id=sub, role=role)

        user = fetched.model_copy(update={"emp_id": sub, "role": role or fetched.role})
        self._save(token, user)
        return user

    async def update_user(self, fields: Dict[str, Any]) -> User:
        """
        Update the current user's profile and merge the fields locally.

        Raises:
            InvalidOperationError: If nobody is logged in.
        """
        user = self.user
        if user is None or not self.token:
            raise InvalidOperationError("User not authenticated")
        await self.users.update(user.emp_id, fields)
        merged = User.model_validate({**user.model_dump(by_alias=True), **fields})
        self._save(self.token, merged)
        return merged

from typing import List, Optional

from schemas import AuthResult, User
from services.local_store import CURRENT_USER_KEY, LocalStore
from utils.error_handling import LocalStoreError
from utils.passwords import verify_password
from utils.structured_logging import get_logger, log_authentication_event, LogCategory

logger = get_logger("session")


def find_by_username(users: List[User], username: str) -> Optional[User]:
    wanted = username.strip().casefold()
    return next((u for u in users if u.username.casefold() == wanted), None)


class AuthSession:
    """
    Authentication state: Anonymous (``current_user is None``) or
    Authenticated(user). The authenticated user's id is kept in the local
    store so a reload can re-resolve it against freshly loaded users.
    """

    def __init__(self, store: LocalStore):
        self.store = store
        self.current_user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    def restore(self, users: List[User]) -> Optional[User]:
        """Resolve the persisted user id; an id that no longer resolves leaves the session anonymous."""
        self.current_user = None
        try:
            saved = self.store.get(CURRENT_USER_KEY)
        except LocalStoreError as e:
            logger.warning("Cannot read saved session", category=LogCategory.AUTHENTICATION, error_message=str(e))
            return None
        if not saved:
            return None

        try:
            user_id = int(saved)
        except ValueError:
            user_id = None
        self.current_user = next((u for u in users if u.id == user_id), None)

        if self.current_user is None:
            logger.info("Saved session no longer resolves", category=LogCategory.AUTHENTICATION)
            self._forget()
        return self.current_user

    def login(self, username: str, password: str, users: List[User]) -> AuthResult:
        user = find_by_username(users, username)
        if user is None or not verify_password(password, user.passwordHash):
            log_authentication_event("login", success=False, details={"username": username})
            return AuthResult(success=False, message="Invalid username or password")

        self.current_user = user
        self._remember(user.id)
        log_authentication_event("login", user_id=str(user.id))
        return AuthResult(success=True, message="Login successful", user=user)

    def logout(self) -> None:
        self.current_user = None
        self._forget()

    def refresh(self, user: User) -> None:
        """Keep the cached current user in step with an edit of the same user."""
        if self.current_user is not None and self.current_user.id == user.id:
            self.current_user = user

    def _remember(self, user_id: int) -> None:
        try:
            self.store.set(CURRENT_USER_KEY, str(user_id))
        except LocalStoreError as e:
            logger.warning("Session will not survive a reload", category=LogCategory.AUTHENTICATION, error_message=str(e))

    def _forget(self) -> None:
        try:
            self.store.remove(CURRENT_USER_KEY)
        except LocalStoreError as e:
            logger.warning("Cannot clear saved session", category=LogCategory.AUTHENTICATION, error_message=str(e))

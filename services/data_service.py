"""
Persistence facade: remote document store first, durable local store as the
fallback. Callers never see a connectivity failure from a mutation.
"""

from typing import Any, Optional

from schemas import BootstrapData, ChatSession, Course, DataSnapshot, Progress, User
from services.initial_data import load_bootstrap_data
from services.local_store import LocalBackend, LocalStore
from services.remote_store import RemoteStore
from services.store_backend import StoreBackend
from utils.error_handling import LocalStoreError, RemoteStoreError, StoreUnavailableError
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("data_service")


class DataService:
    """
    Chooses a storage tier per call. The service keeps no state between
    calls: which tier answered is reported only through ``DataSnapshot.mode``.
    """

    def __init__(
        self,
        remote: Optional[RemoteStore] = None,
        local: Optional[StoreBackend] = None,
        bootstrap: Optional[BootstrapData] = None,
    ):
        self.bootstrap = bootstrap or load_bootstrap_data()
        self.remote = remote or RemoteStore()
        self.local = local or LocalBackend(LocalStore(), self.bootstrap)

    # ------------------------------------------------------------------
    # Bulk load
    # ------------------------------------------------------------------

    def fetch_all_data(self) -> DataSnapshot:
        """
        Load all four collections. An empty remote store (no users and no
        courses) is seeded once with the bootstrap dataset before returning;
        a populated one never is. Raises ``StoreUnavailableError`` only when
        the local store is unreadable too.
        """
        try:
            contents = self.remote.fetch_all()
            if not contents.users and not contents.courses:
                self._seed_remote()
                contents = self.remote.fetch_all()
            logger.info("Mode: online", category=LogCategory.SYNC)
            return DataSnapshot(**dict(contents), mode="online")
        except RemoteStoreError as e:
            logger.warning(
                "Backend unreachable, switching to offline mode",
                category=LogCategory.SYNC,
                error_type=type(e).__name__,
                error_message=str(e),
            )

        try:
            contents = self.local.fetch_all()
        except LocalStoreError as e:
            logger.error("Local store unreadable", category=LogCategory.STORAGE, exception=e)
            raise StoreUnavailableError("Neither the remote nor the local store could be read") from e

        logger.info("Mode: offline", category=LogCategory.SYNC)
        return DataSnapshot(**dict(contents), mode="offline")

    def _seed_remote(self) -> None:
        logger.info(
            "Database empty. Seeding initial data",
            category=LogCategory.SYNC,
            extra={"users": len(self.bootstrap.users), "courses": len(self.bootstrap.courses)},
        )
        try:
            result = self.remote.seed(self.bootstrap)
        except RemoteStoreError as e:
            # A partial seed is not fatal; the re-read below decides the mode
            logger.warning("Seeding failed", category=LogCategory.SYNC, error_message=str(e))
            return
        logger.info(result.message, category=LogCategory.SYNC)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _persist(self, operation: str, argument: Any, fallback_result: Any) -> Any:
        try:
            return getattr(self.remote, operation)(argument)
        except RemoteStoreError as e:
            logger.warning(
                f"{operation} fell back to local store",
                category=LogCategory.SYNC,
                error_message=str(e),
            )

        try:
            return getattr(self.local, operation)(argument)
        except LocalStoreError as e:
            logger.error(f"{operation} could not be stored locally", category=LogCategory.STORAGE, exception=e)
            return fallback_result

    def add_user(self, user: User) -> User:
        return self._persist("add_user", user, user)

    def update_user(self, user: User) -> User:
        return self._persist("update_user", user, user)

    def delete_user(self, user_id: int) -> None:
        self._persist("delete_user", user_id, None)

    def add_course(self, course: Course) -> Course:
        return self._persist("add_course", course, course)

    def update_course(self, course: Course) -> Course:
        return self._persist("update_course", course, course)

    def delete_course(self, course_id: int) -> None:
        self._persist("delete_course", course_id, None)

    def save_progress(self, progress: Progress) -> Progress:
        """Upsert by (userId, courseId); ``progress`` replaces any stored record whole."""
        return self._persist("save_progress", progress, progress)

    def save_chat_session(self, session: ChatSession) -> ChatSession:
        """Upsert by (courseId, studentId); ``session`` replaces any stored record whole."""
        return self._persist("save_chat_session", session, session)

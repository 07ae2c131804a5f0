"""
Durable local store: four independently keyed JSON blobs on disk, plus the
storage tier that reads and writes them.
"""

import os
import tempfile
from pathlib import Path
from typing import Callable, Hashable, List, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from config import settings
from schemas import BootstrapData, ChatSession, Course, Progress, StoreContents, User
from services.store_backend import StoreBackend
from utils.error_handling import LocalStoreError
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("local_store")

USERS_KEY = "smart_lms_users"
COURSES_KEY = "smart_lms_courses"
PROGRESS_KEY = "smart_lms_progress"
CHATS_KEY = "smart_lms_chats"
CURRENT_USER_KEY = "smart_lms_current_user_id"

T = TypeVar("T")


class LocalStore:
    """Key/value store persisting each key as one file under ``directory``."""

    def __init__(self, directory: Optional[str] = None):
        self.directory = Path(directory or settings.LOCAL_STORE_DIR)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise LocalStoreError(f"Cannot read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # Write-then-rename so a crash never leaves a half-written blob
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            raise LocalStoreError(f"Cannot write {path}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise LocalStoreError(f"Cannot remove {key}: {e}") from e


def upsert_by_key(items: List[T], value: T, key: Callable[[T], Hashable]) -> List[T]:
    """Replace the item sharing ``value``'s key, or append; returns a new list."""
    target = key(value)
    updated = list(items)
    for index, item in enumerate(updated):
        if key(item) == target:
            updated[index] = value
            return updated
    updated.append(value)
    return updated


class LocalBackend(StoreBackend):
    """
    Storage tier over a ``LocalStore``. Every mutation is a whole-blob
    read-modify-write of the one key its entity type lives under. A key that
    was never written reads as the bootstrap dataset (chats read as empty).
    """

    name = "local"

    _users = TypeAdapter(List[User])
    _courses = TypeAdapter(List[Course])
    _progress = TypeAdapter(List[Progress])
    _chats = TypeAdapter(List[ChatSession])

    def __init__(self, store: LocalStore, bootstrap: Optional[BootstrapData] = None):
        self.store = store
        self.bootstrap = bootstrap or BootstrapData()

    def _read(self, key: str, adapter: TypeAdapter, default: list) -> list:
        raw = self.store.get(key)
        if raw is None:
            return list(default)
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            raise LocalStoreError(f"Corrupt local data under {key}") from e

    def _write(self, key: str, adapter: TypeAdapter, items: list) -> None:
        self.store.set(key, adapter.dump_json(items).decode("utf-8"))
        logger.debug("Local write", category=LogCategory.STORAGE, extra={"key": key, "count": len(items)})

    def _read_users(self) -> List[User]:
        return self._read(USERS_KEY, self._users, self.bootstrap.users)

    def _read_courses(self) -> List[Course]:
        return self._read(COURSES_KEY, self._courses, self.bootstrap.courses)

    def _read_progress(self) -> List[Progress]:
        return self._read(PROGRESS_KEY, self._progress, self.bootstrap.progress)

    def _read_chats(self) -> List[ChatSession]:
        return self._read(CHATS_KEY, self._chats, [])

    def fetch_all(self) -> StoreContents:
        return StoreContents(
            users=self._read_users(),
            courses=self._read_courses(),
            progress=self._read_progress(),
            chatSessions=self._read_chats(),
        )

    # --- Users ---

    def add_user(self, user: User) -> User:
        self._write(USERS_KEY, self._users, upsert_by_key(self._read_users(), user, lambda u: u.id))
        return user

    def update_user(self, user: User) -> User:
        users = [user if u.id == user.id else u for u in self._read_users()]
        self._write(USERS_KEY, self._users, users)
        return user

    def delete_user(self, user_id: int) -> None:
        self._write(USERS_KEY, self._users, [u for u in self._read_users() if u.id != user_id])

    # --- Courses ---

    def add_course(self, course: Course) -> Course:
        self._write(COURSES_KEY, self._courses, upsert_by_key(self._read_courses(), course, lambda c: c.id))
        return course

    def update_course(self, course: Course) -> Course:
        courses = [course if c.id == course.id else c for c in self._read_courses()]
        self._write(COURSES_KEY, self._courses, courses)
        return course

    def delete_course(self, course_id: int) -> None:
        self._write(COURSES_KEY, self._courses, [c for c in self._read_courses() if c.id != course_id])

    # --- Composite-key upserts ---

    def save_progress(self, progress: Progress) -> Progress:
        self._write(PROGRESS_KEY, self._progress, upsert_by_key(self._read_progress(), progress, lambda p: p.key))
        return progress

    def save_chat_session(self, session: ChatSession) -> ChatSession:
        self._write(CHATS_KEY, self._chats, upsert_by_key(self._read_chats(), session, lambda s: s.key))
        return session

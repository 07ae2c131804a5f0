from abc import ABC, abstractmethod

from schemas import ChatSession, Course, Progress, StoreContents, User


class StoreBackend(ABC):
    """
    One storage tier behind the persistence facade.

    Every mutation takes a complete entity value and stores it whole.
    ``save_progress`` and ``save_chat_session`` are upserts keyed by the
    composite business key: (userId, courseId) and (courseId, studentId).
    """

    name = "store"

    @abstractmethod
    def fetch_all(self) -> StoreContents: ...

    @abstractmethod
    def add_user(self, user: User) -> User: ...

    @abstractmethod
    def update_user(self, user: User) -> User: ...

    @abstractmethod
    def delete_user(self, user_id: int) -> None: ...

    @abstractmethod
    def add_course(self, course: Course) -> Course: ...

    @abstractmethod
    def update_course(self, course: Course) -> Course: ...

    @abstractmethod
    def delete_course(self, course_id: int) -> None: ...

    @abstractmethod
    def save_progress(self, progress: Progress) -> Progress: ...

    @abstractmethod
    def save_chat_session(self, session: ChatSession) -> ChatSession: ...

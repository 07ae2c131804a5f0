"""
Application state controller: owns the canonical in-memory collections,
applies each user action to them immediately (optimistic update) and then
hands the complete resulting entity to the persistence facade.
"""

import time
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from schemas import (
    SUPPORT_CHANNEL_COURSE_ID,
    AuthResult,
    ChatMessage,
    ChatSession,
    Course,
    DataSnapshot,
    Lesson,
    ProfileUpdate,
    Progress,
    Review,
    Role,
    User,
    UserPreferences,
    apply_profile_update,
)
from services.data_service import DataService
from services.initial_data import course_image_url
from services.session import AuthSession, find_by_username
from utils.error_handling import StoreUnavailableError
from utils.ids import new_string_id, next_numeric_id
from utils.passwords import hash_password
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("state_controller")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def toggle_member(ids: List[int], member: int) -> List[int]:
    """Remove ``member`` if present, otherwise append it."""
    if member in ids:
        return [i for i in ids if i != member]
    return [*ids, member]


class AppStateController:
    def __init__(
        self,
        data_service: DataService,
        session: AuthSession,
        clock: Callable[[], str] = utc_now_iso,
    ):
        self.data_service = data_service
        self.session = session
        self._now = clock

        self.users: List[User] = []
        self.courses: List[Course] = []
        self.progress: List[Progress] = []
        self.chat_sessions: List[ChatSession] = []
        self.mode = "offline"

    # ------------------------------------------------------------------
    # Loading and authentication
    # ------------------------------------------------------------------

    def load(self) -> str:
        """
        Hydrate the collections from whichever tier answers, then restore the
        persisted session. Total storage failure yields an empty offline state.
        """
        try:
            snapshot = self.data_service.fetch_all_data()
        except StoreUnavailableError as e:
            logger.error("Failed to load data", category=LogCategory.STORAGE, exception=e)
            snapshot = DataSnapshot(mode="offline")

        self.users = list(snapshot.users)
        self.courses = list(snapshot.courses)
        self.progress = list(snapshot.progress)
        self.chat_sessions = list(snapshot.chatSessions)
        self.mode = snapshot.mode

        self.session.restore(self.users)
        return self.mode

    @property
    def current_user(self) -> Optional[User]:
        return self.session.current_user

    def login(self, username: str, password: str) -> AuthResult:
        return self.session.login(username, password, self.users)

    def logout(self) -> None:
        self.session.logout()

    def register(self, name: str, username: str, password: str, role: Role = Role.STUDENT, **profile) -> AuthResult:
        """Create an account; a username colliding case-insensitively is rejected before persisting."""
        if not username.strip():
            return AuthResult(success=False, message="Username is required")
        if find_by_username(self.users, username) is not None:
            return AuthResult(success=False, message="Username already exists")

        user = User(
            id=next_numeric_id(u.id for u in self.users),
            name=name,
            username=username.strip(),
            passwordHash=hash_password(password),
            role=role,
            enrolledCourseIds=[],
            **profile,
        )
        self.users.append(user)
        self.data_service.add_user(user)
        return AuthResult(success=True, message="Account created successfully", user=user)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def find_user(self, user_id: int) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def _replace_user(self, user: User) -> User:
        self.users = [user if u.id == user.id else u for u in self.users]
        self.session.refresh(user)
        self.data_service.update_user(user)
        return user

    def update_profile(self, user: User) -> User:
        """Store a complete edited user value."""
        return self._replace_user(user)

    def apply_profile_update(self, user_id: int, update: ProfileUpdate) -> Optional[User]:
        user = self.find_user(user_id)
        if user is None:
            return None
        return self._replace_user(apply_profile_update(user, update))

    def update_preferences(self, preferences: UserPreferences) -> Optional[User]:
        if self.current_user is None:
            return None
        return self._replace_user(self.current_user.model_copy(update={"preferences": preferences}))

    def change_user_role(self, user_id: int, role: Role) -> Optional[User]:
        user = self.find_user(user_id)
        if user is None:
            return None
        return self._replace_user(user.model_copy(update={"role": role}))

    def delete_user(self, user_id: int) -> None:
        """Progress and chat sessions of the user are kept as history."""
        self.users = [u for u in self.users if u.id != user_id]
        self.data_service.delete_user(user_id)

    def enroll(self, user_id: int, course_id: int) -> Optional[User]:
        """Set-insert ``course_id``; enrolling twice changes nothing and persists nothing."""
        user = self.find_user(user_id)
        if user is None or course_id in user.enrolledCourseIds:
            return user
        return self._replace_user(
            user.model_copy(update={"enrolledCourseIds": [*user.enrolledCourseIds, course_id]})
        )

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------

    def find_course(self, course_id: int) -> Optional[Course]:
        return next((c for c in self.courses if c.id == course_id), None)

    def add_course(self, title: str, description: str, lessons: List[Lesson], instructor_id: int) -> Course:
        course = Course(
            id=next_numeric_id(c.id for c in self.courses),
            title=title,
            description=description,
            lessons=list(lessons),
            instructorIds=[instructor_id],
            imageUrl=course_image_url(title),
            reviews=[],
        )
        self.courses.append(course)
        self.data_service.add_course(course)
        return course

    def edit_course(self, course: Course) -> Course:
        self.courses = [course if c.id == course.id else c for c in self.courses]
        self.data_service.update_course(course)
        return course

    def delete_course(self, course_id: int) -> None:
        """
        Remove the course and strip it from every user's enrollments in the
        same step. Progress and chat sessions for the course stay as history.
        """
        self.courses = [c for c in self.courses if c.id != course_id]
        self.data_service.delete_course(course_id)

        for user in list(self.users):
            if course_id in user.enrolledCourseIds:
                remaining = [i for i in user.enrolledCourseIds if i != course_id]
                self._replace_user(user.model_copy(update={"enrolledCourseIds": remaining}))

    def add_review(self, course_id: int, student_id: int, rating: int, comment: str) -> Optional[Course]:
        course = self.find_course(course_id)
        if course is None:
            return None
        review = Review(studentId=student_id, rating=rating, comment=comment, createdAt=self._now())
        return self.edit_course(course.model_copy(update={"reviews": [*course.reviews, review]}))

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def _locate_progress(self, user_id: int, course_id: int) -> Tuple[Optional[int], Optional[Progress]]:
        for index, entry in enumerate(self.progress):
            if entry.userId == user_id and entry.courseId == course_id:
                return index, entry
        return None, None

    def find_progress(self, user_id: int, course_id: int) -> Optional[Progress]:
        return self._locate_progress(user_id, course_id)[1]

    def _update_progress(self, user_id: int, course_id: int, change: Callable[[Progress], Progress]) -> Progress:
        """Locate-or-synthesize the pair's record, apply ``change``, replace-or-append, persist."""
        index, existing = self._locate_progress(user_id, course_id)
        updated = change(existing or Progress(userId=user_id, courseId=course_id))

        if index is None:
            self.progress.append(updated)
        else:
            self.progress[index] = updated

        self.data_service.save_progress(updated)
        return updated

    def toggle_lesson(self, user_id: int, course_id: int, lesson_id: int) -> Progress:
        return self._update_progress(
            user_id,
            course_id,
            lambda p: p.model_copy(update={"completedLessons": toggle_member(p.completedLessons, lesson_id)}),
        )

    def toggle_bookmark(self, user_id: int, course_id: int, lesson_id: int) -> Progress:
        return self._update_progress(
            user_id,
            course_id,
            lambda p: p.model_copy(update={"bookmarkedLessonIds": toggle_member(p.bookmarkedLessonIds, lesson_id)}),
        )

    def update_quiz_score(self, user_id: int, course_id: int, lesson_id: int, score: int) -> Progress:
        """Last attempt wins: no max, no average."""
        if not 0 <= score <= 100:
            raise ValueError(f"Quiz score must be a percentage, got {score}")
        return self._update_progress(
            user_id,
            course_id,
            lambda p: p.model_copy(update={"quizScores": {**p.quizScores, lesson_id: score}}),
        )

    def update_time_spent(self, user_id: int, course_id: int, lesson_id: int, seconds: int) -> Progress:
        if seconds < 0:
            raise ValueError(f"Time spent cannot decrease, got {seconds}")

        def add_time(p: Progress) -> Progress:
            total = p.timeSpent.get(lesson_id, 0) + seconds
            return p.model_copy(update={"timeSpent": {**p.timeSpent, lesson_id: total}})

        return self._update_progress(user_id, course_id, add_time)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def find_chat_session(self, course_id: int, student_id: int) -> Optional[ChatSession]:
        return next(
            (s for s in self.chat_sessions if s.courseId == course_id and s.studentId == student_id), None
        )

    def send_message(self, course_id: int, student_id: int, content: str, sender_id: int) -> ChatSession:
        """
        Append to the (course_id, student_id) session, creating it on first
        message. ``course_id`` 0 is the support channel; there ``student_id``
        is whichever non-admin user opened it.
        """
        sender = self.find_user(sender_id)
        now = self._now()
        message = ChatMessage(
            id=new_string_id(),
            senderId=sender_id,
            senderName=(sender.displayName or sender.name) if sender else "Unknown",
            role=sender.role if sender else Role.STUDENT,
            content=content,
            timestamp=now,
        )

        existing = self.find_chat_session(course_id, student_id)
        if existing is None:
            session = ChatSession(
                id=new_string_id(), courseId=course_id, studentId=student_id, messages=[message], lastMessageAt=now
            )
            self.chat_sessions.append(session)
        else:
            session = existing.model_copy(update={"messages": [*existing.messages, message], "lastMessageAt": now})
            self.chat_sessions = [session if s is existing else s for s in self.chat_sessions]

        self.data_service.save_chat_session(session)
        return session

    def contact_support(self, user_id: int, content: str) -> ChatSession:
        return self.send_message(SUPPORT_CHANNEL_COURSE_ID, user_id, content, user_id)

    def notify_instructor_preferences(
        self, student_id: int, course_id: int, preferences: UserPreferences
    ) -> ChatSession:
        text = (
            "[System Notification] I have enabled Adaptive Learning Mode.\n"
            "My Preferences:\n"
            f"- Level: {preferences.learningLevel.value}\n"
            f"- Style: {preferences.learningStyle.value}\n"
            f"- Tone: {preferences.tonePreference.value}"
        )
        return self.send_message(course_id, student_id, text, student_id)


class LessonTimer:
    """
    Tracks how long one lesson stays expanded and flushes whole elapsed
    seconds into progress when it collapses, another lesson expands, or the
    view closes.
    """

    def __init__(
        self,
        controller: AppStateController,
        user_id: int,
        course_id: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.controller = controller
        self.user_id = user_id
        self.course_id = course_id
        self._clock = clock
        self.active_lesson_id: Optional[int] = None
        self._started_at: Optional[float] = None

    def expand(self, lesson_id: int) -> None:
        now = self._clock()
        self._record(now)
        self.active_lesson_id = lesson_id
        self._started_at = now

    def collapse(self) -> Optional[Progress]:
        return self.flush()

    def close(self) -> Optional[Progress]:
        return self.flush()

    def flush(self) -> Optional[Progress]:
        if self.active_lesson_id is None:
            return None
        return self._record(self._clock())

    def _record(self, now: float) -> Optional[Progress]:
        if self.active_lesson_id is None:
            return None

        elapsed = int(now - self._started_at)
        lesson_id = self.active_lesson_id
        self.active_lesson_id = None
        self._started_at = None

        if elapsed <= 0:
            return None
        return self.controller.update_time_spent(self.user_id, self.course_id, lesson_id, elapsed)

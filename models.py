"""
Document-store records. Each table keeps the full entity as a JSON document
next to the business-key columns used for lookup and uniqueness.
"""

from sqlalchemy import Column, Integer, BigInteger, String, JSON, DateTime, func
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import declarative_base

from schemas.entities import ChatSession, Course, Progress, User

Base = declarative_base()


class UserDocument(Base):
    __tablename__ = "users"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    username = Column(String, nullable=False, index=True)
    document = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    @classmethod
    def from_entity(cls, user: User) -> "UserDocument":
        return cls(id=user.id, username=user.username, document=user.model_dump(mode="json"))

    def replace(self, user: User) -> None:
        self.username = user.username
        self.document = user.model_dump(mode="json")

    def to_entity(self) -> User:
        return User.model_validate(self.document)


class CourseDocument(Base):
    __tablename__ = "courses"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    title = Column(String, nullable=False)
    document = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    @classmethod
    def from_entity(cls, course: Course) -> "CourseDocument":
        return cls(id=course.id, title=course.title, document=course.model_dump(mode="json"))

    def replace(self, course: Course) -> None:
        self.title = course.title
        self.document = course.model_dump(mode="json")

    def to_entity(self) -> Course:
        return Course.model_validate(self.document)


class ProgressDocument(Base):
    __tablename__ = "progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(BigInteger, nullable=False)
    course_id = Column(BigInteger, nullable=False)
    document = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # At most one progress record per user-course pair
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="unique_user_course_progress"),)

    @classmethod
    def from_entity(cls, progress: Progress) -> "ProgressDocument":
        return cls(user_id=progress.userId, course_id=progress.courseId, document=progress.model_dump(mode="json"))

    def replace(self, progress: Progress) -> None:
        self.document = progress.model_dump(mode="json")

    def to_entity(self) -> Progress:
        return Progress.model_validate(self.document)


class ChatSessionDocument(Base):
    __tablename__ = "chat_sessions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String, nullable=False, unique=True)
    course_id = Column(BigInteger, nullable=False)
    student_id = Column(BigInteger, nullable=False)
    last_message_at = Column(String, nullable=True)
    document = Column(JSON, nullable=False)

    # At most one chat session per course-student pair (course 0 = support channel)
    __table_args__ = (
        UniqueConstraint("course_id", "student_id", name="unique_course_student_chat"),
        Index("ix_chat_sessions_last_message_at", "last_message_at"),
    )

    @classmethod
    def from_entity(cls, session: ChatSession) -> "ChatSessionDocument":
        return cls(
            session_id=session.id,
            course_id=session.courseId,
            student_id=session.studentId,
            last_message_at=session.lastMessageAt,
            document=session.model_dump(mode="json"),
        )

    def replace(self, session: ChatSession) -> None:
        self.session_id = session.id
        self.last_message_at = session.lastMessageAt
        self.document = session.model_dump(mode="json")

    def to_entity(self) -> ChatSession:
        return ChatSession.model_validate(self.document)

"""
Entity schemas shared by the document-store API and the client persistence layer.
Field names are the wire (JSON) names, so every model round-trips through
``model_dump(mode="json")`` / ``model_validate`` unchanged.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# courseId reserved for the admin/support chat channel; never a real course
SUPPORT_CHANNEL_COURSE_ID = 0


# ============================================================================
# ENUMS
# ============================================================================


class Role(str, Enum):
    STUDENT = "Student"
    INSTRUCTOR = "Instructor"
    ADMIN = "Admin"


class LessonType(str, Enum):
    VIDEO = "video"
    TEXT = "text"
    QUIZ = "quiz"


class LearningLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class LearningStyle(str, Enum):
    VISUAL = "Visual"
    ANALOGY = "Analogy"
    STEP_BY_STEP = "Step-by-step"
    SCENARIO_BASED = "Scenario-based"
    TECHNICAL = "Technical"


class TonePreference(str, Enum):
    FRIENDLY = "Friendly"
    FORMAL = "Formal"
    CONCISE = "Concise"
    DETAILED = "Detailed"
    MOTIVATIONAL = "Motivational"


class PacePreference(str, Enum):
    SLOW = "Slow"
    NORMAL = "Normal"
    FAST = "Fast"


# ============================================================================
# USER MODELS
# ============================================================================


class UserPreferences(BaseModel):
    learningLevel: LearningLevel = LearningLevel.BEGINNER
    learningStyle: LearningStyle = LearningStyle.STEP_BY_STEP
    tonePreference: TonePreference = TonePreference.FRIENDLY
    pacePreference: PacePreference = PacePreference.NORMAL


class SocialLinks(BaseModel):
    twitter: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    website: Optional[str] = None


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., description="Stable numeric key")
    name: str = Field(..., description="Full name")
    username: str = Field(..., min_length=1, description="Login name, unique case-insensitively")
    # Salted hash, never the plaintext password
    passwordHash: Optional[str] = Field(None, description="pbkdf2-sha256 password hash")
    role: Role = Role.STUDENT
    enrolledCourseIds: List[int] = Field(default_factory=list)
    displayName: Optional[str] = None
    preferences: Optional[UserPreferences] = None
    profilePicture: Optional[str] = None
    coverPhoto: Optional[str] = None
    bio: Optional[str] = None
    contactEmail: Optional[str] = None
    socialLinks: Optional[SocialLinks] = None


class ProfileUpdate(BaseModel):
    """
    Partial profile edit. Only the fields explicitly set are applied; nested
    ``socialLinks`` are merged field by field. This is the only field-level
    merge in the system: the persistence layer always stores whole entities.
    """

    name: Optional[str] = None
    displayName: Optional[str] = None
    profilePicture: Optional[str] = None
    coverPhoto: Optional[str] = None
    bio: Optional[str] = None
    contactEmail: Optional[str] = None
    socialLinks: Optional[SocialLinks] = None
    preferences: Optional[UserPreferences] = None


def apply_profile_update(user: User, update: ProfileUpdate) -> User:
    """Return a new ``User`` with the explicitly-set fields of ``update`` applied."""
    changes = update.model_dump(exclude_unset=True)
    if "socialLinks" in changes and changes["socialLinks"] is not None:
        current = user.socialLinks.model_dump() if user.socialLinks else {}
        explicit = update.socialLinks.model_dump(exclude_unset=True)
        changes["socialLinks"] = SocialLinks(**{**current, **explicit})
    if "preferences" in changes and changes["preferences"] is not None:
        changes["preferences"] = update.preferences
    return user.model_copy(update=changes)


# ============================================================================
# COURSE MODELS
# ============================================================================


class Lesson(BaseModel):
    id: int
    title: str
    content: str = ""
    type: LessonType = LessonType.TEXT


class Review(BaseModel):
    studentId: int
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    createdAt: str


class Course(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    title: str
    description: str = ""
    instructorIds: List[int] = Field(default_factory=list)
    lessons: List[Lesson] = Field(default_factory=list, description="Ordered; order drives display and completion")
    reviews: List[Review] = Field(default_factory=list)
    imageUrl: str = ""


# ============================================================================
# PROGRESS
# ============================================================================


class Progress(BaseModel):
    """At most one record exists per (userId, courseId)."""

    model_config = ConfigDict(extra="ignore")

    userId: int
    courseId: int
    completedLessons: List[int] = Field(default_factory=list)
    quizScores: Dict[int, int] = Field(default_factory=dict, description="lessonId -> percentage, last write wins")
    timeSpent: Dict[int, int] = Field(default_factory=dict, description="lessonId -> accumulated seconds")
    bookmarkedLessonIds: List[int] = Field(default_factory=list)

    @property
    def key(self) -> tuple:
        return (self.userId, self.courseId)


# ============================================================================
# CHAT
# ============================================================================


class ChatMessage(BaseModel):
    id: str
    senderId: int
    # Captured at send time so history survives renames
    senderName: str
    role: Role
    content: str
    timestamp: str


class ChatSession(BaseModel):
    """At most one session exists per (courseId, studentId); courseId 0 is the support channel."""

    model_config = ConfigDict(extra="ignore")

    id: str
    courseId: int
    studentId: int
    messages: List[ChatMessage] = Field(default_factory=list)
    lastMessageAt: str

    @property
    def key(self) -> tuple:
        return (self.courseId, self.studentId)

    @property
    def is_support_channel(self) -> bool:
        return self.courseId == SUPPORT_CHANNEL_COURSE_ID

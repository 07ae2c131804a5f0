# Schemas package for FastAPI validation and the client persistence layer
from .entities import (
    SUPPORT_CHANNEL_COURSE_ID,
    ChatMessage,
    ChatSession,
    Course,
    LearningLevel,
    LearningStyle,
    Lesson,
    LessonType,
    PacePreference,
    ProfileUpdate,
    Progress,
    Review,
    Role,
    SocialLinks,
    TonePreference,
    User,
    UserPreferences,
    apply_profile_update,
)
from .api_models import (
    AuthResult,
    BootstrapData,
    DataSnapshot,
    ErrorResponse,
    InitResponse,
    SeedResponse,
    StoreContents,
    SuccessResponse,
)
from .ai import CourseOutline, GeneratedQuiz, LessonSummary, QuizQuestion

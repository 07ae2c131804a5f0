"""
Derived views over the in-memory collections. Pure functions: nothing here
reads or writes a store. Progress whose course no longer exists is ignored.
"""

from collections import Counter
from typing import Dict, List, Optional

from pydantic import BaseModel

from schemas import SUPPORT_CHANNEL_COURSE_ID, ChatSession, Course, Progress, Role, User


class LeaderboardEntry(BaseModel):
    userId: int
    name: str
    lessonsCompleted: int
    averageQuizScore: int
    points: int


class CoursePopularity(BaseModel):
    courseId: int
    title: str
    enrollments: int


class PlatformSummary(BaseModel):
    totalUsers: int
    totalStudents: int
    totalInstructors: int
    totalCourses: int
    totalLessonsCompleted: int
    engagementRate: float
    messagesByRole: Dict[str, int]


def _live_progress(progress: List[Progress], courses: List[Course]) -> List[Progress]:
    course_ids = {c.id for c in courses}
    return [p for p in progress if p.courseId in course_ids]


def course_completion(course: Course, progress: Optional[Progress]) -> int:
    """Percentage of ``course``'s lessons in ``progress.completedLessons``."""
    if progress is None or not course.lessons:
        return 0
    lesson_ids = {lesson.id for lesson in course.lessons}
    done = len(lesson_ids.intersection(progress.completedLessons))
    return round(done * 100 / len(lesson_ids))


def average_rating(course: Course) -> float:
    if not course.reviews:
        return 0.0
    return round(sum(r.rating for r in course.reviews) / len(course.reviews), 1)


def leaderboard(
    users: List[User], progress: List[Progress], courses: List[Course], limit: int = 10
) -> List[LeaderboardEntry]:
    """Students ranked by 10 points per completed lesson plus their rounded average quiz score."""
    live = _live_progress(progress, courses)
    entries = []

    for user in users:
        if user.role != Role.STUDENT:
            continue
        records = [p for p in live if p.userId == user.id]
        lessons = sum(len(p.completedLessons) for p in records)
        scores = [s for p in records for s in p.quizScores.values()]
        avg_score = round(sum(scores) / len(scores)) if scores else 0
        entries.append(
            LeaderboardEntry(
                userId=user.id,
                name=user.displayName or user.name,
                lessonsCompleted=lessons,
                averageQuizScore=avg_score,
                points=lessons * 10 + avg_score,
            )
        )

    entries.sort(key=lambda e: e.points, reverse=True)
    return entries[:limit]


def course_popularity(courses: List[Course], users: List[User]) -> List[CoursePopularity]:
    counts = Counter(course_id for u in users for course_id in set(u.enrolledCourseIds))
    ranked = [CoursePopularity(courseId=c.id, title=c.title, enrollments=counts.get(c.id, 0)) for c in courses]
    ranked.sort(key=lambda p: p.enrollments, reverse=True)
    return ranked


def platform_summary(
    users: List[User], courses: List[Course], progress: List[Progress], chat_sessions: List[ChatSession]
) -> PlatformSummary:
    students = [u for u in users if u.role == Role.STUDENT]
    student_ids = {u.id for u in students}
    live = _live_progress(progress, courses)

    engaged = {p.userId for p in live if p.userId in student_ids and p.completedLessons}
    messages = Counter(m.role.value for s in chat_sessions for m in s.messages)

    return PlatformSummary(
        totalUsers=len(users),
        totalStudents=len(students),
        totalInstructors=sum(1 for u in users if u.role == Role.INSTRUCTOR),
        totalCourses=len(courses),
        totalLessonsCompleted=sum(len(p.completedLessons) for p in live),
        engagementRate=round(len(engaged) * 100 / len(students), 1) if students else 0.0,
        messagesByRole=dict(messages),
    )


def inbox_for(user: User, chat_sessions: List[ChatSession], courses: List[Course]) -> List[ChatSession]:
    """
    Sessions visible to ``user``, most recent first. Students see their own
    conversations, instructors those of courses they teach, admins the
    support channel.
    """
    if user.role == Role.ADMIN:
        visible = [s for s in chat_sessions if s.courseId == SUPPORT_CHANNEL_COURSE_ID]
    elif user.role == Role.INSTRUCTOR:
        taught = {c.id for c in courses if user.id in c.instructorIds}
        visible = [s for s in chat_sessions if s.courseId in taught]
    else:
        visible = [s for s in chat_sessions if s.studentId == user.id]

    return sorted(visible, key=lambda s: s.lastMessageAt, reverse=True)

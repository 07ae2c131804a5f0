"""
Structured-output schemas for the generative-AI adapter.
"""

from typing import List

from pydantic import BaseModel, Field


class LessonSummary(BaseModel):
    bullet_points: List[str] = Field(..., description="Three key points of the lesson")


class QuizQuestion(BaseModel):
    question: str
    options: List[str] = Field(..., description="Four answer options")
    correctAnswer: str


class GeneratedQuiz(BaseModel):
    quiz: List[QuizQuestion]


class CourseOutline(BaseModel):
    lesson_titles: List[str] = Field(..., description="Lesson titles from introductory to advanced")

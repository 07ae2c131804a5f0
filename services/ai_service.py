"""
Generative-AI adapter. Treated as an opaque remote capability: a missing key
or any API failure yields an explicit "unavailable" result and never touches
the persistence flow.
"""

from typing import List, Optional, Type, TypeVar

import openai
from pydantic import BaseModel

from config import settings
from schemas import CourseOutline, GeneratedQuiz, Lesson, LessonSummary, QuizQuestion, UserPreferences
from utils.logging_config import logger

AI_UNAVAILABLE_MESSAGE = "AI features are currently unavailable. Please try again later."

M = TypeVar("M", bound=BaseModel)


def preference_instruction(preferences: UserPreferences) -> str:
    return (
        "Adapt to this learner profile:\n"
        f"- Level: {preferences.learningLevel.value}\n"
        f"- Style: {preferences.learningStyle.value}\n"
        f"- Tone: {preferences.tonePreference.value}"
    )


class AIService:
    def __init__(self, client=None, model: Optional[str] = None):
        self.model = model or settings.OPENAI_MODEL
        if client is None and settings.OPENAI_API_KEY:
            client = openai.OpenAI(api_key=settings.OPENAI_API_KEY)
        self.client = client

    @property
    def available(self) -> bool:
        return self.client is not None

    def _parse(self, system: str, prompt: str, response_format: Type[M]) -> Optional[M]:
        if not self.available:
            return None
        try:
            completion = self.client.chat.completions.parse(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                response_format=response_format,
            )
        except (openai.OpenAIError, ValueError) as e:
            logger.error(f"AI request failed: {str(e)}")
            return None

        result = completion.choices[0].message.parsed
        if result is None:
            logger.error(f"AI response could not be parsed as {response_format.__name__}")
        return result

    def summarize_lesson(self, lesson_title: str, lesson_content: str) -> str:
        prompt = f"""Summarize the following lesson content into 3 key bullet points.

Lesson Title: {lesson_title}

Content:
{lesson_content}
"""
        result = self._parse("You are a helpful AI tutor.", prompt, LessonSummary)
        if result is None:
            return AI_UNAVAILABLE_MESSAGE
        return "\n".join(f"- {point}" for point in result.bullet_points)

    def generate_quiz_for_lesson(
        self, lesson: Lesson, preferences: Optional[UserPreferences] = None
    ) -> List[QuizQuestion]:
        system = "You are a helpful AI tutor generating a quiz based on lesson content."
        if preferences:
            system = f"{system}\n{preference_instruction(preferences)}"

        prompt = f"""Based on the content of the following lesson, generate a multiple-choice quiz with exactly 3 questions.
Each question should have 4 options, and one of those options must be the correct answer.

Lesson Title: "{lesson.title}"
Lesson Content:
"{lesson.content}"
"""
        result = self._parse(system, prompt, GeneratedQuiz)
        return result.quiz if result else []

    def generate_course_outline(self, course_title: str) -> List[str]:
        prompt = (
            f'Generate a list of 5-7 concise lesson titles for an online course titled "{course_title}". '
            "The titles should logically progress from introductory to more advanced concepts."
        )
        result = self._parse("You are an experienced curriculum designer.", prompt, CourseOutline)
        return result.lesson_titles if result else []

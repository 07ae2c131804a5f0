"""
Bootstrap dataset pushed to an empty document store on first contact and
served by the local store until something has been written there.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from pydantic import ValidationError

from config import settings
from schemas import BootstrapData, Course, Lesson, LessonType, Role, User
from utils.error_handling import LocalStoreError
from utils.passwords import hash_password

DEMO_PASSWORD = "password"

_INSTRUCTORS = ["Tony Stark", "Natasha Romanoff", "Peter Parker", "Shuri", "Bruce Banner", "Wanda Maximoff"]

_ADMINS = [(97, "Divya Bharathi", "DB"), (98, "HH", "hh")]

_STUDENTS = [(103, "Aaron Michael Raj"), (104, "Abdul Razeek A"), (105, "Akash N"), (120, "Abinaya A")]

_COURSES = [
    ("Data Structures", ["Tony Stark", "Natasha Romanoff"]),
    ("Operating Systems", ["Peter Parker", "Shuri"]),
    ("Python Programming", ["Bruce Banner", "Wanda Maximoff"]),
    ("Database Management Systems", ["Natasha Romanoff", "Shuri"]),
]


def course_image_url(title: str) -> str:
    return (
        f"https://ui-avatars.com/api/?name={quote(title)}"
        "&background=random&size=512&font-size=0.33&bold=true&color=fff"
    )


def _username(name: str) -> str:
    return name.lower().replace(" ", ".")


def _lessons_for(index: int, title: str, intro: str) -> list:
    base = index * 10
    return [
        Lesson(id=base + 1, title=f"Introduction to {title}", type=LessonType.TEXT, content=intro),
        Lesson(
            id=base + 2,
            title="Core Concepts",
            type=LessonType.TEXT,
            content="This lesson covers the fundamental principles and core concepts.",
        ),
        Lesson(
            id=base + 3,
            title="Advanced Topics",
            type=LessonType.TEXT,
            content="Here we dive into more complex topics, building on the previous lessons.",
        ),
        Lesson(
            id=base + 4,
            title="Practical Applications",
            type=LessonType.QUIZ,
            content="This section focuses on real-world applications and case studies.",
        ),
    ]


@lru_cache(maxsize=1)
def default_bootstrap_data() -> BootstrapData:
    password_hash = hash_password(DEMO_PASSWORD)

    instructors = [
        User(
            id=index + 1,
            name=f"{name} (Instructor)",
            username=_username(name),
            passwordHash=password_hash,
            role=Role.INSTRUCTOR,
        )
        for index, name in enumerate(_INSTRUCTORS)
    ]
    instructor_ids = {name: index + 1 for index, name in enumerate(_INSTRUCTORS)}

    admins = [
        User(id=user_id, name=f"{name} (Admin)", username=username, passwordHash=password_hash, role=Role.ADMIN)
        for user_id, name, username in _ADMINS
    ]
    students = [
        User(
            id=user_id,
            name=f"{name} (Student)",
            username=_username(name),
            passwordHash=password_hash,
            role=Role.STUDENT,
        )
        for user_id, name in _STUDENTS
    ]

    courses = []
    for index, (title, instructor_names) in enumerate(_COURSES):
        intro = f"An in-depth look at {title}, taught by experts in the field."
        courses.append(
            Course(
                id=index + 1,
                title=title,
                description=intro,
                instructorIds=[instructor_ids[name] for name in instructor_names],
                imageUrl=course_image_url(title),
                lessons=_lessons_for(index, title, intro),
            )
        )

    return BootstrapData(users=instructors + admins + students, courses=courses, progress=[])


def load_bootstrap_data(path: Optional[str] = None) -> BootstrapData:
    """The configured bootstrap dataset: ``path`` or ``SEED_DATA_FILE`` if set, else the built-in one."""
    path = path or settings.SEED_DATA_FILE
    if not path:
        return default_bootstrap_data()

    try:
        raw = Path(path).read_text(encoding="utf-8")
        return BootstrapData.model_validate(json.loads(raw))
    except (OSError, ValueError, ValidationError) as e:
        raise LocalStoreError(f"Cannot read bootstrap dataset {path}: {e}") from e

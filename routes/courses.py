from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from models import CourseDocument
from db import get_db
from schemas import Course, SuccessResponse
from utils.logging_config import logger
from utils.error_handling import (
    handle_database_error,
    validate_resource_exists,
    safe_database_operation,
    log_operation_success,
)

router = APIRouter()


@router.get("/courses", response_model=List[Course])
def list_courses(db: Session = Depends(get_db)):
    try:
        records = db.query(CourseDocument).order_by(CourseDocument.id).all()
    except SQLAlchemyError as e:
        handle_database_error(e, "list courses")
    return [record.to_entity() for record in records]


@router.post("/courses", response_model=Course)
def create_course(course: Course, db: Session = Depends(get_db)):
    with safe_database_operation(db, "course creation"):
        db.add(CourseDocument.from_entity(course))
        db.commit()

    log_operation_success("Course creation", f"Course {course.id}: {course.title}")
    return course


@router.put("/courses/{course_id}", response_model=Course)
def update_course(course_id: int, course: Course, db: Session = Depends(get_db)):
    record = db.get(CourseDocument, course_id)
    validate_resource_exists(record, "Course", course_id)

    if course.id != course_id:
        raise HTTPException(status_code=400, detail="Course id in path and body differ")

    with safe_database_operation(db, "course update"):
        record.replace(course)
        db.commit()

    log_operation_success("Course update", f"Course {course_id}")
    return course


@router.delete("/courses/{course_id}", response_model=SuccessResponse)
def delete_course(course_id: int, db: Session = Depends(get_db)):
    """
    Remove the course document only. Enrollment cleanup on users is the
    client's responsibility; progress and chat documents are kept as history.
    """
    with safe_database_operation(db, "course deletion"):
        deleted = db.query(CourseDocument).filter(CourseDocument.id == course_id).delete()
        db.commit()

    if not deleted:
        logger.info(f"Delete requested for unknown course {course_id}")
    return SuccessResponse(success=True)

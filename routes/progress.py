from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import ProgressDocument
from db import get_db
from schemas import Progress
from utils.structured_logging import get_logger, LogCategory
from utils.error_handling import handle_database_error

router = APIRouter()
logger = get_logger("routes.progress")


def _find_progress(db: Session, user_id: int, course_id: int):
    return (
        db.query(ProgressDocument)
        .filter(ProgressDocument.user_id == user_id, ProgressDocument.course_id == course_id)
        .first()
    )


@router.get("/progress", response_model=List[Progress])
def list_progress(db: Session = Depends(get_db)):
    try:
        records = db.query(ProgressDocument).order_by(ProgressDocument.id).all()
    except SQLAlchemyError as e:
        handle_database_error(e, "list progress")
    return [record.to_entity() for record in records]


@router.post("/progress", response_model=Progress)
def upsert_progress(progress: Progress, db: Session = Depends(get_db)):
    """
    Upsert by (userId, courseId). The stored document is replaced wholesale;
    callers send the fully merged record.
    """
    try:
        record = _find_progress(db, progress.userId, progress.courseId)
        if record:
            record.replace(progress)
        else:
            db.add(ProgressDocument.from_entity(progress))
        db.commit()
    except IntegrityError:
        # A concurrent writer inserted the pair first: last writer replaces it
        db.rollback()
        logger.warning(
            "Concurrent progress insert, replacing",
            category=LogCategory.DATABASE,
            extra={"userId": progress.userId, "courseId": progress.courseId},
        )
        try:
            record = _find_progress(db, progress.userId, progress.courseId)
            if record is None:
                # The conflicting row was removed before it could be re-read
                raise HTTPException(status_code=409, detail="Progress record changed concurrently, retry")
            record.replace(progress)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            handle_database_error(e, "progress upsert")
    except SQLAlchemyError as e:
        db.rollback()
        handle_database_error(e, "progress upsert")

    logger.database("upsert", "progress", extra={"userId": progress.userId, "courseId": progress.courseId})
    return progress

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import ChatSessionDocument
from db import get_db
from schemas import ChatSession
from utils.structured_logging import get_logger, LogCategory
from utils.error_handling import handle_database_error

router = APIRouter()
logger = get_logger("routes.chats")


def _find_session(db: Session, course_id: int, student_id: int):
    return (
        db.query(ChatSessionDocument)
        .filter(ChatSessionDocument.course_id == course_id, ChatSessionDocument.student_id == student_id)
        .first()
    )


@router.get("/chats", response_model=List[ChatSession])
def list_chat_sessions(db: Session = Depends(get_db)):
    try:
        records = db.query(ChatSessionDocument).order_by(ChatSessionDocument.id).all()
    except SQLAlchemyError as e:
        handle_database_error(e, "list chat sessions")
    return [record.to_entity() for record in records]


@router.post("/chats", response_model=ChatSession)
def upsert_chat_session(session: ChatSession, db: Session = Depends(get_db)):
    """Upsert by (courseId, studentId), replacing the whole session document."""
    try:
        record = _find_session(db, session.courseId, session.studentId)
        if record:
            record.replace(session)
        else:
            db.add(ChatSessionDocument.from_entity(session))
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(
            "Concurrent chat session insert, replacing",
            category=LogCategory.DATABASE,
            extra={"courseId": session.courseId, "studentId": session.studentId},
        )
        try:
            record = _find_session(db, session.courseId, session.studentId)
            if record is None:
                # The collision was on the session id under a different pair
                raise HTTPException(status_code=409, detail="Chat session id already used by another conversation")
            record.replace(session)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            handle_database_error(e, "chat session upsert")
    except SQLAlchemyError as e:
        db.rollback()
        handle_database_error(e, "chat session upsert")

    logger.database(
        "upsert", "chat_sessions", extra={"courseId": session.courseId, "studentId": session.studentId}
    )
    return session

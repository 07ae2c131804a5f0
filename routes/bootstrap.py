from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import UserDocument, CourseDocument, ProgressDocument, ChatSessionDocument
from db import get_db
from schemas import BootstrapData, InitResponse, SeedResponse
from utils.structured_logging import get_logger, LogCategory

router = APIRouter()
logger = get_logger("routes.bootstrap")


@router.get("/init", response_model=InitResponse)
def load_everything(db: Session = Depends(get_db)):
    """Bulk fetch of all four collections for the client's first load."""
    try:
        users = [r.to_entity() for r in db.query(UserDocument).order_by(UserDocument.id).all()]
        courses = [r.to_entity() for r in db.query(CourseDocument).order_by(CourseDocument.id).all()]
        progress = [r.to_entity() for r in db.query(ProgressDocument).order_by(ProgressDocument.id).all()]
        chats = [r.to_entity() for r in db.query(ChatSessionDocument).order_by(ChatSessionDocument.id).all()]
    except SQLAlchemyError as e:
        logger.error("Error in /init", category=LogCategory.DATABASE, exception=e)
        raise HTTPException(status_code=500, detail="Database operation failed")

    return InitResponse(users=users, courses=courses, progress=progress, chats=chats)


@router.post("/seed", response_model=SeedResponse)
def seed_database(payload: BootstrapData, db: Session = Depends(get_db)):
    """
    Replace users, courses and progress with the bootstrap dataset.
    Chat sessions are left untouched.
    """
    logger.info(
        "Seeding database",
        category=LogCategory.DATABASE,
        extra={"users": len(payload.users), "courses": len(payload.courses), "progress": len(payload.progress)},
    )
    try:
        db.query(UserDocument).delete()
        db.query(CourseDocument).delete()
        db.query(ProgressDocument).delete()

        db.add_all(UserDocument.from_entity(user) for user in payload.users)
        db.add_all(CourseDocument.from_entity(course) for course in payload.courses)
        db.add_all(ProgressDocument.from_entity(entry) for entry in payload.progress)
        db.commit()
    except IntegrityError:
        # Two clients seeding an empty store at once: the other one won
        db.rollback()
        logger.warning("Concurrency detected during seeding, treating as success", category=LogCategory.DATABASE)
        return SeedResponse(success=True, message="Database seeded (concurrently)")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Seeding error", category=LogCategory.DATABASE, exception=e)
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Database seeded successfully", category=LogCategory.DATABASE)
    return SeedResponse(success=True, message="Database seeded")

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from models import UserDocument
from db import get_db
from schemas import User, SuccessResponse
from utils.logging_config import logger
from utils.error_handling import (
    handle_database_error,
    validate_resource_exists,
    safe_database_operation,
    log_operation_success,
)

router = APIRouter()


@router.get("/users", response_model=List[User])
def list_users(db: Session = Depends(get_db)):
    try:
        records = db.query(UserDocument).order_by(UserDocument.id).all()
    except SQLAlchemyError as e:
        handle_database_error(e, "list users")
    return [record.to_entity() for record in records]


@router.post("/users", response_model=User)
def create_user(user: User, db: Session = Depends(get_db)):
    # Usernames are unique case-insensitively
    existing_user = (
        db.query(UserDocument).filter(func.lower(UserDocument.username) == user.username.lower()).first()
    )
    if existing_user:
        logger.warning(f"Rejected duplicate username: {user.username}")
        raise HTTPException(status_code=409, detail="Username already exists")

    with safe_database_operation(db, "user creation"):
        db.add(UserDocument.from_entity(user))
        db.commit()

    log_operation_success("User creation", f"User {user.id} ({user.username})")
    return user


@router.put("/users/{user_id}", response_model=User)
def update_user(user_id: int, user: User, db: Session = Depends(get_db)):
    record = db.get(UserDocument, user_id)
    validate_resource_exists(record, "User", user_id)

    if user.id != user_id:
        raise HTTPException(status_code=400, detail="User id in path and body differ")

    with safe_database_operation(db, "user update"):
        record.replace(user)
        db.commit()

    log_operation_success("User update", f"User {user_id}")
    return user


@router.delete("/users/{user_id}", response_model=SuccessResponse)
def delete_user(user_id: int, db: Session = Depends(get_db)):
    with safe_database_operation(db, "user deletion"):
        deleted = db.query(UserDocument).filter(UserDocument.id == user_id).delete()
        db.commit()

    if not deleted:
        logger.info(f"Delete requested for unknown user {user_id}")
    return SuccessResponse(success=True)

"""
Centralized error handling utilities for consistent error responses
"""

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from sqlalchemy.orm import Session
from utils.logging_config import logger
from typing import Optional, Any
import traceback


class RemoteStoreError(Exception):
    """The remote document store could not complete a request (timeout, network, non-2xx, bad body)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LocalStoreError(Exception):
    """The durable local store is unreadable, unwritable or holds corrupt data"""
    pass


class StoreUnavailableError(Exception):
    """Neither the remote store nor the local store could serve a bulk load"""
    pass


def handle_database_error(e: Exception, operation: str = "database operation") -> None:
    """
    Handle database errors consistently across the application

    Args:
        e: The exception that occurred
        operation: Description of the operation that failed
    """
    if isinstance(e, IntegrityError):
        logger.warning(f"Database integrity error during {operation}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Data integrity constraint violated. This operation conflicts with existing data."
        )
    elif isinstance(e, SQLAlchemyError):
        logger.error(f"Database error during {operation}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database operation failed. Please try again later."
        )
    else:
        logger.error(f"Unexpected error during {operation}: {str(e)}")
        logger.error(traceback.format_exc())
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred. Please try again later."
        )


def safe_database_operation(db: Session, operation_name: str):
    """
    Context manager for safe database operations with automatic rollback

    Usage:
        with safe_database_operation(db, "create user"):
            db.add(record)
            db.commit()
    """
    class DatabaseOperationContext:
        def __init__(self, db: Session, operation_name: str):
            self.db = db
            self.operation_name = operation_name

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_type:
                self.db.rollback()
                handle_database_error(exc_val, self.operation_name)
            return False

    return DatabaseOperationContext(db, operation_name)


def validate_resource_exists(resource: Any, resource_name: str, resource_id: Any) -> None:
    """
    Validate that a resource exists, raise 404 if not
    """
    if not resource:
        logger.warning(f"{resource_name} not found: {resource_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource_name} not found"
        )


def log_operation_success(operation: str, details: Optional[str] = None) -> None:
    """Log successful operations for audit purposes"""
    if details:
        logger.info(f"Operation successful: {operation} - {details}")
    else:
        logger.info(f"Operation successful: {operation}")

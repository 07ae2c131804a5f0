"""
Client for the document-store REST contract. Every request is a single
attempt bounded by ``timeout``; any failure surfaces as ``RemoteStoreError``.
"""

from typing import Any, Optional

import requests
from pydantic import BaseModel, TypeAdapter, ValidationError

from config import settings
from schemas import (
    BootstrapData,
    ChatSession,
    Course,
    InitResponse,
    Progress,
    SeedResponse,
    StoreContents,
    SuccessResponse,
    User,
)
from services.store_backend import StoreBackend
from utils.error_handling import RemoteStoreError
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("remote_store")


class RemoteStore(StoreBackend):
    name = "remote"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.API_URL).rstrip("/")
        self.timeout = settings.REQUEST_TIMEOUT if timeout is None else timeout
        self.session = session or requests.Session()

    def _request(self, method: str, endpoint: str, payload: Optional[BaseModel] = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        body = payload.model_dump(mode="json") if payload is not None else None

        try:
            response = self.session.request(method, url, json=body, timeout=self.timeout)
        except requests.Timeout as e:
            raise RemoteStoreError(f"{method} {endpoint} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise RemoteStoreError(f"{method} {endpoint} failed: {e}") from e

        if response.status_code >= 400:
            raise RemoteStoreError(f"Server Error: {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteStoreError(f"{method} {endpoint} returned a non-JSON body") from e

        logger.debug(
            f"{method} {endpoint} -> {response.status_code}",
            category=LogCategory.SYNC,
            extra={"url": url},
        )
        return data

    def _parse(self, adapter_type, data: Any, endpoint: str):
        try:
            return TypeAdapter(adapter_type).validate_python(data)
        except ValidationError as e:
            raise RemoteStoreError(f"Unexpected response shape from {endpoint}") from e

    def fetch_all(self) -> StoreContents:
        init = self._parse(InitResponse, self._request("GET", "/init"), "/init")
        return StoreContents(
            users=init.users, courses=init.courses, progress=init.progress, chatSessions=init.chats
        )

    def seed(self, bootstrap: BootstrapData) -> SeedResponse:
        return self._parse(SeedResponse, self._request("POST", "/seed", bootstrap), "/seed")

    def add_user(self, user: User) -> User:
        return self._parse(User, self._request("POST", "/users", user), "/users")

    def update_user(self, user: User) -> User:
        return self._parse(User, self._request("PUT", f"/users/{user.id}", user), "/users")

    def delete_user(self, user_id: int) -> None:
        self._parse(SuccessResponse, self._request("DELETE", f"/users/{user_id}"), "/users")

    def add_course(self, course: Course) -> Course:
        return self._parse(Course, self._request("POST", "/courses", course), "/courses")

    def update_course(self, course: Course) -> Course:
        return self._parse(Course, self._request("PUT", f"/courses/{course.id}", course), "/courses")

    def delete_course(self, course_id: int) -> None:
        self._parse(SuccessResponse, self._request("DELETE", f"/courses/{course_id}"), "/courses")

    def save_progress(self, progress: Progress) -> Progress:
        return self._parse(Progress, self._request("POST", "/progress", progress), "/progress")

    def save_chat_session(self, session: ChatSession) -> ChatSession:
        return self._parse(ChatSession, self._request("POST", "/chats", session), "/chats")

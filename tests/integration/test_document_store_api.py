"""
Integration tests for the document-store REST API
"""

from unittest.mock import patch

from routes.progress import _find_progress as find_progress
from schemas import BootstrapData
from services.initial_data import default_bootstrap_data


def as_json(entity):
    return entity.model_dump(mode="json")


class TestServiceEndpoints:
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_correlation_id_header(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/nope")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["status_code"] == 404


class TestInitAndSeed:
    def test_init_on_empty_store(self, client):
        response = client.get("/api/init")

        assert response.status_code == 200
        assert response.json() == {"users": [], "courses": [], "progress": [], "chats": []}

    def test_seed_replaces_users_courses_and_progress(self, client, sample_user, sample_progress, sample_chat_session):
        client.post("/api/users", json=as_json(sample_user))
        client.post("/api/progress", json=as_json(sample_progress))
        client.post("/api/chats", json=as_json(sample_chat_session))

        response = client.post("/api/seed", json=as_json(default_bootstrap_data()))

        assert response.status_code == 200
        assert response.json()["success"] is True
        data = client.get("/api/init").json()
        assert len(data["users"]) == 12
        assert all(u["id"] != sample_user.id for u in data["users"])
        assert len(data["courses"]) == 4
        assert data["progress"] == []
        assert len(data["chats"]) == 1

    def test_seeding_twice_does_not_duplicate(self, client):
        payload = as_json(default_bootstrap_data())

        client.post("/api/seed", json=payload)
        client.post("/api/seed", json=payload)

        data = client.get("/api/init").json()
        assert len(data["users"]) == 12
        assert len(data["courses"]) == 4

    def test_seed_rejects_malformed_payload(self, client):
        response = client.post("/api/seed", json={"users": [{"id": "x"}]})

        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_seed_with_duplicate_ids_reported_as_concurrent(self, client, sample_user):
        payload = BootstrapData(users=[sample_user, sample_user])

        response = client.post("/api/seed", json=as_json(payload))

        assert response.status_code == 200
        assert response.json()["message"] == "Database seeded (concurrently)"


class TestUserEndpoints:
    def test_create_and_list(self, client, sample_user):
        response = client.post("/api/users", json=as_json(sample_user))

        assert response.status_code == 200
        assert response.json() == as_json(sample_user)
        assert client.get("/api/users").json() == [as_json(sample_user)]

    def test_duplicate_username_case_insensitive(self, client, sample_user):
        client.post("/api/users", json=as_json(sample_user))
        clash = sample_user.model_copy(update={"id": 502, "username": "ALICE"})

        response = client.post("/api/users", json=as_json(clash))

        assert response.status_code == 409
        assert len(client.get("/api/users").json()) == 1

    def test_update(self, client, sample_user):
        client.post("/api/users", json=as_json(sample_user))
        enrolled = sample_user.model_copy(update={"enrolledCourseIds": [1, 2]})

        response = client.put(f"/api/users/{sample_user.id}", json=as_json(enrolled))

        assert response.status_code == 200
        assert client.get("/api/users").json()[0]["enrolledCourseIds"] == [1, 2]

    def test_update_missing_user(self, client, sample_user):
        response = client.put(f"/api/users/{sample_user.id}", json=as_json(sample_user))

        assert response.status_code == 404

    def test_update_id_mismatch(self, client, sample_user):
        client.post("/api/users", json=as_json(sample_user))

        response = client.put("/api/users/501", json=as_json(sample_user.model_copy(update={"id": 9})))

        assert response.status_code == 400

    def test_delete_is_idempotent(self, client, sample_user):
        client.post("/api/users", json=as_json(sample_user))

        assert client.delete(f"/api/users/{sample_user.id}").json()["success"] is True
        assert client.delete(f"/api/users/{sample_user.id}").json()["success"] is True
        assert client.get("/api/users").json() == []


class TestCourseEndpoints:
    def test_crud(self, client, sample_course):
        assert client.post("/api/courses", json=as_json(sample_course)).status_code == 200

        renamed = sample_course.model_copy(update={"title": "Distributed Systems II"})
        assert client.put(f"/api/courses/{sample_course.id}", json=as_json(renamed)).status_code == 200
        assert client.get("/api/courses").json()[0]["title"] == "Distributed Systems II"

        assert client.delete(f"/api/courses/{sample_course.id}").json()["success"] is True
        assert client.get("/api/courses").json() == []

    def test_duplicate_id_conflicts(self, client, sample_course):
        client.post("/api/courses", json=as_json(sample_course))

        assert client.post("/api/courses", json=as_json(sample_course)).status_code == 409

    def test_lessons_keep_order(self, client, sample_course):
        client.post("/api/courses", json=as_json(sample_course))

        lessons = client.get("/api/courses").json()[0]["lessons"]
        assert [lesson["id"] for lesson in lessons] == [71, 72, 73]


class TestProgressUpsert:
    def test_upsert_keeps_one_record_per_pair(self, client, sample_progress):
        client.post("/api/progress", json=as_json(sample_progress))
        grown = sample_progress.model_copy(update={"completedLessons": [10, 11]})

        response = client.post("/api/progress", json=as_json(grown))

        assert response.status_code == 200
        stored = client.get("/api/progress").json()
        assert len(stored) == 1
        assert stored[0]["completedLessons"] == [10, 11]

    def test_whole_document_replaced(self, client, sample_progress):
        scored = sample_progress.model_copy(update={"quizScores": {4: 80}, "timeSpent": {10: 30}})
        client.post("/api/progress", json=as_json(scored))

        client.post("/api/progress", json=as_json(sample_progress))

        stored = client.get("/api/progress").json()[0]
        assert stored["quizScores"] == {}
        assert stored["timeSpent"] == {}

    def test_distinct_pairs_stored_separately(self, client, sample_progress):
        client.post("/api/progress", json=as_json(sample_progress))
        client.post("/api/progress", json=as_json(sample_progress.model_copy(update={"courseId": 6})))

        assert len(client.get("/api/progress").json()) == 2

    def test_insert_race_replaces_existing_record(self, client, sample_progress):
        client.post("/api/progress", json=as_json(sample_progress))
        grown = sample_progress.model_copy(update={"completedLessons": [10, 11]})
        lookups = []

        def miss_first_lookup(db, user_id, course_id):
            lookups.append((user_id, course_id))
            return None if len(lookups) == 1 else find_progress(db, user_id, course_id)

        with patch("routes.progress._find_progress", side_effect=miss_first_lookup):
            response = client.post("/api/progress", json=as_json(grown))

        assert response.status_code == 200
        stored = client.get("/api/progress").json()
        assert len(stored) == 1
        assert stored[0]["completedLessons"] == [10, 11]

    def test_insert_race_with_vanished_record_conflicts(self, client, sample_progress):
        client.post("/api/progress", json=as_json(sample_progress))

        with patch("routes.progress._find_progress", return_value=None):
            response = client.post("/api/progress", json=as_json(sample_progress))

        assert response.status_code == 409
        assert response.json()["success"] is False
        assert len(client.get("/api/progress").json()) == 1


class TestChatUpsert:
    def test_upsert_by_course_and_student(self, client, sample_chat_session):
        client.post("/api/chats", json=as_json(sample_chat_session))
        grown = sample_chat_session.model_copy(
            update={
                "messages": sample_chat_session.messages * 2,
                "lastMessageAt": "2024-01-02T00:00:00+00:00",
            }
        )

        client.post("/api/chats", json=as_json(grown))

        stored = client.get("/api/chats").json()
        assert len(stored) == 1
        assert len(stored[0]["messages"]) == 2
        assert stored[0]["lastMessageAt"] == "2024-01-02T00:00:00+00:00"

    def test_second_session_for_same_pair_replaces_first(self, client, sample_chat_session):
        client.post("/api/chats", json=as_json(sample_chat_session))
        rival = sample_chat_session.model_copy(update={"id": "session-2"})

        client.post("/api/chats", json=as_json(rival))

        stored = client.get("/api/chats").json()
        assert [s["id"] for s in stored] == ["session-2"]

    def test_session_id_reused_for_other_pair_conflicts(self, client, sample_chat_session):
        client.post("/api/chats", json=as_json(sample_chat_session))
        other_pair = sample_chat_session.model_copy(update={"studentId": 104})

        response = client.post("/api/chats", json=as_json(other_pair))

        assert response.status_code == 409
        assert len(client.get("/api/chats").json()) == 1

    def test_support_channel_session(self, client, sample_chat_session):
        support = sample_chat_session.model_copy(update={"id": "support-103", "courseId": 0})

        client.post("/api/chats", json=as_json(support))
        client.post("/api/chats", json=as_json(sample_chat_session))

        assert sorted(s["courseId"] for s in client.get("/api/chats").json()) == [0, 1]

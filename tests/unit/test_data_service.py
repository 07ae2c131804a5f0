import pytest
import requests
from unittest.mock import MagicMock

from schemas import BootstrapData, Progress, SeedResponse, StoreContents
from services.data_service import DataService
from services.local_store import LocalBackend, LocalStore
from services.remote_store import RemoteStore
from utils.error_handling import RemoteStoreError, StoreUnavailableError


def make_remote(**behaviour):
    """Remote tier stand-in with the same surface as RemoteStore"""
    remote = MagicMock(spec=RemoteStore)
    for name, value in behaviour.items():
        getattr(remote, name).side_effect = value
    return remote


class TestOfflineFallback:
    """Every mutation stays durable when the remote store is unreachable"""

    def test_fetch_all_falls_back_to_local(self, offline_service, bootstrap):
        snapshot = offline_service.fetch_all_data()

        assert snapshot.mode == "offline"
        assert len(snapshot.users) == len(bootstrap.users)

    def test_timeouts_fall_back(self, local_backend, bootstrap):
        session = MagicMock(spec=requests.Session)
        session.request.side_effect = requests.Timeout("read timed out")
        service = DataService(
            remote=RemoteStore(base_url="http://slow.test/api", timeout=0.01, session=session),
            local=local_backend,
            bootstrap=bootstrap,
        )

        progress = Progress(userId=103, courseId=1, completedLessons=[1])
        assert service.save_progress(progress) == progress
        assert service.fetch_all_data().progress == [progress]
        assert session.request.call_args.kwargs["timeout"] == 0.01

    def test_every_mutation_is_reflected_after_reload(
        self, offline_service, sample_user, sample_course, sample_progress, sample_chat_session
    ):
        assert offline_service.add_user(sample_user) == sample_user
        assert offline_service.add_course(sample_course) == sample_course
        assert offline_service.save_progress(sample_progress) == sample_progress
        assert offline_service.save_chat_session(sample_chat_session) == sample_chat_session

        renamed = sample_course.model_copy(update={"title": "Distributed Systems II"})
        offline_service.update_course(renamed)
        enrolled = sample_user.model_copy(update={"enrolledCourseIds": [sample_course.id]})
        offline_service.update_user(enrolled)
        offline_service.delete_course(1)
        offline_service.delete_user(97)

        snapshot = offline_service.fetch_all_data()
        assert snapshot.mode == "offline"
        assert enrolled in snapshot.users
        assert renamed in snapshot.courses
        assert snapshot.progress == [sample_progress]
        assert snapshot.chatSessions == [sample_chat_session]
        assert all(c.id != 1 for c in snapshot.courses)
        assert all(u.id != 97 for u in snapshot.users)

    def test_server_error_falls_back(self, local_backend, bootstrap, sample_progress):
        remote = make_remote(save_progress=RemoteStoreError("Server Error: 500", status_code=500))
        service = DataService(remote=remote, local=local_backend, bootstrap=bootstrap)

        service.save_progress(sample_progress)

        assert local_backend.fetch_all().progress == [sample_progress]

    def test_local_write_failure_still_returns_entity(self, tmp_path, offline_remote, bootstrap, sample_user):
        blocker = tmp_path / "blocked"
        blocker.write_text("")
        service = DataService(
            remote=offline_remote, local=LocalBackend(LocalStore(str(blocker)), bootstrap), bootstrap=bootstrap
        )

        assert service.add_user(sample_user) == sample_user
        assert service.delete_user(sample_user.id) is None

    def test_total_failure_propagates(self, local_store, offline_remote, bootstrap):
        local_store.set("smart_lms_users", "corrupt")
        service = DataService(remote=offline_remote, local=LocalBackend(local_store, bootstrap), bootstrap=bootstrap)

        with pytest.raises(StoreUnavailableError):
            service.fetch_all_data()

    def test_undecodable_local_blob_is_contained(self, local_store, offline_remote, bootstrap, sample_user):
        local_store.directory.mkdir(parents=True, exist_ok=True)
        (local_store.directory / "smart_lms_users.json").write_bytes(b"\xff\xfe\x00garbage")
        service = DataService(remote=offline_remote, local=LocalBackend(local_store, bootstrap), bootstrap=bootstrap)

        assert service.add_user(sample_user) == sample_user
        with pytest.raises(StoreUnavailableError):
            service.fetch_all_data()

    def test_online_mutation_does_not_touch_local(self, bootstrap, sample_progress):
        remote = make_remote()
        remote.save_progress.return_value = sample_progress
        local = MagicMock(spec=LocalBackend)
        service = DataService(remote=remote, local=local, bootstrap=bootstrap)

        assert service.save_progress(sample_progress) == sample_progress
        local.save_progress.assert_not_called()


class TestBootstrapSeeding:
    """Seeding is guarded by an empty remote store, not by a flag"""

    def test_empty_remote_is_seeded_once(self, local_backend, bootstrap):
        empty = StoreContents()
        seeded = StoreContents(users=bootstrap.users, courses=bootstrap.courses)
        remote = make_remote(fetch_all=[empty, seeded, seeded])
        remote.seed.return_value = SeedResponse(success=True, message="Database seeded")
        service = DataService(remote=remote, local=local_backend, bootstrap=bootstrap)

        first = service.fetch_all_data()
        second = service.fetch_all_data()

        remote.seed.assert_called_once_with(bootstrap)
        assert first.mode == second.mode == "online"
        assert len(second.users) == len(bootstrap.users)

    def test_populated_remote_is_never_seeded(self, local_backend, bootstrap, sample_course):
        remote = make_remote(fetch_all=[StoreContents(courses=[sample_course])])
        service = DataService(remote=remote, local=local_backend, bootstrap=bootstrap)

        snapshot = service.fetch_all_data()

        remote.seed.assert_not_called()
        assert snapshot.courses == [sample_course]

    def test_seed_failure_is_not_fatal(self, local_backend, bootstrap):
        remote = make_remote(
            fetch_all=[StoreContents(), StoreContents()],
            seed=RemoteStoreError("Server Error: 400", status_code=400),
        )
        service = DataService(remote=remote, local=local_backend, bootstrap=bootstrap)

        snapshot = service.fetch_all_data()

        assert snapshot.mode == "online"
        assert snapshot.users == []

    def test_custom_bootstrap_is_pushed(self, local_backend, sample_user):
        custom = BootstrapData(users=[sample_user])
        remote = make_remote(fetch_all=[StoreContents(), StoreContents(users=[sample_user])])
        remote.seed.return_value = SeedResponse(success=True, message="Database seeded")
        service = DataService(remote=remote, local=local_backend, bootstrap=custom)

        service.fetch_all_data()

        remote.seed.assert_called_once_with(custom)


class TestRemoteStore:
    """Test request shaping and error mapping of the REST client"""

    def _response(self, status_code=200, body=None):
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = body
        return response

    def test_non_2xx_raises_with_status(self):
        session = MagicMock(spec=requests.Session)
        session.request.return_value = self._response(status_code=404, body={"detail": "User not found"})
        remote = RemoteStore(base_url="http://api.test/api/", session=session)

        with pytest.raises(RemoteStoreError) as exc_info:
            remote.delete_user(1)

        assert exc_info.value.status_code == 404
        assert session.request.call_args.args == ("DELETE", "http://api.test/api/users/1")

    def test_non_json_body_raises(self):
        response = self._response()
        response.json.side_effect = ValueError("Expecting value")
        session = MagicMock(spec=requests.Session)
        session.request.return_value = response

        with pytest.raises(RemoteStoreError):
            RemoteStore(base_url="http://api.test/api", session=session).fetch_all()

    def test_unexpected_shape_raises(self):
        session = MagicMock(spec=requests.Session)
        session.request.return_value = self._response(body={"users": "nope"})

        with pytest.raises(RemoteStoreError):
            RemoteStore(base_url="http://api.test/api", session=session).fetch_all()

    def test_entity_sent_as_json(self, sample_progress):
        session = MagicMock(spec=requests.Session)
        session.request.return_value = self._response(body=sample_progress.model_dump(mode="json"))
        remote = RemoteStore(base_url="http://api.test/api", timeout=2.0, session=session)

        assert remote.save_progress(sample_progress) == sample_progress
        assert session.request.call_args.kwargs == {
            "json": sample_progress.model_dump(mode="json"),
            "timeout": 2.0,
        }

    def test_init_chats_become_chat_sessions(self, sample_chat_session):
        session = MagicMock(spec=requests.Session)
        session.request.return_value = self._response(
            body={"users": [], "courses": [], "progress": [], "chats": [sample_chat_session.model_dump(mode="json")]}
        )

        contents = RemoteStore(base_url="http://api.test/api", session=session).fetch_all()

        assert contents.chatSessions == [sample_chat_session]

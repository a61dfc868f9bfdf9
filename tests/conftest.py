"""Shared fixtures: deterministic randomness and in-memory collaborators."""

import copy
import random
from collections.abc import Callable

import pytest

from notesync.client.cloud import CloudClientFactory, ConnectionFailedError
from notesync.client.models import (
    CloudStorageCredentials,
    NoteRepository,
    Settings,
    repository_from_bytes,
    repository_to_bytes,
)
from notesync.client.sync import Route, SyncCollaborators, encrypt_for_cloud
from notesync.core.config import SyncConfig

MEMORY_STORAGE_ID = "memory"


class SeededRandomSource:
    """Deterministic random source for reproducible tests."""

    def __init__(self, seed: int = 42) -> None:
        self._random = random.Random(seed)

    def get_random_bytes(self, count: int) -> bytes:
        return self._random.randbytes(count)


class InMemoryStorage:
    """LocalStorage keeping deep copies, counting every save."""

    def __init__(self) -> None:
        self.repository = NoteRepository()
        self.settings = Settings()
        self.repository_saves = 0
        self.settings_saves = 0

    def load_repository_or_default(self) -> NoteRepository:
        return copy.deepcopy(self.repository)

    def try_save_repository(self, repository: NoteRepository) -> bool:
        self.repository_saves += 1
        self.repository = copy.deepcopy(repository)
        return True

    def load_settings_or_default(self) -> Settings:
        return copy.deepcopy(self.settings)

    def try_save_settings(self, settings: Settings) -> bool:
        self.settings_saves += 1
        self.settings = copy.deepcopy(settings)
        return True


class InMemoryCloud:
    """CloudStorageClient backed by a dict, counting calls."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.uploads = 0
        self.downloads = 0
        self.offline = False

    def _check_online(self) -> None:
        if self.offline:
            raise ConnectionFailedError("Cloud is offline")

    async def exists_file(self, filename: str, credentials: CloudStorageCredentials) -> bool:
        self._check_online()
        return filename in self.files

    async def download_file(self, filename: str, credentials: CloudStorageCredentials) -> bytes:
        self._check_online()
        self.downloads += 1
        return self.files[filename]

    async def upload_file(
        self, filename: str, content: bytes, credentials: CloudStorageCredentials
    ) -> None:
        self._check_online()
        self.uploads += 1
        self.files[filename] = content


class RecordingFeedback:
    """FeedbackService remembering everything shown."""

    def __init__(self) -> None:
        self.toasts: list[str] = []
        self.messages: list[str] = []
        self.busy: list[bool] = []

    def show_toast(self, text: str) -> None:
        self.toasts.append(text)

    async def show_message(self, text: str) -> None:
        self.messages.append(text)

    def set_busy_indicator_visible(self, visible: bool) -> None:
        self.busy.append(visible)


class RecordingNavigation:
    """NavigationService remembering every route."""

    def __init__(self) -> None:
        self.routes: list[Route] = []
        self.urls: list[str] = []

    def navigate_to(self, route: Route) -> None:
        self.routes.append(route)

    def open_url(self, url: str) -> None:
        self.urls.append(url)


@pytest.fixture
def random_source() -> SeededRandomSource:
    """Create a deterministic random source."""
    return SeededRandomSource()


@pytest.fixture
def storage() -> InMemoryStorage:
    """Create an in-memory local storage."""
    return InMemoryStorage()


@pytest.fixture
def cloud() -> InMemoryCloud:
    """Create an in-memory cloud storage."""
    return InMemoryCloud()


@pytest.fixture
def feedback() -> RecordingFeedback:
    return RecordingFeedback()


@pytest.fixture
def navigation() -> RecordingNavigation:
    return RecordingNavigation()


@pytest.fixture
def collaborators(
    storage: InMemoryStorage,
    cloud: InMemoryCloud,
    feedback: RecordingFeedback,
    navigation: RecordingNavigation,
    random_source: SeededRandomSource,
) -> SyncCollaborators:
    """Create collaborators wired to the in-memory fakes."""
    factory = CloudClientFactory()
    factory.register(MEMORY_STORAGE_ID, lambda: cloud)
    return SyncCollaborators(
        storage=storage,
        cloud_clients=factory,
        feedback=feedback,
        navigation=navigation,
        random_source=random_source,
        config=SyncConfig(),
    )


@pytest.fixture
def memory_credentials() -> CloudStorageCredentials:
    return CloudStorageCredentials(cloud_storage_id=MEMORY_STORAGE_ID)


@pytest.fixture
def put_cloud_repository(
    collaborators: SyncCollaborators, cloud: InMemoryCloud
) -> Callable[[NoteRepository, str], bytes]:
    """Encrypt a repository with a transfer code and place it in the cloud."""

    def _put(repository: NoteRepository, transfer_code: str) -> bytes:
        blob = encrypt_for_cloud(
            collaborators, repository_to_bytes(repository), transfer_code, Settings()
        )
        cloud.files[collaborators.config.repository_file_name] = blob
        return blob

    return _put


@pytest.fixture
def read_cloud_repository(
    collaborators: SyncCollaborators, cloud: InMemoryCloud
) -> Callable[[str], NoteRepository]:
    """Decrypt the repository currently stored in the cloud."""

    def _read(transfer_code: str) -> NoteRepository:
        blob = cloud.files[collaborators.config.repository_file_name]
        return repository_from_bytes(collaborators.make_cryptor().decrypt(blob, transfer_code))

    return _read


@pytest.fixture
def configure_device(
    storage: InMemoryStorage, memory_credentials: CloudStorageCredentials
) -> Callable[..., Settings]:
    """Give the device cloud credentials and, optionally, transfer codes."""

    def _configure(transfer_code: str | None = None, history: list[str] | None = None) -> Settings:
        settings = Settings(credentials=memory_credentials)
        settings.transfer_code = transfer_code
        settings.transfer_code_history = list(history or [])
        storage.settings = settings
        return settings

    return _configure

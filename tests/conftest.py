"""Root test configuration."""

import hashlib
import logging

import pytest
import structlog
from cosmos.core.errors import RepositoryError, RepositoryFileNotFoundError
from cosmos.domain.models import (
    Application,
    FileContent,
    FileMetadata,
    MonitoringSettings,
    RepositoryCoordinates,
)
from cosmos.monitoring import (
    InMemoryApplicationDirectory,
    InMemoryGraphStore,
    MonitoringOrchestrator,
    RepositoryReader,
)


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class StubRepositoryReader(RepositoryReader):
    """Serves files from a dict keyed by (owner, repo, branch, path)."""

    def __init__(self):
        self.files: dict[tuple[str, str, str, str], bytes] = {}
        self.hashes: dict[tuple[str, str, str, str], str] = {}
        self.errors: dict[tuple[str, str, str, str], Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def put(self, app: Application, path: str, content: str | bytes, sha: str | None = None):
        repo = app.repository
        key = (repo.owner, repo.repository, repo.branch, path)
        data = content.encode() if isinstance(content, str) else content
        self.files[key] = data
        self.hashes[key] = sha or hashlib.sha1(data).hexdigest()

    def fail(self, app: Application, path: str, error: Exception):
        repo = app.repository
        self.errors[(repo.owner, repo.repository, repo.branch, path)] = error

    def remove(self, app: Application, path: str):
        repo = app.repository
        key = (repo.owner, repo.repository, repo.branch, path)
        self.files.pop(key, None)
        self.hashes.pop(key, None)

    def _lookup(self, owner, repo, branch, path):
        key = (owner, repo, branch, path)
        if key in self.errors:
            raise self.errors[key]
        if key not in self.files:
            raise RepositoryFileNotFoundError(f"{path} not found in {owner}/{repo}@{branch}")
        metadata = FileMetadata(
            name=path.rsplit("/", 1)[-1],
            path=path,
            size=len(self.files[key]),
            content_hash=self.hashes[key],
            branch=branch,
            repository=repo,
            owner=owner,
        )
        return metadata, self.files[key]

    async def get_file_metadata(self, owner, repo, branch, path, *, token=None):
        self.calls.append(("metadata", path))
        metadata, _ = self._lookup(owner, repo, branch, path)
        return metadata

    async def get_file_with_content(self, owner, repo, branch, path, *, token=None):
        self.calls.append(("content", path))
        metadata, content = self._lookup(owner, repo, branch, path)
        return FileContent(metadata=metadata, content=content)


def make_application(
    name: str,
    team: str | None = None,
    *,
    repository: bool = True,
    **monitoring,
) -> Application:
    return Application(
        name=name,
        team=team,
        repository=RepositoryCoordinates(owner="acme", repository=name) if repository else None,
        monitoring=MonitoringSettings(**monitoring),
    )


@pytest.fixture
def reader():
    return StubRepositoryReader()


@pytest.fixture
def directory():
    return InMemoryApplicationDirectory(
        [
            make_application("checkout", "payments"),
            make_application("inventory", "logistics"),
            make_application("shipping", "logistics"),
            make_application("legacy", "payments", repository=False),
        ]
    )


@pytest.fixture
def store():
    return InMemoryGraphStore()


@pytest.fixture
def orchestrator(directory, store, reader):
    return MonitoringOrchestrator(directory, store, reader)


@pytest.fixture
def make_app():
    return make_application


@pytest.fixture
def transient_error():
    return RepositoryError("GitHub request failed: HTTP 503")

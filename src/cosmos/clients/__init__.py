from cosmos.clients.base import (
    BaseHTTPClient,
    HTTPClientError,
    PermanentHTTPError,
    TransientHTTPError,
)
from cosmos.clients.github import GitHubClient, GitHubRepositoryReader

__all__ = [
    "BaseHTTPClient",
    "GitHubClient",
    "GitHubRepositoryReader",
    "HTTPClientError",
    "PermanentHTTPError",
    "TransientHTTPError",
]

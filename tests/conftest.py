"""Shared pytest fixtures: stores, a fake GitHub client and an API client."""

import os
import tempfile

# configure before any application module reads the environment
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="folioforge-uploads-"))
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from aggregator import GitHubAggregator, GitHubAPIError, GitHubClient
from database import build_engine, build_session_factory, init_db
from storage import MemStorage, SqlStorage


class FakeGitHubClient(GitHubClient):
    """In-memory stand-in for the GitHub API."""

    def __init__(self, profile=None, repos=None, details=None, profile_error=None, repos_error=None):
        self.profile = profile if profile is not None else {"login": "octocat", "name": "The Octocat"}
        self.repos = repos or []
        self.details = details or {}
        self.profile_error = profile_error
        self.repos_error = repos_error
        self.calls = []

    async def fetch_profile(self, username):
        self.calls.append(("profile", username))
        if self.profile_error:
            raise self.profile_error
        return self.profile

    async def fetch_repos(self, username, limit):
        self.calls.append(("repos", username, limit))
        if self.repos_error:
            raise self.repos_error
        return self.repos

    async def fetch_repo_detail(self, owner, repo):
        self.calls.append(("detail", owner, repo))
        detail = self.details.get(repo)
        if isinstance(detail, Exception):
            raise detail
        if detail is None:
            raise GitHubAPIError(404, f"/repos/{owner}/{repo}")
        return detail


def make_portfolio(**overrides):
    data = {
        "fullName": "Ada Lovelace",
        "title": "Engineer",
        "shortBio": "Writes programs for engines.",
        "profilePicture": "https://example.com/ada.png",
        "detailedBio": "First programmer, analytical engine enthusiast.",
        "skills": ["Python", "Mathematics"],
        "projects": [
            {
                "title": "Engine Notes",
                "description": "Notes on the analytical engine",
                "image": "/uploads/engine.png",
                "github": "https://github.com/ada/engine-notes",
            },
        ],
        "socialMedia": [{"name": "GitHub", "url": "https://github.com/ada"}],
    }
    data.update(overrides)
    return data


@pytest.fixture
def portfolio_payload():
    return make_portfolio()


@pytest.fixture
def mem_store():
    return MemStorage()


@pytest.fixture
def sql_store():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield SqlStorage(build_session_factory(engine))
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Both backends, so every contract test runs twice."""
    return request.getfixturevalue("mem_store" if request.param == "memory" else "sql_store")


@pytest.fixture
def fake_github():
    return FakeGitHubClient()


@pytest.fixture
def client(mem_store, fake_github, tmp_path):
    import main

    saved = (main.app.state.storage, main.app.state.aggregator, main.app.state.upload_dir)
    main.app.state.storage = mem_store
    main.app.state.aggregator = GitHubAggregator(fake_github, cache_ttl=60)
    main.app.state.upload_dir = str(tmp_path)
    try:
        yield TestClient(main.app, raise_server_exceptions=False)
    finally:
        main.app.state.storage, main.app.state.aggregator, main.app.state.upload_dir = saved

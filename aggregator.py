"""GitHub aggregation: turn a user's public repositories into portfolio projects."""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from cachetools import TTLCache

import config
from errors import NotFound, UpstreamFailure

logger = logging.getLogger(__name__)

OPENGRAPH_IMAGE_URL = "https://opengraph.githubassets.com/1/{owner}/{repo}"


class GitHubAPIError(Exception):
    """GitHub answered with a non-success status."""

    def __init__(self, status_code: int, url: str = ""):
        super().__init__(f"GitHub API returned {status_code} for {url}")
        self.status_code = status_code
        self.url = url


class GitHubClient(ABC):
    """The three GitHub calls the aggregator needs.  Swap in a fake for tests."""

    @abstractmethod
    async def fetch_profile(self, username: str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_repos(self, username: str, limit: int) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_repo_detail(self, owner: str, repo: str) -> Dict[str, Any]:
        raise NotImplementedError


class HttpGitHubClient(GitHubClient):
    def __init__(
        self,
        base_url: str = config.GITHUB_API_URL,
        token: str = config.GITHUB_TOKEN,
        timeout: float = config.GITHUB_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "folio-forge",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url, headers=headers, timeout=timeout, transport=transport,
        )

    async def _get_json(self, path: str, params: Optional[dict] = None) -> Any:
        resp = await self._client.get(path, params=params)
        if resp.status_code != 200:
            logger.warning("GitHub API error: %s %s", resp.status_code, path)
            raise GitHubAPIError(resp.status_code, path)
        return resp.json()

    async def fetch_profile(self, username: str) -> Dict[str, Any]:
        return await self._get_json(f"/users/{username}")

    async def fetch_repos(self, username: str, limit: int) -> List[Dict[str, Any]]:
        return await self._get_json(
            f"/users/{username}/repos",
            params={"sort": "updated", "direction": "desc", "per_page": limit},
        )

    async def fetch_repo_detail(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self._get_json(f"/repos/{owner}/{repo}")

    async def aclose(self) -> None:
        await self._client.aclose()


# ---------- Reshaping ----------

def project_title(repo_name: str) -> str:
    return re.sub(r"[-_]", " ", repo_name)


def build_description(description: Optional[str], topics: List[str], username: str) -> str:
    text = description or ""
    if topics:
        technologies = "Technologies: " + ", ".join(topics)
        text = f"{text}\n\n{technologies}" if text else technologies
    if not text:
        text = f"A project repository by {username}"
    return text


def is_eligible(repo: Dict[str, Any]) -> bool:
    """Only original public work is shown."""
    return not repo.get("fork") and not repo.get("private")


def repo_to_project(repo: Dict[str, Any], topics: List[str], username: str) -> Dict[str, Any]:
    name = repo["name"]
    return {
        "title": project_title(name),
        "description": build_description(repo.get("description"), topics, username),
        "image": OPENGRAPH_IMAGE_URL.format(owner=username, repo=name),
        "github": repo["html_url"],
    }


# ---------- Aggregation ----------

async def _topics_for(client: GitHubClient, username: str, repo_name: str) -> List[str]:
    try:
        detail = await client.fetch_repo_detail(username, repo_name)
    except Exception as e:
        logger.debug("Detail fetch failed for %s/%s: %s", username, repo_name, e)
        return []
    return list(detail.get("topics") or [])


async def aggregate(client: GitHubClient, username: str, limit: int = config.GITHUB_REPO_LIMIT) -> Dict[str, Any]:
    """Fetch *username*'s profile and recent original repos as Project dicts.

    Raises NotFound when the profile lookup is rejected and UpstreamFailure
    when GitHub cannot be reached or the repo list fails.  A failed per-repo
    detail fetch only costs that repo its topic list.
    """
    try:
        profile = await client.fetch_profile(username)
    except GitHubAPIError:
        raise NotFound("GitHub user not found")
    except httpx.HTTPError as e:
        logger.warning("GitHub unreachable for profile %s: %s", username, e)
        raise UpstreamFailure("Failed to reach GitHub", status_code=502)

    try:
        repos = await client.fetch_repos(username, limit)
    except (GitHubAPIError, httpx.HTTPError) as e:
        logger.warning("GitHub repo list failed for %s: %s", username, e)
        raise UpstreamFailure("Failed to fetch GitHub repositories")

    eligible = [repo for repo in repos[:limit] if is_eligible(repo)]
    topic_lists = await asyncio.gather(
        *(_topics_for(client, username, repo["name"]) for repo in eligible)
    )

    projects = [
        repo_to_project(repo, topics, username)
        for repo, topics in zip(eligible, topic_lists)
    ]
    logger.info("Aggregated %d GitHub projects for %s", len(projects), username)
    return {"githubProfile": profile, "projects": projects}


class GitHubAggregator:
    """``aggregate`` behind a short-lived cache of successful results."""

    def __init__(
        self,
        client: GitHubClient,
        limit: int = config.GITHUB_REPO_LIMIT,
        cache_ttl: int = config.GITHUB_CACHE_TTL,
        cache_size: int = config.GITHUB_CACHE_SIZE,
    ):
        self.client = client
        self.limit = limit
        self._cache: TTLCache = TTLCache(maxsize=cache_size, ttl=cache_ttl)

    async def fetch(self, username: str) -> Dict[str, Any]:
        cache_key = username.lower()
        if cache_key in self._cache:
            logger.info("Returning cached GitHub projects for %s", username)
            return self._cache[cache_key]

        result = await aggregate(self.client, username, self.limit)
        self._cache[cache_key] = result
        return result

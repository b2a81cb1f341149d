"""URL classification and GitHub repository metadata.

``fetch_repo_info`` talks to the public GitHub REST API (no token needed)
and returns ``None`` on any HTTP or transport failure so link creation never
fails because GitHub is unreachable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse

import httpx
from loguru import logger

from stash.config import settings

_DEFAULT_HEADERS = {
    "Accept": "application/vnd.github.v3+json",
    "User-Agent": "Stash/1.0",
}


@dataclass
class RepoRef:
    owner: str
    repo: str


@dataclass
class GitHubRepoInfo:
    owner: str
    repo: str
    description: Optional[str]
    stars: int
    forks: int
    language: Optional[str]
    homepage: Optional[str]
    pushed_at: Optional[str]
    topics: list[str] = field(default_factory=list)

    def as_metadata(self) -> dict:
        return {
            "owner": self.owner,
            "repo": self.repo,
            "stars": self.stars,
            "forks": self.forks,
            "language": self.language,
            "topics": self.topics,
            "homepage": self.homepage,
            "pushed_at": self.pushed_at,
        }


def detect_url_type(url: str) -> str:
    """Return ``"github"`` for github.com URLs, ``"link"`` for everything else."""
    return "github" if "github.com" in url else "link"


def parse_github_url(url: str) -> Optional[RepoRef]:
    """Extract ``owner/repo`` from a GitHub URL, or ``None``."""
    parsed = urlparse(url)
    if "github.com" not in parsed.netloc:
        return None
    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        return None
    return RepoRef(owner=parts[0], repo=parts[1])


def fetch_repo_info(owner: str, repo: str) -> Optional[GitHubRepoInfo]:
    """Fetch public repository details from the GitHub API."""
    url = f"{settings.github_api_base}/repos/{owner}/{repo}"
    try:
        with httpx.Client(
            headers=_DEFAULT_HEADERS,
            timeout=settings.request_timeout,
            follow_redirects=True,
        ) as client:
            response = client.get(url)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as exc:
        logger.warning(f"GitHub API request for {owner}/{repo} failed: {exc}")
        return None

    return GitHubRepoInfo(
        owner=data["owner"]["login"],
        repo=data["name"],
        description=data.get("description"),
        stars=data.get("stargazers_count", 0),
        forks=data.get("forks_count", 0),
        language=data.get("language"),
        homepage=data.get("homepage"),
        pushed_at=data.get("pushed_at"),
        topics=data.get("topics") or [],
    )

"""
Open a pull request adding a manually submitted event to the events repository.

The submission form backend calls add_event_to_file with a GitHubClient built
from GitHubConfig.from_env(); the aggregation cycle does not use this module.
"""
import base64
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
import yaml

from model.event import Event
from model.serialization import event_to_dict

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"
SCHEMA_HEADER = "# yaml-language-server: $schema=../../events_schema.json"
MAX_BRANCH_ATTEMPTS = 10
MAX_FILENAME_LENGTH = 30


class PublishError(Exception):
    """Publishing an event failed."""


class GitHubApiError(PublishError):
    """The GitHub API returned an error response."""

    def __init__(self, status: int, message: str):
        super().__init__(f"GitHub API error {status}: {message}")
        self.status = status


class BranchCreationError(PublishError):
    """No branch could be created within the allowed number of attempts."""


@dataclass(frozen=True)
class GitHubConfig:
    owner: str
    repository: str
    token: str
    main_branch: str = "main"

    @classmethod
    def from_env(cls) -> "GitHubConfig":
        return cls(
            owner=os.environ['GITHUB_OWNER'],
            repository=os.environ['GITHUB_REPOSITORY'],
            token=os.environ['GITHUB_TOKEN'],
            main_branch=os.environ.get('GITHUB_MAIN_BRANCH', 'main'),
        )


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of submitting an event; url is the pull request on success."""
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None


def to_safe_filename(s: str) -> str:
    """
    Convert a string to a filename fragment.

    Lower-cases, replaces spaces with underscores, drops anything other than
    ASCII letters, digits, underscores and hyphens, and truncates to 30
    characters.
    """
    filename = s.lower().replace(" ", "_")
    filename = re.sub(r"[^a-z0-9_-]", "", filename)
    return filename[:MAX_FILENAME_LENGTH]


def branch_base_name(event: Event) -> str:
    return "add-{}-{}-{}".format(
        to_safe_filename(event.country),
        to_safe_filename(event.city),
        to_safe_filename(event.name),
    )


def format_event(event: Event) -> str:
    """Serialize an event as a YAML events document."""
    return yaml.safe_dump(
        {"events": [event_to_dict(event)]}, sort_keys=False, allow_unicode=True
    )


class GitHubClient:
    """Minimal GitHub REST client for one repository."""

    def __init__(self, config: GitHubConfig, timeout: int = 30):
        self.config = config
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {config.token}",
            "Accept": "application/vnd.github+json",
        })

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{API_URL}/repos/{self.config.owner}/{self.config.repository}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise PublishError(f"Request to {url} failed: {e}") from e
        if response.status_code >= 400:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise GitHubApiError(response.status_code, message)
        return response.json() if response.content else {}

    def sha_for_branch(self, branch_name: str) -> str:
        """Return the SHA of the current head of the given branch."""
        ref = self._request("GET", f"/git/ref/heads/{branch_name}")
        target = ref.get("object", {})
        if target.get("type") != "commit":
            raise PublishError(f"Ref {branch_name} was not a commit")
        return target["sha"]

    def create_ref(self, branch_name: str, sha: str) -> None:
        self._request("POST", "/git/refs", json={"ref": f"refs/heads/{branch_name}", "sha": sha})

    def get_file(self, path: str, branch: str) -> Optional[Dict[str, str]]:
        """Return the decoded content and blob SHA of a file, or None if it doesn't exist."""
        try:
            contents = self._request("GET", f"/contents/{path}", params={"ref": branch})
        except GitHubApiError as e:
            if e.status == 404:
                return None
            raise
        content = base64.b64decode(contents["content"]).decode("utf-8")
        return {"content": content, "sha": contents["sha"]}

    def put_file(
        self, path: str, message: str, content: str, branch: str, sha: Optional[str] = None
    ) -> None:
        body = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha is not None:
            body["sha"] = sha
        self._request("PUT", f"/contents/{path}", json=body)

    def create_pull(self, title: str, head: str, body: str) -> str:
        pull = self._request(
            "POST",
            "/pulls",
            json={"title": title, "head": head, "base": self.config.main_branch, "body": body},
        )
        url = pull.get("html_url")
        if not url:
            raise PublishError("PR missing html_url")
        return url


def create_branch(
    client: GitHubClient,
    event: Event,
    head_sha: str,
    max_attempts: int = MAX_BRANCH_ATTEMPTS,
) -> str:
    """
    Create a branch for the PR adding the given event.

    The branch is named after the event; if it already exists, numeric
    suffixes are tried in turn.

    Args:
        client: GitHub client for the events repository
        event: Event being added
        head_sha: Commit to branch from
        max_attempts: Maximum number of names to try

    Returns:
        Name of the created branch

    Raises:
        BranchCreationError: If every attempted name already exists
        PublishError: On any other API failure
    """
    base_name = branch_base_name(event)
    last_error: Optional[Exception] = None

    for attempt in range(max_attempts):
        branch_name = base_name if attempt == 0 else f"{base_name}{attempt}"
        logger.info(f"Creating branch \"{branch_name}\"")
        try:
            client.create_ref(branch_name, head_sha)
            return branch_name
        except GitHubApiError as e:
            if e.status != 422:
                raise
            # Most likely the branch already exists.
            last_error = e

    logger.warning(
        f"Failed to create PR branch {base_name} after {max_attempts} attempts: {last_error}"
    )
    raise BranchCreationError(
        f"Failed to create branch {base_name} after {max_attempts} attempts: {last_error}"
    ) from last_error


def add_event_to_file(
    event: Event,
    filename: str,
    client: GitHubClient,
    max_attempts: int = MAX_BRANCH_ATTEMPTS,
) -> SubmissionResult:
    """
    Open a PR adding the given event to the given events file.

    The event is appended to the file if it exists, otherwise the file is
    created with a schema reference header.

    Args:
        event: Event to add
        filename: Path of the events file within the repository
        client: GitHub client for the events repository
        max_attempts: Maximum number of branch names to try

    Returns:
        SubmissionResult with the PR URL, or the error that stopped it
    """
    try:
        head_sha = client.sha_for_branch(client.config.main_branch)
        branch = create_branch(client, event, head_sha, max_attempts=max_attempts)

        commit_message = f"Add {event.name} in {event.city}"
        document = format_event(event)
        existing = client.get_file(filename, branch)
        if existing is not None:
            logger.info(f"Got existing file {filename}, sha {existing['sha']}")
            entry = document[len("events:\n"):]
            content = f"{existing['content'].rstrip()}\n{entry}"
            client.put_file(filename, commit_message, content, branch, sha=existing['sha'])
        else:
            logger.info(f"Creating new file {filename}")
            content = f"{SCHEMA_HEADER}\n{document}"
            client.put_file(filename, commit_message, content, branch)

        url = client.create_pull(commit_message, branch, "Added from web form.")
        logger.info(f"Made PR {url}")
        return SubmissionResult(success=True, url=url)

    except PublishError as e:
        logger.error(f"Failed to submit event '{event.name}': {e}")
        return SubmissionResult(success=False, error=str(e))

"""Unit tests for publishing submitted events as pull requests."""
import base64
import json

import pytest
import responses
import yaml
from responses import matchers

from publish.github import (
    API_URL,
    SCHEMA_HEADER,
    BranchCreationError,
    GitHubApiError,
    GitHubClient,
    GitHubConfig,
    add_event_to_file,
    create_branch,
    format_event,
    to_safe_filename,
)

REPO_URL = f"{API_URL}/repos/folkdance/events"
FILENAME = "events/netherlands.yaml"
PR_URL = "https://github.com/folkdance/events/pull/7"


@pytest.fixture
def client():
    """Create a client for a test repository."""
    return GitHubClient(GitHubConfig(owner="folkdance", repository="events", token="tok"))


def add_head():
    responses.add(
        responses.GET,
        f"{REPO_URL}/git/ref/heads/main",
        json={"ref": "refs/heads/main", "object": {"type": "commit", "sha": "abc123"}},
        status=200,
    )


def add_pull():
    responses.add(responses.POST, f"{REPO_URL}/pulls", json={"html_url": PR_URL}, status=201)


def request_json(call):
    return json.loads(call.request.body)


class TestHelpers:
    """Test cases for naming and formatting helpers."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Southend-on-Sea", "southend-on-sea"),
            ("weird'\"@\\/ characters", "weird_characters"),
            ("Bal Folk Festival", "bal_folk_festival"),
            ("A" * 40, "a" * 30),
        ],
    )
    def test_to_safe_filename(self, value, expected):
        """Test filename sanitising and truncation."""
        assert to_safe_filename(value) == expected

    def test_format_event(self, event_factory):
        """Test that the YAML document has a single-entry events list."""
        document = yaml.safe_load(format_event(event_factory(price="€5")))

        assert document["events"][0]["name"] == "Balfolk Bal"
        assert document["events"][0]["price"] == "€5"
        assert document["events"][0]["start_date"] == "2024-06-01"


class TestGitHubConfig:
    """Test cases for GitHubConfig."""

    def test_from_env(self, monkeypatch):
        """Test reading configuration from the environment."""
        monkeypatch.setenv("GITHUB_OWNER", "folkdance")
        monkeypatch.setenv("GITHUB_REPOSITORY", "events")
        monkeypatch.setenv("GITHUB_TOKEN", "tok")
        monkeypatch.delenv("GITHUB_MAIN_BRANCH", raising=False)

        config = GitHubConfig.from_env()

        assert config == GitHubConfig("folkdance", "events", "tok", "main")


class TestCreateBranch:
    """Test cases for create_branch."""

    @responses.activate
    def test_first_name_free(self, client, event_factory):
        """Test that the base name is used when available."""
        responses.add(responses.POST, f"{REPO_URL}/git/refs", json={}, status=201)

        branch = create_branch(client, event_factory(), "abc123")

        assert branch == "add-netherlands-utrecht-balfolk_bal"
        assert request_json(responses.calls[0]) == {
            "ref": "refs/heads/add-netherlands-utrecht-balfolk_bal",
            "sha": "abc123",
        }

    @responses.activate
    def test_numeric_suffix_after_conflict(self, client, event_factory):
        """Test that an existing branch leads to a suffixed name."""
        exists = {"message": "Reference already exists"}
        responses.add(responses.POST, f"{REPO_URL}/git/refs", json=exists, status=422)
        responses.add(responses.POST, f"{REPO_URL}/git/refs", json=exists, status=422)
        responses.add(responses.POST, f"{REPO_URL}/git/refs", json={}, status=201)

        branch = create_branch(client, event_factory(), "abc123")

        assert branch == "add-netherlands-utrecht-balfolk_bal2"
        assert [request_json(call)["ref"] for call in responses.calls] == [
            "refs/heads/add-netherlands-utrecht-balfolk_bal",
            "refs/heads/add-netherlands-utrecht-balfolk_bal1",
            "refs/heads/add-netherlands-utrecht-balfolk_bal2",
        ]

    @responses.activate
    def test_gives_up_after_max_attempts(self, client, event_factory):
        """Test that every attempt failing stops after exactly max_attempts."""
        responses.add(
            responses.POST,
            f"{REPO_URL}/git/refs",
            json={"message": "Reference already exists"},
            status=422,
        )

        with pytest.raises(BranchCreationError) as excinfo:
            create_branch(client, event_factory(), "abc123", max_attempts=4)

        assert len(responses.calls) == 4
        assert isinstance(excinfo.value.__cause__, GitHubApiError)
        assert excinfo.value.__cause__.status == 422

    @responses.activate
    def test_other_errors_abort(self, client, event_factory):
        """Test that errors other than conflicts are not retried."""
        responses.add(
            responses.POST,
            f"{REPO_URL}/git/refs",
            json={"message": "Resource not accessible"},
            status=403,
        )

        with pytest.raises(GitHubApiError) as excinfo:
            create_branch(client, event_factory(), "abc123")

        assert excinfo.value.status == 403
        assert len(responses.calls) == 1


class TestAddEventToFile:
    """Test cases for add_event_to_file."""

    @responses.activate
    def test_creates_new_file(self, client, event_factory):
        """Test that a missing file is created with the schema header."""
        add_head()
        responses.add(responses.POST, f"{REPO_URL}/git/refs", json={}, status=201)
        responses.add(
            responses.GET,
            f"{REPO_URL}/contents/{FILENAME}",
            match=[matchers.query_param_matcher({"ref": "add-netherlands-utrecht-balfolk_bal"})],
            json={"message": "Not Found"},
            status=404,
        )
        responses.add(responses.PUT, f"{REPO_URL}/contents/{FILENAME}", json={}, status=201)
        add_pull()

        result = add_event_to_file(event_factory(), FILENAME, client)

        assert result.success
        assert result.url == PR_URL
        put = request_json(responses.calls[3])
        assert "sha" not in put
        assert put["branch"] == "add-netherlands-utrecht-balfolk_bal"
        assert put["message"] == "Add Balfolk Bal in Utrecht"
        content = base64.b64decode(put["content"]).decode("utf-8")
        assert content.startswith(SCHEMA_HEADER + "\nevents:\n")
        assert yaml.safe_load(content)["events"][0]["name"] == "Balfolk Bal"
        pull = request_json(responses.calls[4])
        assert pull["base"] == "main"
        assert pull["body"] == "Added from web form."

    @responses.activate
    def test_appends_to_existing_file(self, client, event_factory):
        """Test that the event is appended to an existing file."""
        existing = f"{SCHEMA_HEADER}\nevents:\n- name: Old Bal\n  city: Leiden\n"
        add_head()
        responses.add(responses.POST, f"{REPO_URL}/git/refs", json={}, status=201)
        responses.add(
            responses.GET,
            f"{REPO_URL}/contents/{FILENAME}",
            json={
                "content": base64.b64encode(existing.encode("utf-8")).decode("ascii"),
                "sha": "blob1",
            },
            status=200,
        )
        responses.add(responses.PUT, f"{REPO_URL}/contents/{FILENAME}", json={}, status=200)
        add_pull()

        result = add_event_to_file(event_factory(), FILENAME, client)

        assert result.success
        put = request_json(responses.calls[3])
        assert put["sha"] == "blob1"
        content = base64.b64decode(put["content"]).decode("utf-8")
        assert content.startswith(existing)
        assert [e["name"] for e in yaml.safe_load(content)["events"]] == ["Old Bal", "Balfolk Bal"]

    @responses.activate
    def test_api_failure_reported(self, client, event_factory):
        """Test that API errors become a failed submission."""
        responses.add(
            responses.GET,
            f"{REPO_URL}/git/ref/heads/main",
            json={"message": "Server Error"},
            status=500,
        )

        result = add_event_to_file(event_factory(), FILENAME, client)

        assert not result.success
        assert result.url is None
        assert "500" in result.error

    @responses.activate
    def test_branch_exhaustion_reported(self, client, event_factory):
        """Test that running out of branch names fails without opening a PR."""
        add_head()
        responses.add(
            responses.POST,
            f"{REPO_URL}/git/refs",
            json={"message": "Reference already exists"},
            status=422,
        )

        result = add_event_to_file(event_factory(), FILENAME, client, max_attempts=2)

        assert not result.success
        assert "after 2 attempts" in result.error
        assert len(responses.calls) == 3

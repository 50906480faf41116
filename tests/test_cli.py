"""Tests for the click CLI against a fake GitHub API."""

import base64
import json

import httpx
import pytest
from click.testing import CliRunner

from repokeeper import cli, config
from repokeeper.github.client import GitHubClient

PROTECTION = "/repos/octocat/widgets/branches/main/protection"


class FakeGitHub:
    """Just enough of the GitHub REST API for the CLI commands."""

    def __init__(self, to_get_response):
        self.to_get_response = to_get_response
        self.protection: dict | None = None
        self.signatures = False
        self.repos: list[dict] = []
        self.license_shas: dict[str, str] = {}
        self.failing_puts: set[str] = set()
        self.writes: list[tuple[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path

        if path == "/user":
            return httpx.Response(200, json={"login": "octocat"})
        if path == "/user/repos":
            return httpx.Response(200, json=self.repos)
        if path == "/licenses/gpl-3.0":
            return httpx.Response(200, json={"key": "gpl-3.0", "body": "GNU GENERAL PUBLIC LICENSE"})
        if path == "/repos/octocat/widgets":
            return httpx.Response(200, json={"full_name": "octocat/widgets", "default_branch": "main"})

        if path.startswith(PROTECTION):
            return self._protection(request, method, path)

        if path.endswith("/contents/LICENSE"):
            full_name = path[len("/repos/"): -len("/contents/LICENSE")]
            if method == "GET":
                if full_name in self.license_shas:
                    return httpx.Response(200, json={"sha": self.license_shas[full_name]})
                return httpx.Response(404, json={"message": "Not Found"})
            self.writes.append((full_name, base64.b64decode(json.loads(request.content)["content"]).decode()))
            if full_name in self.failing_puts:
                return httpx.Response(409, json={"message": "Conflict"})
            return httpx.Response(201, json={})

        return httpx.Response(404, json={"message": "Not Found"})

    def _protection(self, request, method, path):
        self.writes.append((method, path))
        if path == PROTECTION:
            if method == "PUT":
                self.protection = self.to_get_response(json.loads(request.content), self.signatures)
                return httpx.Response(200, json=self.protection)
            if self.protection is None:
                return httpx.Response(404, json={"message": "Branch not protected"})
            return httpx.Response(200, json=self.protection)

        if method == "POST":
            self.signatures = True
        elif method == "DELETE":
            self.signatures = False
        elif self.protection is None:
            return httpx.Response(404, json={"message": "Branch not protected"})
        return httpx.Response(200, json={"enabled": self.signatures})

    @property
    def applied(self) -> bool:
        return ("PUT", PROTECTION) in self.writes


def _api_repo(name, license_key=None, **kwargs) -> dict:
    data = {
        "name": name,
        "full_name": f"octocat/{name}",
        "private": False,
        "stargazers_count": 0,
        "updated_at": "2026-06-01T00:00:00Z",
        "license": {"key": license_key} if license_key else None,
        "size": 42,
        "archived": False,
        "fork": False,
    }
    data.update(kwargs)
    return data


@pytest.fixture
def github(monkeypatch, tmp_path, to_get_response):
    server = FakeGitHub(to_get_response)
    monkeypatch.setenv("GITHUB_TOKEN", "t0ken")
    monkeypatch.setattr(config, "DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")
    monkeypatch.setattr(cli, "_client", lambda settings: GitHubClient("t0ken", transport=httpx.MockTransport(server)))
    return server


def _run(*args, input=None):
    return CliRunner().invoke(cli.main, list(args), input=input)


def test_version():
    result = _run("--version")
    assert result.exit_code == 0
    assert "0.3.0" in result.output


# --- protect ---


def test_protect_diff_changes_nothing(github):
    result = _run("protect", "diff", "octocat/widgets")
    assert result.exit_code == 0
    assert "6 of 17 rule(s) differ" in result.output
    assert not github.applied


def test_protect_apply_overwrite(github):
    result = _run("protect", "apply", "octocat/widgets", "--strategy", "overwrite")
    assert result.exit_code == 0, result.output
    assert "applied overwrite (6 rule(s) changed)" in result.output
    assert github.protection["required_pull_request_reviews"]["required_approving_review_count"] == 1

    again = _run("protect", "diff", "octocat/widgets")
    assert "No changes needed." in again.output


def test_protect_apply_bare_name_uses_login(github):
    result = _run("protect", "apply", "widgets", "-s", "merge")
    assert result.exit_code == 0, result.output
    assert "octocat/widgets@main" in result.output


def test_protect_apply_prompts_for_strategy(github):
    result = _run("protect", "apply", "octocat/widgets", input="m\n")
    assert result.exit_code == 0, result.output
    assert "applied merge" in result.output
    assert github.applied


def test_protect_apply_quit_aborts(github):
    result = _run("protect", "apply", "octocat/widgets", input="q\n")
    assert result.exit_code == 1
    assert "Aborted." in result.output
    assert not github.applied


def test_protect_apply_when_already_protected(github):
    _run("protect", "apply", "octocat/widgets", "-s", "overwrite")
    github.writes.clear()

    result = _run("protect", "apply", "octocat/widgets")
    assert result.exit_code == 0
    assert "No changes needed." in result.output
    assert not github.applied


def test_protect_unknown_repo(github):
    result = _run("protect", "diff", "octocat/missing")
    assert result.exit_code == 1
    assert "Could not find repo" in result.output


def test_protect_diff_lists_unmanaged_settings(github):
    _run("protect", "apply", "octocat/widgets", "-s", "overwrite")
    github.protection["restrictions"] = {"users": [{"login": "octocat"}], "teams": [], "apps": []}

    result = _run("protect", "diff", "octocat/widgets")
    assert result.exit_code == 0
    assert "restrictions is set on GitHub and would be removed by apply" in result.output


def test_protect_without_token(monkeypatch, tmp_path):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.setattr(config, "DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")

    result = _run("protect", "diff", "octocat/widgets")
    assert result.exit_code == 1
    assert "No GitHub token found" in result.output


# --- repos ---


def test_repos_list(github):
    github.repos = [
        _api_repo("widgets", license_key="mit", stargazers_count=3),
        _api_repo("gadgets", private=True),
    ]
    result = _run("repos", "list", "--sort", "stars")
    assert result.exit_code == 0, result.output
    assert "Authenticated as: octocat" in result.output
    assert "Repositories (2)" in result.output
    assert result.output.index("widgets") < result.output.index("gadgets")


def test_repos_list_empty(github):
    result = _run("repos", "list")
    assert result.exit_code == 0
    assert "No repositories found." in result.output


def test_repos_list_rejects_bad_limit(github):
    result = _run("repos", "list", "--limit", "0")
    assert result.exit_code == 2


# --- license ---


def test_license_check(github):
    github.repos = [
        _api_repo("alpha", license_key="gpl-3.0"),
        _api_repo("beta", license_key="mit"),
        _api_repo("gamma"),
    ]
    result = _run("license", "check")
    assert result.exit_code == 0, result.output
    assert "Repos with non-gpl-3.0 licenses" in result.output
    assert "Repos with no license" in result.output


def test_license_check_all_compliant(github):
    github.repos = [_api_repo("alpha", license_key="gpl-3.0")]
    result = _run("license", "check")
    assert "Nothing to do." in result.output


def test_license_add_yes(github):
    github.repos = [
        _api_repo("alpha", license_key="gpl-3.0"),
        _api_repo("beta"),
        _api_repo("empty", size=0),
        _api_repo("old", archived=True),
    ]
    result = _run("license", "add", "--yes")
    assert result.exit_code == 0, result.output
    assert github.writes == [("octocat/beta", "GNU GENERAL PUBLIC LICENSE")]
    assert "done" in result.output


def test_license_add_confirms_replacing_other_license(github):
    github.repos = [_api_repo("beta", license_key="mit"), _api_repo("gamma")]
    github.license_shas["octocat/beta"] = "abc"

    result = _run("license", "add", input="a\nn\n")
    assert result.exit_code == 0, result.output
    assert "Skipping beta." in result.output
    assert [name for name, _ in github.writes] == ["octocat/gamma"]


def test_license_add_quit(github):
    github.repos = [_api_repo("beta")]
    result = _run("license", "add", input="q\n")
    assert result.exit_code == 1
    assert github.writes == []


def test_license_add_failure_sets_exit_code(github):
    github.repos = [_api_repo("beta"), _api_repo("gamma")]
    github.failing_puts.add("octocat/beta")

    result = _run("license", "add", "-y")
    assert result.exit_code == 1
    assert "FAILED" in result.output
    assert [name for name, _ in github.writes] == ["octocat/beta", "octocat/gamma"]

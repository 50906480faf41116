"""Tests for payload building and applying protection."""

import pytest

from repokeeper.exceptions import ApplyRejected, GitHubAPIError, PartialApplyWarning
from repokeeper.protection.applier import apply_policy, build_payload
from repokeeper.protection.normalizer import fetch_current_state
from repokeeper.protection.state import PolicyState


def test_baseline_payload_matches_github_shape():
    payload = build_payload(PolicyState.desired())
    assert payload == {
        "required_status_checks": None,
        "required_pull_request_reviews": {
            "required_approving_review_count": 1,
            "dismiss_stale_reviews": True,
            "require_code_owner_reviews": False,
            "require_last_push_approval": False,
        },
        "restrictions": None,
        "enforce_admins": False,
        "required_linear_history": False,
        "required_conversation_resolution": False,
        "block_creations": False,
        "lock_branch": False,
        "allow_force_pushes": False,
        "allow_deletions": False,
        "allow_fork_syncing": False,
    }


def test_signatures_are_not_in_the_main_payload():
    payload = build_payload(PolicyState.desired().replace(required_signatures=True))
    assert "required_signatures" not in payload


def test_disabled_status_checks_are_null_not_empty():
    state = PolicyState.desired().replace(strict_status_checks=True, status_check_contexts=("ci",))
    assert build_payload(state)["required_status_checks"] is None


def test_enabled_status_checks_are_serialized():
    state = PolicyState.desired().replace(
        require_status_checks=True, strict_status_checks=True, status_check_contexts=("ci", "lint")
    )
    assert build_payload(state)["required_status_checks"] == {"strict": True, "contexts": ["ci", "lint"]}


def test_disabled_pull_requests_are_null():
    state = PolicyState.least_protective()
    assert build_payload(state)["required_pull_request_reviews"] is None


def test_apply_writes_main_payload_then_signatures(fake_api, repo):
    target = PolicyState.desired().replace(required_signatures=True)
    result = apply_policy(fake_api, repo, target)

    assert fake_api.calls == ["apply_protection", "set_signature_requirement:True"]
    assert result.applied == target
    assert result.complete


def test_apply_is_idempotent(fake_api, repo):
    target = PolicyState.desired().replace(
        require_status_checks=True,
        strict_status_checks=True,
        status_check_contexts=("ci",),
        required_signatures=True,
        enforce_admins=True,
    )
    apply_policy(fake_api, repo, target)
    assert fetch_current_state(fake_api, repo) == target

    apply_policy(fake_api, repo, target)
    assert fake_api.payloads[0] == fake_api.payloads[1]
    assert fetch_current_state(fake_api, repo) == target


def test_apply_rejected(fake_api, repo):
    fake_api.apply_error = GitHubAPIError(403, "Upgrade to GitHub Pro or make this repository public")
    with pytest.raises(ApplyRejected) as excinfo:
        apply_policy(fake_api, repo, PolicyState.desired())
    assert excinfo.value.operation == "update protection"
    assert "set_signature_requirement:False" not in fake_api.calls


def test_signature_failure_is_a_warning(fake_api, repo, caplog):
    fake_api.signature_error = GitHubAPIError(500, "boom")
    with caplog.at_level("WARNING", logger="repokeeper"):
        result = apply_policy(fake_api, repo, PolicyState.desired())

    assert not result.complete
    assert len(result.warnings) == 1
    assert isinstance(result.warnings[0], PartialApplyWarning)
    assert result.warnings[0].operation == "disable required signatures"
    assert result.applied == PolicyState.desired()
    assert "main protection rules were applied" in caplog.text

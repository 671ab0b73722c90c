"""
Unit tests for build parameter construction.
"""

import pytest

from prtrigger.models.cause import BuildCause
from prtrigger.models.job import ParameterDefinition
from prtrigger.services.parameter_builder import (
    COMPUTED_PARAMETERS,
    build_parameters,
    commit_pin,
    merge_ref,
)

REPO_URL = "https://github.com/org/demo"


def _as_dict(values):
    return {value.name: value.value for value in values}


def test_demo_scenario(job, cause):
    """End-to-end parameters of the demo pull request."""
    values, pin = build_parameters(job, cause, REPO_URL)
    params = _as_dict(values)
    
    assert pin == "abc123"
    assert params["sha1"] == "abc123"
    assert params["ghprbActualCommit"] == "abc123"
    assert params["ghprbPullId"] == "7"
    assert params["ghprbTargetBranch"] == "master"
    assert params["ghprbSourceBranch"] == "feature"
    assert params["ghprbPullAuthorEmail"] == ""
    assert params["ghprbPullLink"] == "https://github.com/org/demo/pull/7"


def test_parameter_order(job, cause):
    values, _ = build_parameters(job, cause, REPO_URL)
    
    assert [value.name for value in values] == [
        "TARGET_ENV",
        "sha1",
        "ghprbActualCommit",
        "ghprbPullId",
        "ghprbTargetBranch",
        "ghprbSourceBranch",
        "ghprbPullAuthorEmail",
        "ghprbPullLink",
    ]


@pytest.mark.parametrize("merged", [True, False])
def test_exactly_one_sha1_entry(job, cause, merged):
    """The job's own sha1 default is dropped in favour of the commit pin."""
    values, _ = build_parameters(job, cause.model_copy(update={"merged": merged}), REPO_URL)
    
    assert [value.name for value in values].count("sha1") == 1


@pytest.mark.parametrize("name", COMPUTED_PARAMETERS)
def test_declared_computed_parameter_is_replaced(job, cause, name):
    """A job default named like a computed parameter never shadows it."""
    job.parameter_definitions.append(ParameterDefinition(name=name, default_value="stale"))
    
    values, _ = build_parameters(job, cause, REPO_URL)
    names = [value.name for value in values]
    
    assert names.count(name) == 1
    assert _as_dict(values)[name] != "stale"
    assert names[0] == "TARGET_ENV"


def test_merged_cause_pins_merge_ref(job):
    cause = BuildCause(pull_id=42, commit="deadbeef", merged=True)
    
    values, pin = build_parameters(job, cause, REPO_URL)
    params = _as_dict(values)
    
    assert pin == "origin/pr/42/merge"
    assert params["sha1"] == "origin/pr/42/merge"
    assert params["ghprbActualCommit"] == "deadbeef"


def test_merge_ref_format():
    assert merge_ref(42) == "origin/pr/42/merge"
    assert commit_pin(BuildCause(pull_id=3, commit="c0ffee")) == "c0ffee"


def test_cause_url_wins_over_repository_url(job, cause):
    cause = cause.model_copy(update={"url": "https://github.example.com/org/demo/pull/7"})
    
    values, _ = build_parameters(job, cause, REPO_URL)
    
    assert _as_dict(values)["ghprbPullLink"] == "https://github.example.com/org/demo/pull/7"


def test_author_email_is_passed_through(job, cause):
    cause = cause.model_copy(update={"author_email": "dev@example.com"})
    
    values, _ = build_parameters(job, cause, REPO_URL)
    
    assert _as_dict(values)["ghprbPullAuthorEmail"] == "dev@example.com"


def test_missing_branches_become_empty_strings(job):
    cause = BuildCause(pull_id=1, commit="abc", source_branch=None, target_branch=None)
    
    params = _as_dict(build_parameters(job, cause, REPO_URL)[0])
    
    assert params["ghprbSourceBranch"] == ""
    assert params["ghprbTargetBranch"] == ""
    assert "null" not in params.values()
    assert "None" not in params.values()


def test_job_without_parameter_definitions(job, cause):
    job.parameter_definitions = []
    
    values, _ = build_parameters(job, cause, REPO_URL)
    
    assert values[0].name == "sha1"

"""
Build parameter construction.

Turns a build cause into the ordered parameter set submitted with a build,
together with the commit pin the checkout is fixed to.
"""

from typing import List, Tuple

from prtrigger.models.cause import BuildCause
from prtrigger.models.job import Job, ParameterValue


SHA1 = "sha1"

# Parameters every pull request build carries, in submission order after the
# job's own defaults
COMPUTED_PARAMETERS = (
    SHA1,
    "ghprbActualCommit",
    "ghprbPullId",
    "ghprbTargetBranch",
    "ghprbSourceBranch",
    "ghprbPullAuthorEmail",
    "ghprbPullLink",
)


def merge_ref(pull_id: int) -> str:
    """Synthetic ref of the hypothetical merge of a pull request.

    The source-control fetch step must map this ref to the pull request's
    merge head.
    """
    return f"origin/pr/{pull_id}/merge"


def commit_pin(cause: BuildCause) -> str:
    """Exact reference a build for this cause checks out."""
    return merge_ref(cause.pull_id) if cause.merged else cause.commit


def default_parameters(job: Job) -> List[ParameterValue]:
    """Default values of the job's declared parameters.
    
    Declared parameters sharing a name with a computed one are dropped; the
    computed value replaces them.
    """
    return [
        definition.default_parameter_value()
        for definition in job.parameter_definitions
        if definition.name not in COMPUTED_PARAMETERS
    ]


def pull_request_link(cause: BuildCause, repo_url: str) -> str:
    if cause.url:
        return cause.url
    return f"{repo_url}/pull/{cause.pull_id}"


def pull_id_parameter(pull_id: int) -> ParameterValue:
    """The parameter that identifies builds of one pull request."""
    return ParameterValue(name="ghprbPullId", value=str(pull_id))


def build_parameters(
    job: Job,
    cause: BuildCause,
    repo_url: str
) -> Tuple[List[ParameterValue], str]:
    """
    Build the parameter set for one pull request build.
    
    Args:
        job: Job the build is queued for
        cause: Cause of the build
        repo_url: Canonical repository URL, used when the cause has no URL
    
    Returns:
        Tuple of (parameters, commit pin)
    """
    pin = commit_pin(cause)
    
    values = default_parameters(job)
    values.extend([
        ParameterValue(name=SHA1, value=pin),
        ParameterValue(name="ghprbActualCommit", value=cause.commit),
        pull_id_parameter(cause.pull_id),
        ParameterValue(name="ghprbTargetBranch", value=cause.target_branch),
        ParameterValue(name="ghprbSourceBranch", value=cause.source_branch),
        # Not every GitHub user exposes an email address
        ParameterValue(name="ghprbPullAuthorEmail", value=cause.author_email or ""),
        ParameterValue(name="ghprbPullLink", value=pull_request_link(cause, repo_url)),
    ])
    
    return values, pin

"""Tracked pull request state data models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .types import OptionalStr


class BuildResult(str, Enum):
    """Result of the last build dispatched for a pull request."""

    PENDING = "pending"
    SUCCESS = "success"
    UNSTABLE = "unstable"
    FAILURE = "failure"
    ABORTED = "aborted"


class PullRequestState(BaseModel):
    """What the trigger remembers about one pull request of one job."""

    last_commit_sha: OptionalStr = ""
    last_result: BuildResult = BuildResult.PENDING
    source_branch: OptionalStr = ""
    target_branch: OptionalStr = ""
    last_build_number: Optional[int] = None

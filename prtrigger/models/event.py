"""Pull request event data models."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .job import BuildData, ParameterValue
from .pull_request import BuildResult
from .types import OptionalStr


class EventKind(str, Enum):
    """Why the event source thinks a pull request may need a build."""

    NEW_COMMIT = "new_commit"
    TRIGGER_PHRASE = "trigger_phrase"
    RETEST = "retest"
    ADD_TO_WHITELIST = "add_to_whitelist"


class PullRequestEvent(BaseModel):
    """An already-parsed pull request event from the event source."""

    kind: EventKind
    pull_id: int
    head_sha: str
    # Build the synthetic merge ref instead of the head commit
    merge: bool = False
    author_login: OptionalStr = ""
    # Who commented; equals the author for new commits
    actor_login: OptionalStr = ""
    source_branch: OptionalStr = ""
    target_branch: OptionalStr = ""
    author_email: Optional[str] = None
    url: Optional[str] = None
    title: OptionalStr = ""
    repo_url: Optional[str] = None


class BuildCompletion(BaseModel):
    """Report of a finished build, sent back by the scheduler side."""

    pull_id: int
    number: int
    result: BuildResult
    parameters: List[ParameterValue] = Field(default_factory=list)
    build_data: List[BuildData] = Field(default_factory=list)

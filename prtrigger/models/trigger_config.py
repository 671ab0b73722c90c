"""Trigger configuration data models."""

from fnmatch import fnmatchcase
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .types import OptionalBool, OptionalStr


class BranchPattern(BaseModel):
    """One entry of a target-branch allow-list.

    Matches a branch exactly, or as a shell-style wildcard (``*``, ``?``,
    ``[...]``). Matching is case-sensitive.
    """

    branch: OptionalStr = ""

    def matches(self, target_branch: str) -> bool:
        pattern = self.branch.strip()
        if not pattern:
            return False
        return pattern == target_branch or fnmatchcase(target_branch, pattern)


class TriggerConfig(BaseModel):
    """Per-job trigger configuration.

    Replaced wholesale when the job is reconfigured. The whitelist is the
    only field mutated at runtime (see ``AccessPolicy.add_to_whitelist``).
    """

    admin_list: OptionalStr = ""
    whitelist: OptionalStr = ""
    orgs_list: OptionalStr = ""
    cron: OptionalStr = ""
    trigger_phrase: OptionalStr = ""
    only_trigger_phrase: OptionalBool = False
    use_webhooks: OptionalBool = False
    permit_all: OptionalBool = False
    # None defers to the process-wide default
    auto_close_failed_pull_requests: Optional[bool] = None
    white_list_target_branches: List[BranchPattern] = Field(default_factory=list)

    @field_validator("white_list_target_branches", mode="before")
    @classmethod
    def _default_branches(cls, value):
        return [] if value is None else value

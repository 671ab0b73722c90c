"""Build cause data model."""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from .types import OptionalStr


class BuildCause(BaseModel):
    """Why (and what) one build attempt was triggered for a pull request."""

    model_config = ConfigDict(frozen=True)

    pull_id: int
    commit: str
    merged: bool = False
    source_branch: OptionalStr = ""
    target_branch: OptionalStr = ""
    author_email: Optional[str] = None
    url: Optional[str] = None
    title: OptionalStr = ""
    trigger_login: OptionalStr = ""

    @property
    def short_description(self) -> str:
        """One-line description shown next to the queued build."""
        if self.trigger_login:
            return f"GitHub pull request #{self.pull_id} requested by {self.trigger_login}"
        return f"GitHub pull request #{self.pull_id}"

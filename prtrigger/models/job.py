"""Job and build history data models.

Jobs belong to the host build system; the trigger only reads them, apart
from recording finished builds into ``builds``.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .types import OptionalStr


class ParameterDefinition(BaseModel):
    """Parameter a job declares, with its default value."""

    name: str
    default_value: OptionalStr = ""

    def default_parameter_value(self) -> "ParameterValue":
        return ParameterValue(name=self.name, value=self.default_value)


class ParameterValue(BaseModel):
    """A (name, value) string pair submitted with a build."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: OptionalStr = ""


class BuildData(BaseModel):
    """Source-control snapshot recorded by a build.

    Attached to a new build request as the previous build link, so the
    changelog is computed against it instead of a fresh clone.
    """

    last_built_revision: str
    remote_url: Optional[str] = None
    branch: Optional[str] = None


class BuildRecord(BaseModel):
    """One recorded build of a job."""

    number: int
    parameters: Optional[List[ParameterValue]] = None
    build_data: List[BuildData] = Field(default_factory=list)


class Job(BaseModel):
    """A CI job as exposed by the host.

    ``builds`` must be ordered newest-first.
    """

    name: str
    full_name: str
    github_project_url: Optional[str] = None
    quiet_period: int = 5
    parameter_definitions: List[ParameterDefinition] = Field(default_factory=list)
    builds: List[BuildRecord] = Field(default_factory=list)

"""Build request data models exchanged with the build scheduler."""

from typing import List, Optional

from pydantic import BaseModel

from .cause import BuildCause
from .job import BuildData, ParameterValue


class BuildRequest(BaseModel):
    """A fully formed request to queue one build."""

    job_full_name: str
    quiet_period: int
    cause: BuildCause
    parameters: List[ParameterValue]
    # Exact commit (or synthetic merge ref) the checkout is fixed to
    revision: str
    previous_build: Optional[BuildData] = None


class QueuedBuild(BaseModel):
    """Handle for a build request accepted by the Redis build queue."""

    queue_id: str
    job_full_name: str
    pull_id: int
    position: int

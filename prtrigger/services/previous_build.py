"""Lookup of the previous build of a pull request."""

import logging
from typing import Optional

from prtrigger.models.job import BuildData, Job
from prtrigger.services.parameter_builder import pull_id_parameter


logger = logging.getLogger(__name__)


def find_previous_build(job: Job, pull_id: int) -> Optional[BuildData]:
    """
    Find the source-control snapshot of the last build of a pull request.
    
    Scans ``job.builds`` in the order given, which must be newest-first.
    The first build carrying the same ``ghprbPullId`` parameter ends the
    scan and its first snapshot is returned; a matching build without
    snapshots yields None.
    
    Args:
        job: Job whose build history is searched
        pull_id: Pull request number
    
    Returns:
        The snapshot to attach to the next build, or None for a full checkout
    """
    wanted = pull_id_parameter(pull_id)
    
    for build in job.builds:
        if not build.parameters:
            continue
        if wanted not in build.parameters:
            continue
        
        for build_data in build.build_data:
            logger.debug(
                f"Previous build #{build.number} of {job.full_name} found for pull request #{pull_id}"
            )
            return build_data
        return None
    
    return None

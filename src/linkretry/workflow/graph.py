"""Graph workflow definition."""

from pydantic_graph import Graph

from linkretry.core.log import logger
from linkretry.workflow.state import TargetState


def create_target_workflow():
    """Create the per-target check graph.

    Attempt → Passed
    Attempt → Retrying → Attempt
    Attempt → FailedPermanent

    Returns:
        Graph with TargetState as state_type, ending in a
        TargetVerdict
    """
    logger.spew("Building target workflow graph")

    # Imported here so the node return annotations resolve against
    # this namespace
    from linkretry.workflow.nodes.attempt import Attempt
    from linkretry.workflow.nodes.retrying import Retrying
    from linkretry.workflow.nodes.verdict import FailedPermanent, Passed

    return Graph(
        nodes=(Attempt, Retrying, Passed, FailedPermanent),
        state_type=TargetState,
    )

"""Tax Workflows.

State machine for statutory filing processing.
"""

from fiscal_kernel.domain.workflow import Transition, Workflow
from fiscal_kernel.logging_config import get_logger
from fiscal_modules.tax.models import FilingStatus

logger = get_logger("modules.tax.workflows")


# -----------------------------------------------------------------------------
# Filing Workflow
# -----------------------------------------------------------------------------

FILING_WORKFLOW = Workflow(
    name="tax_filing",
    description="Statutory filing lifecycle",
    initial_state=FilingStatus.DRAFT.value,
    states=tuple(status.value for status in FilingStatus),
    transitions=(
        Transition("draft", "calculated", action="calculate"),
        Transition("calculated", "filed", action="file", stamps_submission=True),
        Transition("filed", "accepted", action="accept"),
        Transition("filed", "rejected", action="reject"),
        Transition("rejected", "calculated", action="recalculate"),
    ),
    terminal_states=("accepted",),
)

logger.info(
    "tax_workflow_defined",
    extra={
        "workflow_name": FILING_WORKFLOW.name,
        "state_count": len(FILING_WORKFLOW.states),
        "transition_count": len(FILING_WORKFLOW.transitions),
    },
)

"""Tests for the filing state machine (fiscal_modules/tax/workflows.py)."""

import itertools

import pytest

from fiscal_kernel.domain.workflow import Transition, Workflow
from fiscal_modules.tax.models import FilingStatus
from fiscal_modules.tax.workflows import FILING_WORKFLOW

ALLOWED = {
    ("draft", "calculated"),
    ("calculated", "filed"),
    ("filed", "accepted"),
    ("filed", "rejected"),
    ("rejected", "calculated"),
}


class TestFilingWorkflow:

    def test_states_match_enum(self):
        assert set(FILING_WORKFLOW.states) == {s.value for s in FilingStatus}
        assert FILING_WORKFLOW.initial_state == "draft"

    @pytest.mark.parametrize(
        "from_state,to_state",
        list(itertools.product([s.value for s in FilingStatus], repeat=2)),
    )
    def test_transition_table_is_exhaustive(self, from_state, to_state):
        transition = FILING_WORKFLOW.transition_for(from_state, to_state)
        assert (transition is not None) == ((from_state, to_state) in ALLOWED)

    def test_only_filing_stamps_submission(self):
        stamping = [t for t in FILING_WORKFLOW.transitions if t.stamps_submission]
        assert [(t.from_state, t.to_state) for t in stamping] == [("calculated", "filed")]

    def test_accepted_is_terminal(self):
        assert FILING_WORKFLOW.targets_from("accepted") == ()
        assert "accepted" in FILING_WORKFLOW.terminal_states

    def test_targets_from_filed(self):
        assert set(FILING_WORKFLOW.targets_from("filed")) == {"accepted", "rejected"}


class TestWorkflowDefinition:

    def test_undeclared_state_rejected(self):
        with pytest.raises(ValueError):
            Workflow(
                name="bad",
                description="",
                initial_state="a",
                states=("a",),
                transitions=(Transition("a", "b", action="go"),),
            )

    def test_initial_state_must_be_declared(self):
        with pytest.raises(ValueError):
            Workflow(name="bad", description="", initial_state="z", states=("a",), transitions=())

    def test_duplicate_transition_rejected(self):
        with pytest.raises(ValueError):
            Workflow(
                name="bad",
                description="",
                initial_state="a",
                states=("a", "b"),
                transitions=(
                    Transition("a", "b", action="go"),
                    Transition("a", "b", action="again"),
                ),
            )

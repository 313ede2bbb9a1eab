"""Demoday workflow: phases, status transitions, voting, finalists and results."""

from .errors import (
    AlreadyEvaluated,
    AlreadyExists,
    DuplicateVote,
    Forbidden,
    InvalidTransition,
    NotFound,
    NotVotable,
    OutOfPhaseWindow,
    ValidationError,
    WorkflowError,
)
from .finalists import select_finalists
from .ledger import cast_vote, count_votes, remove_vote
from .phases import current_phase
from .results import compute_results, declare_winners
from .transitions import change_status, submit_evaluation, transition
from .types import Actor

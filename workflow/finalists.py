"""Finalist selection from popular-vote tallies, per category."""

import logging
from dataclasses import dataclass, field
from typing import Any

from models import Submission
from workflow.errors import Forbidden
from workflow.ledger import popular_tallies
from workflow.store import get_demoday, transaction
from workflow.transitions import transition
from workflow.types import (
    APPROVED,
    FINALIST,
    SYSTEM_ACTOR,
    UNCATEGORIZED_ID,
    UNCATEGORIZED_NAME,
    is_admin,
)

logger = logging.getLogger(__name__)


@dataclass
class FinalistEntry:
    project_id: int
    project_title: str
    submission_id: int
    vote_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "project_title": self.project_title,
            "submission_id": self.submission_id,
            "vote_count": self.vote_count,
        }


@dataclass
class SelectionResult:
    """Audit record of one category's selection.

    Attributes:
        category_id: Category id, or "uncategorized" for the demoday-wide bucket
        category_name: Display name of the category
        max_finalists: Configured cap for the category
        finalists: Selected entries, best first
    """
    category_id: Any
    category_name: str
    max_finalists: int
    finalists: list[FinalistEntry] = field(default_factory=list)

    @property
    def selected_finalists(self) -> int:
        return len(self.finalists)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category_id": self.category_id,
            "category_name": self.category_name,
            "max_finalists": self.max_finalists,
            "selected_finalists": self.selected_finalists,
            "finalists": [f.to_dict() for f in self.finalists],
        }


def rank_by_popular_votes(submissions, tallies):
    """Order submissions by popular votes, best first.

    Ties fall back to the earlier submission, then the lower project id.
    """
    return sorted(
        submissions,
        key=lambda s: (-tallies.get(s.project_id, 0), s.created_at, s.project_id),
    )


def select_finalists(demoday_id, actor=None):
    """Reset the demoday's finalists to approved, then promote the top N per category.

    Re-running converges to the same set for the same votes: a project that
    drops out of the top N is demoted by the reset instead of staying
    finalist.
    """
    if actor is not None and not is_admin(actor):
        raise Forbidden("Only admins can select finalists")

    demoday = get_demoday(demoday_id)
    results = []

    with transaction():
        for submission in Submission.query.filter_by(demoday_id=demoday.id, status=FINALIST).all():
            transition(submission, APPROVED, SYSTEM_ACTOR, None)

        approved = (
            Submission.query
            .filter(Submission.demoday_id == demoday.id, Submission.status == APPROVED)
            .all()
        )
        tallies = popular_tallies(demoday.id)

        buckets = [(c.id, c.name, c.max_finalists) for c in demoday.categories]
        buckets.append((None, UNCATEGORIZED_NAME, demoday.max_finalists))

        for category_id, name, cap in buckets:
            members = [s for s in approved if s.project.category_id == category_id]
            selected = rank_by_popular_votes(members, tallies)[:max(cap, 0)]

            result = SelectionResult(
                category_id=category_id if category_id is not None else UNCATEGORIZED_ID,
                category_name=name,
                max_finalists=cap,
            )
            for submission in selected:
                transition(submission, FINALIST, SYSTEM_ACTOR, None)
                result.finalists.append(FinalistEntry(
                    project_id=submission.project_id,
                    project_title=submission.project.title,
                    submission_id=submission.id,
                    vote_count=tallies.get(submission.project_id, 0),
                ))
            results.append(result)

    logger.info("Demoday %s: %d finalists selected across %d categories",
                demoday.id, sum(r.selected_finalists for r in results), len(results))
    return results

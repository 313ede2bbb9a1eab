"""Results: weighted scores, rankings, demoday statistics and winners."""

import io
import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from models import Submission, Vote
from workflow.store import get_demoday, get_or_raise, transaction
from workflow.transitions import transition_in_demoday
from workflow.types import (
    DEFAULT_FINAL_VOTE_WEIGHTS,
    FINALIST,
    UNCATEGORIZED_ID,
    UNCATEGORIZED_NAME,
    VOTE_FINAL,
    VOTE_POPULAR,
    WINNER,
)

logger = logging.getLogger(__name__)


@dataclass
class ProjectResult:
    project_id: int
    submission_id: int
    title: str
    status: str
    category_id: Any
    popular_vote_count: int
    final_weighted_score: int
    type: str | None = None
    authors: str | None = None
    rank: int = 0
    category_rank: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "submission_id": self.submission_id,
            "title": self.title,
            "type": self.type,
            "authors": self.authors,
            "status": self.status,
            "category_id": self.category_id,
            "popular_vote_count": self.popular_vote_count,
            "final_weighted_score": self.final_weighted_score,
            "rank": self.rank,
            "category_rank": self.category_rank,
        }


@dataclass
class CategoryResults:
    """Ranked projects of one category.

    Attributes:
        winner_submission_id: Submission persisted as winner, if any
        leading_finalist_submission_id: Best-ranked finalist, the one
            ``declare_winners`` would promote
    """
    id: Any
    name: str
    projects: list[ProjectResult] = field(default_factory=list)
    winner_submission_id: int | None = None
    leading_finalist_submission_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "winner_submission_id": self.winner_submission_id,
            "leading_finalist_submission_id": self.leading_finalist_submission_id,
            "projects": [p.to_dict() for p in self.projects],
        }


@dataclass
class DemodayStats:
    total_submitted_projects: int = 0
    total_unique_participants: int = 0
    total_popular_votes: int = 0
    total_final_votes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_submitted_projects": self.total_submitted_projects,
            "total_unique_participants": self.total_unique_participants,
            "total_popular_votes": self.total_popular_votes,
            "total_final_votes": self.total_final_votes,
        }


@dataclass
class DemodayResults:
    demoday_id: int
    demoday_name: str
    ranking: list[ProjectResult]
    categories: list[CategoryResults]
    stats: DemodayStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "demoday_id": self.demoday_id,
            "demoday_name": self.demoday_name,
            "ranking": [p.to_dict() for p in self.ranking],
            "categories": [c.to_dict() for c in self.categories],
            "overall_stats": self.stats.to_dict(),
        }


def final_vote_weight(role, role_weights):
    return role_weights.get(role, 1)


def _sort_key(entry):
    return (-entry[0].final_weighted_score, -entry[0].popular_vote_count,
            entry[1].created_at, entry[0].project_id)


def _assign_ranks(results, attr):
    # equal score and popular count share a rank: 1, 2, 2, 4
    rank = 0
    prev = None
    for idx, result in enumerate(results, start=1):
        key = (result.final_weighted_score, result.popular_vote_count)
        if key != prev:
            rank = idx
            prev = key
        setattr(result, attr, rank)


def compute_results(demoday_id, role_weights=None):
    """Score and rank every submission of a demoday.

    Popular votes add their stored weight; final votes add the weight the
    voter's role maps to in ``role_weights`` (1 when unlisted). Nothing is
    written: a category's winner is only reported if it was persisted.
    """
    weights = DEFAULT_FINAL_VOTE_WEIGHTS if role_weights is None else role_weights
    demoday = get_demoday(demoday_id)

    submissions = Submission.query.filter_by(demoday_id=demoday.id).all()
    votes_by_project = defaultdict(list)
    for vote in Vote.query.filter_by(demoday_id=demoday.id).all():
        votes_by_project[vote.project_id].append(vote)

    stats = DemodayStats(total_submitted_projects=len(submissions))
    owners = set()
    entries = []
    for submission in submissions:
        project = submission.project
        owners.add(project.user_id)

        popular = 0
        score = 0
        for vote in votes_by_project.get(project.id, []):
            if vote.vote_phase == VOTE_POPULAR:
                popular += vote.weight
                score += vote.weight
                stats.total_popular_votes += vote.weight
            elif vote.vote_phase == VOTE_FINAL:
                score += final_vote_weight(vote.voter_role, weights)
                stats.total_final_votes += vote.weight

        entries.append((ProjectResult(
            project_id=project.id,
            submission_id=submission.id,
            title=project.title,
            type=project.type,
            authors=project.authors,
            status=submission.status,
            category_id=project.category_id,
            popular_vote_count=popular,
            final_weighted_score=score,
        ), submission))
    stats.total_unique_participants = len(owners)

    entries.sort(key=_sort_key)
    ranking = [result for result, _ in entries]
    _assign_ranks(ranking, "rank")

    buckets = [(c.id, c.id, c.name) for c in demoday.categories]
    buckets.append((None, UNCATEGORIZED_ID, UNCATEGORIZED_NAME))
    categories = []
    for category_id, public_id, name in buckets:
        members = [r for r in ranking if r.category_id == category_id]
        if not members:
            continue
        _assign_ranks(members, "category_rank")
        category = CategoryResults(id=public_id, name=name, projects=members)
        category.winner_submission_id = next(
            (r.submission_id for r in members if r.status == WINNER), None)
        category.leading_finalist_submission_id = next(
            (r.submission_id for r in members if r.status == FINALIST), None)
        categories.append(category)

    return DemodayResults(
        demoday_id=demoday.id,
        demoday_name=demoday.name,
        ranking=ranking,
        categories=categories,
        stats=stats,
    )


def declare_winners(demoday_id, actor, now=None, role_weights=None):
    """Persist a winner for every category that has a finalist but no winner yet."""
    results = compute_results(demoday_id, role_weights)
    declared = []
    with transaction():
        for category in results.categories:
            if category.winner_submission_id or not category.leading_finalist_submission_id:
                continue
            submission = get_or_raise(Submission, category.leading_finalist_submission_id, "Submission")
            transition_in_demoday(submission, WINNER, actor, now)
            declared.append({
                "category_id": category.id,
                "submission_id": submission.id,
                "project_id": submission.project_id,
            })

    logger.info("Demoday %s: %d winners declared", demoday_id, len(declared))
    return declared


# ----------------------
# Export
# ----------------------
RESULT_COLUMNS = ["Rank", "Category", "Project", "Authors", "Status",
                  "Popular votes", "Final score"]


def results_frame(results):
    names = {c.id: c.name for c in results.categories}
    data = [
        (r.rank,
         names.get(r.category_id if r.category_id is not None else UNCATEGORIZED_ID, ""),
         r.title, r.authors or "", r.status, r.popular_vote_count, r.final_weighted_score)
        for r in results.ranking
    ]
    return pd.DataFrame(data, columns=RESULT_COLUMNS)


def export_results(results):
    """xlsx workbook of the ranking, as a BytesIO positioned at 0."""
    df = results_frame(results)
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        safe_sheet = re.sub(r"[\[\]:*?/\\]", "", f"{results.demoday_name} results")[:31]
        df.to_excel(writer, index=False, sheet_name=safe_sheet)
    output.seek(0)
    return output

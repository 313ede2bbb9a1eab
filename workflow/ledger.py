"""Vote ledger: casting, removing and tallying popular and final votes."""

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from models import db, Project, Submission, Vote
from workflow.errors import (
    DuplicateVote,
    NotFound,
    NotVotable,
    OutOfPhaseWindow,
    ValidationError,
)
from workflow.phases import resolve_demoday_phase
from workflow.store import get_or_raise, transaction
from workflow.types import APPROVED, FINALIST, VOTE_FINAL, VOTE_PHASE_NUMBERS, VOTE_POPULAR

logger = logging.getLogger(__name__)

# Status a project must hold to receive each kind of vote
VOTABLE_STATUS = {
    VOTE_POPULAR: APPROVED,
    VOTE_FINAL: FINALIST,
}

VOTE_WEIGHT = 1


def _check_vote_phase(vote_phase):
    if vote_phase not in VOTE_PHASE_NUMBERS:
        raise ValidationError(f"Unknown vote phase '{vote_phase}'", vote_phase=vote_phase)


def cast_vote(voter, project_id, demoday_id, vote_phase, now=None):
    _check_vote_phase(vote_phase)
    project = get_or_raise(Project, project_id, "Project")

    submission = Submission.query.filter_by(
        project_id=project.id, demoday_id=demoday_id
    ).first()
    if submission is None:
        raise NotFound("Project was not submitted to this demoday",
                       project_id=project.id, demoday_id=demoday_id)

    if submission.status not in VOTABLE_STATUS.values():
        raise NotVotable(status=submission.status)

    phase = resolve_demoday_phase(demoday_id, now)
    required = VOTE_PHASE_NUMBERS[vote_phase]
    if phase is None or phase.phase_number != required:
        raise OutOfPhaseWindow(
            f"{vote_phase.capitalize()} voting only happens in phase {required}",
            required_phase=required,
            current_phase=phase.phase_number if phase else None,
        )

    if submission.status != VOTABLE_STATUS[vote_phase]:
        raise NotVotable(
            f"Only {VOTABLE_STATUS[vote_phase]} projects receive {vote_phase} votes",
            status=submission.status,
        )

    if vote_phase == VOTE_FINAL:
        existing = Vote.query.filter_by(
            voter_id=voter.id, demoday_id=demoday_id, vote_phase=VOTE_FINAL
        ).first()
    else:
        existing = Vote.query.filter_by(
            voter_id=voter.id, project_id=project.id, vote_phase=VOTE_POPULAR
        ).first()
    if existing:
        raise DuplicateVote(vote_phase=vote_phase, project_id=existing.project_id)

    vote = Vote(
        voter_id=voter.id,
        project_id=project.id,
        demoday_id=demoday_id,
        voter_role=voter.role,
        vote_phase=vote_phase,
        weight=VOTE_WEIGHT,
    )
    # the unique indexes settle two concurrent casts that both passed the check above
    try:
        with transaction():
            db.session.add(vote)
    except IntegrityError:
        raise DuplicateVote(vote_phase=vote_phase, project_id=project.id)

    logger.info("Vote %s: voter %s -> project %s (%s)", vote.id, voter.id, project.id, vote_phase)
    return vote


def remove_vote(voter_id, project_id, vote_phase):
    _check_vote_phase(vote_phase)
    vote = Vote.query.filter_by(
        voter_id=voter_id, project_id=project_id, vote_phase=vote_phase
    ).first()
    if vote is None:
        raise NotFound("Vote not found", project_id=project_id, vote_phase=vote_phase)

    with transaction():
        db.session.delete(vote)
    logger.info("Vote removed: voter %s, project %s (%s)", voter_id, project_id, vote_phase)


def count_votes(project_id, vote_phase, demoday_id=None):
    q = db.session.query(func.coalesce(func.sum(Vote.weight), 0)).filter(
        Vote.project_id == project_id,
        Vote.vote_phase == vote_phase,
    )
    if demoday_id is not None:
        q = q.filter(Vote.demoday_id == demoday_id)
    return int(q.scalar())


def popular_tallies(demoday_id):
    """{project_id: summed popular weight} for one demoday."""
    rows = (
        db.session.query(Vote.project_id, func.sum(Vote.weight))
        .filter(Vote.demoday_id == demoday_id, Vote.vote_phase == VOTE_POPULAR)
        .group_by(Vote.project_id)
        .all()
    )
    return {project_id: int(total) for project_id, total in rows}


def vote_counts(demoday_id):
    """{(project_id, vote_phase): number of votes} for one demoday."""
    rows = (
        db.session.query(Vote.project_id, Vote.vote_phase, func.count(Vote.id))
        .filter(Vote.demoday_id == demoday_id)
        .group_by(Vote.project_id, Vote.vote_phase)
        .all()
    )
    return {(project_id, vote_phase): int(total) for project_id, vote_phase, total in rows}


def find_votes(voter_id, project_id):
    return Vote.query.filter_by(voter_id=voter_id, project_id=project_id).all()

"""Submission status transitions and the screening evaluation that drives them.

Every status change goes through ``transition`` and its rule table; HTTP
handlers, the finalist selector and winner declaration all share it.
"""

import logging
from collections import namedtuple
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from models import db, Evaluation, EvaluationScore, Submission
from workflow.errors import (
    AlreadyEvaluated,
    Forbidden,
    InvalidTransition,
    OutOfPhaseWindow,
    ValidationError,
)
from workflow.ledger import vote_counts
from workflow.phases import current_phase, phase_gate_open
from workflow.store import get_demoday, get_or_raise, now_or, phases_for, transaction
from workflow.types import (
    APPROVAL_THRESHOLD,
    APPROVED,
    FINALIST,
    PHASE_FINAL_VOTE,
    PHASE_POPULAR_VOTE,
    PHASE_SCREENING,
    REJECTED,
    REVIEWER_ROLES,
    ROLE_ADMIN,
    SUBMITTED,
    VOTE_FINAL,
    VOTE_POPULAR,
    WINNER,
    is_admin,
)

logger = logging.getLogger(__name__)

# roles / phase: who may trigger it and when (admins skip the phase gate)
# sources: legal current states for non-admins
# admin_sources: legal current states for admins, None means any
TransitionRule = namedtuple("TransitionRule", ["roles", "phase", "sources", "admin_sources"])

TRANSITION_RULES = {
    APPROVED: TransitionRule(REVIEWER_ROLES, PHASE_SCREENING, (SUBMITTED, REJECTED), None),
    REJECTED: TransitionRule(REVIEWER_ROLES, PHASE_SCREENING, (SUBMITTED, APPROVED), None),
    FINALIST: TransitionRule((ROLE_ADMIN,), PHASE_POPULAR_VOTE, (APPROVED,), (APPROVED, WINNER)),
    WINNER: TransitionRule((ROLE_ADMIN,), PHASE_FINAL_VOTE, (FINALIST,), (FINALIST,)),
    SUBMITTED: TransitionRule((), None, (), None),
}


def transition(submission, target_status, actor, phase, configured=None):
    """Move ``submission`` to ``target_status`` or raise.

    ``phase`` and ``configured`` feed ``phase_gate_open``.
    """
    rule = TRANSITION_RULES.get(target_status)
    if rule is None:
        raise ValidationError(f"Unknown status '{target_status}'", status=target_status)

    admin = is_admin(actor)
    if not admin:
        if rule.phase is not None and not phase_gate_open(rule.phase, phase, configured):
            raise OutOfPhaseWindow(
                f"'{target_status}' can only be set during phase {rule.phase}",
                required_phase=rule.phase,
                current_phase=phase.phase_number if phase else None,
            )
        if actor is None or actor.role not in rule.roles:
            raise Forbidden(f"Role cannot set status '{target_status}'")

    if submission.status == target_status:
        return submission

    sources = rule.admin_sources if admin else rule.sources
    if sources is not None and submission.status not in sources:
        raise InvalidTransition(
            f"Cannot go from '{submission.status}' to '{target_status}'",
            current=submission.status,
            target=target_status,
        )

    submission.status = target_status
    submission.updated_at = datetime.now()
    return submission


def transition_in_demoday(submission, target_status, actor, now=None):
    """Resolve the submission's demoday phase, then transition (caller commits)."""
    phases = phases_for(submission.demoday_id)
    return transition(
        submission,
        target_status,
        actor,
        current_phase(phases, now_or(now)),
        configured={p.phase_number for p in phases},
    )


def change_status(submission_id, target_status, actor, now=None):
    submission = get_or_raise(Submission, submission_id, "Submission")
    previous = submission.status
    with transaction():
        transition_in_demoday(submission, target_status, actor, now)
    logger.info("Submission %s: %s -> %s by %s", submission.id, previous,
                submission.status, actor.role if actor else None)
    return submission


# ----------------------
# Screening evaluations
# ----------------------
def approval_percentage(approved_count, total_count):
    """round(100 * approved / total), halves rounded up."""
    return (200 * approved_count + total_count) // (2 * total_count)


def _normalize_marks(marks):
    if not isinstance(marks, (list, tuple)) or not marks:
        raise ValidationError("At least one criterion mark is required")

    normalized = []
    for mark in marks:
        if not isinstance(mark, dict) or mark.get('criterion_id') is None \
                or not isinstance(mark.get('approved'), bool):
            raise ValidationError("Each mark needs a criterion_id and an approved flag", mark=mark)
        normalized.append((mark['criterion_id'], mark['approved'], mark.get('comment')))

    criterion_ids = [criterion_id for criterion_id, _, _ in normalized]
    if len(set(criterion_ids)) != len(criterion_ids):
        raise ValidationError("A criterion can only be marked once")
    return normalized


def submit_evaluation(submission_id, reviewer, marks, now=None):
    """Record one reviewer's verdict and move the submission accordingly.

    The evaluation rows and the resulting approved/rejected transition are
    written in a single transaction; if the transition is refused (e.g. the
    screening window is closed) nothing is stored.
    """
    if reviewer is None or reviewer.role not in REVIEWER_ROLES:
        raise Forbidden("Only professors and admins can evaluate submissions")

    normalized = _normalize_marks(marks)
    submission = get_or_raise(Submission, submission_id, "Submission")

    # with criteria defined, every criterion gets exactly one mark
    known = {c.id for c in submission.demoday.criteria}
    if known:
        marked = {cid for cid, _, _ in normalized}
        unknown = sorted(marked - known)
        if unknown:
            raise ValidationError("Criteria do not belong to this demoday", criteria=unknown)
        missing = sorted(known - marked)
        if missing:
            raise ValidationError("Every criterion must be marked", missing=missing)

    existing = Evaluation.query.filter_by(
        submission_id=submission.id, reviewer_id=reviewer.id
    ).first()
    if existing:
        raise AlreadyEvaluated(evaluation_id=existing.id)

    approved_count = sum(1 for _, approved, _ in normalized if approved)
    percentage = approval_percentage(approved_count, len(normalized))
    target = APPROVED if percentage >= APPROVAL_THRESHOLD else REJECTED

    evaluation = Evaluation(
        submission_id=submission.id,
        reviewer_id=reviewer.id,
        approval_percentage=percentage,
    )
    evaluation.scores = [
        EvaluationScore(criterion_id=cid, approved=approved, comment=comment)
        for cid, approved, comment in normalized
    ]

    try:
        with transaction():
            db.session.add(evaluation)
            transition_in_demoday(submission, target, reviewer, now)
    except IntegrityError:
        raise AlreadyEvaluated(submission_id=submission.id)

    logger.info("Submission %s evaluated by %s: %s%% -> %s",
                submission.id, reviewer.id, percentage, submission.status)
    return evaluation


def pending_evaluations(demoday_id, reviewer_id):
    """Submissions of the demoday this reviewer has not evaluated yet."""
    evaluated = select(Evaluation.submission_id).where(Evaluation.reviewer_id == reviewer_id)
    return (
        Submission.query
        .filter(Submission.demoday_id == demoday_id, Submission.id.not_in(evaluated))
        .order_by(Submission.created_at.asc(), Submission.id.asc())
        .all()
    )


def _mean_percentage(values):
    if not values:
        return 0
    return (2 * sum(values) + len(values)) // (2 * len(values))


def evaluation_report(demoday_id):
    """Screening audit of one demoday.

    Per submission: every evaluation with its marks, the mean approval
    percentage, the approval percentage of each criterion across reviewers
    and the popular/final vote counts. Read-only.
    """
    demoday = get_demoday(demoday_id)
    criteria = sorted(demoday.criteria, key=lambda c: c.id)
    submissions = (
        Submission.query
        .filter_by(demoday_id=demoday.id)
        .order_by(Submission.created_at.asc(), Submission.id.asc())
        .all()
    )
    evaluations = (
        Evaluation.query
        .join(Submission, Evaluation.submission_id == Submission.id)
        .filter(Submission.demoday_id == demoday.id)
        .order_by(Evaluation.created_at.asc(), Evaluation.id.asc())
        .all()
    )
    by_submission = {}
    for evaluation in evaluations:
        by_submission.setdefault(evaluation.submission_id, []).append(evaluation)
    votes = vote_counts(demoday.id)

    rows = []
    for submission in submissions:
        own = by_submission.get(submission.id, [])
        marks = [score for evaluation in own for score in evaluation.scores]

        criteria_scores = []
        for criterion in criteria:
            verdicts = [s.approved for s in marks if s.criterion_id == criterion.id]
            criteria_scores.append({
                'criterion_id': criterion.id,
                'criterion_name': criterion.name,
                'marks': len(verdicts),
                'approval_percentage': (
                    approval_percentage(sum(verdicts), len(verdicts)) if verdicts else 0
                ),
            })

        rows.append({
            'submission_id': submission.id,
            'project_id': submission.project_id,
            'project_title': submission.project.title,
            'status': submission.status,
            'popular_vote_count': votes.get((submission.project_id, VOTE_POPULAR), 0),
            'final_vote_count': votes.get((submission.project_id, VOTE_FINAL), 0),
            'total_evaluations': len(own),
            'average_approval_percentage': _mean_percentage([e.approval_percentage for e in own]),
            'criteria_scores': criteria_scores,
            'evaluations': [
                dict(e.to_dict(), created_at=e.created_at.isoformat() if e.created_at else None)
                for e in own
            ],
        })

    return {
        'demoday': demoday.to_dict(),
        'criteria': [c.to_dict() for c in criteria],
        'submissions': rows,
        'total_evaluations': len(evaluations),
        'has_evaluations': bool(evaluations),
    }

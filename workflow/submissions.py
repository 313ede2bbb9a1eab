"""Phase 1: submitting projects, and what owners may still change afterwards."""

import logging

from sqlalchemy.exc import IntegrityError

from models import db, Category, Project, Submission, Vote
from workflow.errors import (
    AlreadyExists,
    Forbidden,
    OutOfPhaseWindow,
    ValidationError,
)
from workflow.phases import find_phase, window_is_open
from workflow.store import get_demoday, get_or_raise, now_or, phases_for, transaction
from workflow.types import PHASE_SUBMISSION, SUBMITTED, is_admin

logger = logging.getLogger(__name__)

# Project fields an owner fills in
PROJECT_FIELDS = (
    'title', 'description', 'type', 'category_id', 'authors', 'advisor',
    'contact_email', 'contact_phone', 'video_url', 'repository_url',
    'development_year',
)


def _clean_fields(fields, require_title):
    if not isinstance(fields, dict):
        raise ValidationError("Project data must be an object")

    unknown = sorted(set(fields) - set(PROJECT_FIELDS))
    if unknown:
        raise ValidationError("Unknown project fields", fields=unknown)

    cleaned = dict(fields)
    if 'title' in cleaned or require_title:
        title = cleaned.get('title')
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("title is required")
        cleaned['title'] = title.strip()
    return cleaned


def _check_category(category_id, demoday_id):
    if category_id is None:
        return
    category = db.session.get(Category, category_id)
    if category is None or category.demoday_id != demoday_id:
        raise ValidationError("Category does not belong to this demoday", category_id=category_id)


def _require_submission_window(demoday, now):
    if not demoday.active:
        raise ValidationError("This demoday is not active")

    phases = phases_for(demoday.id)
    if find_phase(phases, PHASE_SUBMISSION) is None:
        raise ValidationError("Submission phase is not configured for this demoday")
    if not window_is_open(phases, PHASE_SUBMISSION, now):
        raise OutOfPhaseWindow("The submission period is not open",
                               required_phase=PHASE_SUBMISSION)


def submit_project(demoday_id, owner, fields, now=None):
    """Create a project and its submission in one go."""
    demoday = get_demoday(demoday_id)
    _require_submission_window(demoday, now_or(now))

    cleaned = _clean_fields(fields, require_title=True)
    _check_category(cleaned.get('category_id'), demoday.id)

    project = Project(user_id=owner.id, **cleaned)
    submission = Submission(demoday_id=demoday.id, status=SUBMITTED)
    with transaction():
        db.session.add(project)
        db.session.flush()
        submission.project_id = project.id
        db.session.add(submission)

    logger.info("Project %s submitted to demoday %s by %s", project.id, demoday.id, owner.id)
    return submission


def enroll_project(project_id, demoday_id, owner, now=None):
    """Submit an existing project of ``owner`` to a demoday."""
    project = get_or_raise(Project, project_id, "Project")
    if project.user_id != owner.id and not is_admin(owner):
        raise Forbidden("Only the owner can submit this project")

    demoday = get_demoday(demoday_id)
    _require_submission_window(demoday, now_or(now))
    _check_category(project.category_id, demoday.id)

    if Submission.query.filter_by(project_id=project.id, demoday_id=demoday.id).first():
        raise AlreadyExists("Project already submitted to this demoday")

    submission = Submission(project_id=project.id, demoday_id=demoday.id, status=SUBMITTED)
    try:
        with transaction():
            db.session.add(submission)
    except IntegrityError:
        raise AlreadyExists("Project already submitted to this demoday")
    return submission


def delete_submission(submission_id, actor, now=None):
    submission = get_or_raise(Submission, submission_id, "Submission")

    if not is_admin(actor):
        if actor is None or submission.project.user_id != actor.id:
            raise Forbidden("Only the owner or an admin can delete this submission")
        phases = phases_for(submission.demoday_id)
        if not window_is_open(phases, PHASE_SUBMISSION, now_or(now)):
            raise OutOfPhaseWindow("Submissions can only be withdrawn during the submission period",
                                   required_phase=PHASE_SUBMISSION)

    with transaction():
        Vote.query.filter_by(
            project_id=submission.project_id, demoday_id=submission.demoday_id
        ).delete(synchronize_session=False)
        db.session.delete(submission)
    logger.info("Submission %s deleted by %s", submission_id, actor.id if actor else None)


def update_project(project_id, actor, fields, now=None):
    """Owners edit only while every demoday they submitted to is still in phase 1."""
    project = get_or_raise(Project, project_id, "Project")

    if not is_admin(actor):
        if actor is None or project.user_id != actor.id:
            raise Forbidden("Only the owner or an admin can edit this project")
        now = now_or(now)
        for submission in project.submissions:
            if not window_is_open(phases_for(submission.demoday_id), PHASE_SUBMISSION, now):
                raise OutOfPhaseWindow("The project can no longer be edited",
                                       demoday_id=submission.demoday_id)

    cleaned = _clean_fields(fields, require_title=False)
    if 'category_id' in cleaned:
        category_id = cleaned['category_id']
        if category_id is not None and db.session.get(Category, category_id) is None:
            raise ValidationError("Unknown category", category_id=category_id)
        for submission in project.submissions:
            _check_category(cleaned['category_id'], submission.demoday_id)

    with transaction():
        for name, value in cleaned.items():
            setattr(project, name, value)
    return project

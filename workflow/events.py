"""Demoday administration: creation, phases, activation, categories, criteria."""

import logging
from datetime import datetime

from models import db, Category, Demoday, DemodayPhase, EvaluationCriterion, Project
from workflow.errors import Forbidden, ValidationError
from workflow.store import activate_exclusively, get_demoday, now_or, transaction
from workflow.types import (
    DEMODAY_ACTIVE,
    DEMODAY_FINISHED,
    PHASE_NUMBERS,
    is_admin,
)

logger = logging.getLogger(__name__)


def _require_admin(actor, what):
    if not is_admin(actor):
        raise Forbidden(f"Only admins can {what}")


def _parse_datetime(value, field_name):
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(f"Invalid date for {field_name}", value=value)
    else:
        raise ValidationError(f"Missing date for {field_name}")

    # stored naive, in server local time
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def _parse_count(value, field_name):
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number", value=value)
    if count < 0:
        raise ValidationError(f"{field_name} cannot be negative", value=value)
    return count


def _parse_name(value, field_name="name"):
    name = (value or "").strip() if isinstance(value, str) else ""
    if len(name) < 2:
        raise ValidationError(f"{field_name} must have at least 2 characters")
    return name


def parse_phases(phases):
    """Validate raw phase definitions and return DemodayPhase column values."""
    if not isinstance(phases, (list, tuple)) or not phases:
        raise ValidationError("Add at least one phase")

    parsed = []
    seen = set()
    for raw in phases:
        if not isinstance(raw, dict):
            raise ValidationError("Each phase must be an object", phase=raw)

        number = raw.get('phase_number')
        if number not in PHASE_NUMBERS:
            raise ValidationError("phase_number must be 1, 2, 3 or 4", phase_number=number)
        if number in seen:
            raise ValidationError("Duplicated phase_number", phase_number=number)
        seen.add(number)

        start = _parse_datetime(raw.get('start_date'), f"phase {number} start")
        end = _parse_datetime(raw.get('end_date'), f"phase {number} end")
        if end < start:
            raise ValidationError(f"Phase {number} ends before it starts", phase_number=number)

        parsed.append({
            'phase_number': number,
            'name': _parse_name(raw.get('name'), f"phase {number} name"),
            'description': raw.get('description'),
            'start_date': start,
            'end_date': end,
        })
    return sorted(parsed, key=lambda p: p['phase_number'])


def create_demoday(actor, name, phases, max_finalists=10):
    _require_admin(actor, "create demodays")
    name = _parse_name(name)
    max_finalists = _parse_count(max_finalists, "max_finalists")
    parsed = parse_phases(phases)

    demoday = Demoday(name=name, created_by_id=actor.id, max_finalists=max_finalists,
                      status=DEMODAY_ACTIVE, active=False)
    with transaction():
        db.session.add(demoday)
        for values in parsed:
            demoday.phases.append(DemodayPhase(**values))

    logger.info("Demoday %s created with %d phases", demoday.id, len(parsed))
    return demoday


def replace_phases(demoday_id, actor, phases):
    """Drop every phase of the demoday and insert the given ones."""
    _require_admin(actor, "edit phases")
    parsed = parse_phases(phases)
    demoday = get_demoday(demoday_id)

    with transaction():
        for phase in list(demoday.phases):
            db.session.delete(phase)
        db.session.flush()
        for values in parsed:
            db.session.add(DemodayPhase(demoday_id=demoday.id, **values))

    logger.info("Demoday %s phases replaced (%d)", demoday_id, len(parsed))
    return demoday


def activate_demoday(demoday_id, actor):
    _require_admin(actor, "activate demodays")
    demoday = get_demoday(demoday_id)
    if demoday.status != DEMODAY_ACTIVE:
        raise ValidationError(f"A {demoday.status} demoday cannot be activated")

    with transaction():
        activate_exclusively(demoday.id)

    logger.info("Demoday %s is now the active demoday", demoday_id)
    return demoday


def cancel_demoday(demoday_id, actor):
    _require_admin(actor, "cancel demodays")
    demoday = get_demoday(demoday_id)
    category_ids = [c.id for c in demoday.categories]

    with transaction():
        if category_ids:
            Project.query.filter(Project.category_id.in_(category_ids)).update(
                {Project.category_id: None}, synchronize_session=False
            )
        db.session.delete(demoday)

    logger.info("Demoday %s canceled and deleted", demoday_id)


def finish_expired_demodays(now=None):
    """Mark every active demoday whose last phase is over as finished."""
    now = now_or(now)
    finished = []
    with transaction():
        for demoday in Demoday.query.filter_by(active=True).all():
            if not demoday.phases:
                continue
            last_phase = max(demoday.phases, key=lambda p: p.phase_number)
            if now > last_phase.end_date:
                demoday.status = DEMODAY_FINISHED
                demoday.active = False
                finished.append({
                    'id': demoday.id,
                    'name': demoday.name,
                    'last_phase_end_date': last_phase.end_date.isoformat(),
                })

    if finished:
        logger.info("%d demoday(s) finished", len(finished))
    return finished


def add_category(demoday_id, actor, name, max_finalists=5, description=None):
    _require_admin(actor, "manage categories")
    demoday = get_demoday(demoday_id)
    category = Category(
        demoday_id=demoday.id,
        name=_parse_name(name),
        description=description,
        max_finalists=_parse_count(max_finalists, "max_finalists"),
    )
    with transaction():
        db.session.add(category)
    return category


def add_criteria(demoday_id, actor, criteria):
    """Add evaluation criteria; entries with a blank name are skipped."""
    _require_admin(actor, "manage criteria")
    demoday = get_demoday(demoday_id)
    if not isinstance(criteria, (list, tuple)):
        raise ValidationError("criteria must be a list")

    created = []
    with transaction():
        for raw in criteria:
            name = (raw.get('name') or '').strip() if isinstance(raw, dict) else ''
            if not name:
                continue
            criterion = EvaluationCriterion(
                demoday_id=demoday.id,
                name=name,
                description=(raw.get('description') or '').strip() or None,
            )
            db.session.add(criterion)
            created.append(criterion)
    return created

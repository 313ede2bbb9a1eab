"""Query helpers shared by the workflow operations."""

from contextlib import contextmanager
from datetime import datetime

from models import db, Demoday, DemodayPhase
from workflow.errors import NotFound


def now_or(now):
    return now if now is not None else datetime.now()


@contextmanager
def transaction():
    """Commit everything done inside the block, or roll it all back."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def get_or_raise(model, object_id, label=None):
    obj = db.session.get(model, object_id) if object_id is not None else None
    if obj is None:
        name = label or model.__name__
        raise NotFound(f"{name} not found", id=object_id)
    return obj


def get_demoday(demoday_id):
    return get_or_raise(Demoday, demoday_id, "Demoday")


def get_active_demoday():
    return Demoday.query.filter_by(active=True).first()


def phases_for(demoday_id):
    return (
        DemodayPhase.query
        .filter_by(demoday_id=demoday_id)
        .order_by(DemodayPhase.phase_number.asc())
        .all()
    )


def activate_exclusively(demoday_id):
    """Deactivate every other demoday and activate this one (caller commits)."""
    Demoday.query.filter(Demoday.id != demoday_id).update(
        {Demoday.active: False}, synchronize_session=False
    )
    demoday = get_demoday(demoday_id)
    demoday.active = True
    return demoday

"""Shared fixtures: an app on in-memory SQLite and builders for demoday data."""

import itertools
from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestConfig
from models import db, Category, Demoday, DemodayPhase, Project, Submission, Vote
from workflow.types import (
    Actor,
    ROLE_ADMIN,
    ROLE_PROFESSOR,
    ROLE_STUDENT_UFBA,
    SUBMITTED,
    VOTE_POPULAR,
)

# Phase n runs for 7 days starting T0 + 10 * (n - 1) days; 3-day gaps in between
T0 = datetime(2025, 3, 1, 9, 0)
PHASE_NAMES = {1: "Submission", 2: "Screening", 3: "Popular vote", 4: "Final vote"}

ADMIN = Actor(id=1, role=ROLE_ADMIN)
PROFESSOR = Actor(id=2, role=ROLE_PROFESSOR)
STUDENT = Actor(id=3, role=ROLE_STUDENT_UFBA)

_voter_ids = itertools.count(1000)


def phase_start(number, base=T0):
    return base + timedelta(days=10 * (number - 1))


def phase_end(number, base=T0):
    return phase_start(number, base) + timedelta(days=7)


def during(number, base=T0):
    """A moment inside phase ``number``."""
    return phase_start(number, base) + timedelta(days=1)


def between(number, base=T0):
    """A moment in the gap right after phase ``number``."""
    return phase_end(number, base) + timedelta(days=1)


def phase_payload(numbers=(1, 2, 3, 4), base=T0):
    return [
        {
            "phase_number": n,
            "name": PHASE_NAMES[n],
            "start_date": phase_start(n, base).isoformat(),
            "end_date": phase_end(n, base).isoformat(),
        }
        for n in numbers
    ]


def make_demoday(name="Demoday 2025", numbers=(1, 2, 3, 4), base=T0, active=True, max_finalists=10):
    demoday = Demoday(name=name, active=active, max_finalists=max_finalists)
    for n in numbers:
        demoday.phases.append(DemodayPhase(
            phase_number=n,
            name=PHASE_NAMES[n],
            start_date=phase_start(n, base),
            end_date=phase_end(n, base),
        ))
    db.session.add(demoday)
    db.session.commit()
    return demoday


def make_category(demoday, name="Software", max_finalists=5):
    category = Category(demoday_id=demoday.id, name=name, max_finalists=max_finalists)
    db.session.add(category)
    db.session.commit()
    return category


def make_submission(demoday, title="Project", owner_id=10, status=SUBMITTED,
                    category=None, created_at=None):
    project = Project(title=title, user_id=owner_id,
                      category_id=category.id if category else None)
    db.session.add(project)
    db.session.flush()
    submission = Submission(project_id=project.id, demoday_id=demoday.id, status=status,
                            created_at=created_at or T0)
    db.session.add(submission)
    db.session.commit()
    return submission


def add_votes(submission, count, vote_phase=VOTE_POPULAR, role=ROLE_STUDENT_UFBA):
    """Insert ``count`` votes from fresh voters, bypassing the phase checks."""
    for _ in range(count):
        db.session.add(Vote(
            voter_id=next(_voter_ids),
            project_id=submission.project_id,
            demoday_id=submission.demoday_id,
            voter_role=role,
            vote_phase=vote_phase,
            weight=1,
        ))
    db.session.commit()


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def demoday(app):
    return make_demoday()


def login(client, actor):
    with client.session_transaction() as session:
        session["user_id"] = actor.id
        session["role"] = actor.role

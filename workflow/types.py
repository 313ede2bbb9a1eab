"""Shared vocabulary of the demoday workflow: roles, statuses, phases."""

from collections import namedtuple

# Roles supplied by the auth layer
ROLE_ADMIN = "admin"
ROLE_PROFESSOR = "professor"
ROLE_STUDENT_UFBA = "student_ufba"
ROLE_STUDENT_EXTERNAL = "student_external"
ROLES = (ROLE_ADMIN, ROLE_PROFESSOR, ROLE_STUDENT_UFBA, ROLE_STUDENT_EXTERNAL)
REVIEWER_ROLES = (ROLE_ADMIN, ROLE_PROFESSOR)

# Submission statuses
SUBMITTED = "submitted"
APPROVED = "approved"
REJECTED = "rejected"
FINALIST = "finalist"
WINNER = "winner"

# Demoday statuses
DEMODAY_ACTIVE = "active"
DEMODAY_FINISHED = "finished"

# Phase numbers
PHASE_SUBMISSION = 1
PHASE_SCREENING = 2
PHASE_POPULAR_VOTE = 3
PHASE_FINAL_VOTE = 4
PHASE_NUMBERS = (PHASE_SUBMISSION, PHASE_SCREENING, PHASE_POPULAR_VOTE, PHASE_FINAL_VOTE)

# Vote phases and the demoday phase each one is bound to
VOTE_POPULAR = "popular"
VOTE_FINAL = "final"
VOTE_PHASE_NUMBERS = {
    VOTE_POPULAR: PHASE_POPULAR_VOTE,
    VOTE_FINAL: PHASE_FINAL_VOTE,
}

# Screening verdict: approval percentage at or above this approves
APPROVAL_THRESHOLD = 50

DEFAULT_FINAL_VOTE_WEIGHTS = {
    ROLE_PROFESSOR: 3,
    ROLE_ADMIN: 3,
}

UNCATEGORIZED_ID = "uncategorized"
UNCATEGORIZED_NAME = "Projetos Gerais"

# Caller identity as handed over by the auth layer
Actor = namedtuple("Actor", ["id", "role"])

# Used when the system itself drives a transition (finalist selection)
SYSTEM_ACTOR = Actor(id=None, role=ROLE_ADMIN)


def is_admin(actor):
    return actor is not None and actor.role == ROLE_ADMIN

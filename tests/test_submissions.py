"""Tests for phase-1 submission rules."""

import pytest

from tests.conftest import (
    ADMIN,
    STUDENT,
    add_votes,
    between,
    during,
    make_category,
    make_demoday,
    make_submission,
)
from models import db, Project, Submission, Vote
from workflow.errors import AlreadyExists, Forbidden, OutOfPhaseWindow, ValidationError
from workflow.submissions import delete_submission, enroll_project, submit_project, update_project
from workflow.types import APPROVED, ROLE_STUDENT_EXTERNAL, SUBMITTED, Actor

OTHER_STUDENT = Actor(id=4, role=ROLE_STUDENT_EXTERNAL)


class TestSubmitProject:
    def test_creates_project_and_submission(self, app):
        demoday = make_demoday()
        submission = submit_project(demoday.id, STUDENT, {"title": "  Robot  ", "type": "TCC"},
                                    now=during(1))
        assert submission.status == SUBMITTED
        assert submission.project.title == "Robot"
        assert submission.project.user_id == STUDENT.id

    def test_window_closed(self, app):
        demoday = make_demoday()
        with pytest.raises(OutOfPhaseWindow):
            submit_project(demoday.id, STUDENT, {"title": "Robot"}, now=between(1))
        assert Project.query.count() == 0

    def test_inactive_demoday(self, app):
        demoday = make_demoday(active=False)
        with pytest.raises(ValidationError):
            submit_project(demoday.id, STUDENT, {"title": "Robot"}, now=during(1))

    def test_demoday_without_submission_phase(self, app):
        demoday = make_demoday(numbers=(2, 3, 4))
        with pytest.raises(ValidationError):
            submit_project(demoday.id, STUDENT, {"title": "Robot"}, now=during(1))

    def test_title_required(self, app):
        demoday = make_demoday()
        with pytest.raises(ValidationError):
            submit_project(demoday.id, STUDENT, {"title": " "}, now=during(1))

    def test_unknown_field(self, app):
        demoday = make_demoday()
        with pytest.raises(ValidationError):
            submit_project(demoday.id, STUDENT, {"title": "Robot", "status": "winner"}, now=during(1))

    def test_category_of_another_demoday(self, app):
        demoday = make_demoday()
        other = make_demoday(name="Other", active=False)
        foreign = make_category(other)
        with pytest.raises(ValidationError):
            submit_project(demoday.id, STUDENT, {"title": "Robot", "category_id": foreign.id},
                           now=during(1))


class TestEnrollProject:
    def test_existing_project_once_per_demoday(self, app):
        old = make_demoday(name="Old", active=False)
        previous = make_submission(old, owner_id=STUDENT.id)
        demoday = make_demoday()

        submission = enroll_project(previous.project_id, demoday.id, STUDENT, now=during(1))
        assert submission.demoday_id == demoday.id

        with pytest.raises(AlreadyExists):
            enroll_project(previous.project_id, demoday.id, STUDENT, now=during(1))

    def test_only_owner(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, owner_id=STUDENT.id)
        other = make_demoday(name="Next", active=True)
        with pytest.raises(Forbidden):
            enroll_project(submission.project_id, other.id, OTHER_STUDENT, now=during(1))


class TestDeleteSubmission:
    def test_owner_during_phase_one(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, owner_id=STUDENT.id)
        delete_submission(submission.id, STUDENT, now=during(1))
        assert Submission.query.count() == 0

    def test_owner_after_phase_one(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, owner_id=STUDENT.id)
        with pytest.raises(OutOfPhaseWindow):
            delete_submission(submission.id, STUDENT, now=during(2))

    def test_stranger(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, owner_id=STUDENT.id)
        with pytest.raises(Forbidden):
            delete_submission(submission.id, OTHER_STUDENT, now=during(1))

    def test_admin_any_time_and_votes_go_with_it(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, owner_id=STUDENT.id, status=APPROVED)
        add_votes(submission, 3)

        delete_submission(submission.id, ADMIN, now=during(4))

        assert Submission.query.count() == 0
        assert Vote.query.count() == 0


class TestUpdateProject:
    def test_owner_during_phase_one(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, owner_id=STUDENT.id)
        project = update_project(submission.project_id, STUDENT,
                                 {"description": "Now with wheels"}, now=during(1))
        assert project.description == "Now with wheels"

    def test_owner_after_phase_one(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, owner_id=STUDENT.id, status=APPROVED)
        with pytest.raises(OutOfPhaseWindow):
            update_project(submission.project_id, STUDENT, {"title": "Renamed"}, now=during(3))

        db.session.expire_all()
        assert db.session.get(Project, submission.project_id).title == "Project"

    def test_admin_after_phase_one(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, owner_id=STUDENT.id, status=APPROVED)
        project = update_project(submission.project_id, ADMIN, {"title": "Renamed"}, now=during(3))
        assert project.title == "Renamed"

    def test_unknown_category_without_submissions(self, app):
        project = Project(title="Draft", user_id=STUDENT.id)
        db.session.add(project)
        db.session.commit()

        with pytest.raises(ValidationError):
            update_project(project.id, STUDENT, {"category_id": 999}, now=during(1))

        db.session.expire_all()
        assert db.session.get(Project, project.id).category_id is None

    def test_category_without_submissions(self, app):
        demoday = make_demoday()
        category = make_category(demoday)
        project = Project(title="Draft", user_id=STUDENT.id)
        db.session.add(project)
        db.session.commit()

        assert update_project(project.id, STUDENT, {"category_id": category.id}).category_id == category.id

    def test_blank_title(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, owner_id=STUDENT.id)
        with pytest.raises(ValidationError):
            update_project(submission.project_id, STUDENT, {"title": ""}, now=during(1))

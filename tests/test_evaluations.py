"""Tests for screening evaluations."""

import pytest

from tests.conftest import (
    ADMIN,
    PROFESSOR,
    STUDENT,
    add_votes,
    between,
    during,
    make_demoday,
    make_submission,
)
from models import db, Evaluation, EvaluationCriterion
from workflow.errors import AlreadyEvaluated, Forbidden, NotFound, OutOfPhaseWindow, ValidationError
from workflow.transitions import (
    approval_percentage,
    evaluation_report,
    pending_evaluations,
    submit_evaluation,
)
from workflow.types import APPROVED, REJECTED, ROLE_PROFESSOR, SUBMITTED, VOTE_FINAL


def add_criteria(demoday, count):
    criteria = [EvaluationCriterion(demoday_id=demoday.id, name=f"Criterion {i}") for i in range(count)]
    db.session.add_all(criteria)
    db.session.commit()
    return criteria


def marks(criteria, verdicts):
    return [{"criterion_id": c.id, "approved": v} for c, v in zip(criteria, verdicts)]


class TestApprovalPercentage:
    @pytest.mark.parametrize("approved, total, expected", [
        (0, 3, 0),
        (1, 3, 33),
        (2, 3, 67),
        (1, 2, 50),
        (1, 8, 13),  # 12.5 rounds up
        (4, 4, 100),
    ])
    def test_rounding(self, approved, total, expected):
        assert approval_percentage(approved, total) == expected


class TestSubmitEvaluation:
    def test_half_approved_means_approved(self, app):
        demoday = make_demoday()
        criteria = add_criteria(demoday, 4)
        submission = make_submission(demoday)

        evaluation = submit_evaluation(submission.id, PROFESSOR,
                                       marks(criteria, [True, True, False, False]), now=during(2))

        assert evaluation.approval_percentage == 50
        assert len(evaluation.scores) == 4
        assert submission.status == APPROVED

    def test_below_threshold_means_rejected(self, app):
        demoday = make_demoday()
        criteria = add_criteria(demoday, 3)
        submission = make_submission(demoday)

        submit_evaluation(submission.id, PROFESSOR, marks(criteria, [True, False, False]), now=during(2))
        assert submission.status == REJECTED

    def test_second_evaluation_by_same_reviewer(self, app):
        demoday = make_demoday()
        criteria = add_criteria(demoday, 2)
        submission = make_submission(demoday)
        submit_evaluation(submission.id, PROFESSOR, marks(criteria, [True, True]), now=during(2))

        with pytest.raises(AlreadyEvaluated):
            submit_evaluation(submission.id, PROFESSOR, marks(criteria, [False, False]), now=during(2))
        assert submission.status == APPROVED

    def test_another_reviewer_can_overturn(self, app):
        demoday = make_demoday()
        criteria = add_criteria(demoday, 2)
        submission = make_submission(demoday)
        submit_evaluation(submission.id, PROFESSOR, marks(criteria, [True, True]), now=during(2))
        submit_evaluation(submission.id, ADMIN, marks(criteria, [False, False]), now=during(2))

        assert submission.status == REJECTED
        assert Evaluation.query.filter_by(submission_id=submission.id).count() == 2

    def test_outside_screening_nothing_is_stored(self, app):
        demoday = make_demoday()
        criteria = add_criteria(demoday, 2)
        submission = make_submission(demoday)

        with pytest.raises(OutOfPhaseWindow):
            submit_evaluation(submission.id, PROFESSOR, marks(criteria, [True, True]), now=between(2))

        assert Evaluation.query.count() == 0
        db.session.expire_all()
        assert submission.status == SUBMITTED

    def test_student_cannot_evaluate(self, app):
        demoday = make_demoday()
        criteria = add_criteria(demoday, 1)
        submission = make_submission(demoday)
        with pytest.raises(Forbidden):
            submit_evaluation(submission.id, STUDENT, marks(criteria, [True]), now=during(2))

    def test_empty_marks(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday)
        with pytest.raises(ValidationError):
            submit_evaluation(submission.id, PROFESSOR, [], now=during(2))

    def test_verdict_must_be_boolean(self, app):
        demoday = make_demoday()
        criteria = add_criteria(demoday, 1)
        submission = make_submission(demoday)
        with pytest.raises(ValidationError):
            submit_evaluation(submission.id, PROFESSOR,
                              [{"criterion_id": criteria[0].id, "approved": "yes"}], now=during(2))

    def test_criteria_of_another_demoday(self, app):
        demoday = make_demoday()
        add_criteria(demoday, 1)
        other = make_demoday(name="Other", active=False)
        foreign = add_criteria(other, 1)
        submission = make_submission(demoday)
        with pytest.raises(ValidationError):
            submit_evaluation(submission.id, PROFESSOR, marks(foreign, [True]), now=during(2))

    def test_three_of_four_is_seventy_five(self, app):
        demoday = make_demoday()
        criteria = add_criteria(demoday, 4)
        submission = make_submission(demoday)
        evaluation = submit_evaluation(submission.id, PROFESSOR,
                                       marks(criteria, [True, True, True, False]), now=during(2))
        assert evaluation.approval_percentage == 75
        assert submission.status == APPROVED

    def test_partial_marks_are_refused(self, app):
        demoday = make_demoday()
        criteria = add_criteria(demoday, 4)
        submission = make_submission(demoday)

        with pytest.raises(ValidationError) as exc:
            submit_evaluation(submission.id, PROFESSOR, marks(criteria[:1], [True]), now=during(2))

        assert exc.value.details["missing"] == sorted(c.id for c in criteria[1:])
        assert Evaluation.query.count() == 0
        assert submission.status == SUBMITTED


class TestPendingEvaluations:
    def test_excludes_already_evaluated(self, app):
        demoday = make_demoday()
        criteria = add_criteria(demoday, 1)
        first = make_submission(demoday, title="First")
        second = make_submission(demoday, title="Second")
        submit_evaluation(first.id, PROFESSOR, marks(criteria, [True]), now=during(2))

        assert [s.id for s in pending_evaluations(demoday.id, PROFESSOR.id)] == [second.id]
        assert len(pending_evaluations(demoday.id, ADMIN.id)) == 2


class TestEvaluationReport:
    def test_per_submission_summary(self, app):
        demoday = make_demoday()
        criteria = add_criteria(demoday, 2)
        robot = make_submission(demoday, title="Robot")
        quiet = make_submission(demoday, title="Quiet")
        submit_evaluation(robot.id, PROFESSOR, marks(criteria, [True, True]), now=during(2))
        submit_evaluation(robot.id, ADMIN, marks(criteria, [True, False]), now=during(2))
        add_votes(robot, 3)
        add_votes(robot, 1, vote_phase=VOTE_FINAL, role=ROLE_PROFESSOR)

        report = evaluation_report(demoday.id)

        assert report["total_evaluations"] == 2
        assert report["has_evaluations"] is True
        first, second = report["submissions"]
        assert first["project_title"] == "Robot"
        assert first["total_evaluations"] == 2
        assert first["average_approval_percentage"] == 75
        assert [c["approval_percentage"] for c in first["criteria_scores"]] == [100, 50]
        assert [e["reviewer_id"] for e in first["evaluations"]] == [PROFESSOR.id, ADMIN.id]
        assert first["popular_vote_count"] == 3
        assert first["final_vote_count"] == 1

        assert second["submission_id"] == quiet.id
        assert second["total_evaluations"] == 0
        assert second["average_approval_percentage"] == 0
        assert [c["marks"] for c in second["criteria_scores"]] == [0, 0]

    def test_empty_demoday(self, app):
        demoday = make_demoday()
        report = evaluation_report(demoday.id)
        assert report["submissions"] == []
        assert report["has_evaluations"] is False

    def test_unknown_demoday(self, app):
        with pytest.raises(NotFound):
            evaluation_report(404)

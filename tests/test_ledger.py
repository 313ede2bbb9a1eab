"""Tests for casting, removing and counting votes."""

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
from models import Vote
from workflow.errors import DuplicateVote, NotFound, NotVotable, OutOfPhaseWindow, ValidationError
from workflow.ledger import cast_vote, count_votes, find_votes, popular_tallies, remove_vote
from workflow.types import APPROVED, FINALIST, REJECTED, SUBMITTED, VOTE_FINAL, VOTE_POPULAR


class TestPopularVotes:
    def test_cast_during_popular_phase(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, status=APPROVED)

        vote = cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_POPULAR, now=during(3))

        assert vote.weight == 1
        assert vote.voter_role == STUDENT.role
        assert count_votes(submission.project_id, VOTE_POPULAR) == 1

    def test_one_popular_vote_per_project(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, status=APPROVED)
        cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_POPULAR, now=during(3))

        with pytest.raises(DuplicateVote):
            cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_POPULAR, now=during(3))
        assert Vote.query.count() == 1

    def test_many_projects_per_voter(self, app):
        demoday = make_demoday()
        first = make_submission(demoday, title="A", status=APPROVED)
        second = make_submission(demoday, title="B", status=APPROVED)
        cast_vote(STUDENT, first.project_id, demoday.id, VOTE_POPULAR, now=during(3))
        cast_vote(STUDENT, second.project_id, demoday.id, VOTE_POPULAR, now=during(3))
        assert popular_tallies(demoday.id) == {first.project_id: 1, second.project_id: 1}

    def test_outside_phase_three(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, status=APPROVED)
        for now in (during(2), between(3), during(4)):
            with pytest.raises(OutOfPhaseWindow):
                cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_POPULAR, now=now)

    @pytest.mark.parametrize("status", [SUBMITTED, REJECTED])
    def test_unscreened_or_rejected_projects_are_not_votable(self, app, status):
        demoday = make_demoday()
        submission = make_submission(demoday, status=status)
        with pytest.raises(NotVotable):
            cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_POPULAR, now=during(3))

    def test_finalist_does_not_take_popular_votes(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, status=FINALIST)
        with pytest.raises(NotVotable):
            cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_POPULAR, now=during(3))

    def test_status_is_checked_before_phase(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, status=REJECTED)
        with pytest.raises(NotVotable):
            cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_POPULAR, now=during(1))


class TestFinalVotes:
    def test_one_final_vote_per_voter_across_projects(self, app):
        demoday = make_demoday()
        first = make_submission(demoday, title="A", status=FINALIST)
        second = make_submission(demoday, title="B", status=FINALIST)
        cast_vote(PROFESSOR, first.project_id, demoday.id, VOTE_FINAL, now=during(4))

        with pytest.raises(DuplicateVote):
            cast_vote(PROFESSOR, second.project_id, demoday.id, VOTE_FINAL, now=during(4))

    def test_popular_vote_does_not_block_final_vote(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, status=APPROVED)
        cast_vote(ADMIN, submission.project_id, demoday.id, VOTE_POPULAR, now=during(3))
        submission.status = FINALIST

        cast_vote(ADMIN, submission.project_id, demoday.id, VOTE_FINAL, now=during(4))
        assert count_votes(submission.project_id, VOTE_FINAL) == 1
        assert count_votes(submission.project_id, VOTE_POPULAR) == 1

    def test_only_finalists(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, status=APPROVED)
        with pytest.raises(NotVotable):
            cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_FINAL, now=during(4))

    def test_final_vote_in_phase_three(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, status=FINALIST)
        with pytest.raises(OutOfPhaseWindow):
            cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_FINAL, now=during(3))


class TestLookupsAndErrors:
    def test_unknown_vote_phase(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, status=APPROVED)
        with pytest.raises(ValidationError):
            cast_vote(STUDENT, submission.project_id, demoday.id, "jury", now=during(3))

    def test_unknown_project(self, app):
        demoday = make_demoday()
        with pytest.raises(NotFound):
            cast_vote(STUDENT, 999, demoday.id, VOTE_POPULAR, now=during(3))

    def test_project_not_in_demoday(self, app):
        demoday = make_demoday()
        other = make_demoday(name="Other", active=False)
        submission = make_submission(other, status=APPROVED)
        with pytest.raises(NotFound):
            cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_POPULAR, now=during(3))

    def test_remove_then_vote_again(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, status=APPROVED)
        cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_POPULAR, now=during(3))
        remove_vote(STUDENT.id, submission.project_id, VOTE_POPULAR)

        assert find_votes(STUDENT.id, submission.project_id) == []
        cast_vote(STUDENT, submission.project_id, demoday.id, VOTE_POPULAR, now=during(3))
        assert len(find_votes(STUDENT.id, submission.project_id)) == 1

    def test_remove_missing_vote(self, app):
        with pytest.raises(NotFound):
            remove_vote(STUDENT.id, 1, VOTE_POPULAR)

    def test_count_sums_weights(self, app):
        demoday = make_demoday()
        submission = make_submission(demoday, status=APPROVED)
        add_votes(submission, 4)
        assert count_votes(submission.project_id, VOTE_POPULAR) == 4
        assert count_votes(submission.project_id, VOTE_POPULAR, demoday_id=demoday.id + 1) == 0
        assert count_votes(submission.project_id, VOTE_FINAL) == 0

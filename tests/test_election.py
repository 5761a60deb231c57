"""
Unit tests for the election phase flags.
"""

import pytest

from errors import NominationStillOpen, StateConflictError
from models import (VOTING_ENDED, VOTING_NOT_STARTED, VOTING_STARTED,
                    Election, db)
from services.election import ElectionLifecycle


@pytest.fixture
def lifecycle(app):
    return ElectionLifecycle(db.session)


class TestElectionStatus:

    def test_defaults_without_record(self, lifecycle):
        status = lifecycle.get_status()

        assert status.nomination_open is False
        assert status.voting_status == VOTING_NOT_STARTED
        assert Election.query.count() == 0

    def test_status_reflects_stored_record(self, lifecycle, set_phase):
        set_phase(VOTING_STARTED)

        assert lifecycle.get_status().voting_status == VOTING_STARTED


class TestNominationPhase:

    def test_publish_opens_nominations(self, lifecycle):
        lifecycle.publish(actor='admin:1')

        assert lifecycle.get_status().nomination_open is True
        assert Election.query.count() == 1

    def test_publish_is_idempotent(self, lifecycle):
        lifecycle.publish()
        lifecycle.publish()

        assert lifecycle.get_status().nomination_open is True
        assert Election.query.count() == 1

    def test_unpublish_closes_nominations(self, lifecycle):
        lifecycle.publish()
        lifecycle.unpublish()

        assert lifecycle.get_status().nomination_open is False

    def test_unpublish_without_record(self, lifecycle):
        lifecycle.unpublish()

        assert lifecycle.get_status().nomination_open is False

    @pytest.mark.parametrize('voting_status', [VOTING_STARTED, VOTING_ENDED])
    def test_publish_refused_after_voting_began(self, lifecycle, set_phase, voting_status):
        set_phase(voting_status)

        with pytest.raises(StateConflictError):
            lifecycle.publish()
        assert lifecycle.get_status().nomination_open is False


class TestVotingPhase:

    def test_start_voting(self, lifecycle):
        election = lifecycle.start_voting(actor='admin:1')

        assert election.voting_status == VOTING_STARTED
        assert election.voting_started_at is not None

    def test_start_voting_requires_closed_nominations(self, lifecycle):
        lifecycle.publish()

        with pytest.raises(NominationStillOpen):
            lifecycle.start_voting()
        assert lifecycle.get_status().voting_status == VOTING_NOT_STARTED

    def test_start_voting_is_idempotent(self, lifecycle):
        first = lifecycle.start_voting().voting_started_at
        again = lifecycle.start_voting()

        assert again.voting_status == VOTING_STARTED
        assert again.voting_started_at == first

    def test_end_voting(self, lifecycle):
        lifecycle.start_voting()
        election = lifecycle.end_voting()

        assert election.voting_status == VOTING_ENDED
        assert election.voting_ended_at is not None

    def test_end_voting_before_start_refused(self, lifecycle):
        with pytest.raises(StateConflictError):
            lifecycle.end_voting()
        assert lifecycle.get_status().voting_status == VOTING_NOT_STARTED

    def test_end_voting_is_idempotent(self, lifecycle):
        lifecycle.start_voting()
        ended_at = lifecycle.end_voting().voting_ended_at

        assert lifecycle.end_voting().voting_ended_at == ended_at

    def test_restart_after_end_refused(self, lifecycle):
        lifecycle.start_voting()
        lifecycle.end_voting()

        with pytest.raises(StateConflictError):
            lifecycle.start_voting()
        assert lifecycle.get_status().voting_status == VOTING_ENDED

    def test_start_voting_warns_about_leftover_ballots(self, lifecycle, make_voter, caplog):
        voter = make_voter()
        voter.has_voted = True
        db.session.commit()

        with caplog.at_level('WARNING', logger='services.election'):
            lifecycle.start_voting()

        assert 'already marked as voted' in caplog.text

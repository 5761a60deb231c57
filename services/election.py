import logging
from datetime import datetime

from errors import NominationStillOpen, StateConflictError
from models import (CURRENT_ELECTION, VOTING_ENDED, VOTING_NOT_STARTED,
                    VOTING_STARTED, Election, Voter)

logger = logging.getLogger(__name__)


class ElectionLifecycle:
    """Phase flags of the current election.

    ``nomination_open`` and ``voting_status`` move independently, but voting
    only moves forward: NotStarted -> Started -> Ended.
    """

    def __init__(self, session):
        self.session = session

    def get_status(self):
        election = self.session.query(Election).filter_by(key=CURRENT_ELECTION).first()
        if election is None:
            # First run: nothing published yet
            return Election(key=CURRENT_ELECTION, nomination_open=False, voting_status=VOTING_NOT_STARTED)
        return election

    def _current(self):
        election = self.session.query(Election).filter_by(key=CURRENT_ELECTION).first()
        if election is None:
            election = Election(key=CURRENT_ELECTION, nomination_open=False, voting_status=VOTING_NOT_STARTED)
            self.session.add(election)
        return election

    def publish(self, actor=None):
        election = self._current()
        if election.voting_status != VOTING_NOT_STARTED:
            raise StateConflictError('Nominations cannot be opened once voting has started.')
        if not election.nomination_open:
            election.nomination_open = True
            logger.info('Nominations opened by %s', actor)
        self.session.commit()
        return election

    def unpublish(self, actor=None):
        election = self._current()
        if election.nomination_open:
            election.nomination_open = False
            logger.info('Nominations closed by %s', actor)
        self.session.commit()
        return election

    def start_voting(self, actor=None):
        election = self._current()
        if election.voting_status == VOTING_STARTED:
            return election
        if election.voting_status == VOTING_ENDED:
            raise StateConflictError('Voting has already ended for this election.')
        if election.nomination_open:
            raise NominationStillOpen()

        already_voted = self.session.query(Voter).filter_by(has_voted=True).count()
        if already_voted:
            # Nothing resets ballots between cycles
            logger.warning('Voting started while %d voters are already marked as voted', already_voted)

        election.voting_status = VOTING_STARTED
        election.voting_started_at = datetime.utcnow()
        self.session.commit()
        logger.info('Voting started by %s', actor)
        return election

    def end_voting(self, actor=None):
        election = self._current()
        if election.voting_status == VOTING_ENDED:
            return election
        if election.voting_status != VOTING_STARTED:
            raise StateConflictError('Voting has not started yet.')

        election.voting_status = VOTING_ENDED
        election.voting_ended_at = datetime.utcnow()
        self.session.commit()
        logger.info('Voting ended by %s', actor)
        return election

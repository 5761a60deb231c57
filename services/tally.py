import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from errors import (AlreadyVoted, CandidateNotFound, VoterInactive,
                    VoterNotFound, VotingClosed)
from models import (NOMINATION_APPROVED, VOTER_ACTIVE, VOTING_ENDED,
                    VOTING_STARTED, Nomination, Vote, Voter)
from services.election import ElectionLifecycle

logger = logging.getLogger(__name__)


@dataclass
class Results:
    available: bool
    standings: list = field(default_factory=list)
    total_votes: int = 0

    def to_dict(self):
        return {'available': self.available, 'totalVotes': self.total_votes, 'results': self.standings}


class TallyEngine:
    """Records votes and discloses the count.

    Claiming a voter's ballot is a conditional update evaluated by the
    database (has_voted false -> true), and the nomination counter is bumped
    with an in-database increment. Both happen in one transaction, so two
    concurrent requests for the same voter cannot both count.
    """

    def __init__(self, session):
        self.session = session

    def _voting_status(self):
        return ElectionLifecycle(self.session).get_status().voting_status

    def _load_voter(self, voter_id):
        return self.session.query(Voter).filter_by(voter_id=voter_id).first()

    def _load_candidate(self, nomination_id):
        return self.session.query(Nomination).filter_by(nomination_id=nomination_id,
                                                        status=NOMINATION_APPROVED).first()

    def cast_vote(self, voter_id, nomination_id):
        if self._voting_status() != VOTING_STARTED:
            raise VotingClosed()

        voter = self._load_voter(voter_id)
        if voter is None:
            raise VoterNotFound()
        if voter.status != VOTER_ACTIVE:
            raise VoterInactive()
        if voter.has_voted:
            raise AlreadyVoted()

        candidate = self._load_candidate(nomination_id)
        if candidate is None:
            raise CandidateNotFound()

        now = datetime.utcnow()
        claimed = self.session.query(Voter).filter(
            Voter.id == voter.id,
            Voter.has_voted.is_(False),
        ).update({Voter.has_voted: True, Voter.voted_at: now}, synchronize_session=False)
        if claimed != 1:
            self.session.rollback()
            logger.warning('Duplicate vote attempt by %s', voter_id)
            raise AlreadyVoted()

        counted = self.session.query(Nomination).filter(
            Nomination.id == candidate.id,
            Nomination.status == NOMINATION_APPROVED,
        ).update({Nomination.vote_count: Nomination.vote_count + 1}, synchronize_session=False)
        if counted != 1:
            self.session.rollback()
            raise CandidateNotFound()

        self.session.add(Vote(voter_id=voter.id, nomination_id=candidate.id, cast_at=now))
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise AlreadyVoted()

        self.session.expire_all()
        logger.info('Vote recorded: voter %s -> %s', voter_id, nomination_id)
        return now

    def get_candidate_list(self):
        if self._voting_status() != VOTING_STARTED:
            return []
        return self.session.query(Nomination).filter_by(status=NOMINATION_APPROVED) \
            .order_by(Nomination.name, Nomination.id).all()

    def get_results(self):
        if self._voting_status() != VOTING_ENDED:
            return Results(available=False)

        nominations = self.session.query(Nomination).filter_by(status=NOMINATION_APPROVED) \
            .order_by(Nomination.vote_count.desc(), Nomination.name).all()

        standings = []
        current_rank = 0
        last_count = None
        for i, nomination in enumerate(nominations):
            if nomination.vote_count != last_count:
                current_rank = i + 1
                last_count = nomination.vote_count
            entry = nomination.to_public_dict()
            entry['votes'] = nomination.vote_count
            entry['rank'] = current_rank
            standings.append(entry)

        total = sum(n.vote_count for n in nominations)
        return Results(available=True, standings=standings, total_votes=total)

    def turnout(self):
        registered = self.session.query(func.count(Voter.id)).scalar() or 0
        voted = self.session.query(func.count(Voter.id)).filter(Voter.has_voted.is_(True)).scalar() or 0
        return {
            'registered': registered,
            'voted': voted,
            'turnout': round(voted * 100.0 / registered, 2) if registered else 0.0,
            'votingStatus': self._voting_status(),
        }

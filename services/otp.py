import hmac
import logging
from datetime import datetime, timedelta

from errors import (AdministratorNotFound, AuthError, CodeExpired, CodeMismatch,
                    CodeNotFound, DependencyError, NominationNotFound,
                    VoterInactive, VoterNotFound)
from models import (ROLE_ADMIN, ROLE_SUBADMIN, VOTER_ACTIVE, Administrator,
                    Nomination, OneTimeCode, Voter)
from services.election import ElectionLifecycle
from services.sessions import Role, issue_session
from utils import generate_code

logger = logging.getLogger(__name__)


class CodeAuthenticator:
    """Issues and verifies one-time codes and turns them into sessions.

    Codes are stored one per (role, principal). Issuing again replaces the
    previous code, and a verified code is deleted, for every role.
    """

    def __init__(self, session, send_code, ttl_seconds=300):
        self.session = session
        self.send_code = send_code
        self.ttl = timedelta(seconds=ttl_seconds)

    def issue_code(self, role, principal, deliver_to, purpose='Login'):
        role = Role(role)
        code = generate_code()
        now = datetime.utcnow()

        record = self.session.query(OneTimeCode).filter_by(role=role.value, principal=principal).first()
        if record is None:
            record = OneTimeCode(role=role.value, principal=principal)
            self.session.add(record)
        record.code = code
        record.created_at = now
        record.expires_at = now + self.ttl
        self.session.flush()

        if not self.send_code(deliver_to, code, purpose):
            self.session.rollback()
            raise DependencyError('Failed to send the verification code.')

        self.session.commit()
        logger.info('Issued %s code for %s', role.value, principal)

    def verify_code(self, role, principal, submitted):
        role = Role(role)
        record = self.session.query(OneTimeCode).filter_by(role=role.value, principal=principal).first()
        if record is None:
            raise CodeNotFound()

        if datetime.utcnow() > record.expires_at:
            self.session.delete(record)
            self.session.commit()
            raise CodeExpired()

        if not hmac.compare_digest(record.code.encode(), str(submitted or '').strip().encode()):
            raise CodeMismatch()

        self.session.delete(record)
        self.session.commit()

    # Role flows

    def send_admin_code(self, email):
        admin = self.session.query(Administrator).filter_by(email=email, role=ROLE_ADMIN).first()
        if not admin:
            raise AdministratorNotFound('Not an admin account.')
        self.issue_code(Role.ADMIN, email, admin.email, purpose='Admin Login')

    def login_admin(self, email, code):
        admin = self.session.query(Administrator).filter_by(email=email, role=ROLE_ADMIN).first()
        if not admin:
            raise AdministratorNotFound('Not an admin account.')
        self.verify_code(Role.ADMIN, email, code)
        logger.info('Admin %s logged in', admin.email)
        return issue_session(admin.id, Role.ADMIN)

    def send_subadmin_code(self, phone):
        subadmin = self.session.query(Administrator).filter_by(phone=phone, role=ROLE_SUBADMIN).first()
        if not subadmin:
            raise AdministratorNotFound('Sub Admin not found.')
        # Delivered by email until an SMS collaborator exists
        self.issue_code(Role.SUBADMIN, phone, subadmin.email, purpose='Sub Admin Login')

    def login_subadmin(self, phone, password, code):
        subadmin = self.session.query(Administrator).filter_by(phone=phone, role=ROLE_SUBADMIN).first()
        if not subadmin:
            raise AdministratorNotFound('Sub Admin not found.')
        if not subadmin.check_password(password or ''):
            raise AuthError('Invalid password.')
        self.verify_code(Role.SUBADMIN, phone, code)
        logger.info('Sub admin %s logged in', subadmin.email)
        return issue_session(subadmin.id, Role.SUBADMIN)

    def send_voter_code(self, email):
        voter = self._active_voter(email)
        self.issue_code(Role.VOTER, email, voter.email, purpose='Voter Login')

    def login_voter(self, email, code):
        voter = self._active_voter(email)
        self.verify_code(Role.VOTER, email, code)
        status = ElectionLifecycle(self.session).get_status()
        logger.info('Voter %s logged in', voter.voter_id)
        return issue_session(voter.voter_id, Role.VOTER,
                             has_voted=voter.has_voted,
                             voting_status=status.voting_status)

    def send_candidate_code(self, email):
        nomination = self.session.query(Nomination).filter_by(email=email).first()
        if not nomination:
            raise NominationNotFound('No nomination found for this email.')
        self.issue_code(Role.CANDIDATE, email, nomination.email, purpose='Candidate Login')

    def login_candidate(self, email, code):
        nomination = self.session.query(Nomination).filter_by(email=email).first()
        if not nomination:
            raise NominationNotFound('No nomination found for this email.')
        self.verify_code(Role.CANDIDATE, email, code)
        return issue_session(nomination.nomination_id, Role.CANDIDATE)

    def _active_voter(self, email):
        voter = self.session.query(Voter).filter_by(email=email).first()
        if not voter:
            raise VoterNotFound('Email not registered as a voter.')
        if voter.status != VOTER_ACTIVE:
            raise VoterInactive()
        return voter

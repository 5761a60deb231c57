"""
Unit tests for one-time codes and the per-role login flows.
"""

from datetime import datetime, timedelta

import pytest

from errors import (AdministratorNotFound, AuthError, CodeExpired, CodeMismatch,
                    CodeNotFound, DependencyError, NominationNotFound,
                    VoterInactive, VoterNotFound)
from models import OneTimeCode, db
from services.otp import CodeAuthenticator
from services.sessions import Role, load_session
from services.voters import VoterRegistry
from utils import generate_code, send_code_email


@pytest.fixture
def authenticator(app):
    return CodeAuthenticator(db.session, send_code_email, ttl_seconds=300)


class TestCodeGeneration:

    def test_codes_are_six_digits_in_range(self):
        for _ in range(200):
            code = generate_code()
            assert len(code) == 6
            assert 100000 <= int(code) <= 999999


class TestIssueAndVerify:

    def test_round_trip_succeeds_once(self, authenticator, mailer):
        authenticator.issue_code(Role.VOTER, 'v@example.com', 'v@example.com')
        code = mailer.last_code('v@example.com')

        authenticator.verify_code(Role.VOTER, 'v@example.com', code)

        with pytest.raises(CodeNotFound):
            authenticator.verify_code(Role.VOTER, 'v@example.com', code)

    def test_codes_are_single_use_for_admins_too(self, authenticator, mailer):
        authenticator.issue_code(Role.ADMIN, 'a@example.com', 'a@example.com')
        code = mailer.last_code()

        authenticator.verify_code(Role.ADMIN, 'a@example.com', code)

        with pytest.raises(CodeNotFound):
            authenticator.verify_code(Role.ADMIN, 'a@example.com', code)

    def test_missing_code(self, authenticator):
        with pytest.raises(CodeNotFound):
            authenticator.verify_code(Role.VOTER, 'nobody@example.com', '123456')

    def test_wrong_code_keeps_record(self, authenticator, mailer):
        authenticator.issue_code(Role.VOTER, 'v@example.com', 'v@example.com')
        code = mailer.last_code()
        wrong = '100000' if code != '100000' else '100001'

        with pytest.raises(CodeMismatch):
            authenticator.verify_code(Role.VOTER, 'v@example.com', wrong)

        authenticator.verify_code(Role.VOTER, 'v@example.com', code)

    def test_expired_code_is_removed(self, authenticator, mailer):
        authenticator.issue_code(Role.SUBADMIN, '01700000000', 's@example.com')
        code = mailer.last_code()
        record = OneTimeCode.query.one()
        record.expires_at = datetime.utcnow() - timedelta(seconds=1)
        db.session.commit()

        with pytest.raises(CodeExpired):
            authenticator.verify_code(Role.SUBADMIN, '01700000000', code)
        assert OneTimeCode.query.count() == 0

    def test_reissue_replaces_previous_code(self, authenticator, mailer, mocker):
        mocker.patch('services.otp.generate_code', side_effect=['111111', '222222'])
        authenticator.issue_code(Role.VOTER, 'v@example.com', 'v@example.com')
        authenticator.issue_code(Role.VOTER, 'v@example.com', 'v@example.com')

        assert OneTimeCode.query.count() == 1
        with pytest.raises(CodeMismatch):
            authenticator.verify_code(Role.VOTER, 'v@example.com', '111111')
        authenticator.verify_code(Role.VOTER, 'v@example.com', '222222')

    def test_codes_are_scoped_by_role(self, authenticator, mailer):
        authenticator.issue_code(Role.CANDIDATE, 'x@example.com', 'x@example.com')
        code = mailer.last_code()

        with pytest.raises(CodeNotFound):
            authenticator.verify_code(Role.VOTER, 'x@example.com', code)

    def test_delivery_failure_discards_code(self, authenticator, mailer):
        mailer.fail = True

        with pytest.raises(DependencyError):
            authenticator.issue_code(Role.VOTER, 'v@example.com', 'v@example.com')
        assert OneTimeCode.query.count() == 0


class TestAdminFlow:

    def test_admin_login(self, authenticator, mailer, admin):
        authenticator.send_admin_code(admin.email)
        session = authenticator.login_admin(admin.email, mailer.last_code(admin.email))

        principal = load_session(session['token'])
        assert principal.role == Role.ADMIN
        assert principal.subject == str(admin.id)

    def test_unknown_admin_gets_no_code(self, authenticator, mailer):
        with pytest.raises(AdministratorNotFound):
            authenticator.send_admin_code('stranger@example.com')
        assert mailer.sent == []


class TestSubAdminFlow:

    @pytest.fixture
    def subadmin(self, admin):
        return VoterRegistry(db.session).create_sub_admin(
            'Karim', 'karim@example.com', '01812345678', 'correct-horse', created_by=admin.id)

    def test_code_is_mailed_to_subadmin_email(self, authenticator, mailer, subadmin):
        authenticator.send_subadmin_code(subadmin.phone)

        assert mailer.sent[-1]['to'] == 'karim@example.com'

    def test_login_needs_password_and_code(self, authenticator, mailer, subadmin):
        authenticator.send_subadmin_code(subadmin.phone)
        code = mailer.last_code()

        session = authenticator.login_subadmin(subadmin.phone, 'correct-horse', code)

        assert load_session(session['token']).role == Role.SUBADMIN

    def test_wrong_password_does_not_consume_code(self, authenticator, mailer, subadmin):
        authenticator.send_subadmin_code(subadmin.phone)
        code = mailer.last_code()

        with pytest.raises(AuthError):
            authenticator.login_subadmin(subadmin.phone, 'wrong-password', code)

        authenticator.login_subadmin(subadmin.phone, 'correct-horse', code)

    def test_unknown_phone(self, authenticator):
        with pytest.raises(AdministratorNotFound):
            authenticator.send_subadmin_code('01999999999')


class TestVoterFlow:

    def test_voter_session_carries_snapshot(self, authenticator, mailer, make_voter):
        voter = make_voter()
        authenticator.send_voter_code(voter.email)
        session = authenticator.login_voter(voter.email, mailer.last_code(voter.email))

        principal = load_session(session['token'])
        assert principal.role == Role.VOTER
        assert principal.subject == voter.voter_id
        assert principal.claims == {'has_voted': False, 'voting_status': 'NotStarted'}

    def test_unregistered_email(self, authenticator):
        with pytest.raises(VoterNotFound):
            authenticator.send_voter_code('ghost@example.com')

    def test_inactive_voter(self, authenticator, make_voter):
        voter = make_voter()
        VoterRegistry(db.session).update_voter(voter.voter_id, {'status': 'inactive'})

        with pytest.raises(VoterInactive):
            authenticator.send_voter_code(voter.email)


class TestCandidateFlow:

    def test_candidate_login(self, authenticator, mailer, make_nomination):
        nomination = make_nomination(status='Pending')
        authenticator.send_candidate_code(nomination.email)
        session = authenticator.login_candidate(nomination.email, mailer.last_code())

        principal = load_session(session['token'])
        assert principal.role == Role.CANDIDATE
        assert principal.subject == nomination.nomination_id

    def test_no_nomination(self, authenticator):
        with pytest.raises(NominationNotFound):
            authenticator.send_candidate_code('nobody@example.com')

"""
Pytest configuration and shared fixtures for the test suite.
"""

import re
from datetime import date

import pytest
from flask import g

from app import create_app
from config import TestConfig
from errors import DependencyError
from models import (CURRENT_ELECTION, NOMINATION_APPROVED, ROLE_ADMIN,
                    VOTING_NOT_STARTED, Administrator, Election, Nomination, db)
from services.sessions import issue_session
from services.voters import VoterRegistry

CODE_PATTERN = re.compile(r'<h1>(\d{6})</h1>')


class FakeMailer:
    """Records outgoing mail instead of calling Gmail."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to_email, subject, html_body):
        if self.fail:
            return False
        self.sent.append({'to': to_email, 'subject': subject, 'html': html_body})
        return True

    def last_code(self, to_email=None):
        for message in reversed(self.sent):
            if to_email is None or message['to'] == to_email:
                match = CODE_PATTERN.search(message['html'])
                if match:
                    return match.group(1)
        return None


class FakeGateway:
    """Stands in for SSLCommerz."""

    def __init__(self):
        self.sessions = []
        self.fail = False
        self.valid = True

    def create_session(self, amount, currency, transaction_id, buyer, callback_urls):
        if self.fail:
            raise DependencyError('Payment gateway is unavailable.')
        self.sessions.append({'amount': amount, 'currency': currency, 'tran_id': transaction_id,
                              'buyer': buyer, 'urls': callback_urls})
        return f'https://sandbox.sslcommerz.test/pay/{transaction_id}'

    def validate(self, val_id, transaction_id):
        return self.valid


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(mailer, gateway):
    app = create_app(TestConfig)
    app.extensions['mailer'] = mailer
    app.extensions['payment_gateway'] = gateway

    # The test app context outlives each request, so drop the principal
    # Flask-Login cached on g by the previous request
    @app.before_request
    def forget_principal():
        g.pop('_login_user', None)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(app):
    return Administrator.query.filter_by(email=TestConfig.ADMIN_EMAIL, role=ROLE_ADMIN).one()


@pytest.fixture
def set_phase(app):
    """Puts the current election into the given phase."""
    def _set(voting_status=VOTING_NOT_STARTED, nomination_open=False):
        election = Election.query.filter_by(key=CURRENT_ELECTION).first()
        if election is None:
            election = Election(key=CURRENT_ELECTION)
            db.session.add(election)
        election.nomination_open = nomination_open
        election.voting_status = voting_status
        db.session.commit()
        return election
    return _set


@pytest.fixture
def sample_voter_data():
    return {
        'name': 'Rahim Uddin',
        'email': 'rahim@example.com',
        'phone': '01711111111',
        'date_of_birth': date(1990, 5, 17),
        'district': 'Dhaka',
        'sub_district': 'Savar',
        'union': 'Ashulia',
        'blood_group': 'O+',
    }


@pytest.fixture
def make_voter(app, sample_voter_data):
    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        data = dict(sample_voter_data,
                    email=f"voter{counter['n']}@example.com",
                    phone=f"0171000{counter['n']:04d}")
        data.update(overrides)
        return VoterRegistry(db.session).register_voter(data)
    return _make


@pytest.fixture
def make_nomination(app):
    counter = {'n': 0}

    def _make(status=NOMINATION_APPROVED, vote_count=0, **overrides):
        counter['n'] += 1
        nomination = Nomination(
            nomination_id=f"NOM-TEST-{counter['n']}",
            name=overrides.get('name', f"Candidate {counter['n']}"),
            email=overrides.get('email', f"candidate{counter['n']}@example.com"),
            symbol=overrides.get('symbol', f"Symbol {counter['n']}"),
            status=status,
            vote_count=vote_count,
        )
        db.session.add(nomination)
        db.session.commit()
        return nomination
    return _make


@pytest.fixture
def auth_header(app):
    def _header(subject, role, **claims):
        token = issue_session(subject, role, **claims)['token']
        return {'Authorization': f'Bearer {token}'}
    return _header

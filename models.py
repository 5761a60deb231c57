from datetime import datetime, date
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

ROLE_ADMIN = 'admin'
ROLE_SUBADMIN = 'subadmin'

VOTER_ACTIVE = 'active'
VOTER_INACTIVE = 'inactive'

NOMINATION_PENDING = 'Pending'
NOMINATION_APPROVED = 'Approved'
NOMINATION_REJECTED = 'Rejected'

VOTING_NOT_STARTED = 'NotStarted'
VOTING_STARTED = 'Started'
VOTING_ENDED = 'Ended'

PAYMENT_INITIATED = 'INITIATED'
PAYMENT_PAID = 'PAID'
PAYMENT_FAILED = 'FAILED'
PAYMENT_CANCELLED = 'CANCELLED'

CURRENT_ELECTION = 'current'


def age_on(date_of_birth, today=None):
    today = today or date.today()
    before_birthday = (today.month, today.day) < (date_of_birth.month, date_of_birth.day)
    return today.year - date_of_birth.year - int(before_birthday)


class Administrator(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(20), unique=True, nullable=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_ADMIN) # admin, subadmin
    password_hash = db.Column(db.String(255), nullable=True) # Sub-admins only
    created_by = db.Column(db.Integer, db.ForeignKey('administrator.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'role': self.role,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class Voter(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    voter_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(20), unique=True, nullable=False)
    date_of_birth = db.Column(db.Date, nullable=False)
    district = db.Column(db.String(80), nullable=False)
    sub_district = db.Column(db.String(80), nullable=False)
    union = db.Column(db.String(80), nullable=False)
    blood_group = db.Column(db.String(5), nullable=True)
    status = db.Column(db.String(20), default=VOTER_ACTIVE) # active, inactive
    has_voted = db.Column(db.Boolean, default=False, nullable=False)
    voted_at = db.Column(db.DateTime, nullable=True)
    registered_by = db.Column(db.Integer, db.ForeignKey('administrator.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    vote = db.relationship('Vote', backref='voter', uselist=False, lazy=True)

    @property
    def age(self):
        return age_on(self.date_of_birth)

    def to_dict(self):
        return {
            'voterId': self.voter_id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'dateOfBirth': self.date_of_birth.isoformat(),
            'age': self.age,
            'district': self.district,
            'subDistrict': self.sub_district,
            'union': self.union,
            'bloodGroup': self.blood_group,
            'status': self.status,
            'hasVoted': self.has_voted,
            'votedAt': self.voted_at.isoformat() if self.voted_at else None,
        }


class Nomination(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    nomination_id = db.Column(db.String(40), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    symbol = db.Column(db.String(60), nullable=False)
    manifesto = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), default=NOMINATION_PENDING, nullable=False) # Pending, Approved, Rejected
    vote_count = db.Column(db.Integer, default=0, nullable=False)
    transaction_id = db.Column(db.String(64), db.ForeignKey('payment.transaction_id'), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    reviewed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint('vote_count >= 0', name='ck_nomination_vote_count'),
    )

    votes = db.relationship('Vote', backref='nomination', lazy=True)

    def to_dict(self, with_votes=True):
        data = {
            'nominationId': self.nomination_id,
            'name': self.name,
            'email': self.email,
            'symbol': self.symbol,
            'manifesto': self.manifesto,
            'status': self.status,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
        if with_votes:
            data['votes'] = self.vote_count
        return data

    def to_public_dict(self):
        return {
            'nominationId': self.nomination_id,
            'name': self.name,
            'symbol': self.symbol,
            'manifesto': self.manifesto,
        }


class Vote(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    voter_id = db.Column(db.Integer, db.ForeignKey('voter.id'), unique=True, nullable=False)
    nomination_id = db.Column(db.Integer, db.ForeignKey('nomination.id'), nullable=False)
    cast_at = db.Column(db.DateTime, default=datetime.utcnow)


class Election(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(20), unique=True, nullable=False, default=CURRENT_ELECTION)
    nomination_open = db.Column(db.Boolean, default=False, nullable=False)
    voting_status = db.Column(db.String(20), default=VOTING_NOT_STARTED, nullable=False) # NotStarted, Started, Ended
    voting_started_at = db.Column(db.DateTime, nullable=True)
    voting_ended_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'nominationOpen': self.nomination_open,
            'votingStatus': self.voting_status,
            'votingStartedAt': self.voting_started_at.isoformat() if self.voting_started_at else None,
            'votingEndedAt': self.voting_ended_at.isoformat() if self.voting_ended_at else None,
        }


class OneTimeCode(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    role = db.Column(db.String(20), nullable=False)
    principal = db.Column(db.String(120), nullable=False) # email or phone
    code = db.Column(db.String(6), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('role', 'principal', name='uq_code_role_principal'),
    )


class Payment(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    payer_name = db.Column(db.String(100), nullable=True)
    payer_email = db.Column(db.String(120), nullable=True)
    amount = db.Column(db.Integer, nullable=True)
    currency = db.Column(db.String(8), nullable=True)
    status = db.Column(db.String(20), default=PAYMENT_INITIATED, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    outcomes = db.relationship('PaymentOutcome', backref='payment', lazy=True,
                               order_by='PaymentOutcome.id')


class PaymentOutcome(db.Model):
    """Append-only log of gateway callbacks."""
    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(64), db.ForeignKey('payment.transaction_id'), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False)
    raw = db.Column(db.JSON, nullable=True)
    received_at = db.Column(db.DateTime, default=datetime.utcnow)

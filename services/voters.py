import logging
import secrets

from sqlalchemy.exc import IntegrityError

from errors import StateConflictError, ValidationError, VoterNotFound
from models import (ROLE_SUBADMIN, VOTER_ACTIVE, VOTER_INACTIVE,
                    Administrator, Voter, age_on)

logger = logging.getLogger(__name__)

MIN_VOTING_AGE = 18

EDITABLE_FIELDS = ('name', 'email', 'phone', 'date_of_birth', 'district',
                   'sub_district', 'union', 'blood_group', 'status')


def check_voting_age(date_of_birth):
    if age_on(date_of_birth) < MIN_VOTING_AGE:
        raise ValidationError(f'Voter must be at least {MIN_VOTING_AGE} years old.')


class VoterRegistry:
    """Voter and sub-admin records kept by the commission."""

    def __init__(self, session):
        self.session = session

    def _new_voter_id(self):
        while True:
            voter_id = f'VTR-{secrets.token_hex(4).upper()}'
            if not self.session.query(Voter).filter_by(voter_id=voter_id).first():
                return voter_id

    def _check_unique(self, email=None, phone=None, exclude_id=None):
        if email:
            query = self.session.query(Voter).filter(Voter.email == email)
            if exclude_id:
                query = query.filter(Voter.id != exclude_id)
            if query.first():
                raise ValidationError('A voter with this email already exists.')
        if phone:
            query = self.session.query(Voter).filter(Voter.phone == phone)
            if exclude_id:
                query = query.filter(Voter.id != exclude_id)
            if query.first():
                raise ValidationError('A voter with this phone number already exists.')

    def _commit(self):
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ValidationError('A voter with this email or phone number already exists.')

    def register_voter(self, data, registered_by=None):
        check_voting_age(data['date_of_birth'])
        email = data['email'].strip().lower()
        self._check_unique(email=email, phone=data['phone'])

        voter = Voter(
            voter_id=self._new_voter_id(),
            name=data['name'],
            email=email,
            phone=data['phone'],
            date_of_birth=data['date_of_birth'],
            district=data['district'],
            sub_district=data['sub_district'],
            union=data['union'],
            blood_group=data.get('blood_group') or None,
            status=VOTER_ACTIVE,
            has_voted=False,
            registered_by=registered_by,
        )
        self.session.add(voter)
        self._commit()
        logger.info('Voter %s registered by %s', voter.voter_id, registered_by)
        return voter

    def get_voter(self, voter_id):
        voter = self.session.query(Voter).filter_by(voter_id=voter_id).first()
        if voter is None:
            raise VoterNotFound()
        return voter

    def list_voters(self, district=None):
        query = self.session.query(Voter)
        if district:
            query = query.filter_by(district=district)
        return query.order_by(Voter.created_at, Voter.id).all()

    def update_voter(self, voter_id, changes):
        voter = self.get_voter(voter_id)
        changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v not in (None, '')}

        if 'date_of_birth' in changes:
            check_voting_age(changes['date_of_birth'])
        if 'status' in changes and changes['status'] not in (VOTER_ACTIVE, VOTER_INACTIVE):
            raise ValidationError('Status must be active or inactive.')
        if 'email' in changes:
            changes['email'] = changes['email'].strip().lower()
        self._check_unique(email=changes.get('email'), phone=changes.get('phone'), exclude_id=voter.id)

        for field, value in changes.items():
            setattr(voter, field, value)
        self._commit()
        logger.info('Voter %s updated: %s', voter_id, ', '.join(sorted(changes)))
        return voter

    def remove_voter(self, voter_id, actor=None):
        voter = self.get_voter(voter_id)
        if voter.has_voted:
            raise StateConflictError('A voter who has already voted cannot be removed.')
        self.session.delete(voter)
        self.session.commit()
        logger.info('Voter %s removed by %s', voter_id, actor)

    # Sub admins

    def create_sub_admin(self, name, email, phone, password, created_by=None):
        email = email.strip().lower()
        existing = self.session.query(Administrator).filter(
            (Administrator.email == email) | (Administrator.phone == phone)
        ).first()
        if existing:
            raise ValidationError('Sub Admin already exists.')

        subadmin = Administrator(name=name, email=email, phone=phone, role=ROLE_SUBADMIN,
                                 created_by=created_by)
        subadmin.set_password(password)
        self.session.add(subadmin)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ValidationError('Sub Admin already exists.')
        logger.info('Sub admin %s created by %s', email, created_by)
        return subadmin

    def list_sub_admins(self):
        return self.session.query(Administrator).filter_by(role=ROLE_SUBADMIN).order_by(Administrator.id).all()

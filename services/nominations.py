import logging
import secrets
import time
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from errors import (AuthError, DependencyError, NominationClosed,
                    NominationNotFound, PaymentRequired, StateConflictError,
                    ValidationError)
from models import (NOMINATION_APPROVED, NOMINATION_PENDING,
                    NOMINATION_REJECTED, PAYMENT_CANCELLED, PAYMENT_FAILED,
                    PAYMENT_INITIATED, PAYMENT_PAID, VOTING_NOT_STARTED,
                    Nomination, Payment, PaymentOutcome)
from services.election import ElectionLifecycle

logger = logging.getLogger(__name__)

PAYMENT_OUTCOMES = (PAYMENT_PAID, PAYMENT_FAILED, PAYMENT_CANCELLED)
REVIEW_STATUSES = (NOMINATION_APPROVED, NOMINATION_REJECTED)


def _millis():
    return int(time.time() * 1000)


def new_transaction_id():
    return f'TXN_{_millis()}_{secrets.token_hex(3).upper()}'


def new_nomination_id():
    return f'NOM-{_millis()}-{secrets.token_hex(3).upper()}'


class NominationWorkflow:

    def __init__(self, session, config, gateway=None, notify=None):
        self.session = session
        self.config = config
        self.gateway = gateway
        self.notify = notify

    # Filing fee

    def callback_urls(self):
        base = self.config['BACKEND_URL'].rstrip('/')
        return {
            'success': f'{base}/payment/success',
            'fail': f'{base}/payment/fail',
            'cancel': f'{base}/payment/cancel',
            'ipn': f'{base}/payment/ipn',
        }

    def _check_can_nominate(self, email):
        if not ElectionLifecycle(self.session).get_status().nomination_open:
            raise NominationClosed()
        if self.session.query(Nomination).filter_by(email=email).first():
            raise ValidationError('You have already submitted a nomination.')

    def initiate_payment(self, name, email, phone=None):
        email = email.strip().lower()
        self._check_can_nominate(email)

        transaction_id = new_transaction_id()
        payment = Payment(
            transaction_id=transaction_id,
            payer_name=name,
            payer_email=email,
            amount=self.config['NOMINATION_FEE'],
            currency=self.config['NOMINATION_FEE_CURRENCY'],
            status=PAYMENT_INITIATED,
        )
        self.session.add(payment)
        self.session.flush()

        try:
            url = self.gateway.create_session(
                payment.amount, payment.currency, transaction_id,
                {'name': name, 'email': email, 'phone': phone},
                self.callback_urls(),
            )
        except DependencyError:
            self.session.rollback()
            raise

        self.session.commit()
        logger.info('Payment %s initiated for %s', transaction_id, email)
        return url, transaction_id

    def record_payment_outcome(self, transaction_id, status, raw_payload=None, val_id=None):
        if not transaction_id:
            raise ValidationError('Invalid payment response.')
        status = (status or '').upper()
        if status not in PAYMENT_OUTCOMES:
            raise ValidationError(f'Unknown payment status: {status}')

        if status == PAYMENT_PAID and self.config['PAYMENT_VALIDATE_CALLBACKS']:
            if not val_id or not self.gateway.validate(val_id, transaction_id):
                logger.warning('Rejected unverified payment callback for %s', transaction_id)
                raise AuthError('Payment could not be verified with the gateway.')

        payment = self.session.query(Payment).filter_by(transaction_id=transaction_id).first()
        if payment is None:
            logger.warning('Payment callback for unknown transaction %s', transaction_id)
            payment = Payment(transaction_id=transaction_id, status=PAYMENT_INITIATED)
            self.session.add(payment)

        self.session.add(PaymentOutcome(transaction_id=transaction_id, status=status, raw=raw_payload))
        if payment.status != PAYMENT_PAID:
            payment.status = status
        self.session.commit()
        logger.info('Payment %s recorded as %s', transaction_id, status)
        return payment

    # Nominations

    def submit_nomination(self, data):
        email = data['email'].strip().lower()
        self._check_can_nominate(email)

        symbol = data['symbol'].strip()
        symbol_taken = self.session.query(Nomination).filter(
            func.lower(Nomination.symbol) == symbol.lower(),
            Nomination.status != NOMINATION_REJECTED,
        ).first()
        if symbol_taken:
            raise ValidationError('This symbol is already taken by another candidate.')

        transaction_id = data.get('transaction_id') or None
        payment = None
        if transaction_id:
            payment = self.session.query(Payment).filter_by(transaction_id=transaction_id,
                                                            status=PAYMENT_PAID).first()
        paid_by_applicant = payment is not None and (payment.payer_email or '').strip().lower() == email

        if self.config['NOMINATION_FEE_REQUIRED']:
            if not transaction_id:
                raise PaymentRequired()
            if payment is None:
                raise PaymentRequired('No completed payment found for this transaction.')
            if not paid_by_applicant:
                logger.warning('Nomination by %s refused: transaction %s was paid by someone else',
                               email, transaction_id)
                raise PaymentRequired('This payment belongs to another applicant.')
            if self.session.query(Nomination).filter_by(transaction_id=transaction_id).first():
                raise PaymentRequired('This payment has already been used for a nomination.')
        elif not paid_by_applicant:
            transaction_id = None

        nomination = Nomination(
            nomination_id=new_nomination_id(),
            name=data['name'],
            email=email,
            phone=data.get('phone') or None,
            symbol=symbol,
            manifesto=data.get('manifesto') or None,
            status=NOMINATION_PENDING,
            vote_count=0,
            transaction_id=transaction_id,
        )
        self.session.add(nomination)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise StateConflictError('This nomination or payment has already been submitted.')

        logger.info('Nomination %s submitted by %s', nomination.nomination_id, email)
        return nomination

    def get_nomination(self, nomination_id):
        nomination = self.session.query(Nomination).filter_by(nomination_id=nomination_id).first()
        if nomination is None:
            raise NominationNotFound()
        return nomination

    def list_nominations(self, approved_only=False):
        query = self.session.query(Nomination)
        if approved_only:
            query = query.filter_by(status=NOMINATION_APPROVED)
        return query.order_by(Nomination.created_at, Nomination.id).all()

    def review_nomination(self, nomination_id, status, actor=None):
        """Approves or rejects a nomination. Returns (nomination, notified)."""
        if status not in REVIEW_STATUSES:
            raise ValidationError('Status must be Approved or Rejected.')

        if ElectionLifecycle(self.session).get_status().voting_status != VOTING_NOT_STARTED:
            raise StateConflictError('Nominations cannot be reviewed once voting has started.')

        nomination = self.get_nomination(nomination_id)
        nomination.status = status
        nomination.reviewed_at = datetime.utcnow()
        self.session.commit()
        logger.info('Nomination %s marked %s by %s', nomination_id, status, actor)

        notified = False
        if self.notify:
            notified = bool(self.notify(nomination))
            if not notified:
                logger.warning('Could not notify %s about nomination review', nomination.email)
        return nomination, notified

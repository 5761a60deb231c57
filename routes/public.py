from flask import Blueprint, current_app, redirect, request
from flask_login import current_user

from forms import EmailCodeForm, EmailForm, NominationForm, PaymentForm, VoteForm, validated
from models import PAYMENT_CANCELLED, PAYMENT_FAILED, PAYMENT_PAID, db
from services.election import ElectionLifecycle
from services.nominations import NominationWorkflow
from services.otp import CodeAuthenticator
from services.sessions import Capability, requires
from services.tally import TallyEngine
from utils import respond, send_code_email

public_bp = Blueprint('public', __name__)

# SSLCommerz reports VALID/VALIDATED for a completed payment
GATEWAY_STATUSES = {
    'VALID': PAYMENT_PAID,
    'VALIDATED': PAYMENT_PAID,
    'FAILED': PAYMENT_FAILED,
    'CANCELLED': PAYMENT_CANCELLED,
}


def authenticator():
    return CodeAuthenticator(db.session, send_code_email, current_app.config['OTP_TTL_SECONDS'])


def workflow():
    return NominationWorkflow(db.session, current_app.config,
                              gateway=current_app.extensions['payment_gateway'])


@public_bp.route('/')
def index():
    return respond('Online Election System API')


@public_bp.route('/election/status')
def election_status():
    status = ElectionLifecycle(db.session).get_status()
    return respond('Election status', **status.to_dict())


# Nomination fee

@public_bp.route('/payment/initiate', methods=['POST'])
def initiate_payment():
    form = validated(PaymentForm)
    url, transaction_id = workflow().initiate_payment(form.name.data, form.email.data, form.phone.data)
    return respond('Payment session created', url=url, transactionId=transaction_id)


def _record_callback(default_status):
    data = request.form.to_dict() or (request.get_json(silent=True) or {})
    status = GATEWAY_STATUSES.get((data.get('status') or '').upper(), default_status)
    return workflow().record_payment_outcome(data.get('tran_id'), status, raw_payload=data,
                                             val_id=data.get('val_id'))


@public_bp.route('/payment/success', methods=['POST'])
def payment_success():
    _record_callback(PAYMENT_PAID)
    return redirect(f"{current_app.config['FRONTEND_URL']}/payment-success")


@public_bp.route('/payment/fail', methods=['POST'])
def payment_fail():
    _record_callback(PAYMENT_FAILED)
    return redirect(f"{current_app.config['FRONTEND_URL']}/payment-failed")


@public_bp.route('/payment/cancel', methods=['POST'])
def payment_cancel():
    _record_callback(PAYMENT_CANCELLED)
    return redirect(f"{current_app.config['FRONTEND_URL']}/payment-cancelled")


@public_bp.route('/payment/ipn', methods=['POST'])
def payment_ipn():
    payment = _record_callback(None)
    return respond('Payment notification recorded', transactionId=payment.transaction_id,
                   status=payment.status)


@public_bp.route('/nominate', methods=['POST'])
def nominate():
    form = validated(NominationForm)
    nomination = workflow().submit_nomination(form.data)
    return respond('Nomination submitted successfully. Pending admin approval.', http_status=201,
                   nominationId=nomination.nomination_id)


# Voter login

@public_bp.route('/voter/send-code', methods=['POST'])
def voter_send_code():
    form = validated(EmailForm)
    authenticator().send_voter_code(form.email.data.strip().lower())
    return respond('Code sent successfully')


@public_bp.route('/voter/verify-code', methods=['POST'])
def voter_verify_code():
    form = validated(EmailCodeForm)
    session = authenticator().login_voter(form.email.data.strip().lower(), form.code.data)
    return respond('Login successful', **session)


# Candidate login

@public_bp.route('/candidate/send-code', methods=['POST'])
def candidate_send_code():
    form = validated(EmailForm)
    authenticator().send_candidate_code(form.email.data.strip().lower())
    return respond('Code sent successfully')


@public_bp.route('/candidate/verify-code', methods=['POST'])
def candidate_verify_code():
    form = validated(EmailCodeForm)
    session = authenticator().login_candidate(form.email.data.strip().lower(), form.code.data)
    return respond('Login successful', **session)


@public_bp.route('/candidate/nomination')
@requires(Capability.VIEW_OWN_NOMINATION)
def own_nomination():
    nomination = workflow().get_nomination(current_user.subject)
    return respond('Nomination', nomination=nomination.to_dict())


# Voting

@public_bp.route('/candidates')
def candidates():
    listed = TallyEngine(db.session).get_candidate_list()
    return respond('Candidates', candidates=[n.to_public_dict() for n in listed])


@public_bp.route('/vote', methods=['POST'])
@requires(Capability.CAST_VOTE)
def cast_vote():
    form = validated(VoteForm)
    cast_at = TallyEngine(db.session).cast_vote(current_user.subject, form.nomination_id.data.strip())
    return respond('Vote Recorded', votedAt=cast_at.isoformat())


@public_bp.route('/results')
def results():
    outcome = TallyEngine(db.session).get_results()
    if not outcome.available:
        return respond('Results are not available until voting has ended.', success=False, **outcome.to_dict())
    return respond('Election results', **outcome.to_dict())

from flask import Blueprint, current_app, request
from flask_login import current_user

from forms import EmailCodeForm, EmailForm, ReviewForm, SubAdminForm, validated
from models import NOMINATION_APPROVED, db
from services.election import ElectionLifecycle
from services.nominations import NominationWorkflow
from services.otp import CodeAuthenticator
from services.sessions import Capability, requires
from services.tally import TallyEngine
from services.voters import VoterRegistry
from utils import respond, send_code_email, send_review_email

admin_bp = Blueprint('admin', __name__)


def authenticator():
    return CodeAuthenticator(db.session, send_code_email, current_app.config['OTP_TTL_SECONDS'])


@admin_bp.route('/send-code', methods=['POST'])
def send_code():
    form = validated(EmailForm)
    authenticator().send_admin_code(form.email.data.strip().lower())
    return respond('Code sent successfully')


@admin_bp.route('/verify-code', methods=['POST'])
def verify_code():
    form = validated(EmailCodeForm)
    session = authenticator().login_admin(form.email.data.strip().lower(), form.code.data)
    return respond('Login successful', **session)


# Election phases

@admin_bp.route('/publish', methods=['POST'])
@requires(Capability.MANAGE_ELECTION)
def publish():
    election = ElectionLifecycle(db.session).publish(actor=current_user.get_id())
    return respond('Nomination Published', **election.to_dict())


@admin_bp.route('/unpublish', methods=['POST'])
@requires(Capability.MANAGE_ELECTION)
def unpublish():
    election = ElectionLifecycle(db.session).unpublish(actor=current_user.get_id())
    return respond('Nomination Closed', **election.to_dict())


@admin_bp.route('/start-voting', methods=['POST'])
@requires(Capability.MANAGE_ELECTION)
def start_voting():
    election = ElectionLifecycle(db.session).start_voting(actor=current_user.get_id())
    return respond('Voting Started', **election.to_dict())


@admin_bp.route('/end-voting', methods=['POST'])
@requires(Capability.MANAGE_ELECTION)
def end_voting():
    election = ElectionLifecycle(db.session).end_voting(actor=current_user.get_id())
    return respond('Voting Ended', **election.to_dict())


@admin_bp.route('/turnout')
@requires(Capability.VIEW_TURNOUT)
def turnout():
    return respond('Turnout', **TallyEngine(db.session).turnout())


# Nominations

def workflow():
    return NominationWorkflow(db.session, current_app.config, notify=send_review_email)


@admin_bp.route('/nominations')
@requires(Capability.REVIEW_NOMINATIONS)
def list_nominations():
    approved_only = request.args.get('status') == NOMINATION_APPROVED
    nominations = workflow().list_nominations(approved_only=approved_only)
    return respond('Nominations', nominations=[n.to_dict() for n in nominations])


@admin_bp.route('/nominations/<nomination_id>', methods=['PATCH'])
@requires(Capability.REVIEW_NOMINATIONS)
def review_nomination(nomination_id):
    form = validated(ReviewForm)
    nomination, notified = workflow().review_nomination(nomination_id, form.status.data,
                                                        actor=current_user.get_id())
    return respond('Status Updated', nomination=nomination.to_dict(), notified=notified)


# Sub admins and voters

@admin_bp.route('/sub-admins', methods=['POST'])
@requires(Capability.MANAGE_SUBADMINS)
def create_sub_admin():
    form = validated(SubAdminForm)
    subadmin = VoterRegistry(db.session).create_sub_admin(
        form.name.data, form.email.data, form.phone.data, form.password.data,
        created_by=int(current_user.subject),
    )
    return respond('Sub Admin created successfully', http_status=201, subAdmin=subadmin.to_dict())


@admin_bp.route('/sub-admins')
@requires(Capability.MANAGE_SUBADMINS)
def list_sub_admins():
    subadmins = VoterRegistry(db.session).list_sub_admins()
    return respond('Sub Admins', subAdmins=[s.to_dict() for s in subadmins])


@admin_bp.route('/voters/<voter_id>', methods=['DELETE'])
@requires(Capability.REMOVE_VOTERS)
def remove_voter(voter_id):
    VoterRegistry(db.session).remove_voter(voter_id, actor=current_user.get_id())
    return respond('Voter removed')

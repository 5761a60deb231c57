from flask import Blueprint, current_app, request
from flask_login import current_user

from forms import EditVoterForm, PhoneForm, SubAdminLoginForm, VoterForm, validated
from models import db
from services.otp import CodeAuthenticator
from services.sessions import Capability, requires
from services.voters import VoterRegistry
from utils import respond, send_code_email

subadmin_bp = Blueprint('subadmin', __name__)


@subadmin_bp.route('/send-code', methods=['POST'])
def send_code():
    form = validated(PhoneForm)
    CodeAuthenticator(db.session, send_code_email, current_app.config['OTP_TTL_SECONDS']) \
        .send_subadmin_code(form.phone.data)
    return respond('Code sent')


@subadmin_bp.route('/login', methods=['POST'])
def login():
    form = validated(SubAdminLoginForm)
    session = CodeAuthenticator(db.session, send_code_email, current_app.config['OTP_TTL_SECONDS']) \
        .login_subadmin(form.phone.data, form.password.data, form.code.data)
    return respond('Login successful', **session)


@subadmin_bp.route('/voters', methods=['POST'])
@requires(Capability.REGISTER_VOTERS)
def register_voter():
    form = validated(VoterForm)
    voter = VoterRegistry(db.session).register_voter(form.data, registered_by=int(current_user.subject))
    return respond('Voter registered successfully', http_status=201, voter=voter.to_dict())


@subadmin_bp.route('/voters')
@requires(Capability.REGISTER_VOTERS)
def list_voters():
    voters = VoterRegistry(db.session).list_voters(district=request.args.get('district'))
    return respond('Voters', voters=[v.to_dict() for v in voters])


@subadmin_bp.route('/voters/<voter_id>')
@requires(Capability.REGISTER_VOTERS)
def get_voter(voter_id):
    voter = VoterRegistry(db.session).get_voter(voter_id)
    return respond('Voter', voter=voter.to_dict())


@subadmin_bp.route('/voters/<voter_id>', methods=['PATCH'])
@requires(Capability.REGISTER_VOTERS)
def edit_voter(voter_id):
    form = validated(EditVoterForm)
    voter = VoterRegistry(db.session).update_voter(voter_id, form.data)
    return respond('Voter updated', voter=voter.to_dict())

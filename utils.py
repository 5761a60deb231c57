import base64
import logging
import os.path
import secrets
from email.message import EmailMessage
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from flask import current_app, jsonify

logger = logging.getLogger(__name__)

GMAIL_SCOPES = ['https://www.googleapis.com/auth/gmail.send']


def generate_code():
    """Six digit numeric code, uniform over 100000..999999."""
    return str(100000 + secrets.randbelow(900000))


class GmailMailer:
    """Sends mail through the Gmail API using an OAuth token file."""

    def __init__(self, token_path, sender='me'):
        self.token_path = token_path
        self.sender = sender

    def get_service(self):
        creds = None

        if os.path.exists(self.token_path):
            creds = Credentials.from_authorized_user_file(self.token_path, GMAIL_SCOPES)

        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                creds.refresh(Request())
            else:
                logger.error('Valid %s not found for Gmail API', self.token_path)
                return None

        return build('gmail', 'v1', credentials=creds, cache_discovery=False)

    def send(self, to_email, subject, html_body):
        """Returns True when Gmail accepted the message."""
        try:
            service = self.get_service()
            if not service:
                return False

            message = EmailMessage()
            message['To'] = to_email
            message['From'] = self.sender
            message['Subject'] = subject
            message.set_content('Please enable HTML to view this message.')
            message.add_alternative(html_body, subtype='html')

            encoded_message = base64.urlsafe_b64encode(message.as_bytes()).decode()
            service.users().messages().send(userId='me', body={'raw': encoded_message}).execute()
            logger.info('Email sent to %s', to_email)
            return True
        except (HttpError, GoogleAuthError, OSError) as e:
            logger.error('Failed sending email to %s: %s', to_email, e)
            return False


def init_mailer(app):
    token_path = app.config['GMAIL_TOKEN_PATH']
    if not os.path.isabs(token_path):
        token_path = os.path.join(app.root_path, token_path)
    app.extensions.setdefault('mailer', GmailMailer(token_path, app.config['GMAIL_SENDER']))


def send_email(to_email, subject, html_body):
    return current_app.extensions['mailer'].send(to_email, subject, html_body)


def send_code_email(to_email, code, purpose):
    minutes = max(current_app.config['OTP_TTL_SECONDS'] // 60, 1)
    subject = f'Election System: {purpose} Code'
    body = (
        f'<h2>Your {purpose} Code</h2>'
        f'<h1>{code}</h1>'
        f'<p>Valid for {minutes} minutes. If you did not request this, please ignore this email.</p>'
    )
    return send_email(to_email, subject, body)


def send_review_email(nomination):
    if nomination.status == 'Approved':
        subject = 'Nomination Approved'
        body = (f'<p>Dear {nomination.name},</p>'
                f'<p>Congratulations! Your nomination <strong>{nomination.nomination_id}</strong> '
                f'with the symbol <strong>{nomination.symbol}</strong> has been approved. '
                f'You are now an official candidate.</p><p>Good luck!</p>')
    else:
        subject = 'Nomination Update'
        body = (f'<p>Dear {nomination.name},</p>'
                f'<p>We regret to inform you that your nomination <strong>{nomination.nomination_id}</strong> '
                f'has been rejected.</p><p>If you have questions, please contact the administration.</p>')
    return send_email(nomination.email, subject, body)


def respond(message, http_status=200, success=True, **data):
    """JSON envelope shared by every endpoint."""
    payload = {'success': success, 'message': message}
    payload.update(data)
    return jsonify(payload), http_status

import logging
import os
import os.path
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from utils import GMAIL_SCOPES

logger = logging.getLogger(__name__)


def setup_gmail_auth(credentials_path='credentials.json', token_path='token.json'):
    """Runs the OAuth consent flow once and stores the Gmail send token.

    Returns True when a valid token file exists afterwards.
    """
    creds = None
    if os.path.exists(token_path):
        creds = Credentials.from_authorized_user_file(token_path, GMAIL_SCOPES)

    if creds and creds.valid:
        logger.info('%s is already valid', token_path)
        return True

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(Request())
    else:
        if not os.path.exists(credentials_path):
            logger.error(
                "'%s' not found. Create an OAuth Client ID (Desktop App) for the Gmail API "
                "in Google Cloud Console and download it to this path.", credentials_path)
            return False

        flow = InstalledAppFlow.from_client_secrets_file(credentials_path, GMAIL_SCOPES)
        creds = flow.run_local_server(port=0)

    with open(token_path, 'w') as token:
        token.write(creds.to_json())
    logger.info("Successfully authenticated! '%s' has been created.", token_path)
    return True


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    setup_gmail_auth()

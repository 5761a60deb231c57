"""Failures raised by the election services.

Every error carries an HTTP status and a short machine readable code. The
handlers registered in ``app.create_app`` render them as
``{"success": false, "message": ..., "error": code}``.
"""


class ElectionError(Exception):
    status_code = 500
    code = 'error'
    message = 'Something went wrong.'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {'success': False, 'message': self.message, 'error': self.code}


class ValidationError(ElectionError):
    status_code = 400
    code = 'validation_error'
    message = 'Invalid input.'


class AuthError(ElectionError):
    status_code = 401
    code = 'auth_error'
    message = 'Authentication failed.'


class ForbiddenError(AuthError):
    status_code = 403
    code = 'forbidden'
    message = 'You are not allowed to perform this action.'


class NotFoundError(ElectionError):
    status_code = 404
    code = 'not_found'
    message = 'Not found.'


class StateConflictError(ElectionError):
    status_code = 409
    code = 'state_conflict'
    message = 'The election is not in the right phase for this action.'


class DependencyError(ElectionError):
    status_code = 502
    code = 'dependency_error'
    message = 'An external service failed. Please try again.'


# Authentication

class CodeNotFound(NotFoundError):
    code = 'code_not_found'
    message = 'No verification code found. Please request a new one.'


class CodeExpired(AuthError):
    code = 'code_expired'
    message = 'Verification code has expired.'


class CodeMismatch(AuthError):
    code = 'code_mismatch'
    message = 'Invalid verification code.'


class InvalidToken(AuthError):
    code = 'invalid_token'
    message = 'Session is invalid or has expired. Please log in again.'


# Identity

class VoterNotFound(NotFoundError):
    code = 'voter_not_found'
    message = 'Voter not found.'


class AdministratorNotFound(NotFoundError):
    code = 'admin_not_found'
    message = 'Administrator not found.'


class VoterInactive(StateConflictError):
    code = 'voter_inactive'
    message = 'This voter account is inactive.'


# Nominations

class NominationNotFound(NotFoundError):
    code = 'nomination_not_found'
    message = 'Nomination not found.'


class CandidateNotFound(NotFoundError):
    code = 'candidate_not_found'
    message = 'Candidate not found or not approved.'


class NominationClosed(StateConflictError):
    code = 'nomination_closed'
    message = 'Nominations are not currently open.'


class NominationStillOpen(StateConflictError):
    code = 'nomination_open'
    message = 'Close nominations before starting the vote.'


class PaymentRequired(StateConflictError):
    status_code = 402
    code = 'payment_required'
    message = 'A paid nomination fee is required.'


# Voting

class VotingClosed(StateConflictError):
    code = 'voting_closed'
    message = 'Voting is not currently open.'


class AlreadyVoted(StateConflictError):
    code = 'already_voted'
    message = 'You have already voted.'

from typing import Dict, List, Optional


class FreelancerError(Exception):
    """Base class for every caller-visible failure"""
    code = "error"
    status_code = 400
    message = "Request failed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self) -> Dict:
        return {'error': self.code, 'message': self.message}


class DuplicateEmail(FreelancerError):
    code = "duplicate_email"
    status_code = 409
    message = "An account with this email already exists."


class LoginFailure(FreelancerError):
    """Failed verification step; counts against the login throttle"""
    status_code = 401


class UserNotFound(LoginFailure):
    code = "user_not_found"
    # same text as InvalidCredentials so accounts can't be enumerated
    message = "Invalid email or password."


class InvalidCredentials(LoginFailure):
    code = "invalid_credentials"
    message = "Invalid email or password."


class SecondFactorRequired(LoginFailure):
    code = "second_factor_required"
    message = "A two-factor code is required."


class InvalidSecondFactorCode(LoginFailure):
    code = "invalid_second_factor_code"
    message = "Invalid two-factor code."


class SecondFactorNotSetUp(FreelancerError):
    code = "second_factor_not_set_up"
    message = "Two-factor authentication is not set up for this account."


class RateLimited(FreelancerError):
    code = "rate_limited"
    status_code = 429
    message = "Too many login attempts. Please try again later."


class Unauthenticated(FreelancerError):
    code = "unauthenticated"
    status_code = 401
    message = "Authentication required."


class TaskNotFound(FreelancerError):
    code = "task_not_found"
    status_code = 404
    message = "Task not found."


class ProjectNotFound(FreelancerError):
    code = "project_not_found"
    status_code = 404
    message = "Project not found."


class ValidationFailed(FreelancerError):
    code = "validation_failed"
    message = "Please fill in the required fields."

    def __init__(self, fields: Dict[str, List[str]]):
        super().__init__()
        self.fields = fields

    def to_dict(self) -> Dict:
        payload = super().to_dict()
        payload['fields'] = self.fields
        return payload

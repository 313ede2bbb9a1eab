"""Typed errors raised by the workflow operations.

Each error carries a stable ``code`` and the HTTP status the API layer
answers with, so handlers never have to inspect messages.
"""


class WorkflowError(Exception):
    code = "workflow_error"
    http_status = 400
    default_message = "Operation failed"

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(WorkflowError):
    code = "not_found"
    http_status = 404
    default_message = "Not found"


class Forbidden(WorkflowError):
    code = "forbidden"
    http_status = 403
    default_message = "Role not allowed for this operation"


class OutOfPhaseWindow(WorkflowError):
    code = "out_of_phase_window"
    http_status = 400
    default_message = "Operation not allowed in the current phase"


class AlreadyExists(WorkflowError):
    code = "already_exists"
    http_status = 409
    default_message = "Already exists"


class DuplicateVote(AlreadyExists):
    code = "duplicate_vote"
    default_message = "Vote already cast"


class AlreadyEvaluated(AlreadyExists):
    code = "already_evaluated"
    default_message = "Submission already evaluated by this reviewer"


class InvalidTransition(WorkflowError):
    code = "invalid_transition"
    http_status = 409
    default_message = "Status transition not allowed"


class ValidationError(WorkflowError):
    code = "validation_error"
    http_status = 400
    default_message = "Invalid data"


class NotVotable(ValidationError):
    code = "not_votable"
    default_message = "Project is not open for voting"

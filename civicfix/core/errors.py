"""Error taxonomy of the approval workflow.

Every error is terminal for the call: the engine never retries and never
persists partial state. The HTTP layer maps ``status_code`` directly.
"""

from __future__ import annotations


class WorkflowError(Exception):
    kind: str = "workflow_error"
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class NotFound(WorkflowError):
    kind = "not_found"
    status_code = 404


class Forbidden(WorkflowError):
    kind = "forbidden"
    status_code = 403


class ValidationError(WorkflowError):
    kind = "validation_error"
    status_code = 400


class InvalidTransition(WorkflowError):
    kind = "invalid_transition"
    status_code = 400

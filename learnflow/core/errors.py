"""
Domain exceptions raised by the progression engine.

The API layer maps each family to an HTTP status:
InvalidRequestError -> 422, NotFoundError -> 404, ConflictError -> 409.
"""

from __future__ import annotations


class LearnflowError(Exception):
    """Base class for all progression engine errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(LearnflowError):
    """Input failed domain validation (bad amount, index out of range, ...)."""

    status_code = 422


class NotFoundError(LearnflowError):
    """Resource does not exist or is not owned by the caller."""

    status_code = 404


class ConflictError(LearnflowError):
    """Request is well-formed but conflicts with current state."""

    status_code = 409


class SequenceConflictError(ConflictError):
    """Module completion arrived out of order or was replayed."""

    def __init__(self, path_id: str, module_index: int, expected_index: int):
        super().__init__(
            f"Module {module_index} cannot be completed on path {path_id}; "
            f"next completable module is {expected_index}"
        )
        self.path_id = path_id
        self.module_index = module_index
        self.expected_index = expected_index


class ModuleLockedError(ConflictError):
    """Module is beyond the unlock frontier."""

    def __init__(self, path_id: str, module_index: int, completed_modules: int):
        super().__init__(
            f"Module {module_index} on path {path_id} is locked "
            f"({completed_modules} modules completed)"
        )
        self.path_id = path_id
        self.module_index = module_index
        self.completed_modules = completed_modules

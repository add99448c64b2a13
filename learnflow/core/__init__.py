"""
Core Module - Shared errors, logging setup and schema base classes.
"""

from learnflow.core.errors import (
    ConflictError,
    InvalidRequestError,
    LearnflowError,
    ModuleLockedError,
    NotFoundError,
    SequenceConflictError,
)

__all__ = [
    "LearnflowError",
    "InvalidRequestError",
    "NotFoundError",
    "ConflictError",
    "SequenceConflictError",
    "ModuleLockedError",
]

# jobs/errors.py
"""
Failure taxonomy for the job pipeline.

Unrecoverable errors fail a job on first sight; transient errors go
through the retry policy. Anything else raised inside a handler is
treated as transient.
"""
from __future__ import annotations


class JobError(Exception):
    pass


class UnrecoverableJobError(JobError):
    """Retrying cannot help: a precondition is missing."""


class TransientJobError(JobError):
    """External hiccup or bad LLM output; another attempt may succeed."""


class InvalidJobTransition(JobError):
    pass


class JobStoreError(Exception):
    """Storage layer failure (connection, serialization, ...)."""


class JobNotFoundError(JobStoreError):
    pass

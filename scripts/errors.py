"""Failure types raised while computing or publishing a release identifier."""

from __future__ import annotations


class ReleaseError(Exception):
    """Base class for every failure that ends a release run."""


class ParseFailure(ReleaseError):
    """An identifier does not carry a vMAJOR.MINOR[.PATCH] version."""


class NotFound(ReleaseError):
    """A required tag, branch or input is missing."""


class PolicyViolation(ReleaseError):
    """A structural release rule would be broken by continuing."""


class CollaboratorFailure(ReleaseError):
    """The remote repository or the local git checkout rejected an operation."""

    def __init__(self, message: str, *, status_code: int | None = None, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class BranchAlreadyExists(CollaboratorFailure):
    pass

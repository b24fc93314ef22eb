"""Exception hierarchy.

Only *input* errors and generation failures are exceptions. Policy
violations (core-trait breaks, hard world-rule breaks) and soft warnings are
returned as result values, and a refinement loop that runs out of iterations
reports ``stopped_reason="max-iterations"`` instead of raising.
"""
from __future__ import annotations


class BranchWeaverError(Exception):
    """Base class for every error raised by this package."""


class InputError(BranchWeaverError, ValueError):
    """The caller supplied something the pipeline cannot work with."""


class AlternativeNotFoundError(InputError):
    def __init__(self, alternative_id: str, anchor_id: str):
        self.alternative_id = alternative_id
        self.anchor_id = anchor_id
        super().__init__(f"Alternative {alternative_id} not found for anchor {anchor_id}")


class InsufficientBranchesError(InputError):
    def __init__(self, count: int, minimum: int = 2):
        self.count = count
        self.minimum = minimum
        super().__init__(f"Need at least {minimum} branches to compare, got {count}")


class BranchNotFoundError(InputError):
    def __init__(self, branch_id: str):
        self.branch_id = branch_id
        super().__init__(f"Branch {branch_id} not found")


class GenerationError(BranchWeaverError):
    """Text generation failed after exhausting retries."""

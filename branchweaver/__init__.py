"""BranchWeaver: generate, validate, refine and compare alternate story branches."""

__version__ = "0.1.0"

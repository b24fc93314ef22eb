from .branch_repo import BranchRepository, CreateBranchInput, UpdateBranchInput

__all__ = ["BranchRepository", "CreateBranchInput", "UpdateBranchInput"]

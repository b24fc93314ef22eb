"""
Suggest-fix workflow for consistency issues.

Collects tiered-trait and world-rule violations into a ``FixWorkflow`` and
classifies each one:

- automatic: bent soft rules, which have a canned textual patch
- semi-automatic: secondary trait changes and broken soft rules
- manual: core trait and hard rule violations

A workflow is immutable. Each operation here returns a new one, so a review
UI can keep the previous state for undo.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from branchweaver.errors import InputError
from branchweaver.schemas import (
    FixType,
    FixWorkflow,
    IssueSeverity,
    SuggestedFix,
    TieredValidationResult,
    ViolationSeverity,
    WorkflowStatus,
    WorldRulesValidation,
)
from branchweaver.utils.logging_config import BranchAdapter, get_logger

_logger = get_logger(__name__)


def generate_suggested_fixes(
    trait_results: Sequence[TieredValidationResult],
    world_validation: WorldRulesValidation,
) -> FixWorkflow:
    issues: List[SuggestedFix] = []

    for result in trait_results:
        name = result.character_name
        for v in result.core_violations:
            issues.append(SuggestedFix(
                issue=f"Core trait violation: {name}'s {v.trait}",
                severity=IssueSeverity.critical,
                fix_type=FixType.manual,
                suggestion=(
                    f"Either change the branch direction to respect {name}'s core {v.trait}, "
                    f"or provide extensive justification for why this fundamental trait changes"
                ),
                alternatives=[
                    f"Maintain {v.trait} and adjust branch consequences",
                    "Add formative event that justifies change",
                    "Consider if this is truly the same character",
                ],
            ))
        for v in result.secondary_violations:
            issues.append(SuggestedFix(
                issue=f"Secondary trait change: {name}'s {v.trait}",
                severity=IssueSeverity.major,
                fix_type=FixType.semi_automatic,
                suggestion=f"Add character development scenes showing gradual change in {v.trait}",
                automatic_fix=(
                    f"Add a scene before the anchor where {name} begins questioning their {v.trait}"
                ),
            ))

    for v in world_validation.hard_rules.violations:
        issues.append(SuggestedFix(
            issue=f"Hard rule violation: {v.rule.name}",
            severity=IssueSeverity.critical if v.severity == ViolationSeverity.critical else IssueSeverity.major,
            fix_type=FixType.manual,
            suggestion=v.suggested_fix or f"Address violation of {v.rule.name}",
            alternatives=[
                "Remove the violating element",
                "Reframe within existing rules",
                "Establish exception earlier in story",
            ],
        ))

    for v in world_validation.soft_rules.violations:
        broken = v.severity == ViolationSeverity.error
        issues.append(SuggestedFix(
            issue=f"Soft rule {'break' if broken else 'bend'}: {v.rule.name}",
            severity=IssueSeverity.major if broken else IssueSeverity.minor,
            fix_type=FixType.semi_automatic if broken else FixType.automatic,
            suggestion=v.suggested_fix or f"Justify the {v.rule.name} deviation",
            automatic_fix=None if broken else f"Add narrative acknowledgment of unusual {v.rule.name} situation",
        ))

    return FixWorkflow(branch_id=world_validation.branch_id, issues=issues)


def apply_automatic_fixes(workflow: FixWorkflow) -> Tuple[FixWorkflow, List[str]]:
    """Drain the automatic bucket; every other issue stays for a human."""
    applied = []
    remaining = []
    for fix in workflow.issues:
        if fix.fix_type == FixType.automatic and fix.automatic_fix:
            applied.append(f"{fix.issue}: {fix.automatic_fix}")
        else:
            remaining.append(fix)

    if applied:
        BranchAdapter(_logger, workflow.branch_id).info(
            f"Applied {len(applied)} automatic fixes",
            extra={"count": len(applied)},
        )
    updated = workflow.model_copy(update={
        "issues": remaining,
        "applied_fixes": [*workflow.applied_fixes, *applied],
    })
    return updated, applied


def _pop_issue(workflow: FixWorkflow, index: int) -> Tuple[SuggestedFix, List[SuggestedFix]]:
    if index < 0 or index >= len(workflow.issues):
        raise InputError(f"Issue index {index} out of range (0..{len(workflow.issues) - 1})")
    fix = workflow.issues[index]
    remaining = [f for i, f in enumerate(workflow.issues) if i != index]
    return fix, remaining


def apply_fix(workflow: FixWorkflow, index: int, option: Optional[str] = None) -> FixWorkflow:
    """Resolve one issue with its suggestion, or with ``option`` when given."""
    fix, remaining = _pop_issue(workflow, index)
    applied = option or fix.suggestion
    return workflow.model_copy(update={
        "issues": remaining,
        "applied_fixes": [*workflow.applied_fixes, f"{fix.issue}: {applied}"],
    })


def dismiss_issue(workflow: FixWorkflow, index: int, reason: Optional[str] = None) -> FixWorkflow:
    """Accept one issue as-is."""
    fix, remaining = _pop_issue(workflow, index)
    note = f"{fix.issue}: ACCEPTED" + (f" ({reason})" if reason else "")
    return workflow.model_copy(update={
        "issues": remaining,
        "applied_fixes": [*workflow.applied_fixes, note],
    })


def get_workflow_status(workflow: FixWorkflow) -> WorkflowStatus:
    has_critical = any(i.severity == IssueSeverity.critical for i in workflow.issues)
    return WorkflowStatus(
        complete=not workflow.issues,
        has_critical=has_critical,
        can_proceed=not has_critical,
        summary=(
            f"{len(workflow.applied_fixes)} fixes applied, {len(workflow.issues)} issues remaining "
            f"({len(workflow.needs_manual)} need attention)"
        ),
    )


def generate_fix_report(workflow: FixWorkflow) -> str:
    lines = ["# Consistency Fix Report", ""]

    if workflow.applied_fixes:
        lines.append("## Applied Fixes")
        lines.extend(f"- {fix}" for fix in workflow.applied_fixes)
        lines.append("")

    if not workflow.issues:
        lines.append("All consistency issues resolved!")
        return "\n".join(lines)

    lines.append("## Remaining Issues")
    critical = [i for i in workflow.issues if i.severity == IssueSeverity.critical]
    major = [i for i in workflow.issues if i.severity == IssueSeverity.major]
    minor = [i for i in workflow.issues if i.severity == IssueSeverity.minor]

    if critical:
        lines.append("### Critical (Must Fix)")
        for issue in critical:
            lines.append(f"- **{issue.issue}**")
            lines.append(f"  - Suggestion: {issue.suggestion}")
            if issue.alternatives:
                lines.append("  - Alternatives:")
                lines.extend(f"    - {alt}" for alt in issue.alternatives)
        lines.append("")

    if major:
        lines.append("### Major (Should Fix)")
        for issue in major:
            lines.append(f"- {issue.issue}")
            lines.append(f"  - Suggestion: {issue.suggestion}")
        lines.append("")

    if minor:
        lines.append("### Minor (Optional)")
        lines.extend(f"- {issue.issue}" for issue in minor)

    return "\n".join(lines)

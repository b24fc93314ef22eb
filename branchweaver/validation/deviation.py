"""
Deviation Controller

Turns tiered trait results into accept / reject / needs-justification
decisions under a ``DeviationConfig``. Precedence, strongest first:

1. character-specific protected traits (veto everything)
2. explicit user overrides
3. the strictness level's base permissions

``allowed_deviations`` whitelists individual trait names for a character
regardless of tier. Every rejected or flagged decision carries the names of
the traits that caused it.
"""
from __future__ import annotations

import random
from typing import List, Optional, Sequence

from branchweaver.config import get_settings
from branchweaver.schemas import (
    CharacterDeviationRules,
    DeviationConfig,
    DeviationDecision,
    DeviationLevel,
    DeviationPermissions,
    DeviationReport,
    DeviationResult,
    DeviationStatus,
    TieredValidationResult,
    TraitTier,
)
from branchweaver.utils.logging_config import get_logger

logger = get_logger(__name__)


def base_permissions(level: DeviationLevel) -> DeviationPermissions:
    if level == DeviationLevel.strict:
        return DeviationPermissions(
            allow_core_changes=False, allow_secondary_changes=False,
            allow_minor_changes=True, require_justification=True,
        )
    elif level == DeviationLevel.moderate:
        return DeviationPermissions(
            allow_core_changes=False, allow_secondary_changes=True,
            allow_minor_changes=True, require_justification=True,
        )
    elif level in (DeviationLevel.flexible, DeviationLevel.creative):
        return DeviationPermissions(
            allow_core_changes=True, allow_secondary_changes=True,
            allow_minor_changes=True, require_justification=False,
        )
    raise ValueError(f"Unhandled deviation level: {level}")


def effective_permissions(config: DeviationConfig) -> DeviationPermissions:
    """Level defaults with every non-``None`` user override applied on top."""
    base = base_permissions(config.level)
    overrides = config.user_overrides.model_dump(exclude_none=True)
    return base.model_copy(update=overrides)


def suggested_justifications(tier: TraitTier) -> List[str]:
    if tier == TraitTier.core:
        return [
            "Traumatic event causes fundamental reevaluation",
            "Long-term character arc culminating in transformation",
            "Alternate timeline with different formative experiences",
        ]
    elif tier == TraitTier.secondary:
        return [
            "Natural character growth through experiences",
            "New skills learned during the journey",
            "Relationships evolve with changing circumstances",
        ]
    elif tier == TraitTier.minor:
        return [
            "Changed circumstances lead to new preferences",
            "Different social context requires adaptation",
        ]
    raise ValueError(f"Unhandled trait tier: {tier}")


def check_deviation_allowed(
    tier: TraitTier,
    config: DeviationConfig,
    rng: Optional[random.Random] = None,
) -> DeviationResult:
    permissions = effective_permissions(config)

    if tier == TraitTier.core:
        allowed = permissions.allow_core_changes
    elif tier == TraitTier.secondary:
        allowed = permissions.allow_secondary_changes
    elif tier == TraitTier.minor:
        allowed = permissions.allow_minor_changes
    else:
        raise ValueError(f"Unhandled trait tier: {tier}")

    requires_justification = permissions.require_justification
    warnings = []
    if tier == TraitTier.core and allowed:
        warnings.append("Core trait changes may fundamentally alter character identity")

    suggestion = None
    if allowed and requires_justification:
        suggestion = (rng or random.Random()).choice(suggested_justifications(tier))

    return DeviationResult(
        allowed=allowed,
        requires_justification=requires_justification,
        suggested_justification=suggestion,
        warnings=warnings,
    )


def resolve_deviation(
    result: TieredValidationResult,
    config: DeviationConfig,
) -> DeviationDecision:
    """Decide one character's fate under ``config``."""
    rules = config.character_specific.get(result.character_id, CharacterDeviationRules())
    permissions = effective_permissions(config)

    def decision(status: DeviationStatus, traits: List[str], reason: str) -> DeviationDecision:
        return DeviationDecision(
            character_id=result.character_id,
            character_name=result.character_name,
            status=status,
            offending_traits=traits,
            reason=reason,
            result=result,
        )

    protected = [v.trait for v in result.all_violations if v.trait in rules.protected_traits]
    if protected:
        return decision(DeviationStatus.rejected, protected, "Protected traits violated")

    core = [v.trait for v in result.core_violations if v.trait not in rules.allowed_deviations]
    secondary = [v.trait for v in result.secondary_violations if v.trait not in rules.allowed_deviations]

    if core and not permissions.allow_core_changes:
        return decision(DeviationStatus.rejected, core, "Core trait changes are not permitted")

    if (core or secondary) and permissions.require_justification:
        return decision(
            DeviationStatus.needs_justification,
            core + secondary,
            "Trait changes require narrative justification",
        )

    # Whitelisted or permitted changes are still reported
    remaining = [v.trait for v in result.all_violations]
    return decision(
        DeviationStatus.accepted,
        remaining,
        "Trait changes permitted by policy" if remaining else "No trait violations",
    )


def apply_deviation_config(
    results: Sequence[TieredValidationResult],
    config: DeviationConfig,
) -> DeviationReport:
    decisions = [resolve_deviation(r, config) for r in results]
    for d in decisions:
        if d.status == DeviationStatus.rejected:
            logger.warning(
                f"Deviation rejected for {d.character_name}: {', '.join(d.offending_traits)}",
                extra={"branch_id": d.result.branch_id},
            )
    return DeviationReport(decisions=decisions)


def default_deviation_config() -> DeviationConfig:
    return DeviationConfig(level=DeviationLevel(get_settings().default_deviation_level))


def deviation_level_description(level: DeviationLevel) -> str:
    if level == DeviationLevel.strict:
        return "No character changes allowed - strict adherence to established traits"
    elif level == DeviationLevel.moderate:
        return "Secondary traits can evolve, core traits remain fixed"
    elif level == DeviationLevel.flexible:
        return "Significant character development allowed with justification"
    elif level == DeviationLevel.creative:
        return "Complete creative freedom - characters can transform radically"
    raise ValueError(f"Unhandled deviation level: {level}")

"""
World Rule Validator

Checks a branch against the world's rules. Hard rules (physics, causality,
established powers, past events, character identity) cannot be broken
without breaking the story world: any hard violation is ``critical`` or
``error`` and makes the branch unacceptable unless the caller overrides that
rule. Soft rules (social norms, political structures, traditions, economics,
unwritten rules) may be bent (``warning``) or broken (``error``) with
narrative justification.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

from branchweaver.schemas import (
    BranchVariation,
    HardRuleSummary,
    RuleImportance,
    RuleType,
    RuleViolation,
    SoftRuleSummary,
    ViolationSeverity,
    WorldRule,
    WorldRulesValidation,
    WorldState,
)
from branchweaver.utils.logging_config import get_logger

logger = get_logger(__name__)

STANDARD_HARD_RULES: List[WorldRule] = [
    WorldRule(id="physics", name="Physics", description="Physical laws remain consistent",
              type=RuleType.hard, importance=RuleImportance.critical),
    WorldRule(id="causality", name="Causality", description="Cause and effect relationships hold",
              type=RuleType.hard, importance=RuleImportance.critical),
    WorldRule(id="established-powers", name="Established Powers",
              description="Character abilities remain as established",
              type=RuleType.hard, importance=RuleImportance.critical),
    WorldRule(id="past-events", name="Past Events", description="Established history cannot change",
              type=RuleType.hard, importance=RuleImportance.major),
    WorldRule(id="character-identity", name="Character Identity",
              description="Core character identities remain",
              type=RuleType.hard, importance=RuleImportance.major),
]

STANDARD_SOFT_RULES: List[WorldRule] = [
    WorldRule(id="social-norms", name="Social Norms", description="Expected social behaviors",
              type=RuleType.soft, importance=RuleImportance.major),
    WorldRule(id="political-structures", name="Political Structures",
              description="Power hierarchies and systems",
              type=RuleType.soft, importance=RuleImportance.major),
    WorldRule(id="cultural-traditions", name="Cultural Traditions",
              description="Cultural practices and customs",
              type=RuleType.soft, importance=RuleImportance.minor),
    WorldRule(id="economic-systems", name="Economic Systems",
              description="Trade and resource distribution",
              type=RuleType.soft, importance=RuleImportance.minor),
    WorldRule(id="unwritten-rules", name="Unwritten Rules", description="Implicit expectations",
              type=RuleType.soft, importance=RuleImportance.minor),
]

# Words that, next to a custom rule's name, signal the branch breaks it
VIOLATION_CUES = ("break", "defy", "ignore", "abolish", "overturn", "violate")


def _contains_any(texts: Iterable[str], needles: Sequence[str]) -> bool:
    return any(needle in text.lower() for text in texts for needle in needles)


def _hard_severity(rule: WorldRule) -> ViolationSeverity:
    return ViolationSeverity.critical if rule.importance == RuleImportance.critical else ViolationSeverity.error


# ─── Checks ───────────────────────────────────────────────────────────────────

def check_hard_rule(rule: WorldRule, variation: BranchVariation, world: WorldState) -> Optional[RuleViolation]:
    events = variation.trajectory.key_events
    premise = [variation.premise.description]

    if rule.id == "physics":
        if _contains_any(events, ("impossible", "defy physics")):
            return RuleViolation(
                rule=rule,
                violation="Event suggests physical impossibility",
                severity=ViolationSeverity.critical,
                suggested_fix="Ensure events respect established physics",
            )
    elif rule.id == "causality":
        if _contains_any(premise, ("time travel", "change the past")):
            return RuleViolation(
                rule=rule,
                violation="Potential causality violation detected",
                severity=ViolationSeverity.critical,
                suggested_fix="Ensure cause-effect relationships remain intact",
            )
    elif rule.id == "past-events":
        if _contains_any(premise, ("never happened", "undo")):
            return RuleViolation(
                rule=rule,
                violation="Past events may be altered",
                severity=_hard_severity(rule),
                suggested_fix="Branch should diverge from present, not alter past",
            )
    elif rule.id in ("established-powers", "character-identity"):
        # Needs per-character power and identity data the context does not carry;
        # identity drift is covered by the tiered trait validator.
        return None
    else:
        return check_custom_rule(rule, variation)
    return None


def check_soft_rule(rule: WorldRule, variation: BranchVariation, world: WorldState) -> Optional[RuleViolation]:
    events = variation.trajectory.key_events

    if rule.id == "social-norms":
        if _contains_any(events, ("overthrow", "revolution")):
            return RuleViolation(
                rule=rule,
                violation="Major social structures may be disrupted",
                severity=ViolationSeverity.error,
                suggested_fix="Consider gradual social change or justify revolution",
            )
    elif rule.id == "political-structures":
        if _contains_any(events, ("coup", "war", "alliance")) and not world.active_conflicts:
            return RuleViolation(
                rule=rule,
                violation="Political changes without established tension",
                severity=ViolationSeverity.warning,
                suggested_fix="Establish political tensions earlier",
            )
    elif rule.id in ("cultural-traditions", "economic-systems", "unwritten-rules"):
        return None
    else:
        return check_custom_rule(rule, variation)
    return None


def check_custom_rule(rule: WorldRule, variation: BranchVariation) -> Optional[RuleViolation]:
    """A custom rule is violated when a sentence names it next to a violation cue."""
    name = rule.name.lower()
    texts = [variation.premise.description, *variation.trajectory.key_events, variation.trajectory.resolution]
    for text in texts:
        lowered = text.lower()
        if name in lowered and any(cue in lowered for cue in VIOLATION_CUES):
            if rule.type == RuleType.hard:
                severity = _hard_severity(rule)
            elif rule.importance == RuleImportance.minor:
                severity = ViolationSeverity.warning
            else:
                severity = ViolationSeverity.error
            return RuleViolation(
                rule=rule,
                violation=f"Branch appears to break {rule.name}",
                severity=severity,
                suggested_fix=f"Respect {rule.name} or establish why it no longer holds",
            )
    return None


# ─── Validation ───────────────────────────────────────────────────────────────

def validate_world_rules(
    variation: BranchVariation,
    world: WorldState,
    custom_rules: Sequence[WorldRule] = (),
    overrides: Sequence[str] = (),
) -> WorldRulesValidation:
    """Validate ``variation`` against the standard rules plus ``custom_rules``.

    ``overrides`` holds ids of hard rules the caller has explicitly waived;
    their violations are still reported but do not block the branch.
    """
    hard_rules = STANDARD_HARD_RULES + [r for r in custom_rules if r.type == RuleType.hard]
    soft_rules = STANDARD_SOFT_RULES + [r for r in custom_rules if r.type == RuleType.soft]

    hard_violations = [v for v in (check_hard_rule(r, variation, world) for r in hard_rules) if v]
    soft_violations = [v for v in (check_soft_rule(r, variation, world) for r in soft_rules) if v]

    blocked_by = [v.rule.id for v in hard_violations if v.rule.id not in overrides]
    broken = [v for v in soft_violations if v.severity == ViolationSeverity.error]
    bent = [v for v in soft_violations if v.severity == ViolationSeverity.warning]

    if blocked_by:
        logger.warning(
            f"Hard world rules violated: {', '.join(blocked_by)}",
            extra={"branch_id": variation.id},
        )

    return WorldRulesValidation(
        branch_id=variation.id,
        hard_rules=HardRuleSummary(
            total=len(hard_rules),
            violated=len(hard_violations),
            violations=hard_violations,
        ),
        soft_rules=SoftRuleSummary(
            total=len(soft_rules),
            bent=len(bent),
            broken=len(broken),
            violations=soft_violations,
        ),
        acceptable=not blocked_by,
        requires_justification=bool(hard_violations or broken),
        blocked_by=blocked_by,
    )


def create_world_rule(
    name: str,
    description: str,
    type: RuleType,
    importance: RuleImportance,
    established_in: Optional[str] = None,
) -> WorldRule:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return WorldRule(
        id=f"custom-{slug}",
        name=name,
        description=description,
        type=type,
        importance=importance,
        established_in=established_in,
    )


def rule_type_description(rule_type: RuleType) -> str:
    if rule_type == RuleType.hard:
        return "Fundamental rules that cannot be broken without breaking the story world"
    elif rule_type == RuleType.soft:
        return "Conventional rules that can be bent or broken with proper narrative justification"
    raise ValueError(f"Unhandled rule type: {rule_type}")

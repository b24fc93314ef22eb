# Context inputs
from .context_schemas import (
    AnchorType,
    Significance,
    StyleTone,
    AlternativeOutcome,
    AnchorEvent,
    AnchorDetails,
    CharacterCurrentState,
    CharacterKnowledge,
    CharacterRelationship,
    CharacterArcState,
    CharacterState,
    ActiveConflict,
    AvailableResource,
    WorldRuleSet,
    WorldTheme,
    PlotThread,
    WorldState,
    ToneProfile,
    PacingProfile,
    NarrativeStyleProfile,
    ContextPackage,
)

# Branch entity
from .branch_schemas import (
    ConsequenceScope,
    Mood,
    EndingType,
    Complexity,
    Growth,
    BranchPremise,
    BranchTrajectory,
    CharacterArcProjection,
    BranchVariation,
    ThemeDistinctness,
    DepthLevel,
    DetailLevel,
    EventGranularity,
    DepthFeedback,
    TrajectoryDepth,
    ThemeStage,
    ThemeArc,
    ThemeProgressionStage,
    ThemeProgression,
)

# Validation results and policy
from .validation_schemas import (
    ValidationDimension,
    TraitTier,
    DeviationLevel,
    DeviationStatus,
    RuleType,
    RuleImportance,
    ViolationSeverity,
    FixType,
    IssueSeverity,
    DimensionValidation,
    FullValidationResult,
    TraitDefinition,
    TraitValidation,
    TieredValidationResult,
    TieredCheck,
    DeviationOverrides,
    CharacterDeviationRules,
    DeviationConfig,
    DeviationPermissions,
    DeviationResult,
    DeviationDecision,
    DeviationReport,
    WorldRule,
    RuleViolation,
    HardRuleSummary,
    SoftRuleSummary,
    WorldRulesValidation,
    SuggestedFix,
    FixWorkflow,
    WorkflowStatus,
    PremiseDimension,
    PremiseIssue,
    PremiseValidation,
    StrictnessLevel,
    CharacterDeviationAllowance,
    WorldRuleBreaking,
    TimelineChanges,
    ToneShift,
    StrictnessFactors,
    StrictnessRules,
)

# Refinement
from .refinement_schemas import (
    RefinementArea,
    MessageType,
    CritiqueSeverity,
    Priority,
    StopReason,
    MessageMetadata,
    ConversationMessage,
    RefinementConversation,
    RefinementChange,
    RefinementRequest,
    Critique,
    CritiqueBasedRefinement,
    CritiqueComparison,
    RefinementResult,
    SatisfactionResult,
    SatisfactionProgress,
    IterationConfig,
    RefinementCheckpoint,
    IterationResult,
)

# Comparison
from .comparison_schemas import (
    ComparisonDimension,
    FateDivergence,
    DimensionComparison,
    BranchComparison,
    CharacterFateComparison,
    CharacterFateMatrix,
    CharacterFatesAcrossBranches,
    RankingCriteria,
    BranchRanking,
    ConsensusAnalysis,
    MultiBranchComparison,
    TreeNodeType,
    TreeLayout,
    TreeNodeMetadata,
    TreeNode,
    TreeDiagram,
    DivergencePoint,
)

__all__ = [
    # Context
    "AnchorType", "Significance", "StyleTone", "AlternativeOutcome", "AnchorEvent",
    "AnchorDetails", "CharacterCurrentState", "CharacterKnowledge",
    "CharacterRelationship", "CharacterArcState", "CharacterState",
    "ActiveConflict", "AvailableResource", "WorldRuleSet", "WorldTheme",
    "PlotThread", "WorldState", "ToneProfile", "PacingProfile",
    "NarrativeStyleProfile", "ContextPackage",
    # Branch
    "ConsequenceScope", "Mood", "EndingType", "Complexity", "Growth",
    "BranchPremise", "BranchTrajectory", "CharacterArcProjection", "BranchVariation",
    "ThemeDistinctness", "DepthLevel", "DetailLevel", "EventGranularity",
    "DepthFeedback", "TrajectoryDepth", "ThemeStage", "ThemeArc",
    "ThemeProgressionStage", "ThemeProgression",
    # Validation
    "ValidationDimension", "TraitTier", "DeviationLevel", "DeviationStatus",
    "RuleType", "RuleImportance", "ViolationSeverity", "FixType", "IssueSeverity",
    "DimensionValidation", "FullValidationResult", "TraitDefinition",
    "TraitValidation", "TieredValidationResult", "TieredCheck",
    "DeviationOverrides", "CharacterDeviationRules", "DeviationConfig",
    "DeviationPermissions", "DeviationResult", "DeviationDecision",
    "DeviationReport", "WorldRule", "RuleViolation", "HardRuleSummary",
    "SoftRuleSummary", "WorldRulesValidation",
    "SuggestedFix", "FixWorkflow", "WorkflowStatus",
    "PremiseDimension", "PremiseIssue", "PremiseValidation", "StrictnessLevel",
    "CharacterDeviationAllowance", "WorldRuleBreaking", "TimelineChanges",
    "ToneShift", "StrictnessFactors", "StrictnessRules",
    # Refinement
    "RefinementArea", "MessageType", "CritiqueSeverity", "Priority", "StopReason",
    "MessageMetadata", "ConversationMessage", "RefinementConversation",
    "RefinementChange", "RefinementRequest", "Critique", "CritiqueBasedRefinement",
    "CritiqueComparison", "RefinementResult", "SatisfactionResult",
    "SatisfactionProgress", "IterationConfig", "RefinementCheckpoint",
    "IterationResult",
    # Comparison
    "ComparisonDimension", "FateDivergence", "DimensionComparison",
    "BranchComparison", "CharacterFateComparison", "CharacterFateMatrix",
    "CharacterFatesAcrossBranches", "RankingCriteria", "BranchRanking",
    "ConsensusAnalysis", "MultiBranchComparison", "TreeNodeType", "TreeLayout",
    "TreeNodeMetadata", "TreeNode", "TreeDiagram", "DivergencePoint",
]

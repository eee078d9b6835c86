"""Core functionality for the filename pattern builder."""

from .analysis import AnalysisOutcome, AnalysisStatus, AnalysisTask, BackgroundAnalysisService
from .custom_tokens import CustomToken, CustomTokenManager, PatternBuilderSession
from .extensions import (
    analyze_extension_usage,
    generate_extension_pattern,
    get_extension,
    has_image_extension,
)
from .grouper import GroupingEngine, GroupingResult
from .models import (
    EngineConfig,
    FilenameToken,
    ImageRole,
    PatternConfiguration,
    PresetConfiguration,
    RoleRule,
    RuleType,
    TokenAnalysis,
    TokenSuggestion,
    TokenType,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
    ValidationWarning,
    ValidationWarningType,
)
from .pattern_generator import PatternGenerator
from .presets import InvalidPresetError, PresetStore, export_preset, import_preset
from .preview import FilenamePreview, PreviewSummary, build_previews
from .rule_engine import RuleEngine, RuleEvaluationError
from .tokenizer import AnalysisCancelled, FilenameTokenizer
from .unknown_segments import SegmentAction, UnknownSegmentHandler
from .validation import (
    ConfigurationBlockedError,
    ManualScheduler,
    TimerScheduler,
    ValidationModel,
)

__all__ = [
    "AnalysisCancelled",
    "AnalysisOutcome",
    "AnalysisStatus",
    "AnalysisTask",
    "BackgroundAnalysisService",
    "ConfigurationBlockedError",
    "CustomToken",
    "CustomTokenManager",
    "EngineConfig",
    "FilenamePreview",
    "FilenameToken",
    "FilenameTokenizer",
    "GroupingEngine",
    "GroupingResult",
    "ImageRole",
    "InvalidPresetError",
    "ManualScheduler",
    "PatternBuilderSession",
    "PatternConfiguration",
    "PatternGenerator",
    "PresetConfiguration",
    "PresetStore",
    "PreviewSummary",
    "RoleRule",
    "RuleEngine",
    "RuleEvaluationError",
    "RuleType",
    "SegmentAction",
    "TimerScheduler",
    "TokenAnalysis",
    "TokenSuggestion",
    "TokenType",
    "UnknownSegmentHandler",
    "ValidationError",
    "ValidationErrorType",
    "ValidationModel",
    "ValidationResult",
    "ValidationWarning",
    "ValidationWarningType",
    "analyze_extension_usage",
    "build_previews",
    "export_preset",
    "generate_extension_pattern",
    "get_extension",
    "has_image_extension",
    "import_preset",
]

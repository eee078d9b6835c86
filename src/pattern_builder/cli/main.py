"""CLI entry point for the filename pattern builder."""

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from .. import __version__
from ..core import (
    BackgroundAnalysisService,
    CustomTokenManager,
    EngineConfig,
    GroupingEngine,
    ImageRole,
    ManualScheduler,
    PatternConfiguration,
    PatternGenerator,
    PresetConfiguration,
    PreviewSummary,
    RoleRule,
    RuleType,
    TokenAnalysis,
    ValidationModel,
    export_preset,
    import_preset,
)
from ..core.guidance import format_error_details, format_warning_details


def setup_logging(level: str = "INFO", enabled: bool = True) -> None:
    """
    Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enabled: When false, all log output is suppressed
    """
    if not enabled:
        logging.disable(logging.CRITICAL)
        return

    logging.disable(logging.NOTSET)
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_rule(text: str) -> RoleRule:
    """
    Parse a ``ROLE:TYPE:VALUE`` rule argument.

    Example:
        >>> parse_rule("front:contains:front").rule_type
        <RuleType.CONTAINS: 'CONTAINS'>
    """
    parts = text.split(":", 2)
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(f"Rule must look like ROLE:TYPE:VALUE, got {text!r}")
    role, rule_type, value = parts
    try:
        return RoleRule(
            target_role=ImageRole(role.strip().upper()),
            rule_type=RuleType(rule_type.strip().upper()),
            rule_value=value,
        )
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid rule {text!r}: {e}") from e


def read_filenames(filenames: Sequence[str], list_file: Path | None) -> list[str]:
    """Combine filenames given as arguments with those listed in a file, one per line."""
    names = [name for name in filenames if name.strip()]
    if list_file is not None:
        if not list_file.exists():
            raise FileNotFoundError(f"Filename list not found: {list_file}")
        lines = list_file.read_text(encoding="utf-8").splitlines()
        names.extend(line.strip() for line in lines if line.strip())
    return names


def analyze_cli(
    filenames: list[str], config: EngineConfig, custom_tokens: CustomTokenManager
) -> TokenAnalysis:
    """
    Analyze a filename sample from the command line.

    Raises:
        RuntimeError: If the analysis did not complete
    """
    logger = logging.getLogger(__name__)
    service = BackgroundAnalysisService(custom_tokens=custom_tokens, config=config)
    try:
        outcome = service.submit(filenames).result()
    finally:
        service.shutdown()

    if not outcome.succeeded or outcome.analysis is None:
        raise RuntimeError(f"Analysis did not complete: {outcome.error or outcome.status.value}")
    if outcome.truncated:
        logger.warning(f"Only the first {outcome.files_analyzed} filenames were analyzed")
    return outcome.analysis


def build_configuration_cli(
    args: argparse.Namespace, analysis: TokenAnalysis, config: EngineConfig
) -> PatternConfiguration:
    """Build a configuration from analysis results and command-line rules."""
    rules = [
        rule.model_copy(update={"priority": i, "case_sensitive": args.case_sensitive})
        for i, rule in enumerate(args.rule or [])
    ]
    generator = PatternGenerator(config)

    if args.group_pattern:
        return generator.build_advanced_configuration(
            args.group_pattern,
            front_pattern=generator.generate_role_pattern(rules, ImageRole.FRONT),
            rear_pattern=generator.generate_role_pattern(rules, ImageRole.REAR),
            overview_pattern=generator.generate_role_pattern(rules, ImageRole.OVERVIEW),
            rules=rules,
        )

    sample = analysis.filenames[0]
    tokens = analysis.tokens_for(sample)
    if args.group_id_position is not None:
        group_token = next((t for t in tokens if t.position == args.group_id_position), None)
        if group_token is None:
            raise ValueError(
                f"Sample '{sample}' has no token at position {args.group_id_position}"
            )
    else:
        group_token = analysis.suggest_group_id_token(sample)
    return generator.build_configuration(tokens, group_token, rules)


def print_analysis(analysis: TokenAnalysis) -> None:
    """
    Print token analysis to console.

    Args:
        analysis: Analysis of the sample filenames
    """
    print("\n" + "=" * 60)
    print("TOKEN ANALYSIS")
    print("=" * 60)
    print(f"Filenames analyzed: {len(analysis.filenames)}")

    if analysis.filenames:
        sample = analysis.filenames[0]
        print(f"\nSample: {sample}")
        for token in analysis.tokens_for(sample):
            marker = "  <- group id" if token.position == analysis.group_id_position else ""
            print(
                f"  [{token.position}] {token.value:<20} "
                f"{token.suggested_type.value:<12} {token.confidence:.0%}{marker}"
            )

    if analysis.suggestions:
        print("\nDetected token types:")
        for suggestion in analysis.suggestions:
            examples = ", ".join(suggestion.examples)
            print(f"  {suggestion.type.value:<12} {suggestion.confidence:.0%}  ({examples})")


def print_report(
    configuration: PatternConfiguration, model: ValidationModel, summary: PreviewSummary
) -> None:
    """Print generated patterns, validation findings and the grouping summary."""
    print("\n" + "-" * 60)
    print("PATTERNS")
    print("-" * 60)
    print(f"Group:    {configuration.group_pattern or '(none)'}")
    for role, pattern in configuration.role_patterns().items():
        print(f"{role.value.capitalize() + ':':<9} {pattern or '(none)'}")

    print("\n" + "-" * 60)
    print("VALIDATION")
    print("-" * 60)
    print(model.validation_summary)
    if model.errors:
        print("\n" + format_error_details(model.errors))
    if model.warnings:
        print("\n" + format_warning_details(model.warnings))

    print("\n" + "-" * 60)
    print("PREVIEW")
    print("-" * 60)
    print(summary.summary_text())
    print(f"Healthy: {'yes' if summary.is_healthy() else 'no'}")
    for filename in summary.unmatched_filenames[:10]:
        print(f"  unmatched: {filename}")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="Pattern Builder - infer and validate filename grouping patterns",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze filenames and show detected token types
  pattern-builder vehicle_001_front.jpg vehicle_001_rear.jpg vehicle_002_front.jpg

  # Read filenames from a file and build patterns with role rules
  pattern-builder --from-file names.txt --rule front:contains:front --rule rear:contains:rear

  # Choose the group id token explicitly and print JSON
  pattern-builder --from-file names.txt --group-id-position 1 \\
      --rule front:contains:front --output-format json

  # Validate a previously exported preset against filenames
  pattern-builder --from-file names.txt --import-preset preset.json
        """,
    )

    parser.add_argument("filenames", nargs="*", help="Sample filenames")
    parser.add_argument(
        "--from-file", type=Path, metavar="PATH", help="File listing filenames, one per line"
    )

    # Configuration options
    parser.add_argument(
        "--rule",
        type=parse_rule,
        action="append",
        metavar="ROLE:TYPE:VALUE",
        help="Role rule, e.g. front:contains:front (repeatable, earlier rules win)",
    )
    parser.add_argument(
        "--case-sensitive", action="store_true", help="Make all rules case sensitive"
    )
    parser.add_argument(
        "--group-id-position",
        type=int,
        metavar="N",
        help="Token position to use as group id (default: inferred)",
    )
    parser.add_argument(
        "--group-pattern", metavar="REGEX", help="Use a hand-written group pattern instead"
    )
    parser.add_argument(
        "--custom-tokens", type=Path, metavar="PATH", help="Load custom tokens from this file"
    )

    # Preset options
    parser.add_argument("--import-preset", type=Path, metavar="PATH", help="Use a saved preset")
    parser.add_argument(
        "--export-preset", type=Path, metavar="PATH", help="Save the configuration as a preset"
    )
    parser.add_argument("--preset-name", default="CLI preset", help="Name for exported presets")

    # Output options
    parser.add_argument(
        "--output-format",
        choices=["text", "json"],
        default="text",
        help="Output format for results (default: text)",
    )

    # Logging options
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set logging level (default: WARNING)",
    )
    parser.add_argument("--quiet", action="store_true", help="Disable logging output")

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI application.

    Returns:
        Exit code (0 when the configuration is usable, non-zero otherwise)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    config = EngineConfig(log_level=args.log_level, enable_logging=not args.quiet)
    setup_logging(config.log_level, enabled=config.enable_logging)
    logger = logging.getLogger(__name__)

    model: ValidationModel | None = None
    try:
        filenames = read_filenames(args.filenames, args.from_file)
        if not filenames:
            print("Error: no filenames given")
            return 1

        custom_tokens = CustomTokenManager(config=config)
        if args.custom_tokens:
            custom_tokens.load(args.custom_tokens)
        else:
            custom_tokens.load_preconfigured_custom_tokens()

        analysis = analyze_cli(filenames, config, custom_tokens)

        wants_configuration = args.rule or args.group_pattern or args.import_preset
        if not wants_configuration:
            if args.output_format == "json":
                print(
                    json.dumps(
                        {
                            "filenames_analyzed": len(analysis.filenames),
                            "group_id_position": analysis.group_id_position,
                            "suggestions": [
                                s.model_dump(mode="json") for s in analysis.suggestions
                            ],
                        },
                        indent=2,
                    )
                )
            else:
                print_analysis(analysis)
            return 0

        if args.import_preset:
            configuration = import_preset(args.import_preset).pattern_config
        else:
            configuration = build_configuration_cli(args, analysis, config)

        model = ValidationModel(config, scheduler=ManualScheduler())
        model.update_sample_filenames(filenames)
        model.update_configuration(configuration)
        model.perform_immediate_validation()

        grouping = GroupingEngine(model.rule_engine).group_and_assign_roles(
            filenames, configuration.group_pattern, configuration.as_role_rules()
        )
        summary = PreviewSummary.from_result(grouping)

        if args.export_preset and model.can_generate_patterns():
            preset = PresetConfiguration(
                name=args.preset_name, pattern_config=model.generate_configuration()
            )
            export_preset(preset, args.export_preset)
        elif args.export_preset:
            logger.warning("Configuration is blocked, preset not exported")

        if args.output_format == "json":
            print(
                json.dumps(
                    {
                        "configuration": configuration.model_dump(
                            mode="json", exclude={"tokens", "group_id_token"}
                        ),
                        "validation": model.validation_result.model_dump(mode="json"),
                        "can_generate": model.can_generate_patterns(),
                        "preview": summary.model_dump(mode="json"),
                    },
                    indent=2,
                )
            )
        else:
            print_analysis(analysis)
            print_report(configuration, model, summary)

        return 0 if model.can_generate_patterns() else 1

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 1
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    except Exception as e:
        logger.exception("Unexpected error occurred")
        print(f"Error: {e}")
        return 1
    finally:
        if model is not None:
            model.shutdown()


if __name__ == "__main__":
    sys.exit(main())

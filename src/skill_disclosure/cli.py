"""Command-line interface for skill-disclosure."""

import argparse
import json
import logging
import os
import sys

from skill_disclosure.core.config import Config, load_environment
from skill_disclosure.skills.disclosure.matcher import TriggerMatcher
from skill_disclosure.skills.disclosure.registry import SkillRegistry
from skill_disclosure.skills.disclosure.session import DisclosureSession
from skill_disclosure.skills.disclosure.sources import DirectorySkillSource
from skill_disclosure.utils.errors import SkillDisclosureError


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="skill-disclosure",
        description="Progressive Skill-Disclosure Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  skill-disclosure list
  skill-disclosure match "python async patterns"
  skill-disclosure disclose "python async patterns" --budget 6100
  skill-disclosure disclose "write a bash script" --format json
  skill-disclosure serve --port 8000
        """,
    )
    parser.add_argument(
        "--skills-dir",
        help="Directory of SKILL.md folders (default: $SKILLS_DIR or ./skills)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Command to run",
        required=True,
    )

    # List command
    subparsers.add_parser(
        "list",
        help="List skill metadata and any rejected records",
    )

    # Match command
    match_parser = subparsers.add_parser(
        "match",
        help="Rank skills for a task without loading content",
    )
    match_parser.add_argument("query", help="Task description")
    match_parser.add_argument(
        "--min-relevance",
        type=float,
        help="Relevance threshold (default: $MIN_RELEVANCE or 1.0)",
    )

    # Disclose command
    disclose_parser = subparsers.add_parser(
        "disclose",
        help="Build a disclosure bundle for a task",
    )
    disclose_parser.add_argument("query", help="Task description")
    disclose_parser.add_argument(
        "--budget",
        type=int,
        help="Session capacity in size units (default: $DISCLOSURE_BUDGET or 8000)",
    )
    disclose_parser.add_argument(
        "--no-references",
        action="store_true",
        help="Skip the reference tier",
    )
    disclose_parser.add_argument(
        "--format",
        default="text",
        choices=["text", "json"],
        help="Output format (default: text)",
    )

    # Serve API command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Start the FastAPI server",
    )
    serve_parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )

    return parser


def load_registry(config: Config) -> SkillRegistry:
    """Load the registry described by config.

    Args:
        config: Configuration with skills directory and limits

    Returns:
        Loaded SkillRegistry snapshot
    """
    return SkillRegistry.load(
        DirectorySkillSource(config.skills_path),
        timeout=config.registry_load_timeout,
        max_metadata_size=config.max_metadata_size,
        max_body_size=config.max_body_size,
    )


def run_list_command(args: argparse.Namespace, config: Config) -> None:
    """List skills in the configured directory.

    Args:
        args: Parsed command-line arguments
        config: Effective configuration
    """
    registry = load_registry(config)
    print(registry.get_descriptions())

    if registry.errors:
        print(f"\nRejected records ({len(registry.errors)}):", file=sys.stderr)
        for error in registry.errors:
            print(f"  - {error}", file=sys.stderr)


def run_match_command(args: argparse.Namespace, config: Config) -> None:
    """Rank skills for a query.

    Args:
        args: Parsed command-line arguments
        config: Effective configuration
    """
    registry = load_registry(config)
    min_relevance = args.min_relevance if args.min_relevance is not None else config.min_relevance
    scores = TriggerMatcher(min_relevance=min_relevance).match(args.query, registry)

    if not scores:
        print("No matching skills.")
        return

    for rank, score in enumerate(scores, 1):
        terms = ", ".join(score.matched_terms)
        print(f"{rank}. {score.skill_id} ({score.relevance:.1f}) [{terms}]")


def run_disclose_command(args: argparse.Namespace, config: Config) -> None:
    """Build and print a disclosure bundle.

    Args:
        args: Parsed command-line arguments
        config: Effective configuration
    """
    registry = load_registry(config)
    budget = args.budget if args.budget is not None else config.budget
    session = DisclosureSession(
        registry,
        budget,
        matcher=TriggerMatcher(min_relevance=config.min_relevance),
        timeout=config.fetch_timeout,
        load_references=config.load_references and not args.no_references,
    )
    bundle = session.run(args.query)

    if args.format == "json":
        payload = bundle.to_dict()
        payload["remaining"] = session.budget.remaining
        payload["errors"] = [str(e) for e in session.errors]
        print(json.dumps(payload, indent=2))
        return

    if not bundle.entries:
        print("No matching skills.")
    else:
        print(bundle.render())

    print(f"\n{'='*60}")
    print(f"Used {bundle.total_size}/{budget} units, {session.budget.remaining} remaining")
    if bundle.skipped:
        print(f"Skipped for capacity: {', '.join(bundle.skipped)}")
    if bundle.timed_out:
        print("Partial bundle: a fetch timed out")


def run_serve_command(args: argparse.Namespace, config: Config) -> None:
    """Run the FastAPI server.

    Args:
        args: Parsed command-line arguments
        config: Effective configuration
    """
    import uvicorn

    print(f"\n{'='*60}")
    print("Starting Skill Disclosure API")
    print(f"{'='*60}")
    print(f"Host: {args.host}")
    print(f"Port: {args.port}")
    print(f"Skills: {config.skills_path}")
    print(f"{'='*60}\n")
    print(f"API Documentation: http://{args.host}:{args.port}/docs")
    print(f"Health Check: http://{args.host}:{args.port}/health")
    print(f"{'='*60}\n")

    # The app is imported by uvicorn and reads its own config from the environment
    os.environ["SKILLS_DIR"] = config.skills_dir

    uvicorn.run(
        "skill_disclosure.api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    load_environment()
    config = Config.from_env()
    if args.skills_dir:
        config.skills_dir = args.skills_dir

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    command_map = {
        "list": run_list_command,
        "match": run_match_command,
        "disclose": run_disclose_command,
        "serve": run_serve_command,
    }

    try:
        command_map[args.command](args, config)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(0)
    except SkillDisclosureError as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
CineWall - Film Review Consensus Engine

CLI entry point for the wall, single-film detail, narrative vault and demo data.
"""

import argparse
import logging
import sys

from cinewall.agents.export import export_wall
from cinewall.agents.ingestion import IngestionAgent
from cinewall.exceptions import StoreConnectionError
from cinewall.orchestrator import ConsensusService, SORT_MODES, SORT_TRENDING
from cinewall.utils.storage import StorageManager
import config.settings as settings
from config.settings import AppConfig


def setup_logging(log_level: str = "INFO"):
    """Configure logging for the entire application."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=settings.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(settings.LOG_FILE)
        ]
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="CineWall - Film Review Consensus Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Write synthetic scans to try the pipeline
  python main.py demo --count 40

  # Show the wall, most reviewed first, and export it
  python main.py wall --sort trending --export

  # One film, with TMDB metadata and a Gemini consensus report
  python main.py detail interstellar --enrich --narrate

  # List cached reports
  python main.py vault

Note: Set GOOGLE_API_KEY (narratives) and TMDB_API_KEY (metadata) to enable
the optional services.
        """
    )

    parser.add_argument(
        "--data-root",
        default=str(settings.DATA_ROOT),
        help=f"Data directory (default: {settings.DATA_ROOT})"
    )

    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {settings.LOG_LEVEL})"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    wall = subparsers.add_parser("wall", help="Aggregate every film in the store")
    wall.add_argument("--search", help="Case-insensitive film name filter")
    wall.add_argument(
        "--sort",
        default=SORT_TRENDING,
        choices=SORT_MODES,
        help=f"Sort mode (default: {SORT_TRENDING})"
    )
    wall.add_argument("--enrich", action="store_true", help="Look films up on TMDB")
    wall.add_argument("--export", action="store_true", help="Save the wall as CSV")

    detail = subparsers.add_parser("detail", help="Consensus view of one film")
    detail.add_argument("subject", help="Film name (any case) or slug")
    detail.add_argument("--enrich", action="store_true", help="Look the film up on TMDB")
    detail.add_argument("--narrate", action="store_true", help="Show the consensus report")
    detail.add_argument(
        "--refresh",
        action="store_true",
        help="Regenerate the report even if one is cached"
    )

    subparsers.add_parser("vault", help="List cached consensus reports")

    demo = subparsers.add_parser("demo", help="Write synthetic scans to the store")
    demo.add_argument("--count", type=int, default=20, help="Number of scans (default: 20)")

    return parser


def print_wall(aggregates) -> None:
    print("=" * 78)
    print(f"{'Film':<30} {'Rev':>4} {'Critics':>8} {'Audience':>9}  Consensus")
    print("-" * 78)
    for agg in aggregates:
        print(
            f"{agg.subject_name[:30]:<30} {agg.reviewers_count:>4} "
            f"{agg.critics_score:>8} {agg.audience_score:>9}  {agg.consensus_line}"
        )
    print("=" * 78)
    print(f"{len(aggregates)} films")


def print_detail(agg) -> None:
    print("=" * 60)
    print(agg.subject_name)
    print("=" * 60)
    print(f"Consensus: {agg.consensus_line}")
    print(f"Critics: {agg.critics_score}  Audience: {agg.audience_score}")
    print(f"Reviewers: {agg.reviewers_count}  Last scanned: {agg.last_scanned.isoformat()}")
    print(f"Release: {agg.metadata.release_date}")
    if agg.metadata.genres:
        print(f"Genres: {', '.join(agg.metadata.genres)}")
    if agg.metadata.runtime:
        print(f"Runtime: {agg.metadata.runtime} min")
    print(f"Topics: {', '.join(agg.top_topics) or '-'}")
    print(f"Poster: {agg.poster_url}")
    print("-" * 60)
    for scan in agg.scans:
        print(f"[{scan.mode}] {scan.reviewer_name or 'unknown'}: {scan.snippet[:100]}")


def print_report(report) -> None:
    print("-" * 60)
    print(f"Tagline: {report.tagline}")
    print(f"Summary: {report.summary}")
    if report.is_placeholder:
        print("(run again with --refresh to retry)")
        return
    print(f"Critics vs audience: {report.critics_vs_audience}")
    print(f"Conflict points: {report.conflict_points}")
    print(f"Comment vibe: {report.comment_vibe}")


def main():
    """Main CLI entry point."""
    args = build_parser().parse_args()

    # Setup logging
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    config = AppConfig.from_env(data_root=args.data_root)

    try:
        if args.command == "demo":
            storage = StorageManager(config.data_root)
            records = IngestionAgent().generate_demo_scans(count=args.count)
            storage.save_scans(records)
            print(f"Wrote {len(records)} demo scans to {storage.scans_path}")
            sys.exit(0)

        service = ConsensusService(config)

        if args.command == "wall":
            aggregates = service.list_subjects(
                search=args.search, sort=args.sort, enrich=args.enrich
            )
            print_wall(aggregates)
            if args.export:
                output_path = export_wall(aggregates, str(config.output_root), sort=args.sort)
                print(f"Wall table: {output_path}")

        elif args.command == "detail":
            agg = service.get_subject(args.subject, enrich=args.enrich)
            if agg is None:
                print(f"No scans found for '{args.subject}'")
                sys.exit(1)
            print_detail(agg)
            if args.narrate or args.refresh:
                print_report(service.get_narrative(agg, force=args.refresh))

        elif args.command == "vault":
            pairs = service.list_vault()
            for entry, report in pairs:
                print(f"{entry.subject_name}: {report.tagline}")
                print(f"    {report.summary}")
            print(f"{len(pairs)} cached reports")

        sys.exit(0)

    except StoreConnectionError as e:
        logger.error(f"Store unavailable: {e}")
        print(f"\n❌ Could not read the scan store: {e}")
        sys.exit(2)

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        print("\n⚠️  Interrupted")
        sys.exit(1)

    except Exception as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        print(f"\n❌ Command failed: {e}")
        print(f"Check {settings.LOG_FILE} for details")
        sys.exit(1)


if __name__ == "__main__":
    main()

"""ledger-matcher: rank a location's posts for one viewer's avatar."""

import argparse
import logging
from pathlib import Path

from ledger.matching import rank_posts_for_viewer
from ledger.ranking import filter_posts_by_time
from ledger.reader import read_avatar, read_posts
from ledger.reporter import print_summary, write_csv_report, write_html_report
from ledger.scoring import (
    DEFAULT_MATCH_CONFIG,
    DEFAULT_MATCH_THRESHOLD,
    FLAT_MATCH_CONFIG,
    validate_match_config,
)
from ledger.sighting_time import TIME_FILTER_OPTIONS, parse_date

SCORING_SCHEMES = {
    'weighted': DEFAULT_MATCH_CONFIG,
    'flat': FLAT_MATCH_CONFIG,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description='Rank exported posts by how well they describe a viewer.',
        prog='rank_posts.py',
    )
    parser.add_argument(
        '--avatar', required=True, type=Path,
        help='Path to the viewer avatar (JSON, camelCase keys)',
    )
    parser.add_argument(
        '--posts', required=True, type=Path,
        help='Path to the posts export (CSV)',
    )
    parser.add_argument(
        '--output', required=True, type=Path,
        help='Path for the ranking report (CSV)',
    )
    parser.add_argument(
        '--html', action='store_true',
        help='Also write an HTML report',
    )
    parser.add_argument(
        '--summary', action='store_true',
        help='Print a summary to stdout',
    )
    parser.add_argument(
        '--threshold', type=float, default=DEFAULT_MATCH_THRESHOLD,
        help=f'Minimum score for a match (default: {DEFAULT_MATCH_THRESHOLD}, clamped to 30-95)',
    )
    parser.add_argument(
        '--scheme', choices=sorted(SCORING_SCHEMES), default='weighted',
        help='Attribute weighting: per-attribute weights or flat primary/secondary (default: weighted)',
    )
    parser.add_argument(
        '--time-filter', choices=TIME_FILTER_OPTIONS, default='any_time',
        help='Only keep posts from this time window (default: any_time)',
    )
    parser.add_argument(
        '--now',
        help='Reference time as ISO 8601 (default: current time)',
    )
    parser.add_argument(
        '--quick-match', action='store_true',
        help='Drop posts failing the primary-attribute pre-filter before scoring',
    )
    return parser


def main() -> None:
    """Main entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(levelname)s: %(message)s',
    )

    parser = build_parser()
    args = parser.parse_args()

    reference_date = None
    if args.now:
        reference_date = parse_date(args.now)
        if reference_date is None:
            parser.error(f'--now is not a valid ISO 8601 time: {args.now}')

    config = SCORING_SCHEMES[args.scheme]
    # The flat preset is not normalized to 1.0
    if config is not FLAT_MATCH_CONFIG:
        validate_match_config(config)

    try:
        viewer = read_avatar(args.avatar)
        posts = read_posts(args.posts)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    posts = filter_posts_by_time(posts, args.time_filter, reference_date)
    logging.info("%d posts after time filter '%s'", len(posts), args.time_filter)

    ranked = rank_posts_for_viewer(
        viewer, posts,
        reference_date=reference_date,
        threshold=args.threshold,
        config=config,
        use_quick_match=args.quick_match,
    )

    write_csv_report(ranked, args.output)
    if args.html:
        write_html_report(ranked, args.output.with_suffix('.html'), args.posts.name)
    if args.summary:
        print_summary(ranked, args.posts.name)


if __name__ == '__main__':
    main()

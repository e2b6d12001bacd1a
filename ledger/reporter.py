"""Report generation for ranked posts (CSV, HTML, summary)."""

import csv
import logging
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from ledger import RankedPost
from ledger.matching import get_match_description

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / 'templates'

CSV_COLUMNS = [
    'Rank',
    'Post_ID',
    'Location_ID',
    'Score',
    'Is_Match',
    'Quality',
    'Match',
    'Explanation',
    'Sighting',
    'Deprioritized',
    'Created_At',
    'Note',
]


def _ranked_to_row(rank: int, ranked: RankedPost) -> dict:
    """Convert a RankedPost to a flat dict for CSV/HTML output."""
    post = ranked.post
    return {
        'Rank': str(rank),
        'Post_ID': post.id,
        'Location_ID': post.location_id,
        'Score': str(ranked.score),
        'Is_Match': 'yes' if ranked.is_match else 'no',
        'Quality': ranked.quality or '',
        'Match': get_match_description(ranked),
        'Explanation': ranked.explanation or '',
        'Sighting': ranked.sighting_label or '',
        'Deprioritized': 'yes' if ranked.deprioritized else 'no',
        'Created_At': post.created_at.isoformat(),
        'Note': post.note,
        # Raw flags for row highlighting in HTML
        '_is_match': ranked.is_match,
        '_deprioritized': ranked.deprioritized,
    }


def write_csv_report(ranked: list[RankedPost], output_path: Path) -> None:
    """Write ranked posts as a CSV report (UTF-8 with BOM).

    Args:
        ranked: Posts in display order.
        output_path: Path for the output CSV file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, extrasaction='ignore')
        writer.writeheader()
        for rank, item in enumerate(ranked, start=1):
            writer.writerow(_ranked_to_row(rank, item))

    log.info("CSV report written: %s (%d rows)", output_path, len(ranked))


def write_html_report(
    ranked: list[RankedPost],
    output_path: Path,
    title: str = '',
) -> None:
    """Write ranked posts as an HTML report using Jinja2.

    Args:
        ranked: Posts in display order.
        output_path: Path for the output HTML file.
        title: Report title (usually the posts file name).
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
    )
    template = env.get_template('report.html')

    html = template.render(
        title=title,
        rows=[_ranked_to_row(rank, item) for rank, item in enumerate(ranked, start=1)],
        stats=compute_stats(ranked),
        columns=CSV_COLUMNS,
    )

    output_path.write_text(html, encoding='utf-8')
    log.info("HTML report written: %s", output_path)


def compute_stats(ranked: list[RankedPost]) -> dict:
    """Compute summary statistics from ranked posts."""
    qualities = [r.quality for r in ranked]
    return {
        'total': len(ranked),
        'matches': sum(1 for r in ranked if r.is_match),
        'excellent': qualities.count('excellent'),
        'good': qualities.count('good'),
        'fair': qualities.count('fair'),
        'poor': qualities.count('poor'),
        'deprioritized': sum(1 for r in ranked if r.deprioritized),
        'with_sighting_time': sum(1 for r in ranked if r.sighting_label is not None),
        'without_sighting_time': sum(1 for r in ranked if r.sighting_label is None),
    }


def print_summary(ranked: list[RankedPost], title: str = '') -> None:
    """Print a summary of ranked posts to stdout."""
    stats = compute_stats(ranked)

    print(f"\n=== Ranking report: {title} ===")
    print(f"Posts:                     {stats['total']:>5}")
    print(f"Matches:                   {stats['matches']:>5}")
    print("---")
    print(f"  - excellent:             {stats['excellent']:>5}")
    print(f"  - good:                  {stats['good']:>5}")
    print(f"  - fair:                  {stats['fair']:>5}")
    print(f"  - poor:                  {stats['poor']:>5}")
    print("---")
    print(f"Deprioritized (>30 days):  {stats['deprioritized']:>5}")
    print(f"With sighting time:        {stats['with_sighting_time']:>5}")
    print(f"Without sighting time:     {stats['without_sighting_time']:>5}")
    print()

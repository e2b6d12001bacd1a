"""Tests for ledger.reporter module."""

import csv
from datetime import datetime, timezone

import pytest

from ledger import Post, RankedPost
from ledger.matching import rank_posts_for_viewer
from ledger.reporter import (
    CSV_COLUMNS,
    compute_stats,
    print_summary,
    write_csv_report,
    write_html_report,
)


@pytest.fixture
def ranked(viewer_avatar, sample_posts, reference_date):
    return rank_posts_for_viewer(viewer_avatar, sample_posts, reference_date)


class TestComputeStats:
    """Tests for summary statistics."""

    def test_counts(self, ranked):
        stats = compute_stats(ranked)
        assert stats['total'] == 5
        assert stats['matches'] == 3
        assert stats['excellent'] == 2
        assert stats['good'] == 1
        assert stats['fair'] == 0
        assert stats['poor'] == 2
        assert stats['deprioritized'] == 1
        assert stats['with_sighting_time'] == 3
        assert stats['without_sighting_time'] == 2

    def test_empty(self):
        stats = compute_stats([])
        assert stats['total'] == 0
        assert stats['matches'] == 0


class TestCsvReport:
    """Tests for the CSV report."""

    def test_rows(self, ranked, tmp_path):
        path = tmp_path / 'out' / 'report.csv'
        write_csv_report(ranked, path)
        with open(path, encoding='utf-8-sig', newline='') as f:
            rows = list(csv.DictReader(f))

        assert list(rows[0]) == CSV_COLUMNS
        assert [r['Post_ID'] for r in rows] == ['post-1', 'post-3', 'post-4', 'post-6', 'post-2']
        assert rows[0]['Rank'] == '1'
        assert rows[0]['Sighting'] == 'Wednesday at 3:00 PM'
        assert rows[2]['Deprioritized'] == 'yes'
        assert rows[4]['Is_Match'] == 'no'
        assert rows[4]['Quality'] == 'poor'
        assert rows[0]['Match'] == '100% match - Excellent'
        assert rows[0]['Explanation'] == 'skin tone, hairstyle, and hair color match'
        assert rows[4]['Match'] == '26% match - Poor'

    def test_utf8_bom(self, ranked, tmp_path):
        path = tmp_path / 'report.csv'
        write_csv_report(ranked, path)
        assert path.read_bytes().startswith(b'\xef\xbb\xbf')

    def test_empty(self, tmp_path):
        path = tmp_path / 'report.csv'
        write_csv_report([], path)
        with open(path, encoding='utf-8-sig', newline='') as f:
            assert list(csv.reader(f)) == [CSV_COLUMNS]


class TestHtmlReport:
    """Tests for the HTML report."""

    def test_renders(self, ranked, tmp_path):
        path = tmp_path / 'report.html'
        write_html_report(ranked, path, 'sample_posts.csv')
        html = path.read_text(encoding='utf-8')
        assert 'Ranking report: sample_posts.csv' in html
        assert 'Nov 12 evening' in html
        assert 'expression and similar skin tone match' in html
        assert 'class="match deprioritized"' in html

    def test_escapes_notes(self, tmp_path):
        post = Post(id='p1', created_at=datetime(2024, 12, 26, tzinfo=timezone.utc),
                    note='<script>alert(1)</script>')
        item = RankedPost(post=post, score=10, is_match=False, quality='poor',
                          priority=0, deprioritized=False)
        path = tmp_path / 'report.html'
        write_html_report([item], path)
        html = path.read_text(encoding='utf-8')
        assert '<script>' not in html
        assert '&lt;script&gt;' in html


class TestPrintSummary:
    """Tests for the stdout summary."""

    def test_output(self, ranked, capsys):
        print_summary(ranked, 'sample_posts.csv')
        out = capsys.readouterr().out
        assert '=== Ranking report: sample_posts.csv ===' in out
        assert 'Matches:' in out
        assert 'Deprioritized (>30 days):' in out

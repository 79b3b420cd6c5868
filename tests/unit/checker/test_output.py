"""Tests for markdown-link-check output parsing."""

from linkretry.checker.output import parse_dead_links

SAMPLE = """
FILE: ./docs/README.md
  [✓] https://opentelemetry.io
  [✖] https://example.com/missing → Status: 404
  [✖] ../guide/setup.md
  [/] https://skipped.example

  3 links checked.

  ERROR: 2 dead links found!
"""


def test_dead_links_with_and_without_status():
    assert parse_dead_links(SAMPLE) == [
        "https://example.com/missing (Status: 404)",
        "../guide/setup.md",
    ]


def test_clean_output_has_no_dead_links():
    assert parse_dead_links("FILE: a.md\n  [✓] https://ok.example\n") == []


def test_unrelated_output():
    assert parse_dead_links("lychee: 0 errors") == []

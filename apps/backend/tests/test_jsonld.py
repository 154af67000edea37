"""
Unit tests for the JSON-LD extractor.
"""

import json

from bs4 import BeautifulSoup

from pipeline.jsonld import JSONLDExtractor


def page_with(*blocks: str) -> BeautifulSoup:
    scripts = ''.join(f'<script type="application/ld+json">{block}</script>' for block in blocks)
    return BeautifulSoup(f"<html><head>{scripts}</head><body></body></html>", 'html.parser')


class TestJSONLDExtractor:
    """Test JSON-LD extraction."""

    def test_minimal_posting(self):
        """Only title and company present: nothing else is filled."""
        soup = page_with('{"@type":"JobPosting","title":"Engineer","hiringOrganization":{"name":"Acme"}}')
        partial = JSONLDExtractor().extract(soup, "https://www.daijob.com/en/jobs/detail/1")

        assert partial.get('title') == "Engineer"
        assert partial.get('company') == "Acme"
        assert len(partial) == 2

    def test_full_posting(self):
        posting = {
            "@context": "https://schema.org",
            "@type": "JobPosting",
            "title": "Bilingual Sales Manager",
            "datePosted": "2024-03-05T10:00:00+09:00",
            "description": "<p>Lead the <b>APAC</b> team.</p>",
            "employmentType": ["FULL_TIME", "CONTRACTOR"],
            "industry": "Consumer Goods",
            "hiringOrganization": {
                "@type": "Organization",
                "name": "Acme KK",
                "description": "<p>Makers of widgets.</p>"
            },
            "jobLocation": [{
                "@type": "Place",
                "address": {
                    "addressCountry": {"@type": "Country", "name": "Japan"},
                    "addressRegion": "Tokyo",
                    "addressLocality": "Minato",
                    "streetAddress": ""
                }
            }],
            "baseSalary": {
                "@type": "MonetaryAmount",
                "currency": "JPY",
                "value": {"@type": "QuantitativeValue", "minValue": 5000000.0, "maxValue": 8000000, "unitText": "YEAR"}
            }
        }
        partial = JSONLDExtractor().extract(page_with(json.dumps(posting)))

        assert partial.get('title') == "Bilingual Sales Manager"
        assert partial.get('company') == "Acme KK"
        assert partial.get('company_info_html') == "<p>Makers of widgets.</p>"
        assert partial.get('description_html') == "<p>Lead the <b>APAC</b> team.</p>"
        assert partial.get('date_posted') == "2024-03-05"
        assert partial.get('location') == "Japan, Tokyo, Minato"
        assert partial.get('salary') == "JPY 5000000 - 8000000 YEAR"
        assert partial.get('job_type') == "FULL_TIME, CONTRACTOR"
        assert partial.get('industry') == "Consumer Goods"

    def test_single_salary_value(self):
        block = json.dumps({
            "@type": "JobPosting",
            "name": "Analyst",
            "hiringOrganization": "Beta Inc",
            "baseSalary": {"currency": "USD", "value": {"value": 60000}, "unitText": "YEAR"}
        })
        partial = JSONLDExtractor().extract(page_with(block))

        assert partial.get('title') == "Analyst"
        assert partial.get('company') == "Beta Inc"
        assert partial.get('salary') == "USD 60000 YEAR"

    def test_unparseable_date_kept_raw(self):
        block = '{"@type":"JobPosting","title":"A","datePosted":"sometime soon"}'
        partial = JSONLDExtractor().extract(page_with(block))
        assert partial.get('date_posted') == "sometime soon"

    def test_graph_and_type_list(self):
        block = json.dumps({
            "@graph": [
                {"@type": "WebPage", "name": "Search"},
                {"@type": ["JobPosting", "Thing"], "title": "Engineer", "hiringOrganization": {"name": "Acme"}}
            ]
        })
        partial = JSONLDExtractor().extract(page_with(block))
        assert partial.get('title') == "Engineer"

    def test_malformed_block_skipped(self):
        """A broken block does not stop later blocks from being read."""
        soup = page_with('{"@type": "JobPosting", title: oops', '{"@type":"JobPosting","title":"Second"}')
        partial = JSONLDExtractor().extract(soup)
        assert partial.get('title') == "Second"

    def test_no_job_posting(self):
        soup = page_with('{"@type":"Organization","name":"Acme"}')
        partial = JSONLDExtractor().extract(soup)
        assert partial.is_empty()

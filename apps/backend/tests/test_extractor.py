"""
Integration tests for the detail-page extraction pipeline.
"""

import logging

from pipeline.extractor import Extractor

DETAIL_URL = "https://www.daijob.com/en/jobs/detail/1001"

JSONLD_ONLY = """
<html><head>
<script type="application/ld+json">{"@type":"JobPosting","title":"Engineer","hiringOrganization":{"name":"Acme"}}</script>
</head><body></body></html>
"""

MIXED_PAGE = """
<html><head>
<script type="application/ld+json">
{
  "@type": "JobPosting",
  "title": "Engineer",
  "hiringOrganization": {"name": "Acme"},
  "jobLocation": {"address": {"addressCountry": "Japan", "addressRegion": "Tokyo"}}
}
</script>
</head>
<body>
  <h1>Some Other Heading</h1>
  <div><span>Company Name</span><span>Other Co</span></div>
  <div>Industry <a>IT</a> <span>(software)</span></div>
  <div>Location <a>Osaka</a> <a>Umeda</a></div>
  <div>Working Hours: 10:00 - 19:00</div>
  <table><tr><td>Job Requirements</td><td>3+ years of Java</td></tr></table>
</body></html>
"""


class TestExtractor:
    def test_structured_data_only(self):
        """A bare JobPosting block yields a valid record with only title and company."""
        result = Extractor().extract_from_html(JSONLD_ONLY, DETAIL_URL)

        assert result.is_valid()
        record = result.record
        assert record.title == "Engineer"
        assert record.company == "Acme"
        assert record.source_url == DETAIL_URL
        for field_name in ('location', 'salary', 'job_type', 'industry', 'working_hours',
                           'description_html', 'description_text', 'date_posted'):
            assert getattr(record, field_name) is None

    def test_structured_data_wins(self):
        result = Extractor().extract_from_html(MIXED_PAGE, DETAIL_URL)

        record = result.record
        assert record.title == "Engineer"
        assert record.company == "Acme"
        assert record.location == "Japan, Tokyo"

    def test_label_not_overwritten_by_regex(self):
        result = Extractor().extract_from_html(MIXED_PAGE, DETAIL_URL)

        assert result.record.industry == "IT"
        assert result.sources['industry'] == 'label'
        assert result.record.working_hours == "10:00 - 19:00"

    def test_table_fills_remaining_gaps(self):
        result = Extractor().extract_from_html(MIXED_PAGE, DETAIL_URL)
        assert result.record.job_requirements == "3+ years of Java"
        assert result.sources['job_requirements'] == 'table'

    def test_unrecognisable_page(self):
        """No heading and no labels: no record, no exception."""
        result = Extractor().extract_from_html("<html><body><p>Page not found</p></body></html>", DETAIL_URL)
        assert not result.is_valid()
        assert result.reason

    def test_category_echoed(self):
        result = Extractor().extract_from_html(JSONLD_ONLY, DETAIL_URL, category="Engineering")
        assert result.record.category == "Engineering"

    def test_failing_strategy_is_isolated(self):
        extractor = Extractor()

        class Broken:
            source = 'label'

            def extract(self, soup, url):
                raise RuntimeError("boom")

        extractor.strategies[1] = Broken()
        result = extractor.extract_from_html(JSONLD_ONLY, DETAIL_URL)
        assert result.is_valid()

    def test_title_from_h4_below_site_banner(self):
        html = """
        <html><body>
          <h1>Daijob.com</h1>
          <h4>Java Engineer</h4>
          <table><tr><td>Company Name</td><td>Acme KK</td></tr></table>
        </body></html>
        """
        result = Extractor().extract_from_html(html, DETAIL_URL)

        assert result.is_valid()
        assert result.record.title == "Java Engineer"
        assert result.record.company == "Acme KK"

    def test_legacy_table_description_keeps_inner_markup(self):
        html = """
        <html><body>
          <h4>Java Engineer</h4>
          <table>
            <tr><td>Company Name</td><td>Old Corp</td></tr>
            <tr><th>Job Description</th><td><p>Do <b>work</b></p></td></tr>
          </table>
        </body></html>
        """
        result = Extractor().extract_from_html(html, DETAIL_URL)
        assert result.record.description_html == "<p>Do <b>work</b></p>"

    def test_field_snippets_logged_per_strategy(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="pipeline.extractor"):
            Extractor().extract_from_html(JSONLD_ONLY, DETAIL_URL)
        assert "[extractor] jsonld title: 'Engineer'" in caplog.text

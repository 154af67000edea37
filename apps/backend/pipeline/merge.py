"""
Record merger and validator.

Combines the partial extractions of one detail page into a canonical record.
Strategies are applied in fixed priority order and the first strategy to
provide a field wins it; lower-priority strategies only fill gaps.
"""

import logging
from typing import Dict, Iterable, Optional

from pydantic import BaseModel

from core.normalize import clean_text
from .partial import FieldResult, PartialExtraction

logger = logging.getLogger(__name__)


class CanonicalJobRecord(BaseModel):
    """A validated job posting, ready for the result sink."""

    title: str
    company: str
    category: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    job_type: Optional[str] = None
    industry: Optional[str] = None
    working_hours: Optional[str] = None
    job_requirements: Optional[str] = None
    chinese_level: Optional[str] = None
    japanese_level: Optional[str] = None
    holidays: Optional[str] = None
    job_contract_period: Optional[str] = None
    company_info_html: Optional[str] = None
    company_info_text: Optional[str] = None
    date_posted: Optional[str] = None
    description_html: Optional[str] = None
    description_text: Optional[str] = None
    source_url: str

    def to_dict(self) -> Dict:
        return self.model_dump()


class MergeResult:
    """Outcome of merging: a record, or the reason the page produced none."""

    def __init__(self, record: Optional[CanonicalJobRecord] = None,
                 reason: Optional[str] = None,
                 sources: Optional[Dict[str, str]] = None):
        self.record = record
        self.reason = reason
        self.sources = sources or {}

    def is_valid(self) -> bool:
        return self.record is not None

    def __repr__(self):
        if self.record is not None:
            return f"MergeResult(valid, title={self.record.title!r})"
        return f"MergeResult(invalid, reason={self.reason!r})"


def merge_fields(partials: Iterable[PartialExtraction]) -> Dict[str, FieldResult]:
    """
    First-writer-wins merge across strategies.

    Partials are ordered by strategy priority before merging, so the result
    does not depend on the order they are passed in.
    """
    merged: Dict[str, FieldResult] = {}
    for partial in sorted(partials, key=lambda p: p.priority):
        for field_name, result in partial.items():
            if field_name not in merged and result.is_valid():
                merged[field_name] = result
    return merged


def merge_extractions(
    partials: Iterable[PartialExtraction],
    source_url: str,
    category: Optional[str] = None
) -> MergeResult:
    """
    Merge partial extractions into a validated CanonicalJobRecord.

    Text fields are derived from their HTML counterparts. A record without a
    title or a company is rejected with a reason instead of being built.
    """
    merged = merge_fields(partials)
    values = {name: result.value for name, result in merged.items()}
    sources = {name: result.source for name, result in merged.items()}

    title = values.get('title')
    company = values.get('company')
    if not title or not company:
        reason = f"incomplete job data: title={bool(title)}, company={bool(company)}"
        return MergeResult(reason=reason, sources=sources)

    description_html = values.get('description_html')
    company_info_html = values.get('company_info_html')

    record = CanonicalJobRecord(
        **values,
        category=category or None,
        description_text=clean_text(description_html),
        company_info_text=clean_text(company_info_html),
        source_url=source_url,
    )
    return MergeResult(record=record, sources=sources)

"""
Partial extraction results.

Every extraction strategy returns a PartialExtraction: a field-sparse view of a
job record where each field is either present or absent. Strategies never
write defaults; the merge step decides which strategy wins a field.
"""

from typing import Any, Dict, Iterator, Optional

# Strategy sources, highest priority first
EXTRACTION_ORDER = ('jsonld', 'label', 'regex', 'table')

SOURCE_PRIORITY = {source: rank for rank, source in enumerate(EXTRACTION_ORDER)}

# Fields an extractor may fill. Text fields derived from HTML are not listed:
# they are computed by the merge.
EXTRACTABLE_FIELDS = (
    'title',
    'company',
    'location',
    'salary',
    'job_type',
    'industry',
    'working_hours',
    'chinese_level',
    'japanese_level',
    'holidays',
    'job_contract_period',
    'job_requirements',
    'company_info_html',
    'description_html',
    'date_posted',
)


class FieldResult:
    """Result for a single extracted field."""

    def __init__(self, value: Any = None, source: Optional[str] = None,
                 raw_snippet: Optional[str] = None):
        self.value = value
        self.source = source
        self.raw_snippet = raw_snippet

    def is_valid(self) -> bool:
        """Check if field has a usable value."""
        if self.value is None:
            return False
        if isinstance(self.value, str) and not self.value.strip():
            return False
        return True

    def __eq__(self, other):
        if not isinstance(other, FieldResult):
            return NotImplemented
        return (self.value, self.source) == (other.value, other.source)

    def __repr__(self):
        return f"FieldResult(value={self.value!r}, source={self.source!r})"


class PartialExtraction:
    """Field-sparse output of one extraction strategy."""

    def __init__(self, source: str):
        if source not in SOURCE_PRIORITY:
            raise ValueError(f"Unknown extraction source: {source}")
        self.source = source
        self.fields: Dict[str, FieldResult] = {}

    @property
    def priority(self) -> int:
        return SOURCE_PRIORITY[self.source]

    def set(self, field_name: str, value: Any, raw_snippet: Optional[str] = None) -> bool:
        """
        Record a field value.

        Empty values are ignored so that an absent field stays absent.
        Returns True if the field was recorded.
        """
        if field_name not in EXTRACTABLE_FIELDS:
            raise KeyError(f"Unknown record field: {field_name}")

        result = FieldResult(
            value=value.strip() if isinstance(value, str) else value,
            source=self.source,
            raw_snippet=(raw_snippet or str(value))[:200] if value is not None else None
        )
        if not result.is_valid():
            return False
        self.fields[field_name] = result
        return True

    def get(self, field_name: str) -> Optional[Any]:
        result = self.fields.get(field_name)
        return result.value if result else None

    def has(self, field_name: str) -> bool:
        return field_name in self.fields

    def items(self) -> Iterator:
        return iter(self.fields.items())

    def is_empty(self) -> bool:
        return not self.fields

    def __len__(self):
        return len(self.fields)

    def __repr__(self):
        return f"PartialExtraction(source={self.source}, fields={sorted(self.fields)})"

"""
Job detail extraction pipeline.

Turns one fetched detail page into a canonical job record using cascading
strategies (structured data, layout labels, text windows, legacy tables), so
extraction keeps working across the board's historical page layouts.
"""

__version__ = "1.0.0"

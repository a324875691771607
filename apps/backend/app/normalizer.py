"""
Normalization of completion-service output into ExtractedFields.

The service's JSON is untrusted: any key may be missing, null, or of the
wrong type. Each field has its own normalizer and a failure in one never
affects another.
"""

import logging
import re
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from dateutil import parser as date_parser

from pipeline.models import ExtractedFields, OpportunityType, OPPORTUNITY_TYPES

logger = logging.getLogger(__name__)

ISO_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


class Normalizer:
    """Per-field normalizers. None means 'not known'."""

    @staticmethod
    def to_text(value: Any) -> Optional[str]:
        """
        Trim a string; empty-after-trim becomes None.

        Non-string values are not coerced.
        """
        if not isinstance(value, str):
            return None
        value = value.strip()
        return value or None

    @staticmethod
    def to_block_text(value: Any) -> Optional[str]:
        """Like to_text, but a list of strings is joined one item per line."""
        if isinstance(value, (list, tuple)):
            items = Normalizer.to_string_list(value)
            return '\n'.join(items) if items else None
        return Normalizer.to_text(value)

    @staticmethod
    def to_string_list(value: Any) -> Optional[Tuple[str, ...]]:
        """
        Keep only non-empty string elements, trimmed and de-duplicated in order.

        Returns None when nothing survives.
        """
        if not isinstance(value, (list, tuple)):
            return None

        items = []
        seen = set()
        for item in value:
            if not isinstance(item, str):
                continue
            item = item.strip()
            if item and item not in seen:
                seen.add(item)
                items.append(item)

        return tuple(items) if items else None

    @staticmethod
    def to_opportunity_type(value: Any) -> Optional[OpportunityType]:
        """
        Exact token match after trimming.

        The token must already be lower-case: "Internship" is rejected so that
        a service ignoring the requested vocabulary is visible as None rather
        than silently repaired.
        """
        if not isinstance(value, str):
            return None
        token = value.strip()
        if token not in OPPORTUNITY_TYPES:
            return None
        return OpportunityType(token)

    @staticmethod
    def to_iso_date(value: Any) -> Optional[str]:
        """
        Normalize a date to YYYY-MM-DD.

        Well-formed YYYY-MM-DD strings are returned unchanged once they are
        confirmed to be real dates. Anything else goes through dateutil;
        unparseable input, or text naming no month and day ("Friday",
        "5 PM", "March 2026"), becomes None. Never raises.
        """
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if not isinstance(value, str):
            return None

        text = value.strip()
        if not text:
            return None

        if ISO_DATE.match(text):
            try:
                datetime.strptime(text, '%Y-%m-%d')
                return text
            except ValueError:
                return None

        # Parse against two defaults that differ in month and day: if the
        # results disagree the text carried no calendar date ("Friday", "5 PM")
        year = date.today().year
        try:
            first = date_parser.parse(text, default=datetime(year, 1, 1))
            second = date_parser.parse(text, default=datetime(year, 2, 2))
        except (ValueError, OverflowError, TypeError):
            return None
        if (first.month, first.day) != (second.month, second.day):
            return None
        return first.date().isoformat()


def normalize_extracted_fields(raw: Any) -> ExtractedFields:
    """
    Turn an untyped mapping from the completion service into ExtractedFields.

    A non-mapping input yields an all-None record.
    """
    if not isinstance(raw, dict):
        logger.warning(f"[normalizer] Expected a JSON object, got {type(raw).__name__}")
        return ExtractedFields()

    opportunity_type = Normalizer.to_opportunity_type(raw.get('opportunity_type'))
    if raw.get('opportunity_type') is not None and opportunity_type is None:
        logger.info(f"[normalizer] Dropping unknown opportunity_type: {raw.get('opportunity_type')!r}")

    return ExtractedFields(
        company_name=Normalizer.to_text(raw.get('company_name')),
        job_title=Normalizer.to_text(raw.get('job_title')),
        opportunity_type=opportunity_type,
        role_type=Normalizer.to_text(raw.get('role_type')),
        relevant_majors=Normalizer.to_string_list(raw.get('relevant_majors')),
        deadline=Normalizer.to_iso_date(raw.get('deadline')),
        requirements=Normalizer.to_block_text(raw.get('requirements')),
        location=Normalizer.to_text(raw.get('location')),
        description=Normalizer.to_block_text(raw.get('description')),
    )

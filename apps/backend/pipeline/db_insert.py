"""
Storage boundary for submitted opportunities.

Backed by the opportunities table (see migrations/001_opportunities.sql).
The UNIQUE constraint on url is the authoritative duplicate guard; a
violation at insert time surfaces as DuplicateUrlError.
"""

import os
import logging
from datetime import date
from typing import Any, Dict, Optional

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extras import Json, RealDictCursor

from core.errors import DuplicateUrlError
from pipeline.models import OpportunityStatus, SubmissionRecord

logger = logging.getLogger(__name__)

DEFAULT_OPPORTUNITIES_TABLE = os.getenv('OPPORTUNITIES_TABLE', 'opportunities')

INSERT_COLUMNS = (
    'url',
    'company_name',
    'job_title',
    'opportunity_type',
    'role_type',
    'relevant_majors',
    'deadline',
    'requirements',
    'location',
    'description',
    'submitted_by',
    'status',
    'ai_parsed_data',
)


class OpportunityStore:
    """psycopg2-backed persistence for SubmissionRecord."""

    def __init__(self, db_url: str, table: Optional[str] = None):
        """
        Args:
            db_url: PostgreSQL connection string
            table: Table name (default: OPPORTUNITIES_TABLE env var or 'opportunities')
        """
        self.db_url = db_url
        self.table = table or DEFAULT_OPPORTUNITIES_TABLE

    def _get_db_conn(self):
        """Get database connection."""
        try:
            return psycopg2.connect(self.db_url, connect_timeout=5)
        except Exception as e:
            logger.error(f"[storage] Failed to connect to database: {e}")
            raise

    def _record_to_row(self, record: SubmissionRecord) -> Dict[str, Any]:
        """Map a record onto insert column values."""
        return {
            'url': record.url,
            'company_name': record.company_name,
            'job_title': record.job_title,
            'opportunity_type': record.opportunity_type.value,
            'role_type': record.role_type,
            'relevant_majors': Json(list(record.relevant_majors)),
            'deadline': record.deadline,
            'requirements': record.requirements,
            'location': record.location,
            'description': record.description,
            'submitted_by': record.submitted_by,
            'status': record.status.value,
            'ai_parsed_data': Json(record.ai_parsed_data),
        }

    def find_by_url(self, url: str) -> Optional[SubmissionRecord]:
        """Exact-match lookup by source URL."""
        conn = self._get_db_conn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(f"SELECT * FROM {self.table} WHERE url = %s LIMIT 1", (url,))
                row = cur.fetchone()
                return SubmissionRecord.from_row(dict(row)) if row else None
        finally:
            conn.close()

    def insert(self, record: SubmissionRecord) -> SubmissionRecord:
        """
        Insert a new record and return it with id and created_at filled in.

        Raises:
            DuplicateUrlError: the url is already stored
        """
        row = self._record_to_row(record)
        columns = list(INSERT_COLUMNS)
        placeholders = ['%s'] * len(columns)
        values = [row[c] for c in columns]

        conn = self._get_db_conn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"""
                    INSERT INTO {self.table} ({', '.join(columns)})
                    VALUES ({', '.join(placeholders)})
                    RETURNING *
                    """,
                    values,
                )
                inserted = cur.fetchone()
            conn.commit()
        except pg_errors.UniqueViolation as e:
            conn.rollback()
            logger.warning(f"[storage] Unique violation inserting {record.url}: {e}")
            existing = None
            try:
                existing = self.find_by_url(record.url)
            except Exception as lookup_error:
                logger.warning(f"[storage] Could not load conflicting record for {record.url}: {lookup_error}")
            raise DuplicateUrlError(record.url, conflict_summary(existing)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info(f"[storage] Inserted opportunity {inserted['id']} for {record.url}")
        return SubmissionRecord.from_row(dict(inserted))

    def expire_past_deadline(self, today: Optional[date] = None) -> int:
        """Mark active records whose deadline has passed as expired. Returns the count."""
        today = today or date.today()
        conn = self._get_db_conn()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE {self.table}
                    SET status = %s, expired_at = NOW()
                    WHERE status = %s
                      AND deadline IS NOT NULL
                      AND deadline < %s
                    """,
                    (OpportunityStatus.EXPIRED.value, OpportunityStatus.ACTIVE.value, today),
                )
                count = cur.rowcount
            conn.commit()
        except Exception as e:
            logger.error(f"[storage] Error expiring opportunities: {e}")
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info(f"[storage] Expired {count} opportunities with deadline before {today.isoformat()}")
        return count


def conflict_summary(record: Optional[SubmissionRecord]) -> Dict[str, Any]:
    """Identifying fields of a conflicting record, for the 409 response."""
    if record is None:
        return {}
    return {
        'id': record.id,
        'company_name': record.company_name,
        'job_title': record.job_title,
        'status': record.status.value,
    }

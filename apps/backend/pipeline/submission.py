"""
Submission coordinator: dedup -> smart scrape -> extraction -> merge -> persist.

Steps run strictly in sequence; everything before the insert runs under
one parent deadline. The pre-scrape dedup lookup only saves work; the
storage unique constraint is what actually guarantees one record per URL.
"""
import asyncio
import logging
from typing import Optional, Union

from app.config import Settings
from core.errors import DuplicateUrlError, ErrorCode, ExtractionError, ScraperError, SubmissionError
from core.text import validate_url
from crawler.smart_scrape import SmartScrapeGateway
from pipeline.db_insert import OpportunityStore, conflict_summary
from pipeline.extractor import StructuredExtractor
from pipeline.models import (
    DEFAULT_COMPANY_NAME,
    DEFAULT_JOB_TITLE,
    DEFAULT_OPPORTUNITY_TYPE,
    ExtractedFields,
    OpportunityStatus,
    OpportunityType,
    SubmissionRecord,
)

logger = logging.getLogger(__name__)


def _user_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _user_opportunity_type(value: Union[OpportunityType, str, None]) -> Optional[OpportunityType]:
    if value is None or isinstance(value, OpportunityType):
        return value
    token = value.strip()
    if not token:
        return None
    try:
        return OpportunityType(token)
    except ValueError:
        raise SubmissionError(f"Unknown opportunity type: {value!r}", ErrorCode.INVALID_CONTENT)


def merge_fields(
    url: str,
    fields: ExtractedFields,
    company_name: Optional[str] = None,
    opportunity_type: Optional[OpportunityType] = None,
    submitted_by: Optional[str] = None,
) -> SubmissionRecord:
    """
    Combine user input with extracted fields.

    User-supplied company name and type always win. Defaults apply only when
    neither the user nor the extraction provided a value.
    """
    return SubmissionRecord(
        url=url,
        company_name=company_name or fields.company_name or DEFAULT_COMPANY_NAME,
        job_title=fields.job_title or DEFAULT_JOB_TITLE,
        opportunity_type=opportunity_type or fields.opportunity_type or DEFAULT_OPPORTUNITY_TYPE,
        role_type=fields.role_type,
        relevant_majors=fields.relevant_majors or (),
        deadline=fields.deadline,
        requirements=fields.requirements,
        location=fields.location,
        description=fields.description,
        submitted_by=submitted_by,
        status=OpportunityStatus.ACTIVE,
        ai_parsed_data=fields.to_dict(),
    )


class SubmissionCoordinator:
    """Top-level ingestion flow for one submitted URL."""

    def __init__(
        self,
        store: OpportunityStore,
        gateway: Optional[SmartScrapeGateway] = None,
        extractor: Optional[StructuredExtractor] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.store = store
        self.gateway = gateway or SmartScrapeGateway()
        self.extractor = extractor or StructuredExtractor(settings=self.settings.extraction)

    async def submit(
        self,
        url: str,
        company_name: Optional[str] = None,
        opportunity_type: Union[OpportunityType, str, None] = None,
        manual_content: Optional[str] = None,
        submitted_by: Optional[str] = None,
    ) -> SubmissionRecord:
        """
        Ingest a URL and persist the resulting record.

        The parent deadline covers validation, dedup, scraping and
        extraction. The insert runs outside it, so a stored record is never
        reported as a timeout.

        Raises:
            DuplicateUrlError: the URL is already stored (checked before scraping and at insert)
            SubmissionError: INVALID_URL, INVALID_CONTENT, SCRAPE_FAILED, TIMEOUT,
                             or the extraction failure code (RATE_LIMITED, EXTRACTION_FAILED, ...)
        """
        timeout = self.settings.submission_timeout_seconds
        try:
            record = await asyncio.wait_for(
                self._prepare(url, company_name, opportunity_type, manual_content, submitted_by),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"[submission] Submission for {url} exceeded {timeout}s")
            raise SubmissionError(
                f"Submission timed out after {timeout:.0f}s. Please try again or paste the content manually.",
                ErrorCode.TIMEOUT,
            )

        return await self._persist(record)

    async def _prepare(
        self,
        url: str,
        company_name: Optional[str],
        opportunity_type: Union[OpportunityType, str, None],
        manual_content: Optional[str],
        submitted_by: Optional[str],
    ) -> SubmissionRecord:
        try:
            url = validate_url(url)
        except ScraperError as e:
            raise SubmissionError(e.message, ErrorCode.INVALID_URL)

        user_company = _user_text(company_name)
        user_type = _user_opportunity_type(opportunity_type)

        existing = await asyncio.to_thread(self.store.find_by_url, url)
        if existing is not None:
            logger.info(f"[submission] Duplicate submission for {url} (existing id={existing.id})")
            raise DuplicateUrlError(url, conflict_summary(existing))

        scraped = await self.gateway.smart_scrape(url, manual_content=manual_content)
        if not scraped.success:
            logger.info(f"[submission] Content acquisition failed for {url}: {scraped.error}")
            details = {
                "requires_manual": scraped.requires_manual,
                "is_restricted": scraped.is_restricted,
            }
            if scraped.restricted_site_message:
                details["restricted_site_message"] = scraped.restricted_site_message
            if scraped.scrape_result is not None:
                details["fallback_chain"] = [a.to_dict() for a in scraped.scrape_result.fallback_chain]
            raise SubmissionError(
                scraped.error or "Could not read the page content. Please paste it manually.",
                ErrorCode.SCRAPE_FAILED,
                details=details,
            )

        logger.info(f"[submission] Acquired {len(scraped.content)} chars for {url} via {scraped.method}")

        try:
            fields = await self.extractor.extract(scraped.content)
        except ExtractionError as e:
            logger.warning(f"[submission] Extraction failed for {url}: {e}")
            raise SubmissionError(e.message, e.code, e.status_code, details={"stage": "extraction"}) from e

        return merge_fields(url, fields, user_company, user_type, submitted_by)

    async def _persist(self, record: SubmissionRecord) -> SubmissionRecord:
        url = record.url
        try:
            saved = await asyncio.to_thread(self.store.insert, record)
        except DuplicateUrlError:
            logger.info(f"[submission] Lost insert race for {url}")
            raise
        except Exception as e:
            logger.error(f"[submission] Failed to persist {url}: {e}", exc_info=True)
            raise SubmissionError("Failed to save the opportunity. Please try again.", ErrorCode.UNKNOWN) from e

        logger.info(
            f"[submission] Stored opportunity {saved.id}: {saved.job_title} at {saved.company_name} "
            f"({saved.opportunity_type.value})"
        )
        return saved

    async def expire_past_deadline(self) -> int:
        """Auto-expire active records whose deadline has passed."""
        return await asyncio.to_thread(self.store.expire_past_deadline)

    async def close(self) -> None:
        await self.gateway.close()

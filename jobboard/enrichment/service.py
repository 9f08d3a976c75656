"""
Best-effort enrichment of new job postings.

Each call is isolated: a failing summary does not prevent the spam check and
neither ever raises. Without an LLM key the service is a no-op.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from ..config import Settings
from ..models import Enrichment
from .career_page import fetch_career_text
from .llm import LLMClient

logger = logging.getLogger(__name__)

SPAM_FIELDS = ("title", "description", "companyName", "salaryRange")


class EnrichmentService:
    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        fetch_text: Callable[..., Optional[str]] = fetch_career_text,
        timeout: float = 20.0,
    ):
        self.llm = llm
        self.fetch_text = fetch_text
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "EnrichmentService":
        if not settings.llm_api_key:
            logger.info("enrichment disabled: no LLM_API_KEY/GOOGLE_API_KEY")
            return cls(llm=None, timeout=settings.http_timeout)
        llm = LLMClient(
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            base_url=settings.llm_base_url,
        )
        return cls(llm=llm, timeout=settings.http_timeout)

    @property
    def enabled(self) -> bool:
        return self.llm is not None

    def summarize(self, url: Optional[str]) -> Optional[str]:
        if not self.enabled or not url:
            return None
        logger.info("summarize career_page=%s", url)
        try:
            text = self.fetch_text(url, timeout=self.timeout)
            if not text:
                logger.warning("summarize career_page=%s insufficient_content", url)
                return None
            summary = self.llm.summarize_company(text)
        except Exception as e:  # noqa: BLE001
            logger.warning("summarize career_page=%s error=%s", url, e)
            return None
        return summary or None

    def classify_spam(self, record: Mapping[str, Any]) -> bool:
        if not self.enabled:
            return False
        details = {name: record.get(name) for name in SPAM_FIELDS}
        try:
            return self.llm.is_spam(details)
        except Exception as e:  # noqa: BLE001
            logger.warning("spam check title=%r error=%s", record.get("title"), e)
            return False

    def enrich(self, candidate: Mapping[str, Any]) -> Enrichment:
        summary = self.summarize(candidate.get("careerLink"))
        is_spam = self.classify_spam(candidate)
        logger.info(
            "enrich title=%r summary=%s is_spam=%s",
            candidate.get("title"), "yes" if summary else "no", is_spam,
        )
        return Enrichment(company_summary=summary, is_spam=is_spam)

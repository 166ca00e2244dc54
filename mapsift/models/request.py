"""
What to search for, and which listings to keep.
"""

import math
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

import mapsift.config as cfg
from mapsift.exceptions import InputError
from mapsift.models.business import Business


class ListingFilter(BaseModel):
    """Inclusion / exclusion rules applied to every discovered listing."""

    min_rating: Optional[float] = Field(None, ge=0.0, le=5.0)
    min_reviews: Optional[int] = Field(None, ge=0)
    require_website: bool = False
    require_phone: bool = False
    skip_sponsored: bool = False
    include_categories: List[str] = Field(
        default_factory=list,
        description="Keep only categories containing one of these (case-insensitive)",
    )
    exclude_keywords: List[str] = Field(
        default_factory=list,
        description="Drop listings whose name or category contains one of these",
    )

    def reason(self, business: Business) -> Optional[str]:
        """Why *business* is rejected, or None when it passes."""
        if self.skip_sponsored and business.is_sponsored:
            return "sponsored"
        if self.min_rating is not None and (
            business.rating is None or business.rating < self.min_rating
        ):
            return "rating below minimum"
        if self.min_reviews is not None and (
            business.review_count is None or business.review_count < self.min_reviews
        ):
            return "too few reviews"
        if self.require_website and not business.website:
            return "no website"
        if self.require_phone and not business.phone:
            return "no phone"
        if self.include_categories:
            category = (business.category or "").lower()
            if not any(term.lower() in category for term in self.include_categories):
                return "category not included"
        haystack = f"{business.name} {business.category or ''}".lower()
        for term in self.exclude_keywords:
            if term.lower() in haystack:
                return f"excluded keyword '{term}'"
        return None

    def accepts(self, business: Business) -> bool:
        return self.reason(business) is None


class SearchRequest(BaseModel):
    """One collection run. A blank query is rejected before any browsing."""

    query: str
    location: Optional[str] = None
    max_results: Optional[int] = Field(cfg.DEFAULT_MAX_RESULTS, ge=0)
    scrape_details: bool = False
    scrape_reviews: bool = False
    max_reviews: Optional[int] = Field(None, ge=0)
    extract_share_links: bool = False
    enrich: bool = False
    follow_contact_page: bool = True
    filters: ListingFilter = Field(default_factory=ListingFilter)

    @field_validator("query", mode="before")
    @classmethod
    def _require_query(cls, value):
        if value is None or not str(value).strip():
            raise InputError("A search query is required")
        return str(value).strip()

    @property
    def search_term(self) -> str:
        if self.location and self.location.strip():
            return f"{self.query} in {self.location.strip()}"
        return self.query

    @property
    def result_target(self) -> float:
        """``max_results`` with 0/None meaning unlimited."""
        return self.max_results if self.max_results else math.inf

    @property
    def review_target(self) -> float:
        return self.max_reviews if self.max_reviews else math.inf

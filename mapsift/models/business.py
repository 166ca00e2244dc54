"""
Pydantic data models for scraped listings, reviews and website enrichment.

Attributes are snake_case; records leave the package through ``to_record``
with the camelCase keys consumers expect, every key always present.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

UNKNOWN_NAME = "Unknown Business"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Enrichment(BaseModel):
    """Contact data harvested from a business's own website."""

    contact_page_url: Optional[str] = Field(None, description="Contact/about page URL")
    emails_found: Set[str] = Field(
        default_factory=set, description="Validated, lowercase email addresses"
    )
    social: Dict[str, str] = Field(
        default_factory=dict, description="Platform name -> profile URL"
    )

    @field_validator("emails_found", mode="before")
    @classmethod
    def _lowercase_emails(cls, value: Any) -> Any:
        if value is None:
            return set()
        return {str(email).strip().lower() for email in value}

    @field_serializer("emails_found")
    def _sorted_emails(self, value: Set[str]) -> List[str]:
        return sorted(value)


class Review(BaseModel):
    """One entry of a business's review panel."""

    model_config = ConfigDict(populate_by_name=True)

    review_id: str = Field(..., alias="reviewId", min_length=1)
    reviewer_name: Optional[str] = Field(None, alias="reviewerName")
    reviewer_subtitle: Optional[str] = Field(None, alias="reviewerSubtitle")
    review_date: Optional[str] = Field(None, alias="reviewDate")
    rating: int = Field(..., ge=1, le=5, description="Star rating (1-5)")
    review_text: Optional[str] = Field(None, alias="reviewText")
    likes_count: Optional[int] = Field(None, alias="likesCount", ge=0)
    share_link: Optional[str] = Field(None, alias="shareLink")

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Business(BaseModel):
    """All data extractable from a Google Maps result card (+ detail pass)."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    # -- Stage 1: result card --------------------------------------------------
    url: str = Field(..., min_length=1, frozen=True, description="Google Maps place URL")
    name: str = Field(UNKNOWN_NAME, description="Business name")
    rating: Optional[float] = Field(None, ge=1.0, le=5.0, description="Star rating (1.0-5.0)")
    review_count: Optional[int] = Field(None, alias="reviewCount", ge=0)
    category: Optional[str] = Field(None, description="Business category")
    address: Optional[str] = Field(None, description="Street address")
    phone: Optional[str] = Field(None, description="Phone number")
    website: Optional[str] = Field(None, description="Business website URL")
    hours_status: Optional[str] = Field(None, alias="hoursStatus")
    is_sponsored: bool = Field(False, alias="isSponsored")
    scraped_at: datetime = Field(
        default_factory=_utcnow,
        alias="scrapedAt",
        frozen=True,
        description="UTC timestamp of when the card was parsed",
    )

    # -- Stage 2: detail pass --------------------------------------------------
    price_level: Optional[str] = Field(None, alias="priceLevel")
    plus_code: Optional[str] = Field(None, alias="plusCode")

    # -- Stage 3: reviews / website enrichment ---------------------------------
    reviews: Optional[List[Review]] = None
    enrichment: Optional[Enrichment] = None
    quality_score: Optional[float] = Field(None, ge=0.0, le=1.0)

    @field_validator("name", mode="before")
    @classmethod
    def _fallback_name(cls, value: Any) -> Any:
        if value is None or not str(value).strip():
            return UNKNOWN_NAME
        return str(value).strip()

    def merge_details(self, details: Dict[str, Any]) -> List[str]:
        """
        Overlay a detail-pass result onto this record.

        Only non-empty values are applied, so a field found on the card is
        never wiped by a detail page that lacks it.  Returns the updated
        field names.
        """
        updated: List[str] = []
        for field, value in details.items():
            if field in ("url", "scraped_at") or field not in type(self).model_fields:
                continue
            if value is None or value == "":
                continue
            if getattr(self, field) != value:
                setattr(self, field, value)
                updated.append(field)
        return updated

    def to_record(self) -> dict:
        """Plain JSON-safe dict with a stable key set."""
        return self.model_dump(mode="json", by_alias=True)

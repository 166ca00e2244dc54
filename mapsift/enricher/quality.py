"""
Lead quality score: how complete a business record is, from 0.0 to 1.0.
"""

from decimal import ROUND_HALF_UP, Decimal

import mapsift.config as cfg
from mapsift.models.business import Business

_BASE_POINTS = Decimal("1")
_HALF_POINT = Decimal("0.5")
_EMAIL_POINTS = Decimal("2")
_SOCIAL_CAP = Decimal("2")


def quality_score(business: Business) -> float:
    """
    Weighted completeness over a fixed denominator, rounded half-up to one
    decimal.

    name, phone, website, address: 1 each; rating, review count: 0.5 each;
    any email: 2; contact page: 1; social links: 0.5 each, capped at 2.
    """
    score = Decimal("0")
    if business.name:
        score += _BASE_POINTS
    for value in (business.phone, business.website, business.address):
        if value:
            score += _BASE_POINTS
    if business.rating:
        score += _HALF_POINT
    if business.review_count:
        score += _HALF_POINT

    enrichment = business.enrichment
    if enrichment is not None:
        if enrichment.emails_found:
            score += _EMAIL_POINTS
        if enrichment.contact_page_url:
            score += _BASE_POINTS
        score += min(_HALF_POINT * len(enrichment.social), _SOCIAL_CAP)

    ratio = score / Decimal(str(cfg.QUALITY_MAX_SCORE))
    return float(ratio.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

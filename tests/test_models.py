import math

import pytest
from pydantic import ValidationError

from mapsift.exceptions import InputError
from mapsift.models.business import UNKNOWN_NAME, Business, Enrichment, Review
from mapsift.models.request import ListingFilter, SearchRequest

URL = "https://www.google.com/maps/place/Joe's+Pizza/data=1"

RECORD_KEYS = {
    "url", "name", "rating", "reviewCount", "category", "address", "phone",
    "website", "hoursStatus", "isSponsored", "scrapedAt", "priceLevel",
    "plusCode", "reviews", "enrichment", "quality_score",
}


# -- Business -----------------------------------------------------------------

def test_business_defaults_and_record_keys():
    business = Business(url=URL, name="   ")

    record = business.to_record()

    assert business.name == UNKNOWN_NAME
    assert set(record) == RECORD_KEYS
    assert record["rating"] is None
    assert record["reviews"] is None


@pytest.mark.parametrize("field, value", [("rating", 5.5), ("rating", 0.5), ("review_count", -1)])
def test_business_rejects_out_of_range(field, value):
    with pytest.raises(ValidationError):
        Business(url=URL, **{field: value})


def test_business_requires_url():
    with pytest.raises(ValidationError):
        Business(url="")


def test_merge_details_never_erases():
    business = Business(url=URL, name="Joe's Pizza", phone="(212) 555-0100", rating=4.5)

    updated = business.merge_details({
        "url": "https://elsewhere",
        "name": "Joe's Pizza",
        "phone": None,
        "rating": 4.6,
        "plus_code": "2V8J+QX New York",
        "unknown": "ignored",
    })

    assert updated == ["rating", "plus_code"]
    assert business.url == URL
    assert business.phone == "(212) 555-0100"
    assert business.rating == 4.6


def test_merge_details_validates_values():
    business = Business(url=URL)

    with pytest.raises(ValidationError):
        business.merge_details({"rating": 9.0})


def test_enrichment_record_is_sorted_and_lowercase():
    enrichment = Enrichment(emails_found=["Zed@Joes.com", "amy@joes.com"])

    assert Business(url=URL, enrichment=enrichment).to_record()["enrichment"]["emails_found"] == [
        "amy@joes.com",
        "zed@joes.com",
    ]


def test_review_record_uses_camel_case():
    review = Review(review_id="r1", rating=5, review_text="Great")

    record = review.to_record()

    assert record["reviewId"] == "r1"
    assert record["reviewText"] == "Great"
    assert record["shareLink"] is None


def test_review_rating_bounds():
    with pytest.raises(ValidationError):
        Review(review_id="r1", rating=0)


# -- SearchRequest / ListingFilter ---------------------------------------------

def test_blank_query_is_an_input_error():
    with pytest.raises(InputError):
        SearchRequest(query="   ")


def test_search_term_and_targets():
    request = SearchRequest(query=" plumbers ", location="New York City", max_results=0)

    assert request.search_term == "plumbers in New York City"
    assert request.result_target == math.inf
    assert request.review_target == math.inf
    assert SearchRequest(query="cafes", max_results=5, max_reviews=3).review_target == 3


def test_filter_reasons():
    business = Business(
        url=URL, name="Joe's Pizza", rating=4.2, review_count=40, category="Pizza restaurant", is_sponsored=True
    )

    assert ListingFilter().accepts(business)
    assert ListingFilter(skip_sponsored=True).reason(business) == "sponsored"
    assert ListingFilter(min_rating=4.5).reason(business) == "rating below minimum"
    assert ListingFilter(min_reviews=100).reason(business) == "too few reviews"
    assert ListingFilter(require_website=True).reason(business) == "no website"
    assert ListingFilter(require_phone=True).reason(business) == "no phone"
    assert ListingFilter(include_categories=["bakery"]).reason(business) == "category not included"
    assert ListingFilter(include_categories=["PIZZA"]).accepts(business)
    assert ListingFilter(exclude_keywords=["pizza"]).reason(business) == "excluded keyword 'pizza'"

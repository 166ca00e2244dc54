from mapsift.enricher.quality import quality_score
from mapsift.models.business import Business, Enrichment

URL = "https://www.google.com/maps/place/Joe's+Pizza/data=1"


def full_business(**overrides):
    fields = dict(
        url=URL,
        name="Joe's Pizza",
        phone="(212) 555-0100",
        website="https://joespizza.com",
        address="123 Main Street",
        rating=4.5,
        review_count=212,
    )
    fields.update(overrides)
    return Business(**fields)


def test_default_name_still_scores():
    assert quality_score(Business(url=URL)) == 0.1
    assert quality_score(Business(url=URL, phone="123")) == 0.2


def test_card_fields_only():
    assert quality_score(full_business()) == 0.5


def test_complete_record_scores_one():
    business = full_business(
        enrichment=Enrichment(
            contact_page_url="https://joespizza.com/contact",
            emails_found={"hello@joespizza.com"},
            social={
                "facebook": "https://facebook.com/joespizza",
                "instagram": "https://instagram.com/joespizza",
                "twitter": "https://x.com/joespizza",
                "youtube": "https://youtube.com/@joespizza",
                "tiktok": "https://tiktok.com/@joespizza",
            },
        )
    )

    assert quality_score(business) == 1.0


def test_rounds_half_up():
    business = Business(url=URL, name="Joe's Pizza", phone="(212) 555-0100", rating=4.5)

    assert quality_score(business) == 0.3


def test_social_points_are_capped():
    few = full_business(enrichment=Enrichment(social={"facebook": "a", "instagram": "b"}))
    many = full_business(
        enrichment=Enrichment(social={k: k for k in ("facebook", "instagram", "twitter", "linkedin", "tiktok")})
    )

    assert quality_score(few) == 0.6
    assert quality_score(many) == 0.7

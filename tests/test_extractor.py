# tests/test_extractor.py
import pytest

from companylens.search.filters import ParsedFilters


def inferred(extractor, query):
    filters, cleaned = extractor.extract(query)
    return filters.model_dump(exclude_none=True), cleaned


# --- Scenarios ---


def test_short_batch_and_hiring(extractor):
    filters, cleaned = inferred(extractor, "W24 AI companies that are hiring")
    assert filters == {"batch": "Winter 2024", "is_hiring": True}
    assert "AI companies" in cleaned


def test_team_size_range_with_unit(extractor):
    filters, cleaned = inferred(extractor, "10 to 50 employee B2B devtools")
    assert filters == {"team_size_min": 10, "team_size_max": 50}
    assert cleaned == "B2B devtools"


def test_founded_before_and_nonprofit(extractor):
    filters, cleaned = inferred(extractor, "before 2020 nonprofit edtech")
    assert filters == {"founded_year_max": 2019, "is_nonprofit": True}
    assert cleaned == "edtech"


def test_batch_and_bare_year_do_not_share_tokens(extractor):
    filters, cleaned = inferred(extractor, "w24 2021 tools")
    assert filters == {
        "batch": "Winter 2024",
        "founded_year_min": 2021,
        "founded_year_max": 2021,
    }
    assert cleaned == "tools"


def test_full_batch_name_is_not_reused_as_founded_year(extractor):
    filters, cleaned = inferred(extractor, "Winter 2024 robotics")
    assert filters == {"batch": "Winter 2024"}
    assert cleaned == "robotics"


def test_plain_company_name_passes_through(extractor):
    filters, cleaned = inferred(extractor, "Stripe")
    assert filters == {}
    assert cleaned == "Stripe"


@pytest.mark.parametrize("query", ["", "   ", "\t\n"])
def test_blank_input_gives_empty_result(extractor, query):
    filters, cleaned = extractor.extract(query)
    assert filters == ParsedFilters()
    assert cleaned == ""


def test_non_string_input_never_raises(extractor):
    filters, cleaned = extractor.extract(None)
    assert filters.is_empty()
    assert cleaned == ""


# --- Properties ---


@pytest.mark.parametrize("query", [
    "W24 AI companies that are hiring",
    "series a fintech in sf not hiring",
    "10-50 people healthcare startups founded in 2018 in europe",
])
def test_extract_is_idempotent(extractor, query):
    first = extractor.extract(query)
    second = extractor.extract(query)
    assert first == second
    assert first[0].model_dump_json() == second[0].model_dump_json()


def test_first_scalar_match_wins(extractor):
    filters, cleaned = inferred(extractor, "s21 or w22")
    assert filters == {"batch": "Summer 2021"}
    assert cleaned == "w22"


def test_unknown_batch_token_stays_in_query(extractor):
    filters, cleaned = inferred(extractor, "w99 fintech")
    assert filters == {}
    assert cleaned == "w99 fintech"


def test_edge_punctuation_is_ignored(extractor):
    filters, cleaned = inferred(extractor, "Hiring, W24! (payments)")
    assert filters == {"batch": "Winter 2024", "is_hiring": True}
    assert cleaned == "payments"


# --- Stage and status ---


def test_stage_alias(extractor):
    filters, cleaned = inferred(extractor, "series a fintech")
    assert filters == {"stage": "Early"}
    assert cleaned == "fintech"


def test_status_phrase(extractor):
    filters, cleaned = inferred(extractor, "fintech companies that went public")
    assert filters == {"status": "Public"}
    assert cleaned == "fintech companies"


@pytest.mark.parametrize("query, cleaned_query", [
    ("dead simple crm", "dead simple crm"),
    ("AI for closed captions", "AI closed captions"),
])
def test_descriptive_words_are_not_statuses(extractor, query, cleaned_query):
    filters, cleaned = inferred(extractor, query)
    assert "status" not in filters
    assert cleaned == cleaned_query


def test_shut_down_phrase_is_inactive(extractor):
    filters, cleaned = inferred(extractor, "crypto startups that shut down")
    assert filters == {"status": "Inactive"}
    assert cleaned == "crypto startups"


def test_active_is_ignored_when_other_status_present(extractor):
    filters, cleaned = inferred(extractor, "active acquired startups")
    assert filters == {"status": "Acquired"}
    assert cleaned == "active startups"


def test_active_used_when_sole_status(extractor):
    filters, cleaned = inferred(extractor, "active fintech")
    assert filters == {"status": "Active"}
    assert cleaned == "fintech"


# --- Team size ---


@pytest.mark.parametrize("query, expected", [
    ("under 10 people", {"team_size_max": 10}),
    ("fewer than 25 employees", {"team_size_max": 25}),
    ("<10 people", {"team_size_max": 10}),
    ("more than 100 employees", {"team_size_min": 100}),
    ("50+ employees", {"team_size_min": 50}),
    ("exactly 12 engineers", {"team_size_min": 12, "team_size_max": 12}),
    ("solo founder", {"team_size_max": 2}),
    ("1 person team", {"team_size_max": 2}),
    ("small team", {"team_size_max": 20}),
    ("mid-size", {"team_size_min": 50, "team_size_max": 500}),
    ("large companies", {"team_size_min": 200}),
])
def test_team_size_forms(extractor, query, expected):
    filters, _ = inferred(extractor, query)
    assert filters == expected


def test_reversed_range_is_swapped(extractor):
    filters, _ = inferred(extractor, "50 to 10 employees")
    assert filters == {"team_size_min": 10, "team_size_max": 50}


def test_only_first_team_size_form_applies(extractor):
    filters, cleaned = inferred(extractor, "5-20 people small team")
    assert filters == {"team_size_min": 5, "team_size_max": 20}
    assert cleaned == "small team"


def test_year_span_is_not_a_team_size(extractor):
    filters, cleaned = inferred(extractor, "2019-2021 crypto")
    assert "team_size_min" not in filters
    assert "team_size_max" not in filters
    assert cleaned == "crypto"


# --- Hiring and nonprofit ---


def test_negative_hiring_phrase(extractor):
    filters, cleaned = inferred(extractor, "fintech not hiring")
    assert filters == {"is_hiring": False}
    assert cleaned == "fintech"


@pytest.mark.parametrize("phrase", ["non-profit", "nonprofits", "charity"])
def test_nonprofit_phrases(extractor, phrase):
    filters, _ = inferred(extractor, f"{phrase} climate")
    assert filters == {"is_nonprofit": True}


# --- Location and regions ---


def test_location_after_in(extractor):
    filters, cleaned = inferred(extractor, "fintech in sf")
    assert filters == {"location": "San Francisco"}
    assert cleaned == "fintech"


def test_location_after_based_in(extractor):
    filters, cleaned = inferred(extractor, "robotics startups based in new york")
    assert filters == {"location": "New York"}
    assert cleaned == "robotics startups"


def test_location_at_query_start(extractor):
    filters, _ = inferred(extractor, "london insurance")
    assert filters == {"location": "London"}


def test_bare_city_mid_query_is_not_a_location(extractor):
    filters, cleaned = inferred(extractor, "fashion brands paris")
    assert filters == {}
    assert cleaned == "fashion brands paris"


def test_regions_accumulate(extractor):
    filters, cleaned = inferred(extractor, "fintech in europe or latam")
    assert filters == {"regions": ["Europe", "Latin America"]}
    assert cleaned == "fintech"


def test_region_alias_expands(extractor):
    filters, _ = inferred(extractor, "north america saas")
    assert filters == {
        "regions": ["United States of America", "Canada", "America / Canada"]
    }


# --- Founded year ---


@pytest.mark.parametrize("query, expected", [
    ("founded in 2015 robotics", {"founded_year_min": 2015, "founded_year_max": 2015}),
    ("founded 2015 robotics", {"founded_year_min": 2015, "founded_year_max": 2015}),
    ("robotics since 2018", {"founded_year_min": 2019}),
    ("pre-2010 robotics", {"founded_year_max": 2009}),
])
def test_founded_year_forms(extractor, query, expected):
    filters, cleaned = inferred(extractor, query)
    assert filters == expected
    assert cleaned == "robotics"

# tests/test_predicates.py
from sqlalchemy import and_

from conftest import compile_pg

from companylens.search.filters import ParsedFilters
from companylens.search.predicates import build_filter_predicates, escape_like


def test_no_filters_still_has_embedding_gate():
    predicates = build_filter_predicates(ParsedFilters())
    assert predicates.conditions == []
    assert len(predicates.all()) == 1
    assert predicates.all()[0] is predicates.gate
    assert str(compile_pg(predicates.gate)) == "companies.embedding IS NOT NULL"


def test_values_are_bound_not_inlined():
    predicates = build_filter_predicates(
        ParsedFilters(batch="Winter 2024'; DROP TABLE companies; --"))
    compiled = compile_pg(and_(*predicates.all()))
    assert "DROP TABLE" not in str(compiled)
    assert "Winter 2024'; DROP TABLE companies; --" in compiled.params.values()


def test_array_filters_use_overlap():
    predicates = build_filter_predicates(
        ParsedFilters(tags=["fintech", "ai"], regions=["Europe"]))
    assert len(predicates.conditions) == 2
    sql = str(compile_pg(predicates.conditions[0]))
    assert "companies.tags &&" in sql
    assert ["fintech", "ai"] in compile_pg(predicates.conditions[0]).params.values()


def test_ranges_are_inclusive_and_one_sided():
    predicates = build_filter_predicates(
        ParsedFilters(team_size_min=10, founded_year_max=2019))
    sql = [str(compile_pg(c)) for c in predicates.conditions]
    assert len(sql) == 2
    assert "companies.team_size >=" in sql[0]
    assert "EXTRACT(year FROM companies.founded_at) <=" in sql[1]


def test_location_is_escaped_substring_match():
    predicates = build_filter_predicates(ParsedFilters(location="san_fran"))
    compiled = compile_pg(predicates.conditions[0])
    assert "ILIKE" in str(compiled).upper()
    assert "%san\\_fran%" in compiled.params.values()


def test_boolean_filters():
    predicates = build_filter_predicates(
        ParsedFilters(is_hiring=False, is_nonprofit=True))
    sql = [str(compile_pg(c)) for c in predicates.conditions]
    assert sql == ["companies.is_hiring = false", "companies.is_nonprofit = true"]


def test_full_filter_set_produces_one_condition_per_bound():
    filters = ParsedFilters(batch="Winter 2024",
                            stage="Early",
                            status="Active",
                            location="London",
                            is_hiring=True,
                            is_nonprofit=False,
                            team_size_min=1,
                            team_size_max=5,
                            founded_year_min=2010,
                            founded_year_max=2012,
                            tags=["ai"],
                            industries=["Healthcare"],
                            regions=["Europe"])
    assert len(build_filter_predicates(filters).conditions) == 13


def test_escape_like():
    assert escape_like("100%_off\\") == "100\\%\\_off\\\\"

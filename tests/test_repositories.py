# tests/test_repositories.py
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from conftest import compile_pg

from companylens.core.exceptions import DatabaseQueryError
from companylens.database.repositories.base import AbstractRepository
from companylens.database.repositories.company import CompanyRepository


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def repository(session):
    return CompanyRepository(MagicMock(return_value=session))


def test_session_factory_must_be_callable():
    with pytest.raises(TypeError):
        AbstractRepository("not a factory")


def test_distinct_scalar_values(repository, session):
    session.execute.return_value = iter([("Winter 2024", ), ("Summer 2009", ),
                                         (" ", ), (None, )])
    assert repository.get_distinct_values("batches") == ["Summer 2009", "Winter 2024"]
    sql = str(compile_pg(session.execute.call_args.args[0]))
    assert "SELECT DISTINCT companies.batch" in sql


def test_distinct_region_values_unnest_the_array(repository, session):
    session.execute.return_value = iter([("Europe", ), ("Canada", )])
    assert repository.get_distinct_values("regions") == ["Canada", "Europe"]
    sql = str(compile_pg(session.execute.call_args.args[0]))
    assert "unnest(companies.regions)" in sql


def test_unknown_vocabulary_field(repository):
    with pytest.raises(ValueError):
        repository.get_distinct_values("colors")


def test_query_failure_is_wrapped(repository, session):
    session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
    with pytest.raises(DatabaseQueryError):
        repository.get_distinct_values("stages")


def test_vocabulary_values_cover_every_field(repository, session):
    session.execute.side_effect = lambda stmt: iter([("Value", )])
    values = repository.get_vocabulary_values()
    assert set(values) == {"batches", "stages", "statuses", "regions"}

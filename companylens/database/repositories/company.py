# companylens/database/repositories/company.py

import logging
from typing import Dict, List

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from .base import AbstractRepository, SessionFactory
from companylens.database.models import Company
from companylens.core.exceptions import DatabaseQueryError

logger = logging.getLogger(__name__)

# Vocabulary field name -> scalar column holding its values
_SCALAR_VOCABULARY_COLUMNS = {
    "batches": Company.batch,
    "stages": Company.stage,
    "statuses": Company.status,
}
# Vocabulary field name -> array column whose elements are the values
_ARRAY_VOCABULARY_COLUMNS = {
    "regions": Company.regions,
}


class CompanyRepository(AbstractRepository):
    """
    Read access to Company rows outside of the ranked search path: the
    distinct categorical values the vocabulary is built from.
    """

    def __init__(self, session_factory: SessionFactory):
        super().__init__(session_factory)

    def get_distinct_values(self, field: str) -> List[str]:
        """
        Returns the sorted distinct non-empty values of a vocabulary field
        ('batches', 'stages', 'statuses' or 'regions').
        """
        if field in _SCALAR_VOCABULARY_COLUMNS:
            column = _SCALAR_VOCABULARY_COLUMNS[field]
            stmt = select(column).where(column.isnot(None)).distinct()
        elif field in _ARRAY_VOCABULARY_COLUMNS:
            element = func.unnest(
                _ARRAY_VOCABULARY_COLUMNS[field]).label("value")
            stmt = select(element).distinct()
        else:
            raise ValueError(f"Unknown vocabulary field: {field}")

        with self._session() as session:
            try:
                values = [
                    row[0] for row in session.execute(stmt)
                    if row[0] and str(row[0]).strip()
                ]
            except SQLAlchemyError as e:
                logger.error(
                    f"Database error fetching distinct values for '{field}': {e}",
                    exc_info=True)
                raise DatabaseQueryError(
                    f"Failed to fetch distinct values for '{field}'")
        logger.debug(f"Found {len(values)} distinct values for '{field}'.")
        return sorted(set(values))

    def get_vocabulary_values(self) -> Dict[str, List[str]]:
        """Distinct values for every vocabulary field, keyed by field name."""
        fields = list(_SCALAR_VOCABULARY_COLUMNS) + list(
            _ARRAY_VOCABULARY_COLUMNS)
        values = {field: self.get_distinct_values(field) for field in fields}
        logger.info("Loaded vocabulary values from database: " + ", ".join(
            f"{field}={len(vals)}" for field, vals in values.items()))
        return values

# companylens/database/models.py
import logging

from pgvector.sqlalchemy import Vector
from sqlalchemy import Boolean, Column, Date, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, TSVECTOR
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

# Fixed size of the stored company embeddings; must match EMBEDDING_DIMENSIONS
EMBEDDING_DIMENSIONS = 768

# Base class for declarative models
Base = declarative_base()


class Company(Base):
    """
    A searchable organization. Rows are written by the ingestion jobs;
    the search subsystem only ever reads them.
    """
    __tablename__ = 'companies'
    id = Column(String(64), primary_key=True, nullable=False)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True, unique=True)
    website = Column(String(512), nullable=True)
    logo_url = Column(String(1024), nullable=True)
    one_liner = Column(Text, nullable=True)

    # --- Categorical fields (filter targets) ---
    tags = Column(ARRAY(String), nullable=False, default=list)
    industries = Column(ARRAY(String), nullable=False, default=list)
    regions = Column(ARRAY(String), nullable=False, default=list)
    batch = Column(String(50), nullable=True, index=True)  # e.g., 'Winter 2024'
    stage = Column(String(50), nullable=True, index=True)
    status = Column(String(50), nullable=True, index=True)

    team_size = Column(Integer, nullable=True)
    founded_at = Column(Date, nullable=True)
    is_hiring = Column(Boolean, nullable=False, default=False)
    is_nonprofit = Column(Boolean, nullable=False, default=False)
    all_locations = Column(Text, nullable=True)  # e.g., 'San Francisco, CA, USA'

    # --- Search columns ---
    embedding = Column(Vector(EMBEDDING_DIMENSIONS), nullable=True)
    search_vector = Column(TSVECTOR, nullable=True)

    __table_args__ = (
        Index('idx_companies_embedding_hnsw',
              'embedding',
              postgresql_using='hnsw',
              postgresql_with={
                  'm': 16,
                  'ef_construction': 64
              },
              postgresql_ops={'embedding': 'vector_cosine_ops'}),
        Index('idx_companies_name_trgm',
              'name',
              postgresql_using='gin',
              postgresql_ops={'name': 'gin_trgm_ops'}),
        Index('idx_companies_search_vector',
              'search_vector',
              postgresql_using='gin'),
        Index('idx_companies_tags', 'tags', postgresql_using='gin'),
        Index('idx_companies_industries', 'industries',
              postgresql_using='gin'),
        Index('idx_companies_regions', 'regions', postgresql_using='gin'),
    )

    def __repr__(self):
        return f"<Company(id='{self.id}', name='{self.name}')>"

# companylens/database/__init__.py

# Expose key ORM components from the models module
from .models import Base, Company, EMBEDDING_DIMENSIONS

# Session management
from .session import initialize_database, get_session

# Concrete repository classes
from .repositories.company import CompanyRepository

__all__ = [
    # Models
    "Base",
    "Company",
    "EMBEDDING_DIMENSIONS",
    # Session Management
    "initialize_database",
    "get_session",
    # Repositories
    "CompanyRepository",
]

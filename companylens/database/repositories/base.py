# companylens/database/repositories/base.py

import logging
from abc import ABC
from contextlib import AbstractContextManager
from typing import Callable

from sqlalchemy.orm import Session

from companylens.database.session import get_session

logger = logging.getLogger(__name__)

# Type alias for the session factory callable
SessionFactory = Callable[[], Session]


class AbstractRepository(ABC):
    """
    Abstract Base Class for all read repositories over the companies store.

    Every repository receives the same session factory so that concurrent
    callers (e.g. the ranked and count search queries) each get their own
    thread-local session.
    """

    def __init__(self, session_factory: SessionFactory):
        """
        Args:
            session_factory: A callable (typically a scoped_session instance)
                             that returns a new Session object when called.
        """
        if not callable(session_factory):
            raise TypeError("session_factory must be a callable object.")
        self.session_factory = session_factory
        logger.info(f"{self.__class__.__name__} initialized.")

    def _session(self) -> AbstractContextManager[Session]:
        """Transactional session scope bound to this repository's factory."""
        return get_session(self.session_factory)

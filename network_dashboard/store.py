"""
Single-writer owner of the company list.

Every change goes through dispatch(); the reducer produces the next list,
which is committed in memory first and written to the repository afterwards.
"""

import threading
from typing import List, Optional
import structlog
from .metrics import MetricsEngine, get_metrics_engine
from .models import Company
from .reducer import Action, ActionType, company_reducer
from .repository import CompanyRepository, RepositoryError

logger = structlog.get_logger()


class CompanyStore:
    """Serialized action dispatch with persistence after commit."""

    def __init__(self, repository: CompanyRepository, engine: Optional[MetricsEngine] = None):
        self.repository = repository
        self.engine = engine or get_metrics_engine()
        self._state: List[Company] = []
        self._lock = threading.Lock()
        self._loaded = False  # no writes until the first load has finished

    @property
    def companies(self) -> List[Company]:
        return list(self._state)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def get_company(self, company_id: str) -> Optional[Company]:
        return next((company for company in self._state if company.id == company_id), None)

    def load(self) -> List[Company]:
        """Replace the in-memory list with the stored one without writing it back."""
        companies = self.repository.load_all()
        with self._lock:
            self._state = company_reducer(
                self._state, Action(type=ActionType.SET_COMPANIES, companies=companies), self.engine
            )
            self._loaded = True
        logger.info(f"Company store ready with {len(self._state)} companies")
        return self.companies

    def dispatch(self, action: Action) -> List[Company]:
        """
        Apply an action and persist the result.

        Persistence failures are logged; the in-memory state stays committed.
        """
        with self._lock:
            previous = self._state
            self._state = company_reducer(previous, action, self.engine)
            changed = self._state is not previous and self._state != previous
            if changed and self._loaded:
                self._persist(action)
        return self.companies

    def _persist(self, action: Action) -> None:
        try:
            self.repository.replace_all(self._state)
            logger.info(f"Committed {action.type.value} ({len(self._state)} companies)")
        except RepositoryError as e:
            logger.error(f"Failed to persist {action.type.value}: {e}")

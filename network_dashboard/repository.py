"""
Persistence layer for the Network What-If Dashboard.
Stores the whole company list as one JSON document; reads and writes are
always whole-list swaps.
"""

import json
import os
import tempfile
from dataclasses import replace
from typing import Callable, List, Optional
import structlog
from .models import Company, ScenarioData

logger = structlog.get_logger()


class RepositoryError(Exception):
    """Raised when the company store cannot be read or written."""
    pass


class CompanyRepository:
    """JSON file store for Company records keyed by id."""

    def __init__(self, path: str, recalculate: Callable[[ScenarioData], ScenarioData],
                 seed: Optional[Callable[[], List[Company]]] = None):
        """
        Args:
            path: Location of the JSON document
            recalculate: Metrics derivation applied to seed data before it is stored
            seed: Factory for the companies written on first run
        """
        self.path = path
        self.recalculate = recalculate
        self.seed = seed or (lambda: [])

    def load_all(self) -> List[Company]:
        """Load every company, seeding the store first if it is empty."""
        companies = self.read_all()
        if companies:
            logger.info(f"Loaded {len(companies)} companies from {self.path}")
            return companies

        logger.info("Company store is empty, seeding with initial data")
        seeded = self.seed_companies()
        self.replace_all(seeded)
        return seeded

    def seed_companies(self) -> List[Company]:
        """Seed records with derived metrics computed and the baseline set to match."""
        companies = []
        for company in self.seed():
            data = self.recalculate(company.data)
            companies.append(replace(company, data=data, base_data=data.clone()))
        return companies

    def replace_all(self, companies: List[Company]) -> None:
        """Atomically replace the stored list."""
        payload = [company.to_dict() for company in companies]
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            error_msg = f"Failed to write company store {self.path}: {e}"
            logger.error(error_msg)
            raise RepositoryError(error_msg) from e

        logger.info(f"Stored {len(companies)} companies")

    def read_all(self) -> List[Company]:
        """Stored companies as-is; empty if nothing has been stored yet."""
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                content = handle.read()
            if not content.strip():
                return []
            raw = json.loads(content)
            return [Company.from_dict(record) for record in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            error_msg = f"Failed to read company store {self.path}: {e}"
            logger.error(error_msg)
            raise RepositoryError(error_msg) from e

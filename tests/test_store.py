"""
Test suite for the JSON company repository and the company store.
"""

import json
import os
import pytest
from unittest.mock import MagicMock, patch
from network_dashboard.metrics import MetricsEngine
from network_dashboard.models import new_company
from network_dashboard.reducer import Action, ActionType, StressTest
from network_dashboard.repository import CompanyRepository, RepositoryError
from network_dashboard.sample_data import sample_companies
from network_dashboard.store import CompanyStore


class TestCompanyRepository:
    """Test cases for CompanyRepository."""

    @pytest.fixture
    def engine(self):
        return MetricsEngine()

    @pytest.fixture
    def repository(self, tmp_path, engine):
        return CompanyRepository(
            str(tmp_path / "store" / "companies.json"),
            recalculate=engine.recalculate_all_metrics,
            seed=sample_companies,
        )

    def test_seeds_empty_store(self, repository, engine):
        companies = repository.load_all()

        assert [company.id for company in companies] == ["innovate-inc", "legacy-logistics"]
        for company in companies:
            assert engine.recalculate_all_metrics(company.data) == company.data
            assert company.base_data == company.data

        with open(repository.path, encoding="utf-8") as handle:
            stored = json.load(handle)
        assert stored[0]["baseData"]["networkName"] == "Innovate Inc. Network"
        assert stored[0]["data"]["connections"][0]["from"] == "sup-detroit"

    def test_round_trip(self, repository):
        companies = repository.load_all()

        reloaded = repository.load_all()

        assert reloaded == companies

    def test_replace_all(self, repository):
        company = new_company("Acme", "Test", timestamp_ms=42)

        repository.replace_all([company])

        assert [c.id for c in repository.read_all()] == ["acme-42"]

    def test_empty_file_treated_as_empty_store(self, repository):
        with _open_creating(repository.path) as handle:
            handle.write("")

        assert repository.read_all() == []

    def test_corrupt_store(self, repository):
        with _open_creating(repository.path) as handle:
            handle.write("{not json")

        with pytest.raises(RepositoryError):
            repository.read_all()

    def test_write_failure(self, repository):
        with patch("network_dashboard.repository.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(RepositoryError):
                repository.replace_all(sample_companies())


def _open_creating(path):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return open(path, "w", encoding="utf-8")


class TestCompanyStore:
    """Test cases for CompanyStore."""

    def setup_method(self):
        self.engine = MetricsEngine()
        self.repository = MagicMock()
        seeded = CompanyRepository("unused.json", self.engine.recalculate_all_metrics, seed=sample_companies)
        self.repository.load_all.return_value = seeded.seed_companies()
        self.store = CompanyStore(self.repository, self.engine)

    def test_load_does_not_write_back(self):
        companies = self.store.load()

        assert len(companies) == 2
        assert self.store.loaded
        self.repository.replace_all.assert_not_called()

    def test_no_writes_before_load(self):
        self.store.dispatch(Action(type=ActionType.ADD_COMPANY, company=new_company("A", "B", timestamp_ms=1)))

        self.repository.replace_all.assert_not_called()

    def test_dispatch_persists_after_commit(self):
        self.store.load()

        self.store.dispatch(Action(type=ActionType.APPLY_STRESS_TEST, company_id="innovate-inc",
                                   test_type=StressTest.DEMAND_SPIKE))

        self.repository.replace_all.assert_called_once()
        written = self.repository.replace_all.call_args[0][0]
        assert written == self.store.companies

    def test_noop_does_not_persist(self):
        self.store.load()

        self.store.dispatch(Action(type=ActionType.RESET_SCENARIO, company_id="nobody"))
        self.store.dispatch(Action(type=ActionType.RESET_SCENARIO, company_id="innovate-inc"))

        self.repository.replace_all.assert_not_called()

    def test_persistence_failure_keeps_state(self):
        self.store.load()
        self.repository.replace_all.side_effect = RepositoryError("store offline")

        self.store.dispatch(Action(type=ActionType.DELETE_COMPANY, company_id="legacy-logistics"))

        assert [company.id for company in self.store.companies] == ["innovate-inc"]

    def test_get_company(self):
        self.store.load()

        assert self.store.get_company("legacy-logistics").name == "Legacy Logistics"
        assert self.store.get_company("missing") is None

"""
Test suite for the read-only network analytics.
"""

import pytest
from network_dashboard.analytics import (
    stockout_outlook, forecast_inventory, early_warning_signals, has_active_scenario,
)
from network_dashboard.metrics import MetricsEngine
from network_dashboard.models import (
    ScenarioData, Supplier, Warehouse, Customer, Connection, StorageItem,
)
from network_dashboard.reducer import Action, ActionType, StressTest, apply_company_action
from network_dashboard.repository import CompanyRepository
from network_dashboard.sample_data import sample_companies


class TestStockoutOutlook:
    """Test cases for stockout_outlook."""

    def setup_method(self):
        self.data = ScenarioData(
            warehouses=[Warehouse(id="wh-1", inventory_level=10000)],
            customers=[Customer(id="cust-1", demand=1000), Customer(id="cust-2", demand=500)],
            connections=[
                Connection(from_id="wh-1", to_id="cust-1"),
                Connection(from_id="wh-1", to_id="cust-2"),
            ],
        )

    def test_critical(self):
        outlook = stockout_outlook(self.data, "wh-1")

        assert outlook.daily_demand == 1500
        assert outlook.days_until_stockout == 6
        assert outlook.status == "critical"

    def test_warning_and_healthy(self):
        self.data.warehouses[0].inventory_level = 15000
        assert stockout_outlook(self.data, "wh-1").status == "warning"

        self.data.warehouses[0].inventory_level = 45000
        assert stockout_outlook(self.data, "wh-1").days_until_stockout == 30
        assert stockout_outlook(self.data, "wh-1").status == "healthy"

    def test_no_demand(self):
        self.data.connections = []

        outlook = stockout_outlook(self.data, "wh-1")

        assert outlook.days_until_stockout is None
        assert outlook.status == "healthy"

    def test_unknown_warehouse(self):
        assert stockout_outlook(self.data, "wh-missing") is None


class TestForecast:
    """Test cases for forecast_inventory and early_warning_signals."""

    def setup_method(self):
        self.data = ScenarioData(
            suppliers=[
                Supplier(id="sup-1", name="Chip Maker", supply_capacity=1000,
                         materials_supplied=["Chips", "Boards"], delivery_time_variance=3.5),
                Supplier(id="sup-2", name="Steady Supply", delivery_time_variance=0.5),
            ],
            warehouses=[Warehouse(id="wh-1", name="Hub", storage=[
                StorageItem("Chips", 2000), StorageItem("Boards", 100),
            ])],
            customers=[Customer(id="cust-1", demand=1200, requirements=["Chips", "Boards"])],
            connections=[
                Connection(from_id="sup-1", to_id="wh-1"),
                Connection(from_id="wh-1", to_id="cust-1"),
            ],
        )

    def test_projection(self):
        forecast = forecast_inventory(self.data)

        assert len(forecast) == 1
        chips = forecast[0].item_forecasts[0]
        assert chips.item_name == "Chips"
        assert chips.daily_inbound == 500
        assert chips.daily_outbound == 600
        assert len(chips.data) == 61
        assert [point.inventory for point in chips.data[:3]] == [2000, 1900, 1800]
        assert chips.data[20].inventory == 0
        assert chips.data[60].inventory == 0

    def test_projection_floors_at_zero(self):
        forecast = forecast_inventory(self.data, days=5)

        boards = forecast[0].item_forecasts[1]
        assert [point.inventory for point in boards.data] == [100, 0, 0, 0, 0, 0]
        assert boards.first_stockout_day() == 1

    def test_items_not_supplied(self):
        self.data.suppliers[0].materials_supplied = []
        self.data.customers[0].requirements = []

        chips = forecast_inventory(self.data, days=2)[0].item_forecasts[0]

        assert chips.daily_inbound == 0
        assert [point.inventory for point in chips.data] == [2000, 2000, 2000]

    def test_warning_signals(self):
        forecast = forecast_inventory(self.data)

        signals = early_warning_signals(self.data, forecast)

        assert [signal.type for signal in signals] == ["supplier_variance", "inventory_depletion"]
        assert signals[0].id == "sup-1"
        assert signals[1].id == "wh-1-Boards"
        assert signals[1].value == 1

    def test_warning_thresholds(self):
        forecast = forecast_inventory(self.data)

        signals = early_warning_signals(self.data, forecast, variance_threshold=0.1, depletion_threshold=30)

        assert len([s for s in signals if s.type == "supplier_variance"]) == 2
        assert {s.id for s in signals if s.type == "inventory_depletion"} == {"wh-1-Chips", "wh-1-Boards"}


class TestActiveScenario:
    """Test cases for has_active_scenario."""

    def test_stress_test_activates_scenario(self):
        engine = MetricsEngine()
        repo = CompanyRepository("unused.json", engine.recalculate_all_metrics, seed=sample_companies)
        company = repo.seed_companies()[0]
        assert not has_active_scenario(company)

        stressed = apply_company_action(company, Action(
            type=ActionType.APPLY_STRESS_TEST, company_id=company.id, test_type=StressTest.SUPPLIER_OUTAGE,
        ), engine)
        assert has_active_scenario(stressed)

        reset = apply_company_action(stressed, Action(type=ActionType.RESET_SCENARIO, company_id=company.id), engine)
        assert not has_active_scenario(reset)

"""
Sample networks written to an empty store on first run.
Derived fields here are placeholders; the repository recalculates before storing.
"""

from typing import List
from .models import (
    Company, ScenarioData, Metrics, MetricDetail, CostMetric, InventoryMetric,
    Supplier, Warehouse, Customer, Connection, Location, StorageItem,
    Workforce, Efficiency, CurrentOrder,
)


def _innovate_inc() -> ScenarioData:
    return ScenarioData(
        network_name="Innovate Inc. Network",
        network_metrics=Metrics(
            otif=MetricDetail(value=98.5, target=95),
            order_cycle_time=MetricDetail(value=22, target=24),
            order_accuracy=MetricDetail(value=99.2, target=99),
            dock_to_stock_time=MetricDetail(value=6, target=8),
            cost_per_order=CostMetric(value=135, target=140, labor=65, packaging=20, shipping=50),
            inventory_turnover=InventoryMetric(value=8.5, target=9, stockout_rate=1.5, overstock_rate=4, shrinkage_rate=0.8),
            picking_speed=MetricDetail(value=36, target=35),
            packing_efficiency=MetricDetail(value=98, target=97),
            dispatch_timeliness=MetricDetail(value=96, target=95),
        ),
        resilience_score=92,
        suppliers=[
            Supplier(
                id="sup-detroit", name="Detroit Parts Co.", location=Location(10, 25),
                supply_capacity=5000, materials_supplied=["Engine Blocks", "Chassis"],
                average_delay_hours=0.5, delivery_time_variance=0.5, resilience_score=95,
                username="detroit", password="detroit123",
            ),
            Supplier(
                id="sup-sf", name="SF Electronics", location=Location(10, 75),
                supply_capacity=8000, materials_supplied=["Microchips", "Wiring Harness"],
                average_delay_hours=0.2, delivery_time_variance=0.2, resilience_score=98,
            ),
        ],
        warehouses=[
            Warehouse(
                id="wh-chicago", name="Chicago, IL", location=Location(40, 25),
                inventory_level=15000, username="chicago", password="chicago123",
                metrics=Metrics(
                    otif=MetricDetail(value=98.8, target=95),
                    order_cycle_time=MetricDetail(value=21, target=24),
                    order_accuracy=MetricDetail(value=99.5, target=99),
                    dock_to_stock_time=MetricDetail(value=5.5, target=8),
                    cost_per_order=CostMetric(value=130, target=140, labor=60, packaging=20, shipping=50),
                    inventory_turnover=InventoryMetric(value=8, target=9, stockout_rate=2, overstock_rate=5, shrinkage_rate=1),
                    picking_speed=MetricDetail(value=37, target=35),
                    packing_efficiency=MetricDetail(value=98, target=97),
                    dispatch_timeliness=MetricDetail(value=97, target=95),
                ),
                storage=[StorageItem("Engine Blocks", 7000), StorageItem("Chassis", 8000)],
                dispatched_last24h=4800,
                dispatch_delay_hours=0,
                resilience_score=90,
                workforce=Workforce(active=124, on_track=91),
                efficiency=Efficiency(picks_per_hour=41, error_rate=1.5, rework=6.5, overtime=4),
            ),
        ],
        customers=[
            Customer(
                id="cust-nyc", name="NYC Retail", location=Location(85, 25), demand=4500,
                requirements=["Daily Restock"], current_order=CurrentOrder("ORD-NYC-001", "In Transit"),
                username="nyc", password="nyc123",
            ),
            Customer(
                id="cust-dallas", name="Dallas Hub", location=Location(85, 75), demand=7000,
                requirements=["Just-in-Time"], current_order=CurrentOrder("ORD-DAL-001", "Delivered"),
            ),
        ],
        connections=[
            Connection(from_id="sup-detroit", to_id="wh-chicago", status="normal", transit_time=12, capacity=6000),
            # wh-la was decommissioned; the lane stays until someone prunes it
            Connection(from_id="sup-sf", to_id="wh-la", status="normal", transit_time=18, capacity=9000),
            Connection(from_id="wh-chicago", to_id="cust-nyc", status="normal", transit_time=24, capacity=5000),
        ],
    )


def _legacy_logistics() -> ScenarioData:
    return ScenarioData(
        network_name="Legacy Logistics Network",
        network_metrics=Metrics(
            otif=MetricDetail(value=85.2, target=95),
            order_cycle_time=MetricDetail(value=38, target=24),
            order_accuracy=MetricDetail(value=99.1, target=99),
            dock_to_stock_time=MetricDetail(value=18, target=8),
            cost_per_order=CostMetric(value=180, target=140, labor=90, packaging=30, shipping=60),
            inventory_turnover=InventoryMetric(value=4, target=9, stockout_rate=15, overstock_rate=10, shrinkage_rate=3),
            picking_speed=MetricDetail(value=28, target=35),
            packing_efficiency=MetricDetail(value=94, target=97),
            dispatch_timeliness=MetricDetail(value=88, target=95),
        ),
        resilience_score=45,
        suppliers=[
            Supplier(
                id="sup-legacy-a", name="Global Parts Corp", location=Location(10, 50),
                supply_capacity=6000, materials_supplied=["Industrial Gears", "Bearings"],
                average_delay_hours=12, delivery_time_variance=4.5, resilience_score=30,
            ),
        ],
        warehouses=[
            Warehouse(
                id="wh-newark", name="Newark, NJ", location=Location(40, 50),
                inventory_level=28000,
                metrics=Metrics(
                    otif=MetricDetail(value=75.6, target=95),
                    order_cycle_time=MetricDetail(value=45, target=24),
                    order_accuracy=MetricDetail(value=99.4, target=99),
                    dock_to_stock_time=MetricDetail(value=28, target=8),
                    cost_per_order=CostMetric(value=180, target=140, labor=90, packaging=30, shipping=60),
                    inventory_turnover=InventoryMetric(value=4, target=9, stockout_rate=15, overstock_rate=10, shrinkage_rate=3),
                    picking_speed=MetricDetail(value=28, target=35),
                    packing_efficiency=MetricDetail(value=94, target=97),
                    dispatch_timeliness=MetricDetail(value=88, target=95),
                ),
                storage=[StorageItem("Industrial Gears", 15000), StorageItem("Bearings", 13000)],
                dispatched_last24h=5300,
                dispatch_delay_hours=8,
                resilience_score=60,
                workforce=Workforce(active=105, on_track=78),
                efficiency=Efficiency(picks_per_hour=35, error_rate=3.2, rework=9.1, overtime=12),
            ),
        ],
        customers=[
            Customer(
                id="cust-east-coast", name="East Coast Distribution", location=Location(85, 50), demand=5500,
                requirements=["Bulk Shipments", "Quality Inspection"],
                current_order=CurrentOrder("ORD-EC-001", "Delayed"),
            ),
        ],
        connections=[
            Connection(from_id="sup-legacy-a", to_id="wh-newark", status="delayed", transit_time=32, capacity=6000),
            Connection(from_id="wh-newark", to_id="cust-east-coast", status="normal", transit_time=16, capacity=5500),
        ],
    )


def sample_companies() -> List[Company]:
    """Fresh copies of the sample networks."""
    innovate = _innovate_inc()
    legacy = _legacy_logistics()
    return [
        Company(
            id="innovate-inc",
            name="Innovate Inc.",
            description="A modern, high-efficiency logistics network operating at peak performance.",
            scenario="normal",
            data=innovate,
            base_data=innovate.clone(),
        ),
        Company(
            id="legacy-logistics",
            name="Legacy Logistics",
            description="An older network experiencing significant inbound delays affecting overall performance.",
            scenario="problem",
            data=legacy,
            base_data=legacy.clone(),
        ),
    ]

"""
Metrics recalculation engine for network snapshots.
Derives supplier resilience, warehouse KPIs, connection load and the
network-level roll-ups from the raw operational fields of a ScenarioData.
"""

from dataclasses import replace
from typing import Dict, List, Optional
import structlog
from .models import (
    ScenarioData, Metrics, MetricDetail, Supplier, Warehouse, Customer, Connection, Workforce, Efficiency,
    baseline_network_metrics,
)
from .utils import safe_divide, finite_or_zero, mean, round_half_up

logger = structlog.get_logger()


class MetricsEngine:
    """Pure derivation of every computed field in a network snapshot."""

    def __init__(self):
        """Initialize the model constants."""
        # Supplier resilience
        self.max_counted_delay_hours = 24
        self.delay_penalty_per_hour = 3

        # Warehouse flow
        self.base_dock_to_stock_hours = 6
        self.inbound_delay_amplification = 1.5
        self.strain_delay_hours = 8
        self.base_cycle_time_hours = 20
        self.dock_to_stock_allowance_hours = 8

        # Inventory health
        self.safety_stock_days = 3
        self.coverage_penalty_per_day = 5
        self.full_score_coverage_days = 10

        # Floors keep service levels within a practical range
        self.otif_floor = 70
        self.accuracy_floor = 90
        self.perfect_service = 99.5

        self.rework_cost_multiplier = 2
        self.default_picking_speed_target = 35
        self.delayed_supplier_threshold_hours = 1

        # Resilience blends
        self.inventory_weight = 0.6
        self.supplier_weight = 0.4
        self.network_warehouse_weight = 0.7
        self.network_supplier_weight = 0.3

    def recalculate_all_metrics(self, data: ScenarioData) -> ScenarioData:
        """
        Recompute every derived field of a snapshot.

        Suppliers are scored first, warehouses read the fresh supplier scores,
        connections follow, then the network roll-ups. Targets are never touched.

        Args:
            data: Snapshot with raw operational inputs

        Returns:
            A new snapshot; the argument is left unmodified
        """
        suppliers = [self._score_supplier(sup) for sup in data.suppliers]
        supplier_map = {sup.id: sup for sup in suppliers}
        customer_map = {cust.id: cust for cust in data.customers}

        warehouses = [
            self._derive_warehouse(wh, data.connections, supplier_map, customer_map)
            for wh in data.warehouses
        ]
        warehouse_ids = {wh.id for wh in warehouses}

        connections = [
            self._derive_connection(conn, supplier_map, customer_map, warehouse_ids)
            for conn in data.connections
        ]

        snapshot = replace(
            data,
            suppliers=suppliers,
            warehouses=warehouses,
            customers=list(data.customers),
            connections=connections,
        )
        network_metrics = self.calculate_network_metrics(snapshot)
        resilience = self._network_resilience(warehouses, suppliers)

        return replace(snapshot, network_metrics=network_metrics, resilience_score=resilience)

    def _score_supplier(self, supplier: Supplier) -> Supplier:
        delay = finite_or_zero(supplier.average_delay_hours)
        delay_penalty = min(delay, self.max_counted_delay_hours) * self.delay_penalty_per_hour
        score = max(0.0, min(100.0, 100 - delay_penalty))
        return replace(supplier, resilience_score=finite_or_zero(score))

    def _derive_warehouse(self, warehouse: Warehouse, connections: List[Connection],
                          supplier_map: Dict[str, Supplier], customer_map: Dict[str, Customer]) -> Warehouse:
        connected_suppliers = [
            supplier_map[conn.from_id] for conn in connections
            if conn.to_id == warehouse.id and conn.from_id in supplier_map
        ]
        avg_inbound_delay = mean(finite_or_zero(sup.average_delay_hours) for sup in connected_suppliers)
        dock_to_stock = self.base_dock_to_stock_hours + avg_inbound_delay * self.inbound_delay_amplification

        daily_demand = self.outbound_demand(warehouse.id, connections, customer_map)
        inventory = finite_or_zero(warehouse.inventory_level)
        efficiency = warehouse.efficiency or Efficiency()
        error_rate = finite_or_zero(efficiency.error_rate)
        rework = finite_or_zero(efficiency.rework)
        picks = finite_or_zero(efficiency.picks_per_hour)

        dispatch_capacity = max(finite_or_zero(warehouse.dispatched_last24h), 1)
        capacity_strain = max(0.0, daily_demand / dispatch_capacity - 1)
        dispatch_delay = capacity_strain * self.strain_delay_hours

        coverage_days = inventory / daily_demand if daily_demand > 0 else float("inf")
        inventory_penalty = 0.0
        if coverage_days < self.safety_stock_days:
            inventory_penalty = (self.safety_stock_days - coverage_days) * self.coverage_penalty_per_day

        inventory_score = max(0.0, min(100.0, coverage_days / self.full_score_coverage_days * 100))
        supplier_resilience_avg = mean((sup.resilience_score for sup in connected_suppliers), default=100.0)
        resilience = round_half_up(
            inventory_score * self.inventory_weight + supplier_resilience_avg * self.supplier_weight
        )

        dock_to_stock_penalty = max(0.0, dock_to_stock - self.dock_to_stock_allowance_hours) / 2
        otif = max(self.otif_floor,
                   self.perfect_service - dock_to_stock_penalty - dispatch_delay / 4 - inventory_penalty)
        cycle_time = self.base_cycle_time_hours + dock_to_stock + dispatch_delay
        accuracy = max(self.accuracy_floor,
                       self.perfect_service - inventory_penalty / 2 - error_rate)

        # rebuilding through __init__ fills metrics left as None
        metrics = replace(warehouse.metrics) if warehouse.metrics is not None else Metrics()
        cost = metrics.cost_per_order
        cost_value = (finite_or_zero(cost.labor) + finite_or_zero(cost.packaging) + finite_or_zero(cost.shipping)
                      + rework * self.rework_cost_multiplier)

        annual_demand = daily_demand * 365
        turnover = annual_demand / inventory if inventory > 0 else 0.0

        if metrics.picking_speed is not None:
            picking_speed = replace(metrics.picking_speed, value=picks)
        else:
            picking_speed = MetricDetail(value=picks, target=self.default_picking_speed_target)
        picking_target = finite_or_zero(picking_speed.target)
        on_track = 0
        if picking_target > 0:
            on_track = round_half_up(min(100.0, picks / picking_target * 100))

        new_metrics = replace(
            metrics,
            otif=replace(metrics.otif, value=finite_or_zero(otif)),
            order_cycle_time=replace(metrics.order_cycle_time, value=finite_or_zero(cycle_time)),
            order_accuracy=replace(metrics.order_accuracy, value=finite_or_zero(accuracy)),
            dock_to_stock_time=replace(metrics.dock_to_stock_time, value=finite_or_zero(dock_to_stock)),
            cost_per_order=replace(cost, value=finite_or_zero(cost_value)),
            inventory_turnover=replace(metrics.inventory_turnover, value=finite_or_zero(turnover)),
            picking_speed=picking_speed,
        )

        return replace(
            warehouse,
            metrics=new_metrics,
            dispatch_delay_hours=finite_or_zero(dispatch_delay),
            resilience_score=resilience,
            workforce=replace(warehouse.workforce or Workforce(), on_track=on_track),
        )

    def outbound_demand(self, warehouse_id: str, connections: List[Connection],
                        customer_map: Dict[str, Customer]) -> float:
        """Daily demand of the customers a warehouse ships to."""
        return sum(
            finite_or_zero(customer_map[conn.to_id].demand) for conn in connections
            if conn.from_id == warehouse_id and conn.to_id in customer_map
        )

    def _derive_connection(self, connection: Connection, supplier_map: Dict[str, Supplier],
                           customer_map: Dict[str, Customer], warehouse_ids: set) -> Connection:
        supplier = supplier_map.get(connection.from_id)
        customer = customer_map.get(connection.to_id)

        throughput = 0.0
        if supplier is not None and connection.to_id in warehouse_ids:
            throughput = finite_or_zero(supplier.supply_capacity)
        elif connection.from_id in warehouse_ids and customer is not None:
            throughput = finite_or_zero(customer.demand)

        utilization = 0.0
        capacity = finite_or_zero(connection.capacity)
        if capacity > 0:
            utilization = max(0.0, min(1.0, throughput / capacity))

        delayed = supplier is not None and supplier.average_delay_hours > self.delayed_supplier_threshold_hours
        return replace(
            connection,
            status="delayed" if delayed else "normal",
            utilization=finite_or_zero(utilization),
        )

    def calculate_network_metrics(self, data: ScenarioData) -> Metrics:
        """
        Roll warehouse metrics up to the network.

        OTIF and accuracy are weighted by dispatch volume; everything else is a
        simple mean. Targets are carried over from the previous network metrics.
        """
        warehouses = data.warehouses
        if not warehouses:
            return baseline_network_metrics()

        previous = data.network_metrics
        defaults = baseline_network_metrics()

        def value_of(metric: Optional[MetricDetail]) -> float:
            return finite_or_zero(metric.value) if metric is not None else 0.0

        def weighted(attr: str) -> float:
            total_weight = sum(wh.dispatched_last24h for wh in warehouses)
            if total_weight == 0:
                return mean(value_of(getattr(wh.metrics, attr)) for wh in warehouses)
            weighted_sum = sum(value_of(getattr(wh.metrics, attr)) * wh.dispatched_last24h for wh in warehouses)
            return finite_or_zero(safe_divide(weighted_sum, total_weight))

        def simple(attr: str) -> float:
            return mean(value_of(getattr(wh.metrics, attr)) for wh in warehouses)

        def carried_target(attr: str) -> float:
            metric = getattr(previous, attr)
            if metric is None:
                metric = getattr(defaults, attr)
            return metric.target

        def sub_mean(attr: str, sub: str) -> float:
            parts = [getattr(wh.metrics, attr) or defaults.get(attr) for wh in warehouses]
            return mean(finite_or_zero(getattr(part, sub)) for part in parts)

        return Metrics(
            otif=MetricDetail(value=weighted("otif"), target=carried_target("otif")),
            order_cycle_time=MetricDetail(value=simple("order_cycle_time"), target=carried_target("order_cycle_time")),
            order_accuracy=MetricDetail(value=weighted("order_accuracy"), target=carried_target("order_accuracy")),
            dock_to_stock_time=MetricDetail(value=simple("dock_to_stock_time"), target=carried_target("dock_to_stock_time")),
            cost_per_order=replace(
                defaults.cost_per_order,
                value=simple("cost_per_order"),
                target=carried_target("cost_per_order"),
                labor=sub_mean("cost_per_order", "labor"),
                packaging=sub_mean("cost_per_order", "packaging"),
                shipping=sub_mean("cost_per_order", "shipping"),
            ),
            inventory_turnover=replace(
                defaults.inventory_turnover,
                value=simple("inventory_turnover"),
                target=carried_target("inventory_turnover"),
                stockout_rate=sub_mean("inventory_turnover", "stockout_rate"),
                overstock_rate=sub_mean("inventory_turnover", "overstock_rate"),
                shrinkage_rate=sub_mean("inventory_turnover", "shrinkage_rate"),
            ),
            picking_speed=MetricDetail(value=simple("picking_speed"), target=carried_target("picking_speed")),
            packing_efficiency=MetricDetail(value=simple("packing_efficiency"), target=carried_target("packing_efficiency")),
            dispatch_timeliness=MetricDetail(value=simple("dispatch_timeliness"), target=carried_target("dispatch_timeliness")),
        )

    def _network_resilience(self, warehouses: List[Warehouse], suppliers: List[Supplier]) -> int:
        avg_warehouse = mean((wh.resilience_score for wh in warehouses), default=100.0)
        avg_supplier = mean((sup.resilience_score for sup in suppliers), default=100.0)
        return round_half_up(
            avg_warehouse * self.network_warehouse_weight + avg_supplier * self.network_supplier_weight
        )


_default_engine: Optional[MetricsEngine] = None


def get_metrics_engine() -> MetricsEngine:
    """Get or create the shared engine instance."""
    global _default_engine
    if _default_engine is None:
        _default_engine = MetricsEngine()
    return _default_engine


def recalculate_all_metrics(data: ScenarioData) -> ScenarioData:
    return get_metrics_engine().recalculate_all_metrics(data)


def calculate_network_metrics(data: ScenarioData) -> Metrics:
    return get_metrics_engine().calculate_network_metrics(data)

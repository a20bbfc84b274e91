"""
Read-only analytics over a network snapshot: stockout outlook, item-level
inventory forecast and early warning signals. Nothing here mutates a company.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from dataclasses_json import dataclass_json, LetterCase
from .models import Company, ScenarioData, Warehouse
from .utils import round_half_up

FORECAST_DAYS = 60

CRITICAL_DAYS = 7
WARNING_DAYS = 30


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class StockoutOutlook:
    """How long a warehouse's stock lasts against its outbound demand."""
    warehouse_id: str = ""
    daily_demand: float = 0.0
    days_until_stockout: Optional[int] = None  # None when nothing ships out
    status: str = "healthy"  # critical | warning | healthy


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class ForecastPoint:
    day: int = 0
    inventory: int = 0


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class ItemForecast:
    item_name: str = ""
    daily_inbound: float = 0.0
    daily_outbound: float = 0.0
    data: List[ForecastPoint] = field(default_factory=list)

    def first_stockout_day(self) -> Optional[int]:
        return next((point.day for point in self.data if point.inventory == 0), None)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class WarehouseForecast:
    warehouse_id: str = ""
    warehouse_name: str = ""
    item_forecasts: List[ItemForecast] = field(default_factory=list)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class WarningSignal:
    """Leading indicator of risk."""
    id: str = ""
    name: str = ""
    type: str = ""  # "supplier_variance", "inventory_depletion"
    message: str = ""
    value: Optional[float] = None  # Observed value
    threshold: Optional[float] = None  # Threshold that triggered the signal


def stockout_outlook(data: ScenarioData, warehouse_id: str) -> Optional[StockoutOutlook]:
    """
    Days until a warehouse runs dry at its current outbound demand.

    Returns:
        The outlook, or None if the warehouse does not exist
    """
    warehouse = data.find_warehouse(warehouse_id)
    if warehouse is None:
        return None

    customer_map = {cust.id: cust for cust in data.customers}
    daily_demand = sum(
        customer_map[conn.to_id].demand for conn in data.connections
        if conn.from_id == warehouse_id and conn.to_id in customer_map
    )
    if daily_demand <= 0:
        return StockoutOutlook(warehouse_id=warehouse_id, daily_demand=0.0)

    days = int(math.floor(warehouse.inventory_level / daily_demand))
    if days < CRITICAL_DAYS:
        status = "critical"
    elif days < WARNING_DAYS:
        status = "warning"
    else:
        status = "healthy"
    return StockoutOutlook(
        warehouse_id=warehouse_id,
        daily_demand=daily_demand,
        days_until_stockout=days,
        status=status,
    )


def _item_flows(data: ScenarioData, warehouse: Warehouse, item_name: str) -> Dict[str, float]:
    supplier_map = {sup.id: sup for sup in data.suppliers}
    customer_map = {cust.id: cust for cust in data.customers}

    inbound = 0.0
    outbound = 0.0
    for conn in data.connections:
        if conn.to_id == warehouse.id and conn.from_id in supplier_map:
            supplier = supplier_map[conn.from_id]
            if item_name in supplier.materials_supplied:
                # capacity is split evenly across the materials a supplier ships
                inbound += supplier.supply_capacity / (len(supplier.materials_supplied) or 1)
        elif conn.from_id == warehouse.id and conn.to_id in customer_map:
            customer = customer_map[conn.to_id]
            if item_name in customer.requirements:
                outbound += customer.demand / (len(customer.requirements) or 1)
    return {"inbound": inbound, "outbound": outbound}


def forecast_inventory(data: ScenarioData, days: int = FORECAST_DAYS) -> List[WarehouseForecast]:
    """
    Project every stored item of every warehouse day by day.

    Each day moves the quantity by inbound minus outbound, never below zero.
    Day 0 is the current stored quantity; the series runs to `days` inclusive.
    """
    forecasts = []
    for warehouse in data.warehouses:
        item_forecasts = []
        for storage_item in warehouse.storage:
            flows = _item_flows(data, warehouse, storage_item.item)
            net_flow = flows["inbound"] - flows["outbound"]

            points = []
            current = storage_item.quantity
            for day in range(days + 1):
                points.append(ForecastPoint(day=day, inventory=round_half_up(current)))
                current = max(0.0, current + net_flow)

            item_forecasts.append(ItemForecast(
                item_name=storage_item.item,
                daily_inbound=flows["inbound"],
                daily_outbound=flows["outbound"],
                data=points,
            ))

        forecasts.append(WarehouseForecast(
            warehouse_id=warehouse.id,
            warehouse_name=warehouse.name,
            item_forecasts=item_forecasts,
        ))
    return forecasts


def early_warning_signals(data: ScenarioData, forecast: List[WarehouseForecast],
                          variance_threshold: float = 2.0,
                          depletion_threshold: int = 14) -> List[WarningSignal]:
    """
    Flag unreliable suppliers and items projected to run out soon.

    Args:
        data: Snapshot whose suppliers are checked
        forecast: Output of forecast_inventory for the same snapshot
        variance_threshold: Delivery time variance (days) above which a supplier is flagged
        depletion_threshold: Flag items whose first zero day is at or before this day

    Returns:
        Supplier signals first, then inventory signals
    """
    signals = []
    for sup in data.suppliers:
        if sup.delivery_time_variance > variance_threshold:
            signals.append(WarningSignal(
                id=sup.id,
                name=sup.name,
                type="supplier_variance",
                message=(f"High delivery time variance: {sup.delivery_time_variance:.1f} days "
                         f"(threshold: {variance_threshold} days)"),
                value=sup.delivery_time_variance,
                threshold=variance_threshold,
            ))

    for warehouse_forecast in forecast:
        for item in warehouse_forecast.item_forecasts:
            stockout_day = item.first_stockout_day()
            if stockout_day is not None and stockout_day <= depletion_threshold:
                signals.append(WarningSignal(
                    id=f"{warehouse_forecast.warehouse_id}-{item.item_name}",
                    name=f"{warehouse_forecast.warehouse_name} - {item.item_name}",
                    type="inventory_depletion",
                    message=f"Projected to stock out in {stockout_day} days (threshold: {depletion_threshold} days)",
                    value=stockout_day,
                    threshold=depletion_threshold,
                ))
    return signals


def has_active_scenario(company: Company) -> bool:
    """True while the live snapshot differs from the saved baseline."""
    return company.data != company.base_data

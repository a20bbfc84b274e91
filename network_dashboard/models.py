"""
Data models for the Network What-If Dashboard.
Suppliers, warehouses and customers wired into a network snapshot, plus the
Company record that pairs a live snapshot with its saved baseline.
"""

import re
import time
from dataclasses import dataclass, field, fields, MISSING
from typing import Optional, List, Dict, Any, Union, Iterator
from dataclasses_json import dataclass_json, config, LetterCase

SUPPLIER = "supplier"
WAREHOUSE = "warehouse"
CUSTOMER = "customer"
NODE_KINDS = (SUPPLIER, WAREHOUSE, CUSTOMER)

# camelCase metric key -> Metrics attribute
METRIC_KEYS: Dict[str, str] = {
    "otif": "otif",
    "orderCycleTime": "order_cycle_time",
    "orderAccuracy": "order_accuracy",
    "dockToStockTime": "dock_to_stock_time",
    "costPerOrder": "cost_per_order",
    "inventoryTurnover": "inventory_turnover",
    "pickingSpeed": "picking_speed",
    "packingEfficiency": "packing_efficiency",
    "dispatchTimeliness": "dispatch_timeliness",
}


def _fill_nulls(instance) -> None:
    """Replace None in fields whose default is not None with that default."""
    for f in fields(instance):
        if getattr(instance, f.name) is not None:
            continue
        if f.default_factory is not MISSING:
            setattr(instance, f.name, f.default_factory())
        elif f.default is not MISSING and f.default is not None:
            setattr(instance, f.name, f.default)


def resolve_metric_key(key: str) -> Optional[str]:
    """Map a camelCase or snake_case metric key to its attribute name."""
    if key in METRIC_KEYS:
        return METRIC_KEYS[key]
    if key in METRIC_KEYS.values():
        return key
    return None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class MetricDetail:
    """A measured value paired with its user-set target."""
    value: float = 0.0
    target: float = 0.0

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "MetricDetail":
        return MetricDetail(value=self.value, target=self.target)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class CostMetric(MetricDetail):
    """Cost per order with its labor/packaging/shipping breakdown."""
    labor: float = 0.0
    packaging: float = 0.0
    shipping: float = 0.0

    def clone(self) -> "CostMetric":
        return CostMetric(
            value=self.value,
            target=self.target,
            labor=self.labor,
            packaging=self.packaging,
            shipping=self.shipping,
        )


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class InventoryMetric(MetricDetail):
    """Inventory turnover with stock health rates."""
    stockout_rate: float = 0.0
    overstock_rate: float = 0.0
    shrinkage_rate: float = 0.0

    def clone(self) -> "InventoryMetric":
        return InventoryMetric(
            value=self.value,
            target=self.target,
            stockout_rate=self.stockout_rate,
            overstock_rate=self.overstock_rate,
            shrinkage_rate=self.shrinkage_rate,
        )


def _clone_optional(metric: Optional[MetricDetail]) -> Optional[MetricDetail]:
    return metric.clone() if metric is not None else None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Metrics:
    """KPI bundle used both per warehouse and for the whole network."""
    otif: MetricDetail = field(default_factory=MetricDetail)
    order_cycle_time: MetricDetail = field(default_factory=MetricDetail)
    order_accuracy: MetricDetail = field(default_factory=MetricDetail)
    dock_to_stock_time: MetricDetail = field(default_factory=MetricDetail)
    cost_per_order: CostMetric = field(default_factory=CostMetric)
    inventory_turnover: InventoryMetric = field(default_factory=InventoryMetric)
    picking_speed: Optional[MetricDetail] = None
    packing_efficiency: Optional[MetricDetail] = None
    dispatch_timeliness: Optional[MetricDetail] = None

    def get(self, key: str) -> Optional[MetricDetail]:
        """Look up a metric by camelCase or snake_case key; None if unknown or absent."""
        attr = resolve_metric_key(key)
        if attr is None:
            return None
        return getattr(self, attr)

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "Metrics":
        return Metrics(
            otif=self.otif.clone(),
            order_cycle_time=self.order_cycle_time.clone(),
            order_accuracy=self.order_accuracy.clone(),
            dock_to_stock_time=self.dock_to_stock_time.clone(),
            cost_per_order=self.cost_per_order.clone(),
            inventory_turnover=self.inventory_turnover.clone(),
            picking_speed=_clone_optional(self.picking_speed),
            packing_efficiency=_clone_optional(self.packing_efficiency),
            dispatch_timeliness=_clone_optional(self.dispatch_timeliness),
        )


def baseline_network_metrics() -> Metrics:
    """Network metrics of a network without warehouses."""
    return Metrics(
        otif=MetricDetail(value=100, target=95),
        order_cycle_time=MetricDetail(value=0, target=24),
        order_accuracy=MetricDetail(value=100, target=99),
        dock_to_stock_time=MetricDetail(value=0, target=8),
        cost_per_order=CostMetric(value=0, target=150, labor=0, packaging=0, shipping=0),
        inventory_turnover=InventoryMetric(value=0, target=10, stockout_rate=0, overstock_rate=0, shrinkage_rate=0),
        picking_speed=MetricDetail(value=0, target=35),
        packing_efficiency=MetricDetail(value=100, target=97),
        dispatch_timeliness=MetricDetail(value=100, target=95),
    )


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Location:
    """Display-only map coordinate."""
    x: float = 0.0
    y: float = 0.0

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "Location":
        return Location(x=self.x, y=self.y)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class StorageItem:
    item: str = ""
    quantity: float = 0.0

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "StorageItem":
        return StorageItem(item=self.item, quantity=self.quantity)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Workforce:
    active: int = 0
    on_track: float = 0.0  # percentage, derived

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "Workforce":
        return Workforce(active=self.active, on_track=self.on_track)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Efficiency:
    picks_per_hour: float = 0.0
    error_rate: float = 0.0  # percentage
    rework: float = 0.0  # percentage
    overtime: float = 0.0  # percentage

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "Efficiency":
        return Efficiency(
            picks_per_hour=self.picks_per_hour,
            error_rate=self.error_rate,
            rework=self.rework,
            overtime=self.overtime,
        )


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class CurrentOrder:
    id: str = ""
    status: str = "Pending"

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "CurrentOrder":
        return CurrentOrder(id=self.id, status=self.status)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Supplier:
    """Upstream node feeding warehouses."""
    id: str = ""
    name: str = ""
    location: Location = field(default_factory=Location)
    supply_capacity: float = 0.0  # units per day
    materials_supplied: List[str] = field(default_factory=list)
    average_delay_hours: float = 0.0
    delivery_time_variance: float = 0.0  # days
    resilience_score: float = 100.0  # 0-100, derived
    username: Optional[str] = None
    password: Optional[str] = None
    kind: str = SUPPLIER

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "Supplier":
        return Supplier(
            id=self.id,
            name=self.name,
            location=self.location.clone(),
            supply_capacity=self.supply_capacity,
            materials_supplied=list(self.materials_supplied),
            average_delay_hours=self.average_delay_hours,
            delivery_time_variance=self.delivery_time_variance,
            resilience_score=self.resilience_score,
            username=self.username,
            password=self.password,
            kind=self.kind,
        )


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Warehouse:
    """Distribution node; carries the per-site KPI bundle."""
    id: str = ""
    name: str = ""
    location: Location = field(default_factory=Location)
    metrics: Metrics = field(default_factory=Metrics)
    inventory_level: float = 0.0
    storage: List[StorageItem] = field(default_factory=list)
    dispatched_last24h: float = 0.0
    dispatch_delay_hours: float = 0.0  # derived
    resilience_score: float = 100.0  # derived
    workforce: Workforce = field(default_factory=Workforce)
    efficiency: Efficiency = field(default_factory=Efficiency)
    username: Optional[str] = None
    password: Optional[str] = None
    kind: str = WAREHOUSE

    @property
    def storage_total(self) -> float:
        """Sum of itemized storage quantities."""
        return sum(item.quantity for item in self.storage)

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "Warehouse":
        return Warehouse(
            id=self.id,
            name=self.name,
            location=self.location.clone(),
            metrics=self.metrics.clone(),
            inventory_level=self.inventory_level,
            storage=[item.clone() for item in self.storage],
            dispatched_last24h=self.dispatched_last24h,
            dispatch_delay_hours=self.dispatch_delay_hours,
            resilience_score=self.resilience_score,
            workforce=self.workforce.clone(),
            efficiency=self.efficiency.clone(),
            username=self.username,
            password=self.password,
            kind=self.kind,
        )


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Customer:
    """Downstream demand node."""
    id: str = ""
    name: str = ""
    location: Location = field(default_factory=Location)
    demand: float = 0.0  # units per day
    requirements: List[str] = field(default_factory=list)
    current_order: CurrentOrder = field(default_factory=CurrentOrder)
    username: Optional[str] = None
    password: Optional[str] = None
    kind: str = CUSTOMER

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "Customer":
        return Customer(
            id=self.id,
            name=self.name,
            location=self.location.clone(),
            demand=self.demand,
            requirements=list(self.requirements),
            current_order=self.current_order.clone(),
            username=self.username,
            password=self.password,
            kind=self.kind,
        )


Node = Union[Supplier, Warehouse, Customer]

NODE_CLASSES = {
    SUPPLIER: Supplier,
    WAREHOUSE: Warehouse,
    CUSTOMER: Customer,
}


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Connection:
    """Directed edge supplier -> warehouse or warehouse -> customer."""
    from_id: str = field(default="", metadata=config(field_name="from"))
    to_id: str = field(default="", metadata=config(field_name="to"))
    status: str = "normal"  # normal | delayed, derived
    transit_time: float = 0.0  # hours
    capacity: float = 0.0  # units per day
    utilization: Optional[float] = None  # 0-1, derived

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "Connection":
        return Connection(
            from_id=self.from_id,
            to_id=self.to_id,
            status=self.status,
            transit_time=self.transit_time,
            capacity=self.capacity,
            utilization=self.utilization,
        )

    def touches(self, node_id: str) -> bool:
        return self.from_id == node_id or self.to_id == node_id


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class ScenarioData:
    """Full network snapshot; the unit the metrics engine works on."""
    network_name: str = ""
    network_metrics: Metrics = field(default_factory=baseline_network_metrics)
    warehouses: List[Warehouse] = field(default_factory=list)
    suppliers: List[Supplier] = field(default_factory=list)
    customers: List[Customer] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    resilience_score: float = 100.0  # derived

    def nodes_of(self, kind: str) -> List[Node]:
        """The list holding nodes of the given kind."""
        if kind == SUPPLIER:
            return self.suppliers
        if kind == WAREHOUSE:
            return self.warehouses
        if kind == CUSTOMER:
            return self.customers
        raise ValueError(f"Unknown node kind: {kind}")

    def iter_nodes(self) -> Iterator[Node]:
        yield from self.suppliers
        yield from self.warehouses
        yield from self.customers

    def find_node(self, node_id: str) -> Optional[Node]:
        return next((node for node in self.iter_nodes() if node.id == node_id), None)

    def find_warehouse(self, warehouse_id: str) -> Optional[Warehouse]:
        return next((wh for wh in self.warehouses if wh.id == warehouse_id), None)

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "ScenarioData":
        return ScenarioData(
            network_name=self.network_name,
            network_metrics=self.network_metrics.clone(),
            warehouses=[wh.clone() for wh in self.warehouses],
            suppliers=[sup.clone() for sup in self.suppliers],
            customers=[cust.clone() for cust in self.customers],
            connections=[conn.clone() for conn in self.connections],
            resilience_score=self.resilience_score,
        )

    @classmethod
    def partial_from_dict(cls, raw: Dict[str, Any]) -> Dict[str, Any]:
        """
        Decode a partial camelCase snapshot into attribute-keyed values.

        Used for live-control edits that replace only some top-level fields.

        Raises:
            ValueError: If a key is not a ScenarioData field
        """
        decoders = {
            "network_name": str,
            "network_metrics": Metrics.from_dict,
            "warehouses": lambda rows: [Warehouse.from_dict(row) for row in rows],
            "suppliers": lambda rows: [Supplier.from_dict(row) for row in rows],
            "customers": lambda rows: [Customer.from_dict(row) for row in rows],
            "connections": lambda rows: [Connection.from_dict(row) for row in rows],
            "resilience_score": float,
        }
        decoded = {}
        for key, value in raw.items():
            attr = _snake_case(key)
            if attr not in decoders:
                raise ValueError(f"Unknown snapshot field: {key}")
            decoded[attr] = decoders[attr](value)
        return decoded


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Company:
    """A modelled network with its live snapshot and saved baseline."""
    id: str = ""
    name: str = ""
    description: str = ""
    scenario: str = "normal"  # normal | problem, display hint only
    data: ScenarioData = field(default_factory=ScenarioData)
    base_data: ScenarioData = field(default_factory=ScenarioData)

    def __post_init__(self):
        _fill_nulls(self)

    def clone(self) -> "Company":
        return Company(
            id=self.id,
            name=self.name,
            description=self.description,
            scenario=self.scenario,
            data=self.data.clone(),
            base_data=self.base_data.clone(),
        )


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def node_from_dict(raw: Dict[str, Any], kind: Optional[str] = None) -> Node:
    """Decode a node record, dispatching on its kind tag."""
    kind = kind or raw.get("kind")
    if kind not in NODE_CLASSES:
        raise ValueError(f"Unknown node kind: {kind}")
    payload = dict(raw)
    payload["kind"] = kind
    return NODE_CLASSES[kind].from_dict(payload)


def _new_warehouse_metrics() -> Dict[str, Any]:
    return Metrics(
        otif=MetricDetail(value=95, target=95),
        order_cycle_time=MetricDetail(value=24, target=24),
        order_accuracy=MetricDetail(value=99, target=99),
        dock_to_stock_time=MetricDetail(value=8, target=8),
        cost_per_order=CostMetric(value=140, target=140, labor=70, packaging=20, shipping=50),
        inventory_turnover=InventoryMetric(value=0, target=9),
        picking_speed=MetricDetail(value=0, target=35),
        packing_efficiency=MetricDetail(value=97, target=97),
        dispatch_timeliness=MetricDetail(value=95, target=95),
    ).to_dict()


# Field defaults for nodes created from the dashboard
NODE_DEFAULTS = {
    SUPPLIER: lambda: {
        "location": {"x": 10, "y": 50},
        "supplyCapacity": 5000,
        "materialsSupplied": [],
        "averageDelayHours": 1,
        "deliveryTimeVariance": 1,
        "resilienceScore": 100,
    },
    WAREHOUSE: lambda: {
        "location": {"x": 40, "y": 50},
        "inventoryLevel": 20000,
        "metrics": _new_warehouse_metrics(),
        "storage": [],
        "dispatchedLast24h": 5000,
        "dispatchDelayHours": 0,
        "resilienceScore": 100,
        "workforce": {"active": 0, "onTrack": 0},
        "efficiency": {"picksPerHour": 0, "errorRate": 0, "rework": 0, "overtime": 0},
    },
    CUSTOMER: lambda: {
        "location": {"x": 85, "y": 50},
        "demand": 5000,
        "requirements": [],
        "currentOrder": {"id": "", "status": "Pending"},
    },
}


def new_node(kind: str, raw: Optional[Dict[str, Any]] = None) -> Node:
    """Build a node of the given kind, filling unspecified fields with dashboard defaults."""
    if kind not in NODE_DEFAULTS:
        raise ValueError(f"Unknown node kind: {kind}")
    payload = NODE_DEFAULTS[kind]()
    payload.update(raw or {})
    if not payload.get("id"):
        payload["id"] = f"{kind}-{int(time.time() * 1000)}"
    return node_from_dict(payload, kind)


def new_company(name: str, description: str, timestamp_ms: Optional[int] = None) -> Company:
    """Create an empty company whose live and baseline snapshots are independent copies."""
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    slug = re.sub(r"\s+", "-", name.strip().lower())
    data = ScenarioData(
        network_name=f"{name} Network",
        network_metrics=baseline_network_metrics(),
        resilience_score=100,
    )
    return Company(
        id=f"{slug}-{timestamp_ms}",
        name=name,
        description=description,
        scenario="normal",
        data=data,
        base_data=data.clone(),
    )

"""
State transitions for the company list.

Each company-level action has its own handler returning the next company.
The outer reducer runs the metrics engine on the result and then lets
BASELINE_POLICY decide how the saved baseline follows the live snapshot.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import structlog
from .metrics import MetricsEngine, get_metrics_engine
from .models import (
    Company, Connection, Node, ScenarioData, Warehouse, WAREHOUSE, NODE_KINDS,
)

logger = structlog.get_logger()

OUTAGE_DELAY_HOURS = 99
DEMAND_SPIKE_MULTIPLIER = 1.5

DEFAULT_LINK_TRANSIT_HOURS = 24
DEFAULT_LINK_CAPACITY = 5000


class ActionType(str, Enum):
    SET_COMPANIES = "SET_COMPANIES"
    ADD_COMPANY = "ADD_COMPANY"
    DELETE_COMPANY = "DELETE_COMPANY"
    UPDATE_COMPANY_DATA = "UPDATE_COMPANY_DATA"
    ADD_NODE = "ADD_NODE"
    UPDATE_NODE = "UPDATE_NODE"
    DELETE_NODE = "DELETE_NODE"
    UPDATE_CONNECTION = "UPDATE_CONNECTION"
    APPLY_STRESS_TEST = "APPLY_STRESS_TEST"
    RESET_SCENARIO = "RESET_SCENARIO"
    UPDATE_NETWORK_METRIC_TARGET = "UPDATE_NETWORK_METRIC_TARGET"
    UPDATE_WAREHOUSE_METRIC_TARGET = "UPDATE_WAREHOUSE_METRIC_TARGET"


class StressTest(str, Enum):
    SUPPLIER_OUTAGE = "SUPPLIER_OUTAGE"
    DEMAND_SPIKE = "DEMAND_SPIKE"


class Baseline(Enum):
    """How baseData follows data once the engine has run."""
    KEEP = "keep"  # baseline untouched
    MIRROR = "mirror"  # baseline becomes a copy of the recalculated live snapshot
    SYNC = "sync"  # the same edit was applied to the baseline, which is recalculated on its own


BASELINE_POLICY: Dict[ActionType, Baseline] = {
    ActionType.UPDATE_COMPANY_DATA: Baseline.KEEP,
    ActionType.APPLY_STRESS_TEST: Baseline.KEEP,
    ActionType.RESET_SCENARIO: Baseline.KEEP,
    ActionType.ADD_NODE: Baseline.MIRROR,
    ActionType.UPDATE_NODE: Baseline.MIRROR,
    ActionType.DELETE_NODE: Baseline.MIRROR,
    ActionType.UPDATE_CONNECTION: Baseline.MIRROR,
    ActionType.UPDATE_NETWORK_METRIC_TARGET: Baseline.SYNC,
    ActionType.UPDATE_WAREHOUSE_METRIC_TARGET: Baseline.SYNC,
}


@dataclass
class Action:
    """A single state transition request; only the fields its type needs are set."""
    type: ActionType
    company_id: Optional[str] = None
    companies: List[Company] = field(default_factory=list)
    company: Optional[Company] = None
    updated_data: Dict[str, Any] = field(default_factory=dict)
    node: Optional[Node] = None
    node_id: Optional[str] = None
    node_type: Optional[str] = None
    inbound_ids: Optional[List[str]] = None  # supplier ids wired into a warehouse
    outbound_ids: Optional[List[str]] = None  # customer ids a warehouse ships to
    connection: Optional[Connection] = None
    test_type: Optional[StressTest] = None
    target_id: Optional[str] = None
    warehouse_id: Optional[str] = None
    metric_key: Optional[str] = None
    new_value: Optional[float] = None


def select_stress_target(base_data: ScenarioData, test_type: StressTest) -> Optional[str]:
    """Pick the biggest node for a stress test: top supply capacity or top demand."""
    if test_type == StressTest.SUPPLIER_OUTAGE:
        if not base_data.suppliers:
            return None
        return max(base_data.suppliers, key=lambda sup: sup.supply_capacity).id
    if test_type == StressTest.DEMAND_SPIKE:
        if not base_data.customers:
            return None
        return max(base_data.customers, key=lambda cust: cust.demand).id
    return None


def stress_candidates(base_data: ScenarioData, test_type: StressTest) -> List[str]:
    """Ids a stress test of this type can hit: suppliers for an outage, customers for a spike."""
    if test_type == StressTest.SUPPLIER_OUTAGE:
        return [sup.id for sup in base_data.suppliers]
    return [cust.id for cust in base_data.customers]


def _sync_inventory(node: Node) -> Node:
    if isinstance(node, Warehouse) and node.storage:
        node.inventory_level = node.storage_total
    return node


def _rewire_warehouse(data: ScenarioData, warehouse_id: str,
                      inbound_ids: Optional[List[str]], outbound_ids: Optional[List[str]]) -> None:
    if inbound_ids is None and outbound_ids is None:
        return
    kept = [conn for conn in data.connections if not conn.touches(warehouse_id)]
    inbound = [
        Connection(from_id=sup_id, to_id=warehouse_id, status="normal",
                   transit_time=DEFAULT_LINK_TRANSIT_HOURS, capacity=DEFAULT_LINK_CAPACITY)
        for sup_id in inbound_ids or []
    ]
    outbound = [
        Connection(from_id=warehouse_id, to_id=cust_id, status="normal",
                   transit_time=DEFAULT_LINK_TRANSIT_HOURS, capacity=DEFAULT_LINK_CAPACITY)
        for cust_id in outbound_ids or []
    ]
    data.connections = kept + inbound + outbound


# Company handlers: return the next company, or the same object for a no-op

def _update_company_data(company: Company, action: Action) -> Company:
    allowed = {f.name for f in fields(ScenarioData)}
    unknown = set(action.updated_data) - allowed
    if unknown:
        logger.warning(f"Ignoring unknown snapshot fields: {sorted(unknown)}")
    updates = {key: value for key, value in action.updated_data.items() if key in allowed}
    # UPDATE_COMPANY_DATA always recalculates, even when no field applied
    return replace(company, data=replace(company.data, **updates))


def _add_node(company: Company, action: Action) -> Company:
    if action.node is None or action.node.kind not in NODE_KINDS:
        return company
    data = company.data.clone()
    if data.find_node(action.node.id) is not None:
        logger.warning(f"Node {action.node.id} already exists in {company.id}")
        return company
    node = _sync_inventory(action.node.clone())
    data.nodes_of(node.kind).append(node)
    if node.kind == WAREHOUSE:
        _rewire_warehouse(data, node.id, action.inbound_ids, action.outbound_ids)
    return replace(company, data=data)


def _update_node(company: Company, action: Action) -> Company:
    if action.node is None or action.node.kind not in NODE_KINDS:
        return company
    data = company.data.clone()
    nodes = data.nodes_of(action.node.kind)
    index = next((i for i, node in enumerate(nodes) if node.id == action.node.id), None)
    if index is None:
        return company
    node = _sync_inventory(action.node.clone())
    nodes[index] = node
    if node.kind == WAREHOUSE:
        _rewire_warehouse(data, node.id, action.inbound_ids, action.outbound_ids)
    return replace(company, data=data)


def _delete_node(company: Company, action: Action) -> Company:
    node_id = action.node_id
    data = company.data.clone()
    kinds = [action.node_type] if action.node_type in NODE_KINDS else list(NODE_KINDS)

    removed = False
    for kind in kinds:
        nodes = data.nodes_of(kind)
        kept = [node for node in nodes if node.id != node_id]
        if len(kept) != len(nodes):
            removed = True
            nodes[:] = kept

    connections = [conn for conn in data.connections if not conn.touches(node_id)]
    pruned = len(connections) != len(data.connections)
    data.connections = connections

    if not removed and not pruned:
        return company
    return replace(company, data=data)


def _update_connection(company: Company, action: Action) -> Company:
    incoming = action.connection
    if incoming is None:
        return company
    data = company.data.clone()
    matched = False
    for i, conn in enumerate(data.connections):
        if conn.from_id == incoming.from_id and conn.to_id == incoming.to_id:
            data.connections[i] = incoming.clone()
            matched = True
    if not matched:
        return company
    return replace(company, data=data)


def _apply_stress_test(company: Company, action: Action) -> Company:
    try:
        test_type = StressTest(action.test_type)
    except ValueError:
        logger.warning(f"Unknown stress test {action.test_type}")
        return company

    target_id = action.target_id or select_stress_target(company.base_data, test_type)
    if target_id is None:
        return company
    if target_id not in stress_candidates(company.base_data, test_type):
        logger.warning(f"No {test_type.value} target {target_id} in {company.id}")
        return company

    data = company.base_data.clone()
    if test_type == StressTest.SUPPLIER_OUTAGE:
        for sup in data.suppliers:
            if sup.id == target_id:
                sup.supply_capacity = 0
                sup.average_delay_hours = OUTAGE_DELAY_HOURS
    else:
        for cust in data.customers:
            if cust.id == target_id:
                cust.demand = cust.demand * DEMAND_SPIKE_MULTIPLIER

    logger.info(f"Applied {test_type.value} to {target_id} in {company.id}")
    return replace(company, data=data)


def _reset_scenario(company: Company, action: Action) -> Company:
    return replace(company, data=company.base_data.clone())


def _update_network_metric_target(company: Company, action: Action) -> Company:
    data = company.data.clone()
    metric = data.network_metrics.get(action.metric_key or "")
    if metric is None or action.new_value is None:
        return company
    metric.target = action.new_value

    base_data = company.base_data.clone()
    base_metric = base_data.network_metrics.get(action.metric_key)
    if base_metric is not None:
        base_metric.target = action.new_value
    return replace(company, data=data, base_data=base_data)


def _update_warehouse_metric_target(company: Company, action: Action) -> Company:
    def set_target(snapshot: ScenarioData) -> bool:
        warehouse = snapshot.find_warehouse(action.warehouse_id or "")
        if warehouse is None:
            return False
        metric = warehouse.metrics.get(action.metric_key or "")
        if metric is None:
            return False
        metric.target = action.new_value
        return True

    if action.new_value is None:
        return company
    data = company.data.clone()
    if not set_target(data):
        return company
    base_data = company.base_data.clone()
    set_target(base_data)
    return replace(company, data=data, base_data=base_data)


COMPANY_HANDLERS: Dict[ActionType, Callable[[Company, Action], Company]] = {
    ActionType.UPDATE_COMPANY_DATA: _update_company_data,
    ActionType.ADD_NODE: _add_node,
    ActionType.UPDATE_NODE: _update_node,
    ActionType.DELETE_NODE: _delete_node,
    ActionType.UPDATE_CONNECTION: _update_connection,
    ActionType.APPLY_STRESS_TEST: _apply_stress_test,
    ActionType.RESET_SCENARIO: _reset_scenario,
    ActionType.UPDATE_NETWORK_METRIC_TARGET: _update_network_metric_target,
    ActionType.UPDATE_WAREHOUSE_METRIC_TARGET: _update_warehouse_metric_target,
}


def apply_company_action(company: Company, action: Action, engine: Optional[MetricsEngine] = None) -> Company:
    """Run one company-level action, recalculate, and settle the baseline."""
    engine = engine or get_metrics_engine()
    handler = COMPANY_HANDLERS[action.type]

    updated = handler(company, action)
    if updated is company:
        logger.info(f"{action.type.value} left {company.id} unchanged")
        return company

    data = engine.recalculate_all_metrics(updated.data)
    policy = BASELINE_POLICY[action.type]
    if policy is Baseline.MIRROR:
        base_data = data.clone()
    elif policy is Baseline.SYNC:
        base_data = engine.recalculate_all_metrics(updated.base_data)
    else:
        base_data = updated.base_data

    return replace(updated, data=data, base_data=base_data)


def company_reducer(state: List[Company], action: Action, engine: Optional[MetricsEngine] = None) -> List[Company]:
    """
    Produce the next company list for an action.

    The input list and every snapshot reachable from it are left untouched.
    Unknown companies and unmatched targets make the action a no-op.
    """
    if action.type == ActionType.SET_COMPANIES:
        return list(action.companies)

    if action.type == ActionType.ADD_COMPANY:
        if action.company is None:
            return state
        if any(company.id == action.company.id for company in state):
            logger.warning(f"Company {action.company.id} already exists")
            return state
        return state + [action.company]

    if action.type == ActionType.DELETE_COMPANY:
        return [company for company in state if company.id != action.company_id]

    if action.type not in COMPANY_HANDLERS:
        logger.warning(f"Unsupported action {action.type}")
        return state

    return [
        apply_company_action(company, action, engine) if company.id == action.company_id else company
        for company in state
    ]

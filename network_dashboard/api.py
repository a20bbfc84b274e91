"""
REST API endpoints for the Network What-If Dashboard.
"""

from flask import Blueprint, request, jsonify, current_app
from typing import Any, Dict, List, Optional
from datetime import datetime
import threading
import structlog
from werkzeug.exceptions import HTTPException
from .analytics import (
    FORECAST_DAYS, forecast_inventory, early_warning_signals, stockout_outlook, has_active_scenario,
)
from .metrics import get_metrics_engine
from .models import (
    Company, Connection, ScenarioData, NODE_KINDS, WAREHOUSE,
    new_company, new_node, node_from_dict, resolve_metric_key,
)
from .reducer import Action, ActionType, StressTest, stress_candidates
from .repository import CompanyRepository, RepositoryError
from .sample_data import sample_companies
from .store import CompanyStore

logger = structlog.get_logger()

# Create API blueprint
api_bp = Blueprint('api', __name__)

_store_lock = threading.Lock()


def get_company_store() -> CompanyStore:
    """Get or create the company store bound to the current app."""
    store = current_app.extensions.get('company_store')
    if store is not None:
        return store
    with _store_lock:
        store = current_app.extensions.get('company_store')
        if store is None:
            engine = get_metrics_engine()
            repository = CompanyRepository(
                current_app.config['COMPANY_STORE_PATH'],
                recalculate=engine.recalculate_all_metrics,
                seed=sample_companies,
            )
            store = CompanyStore(repository, engine)
            store.load()
            current_app.extensions['company_store'] = store
    return store


@api_bp.errorhandler(Exception)
def handle_api_error(error):
    """Global error handler for API endpoints."""
    if isinstance(error, HTTPException):
        return error

    logger.error(f"API Error: {str(error)}", exc_info=True)

    if isinstance(error, RepositoryError):
        return jsonify({
            "error": "Data store unavailable",
            "message": "Unable to read or write the company store",
            "timestamp": datetime.now().isoformat()
        }), 503

    return jsonify({
        "error": "Internal server error",
        "message": str(error),
        "timestamp": datetime.now().isoformat()
    }), 500


def _bad_request(message: str):
    return jsonify({"error": message}), 400


def _company_not_found():
    return jsonify({"error": "Company not found"}), 404


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _dispatch(company_id: str, action: Action) -> Optional[Company]:
    store = get_company_store()
    store.dispatch(action)
    return store.get_company(company_id)


def _company_summary(company: Company) -> Dict[str, Any]:
    return {
        "id": company.id,
        "name": company.name,
        "description": company.description,
        "scenario": company.scenario,
        "resilienceScore": company.data.resilience_score,
        "nodeCounts": {
            "suppliers": len(company.data.suppliers),
            "warehouses": len(company.data.warehouses),
            "customers": len(company.data.customers),
            "connections": len(company.data.connections),
        },
        "hasActiveScenario": has_active_scenario(company),
    }


def _id_list(body: Dict[str, Any], key: str) -> Optional[List[str]]:
    ids = body.get(key)
    if ids is None:
        return None
    if not isinstance(ids, list) or not all(isinstance(node_id, str) for node_id in ids):
        raise ValueError(f"{key} must be a list of node ids")
    return ids


@api_bp.route('/healthz', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": "1.0.0"
    }), 200


@api_bp.route('/companies', methods=['GET'])
def list_companies():
    """List company summaries."""
    store = get_company_store()
    summaries = [_company_summary(company) for company in store.companies]
    return jsonify({
        "companies": summaries,
        "total": len(summaries),
        "generated_at": datetime.now().isoformat()
    })


@api_bp.route('/companies', methods=['POST'])
def create_company():
    """Create an empty company from a name and description."""
    body = request.get_json(silent=True) or {}
    name = (body.get('name') or '').strip()
    description = (body.get('description') or '').strip()
    if not name or not description:
        return _bad_request("Both name and description are required")

    company = new_company(name, description)
    logger.info(f"Creating company {company.id}")
    created = _dispatch(company.id, Action(type=ActionType.ADD_COMPANY, company=company))
    if created is None:
        return jsonify({"error": "Unable to create company"}), 409
    return jsonify(created.to_dict()), 201


@api_bp.route('/companies/<company_id>', methods=['GET'])
def get_company(company_id: str):
    """Full company record including live and baseline snapshots."""
    company = get_company_store().get_company(company_id)
    if company is None:
        return _company_not_found()
    return jsonify(company.to_dict())


@api_bp.route('/companies/<company_id>', methods=['DELETE'])
def delete_company(company_id: str):
    store = get_company_store()
    if store.get_company(company_id) is None:
        return _company_not_found()
    store.dispatch(Action(type=ActionType.DELETE_COMPANY, company_id=company_id))
    return jsonify({"deleted": company_id})


@api_bp.route('/companies/<company_id>/data', methods=['PATCH'])
def update_company_data(company_id: str):
    """
    Live-control edit of the current snapshot.

    The body is a partial camelCase snapshot; the saved baseline is left alone.
    """
    if get_company_store().get_company(company_id) is None:
        return _company_not_found()

    body = request.get_json(silent=True)
    if not isinstance(body, dict) or not body:
        return _bad_request("Request body must be a non-empty object")
    try:
        updated_data = ScenarioData.partial_from_dict(body)
    except (ValueError, KeyError, TypeError) as e:
        return _bad_request(f"Invalid snapshot data: {e}")

    company = _dispatch(company_id, Action(
        type=ActionType.UPDATE_COMPANY_DATA, company_id=company_id, updated_data=updated_data,
    ))
    return jsonify(company.to_dict())


@api_bp.route('/companies/<company_id>/nodes', methods=['POST'])
def add_node(company_id: str):
    """Add a supplier, warehouse or customer; unspecified fields take dashboard defaults."""
    company = get_company_store().get_company(company_id)
    if company is None:
        return _company_not_found()

    body = request.get_json(silent=True) or {}
    raw = body.get('node')
    if not isinstance(raw, dict):
        return _bad_request("Missing node in request body")
    kind = raw.get('kind') or body.get('type')
    if kind not in NODE_KINDS:
        return _bad_request(f"Node kind must be one of {', '.join(NODE_KINDS)}")

    try:
        node = new_node(kind, raw)
        inbound_ids = _id_list(body, 'inboundIds')
        outbound_ids = _id_list(body, 'outboundIds')
    except (ValueError, KeyError, TypeError) as e:
        return _bad_request(f"Invalid node: {e}")

    if company.data.find_node(node.id) is not None:
        return jsonify({"error": f"Node {node.id} already exists"}), 409

    updated = _dispatch(company_id, Action(
        type=ActionType.ADD_NODE,
        company_id=company_id,
        node=node,
        inbound_ids=inbound_ids if kind == WAREHOUSE else None,
        outbound_ids=outbound_ids if kind == WAREHOUSE else None,
    ))
    return jsonify(updated.to_dict()), 201


@api_bp.route('/companies/<company_id>/nodes/<node_id>', methods=['PUT'])
def update_node(company_id: str, node_id: str):
    company = get_company_store().get_company(company_id)
    if company is None:
        return _company_not_found()
    existing = company.data.find_node(node_id)
    if existing is None:
        return jsonify({"error": "Node not found"}), 404

    body = request.get_json(silent=True) or {}
    raw = body.get('node')
    if not isinstance(raw, dict):
        return _bad_request("Missing node in request body")

    try:
        payload = dict(raw)
        payload['id'] = node_id
        node = node_from_dict(payload, existing.kind)
        inbound_ids = _id_list(body, 'inboundIds')
        outbound_ids = _id_list(body, 'outboundIds')
    except (ValueError, KeyError, TypeError) as e:
        return _bad_request(f"Invalid node: {e}")

    updated = _dispatch(company_id, Action(
        type=ActionType.UPDATE_NODE,
        company_id=company_id,
        node=node,
        inbound_ids=inbound_ids if node.kind == WAREHOUSE else None,
        outbound_ids=outbound_ids if node.kind == WAREHOUSE else None,
    ))
    return jsonify(updated.to_dict())


@api_bp.route('/companies/<company_id>/nodes/<node_id>', methods=['DELETE'])
def delete_node(company_id: str, node_id: str):
    """Remove a node and every connection touching it."""
    if get_company_store().get_company(company_id) is None:
        return _company_not_found()

    node_type = request.args.get('type')
    if node_type is not None and node_type not in NODE_KINDS:
        return _bad_request(f"Unknown node type: {node_type}")

    company = _dispatch(company_id, Action(
        type=ActionType.DELETE_NODE, company_id=company_id, node_id=node_id, node_type=node_type,
    ))
    return jsonify(company.to_dict())


@api_bp.route('/companies/<company_id>/connections', methods=['PUT'])
def update_connection(company_id: str):
    """Replace the connection matching the body's from/to pair."""
    company = get_company_store().get_company(company_id)
    if company is None:
        return _company_not_found()

    body = request.get_json(silent=True)
    if not isinstance(body, dict) or not body.get('from') or not body.get('to'):
        return _bad_request("Connection requires from and to")
    try:
        connection = Connection.from_dict(body)
    except (ValueError, KeyError, TypeError) as e:
        return _bad_request(f"Invalid connection: {e}")

    exists = any(
        conn.from_id == connection.from_id and conn.to_id == connection.to_id
        for conn in company.data.connections
    )
    if not exists:
        return jsonify({"error": "Connection not found"}), 404

    updated = _dispatch(company_id, Action(
        type=ActionType.UPDATE_CONNECTION, company_id=company_id, connection=connection,
    ))
    return jsonify(updated.to_dict())


@api_bp.route('/companies/<company_id>/stress-tests', methods=['POST'])
def apply_stress_test(company_id: str):
    """
    Apply a supplier outage or demand spike to the live snapshot.

    Request body:
        testType: SUPPLIER_OUTAGE or DEMAND_SPIKE
        targetId: Optional node id; the largest supplier/customer otherwise
    """
    company = get_company_store().get_company(company_id)
    if company is None:
        return _company_not_found()

    body = request.get_json(silent=True) or {}
    try:
        test_type = StressTest(body.get('testType'))
    except ValueError:
        valid = ', '.join(test.value for test in StressTest)
        return _bad_request(f"testType must be one of {valid}")

    target_id = body.get('targetId')
    if target_id and target_id not in stress_candidates(company.base_data, test_type):
        return jsonify({"error": "Stress test target not found"}), 404

    updated = _dispatch(company_id, Action(
        type=ActionType.APPLY_STRESS_TEST,
        company_id=company_id,
        test_type=test_type,
        target_id=target_id,
    ))
    return jsonify(updated.to_dict())


@api_bp.route('/companies/<company_id>/reset', methods=['POST'])
def reset_scenario(company_id: str):
    """Roll the live snapshot back to the saved baseline."""
    if get_company_store().get_company(company_id) is None:
        return _company_not_found()
    company = _dispatch(company_id, Action(type=ActionType.RESET_SCENARIO, company_id=company_id))
    return jsonify(company.to_dict())


def _target_value():
    body = request.get_json(silent=True) or {}
    value = body.get('value')
    if not _is_number(value):
        return None
    return float(value)


@api_bp.route('/companies/<company_id>/targets/network/<metric_key>', methods=['PUT'])
def update_network_target(company_id: str, metric_key: str):
    if get_company_store().get_company(company_id) is None:
        return _company_not_found()
    if resolve_metric_key(metric_key) is None:
        return _bad_request(f"Unknown metric key: {metric_key}")
    value = _target_value()
    if value is None:
        return _bad_request("Target value must be a number")

    company = _dispatch(company_id, Action(
        type=ActionType.UPDATE_NETWORK_METRIC_TARGET,
        company_id=company_id,
        metric_key=metric_key,
        new_value=value,
    ))
    return jsonify(company.to_dict())


@api_bp.route('/companies/<company_id>/targets/warehouses/<warehouse_id>/<metric_key>', methods=['PUT'])
def update_warehouse_target(company_id: str, warehouse_id: str, metric_key: str):
    company = get_company_store().get_company(company_id)
    if company is None:
        return _company_not_found()
    if company.data.find_warehouse(warehouse_id) is None:
        return jsonify({"error": "Warehouse not found"}), 404
    if resolve_metric_key(metric_key) is None:
        return _bad_request(f"Unknown metric key: {metric_key}")
    value = _target_value()
    if value is None:
        return _bad_request("Target value must be a number")

    updated = _dispatch(company_id, Action(
        type=ActionType.UPDATE_WAREHOUSE_METRIC_TARGET,
        company_id=company_id,
        warehouse_id=warehouse_id,
        metric_key=metric_key,
        new_value=value,
    ))
    return jsonify(updated.to_dict())


@api_bp.route('/companies/<company_id>/forecast', methods=['GET'])
def get_forecast(company_id: str):
    """
    Item-level inventory projection and stockout outlook per warehouse.

    Query Parameters:
        days: Forecast horizon in days (default 60)
    """
    company = get_company_store().get_company(company_id)
    if company is None:
        return _company_not_found()

    days = request.args.get('days', FORECAST_DAYS, type=int)
    if days < 0:
        return _bad_request("days must not be negative")

    forecast = forecast_inventory(company.data, days)
    outlooks = [stockout_outlook(company.data, wh.id) for wh in company.data.warehouses]
    return jsonify({
        "companyId": company_id,
        "days": days,
        "warehouses": [item.to_dict() for item in forecast],
        "stockoutOutlook": [outlook.to_dict() for outlook in outlooks],
        "generated_at": datetime.now().isoformat()
    })


@api_bp.route('/companies/<company_id>/warnings', methods=['GET'])
def get_warnings(company_id: str):
    """
    Early warning signals for the live snapshot.

    Query Parameters:
        varianceThreshold: Supplier delivery variance threshold in days (default 2)
        depletionThreshold: Stockout horizon in days (default 14)
    """
    company = get_company_store().get_company(company_id)
    if company is None:
        return _company_not_found()

    variance_threshold = request.args.get('varianceThreshold', 2.0, type=float)
    depletion_threshold = request.args.get('depletionThreshold', 14, type=int)

    forecast = forecast_inventory(company.data)
    signals = early_warning_signals(company.data, forecast, variance_threshold, depletion_threshold)
    return jsonify({
        "companyId": company_id,
        "signals": [signal.to_dict() for signal in signals],
        "total": len(signals),
        "generated_at": datetime.now().isoformat()
    })

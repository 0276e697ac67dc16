"""REST API routes.

API endpoints (JSON):
  GET /api/lookup/<icao>            Allocation containing an address
  GET /api/classify/<icao>          Consensus verdict (?registration=&callsign=&report=1)
  GET /api/registration/<reg>       Longest-prefix country for a registration
  GET /api/callsign/<callsign>      Operator and country for a callsign
  GET /api/gaps                     Unallocated spans (?start=&end=&min_size=)
  GET /api/mismatches               Recent mismatch reports (?limit=&icao=)
  GET /api/stats                    Table sizes
"""

from __future__ import annotations

from flask import Blueprint, Flask, current_app, g, jsonify, request

from ..consensus import ClassificationInput, build_report, classify, display_country
from ..errors import InvalidRangeError
from ..gaps import DEFAULT_REGION, find_gaps
from ..icao import lookup
from ..operators import resolve_callsign
from ..ranges import format_address, parse_address
from ..registration import resolve_registration

api = Blueprint("api", __name__, url_prefix="/api")


def _tables():
    # Read once per request so a concurrent swap_tables() can't mix tables
    return current_app.config["TABLES"]


def _log():
    from .app import open_log
    if "mismatch_log" not in g:
        g.mismatch_log = open_log(current_app)
    return g.mismatch_log


def _size_arg(name: str, default: int) -> int:
    """Parse a size query arg as decimal or 0x-prefixed hex."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw, 0)
    except ValueError:
        raise InvalidRangeError(f"{name} must be an integer, got {raw!r}") from None


@api.errorhandler(ValueError)
def _bad_request(e):
    return jsonify({"error": str(e)}), 400


@api.route("/lookup/<icao>")
def lookup_address(icao: str):
    """Allocation for one address."""
    addr = parse_address(icao)
    allocation = lookup(_tables().ranges, addr)
    if allocation is None:
        return jsonify({"icao": format_address(addr), "allocation": None}), 404
    return jsonify({
        "icao": format_address(addr),
        "allocation": allocation.to_dict(),
    })


@api.route("/classify/<icao>")
def classify_address(icao: str):
    """Consensus verdict for an address plus optional registration/callsign."""
    tables = _tables()
    inp = ClassificationInput(
        address=parse_address(icao),
        registration=request.args.get("registration") or None,
        callsign=request.args.get("callsign") or None,
    )
    verdict = classify(tables.ranges, tables.prefixes, tables.operators, inp)
    body = {
        "icao": format_address(inp.address),
        "registration": inp.registration,
        "callsign": inp.callsign,
        "verdict": verdict.to_dict(),
        "display_country": display_country(verdict, inp.registration),
    }

    report = build_report(inp, verdict)
    if report is not None:
        body["report"] = report.to_dict()
        log = _log()
        if log is not None and request.args.get("report") == "1":
            body["report_id"] = log.append(report)

    return jsonify(body)


@api.route("/registration/<path:registration>")
def registration_country(registration: str):
    match = resolve_registration(_tables().prefixes, registration)
    if match is None:
        return jsonify({"registration": registration, "match": None}), 404
    return jsonify({
        "registration": registration,
        "match": {"country": match.country_code, "prefix": match.matched_prefix},
    })


@api.route("/callsign/<callsign>")
def callsign_operator(callsign: str):
    match = resolve_callsign(_tables().operators, callsign)
    if match is None:
        return jsonify({"callsign": callsign, "match": None}), 404
    return jsonify({
        "callsign": callsign,
        "match": {
            "code": match.code,
            "operator": match.operator.name,
            "country": match.country_code,
        },
    })


@api.route("/gaps")
def gaps():
    """Unallocated spans in a region (defaults to the small-state European block)."""
    start_arg = request.args.get("start")
    end_arg = request.args.get("end")
    start = parse_address(start_arg) if start_arg else DEFAULT_REGION[0]
    end = parse_address(end_arg) if end_arg else DEFAULT_REGION[1]
    min_size = _size_arg("min_size", 0)

    found = find_gaps(_tables().ranges, start, end, min_size)
    return jsonify({
        "region": {"start": format_address(start), "end": format_address(end)},
        "min_size": min_size,
        "gaps": [gp.to_dict() for gp in found],
        "count": len(found),
    })


@api.route("/mismatches")
def mismatches():
    log = _log()
    if log is None:
        return jsonify({"error": "Mismatch log not configured"}), 404
    limit = max(1, min(request.args.get("limit", 50, type=int), 1000))
    icao = request.args.get("icao") or None
    rows = log.recent(limit=limit, address=icao)
    return jsonify({"mismatches": rows, "count": len(rows), "total": log.count()})


@api.route("/stats")
def stats():
    tables = _tables()
    return jsonify({
        "ranges": len(tables.ranges),
        "prefixes": len(tables.prefixes),
        "operators": len(tables.operators),
    })


def register_routes(app: Flask):
    """Register all blueprints with the app."""
    app.register_blueprint(api)

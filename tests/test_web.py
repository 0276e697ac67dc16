"""Tests for the JSON API — Flask routes."""

import pytest

from src.operators import Operator, OperatorTable
from src.ranges import AllocationRange, RangeTable
from src.registration import PrefixTable
from src.tables import Tables
from src.web.app import create_app, swap_tables


@pytest.fixture
def app(tables, tmp_path):
    app = create_app(tables=tables, reports_path=str(tmp_path / "web.db"))
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def client_no_log(tables):
    app = create_app(tables=tables)
    app.config["TESTING"] = True
    return app.test_client()


class TestLookup:
    def test_allocated(self, client):
        resp = client.get("/api/lookup/464a91")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["icao"] == "464A91"
        assert data["allocation"]["countryISO2"] == "IT"
        assert data["allocation"]["startHex"] == "440000"

    def test_unallocated(self, client):
        resp = client.get("/api/lookup/000001")
        assert resp.status_code == 404
        assert resp.get_json()["allocation"] is None

    def test_bad_address(self, client):
        resp = client.get("/api/lookup/XYZ")
        assert resp.status_code == 400
        assert "error" in resp.get_json()

    def test_cors(self, client):
        resp = client.get("/api/lookup/464A91")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"


class TestClassify:
    def test_mismatch(self, client):
        resp = client.get("/api/classify/464A91?registration=OH-LWA")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["verdict"]["status"] == "mismatch"
        assert data["verdict"]["country_set"] == ["FI", "IT"]
        assert data["display_country"] == "FI"
        assert data["report"]["registration_country"] == "FI"
        assert "report_id" not in data

    def test_agreement(self, client):
        data = client.get("/api/classify/480010?registration=OH-LWA&callsign=FIN7LC").get_json()
        assert data["verdict"]["status"] == "agreement"
        assert data["verdict"]["qualified_status"] == "agreement"
        assert "report" not in data

    def test_insufficient(self, client):
        data = client.get("/api/classify/000001").get_json()
        assert data["verdict"]["status"] == "insufficient_data"
        assert data["display_country"] is None

    def test_report_logged(self, client):
        data = client.get("/api/classify/464A91?registration=OH-LWA&report=1").get_json()
        assert data["report_id"] == 1
        listed = client.get("/api/mismatches").get_json()
        assert listed["total"] == 1
        assert listed["mismatches"][0]["address"] == "464A91"

    def test_report_without_log(self, client_no_log):
        data = client_no_log.get("/api/classify/464A91?registration=OH-LWA&report=1").get_json()
        assert "report_id" not in data
        assert data["report"]["address"] == "464A91"

    def test_bad_address(self, client):
        assert client.get("/api/classify/12345").status_code == 400


class TestResolvers:
    def test_registration(self, client):
        data = client.get("/api/registration/OH-LWA").get_json()
        assert data["match"] == {"country": "FI", "prefix": "OH"}

    def test_registration_unknown(self, client):
        assert client.get("/api/registration/ZS-SJW").status_code == 404

    def test_callsign(self, client):
        data = client.get("/api/callsign/FIN7LC").get_json()
        assert data["match"] == {"code": "FIN", "operator": "Finnair", "country": "FI"}

    def test_callsign_unknown(self, client):
        assert client.get("/api/callsign/XYZ123").status_code == 404


class TestGaps:
    @pytest.fixture
    def gap_client(self):
        table = RangeTable([
            AllocationRange(0x500000, 0x5003FF, "X"),
            AllocationRange(0x500800, 0x500BFF, "Y"),
        ])
        app = create_app(tables=Tables(table, PrefixTable(), OperatorTable()))
        return app.test_client()

    def test_region(self, gap_client):
        data = gap_client.get("/api/gaps?start=500000&end=500FFF&min_size=0x400").get_json()
        assert data["gaps"] == [{"startHex": "500400", "endHex": "5007FF", "size": 1024}]
        assert data["count"] == 1
        assert data["min_size"] == 1024

    def test_default_region(self, gap_client):
        data = gap_client.get("/api/gaps").get_json()
        assert data["region"] == {"start": "500000", "end": "52FFFF"}
        assert data["gaps"][-1]["endHex"] == "52FFFF"

    def test_bad_min_size(self, gap_client):
        assert gap_client.get("/api/gaps?min_size=big").status_code == 400

    def test_default_min_size_reports_single_address(self):
        table = RangeTable([AllocationRange(0x500000, 0x5003FE, "X")])
        app = create_app(tables=Tables(table, PrefixTable(), OperatorTable()))
        data = app.test_client().get("/api/gaps?start=500000&end=5003FF").get_json()
        assert data["min_size"] == 0
        assert data["gaps"] == [{"startHex": "5003FF", "endHex": "5003FF", "size": 1}]

    def test_reversed_region(self, gap_client):
        assert gap_client.get("/api/gaps?start=500FFF&end=500000").status_code == 400


class TestMismatches:
    def test_empty(self, client):
        data = client.get("/api/mismatches").get_json()
        assert data == {"mismatches": [], "count": 0, "total": 0}

    def test_filter_by_icao(self, client):
        client.get("/api/classify/464A91?registration=OH-LWA&report=1")
        client.get("/api/classify/440001?registration=OH-ABC&report=1")
        data = client.get("/api/mismatches?icao=440001").get_json()
        assert data["count"] == 1
        assert data["total"] == 2

    def test_not_configured(self, client_no_log):
        assert client_no_log.get("/api/mismatches").status_code == 404


class TestTables:
    def test_stats(self, client):
        data = client.get("/api/stats").get_json()
        assert data == {"ranges": 4, "prefixes": 5, "operators": 4}

    def test_swap_tables(self, app, client, tables):
        new_ranges = RangeTable([AllocationRange(0x440000, 0x47FFFF, "FI")])
        swap_tables(app, tables._replace(
            ranges=new_ranges,
            operators=OperatorTable({"FIN": Operator("Finnair", "FI")}),
        ))
        data = client.get("/api/classify/464A91?registration=OH-LWA").get_json()
        assert data["verdict"]["status"] == "agreement"
        assert client.get("/api/stats").get_json()["operators"] == 1

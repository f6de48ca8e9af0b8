"""Tests for the Data API HTTP endpoints.

Covers /Execute, /BatchExecute, operation dispatch on POST / and the
error bodies returned for each failure class.
"""

from __future__ import annotations

import gzip
import json
from typing import Iterator

import pytest
from starlette.testclient import TestClient

from rdsduck.connector import Connector
from rdsduck.server import create_app


@pytest.fixture
def test_client(connector: Connector) -> Iterator[TestClient]:
    """Create a test client backed by a fresh in-memory database."""
    app = create_app(connector, pool_size=4, pool_timeout=1.0)
    yield TestClient(app)
    app.state.executor.pool.close()


def execute(client: TestClient, sql: str, **body) -> dict:
    response = client.post("/Execute", json={"sql": sql, **body})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def people(test_client: TestClient) -> None:
    execute(test_client, "CREATE TABLE t (id INTEGER PRIMARY KEY, name VARCHAR)")
    execute(test_client, "INSERT INTO t VALUES (1, 'alice'), (2, 'bob')")


class TestExecute:
    def test_select_with_parameter(self, test_client, people) -> None:
        data = execute(
            test_client,
            "SELECT id, name FROM t WHERE id = :id",
            parameters=[{"name": "id", "value": {"longValue": 1}}],
        )

        assert data == {
            "columnMetadata": [
                {"name": "id", "typeHint": "LONG"},
                {"name": "name", "typeHint": "STRING"},
            ],
            "records": [[{"longValue": 1}, {"stringValue": "alice"}]],
            "numberOfRecordsUpdated": 0,
            "generatedFields": [],
        }

    def test_update(self, test_client, people) -> None:
        data = execute(
            test_client,
            "UPDATE t SET name=:n WHERE id=:id",
            parameters=[
                {"name": "n", "value": {"stringValue": "carol"}},
                {"name": "id", "value": {"longValue": 1}},
            ],
        )

        assert data["records"] == []
        assert data["numberOfRecordsUpdated"] == 1

    def test_null_parameter(self, test_client) -> None:
        data = execute(
            test_client,
            "SELECT :v AS v",
            parameters=[{"name": "v", "value": {"isNull": True}}],
        )
        assert data["records"] == [[{"isNull": True}]]

    def test_blob_round_trip(self, test_client) -> None:
        data = execute(
            test_client,
            "SELECT :b AS b",
            parameters=[{"name": "b", "value": {"blobValue": "qg=="}}],
        )

        assert data["columnMetadata"] == [{"name": "b", "typeHint": "BLOB"}]
        assert data["records"] == [[{"blobValue": "qg=="}]]

    def test_type_hint(self, test_client) -> None:
        data = execute(
            test_client,
            "SELECT :d AS d",
            parameters=[
                {"name": "d", "value": {"stringValue": "2024-01-31"}, "typeHint": "DATE"}
            ],
        )
        assert data["records"] == [[{"stringValue": "2024-01-31"}]]

    def test_invalid_type_hint_value(self, test_client) -> None:
        response = test_client.post(
            "/Execute",
            json={
                "sql": "SELECT :d",
                "parameters": [
                    {"name": "d", "value": {"stringValue": "soon"}, "typeHint": "DATE"}
                ],
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "BadRequestException"

    def test_generated_fields(self, test_client) -> None:
        execute(test_client, "CREATE SEQUENCE seq START 100")
        execute(test_client, "CREATE TABLE items (id BIGINT DEFAULT nextval('seq'), v VARCHAR)")

        data = execute(
            test_client,
            "INSERT INTO items (v) VALUES (:v)",
            parameters=[{"name": "v", "value": {"stringValue": "x"}}],
        )

        assert data["numberOfRecordsUpdated"] == 1
        assert data["generatedFields"] == [{"longValue": 100}]

    def test_format_records_as_json(self, test_client, people) -> None:
        data = execute(test_client, "SELECT id, name FROM t ORDER BY id", formatRecordsAs="JSON")

        assert "records" not in data
        assert json.loads(data["formattedRecords"]) == [
            {"id": 1, "name": "alice"},
            {"id": 2, "name": "bob"},
        ]

    def test_database_selection(self, test_client) -> None:
        execute(test_client, "ATTACH ':memory:' AS other")
        execute(test_client, "CREATE TABLE other.main.only_there (id INTEGER)")

        data = execute(test_client, "SELECT count(*) AS n FROM only_there", database="other")
        assert data["records"] == [[{"longValue": 0}]]

        # The next request on the same pooled connection is back on the default
        response = test_client.post("/Execute", json={"sql": "SELECT * FROM only_there"})
        assert response.status_code == 500

    def test_aggregate_and_non_finite_results(self, test_client, people) -> None:
        data = execute(
            test_client, "SELECT sum(id) AS s, 'nan'::DOUBLE AS d, 'inf'::DOUBLE AS i FROM t"
        )

        assert data["columnMetadata"] == [
            {"name": "s", "typeHint": "LONG"},
            {"name": "d", "typeHint": "DOUBLE"},
            {"name": "i", "typeHint": "DOUBLE"},
        ]
        assert data["records"] == [
            [{"longValue": 3}, {"stringValue": "NaN"}, {"stringValue": "Infinity"}]
        ]

    def test_auth_fields_are_ignored(self, test_client) -> None:
        data = execute(
            test_client,
            "SELECT 1 AS one",
            resourceArn="arn:aws:rds:us-east-1:123456789012:cluster:local",
            secretArn="arn:aws:secretsmanager:us-east-1:123456789012:secret:local",
        )
        assert data["records"] == [[{"longValue": 1}]]

    def test_gzip_body(self, test_client) -> None:
        body = gzip.compress(json.dumps({"sql": "SELECT 'zipped' AS s"}).encode())

        response = test_client.post(
            "/Execute",
            content=body,
            headers={"Content-Type": "application/json", "Content-Encoding": "gzip"},
        )

        assert response.status_code == 200
        assert response.json()["records"] == [[{"stringValue": "zipped"}]]


class TestBatchExecute:
    def test_batch_insert(self, test_client) -> None:
        execute(test_client, "CREATE SEQUENCE seq START 1")
        execute(test_client, "CREATE TABLE users (id INTEGER DEFAULT nextval('seq'), name VARCHAR)")

        response = test_client.post(
            "/BatchExecute",
            json={
                "sql": "INSERT INTO users (name) VALUES (:name)",
                "parameterSets": [
                    [{"name": "name", "value": {"stringValue": "a"}}],
                    [{"name": "name", "value": {"stringValue": "b"}}],
                ],
            },
        )

        assert response.status_code == 200
        assert response.json() == {
            "updateResults": [
                {"generatedFields": [{"longValue": 1}]},
                {"generatedFields": [{"longValue": 2}]},
            ]
        }

    def test_batch_failure_reports_entry(self, test_client, people) -> None:
        response = test_client.post(
            "/BatchExecute",
            json={
                "sql": "INSERT INTO t VALUES (:id, 'x')",
                "parameterSets": [
                    [{"name": "id", "value": {"longValue": 3}}],
                    [{"name": "id", "value": {"longValue": 1}}],
                ],
            },
        )

        assert response.status_code == 500
        assert response.json()["code"] == "DatabaseErrorException"
        assert "Batch entry 1" in response.json()["message"]

    def test_empty_parameter_sets(self, test_client) -> None:
        response = test_client.post(
            "/BatchExecute", json={"sql": "INSERT INTO t VALUES (:id)", "parameterSets": []}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "BadRequestException"


class TestDispatch:
    def test_amz_target_execute(self, test_client) -> None:
        response = test_client.post(
            "/",
            json={"sql": "SELECT 2 AS two"},
            headers={"X-Amz-Target": "RdsDataService.ExecuteStatement"},
        )

        assert response.status_code == 200
        assert response.json()["records"] == [[{"longValue": 2}]]

    def test_amz_target_batch(self, test_client) -> None:
        execute(test_client, "CREATE TABLE t (id INTEGER)")

        response = test_client.post(
            "/",
            json={
                "sql": "INSERT INTO t VALUES (:id)",
                "parameterSets": [[{"name": "id", "value": {"longValue": 1}}]],
            },
            headers={"X-Amz-Target": "RdsDataService.BatchExecuteStatement"},
        )

        assert response.status_code == 200
        assert response.json() == {"updateResults": [{"generatedFields": []}]}

    def test_unknown_operation(self, test_client) -> None:
        response = test_client.post(
            "/",
            json={"sql": "SELECT 1"},
            headers={"X-Amz-Target": "RdsDataService.BeginTransaction"},
        )
        assert response.status_code == 400
        assert "BeginTransaction" in response.json()["message"]

    def test_unmatched_route(self, test_client) -> None:
        response = test_client.get("/nowhere")
        assert response.status_code == 404
        assert response.json() == {"code": "NotFoundException", "message": "Route not found."}


class TestErrors:
    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"sql": ""},
            {"sql": 42},
            {"sql": "SELECT :a", "parameters": [{"name": "a", "value": {"arrayValue": {}}}]},
            {"sql": "SELECT :a", "parameters": [{"name": "a", "value": {}}]},
            {"sql": "SELECT :a", "parameters": [{"name": "a", "value": {"longValue": "1"}}]},
            {
                "sql": "SELECT :a",
                "parameters": [
                    {"name": "a", "value": {"longValue": 1}},
                    {"name": "a", "value": {"longValue": 2}},
                ],
            },
            {"sql": "SELECT 1", "transactionId": "tx-1"},
            {"sql": "SELECT 1", "formatRecordsAs": "CSV"},
        ],
    )
    def test_bad_requests(self, test_client, body) -> None:
        response = test_client.post("/Execute", json=body)

        assert response.status_code == 400
        assert response.json()["code"] == "BadRequestException"

    def test_unsupported_value_kind_message(self, test_client) -> None:
        response = test_client.post(
            "/Execute",
            json={
                "sql": "SELECT :a",
                "parameters": [{"name": "a", "value": {"arrayValue": {"longValues": [1]}}}],
            },
        )
        assert response.json()["message"] == "Unsupported value kind: arrayValue"

    def test_sql_too_long(self, test_client) -> None:
        response = test_client.post("/Execute", json={"sql": "SELECT 1" + " " * 70000})
        assert response.status_code == 400

    def test_non_finite_double_parameter(self, test_client) -> None:
        body = b'{"sql": "SELECT :d", "parameters": [{"name": "d", "value": {"doubleValue": NaN}}]}'

        response = test_client.post(
            "/Execute", content=body, headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "BadRequestException"

    def test_invalid_json(self, test_client) -> None:
        response = test_client.post(
            "/Execute", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Request body is not valid JSON"

    def test_schema_not_implemented(self, test_client) -> None:
        response = test_client.post("/Execute", json={"sql": "SELECT 1", "schema": "main"})
        assert response.status_code == 501
        assert response.json()["code"] == "NotImplementedException"

    def test_sql_error(self, test_client) -> None:
        response = test_client.post("/Execute", json={"sql": "SELECT * FROM missing_table"})

        assert response.status_code == 500
        assert response.json()["code"] == "DatabaseErrorException"
        assert "missing_table" in response.json()["message"]

    def test_missing_parameter(self, test_client) -> None:
        response = test_client.post("/Execute", json={"sql": "SELECT :a"})
        assert response.status_code == 500
        assert response.json()["message"] == "Missing parameter: a"

    def test_pool_exhausted(self, connector: Connector) -> None:
        app = create_app(connector, pool_size=1, pool_timeout=0.05)
        client = TestClient(app)

        with app.state.executor.pool.acquire():
            response = client.post("/Execute", json={"sql": "SELECT 1"})

        assert response.status_code == 503
        assert response.json()["code"] == "ServiceUnavailableError"
        app.state.executor.pool.close()

import pytest
from starlette.testclient import TestClient
from api.app import create_app


def account_event(account_id="0x1"):
    return {
        "account": {
            "id": account_id,
            "_derived_id": account_id,
            "_derived_hasBorrowed": False,
            "_derived_tokens": [],
        }
    }


@pytest.fixture()
def client(gateway):
    return TestClient(create_app(gateway))


def test_post_query(client, subgraph_client):
    subgraph_client.execute.return_value = {"accounts": [], "markets": [{"id": "m1"}]}

    response = client.post("/", json={
        "query": "query M($first: Int) { accounts(first: $first) { id } markets { id } }",
        "variables": {"first": 1},
        "operationName": "M",
    })

    assert response.status_code == 200
    assert response.json()["data"]["markets"] == [{"id": "m1"}]
    _, variables, operation_name = subgraph_client.execute.call_args.args
    assert variables == {"first": 1}
    assert operation_name == "M"


def test_post_on_custom_path(gateway, subgraph_client):
    subgraph_client.execute.return_value = {"markets": []}
    client = TestClient(create_app(gateway, path="/graphql"))

    response = client.post("/graphql", json={"query": "{ markets { id } }"})

    assert response.status_code == 200
    assert response.json() == {"data": {"markets": []}}


def test_post_invalid_json(client, subgraph_client):
    response = client.post("/", content="{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    subgraph_client.execute.assert_not_awaited()


def test_post_variables_must_be_an_object(client, subgraph_client):
    response = client.post("/", json={"query": "{ markets { id } }", "variables": [1]})
    assert response.status_code == 400
    assert response.json()["errors"]
    subgraph_client.execute.assert_not_awaited()


def test_validation_errors_return_400(client, subgraph_client):
    response = client.post("/", json={"query": "{ markets { notAField } }"})
    assert response.status_code == 400
    assert "notAField" in response.json()["errors"][0]["message"]
    subgraph_client.execute.assert_not_awaited()


def test_field_errors_return_200(client, subgraph_client):
    subgraph_client.execute.return_value = {
        "accountCToken": {"id": "0xtoken", "_derived_market": {"exchangeRate": "0.02"}}
    }

    response = client.post("/", json={"query": '{ accountCToken(id: "0xtoken") { id supplyBalanceUnderlying } }'})

    assert response.status_code == 200
    body = response.json()
    assert body["data"] == {"accountCToken": {"id": "0xtoken", "supplyBalanceUnderlying": None}}
    assert "Missing data" in body["errors"][0]["message"]


def test_get_query(client, subgraph_client):
    subgraph_client.execute.return_value = {"account": None}

    response = client.get("/", params={
        "query": "query A($id: ID!) { account(id: $id) { id } }",
        "variables": '{"id": "0x1"}',
    })

    assert response.status_code == 200
    assert response.json() == {"data": {"account": None}}
    _, variables, _ = subgraph_client.execute.call_args.args
    assert variables == {"id": "0x1"}


def test_get_without_query_is_not_allowed(client, subgraph_client):
    response = client.get("/")
    assert response.status_code == 405
    subgraph_client.execute.assert_not_awaited()


@pytest.mark.parametrize(
    "query,operation_name",
    [
        ('# refresh first\nmutation { refreshAccount(id: "0x1") { id } }', None),
        ('query A { markets { id } } mutation B { refreshAccount(id: "0x1") { id } }', "B"),
    ],
)
def test_get_rejects_mutations(client, subgraph_client, query, operation_name):
    params = {"query": query}
    if operation_name:
        params["operationName"] = operation_name

    response = client.get("/", params=params)

    assert response.status_code == 400
    assert response.json()["errors"]
    subgraph_client.execute.assert_not_awaited()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_transport_ws_subscription(client, subgraph_client):
    async def subscribe(document, variables=None, operation_name=None):
        yield account_event()

    subgraph_client.subscribe = subscribe

    with client.websocket_connect("/", subprotocols=["graphql-transport-ws"]) as ws:
        ws.send_json({"type": "connection_init"})
        assert ws.receive_json()["type"] == "connection_ack"
        ws.send_json({
            "type": "subscribe",
            "id": "1",
            "payload": {"query": 'subscription { account(id: "0x1") { id health } }'},
        })
        message = ws.receive_json()
        assert (message["type"], message["id"]) == ("next", "1")
        assert message["payload"]["data"] == {"account": {"id": "0x1", "health": None}}
        assert ws.receive_json() == {"type": "complete", "id": "1"}


def test_transport_ws_query(client, subgraph_client):
    subgraph_client.execute.return_value = {"markets": [{"id": "m1"}]}

    with client.websocket_connect("/", subprotocols=["graphql-transport-ws"]) as ws:
        ws.send_json({"type": "connection_init"})
        assert ws.receive_json()["type"] == "connection_ack"
        ws.send_json({"type": "subscribe", "id": "q", "payload": {"query": "{ markets { id } }"}})
        message = ws.receive_json()
        assert message["type"] == "next"
        assert message["payload"]["data"] == {"markets": [{"id": "m1"}]}
        assert ws.receive_json() == {"type": "complete", "id": "q"}


def test_transport_ws_subscribe_before_init_is_unauthorized(client, subgraph_client):
    with client.websocket_connect("/", subprotocols=["graphql-transport-ws"]) as ws:
        ws.send_json({
            "type": "subscribe",
            "id": "1",
            "payload": {"query": 'subscription { account(id: "0x1") { id } }'},
        })
        message = ws.receive()
        assert message["type"] == "websocket.close"
        assert message["code"] == 4401


def test_transport_ws_second_init_is_rejected(client):
    with client.websocket_connect("/", subprotocols=["graphql-transport-ws"]) as ws:
        ws.send_json({"type": "connection_init"})
        assert ws.receive_json()["type"] == "connection_ack"
        ws.send_json({"type": "connection_init"})
        message = ws.receive()
        assert message["type"] == "websocket.close"
        assert message["code"] == 4429


def test_legacy_graphql_ws_subscription(client, subgraph_client):
    async def subscribe(document, variables=None, operation_name=None):
        yield account_event("0x2")

    subgraph_client.subscribe = subscribe

    with client.websocket_connect("/", subprotocols=["graphql-ws"]) as ws:
        ws.send_json({"type": "connection_init"})
        assert ws.receive_json()["type"] == "connection_ack"
        ws.send_json({
            "type": "start",
            "id": "1",
            "payload": {"query": 'subscription { account(id: "0x2") { health } }'},
        })
        message = ws.receive_json()
        assert message["type"] == "data"
        assert message["payload"]["data"] == {"account": {"health": None}}
        assert ws.receive_json() == {"type": "complete", "id": "1"}

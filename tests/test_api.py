import base64
import json

from conftest import SIGNATURE

AGENT = {"X-Delivery-Agent": "agent@x.com"}


def _create_item(client, **overrides):
    body = {"sku": "A1", "category": "Fresh Produce", "quantity": 10, **overrides}
    response = client.post("/inventory/items", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def _dispatch(client, item_id, quantity=4, delivery_date="2024-05-01"):
    response = client.post(
        f"/inventory/items/{item_id}/dispatch",
        json={"agent": "agent@x.com", "quantity": quantity, "deliveryDate": delivery_date},
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_inventory_crud(client):
    item = _create_item(client, expiry="2024-06-30", perishable=True)
    assert item["sku"] == "A1"
    assert item["expiry"] == "2024-06-30"
    assert item["createdAt"] == item["updatedAt"]

    response = client.patch(f"/inventory/items/{item['id']}", json={"quantity": 3, "damaged": True})
    assert response.status_code == 200
    assert response.json()["quantity"] == 3
    assert response.json()["damaged"] is True

    _create_item(client, sku="B2", category="Dairy")
    assert [it["sku"] for it in client.get("/inventory/items", params={"q": "dair"}).json()] == ["B2"]
    assert [it["sku"] for it in client.get("/inventory/items", params={"perishable": True}).json()] == ["A1"]

    response = client.delete(f"/inventory/items/{item['id']}")
    assert response.json() == {"ok": True, "deleted": True}
    assert client.delete(f"/inventory/items/{item['id']}").json() == {"ok": True, "deleted": False}


def test_create_item_validation(client):
    assert client.post("/inventory/items", json={"sku": " ", "category": "Dairy"}).status_code == 422
    assert client.post("/inventory/items", json={"sku": "A1", "category": "Dairy", "quantity": 0}).status_code == 422


def test_missing_item_is_404(client):
    response = client.patch("/inventory/items/missing", json={"quantity": 1})
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_dispatch_then_list_deliveries(client):
    item = _create_item(client, perishable=True)
    delivery = _dispatch(client, item["id"])
    assert delivery["status"] == "pending"
    assert delivery["type"] == "perishable"
    assert delivery["priority"] == "Perishable"
    assert delivery["deliveryDate"] == "2024-05-01"

    assert client.get("/inventory/items").json() == []
    listed = client.get("/deliveries/", params={"agent": "AGENT@"}).json()
    assert [d["id"] for d in listed] == [delivery["id"]]
    assert client.get("/deliveries/", params={"sku": "zz"}).json() == []
    assert client.get(f"/deliveries/{delivery['id']}").json()["sku"] == "A1"


def test_dispatch_validation_errors_are_400(client):
    item = _create_item(client)
    response = client.post(
        f"/inventory/items/{item['id']}/dispatch",
        json={"agent": "", "quantity": 1, "deliveryDate": "2024-05-01"},
    )
    assert response.status_code == 400
    assert response.json() == {"detail": "agent required", "code": "VALIDATION_ERROR"}

    response = client.post(
        f"/inventory/items/{item['id']}/dispatch",
        json={"agent": "agent@x.com", "quantity": 11, "deliveryDate": "2024-05-01"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "invalid quantity"


def test_toggle_and_type_change_propagate(client):
    item = _create_item(client)
    delivery = _dispatch(client, item["id"])
    restock = _create_item(client, quantity=5)

    response = client.post(f"/inventory/items/{restock['id']}/toggle/damaged")
    assert response.status_code == 200
    assert response.json() == {"itemId": restock["id"], "field": "damaged", "value": True, "deliveriesUpdated": 1}
    assert client.get(f"/deliveries/{delivery['id']}").json()["type"] == "damaged"

    items = client.get("/inventory/items").json()
    assert items[0]["hasDeliveries"] is True
    assert client.get("/inventory/related-skus").json() == ["A1"]

    response = client.patch(f"/deliveries/{delivery['id']}/type", json={"type": "perishable"})
    assert response.json() == {"deliveryId": delivery["id"], "type": "perishable", "inventoryUpdated": 1}
    item = client.get("/inventory/items").json()[0]
    assert (item["perishable"], item["damaged"]) == (True, False)

    assert client.post(f"/inventory/items/{restock['id']}/toggle/fragile").status_code == 422
    assert client.patch(f"/deliveries/{delivery['id']}/type", json={"type": "fragile"}).status_code == 400


def test_return_restocks(client):
    item = _create_item(client)
    delivery = _dispatch(client, item["id"], quantity=4)

    response = client.patch(f"/deliveries/{delivery['id']}/status", json={"status": "returned"})
    assert response.status_code == 200
    body = response.json()
    assert body["deleted"] is True
    assert body["status"] == "returned"

    items = client.get("/inventory/items").json()
    assert [(it["id"], it["quantity"]) for it in items] == [(body["inventoryItemId"], 4)]
    assert client.get(f"/deliveries/{delivery['id']}").status_code == 404


def test_agent_session_cookie(client):
    assert client.get("/agents/me").status_code == 401

    response = client.post("/agents/session", json={"email": "agent@x.com"})
    assert response.status_code == 200
    assert response.json() == {"agent": "agent@x.com"}
    assert client.get("/agents/me").json() == {"agent": "agent@x.com"}

    assert client.delete("/agents/session").status_code == 204
    client.cookies.clear()
    assert client.get("/agents/me").status_code == 401


def test_agent_queue_and_confirmation(client):
    item = _create_item(client)
    delivery = _dispatch(client, item["id"], delivery_date="2024-05-10")

    other = _create_item(client, sku="B2")
    client.post(
        f"/inventory/items/{other['id']}/dispatch",
        json={"agent": "someone@x.com", "quantity": 1, "deliveryDate": "2024-05-10"},
    )

    queue = client.get("/agents/me/queue", params={"today": "2024-05-09"}, headers=AGENT).json()
    assert queue["agent"] == "agent@x.com"
    assert queue["asOf"] == "2024-05-09"
    assert [d["id"] for d in queue["upcoming"]] == [delivery["id"]]
    assert queue["past"] == queue["today"] == []

    path = f"/agents/me/deliveries/{delivery['id']}"
    response = client.post(f"{path}/confirm", json={"customerName": "Dana", "signature": SIGNATURE}, headers=AGENT)
    assert response.status_code == 400

    assert client.patch(f"{path}/status", json={"status": "in_transit"}, headers=AGENT).status_code == 200
    response = client.post(f"{path}/confirm", json={"customerName": "Dana", "signature": ""}, headers=AGENT)
    assert response.status_code == 400
    assert response.json()["detail"] == "signature required"

    response = client.post(f"{path}/confirm", json={"customerName": "Dana", "signature": SIGNATURE}, headers=AGENT)
    assert response.status_code == 201
    verification = response.json()
    assert verification["deliveryId"] == delivery["id"]
    assert verification["customerName"] == "Dana"

    signature = client.get(verification["signatureUrl"])
    assert signature.status_code == 200
    assert signature.headers["content-type"] == "image/png"
    assert signature.content == base64.b64decode(SIGNATURE.split(",", 1)[1])

    assert client.get(f"/verifications/{verification['id']}").json()["agent"] == "agent@x.com"
    assert client.get("/agents/me/queue", headers=AGENT).json()["upcoming"] == []


def test_agent_cannot_touch_other_agents_delivery(client):
    item = _create_item(client)
    delivery = _dispatch(client, item["id"])
    response = client.patch(
        f"/agents/me/deliveries/{delivery['id']}/status",
        json={"status": "in_transit"},
        headers={"X-Delivery-Agent": "other@x.com"},
    )
    assert response.status_code == 404


def test_stream_sends_current_queue(client):
    item = _create_item(client, perishable=True)
    delivery = _dispatch(client, item["id"])

    response = client.get("/agents/me/stream", params={"limit": 1}, headers=AGENT)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    lines = [json.loads(line) for line in response.text.splitlines() if line]
    assert len(lines) == 1
    queue = lines[0]
    assert queue["agent"] == "agent@x.com"
    assert queue["conditionChanges"] == []
    ids = [d["id"] for bucket in ("past", "today", "upcoming") for d in queue[bucket]]
    assert ids == [delivery["id"]]


def test_users_and_agents(client):
    response = client.post("/users/", json={"email": "agent@x.com", "role": "DLTeam"})
    assert response.status_code == 201
    client.post("/users/", json={"email": "inv@x.com", "role": "InvTeam"})
    assert client.post("/users/", json={"email": "AGENT@x.com", "role": "DLTeam"}).status_code == 409

    assert [u["email"] for u in client.get("/users/").json()] == ["agent@x.com", "inv@x.com"]
    assert [u["email"] for u in client.get("/agents/").json()] == ["agent@x.com"]


def test_import_endpoint(client):
    response = client.post(
        "/inventory/import",
        json={"rows": [
            {"sku": "A1", "category": "Fresh Produce", "quantity": 2},
            {"sku": "A1", "category": "Fresh Produce", "quantity": 7},
            {"category": "Dairy"},
        ]},
    )
    assert response.json() == {"added": 1, "updated": 1, "errors": 1}
    assert [it["quantity"] for it in client.get("/inventory/items").json()] == [7]


def test_create_item_with_blank_expiry_and_flags(client):
    item = _create_item(client, expiry="", perishable="", damaged="")
    assert item["expiry"] is None
    assert (item["perishable"], item["damaged"]) == (False, False)


def test_patch_blank_expiry_clears_it_and_null_flags_are_ignored(client):
    item = _create_item(client, expiry="2024-06-30", perishable=True)
    response = client.patch(f"/inventory/items/{item['id']}", json={"expiry": "", "perishable": None})
    assert response.status_code == 200
    assert response.json()["expiry"] is None
    assert response.json()["perishable"] is True


def test_list_items_by_expiry(client):
    _create_item(client, sku="EARLY", expiry="2024-06-01")
    _create_item(client, sku="EDGE", expiry="2024-06-30")
    _create_item(client, sku="LATE", expiry="2024-07-15")
    _create_item(client, sku="NONE")

    listed = client.get("/inventory/items", params={"expiry": "2024-06-30"}).json()
    assert sorted(it["sku"] for it in listed) == ["EARLY", "EDGE"]
    assert len(client.get("/inventory/items").json()) == 4

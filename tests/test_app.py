from __future__ import annotations

import json
from io import BytesIO

import pytest

pytest.importorskip("flask")

from konsut_stock.app import create_app  # noqa: E402
from konsut_stock.config import Settings  # noqa: E402
from konsut_stock.storage import MemoryKeyValueStore, StorageKeys  # noqa: E402


def _login(client, username: str = "admin", password: str = "admin"):
    response = client.post("/login", json={"username": username, "password": password})
    assert response.status_code == 200
    return response


def _messages(client) -> list:
    return [entry["message"] for entry in client.get("/api/notifications").get_json()]


def test_api_requires_login(client) -> None:
    response = client.get("/api/stock")

    assert response.status_code == 401
    assert response.get_json()["code"] == "unauthorized"


def test_login_rejects_bad_credentials(client) -> None:
    response = client.post("/login", json={"username": "admin", "password": "nope"})

    assert response.status_code == 401
    assert response.get_json()["code"] == "invalid_credentials"


def test_me_reports_permissions(client) -> None:
    anonymous = client.get("/api/me").get_json()
    assert anonymous["user"] is None
    assert anonymous["permissions"]["can_manage_items"] is False

    _login(client, "staff", "staff")
    payload = client.get("/api/me").get_json()

    assert payload["user"]["username"] == "staff"
    assert payload["user"]["role"] == "user"
    assert payload["permissions"]["can_manage_items"] is True
    assert payload["permissions"]["can_clear_all"] is False


def test_logout(client) -> None:
    _login(client)

    assert client.post("/logout").status_code == 204
    assert client.get("/api/stock").status_code == 401


def test_list_stock_returns_seeded_catalog(client) -> None:
    _login(client)

    payload = client.get("/api/stock").get_json()

    assert set(payload["items"]) == {"products", "mobilization", "services"}
    assert payload["currency_rate"] == 130.0
    names = [item["name"] for item in payload["items"]["mobilization"]]
    assert "Freight Charges" in names
    expected_total = sum(
        item["priceKsh"] * item["quantity"]
        for items in payload["items"].values()
        for item in items
    )
    assert payload["total_value"] == pytest.approx(expected_total)
    assert payload["low_stock_count"] == sum(
        1 for items in payload["items"].values() for item in items if item["low_stock"]
    )


def test_list_stock_filters(client) -> None:
    _login(client)

    payload = client.get("/api/stock?category=services&q=solar").get_json()

    assert list(payload["items"]) == ["services"]
    assert payload["items"]["services"]
    assert all("solar" in item["name"].lower() for item in payload["items"]["services"])
    assert client.get("/api/stock?category=tools").status_code == 404


def test_add_item_syncs_prices_and_resets_draft(client) -> None:
    _login(client)
    client.put("/api/draft", json={"name": "Core Router", "active_category": "services"})

    response = client.post(
        "/api/stock/products",
        json={"name": "Core Router", "quantity": 2, "price_ksh": 1300},
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["outcome"] == "created"
    assert body["item"]["priceUSD"] == 10
    assert body["item"]["id"].startswith("P")
    assert "Added Core Router" in _messages(client)
    draft = client.get("/api/draft").get_json()
    assert draft["name"] == ""
    assert draft["active_category"] == "products"


def test_add_item_merges_by_name(client) -> None:
    _login(client)

    response = client.post("/api/stock/mobilization", json={"name": " freight charges ", "quantity": 2})

    assert response.status_code == 200
    body = response.get_json()
    assert body["outcome"] == "merged"
    assert body["item"]["name"] == "Freight Charges"
    assert body["item"]["quantity"] == 3
    assert body["item"]["priceKsh"] == 5000
    assert "Updated quantity of Freight Charges" in _messages(client)


def test_add_item_rejects_blank_name(client) -> None:
    _login(client)
    before = client.get("/api/stock").get_json()

    response = client.post("/api/stock/products", json={"name": "   ", "quantity": 1})

    assert response.status_code == 400
    assert response.get_json()["code"] == "validation_error"
    notifications = client.get("/api/notifications").get_json()
    assert notifications == [{"category": "warning", "message": "Please enter a name."}]
    assert client.get("/api/stock").get_json() == before


def test_add_item_unknown_category(client) -> None:
    _login(client)
    assert client.post("/api/stock/tools", json={"name": "Drill"}).status_code == 404


def test_update_item(client) -> None:
    _login(client)
    target = client.get("/api/stock?category=products").get_json()["items"]["products"][0]

    response = client.put(
        f"/api/stock/products/{target['id']}",
        json={"quantity": 7, "description": "  "},
    )

    body = response.get_json()
    assert body["updated"] is True
    assert body["item"]["quantity"] == 7
    assert body["item"]["description"] is None
    assert body["item"]["name"] == target["name"]


def test_update_missing_item_is_a_no_op(client) -> None:
    _login(client)

    response = client.put("/api/stock/products/P0000", json={"quantity": 7})

    assert response.status_code == 200
    assert response.get_json() == {"updated": False, "item": None}


def test_update_rejects_invalid_fields(client) -> None:
    _login(client)
    target = client.get("/api/stock?category=services").get_json()["items"]["services"][0]

    assert client.put(f"/api/stock/services/{target['id']}", json={"name": ""}).status_code == 400
    assert client.put(f"/api/stock/services/{target['id']}", json={"quantity": -2}).status_code == 400


def test_delete_requires_confirmation(client) -> None:
    _login(client)
    target = client.get("/api/stock?category=products").get_json()["items"]["products"][0]
    url = f"/api/stock/products/{target['id']}"

    unconfirmed = client.delete(url)
    assert unconfirmed.status_code == 409
    assert unconfirmed.get_json()["code"] == "confirmation_required"

    assert client.delete(url, json={"confirm": True}).get_json() == {"removed": True}
    assert client.delete(f"{url}?confirm=1").get_json() == {"removed": False}
    assert "Item deleted" in _messages(client)


def test_clear_is_admin_only_and_confirmed(client) -> None:
    _login(client, "staff", "staff")
    assert client.post("/api/stock/clear", json={"confirm": True}).status_code == 403
    client.post("/logout")

    _login(client)
    client.put("/api/currency-rate", json={"rate": 145})
    assert client.post("/api/stock/clear").status_code == 409

    response = client.post("/api/stock/clear", json={"confirm": True})

    assert response.get_json() == {"cleared": True, "currency_rate": 130.0}
    payload = client.get("/api/stock").get_json()
    assert all(items == [] for items in payload["items"].values())
    assert payload["total_value"] == 0


def test_sample_reseeds_catalog(client) -> None:
    _login(client, "staff", "staff")
    assert client.post("/api/stock/sample").status_code == 403
    client.post("/logout")

    _login(client)
    client.post("/api/stock/clear", json={"confirm": True})
    response = client.post("/api/stock/sample")

    assert response.status_code == 200
    assert response.get_json()["total_value"] > 0
    assert "Sample stock seeded" in _messages(client)


def test_export_downloads_csv(client) -> None:
    _login(client)

    response = client.get("/api/stock/export")

    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    disposition = response.headers["Content-Disposition"]
    assert disposition.startswith("attachment; filename=konsut_stock_")
    assert disposition.endswith(".csv")
    lines = response.get_data(as_text=True).splitlines()
    assert lines[0] == "Category,Name,Quantity,PriceKsh,PriceUSD,Description"
    assert lines[1].startswith('"products",')


def test_import_previews_then_appends(client) -> None:
    _login(client)
    before = client.get("/api/stock").get_json()["items"]
    text = 'Category,Name,Quantity\n"products","Router",2,5000,40,"desc"\n\nmob,Crane Hire,1'

    preview = client.post("/api/stock/import", json={"text": text})
    assert preview.status_code == 409
    assert preview.get_json()["count"] == 2
    assert preview.get_json()["skipped"] == 1
    assert client.get("/api/stock").get_json()["items"] == before

    committed = client.post("/api/stock/import", json={"text": text, "confirm": True})

    assert committed.get_json() == {"count": 2, "skipped": 1}
    after = client.get("/api/stock").get_json()["items"]
    assert len(after["products"]) == len(before["products"]) + 1
    assert len(after["mobilization"]) == len(before["mobilization"]) + 1
    assert "Imported 2 items" in _messages(client)


def test_import_accepts_file_upload(client) -> None:
    _login(client)
    data = {
        "file": (BytesIO('\ufeff"services","Wiring",3,900,7,""'.encode("utf-8")), "stock.csv"),
        "confirm": "true",
    }

    response = client.post("/api/stock/import", data=data, content_type="multipart/form-data")

    assert response.get_json() == {"count": 1, "skipped": 0}
    names = [item["name"] for item in client.get("/api/stock").get_json()["items"]["services"]]
    assert names[-1] == "Wiring"


def test_import_rejects_empty_input(client) -> None:
    _login(client)

    empty = client.post("/api/stock/import", json={"text": "Category,Name\n"})
    assert empty.status_code == 422
    assert empty.get_json()["count"] == 0

    missing = client.post("/api/stock/import", data="   ", content_type="text/csv")
    assert missing.status_code == 400


def test_currency_rate_round_trip(client, settings: Settings) -> None:
    _login(client)

    assert client.get("/api/currency-rate").get_json() == {"rate": 130.0}
    assert client.put("/api/currency-rate", json={"rate": "140"}).get_json() == {"rate": 140.0}
    invalid = client.put("/api/currency-rate", json={"rate": 0})
    assert invalid.status_code == 400
    assert client.get("/api/currency-rate").get_json() == {"rate": 140.0}

    restarted = create_app(settings)
    assert restarted.extensions["konsut_stock"].currency_rate == 140.0


def test_convert_uses_current_rate(client) -> None:
    _login(client)

    assert client.post("/api/currency/convert", json={"price_ksh": 5000}).get_json() == {
        "price_ksh": 5000,
        "price_usd": 38.46,
    }
    assert client.post("/api/currency/convert", json={"price_usd": 10}).get_json() == {
        "price_usd": 10,
        "price_ksh": 1300,
    }


def test_draft_endpoints(client) -> None:
    _login(client)

    saved = client.put(
        "/api/draft",
        json={"name": "Half", "price_usd": 10, "active_category": "mobilization"},
    ).get_json()

    assert saved["price_ksh"] == 1300
    assert saved["active_category"] == "mobilization"
    assert client.get("/api/draft").get_json() == saved

    updated = client.put("/api/draft", json={"quantity": 4}).get_json()
    assert updated["name"] == "Half"
    assert updated["quantity"] == 4

    reset = client.delete("/api/draft").get_json()
    assert reset["name"] == ""
    assert reset["active_category"] == "products"


def test_update_single_price_keeps_other_currency_in_sync(client) -> None:
    _login(client)
    created = client.post(
        "/api/stock/products", json={"name": "Widget", "quantity": 1, "price_ksh": 1300}
    ).get_json()["item"]
    url = f"/api/stock/products/{created['id']}"

    by_ksh = client.put(url, json={"price_ksh": 2600}).get_json()["item"]
    assert (by_ksh["priceKsh"], by_ksh["priceUSD"]) == (2600, 20)

    by_usd = client.put(url, json={"price_usd": 5}).get_json()["item"]
    assert (by_usd["priceKsh"], by_usd["priceUSD"]) == (650, 5)

    both = client.put(url, json={"price_ksh": 1000, "price_usd": 9}).get_json()["item"]
    assert (both["priceKsh"], both["priceUSD"]) == (1000, 9)


def test_items_without_usd_price_are_listed_with_derived_price(settings: Settings) -> None:
    kv = MemoryKeyValueStore()
    kv.write_text(
        StorageKeys.STOCK,
        json.dumps(
            {
                "products": [
                    {"id": "P1234", "name": "Router", "quantity": 2, "priceKsh": 5000},
                ],
                "mobilization": [],
                "services": [],
            }
        ),
    )
    app = create_app(settings, kv=kv)
    app.config.update(TESTING=True)

    with app.test_client() as client:
        _login(client)
        router = client.get("/api/stock?category=products").get_json()["items"]["products"][0]

    assert router["priceUSD"] == 38.46

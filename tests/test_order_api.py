from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from storefront.data.models import OrderModel, PaymentModel
from storefront.services.order_service import OrderService


def create_order(client, user_id=1, details=None, total=None):
    details = details or [{"variantId": 1, "quantity": 2, "price": "100000"}]
    if total is None:
        total = sum(Decimal(d["price"]) * d["quantity"] for d in details)
    return client.post(
        "/order/create",
        params={"user_id": user_id},
        json={"totalPrice": str(total), "details": details},
    )


def test_create_order_freezes_lines(client, variants):
    resp = create_order(client)
    assert resp.status_code == 201
    order = resp.json()
    assert order["status"] == "pending"
    assert Decimal(order["totalPrice"]) == Decimal("200000")

    view = client.get(f"/orders/{order['id']}", params={"user_id": 1}).json()
    assert len(view["details"]) == 1
    assert view["details"][0]["quantity"] == 2
    assert Decimal(view["details"][0]["price"]) == Decimal("100000")
    assert view["payment"] is None


def test_total_is_sum_of_lines(client, variants):
    details = [
        {"variantId": 1, "quantity": 3, "price": "100000"},
        {"variantId": 3, "quantity": 2, "price": "49500.50"},
    ]
    resp = create_order(client, details=details)
    assert resp.status_code == 201
    assert Decimal(resp.json()["totalPrice"]) == Decimal("399001.00")


def test_mismatched_total_rejected(client, variants):
    resp = create_order(client, total=Decimal("1"))
    assert resp.status_code == 400
    assert "does not match" in resp.json()["detail"]


def test_empty_details_rejected(client, variants):
    resp = client.post("/order/create", params={"user_id": 1}, json={"totalPrice": "0", "details": []})
    assert resp.status_code == 400


def test_stock_checked_at_boundary(client, variants):
    resp = create_order(client, details=[{"variantId": 2, "quantity": 3, "price": "250000"}])
    assert resp.status_code == 400
    assert "stock" in resp.json()["detail"]


def test_unknown_variant_rejected(client, variants):
    resp = create_order(client, details=[{"variantId": 404, "quantity": 1, "price": "1"}])
    assert resp.status_code == 400


def test_failed_order_leaves_nothing(client, variants, db):
    create_order(client, details=[{"variantId": 2, "quantity": 9, "price": "250000"}])
    assert db.query(OrderModel).count() == 0


def test_later_price_change_does_not_touch_history(client, variants, db):
    order_id = create_order(client).json()["id"]

    variant = variants[1]
    variant.price = Decimal("999999")
    db.commit()

    view = client.get(f"/orders/{order_id}", params={"user_id": 1}).json()
    assert Decimal(view["details"][0]["price"]) == Decimal("100000")
    assert Decimal(view["order"]["totalPrice"]) == Decimal("200000")


def test_order_is_private(client, variants):
    order_id = create_order(client).json()["id"]
    assert client.get(f"/orders/{order_id}", params={"user_id": 2}).status_code == 403
    assert client.get("/orders/999", params={"user_id": 1}).status_code == 404


def test_list_orders_newest_first(client, variants):
    first = create_order(client).json()["id"]
    second = create_order(client, details=[{"variantId": 3, "quantity": 1, "price": "49500.50"}]).json()["id"]
    create_order(client, user_id=2)

    orders = client.get("/orders", params={"user_id": 1}).json()
    assert [o["order"]["id"] for o in orders] == [second, first]


class TestAdminListing:
    def test_every_users_orders_with_payment(self, client, variants):
        paid = create_order(client).json()
        other = create_order(client, user_id=2).json()
        client.post("/payment/create", params={"user_id": 1}, json={"orderId": paid["id"], "amount": paid["totalPrice"]})

        orders = client.get("/order/all").json()

        assert [o["order"]["id"] for o in orders] == [other["id"], paid["id"]]
        by_id = {o["order"]["id"]: o for o in orders}
        assert by_id[paid["id"]]["payment"]["status"] == "pending"
        assert by_id[other["id"]]["payment"] is None
        assert by_id[other["id"]]["order"]["userId"] == 2
        assert len(by_id[paid["id"]]["details"]) == 1

    def test_filter_by_status(self, client, variants):
        kept = create_order(client).json()
        dropped = create_order(client).json()
        client.post(f"/orders/{dropped['id']}/cancel", params={"user_id": 1})

        cancelled = client.get("/order/all", params={"status": "Cancelled"}).json()
        pending = client.get("/order/all", params={"status": "pending"}).json()

        assert [o["order"]["id"] for o in cancelled] == [dropped["id"]]
        assert [o["order"]["id"] for o in pending] == [kept["id"]]

    def test_unknown_status_filter(self, client):
        assert client.get("/order/all", params={"status": "lost"}).status_code == 400


def test_status_walks_the_lifecycle(client, variants):
    order_id = create_order(client).json()["id"]
    for status in ("processing", "shipped", "delivered"):
        resp = client.patch(f"/orders/{order_id}/status", json={"status": status})
        assert resp.status_code == 200
        assert resp.json()["status"] == status


def test_illegal_transition_rejected(client, variants):
    order_id = create_order(client).json()["id"]
    resp = client.patch(f"/orders/{order_id}/status", json={"status": "delivered"})
    assert resp.status_code == 409


def test_unknown_status_rejected(client, variants):
    order_id = create_order(client).json()["id"]
    resp = client.patch(f"/orders/{order_id}/status", json={"status": "lost"})
    assert resp.status_code == 400


def test_cancel_fails_pending_payment(client, variants, db):
    order_id = create_order(client).json()["id"]
    client.post("/payment/create", params={"user_id": 1}, json={"orderId": order_id, "amount": "200000"})

    resp = client.post(f"/orders/{order_id}/cancel", params={"user_id": 1})
    assert resp.status_code == 200
    assert resp.json()["order"]["status"] == "cancelled"
    assert resp.json()["payment"]["status"] == "failed"


def test_cannot_cancel_shipped_order(client, variants):
    order_id = create_order(client).json()["id"]
    client.patch(f"/orders/{order_id}/status", json={"status": "processing"})
    client.patch(f"/orders/{order_id}/status", json={"status": "shipped"})
    assert client.post(f"/orders/{order_id}/cancel", params={"user_id": 1}).status_code == 409


def test_legacy_status_still_renders(client, variants, db):
    order_id = create_order(client).json()["id"]
    db.get(OrderModel, order_id).status = "Weird"
    db.commit()

    view = client.get(f"/orders/{order_id}", params={"user_id": 1})
    assert view.status_code == 200
    assert view.json()["order"]["status"] == "Weird"


class TestOrphanSweep:
    def _age(self, db, order_id, hours):
        db.get(OrderModel, order_id).created_at = datetime.now(timezone.utc) - timedelta(hours=hours)
        db.commit()

    def test_only_stale_orders_without_payment_are_cancelled(self, client, variants, db):
        stale = create_order(client).json()["id"]
        fresh = create_order(client).json()["id"]
        paid = create_order(client).json()["id"]
        db.add(PaymentModel(order_id=paid, user_id=1, amount=Decimal("200000"), status="pending"))
        db.commit()
        self._age(db, stale, 2)
        self._age(db, paid, 2)

        cancelled = OrderService(db).sweep_orphaned_orders(ttl_seconds=3600)

        assert cancelled == [stale]
        db.expire_all()
        assert db.get(OrderModel, stale).status == "cancelled"
        assert db.get(OrderModel, fresh).status == "pending"
        assert db.get(OrderModel, paid).status == "pending"

    def test_celery_task(self, client, variants, db):
        from storefront.tasks.sweep import sweep_orphaned_orders_task

        stale = create_order(client).json()["id"]
        self._age(db, stale, 5)

        result = sweep_orphaned_orders_task.apply(kwargs={"ttl_seconds": 3600}).get()
        assert result == [stale]


@pytest.mark.parametrize("raw", ["Pending", "PENDING"])
def test_capitalised_legacy_status_can_still_move(client, variants, db, raw):
    order_id = create_order(client).json()["id"]
    db.get(OrderModel, order_id).status = raw
    db.commit()
    resp = client.patch(f"/orders/{order_id}/status", json={"status": "processing"})
    assert resp.status_code == 200

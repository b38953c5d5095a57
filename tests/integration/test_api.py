"""Integration tests for API endpoints"""

import uuid
import pytest
from typing import Any, Dict
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


def create_sale(client: TestClient, payload: Dict[str, Any]) -> Dict[str, Any]:
    response = client.post("/v1/sales", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health_endpoint(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Request-ID" in response.headers


def test_metrics_endpoint(client: TestClient):
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "hire_purchase_sales_created_total" in response.text


# --- Sales ---


def test_create_sale_generates_schedule(client: TestClient, sale_payload):
    """10,000.00 financed over 3 months: ceil per line, due on the 5th"""
    data = create_sale(client, sale_payload)

    assert data["status"] == "active"
    assert [i["amount_cents"] for i in data["installments"]] == [333_334, 333_334, 333_334]
    assert [i["due_date"] for i in data["installments"]] == ["2024-07-05", "2024-08-05", "2024-09-05"]
    assert data["remaining_installment_cents"] == 1_000_002
    assert data["monthly_payment_cents"] == 333_334
    assert data["total_profit_cents"] == 380_000
    assert data["current_profit_cents"] == 200_000 - 820_000
    assert data["completed_at"] is None


def test_create_sale_with_installment_down_payment(client: TestClient, sale_payload):
    sale_payload.update(down_payment_installment=True, down_payment_months=3)

    data = create_sale(client, sale_payload)

    assert data["down_payment_months"] == 3
    assert data["down_payment_monthly_cents"] == 66_667


def test_create_sale_with_explicit_schedule(client: TestClient, sale_payload):
    sale_payload["installments"] = [
        {"installment_number": 1, "due_date": "2024-05-05", "amount_cents": 500_000, "paid": True},
        {"installment_number": 2, "due_date": "2024-07-05", "amount_cents": 500_000},
    ]

    data = create_sale(client, sale_payload)

    assert data["installment_months"] == 2
    assert data["installments"][0]["paid_date"] == "2024-06-15"
    assert data["remaining_installment_cents"] == 500_000
    assert data["current_profit_cents"] == 500_000 + 200_000 - 820_000


@pytest.mark.parametrize(
    "field, value",
    [("phone", ""), ("name", ""), ("product_model", ""), ("selling_price_cents", 0), ("payment_due_day", 32)],
)
def test_create_sale_rejects_invalid_input(client: TestClient, sale_payload, field, value):
    sale_payload[field] = value

    response = client.post("/v1/sales", json=sale_payload)

    assert response.status_code == 422
    assert client.get("/v1/sales").json() == []


def test_create_sale_rejects_gapped_schedule(client: TestClient, sale_payload):
    sale_payload["installments"] = [
        {"installment_number": 1, "due_date": "2024-07-05", "amount_cents": 500_000},
        {"installment_number": 3, "due_date": "2024-09-05", "amount_cents": 500_000},
    ]

    response = client.post("/v1/sales", json=sale_payload)

    assert response.status_code == 400
    assert client.get("/v1/sales").json() == []


def test_create_sale_with_unknown_card(client: TestClient, sale_payload):
    sale_payload["credit_cards"] = [{"credit_card_id": str(uuid.uuid4()), "amount_cents": 500, "installments": 1}]

    response = client.post("/v1/sales", json=sale_payload)

    assert response.status_code == 404
    assert client.get("/v1/sales").json() == []


def test_create_sale_rejects_card_remaining_above_amount(client: TestClient, sale_payload, credit_card):
    sale_payload["credit_cards"] = [
        {"credit_card_id": credit_card["id"], "amount_cents": 500, "installments": 1, "remaining_cents": 501}
    ]

    response = client.post("/v1/sales", json=sale_payload)

    assert response.status_code == 422
    assert client.get("/v1/sales").json() == []


def test_overdue_sale_and_due_window(client: TestClient, sale_payload):
    sale_payload.update(
        selling_price_cents=90_000,
        customer_down_payment_cents=0,
        cost_price_cents=50_000,
        cost_bonus_cents=0,
        payment_due_day=10,
        start_date="2024-04-01",
    )
    sale = create_sale(client, sale_payload)

    assert sale["status"] == "overdue"

    response = client.get(f"/v1/sales/{sale['id']}/due")
    assert response.status_code == 200
    data = response.json()
    assert data["as_of"] == "2024-06-15"
    assert data["overdue_cents"] == 60_000
    assert data["due_soon_cents"] == 0
    assert data["later_cents"] == 30_000
    assert data["due_this_month_cents"] == 30_000
    assert [l["bucket"] for l in data["lines"]] == ["overdue", "overdue", "later"]


def test_list_sales_filters_by_status(client: TestClient, sale_payload):
    create_sale(client, sale_payload)
    sale_payload["start_date"] = "2024-01-01"
    create_sale(client, sale_payload)

    assert len(client.get("/v1/sales").json()) == 2
    assert len(client.get("/v1/sales?status=overdue").json()) == 1
    assert len(client.get("/v1/sales?status=completed").json()) == 0


def test_get_sale_not_found(client: TestClient):
    response = client.get(f"/v1/sales/{uuid.uuid4()}")
    assert response.status_code == 404


def test_get_sale_invalid_id(client: TestClient):
    response = client.get("/v1/sales/not-a-uuid")
    assert response.status_code == 400


# --- Installment payments ---


def test_pay_installment_updates_derived_fields(client: TestClient, sale_payload):
    sale = create_sale(client, sale_payload)
    first = sale["installments"][0]

    response = client.post(f"/v1/sales/{sale['id']}/pay", json={"installment_id": first["id"]})

    assert response.status_code == 200
    data = response.json()
    assert data["paid_date"] == "2024-06-15"
    assert data["status"] == "active"
    assert data["remaining_installment_cents"] == 666_668
    assert data["current_profit_cents"] == 333_334 + 200_000 - 820_000

    stored = client.get(f"/v1/sales/{sale['id']}").json()
    assert stored["installments"][0]["paid"] is True
    assert stored["remaining_installment_cents"] == 666_668


def test_pay_same_installment_twice_is_rejected(client: TestClient, sale_payload):
    sale = create_sale(client, sale_payload)
    first = sale["installments"][0]["id"]

    assert client.post(f"/v1/sales/{sale['id']}/pay", json={"installment_id": first}).status_code == 200
    response = client.post(f"/v1/sales/{sale['id']}/pay", json={"installment_id": first})

    assert response.status_code == 409
    stored = client.get(f"/v1/sales/{sale['id']}").json()
    assert stored["remaining_installment_cents"] == 666_668


def test_paying_every_installment_completes_sale(client: TestClient, sale_payload):
    sale = create_sale(client, sale_payload)

    for installment in sale["installments"]:
        response = client.post(
            f"/v1/sales/{sale['id']}/pay",
            json={"installment_id": installment["id"], "paid_date": "2024-06-14"},
        )
        assert response.status_code == 200

    data = response.json()
    assert data["status"] == "completed"
    assert data["remaining_installment_cents"] == 0
    assert data["completed_at"] == "2024-06-15"
    assert data["current_profit_cents"] == 1_000_002 + 200_000 - 820_000

    stored = client.get(f"/v1/sales/{sale['id']}").json()
    assert [i["paid_date"] for i in stored["installments"]] == ["2024-06-14"] * 3


def test_paying_overdue_line_clears_overdue(client: TestClient, sale_payload):
    sale_payload["installments"] = [
        {"installment_number": 1, "due_date": "2024-06-05", "amount_cents": 500_000},
        {"installment_number": 2, "due_date": "2024-07-05", "amount_cents": 500_000},
    ]
    sale = create_sale(client, sale_payload)
    assert sale["status"] == "overdue"

    response = client.post(f"/v1/sales/{sale['id']}/pay", json={"installment_id": sale["installments"][0]["id"]})

    assert response.json()["status"] == "active"


def test_pay_installment_of_another_sale(client: TestClient, sale_payload):
    sale_a = create_sale(client, sale_payload)
    sale_b = create_sale(client, sale_payload)

    response = client.post(
        f"/v1/sales/{sale_a['id']}/pay",
        json={"installment_id": sale_b["installments"][0]["id"]},
    )

    assert response.status_code == 404


def test_pay_unknown_sale(client: TestClient):
    response = client.post(f"/v1/sales/{uuid.uuid4()}/pay", json={"installment_id": str(uuid.uuid4())})
    assert response.status_code == 404


def test_pay_requires_installment_id(client: TestClient, sale_payload):
    sale = create_sale(client, sale_payload)
    response = client.post(f"/v1/sales/{sale['id']}/pay", json={})
    assert response.status_code == 422


# --- Replace / delete ---


def test_replace_sale_recreates_schedule(client: TestClient, sale_payload, credit_card):
    sale_payload["credit_cards"] = [{"credit_card_id": credit_card["id"], "amount_cents": 600, "installments": 3}]
    sale = create_sale(client, sale_payload)
    old_ids = {i["id"] for i in sale["installments"]}

    sale_payload.update(installment_months=2, credit_cards=[])
    response = client.put(f"/v1/sales/{sale['id']}", json=sale_payload)

    assert response.status_code == 200
    data = response.json()
    assert [i["amount_cents"] for i in data["installments"]] == [500_000, 500_000]
    assert not old_ids & {i["id"] for i in data["installments"]}
    assert data["credit_cards"] == []
    assert data["remaining_installment_cents"] == 1_000_000

    card = client.get(f"/v1/credit-cards/{credit_card['id']}").json()
    assert card["usages"] == []


def test_replace_sale_with_manual_completion(client: TestClient, sale_payload):
    sale = create_sale(client, sale_payload)
    sale_payload.update(status="completed", completed_at="2024-06-01")

    response = client.put(f"/v1/sales/{sale['id']}", json=sale_payload)

    data = response.json()
    assert data["status"] == "completed"
    assert data["remaining_installment_cents"] == 0
    assert data["completed_at"] == "2024-06-01"


def test_replace_unknown_sale(client: TestClient, sale_payload):
    response = client.put(f"/v1/sales/{uuid.uuid4()}", json=sale_payload)
    assert response.status_code == 404


def test_replace_sale_failure_keeps_old_schedule(client: TestClient, sale_payload):
    """Old lines are removed before new usages are checked; a failure must restore them"""
    sale = create_sale(client, sale_payload)
    first = sale["installments"][0]["id"]
    client.post(f"/v1/sales/{sale['id']}/pay", json={"installment_id": first})

    sale_payload.update(
        installment_months=2,
        credit_cards=[{"credit_card_id": str(uuid.uuid4()), "amount_cents": 500, "installments": 1}],
    )
    response = client.put(f"/v1/sales/{sale['id']}", json=sale_payload)

    assert response.status_code == 404
    stored = client.get(f"/v1/sales/{sale['id']}").json()
    assert [i["id"] for i in stored["installments"]] == [i["id"] for i in sale["installments"]]
    assert [i["paid"] for i in stored["installments"]] == [True, False, False]
    assert stored["remaining_installment_cents"] == 666_668
    assert stored["installment_months"] == 3


def test_delete_sale(client: TestClient, sale_payload):
    sale = create_sale(client, sale_payload)

    assert client.delete(f"/v1/sales/{sale['id']}").status_code == 200
    assert client.get(f"/v1/sales/{sale['id']}").status_code == 404
    assert client.delete(f"/v1/sales/{sale['id']}").status_code == 404


# --- Credit cards ---


def test_create_credit_card(credit_card):
    assert credit_card["credit_limit_cents"] == 5_000_000
    assert credit_card["available_balance_cents"] == 5_000_000
    assert credit_card["days_until_due"] == 10
    assert credit_card["due_soon"] is False


def test_create_credit_card_validates_due_day(client: TestClient):
    response = client.post("/v1/credit-cards", json={"name": "Bad", "statement_due_day": 0})
    assert response.status_code == 422


def test_card_usage_generates_payment_schedule(client: TestClient, sale_payload, credit_card):
    sale_payload["credit_cards"] = [{"credit_card_id": credit_card["id"], "amount_cents": 1000, "installments": 3}]

    sale = create_sale(client, sale_payload)

    usage = sale["credit_cards"][0]
    assert usage["monthly_payment_cents"] == 334
    assert usage["remaining_cents"] == 1000
    assert [p["due_date"] for p in usage["payments"]] == ["2024-07-15", "2024-08-15", "2024-09-15"]


def test_card_repayment_allocates_oldest_first(client: TestClient, sale_payload, credit_card):
    """Usages [500, 300] paying 700: first settled, second left with 100"""
    sale_payload["credit_cards"] = [
        {"credit_card_id": credit_card["id"], "amount_cents": 500, "installments": 2},
        {"credit_card_id": credit_card["id"], "amount_cents": 300, "installments": 3},
    ]
    sale = create_sale(client, sale_payload)

    response = client.post(
        f"/v1/credit-cards/{credit_card['id']}/pay",
        json={"amount_cents": 700, "payment_date": "2024-06-15"},
    )

    assert response.status_code == 200
    data = response.json()
    assert [(d["deducted_cents"], d["remaining_cents"]) for d in data["deductions"]] == [(500, 0), (200, 100)]
    assert data["total_paid_cents"] == 700
    assert data["remaining_balance_cents"] == 100
    assert data["payment"]["unallocated_cents"] == 0

    card = client.get(f"/v1/credit-cards/{credit_card['id']}").json()
    assert [u["remaining_cents"] for u in card["usages"]] == [0, 100]
    assert {u["sale_id"] for u in card["usages"]} == {sale["id"]}
    assert card["usages"][0]["sale_name"] == "Somchai Jaidee"
    assert card["usages"][0]["product_model"] == "iPhone 15 Pro"
    assert card["usages"][0]["sale_status"] == "active"
    assert card["total_used_cents"] == 800
    assert card["total_remaining_cents"] == 100
    assert card["total_card_paid_cents"] == 700
    assert card["card_debt_cents"] == 100
    assert card["available_balance_cents"] == 5_000_000 - 100


def test_card_repayment_leftover_is_discarded(client: TestClient, sale_payload, credit_card):
    sale_payload["credit_cards"] = [
        {"credit_card_id": credit_card["id"], "amount_cents": 500, "installments": 2},
        {"credit_card_id": credit_card["id"], "amount_cents": 300, "installments": 3},
    ]
    create_sale(client, sale_payload)
    client.post(f"/v1/credit-cards/{credit_card['id']}/pay", json={"amount_cents": 700, "payment_date": "2024-06-15"})

    response = client.post(
        f"/v1/credit-cards/{credit_card['id']}/pay",
        json={"amount_cents": 200, "payment_date": "2024-06-16"},
    )

    data = response.json()
    assert [d["deducted_cents"] for d in data["deductions"]] == [100]
    assert data["payment"]["unallocated_cents"] == 100
    assert data["remaining_balance_cents"] == 0

    history = client.get(f"/v1/credit-cards/{credit_card['id']}/payments").json()
    assert [p["amount_cents"] for p in history] == [200, 700]


@pytest.mark.parametrize(
    "body",
    [{"amount_cents": 0, "payment_date": "2024-06-15"}, {"amount_cents": -5, "payment_date": "2024-06-15"}, {"amount_cents": 100}],
)
def test_card_repayment_rejects_invalid_input(client: TestClient, credit_card, body):
    response = client.post(f"/v1/credit-cards/{credit_card['id']}/pay", json=body)

    assert response.status_code == 422
    assert client.get(f"/v1/credit-cards/{credit_card['id']}/payments").json() == []


def test_card_repayment_unknown_card(client: TestClient):
    response = client.post(
        f"/v1/credit-cards/{uuid.uuid4()}/pay",
        json={"amount_cents": 100, "payment_date": "2024-06-15"},
    )
    assert response.status_code == 404


def test_update_credit_card(client: TestClient, credit_card):
    response = client.put(f"/v1/credit-cards/{credit_card['id']}", json={"statement_due_day": 17})

    assert response.status_code == 200
    data = response.json()
    assert data["statement_due_day"] == 17
    assert data["name"] == "KBank Platinum"
    assert data["due_soon"] is True


def test_delete_credit_card(client: TestClient, credit_card):
    assert client.delete(f"/v1/credit-cards/{credit_card['id']}").status_code == 200
    assert client.get(f"/v1/credit-cards/{credit_card['id']}").status_code == 404
    assert client.get("/v1/credit-cards").json() == []


# --- Dashboard ---


def test_dashboard_summary(client: TestClient, sale_payload):
    sale_payload.update(
        selling_price_cents=90_000,
        customer_down_payment_cents=0,
        cost_price_cents=50_000,
        cost_bonus_cents=0,
        payment_due_day=10,
        start_date="2024-04-01",
    )
    create_sale(client, sale_payload)  # Overdue, next line 36 days late

    sale_payload.update(
        name="Upcoming",
        selling_price_cents=60_000,
        cost_price_cents=40_000,
        installment_months=2,
        payment_due_day=20,
        start_date="2024-05-20",
    )
    upcoming = create_sale(client, sale_payload)  # Next line due 2024-06-20

    response = client.get("/v1/dashboard")

    assert response.status_code == 200
    data = response.json()
    assert data["total_sales_cents"] == 150_000
    assert data["total_cost_cents"] == 90_000
    assert data["total_collected_cents"] == 0
    assert data["total_remaining_cents"] == 150_000
    assert data["total_profit_cents"] == 60_000
    assert data["current_profit_cents"] == -90_000
    assert (data["active_customers"], data["overdue_customers"], data["completed_customers"]) == (1, 1, 0)
    assert [(p["sale_id"], p["days_until"]) for p in data["upcoming_payments"]] == [(upcoming["id"], 5)]

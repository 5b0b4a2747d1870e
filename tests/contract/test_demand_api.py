"""Contract tests for the service charge demand HTTP API."""

from datetime import date
from decimal import Decimal

from blockcharge.models import DemandStatus

BUILDING_ID = "bldg-1"


def generate(client, units=None, **body):
    payload = {"period": "Q1 2024", "ratePerArea": "2.5", **body}
    if units is not None:
        payload["units"] = units
    return client.post(f"/api/buildings/{BUILDING_ID}/demands", json=payload)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestGenerateEndpoint:
    """POST /api/buildings/{building_id}/demands"""

    def test_generate_inline_units(self, client):
        response = generate(client, units=[{"unitId": "u1", "unitNumber": "1A", "area": "850"}])

        assert response.status_code == 201
        body = response.json()
        assert len(body) == 1
        demand = body[0]
        assert demand["financialQuarterDisplayString"] == "Q1 2024"
        assert Decimal(demand["totalAmountDue"]) == Decimal("2125")
        assert Decimal(demand["outstandingAmount"]) == Decimal("2125")
        assert demand["status"] == "Issued"
        assert demand["dueDate"] == "2024-03-31"
        assert demand["paymentHistory"] == []
        assert demand["remindersConfig"] == {"reminderDays": [7, 3, 1], "maxReminders": 3}

    def test_generate_from_flats(self, client, flats):
        response = generate(client)

        assert response.status_code == 201
        assert sorted(d["flatNumber"] for d in response.json()) == ["1A", "1B", "2A"]

    def test_rerun_returns_empty(self, client, flats):
        generate(client)
        response = generate(client)

        assert response.status_code == 201
        assert response.json() == []

    def test_negative_rate(self, client):
        response = generate(client, units=[{"unitId": "u1", "unitNumber": "1A"}], ratePerArea="-1")

        assert response.status_code == 422
        assert response.json()["detail"]["error"]["code"] == "validation_error"

    def test_unsupported_penalty_type(self, client):
        response = generate(
            client,
            units=[{"unitId": "u1", "unitNumber": "1A"}],
            penaltyConfig={"type": "percentage", "flatAmount": "5"},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["error"]["code"] == "unsupported_penalty_type"


class TestDemandQueries:
    def test_get_demand(self, client, make_demand):
        demand = make_demand()

        response = client.get(f"/api/demands/{demand.id}")

        assert response.status_code == 200
        assert response.json()["flatNumber"] == "1A"
        assert response.json()["penaltyConfig"]["gracePeriodDays"] == 7

    def test_get_missing_demand(self, client):
        response = client.get("/api/demands/999")

        assert response.status_code == 404
        assert response.json()["detail"] == {
            "error": {
                "code": "demand_not_found",
                "message": "Service charge demand 999 not found",
                "retryable": False,
            }
        }

    def test_list_by_status(self, client, make_demand):
        make_demand(flat_number="1A")
        make_demand(flat_number="1B", status=DemandStatus.OVERDUE)

        response = client.get(f"/api/buildings/{BUILDING_ID}/demands", params={"status": "Overdue"})

        assert response.status_code == 200
        assert [d["flatNumber"] for d in response.json()] == ["1B"]

    def test_list_all(self, client, make_demand):
        make_demand(flat_number="1A")
        make_demand(flat_number="1B")

        response = client.get(f"/api/buildings/{BUILDING_ID}/demands")

        assert len(response.json()) == 2


class TestPaymentEndpoint:
    """POST /api/demands/{demand_id}/payments"""

    def pay(self, client, demand_id, amount, headers=None):
        return client.post(
            f"/api/demands/{demand_id}/payments",
            json={"amount": amount, "paymentDate": "2024-01-05", "method": "Bank Transfer"},
            headers=headers or {},
        )

    def test_partial_payment(self, client, make_demand):
        demand = make_demand()

        response = self.pay(client, demand.id, "400")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "Partially Paid"
        assert Decimal(body["amountPaid"]) == Decimal("400")
        assert Decimal(body["outstandingAmount"]) == Decimal("600")
        assert body["paymentHistory"][0]["method"] == "Bank Transfer"
        assert body["paymentHistory"][0]["paymentDate"] == "2024-01-05"

    def test_idempotency_key_header(self, client, make_demand):
        demand = make_demand()
        headers = {"Idempotency-Key": "pay-1"}

        self.pay(client, demand.id, "400", headers)
        response = self.pay(client, demand.id, "400", headers)

        assert Decimal(response.json()["amountPaid"]) == Decimal("400")
        assert len(response.json()["paymentHistory"]) == 1

    def test_zero_amount(self, client, make_demand):
        demand = make_demand()

        response = self.pay(client, demand.id, "0")

        assert response.status_code == 422
        assert response.json()["detail"]["error"]["code"] == "validation_error"

    def test_unknown_method_rejected_by_schema(self, client, make_demand):
        demand = make_demand()

        response = client.post(
            f"/api/demands/{demand.id}/payments",
            json={"amount": "10", "paymentDate": "2024-01-05", "method": "Barter"},
        )

        assert response.status_code == 422

    def test_missing_demand(self, client):
        assert self.pay(client, 999, "10").status_code == 404

    def test_payment_history_endpoint(self, client, make_demand):
        demand = make_demand()
        self.pay(client, demand.id, "100")
        self.pay(client, demand.id, "50")

        response = client.get(f"/api/demands/{demand.id}/payments")

        assert response.status_code == 200
        assert [Decimal(p["amount"]) for p in response.json()] == [Decimal("100"), Decimal("50")]


class TestPenaltyAndReminderEndpoints:
    def test_sweep(self, client, make_demand):
        demand = make_demand()

        response = client.post(
            f"/api/buildings/{BUILDING_ID}/penalties/sweep",
            json={"now": "2024-01-10T06:00:00+00:00"},
        )

        assert response.status_code == 200
        assert response.json() == {"buildingId": BUILDING_ID, "penalised": 1}
        body = client.get(f"/api/demands/{demand.id}").json()
        assert body["status"] == "Overdue"
        assert Decimal(body["penaltyAmountApplied"]) == Decimal("50")
        assert body["penaltyAppliedAt"] is not None

    def test_sweep_without_body(self, client, make_demand):
        make_demand(due_date=date(2999, 1, 1))

        response = client.post(f"/api/buildings/{BUILDING_ID}/penalties/sweep")

        assert response.status_code == 200
        assert response.json()["penalised"] == 0

    def test_reminder_cap(self, client, make_demand):
        demand = make_demand(max_reminders=2)

        for _ in range(4):
            response = client.post(f"/api/demands/{demand.id}/reminders")
            assert response.status_code == 200

        assert response.json()["remindersSent"] == 2
        assert response.json()["lastReminderSent"] is not None

    def test_reminder_missing_demand(self, client):
        assert client.post("/api/demands/999/reminders").status_code == 404

from tests.conftest import _auth_headers


async def _create_deal(client, user, price=1_000_000):
    response = await client.post("/deals/", headers=_auth_headers(user), json={
        "property_id": "PROP-7",
        "buyer_name": "Buyer Seven",
        "seller_name": "Seller Seven",
        "agreed_price": price,
    })
    assert response.status_code == 201
    return response.json()


class TestAuthApi:
    async def test_health_check(self, client):
        response = await client.get("/health_check/")
        assert response.status_code == 200
        assert response.json() == {"service_name": "Brokerage Ledger", "status": "healthy"}

    async def test_first_registration_is_admin(self, client):
        first = await client.post("/auth/register", json={"login": "owner", "password": "secret123"})
        second = await client.post("/auth/register", json={
            "login": "newbie", "password": "secret123", "role": "admin",
        })
        assert first.json()["role"] == "admin"
        assert second.json()["role"] == "agent"
        assert second.json()["token_type"] == "bearer"

    async def test_duplicate_login(self, client):
        await client.post("/auth/register", json={"login": "owner", "password": "secret123"})
        response = await client.post("/auth/register", json={"login": "owner", "password": "secret123"})
        assert response.status_code == 400

    async def test_login(self, client):
        await client.post("/auth/register", json={"login": "owner", "password": "secret123"})
        ok = await client.post("/auth/login", data={"username": "owner", "password": "secret123"})
        bad = await client.post("/auth/login", data={"username": "owner", "password": "wrong-one"})
        assert ok.status_code == 200
        assert ok.json()["access_token"]
        assert bad.status_code == 401

    async def test_token_required(self, client):
        response = await client.get("/deals/")
        assert response.status_code == 401

    async def test_me(self, client, agent):
        response = await client.get("/users/me", headers=_auth_headers(agent))
        assert response.json()["login"] == "ali_khan"


class TestLedgerApi:
    """End-to-end flow through deals, plans and payments."""

    async def test_deal_number(self, client, agent):
        deal = await _create_deal(client, agent)
        assert deal["deal_number"].startswith("DL-")
        assert deal["payment_state"] == "no-plan"
        assert deal["primary_agent_id"] == agent.id

    async def test_overpayment_returns_400(self, client, agent):
        deal = await _create_deal(client, agent)
        response = await client.post(f"/deals/{deal['id']}/payments", headers=_auth_headers(agent), json={
            "amount": 2_000_000, "paid_date": "2024-01-01", "payment_method": "cash",
        })
        assert response.status_code == 400
        assert response.json() == {"detail": "Payment amount cannot exceed remaining balance"}

        history = await client.get(f"/deals/{deal['id']}/payments", headers=_auth_headers(agent))
        assert history.json() == []

    async def test_plan_and_payments(self, client, agent):
        headers = _auth_headers(agent)
        deal = await _create_deal(client, agent)

        plan = await client.post(f"/deals/{deal['id']}/payment-plan", headers=headers, json={
            "down_payment_percentage": 30,
            "number_of_installments": 4,
            "frequency": "monthly",
            "down_payment_date": "2024-01-01",
            "first_installment_date": "2024-02-01",
        })
        assert plan.status_code == 201
        installments = plan.json()["installments"]
        assert [i["amount"] for i in installments] == [300000, 175000, 175000, 175000, 175000]

        paid = await client.post(f"/deals/{deal['id']}/payments", headers=headers, json={
            "amount": 300000,
            "paid_date": "2024-01-02",
            "payment_method": "bank-transfer",
            "installment_id": installments[0]["id"],
        })
        assert paid.status_code == 201
        assert paid.json()["payment_type"] == "down-payment"

        await client.post(f"/deals/{deal['id']}/payments", headers=headers, json={
            "amount": 1000, "paid_date": "2024-01-10", "payment_method": "cash",
        })
        history = (await client.get(f"/deals/{deal['id']}/payments", headers=headers)).json()
        assert [row["running_total"] for row in history] == [301000, 300000]

        balance = (await client.get(f"/deals/{deal['id']}/payments/balance", headers=headers)).json()
        assert balance["balance_remaining"] == 699000

        summary = (await client.get(
            f"/deals/{deal['id']}/payment-plan/summary",
            headers=headers,
            params={"as_of_date": "2024-01-15"},
        )).json()
        assert summary["paid_installment_count"] == 1
        assert summary["next_payment_due"]["due_date"] == "2024-02-01"

    async def test_plan_validation_message(self, client, agent):
        deal = await _create_deal(client, agent)
        response = await client.post(f"/deals/{deal['id']}/payment-plan", headers=_auth_headers(agent), json={
            "down_payment_percentage": 30,
            "number_of_installments": 4,
            "first_installment_date": "2024-02-01",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Please select down payment date"

    async def test_overdue_listing(self, client, agent):
        headers = _auth_headers(agent)
        deal = await _create_deal(client, agent)
        await client.post(f"/deals/{deal['id']}/payment-plan", headers=headers, json={
            "down_payment_percentage": 50,
            "number_of_installments": 1,
            "down_payment_date": "2024-01-01",
            "first_installment_date": "2024-02-01",
        })
        response = await client.get(
            "/payment-plans/overdue", headers=headers, params={"as_of_date": "2024-02-15"},
        )
        assert [row["severity"] for row in response.json()] == ["critical", "warning"]

    async def test_non_finite_payment_returns_400(self, client, agent):
        deal = await _create_deal(client, agent)
        response = await client.post(f"/deals/{deal['id']}/payments", headers=_auth_headers(agent), json={
            "amount": "NaN", "paid_date": "2024-01-01", "payment_method": "cash",
        })
        assert response.status_code == 400
        assert response.json() == {"detail": "Amount must be a finite number"}

    async def test_other_agent_forbidden(self, client, agent, other_agent):
        deal = await _create_deal(client, agent)
        response = await client.post(
            f"/deals/{deal['id']}/payments", headers=_auth_headers(other_agent),
            json={"amount": 10, "paid_date": "2024-01-01", "payment_method": "cash"},
        )
        assert response.status_code == 403

    async def test_unknown_deal(self, client, agent):
        response = await client.get("/deals/999", headers=_auth_headers(agent))
        assert response.status_code == 404


class TestCommissionApi:
    async def test_workflow(self, client, admin, agent):
        created = await client.post("/commissions/", headers=_auth_headers(agent), json={
            "property_id": "PROP-7", "agent_id": agent.id, "amount": 1500,
        })
        assert created.status_code == 201
        commission_id = created.json()["id"]

        denied = await client.post(f"/commissions/{commission_id}/approve", headers=_auth_headers(agent))
        assert denied.status_code == 403

        approved = await client.post(f"/commissions/{commission_id}/approve", headers=_auth_headers(admin))
        assert approved.json()["approval_status"] == "approved"

        paid = await client.post(f"/commissions/{commission_id}/pay", headers=_auth_headers(admin), json={})
        assert paid.json()["status"] == "paid"

        again = await client.post(f"/commissions/{commission_id}/reject", headers=_auth_headers(admin), json={
            "reason": "Too late",
        })
        assert again.status_code == 409
        assert again.json()["detail"] == "Commission is already paid and can't be changed"

    async def test_split(self, client, admin, agent, other_agent):
        created = await client.post("/commissions/", headers=_auth_headers(admin), json={
            "property_id": "PROP-7", "agent_id": agent.id, "amount": 1000,
        })
        response = await client.post(
            f"/commissions/{created.json()['id']}/split",
            headers=_auth_headers(agent),
            json={"shares": [
                {"agent_id": agent.id, "percentage": 50},
                {"agent_id": other_agent.id, "percentage": 50},
            ]},
        )
        assert response.status_code == 201
        assert [row["amount"] for row in response.json()] == [500, 500]

        report = (await client.get("/commissions/reports/agents", headers=_auth_headers(admin))).json()
        assert sorted(row["total_amount"] for row in report) == [500, 500]


class TestReconciliationApi:
    async def test_import_and_match(self, client, agent):
        headers = _auth_headers(agent)
        csv = b"Date,Description,Amount\n2024-03-01,Rent March,1200.00\n"
        imported = await client.post(
            "/reconciliation/import", headers=headers,
            files={"file": ("march.csv", csv, "text/csv")},
        )
        assert imported.json()["success"]
        assert imported.json()["imported"] == 1

        entry = await client.post("/reconciliation/ledger-entries", headers=headers, json={
            "entry_date": "2024-03-01", "description": "Rent March", "amount": 1200, "account": "Rent",
        })
        bank = (await client.get("/reconciliation/bank-transactions", headers=headers)).json()[0]

        match = await client.post("/reconciliation/matches", headers=headers, json={
            "bank_transaction_ids": [bank["id"]], "ledger_entry_ids": [entry.json()["id"]],
        })
        assert match.status_code == 201
        assert match.json()["bank_transactions"][0]["status"] == "reconciled"

        unreconciled = await client.get(
            "/reconciliation/ledger-entries", headers=headers, params={"status": "unreconciled"},
        )
        assert unreconciled.json() == []

        removed = await client.delete(f"/reconciliation/matches/{match.json()['id']}", headers=headers)
        assert removed.json() == {"message": "Match removed"}

    async def test_rejects_non_csv(self, client, agent):
        response = await client.post(
            "/reconciliation/import", headers=_auth_headers(agent),
            files={"file": ("march.xlsx", b"data", "application/octet-stream")},
        )
        assert response.json()["success"] is False

    async def test_empty_match_selection(self, client, agent):
        response = await client.post("/reconciliation/matches", headers=_auth_headers(agent), json={
            "bank_transaction_ids": [], "ledger_entry_ids": [],
        })
        assert response.status_code == 400

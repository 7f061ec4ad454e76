import uuid


def _seed(db):
    from backend.app.models import Business, BusinessMembership, Customer, Income, Sale, Supplier, Purchase, Expense, User

    tag = uuid.uuid4().hex[:10]
    owner = User(email=f"owner-{tag}@example.com")
    member = User(email=f"member-{tag}@example.com")
    stranger = User(email=f"stranger-{tag}@example.com")
    db.add_all([owner, member, stranger])
    db.flush()

    biz = Business(name="Books Co", owner_id=owner.id)
    db.add(biz)
    db.flush()
    db.add(BusinessMembership(business_id=biz.id, user_id=member.id, role="viewer"))

    scoped = {"business_id": biz.id, "owner_id": owner.id}
    customer = Customer(name="Acme Stores", previous_balance=1000.0, **scoped)
    # created by the stranger under this business; visible to them only via owner scope
    own_customer = Customer(name="Walk-in", previous_balance=0.0, business_id=biz.id, owner_id=stranger.id)
    supplier = Supplier(name="Zed Mills", previous_balance=0.0, **scoped)
    db.add_all([customer, own_customer, supplier])
    db.flush()

    db.add_all([
        Sale(customer_id=customer.id, customer_name=customer.name, payload={
            "date": "2024-01-10", "billNumber": "INV-001",
            "items": [{"description": "Cotton", "qty": 1, "unitPrice": 500}],
        }, **scoped),
        Income(customer_id=customer.id, customer_name=customer.name, payload={
            "date": "2024-01-15", "amount": 200,
        }, **scoped),
        Sale(customer_id=customer.id, customer_name=customer.name, payload={
            "date": "2024-02-05", "billNumber": "INV-002",
            "items": [
                {"description": "Denim", "qty": 1, "unitPrice": 800},
                {"description": "Zips", "qty": 10, "unitPrice": 5},
            ],
        }, **scoped),
        Income(customer_id=customer.id, customer_name=customer.name, payload={
            "date": "2024-02-05", "amount": "300", "details": "Cheque 991",
        }, **scoped),
        Income(customer_id=customer.id, customer_name=customer.name, payload={"amount": 5}, **scoped),
        Purchase(supplier_id=supplier.id, supplier_name=supplier.name, payload={
            "date": "2024-02-01", "billNumber": "B-7", "total": 400,
        }, **scoped),
        Expense(supplier_id=supplier.id, supplier_name=supplier.name, payload={
            "date": "2024-02-03", "amount": 150, "details": "part payment",
        }, **scoped),
    ])
    db.commit()
    return {
        "biz_id": biz.id,
        "customer_id": customer.id,
        "own_customer_id": own_customer.id,
        "supplier_id": supplier.id,
        "member": member.email,
        "stranger": stranger.email,
    }


def test_customer_ledger_endpoint(api_client, sqlite_session):
    seeded = _seed(sqlite_session)

    res = api_client.get(
        f"/api/ledger/business/{seeded['biz_id']}/customers/{seeded['customer_id']}",
        params={"from_date": "2024-02-01", "to_date": "2024-02-29"},
        headers={"X-User-Email": seeded["member"]},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["opening_balance"] == 1300.0
    assert body["degraded_view"] is False
    assert [r["running_balance"] for r in body["rows"]] == [2100.0, 2150.0, 1850.0]
    assert body["closing_balance"] == 1850.0
    assert body["rows"][1]["is_group_terminal"] is True
    assert body["rows"][1]["group_subtotal"] == 850.0
    assert body["rows"][1]["display_subtotal"] == 850.0
    assert [(r["qty"], r["rate"], r["total_qty"]) for r in body["rows"][:2]] == [(1.0, 800.0, 11.0), (10.0, 5.0, 11.0)]
    assert body["rows"][2]["particular"] == "Cheque 991"
    assert body["rows"][2]["qty"] is None
    assert body["opening_row"]["date"] == "2024-02-01"
    assert len(body["undated"]) == 1
    assert [i["code"] for i in body["issues"]] == ["undated"]


def test_customer_ledger_search_only_hides_rows(api_client, sqlite_session):
    seeded = _seed(sqlite_session)
    url = f"/api/ledger/business/{seeded['biz_id']}/customers/{seeded['customer_id']}"
    headers = {"X-User-Email": seeded["member"]}

    plain = api_client.get(url, params={"from_date": "2024-02-01"}, headers=headers).json()
    searched = api_client.get(url, params={"from_date": "2024-02-01", "search": "cheque"}, headers=headers).json()

    assert [r["visible"] for r in searched["rows"]] == [False, False, True]
    assert [r["running_balance"] for r in searched["rows"]] == [r["running_balance"] for r in plain["rows"]]
    assert all(r["display_subtotal"] is None for r in searched["rows"])
    assert searched["closing_balance"] == 1850.0


def test_supplier_ledger_endpoint(api_client, sqlite_session):
    seeded = _seed(sqlite_session)

    res = api_client.get(
        f"/api/ledger/business/{seeded['biz_id']}/suppliers/{seeded['supplier_id']}",
        headers={"X-User-Email": seeded["member"]},
    )

    assert res.status_code == 200
    body = res.json()
    assert [(r["kind"], r["running_balance"]) for r in body["rows"]] == [("Purchase", 400.0), ("Expense", 250.0)]
    assert body["rows"][0]["group_subtotal"] == 400.0


def test_inverted_range_is_a_bad_request(api_client, sqlite_session):
    seeded = _seed(sqlite_session)

    res = api_client.get(
        f"/api/ledger/business/{seeded['biz_id']}/customers/{seeded['customer_id']}",
        params={"from_date": "2024-03-01", "to_date": "2024-02-01"},
        headers={"X-User-Email": seeded["member"]},
    )

    assert res.status_code == 400


def test_unknown_account_and_business(api_client, sqlite_session):
    seeded = _seed(sqlite_session)
    headers = {"X-User-Email": seeded["member"]}

    assert api_client.get(
        f"/api/ledger/business/{seeded['biz_id']}/customers/nope", headers=headers
    ).status_code == 404
    assert api_client.get(
        f"/api/ledger/business/nope/customers/{seeded['customer_id']}", headers=headers
    ).status_code == 404


def test_missing_identity_is_unauthorized(api_client, sqlite_session):
    seeded = _seed(sqlite_session)
    res = api_client.get(f"/api/ledger/business/{seeded['biz_id']}/customers/{seeded['customer_id']}")
    assert res.status_code == 401


def test_non_member_gets_degraded_owner_scope(api_client, sqlite_session):
    seeded = _seed(sqlite_session)
    headers = {"X-User-Email": seeded["stranger"]}

    hidden = api_client.get(
        f"/api/ledger/business/{seeded['biz_id']}/customers/{seeded['customer_id']}", headers=headers
    )
    own = api_client.get(
        f"/api/ledger/business/{seeded['biz_id']}/customers/{seeded['own_customer_id']}", headers=headers
    )

    assert hidden.status_code == 404
    assert own.status_code == 200
    assert own.json()["degraded_view"] is True
    assert own.json()["rows"] == []

def test_balances_endpoint_returns_strings(api_client, book, monkeypatch):
    monkeypatch.setenv("LEDGER_DEFAULT_LOCALE", "en_US")
    everyday = book.account("Everyday")
    aud = book.instrument("AUD")
    book.post(everyday, [(aud, 123456789012345678)])

    resp = api_client.get(f"/api/users/{book.user.id}/balances")

    assert resp.status_code == 200
    [row] = resp.json()
    assert row["account_name"] == "Everyday"
    assert row["instrument_code"] == "AUD"
    assert row["amount_minor"] == "123456789012345678"
    assert row["amount"] == "1234567890123456.78"
    assert row["display"] == "AUD\u00a01,234,567,890,123,456.78"


def test_balances_endpoint_filters_and_localizes(api_client, book):
    everyday = book.account("Everyday")
    savings = book.account("Savings")
    eur = book.instrument("EUR")
    book.post(everyday, [(eur, 100)])
    book.post(savings, [(eur, 123456)])

    resp = api_client.get(
        f"/api/users/{book.user.id}/balances",
        params={"account_id": [savings.id], "locale": "de-DE"},
    )

    assert resp.status_code == 200
    [row] = resp.json()
    assert row["account_id"] == savings.id
    assert "1.234,56" in row["display"]
    assert "EUR" in row["display"]


def test_balances_endpoint_unknown_user_is_404(api_client, db_session):
    resp = api_client.get("/api/users/nobody/balances")
    assert resp.status_code == 404


def test_delete_event_soft_deletes(api_client, book):
    everyday = book.account("Everyday")
    aud = book.instrument("AUD")
    keep = book.post(everyday, [(aud, 500)])
    drop = book.post(everyday, [(aud, 700)])

    resp = api_client.delete(f"/api/events/{drop.event_id}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == drop.event_id
    assert body["dedupe_key"] == drop.dedupe_key
    assert body["deleted_at"] is not None

    balances = api_client.get(f"/api/users/{book.user.id}/balances").json()
    assert [row["amount_minor"] for row in balances] == ["500"]
    assert keep.status == "inserted"


def test_delete_unknown_event_is_404(api_client, db_session):
    resp = api_client.delete("/api/events/missing")
    assert resp.status_code == 404

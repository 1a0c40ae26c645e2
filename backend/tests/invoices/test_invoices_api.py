from datetime import date

from medicore.models.invoice import Invoice, InvoiceStatus


def test_create_invoice_computes_totals(api_client, auth_headers, create_patient, create_invoice):
    patient = create_patient(name="Grace Hopper")
    invoice = create_invoice(
        patient["id"],
        items=[
            {"description": "Consultation", "quantity": 1, "price": 150},
            {"description": "Blood panel", "category": "Lab", "quantity": 2, "price": "75.50"},
        ],
        notes="Walk-in",
    )
    assert invoice["id"] == "INV001"
    assert invoice["patientName"] == "Grace Hopper"
    assert invoice["totalAmount"] == "301.00"
    assert invoice["paidAmount"] == "0.00"
    assert invoice["balance"] == "301.00"
    assert invoice["status"] == "pending"
    assert invoice["date"] == date.today().isoformat()
    assert invoice["dueDate"] == "2026-04-01"
    assert invoice["paidAt"] is None
    assert [item["id"] for item in invoice["items"]] == ["ITEM001", "ITEM002"]
    assert [item["category"] for item in invoice["items"]] == ["General", "Lab"]
    assert [item["total"] for item in invoice["items"]] == ["150.00", "151.00"]

    second = create_invoice(patient["id"])
    assert second["id"] == "INV002"
    assert second["items"][0]["id"] == "ITEM003"


def test_invoice_validation(api_client, auth_headers, create_patient):
    patient_id = create_patient()["id"]

    res = api_client.post(
        "/api/invoices",
        json={"patientId": patient_id, "dueDate": "2026-04-01", "items": []},
        headers=auth_headers,
    )
    assert res.status_code == 400
    assert res.json()["message"] == "At least one invoice item is required"

    res = api_client.post(
        "/api/invoices",
        json={
            "patientId": patient_id,
            "dueDate": "2026-04-01",
            "items": [{"description": "X-ray", "quantity": 0, "price": 10}],
        },
        headers=auth_headers,
    )
    assert res.status_code == 400

    res = api_client.post(
        "/api/invoices",
        json={"patientId": patient_id, "items": [{"description": "X-ray", "price": 10}]},
        headers=auth_headers,
    )
    assert res.status_code == 400

    res = api_client.post(
        "/api/invoices",
        json={
            "patientId": "P999",
            "dueDate": "2026-04-01",
            "items": [{"description": "X-ray", "price": 10}],
        },
        headers=auth_headers,
    )
    assert res.status_code == 404
    assert res.json()["message"] == "Patient not found"


def test_two_payments_settle_invoice(api_client, receptionist_headers, create_patient, create_invoice):
    invoice_id = create_invoice(create_patient()["id"])["id"]

    res = api_client.patch(
        f"/api/invoices/{invoice_id}/payment", json={"amount": 150}, headers=receptionist_headers
    )
    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert data["paidAmount"] == "150.00"
    assert data["status"] == "pending"
    assert data["paymentMethod"] == "Cash"
    assert data["paidAt"] is None
    assert data["balance"] == "150.00"

    res = api_client.patch(
        f"/api/invoices/{invoice_id}/payment",
        json={"amount": "150.00", "paymentMethod": "Card"},
        headers=receptionist_headers,
    )
    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert data["paidAmount"] == "300.00"
    assert data["status"] == "paid"
    assert data["paymentMethod"] == "Card"
    assert data["paidAt"] is not None
    assert data["balance"] == "0.00"


def test_payment_rejections(api_client, auth_headers, create_patient, create_invoice):
    invoice_id = create_invoice(create_patient()["id"])["id"]
    url = f"/api/invoices/{invoice_id}/payment"

    res = api_client.patch(url, json={"amount": "300.01"}, headers=auth_headers)
    assert res.status_code == 400
    assert res.json()["message"] == "Payment amount exceeds remaining balance"

    assert api_client.patch(url, json={"amount": 0}, headers=auth_headers).status_code == 400
    assert api_client.patch(url, json={"amount": -5}, headers=auth_headers).status_code == 400
    assert api_client.patch(url, json={}, headers=auth_headers).status_code == 400

    assert api_client.patch(url, json={"amount": 300}, headers=auth_headers).status_code == 200
    res = api_client.patch(url, json={"amount": 1}, headers=auth_headers)
    assert res.status_code == 400
    assert res.json()["message"] == "Invoice is already paid"

    res = api_client.patch("/api/invoices/INV999/payment", json={"amount": 1}, headers=auth_headers)
    assert res.status_code == 404
    assert res.json()["message"] == "Invoice not found"


def test_overdue_invoice_partial_payment(api_client, auth_headers, db_session, create_patient, create_invoice):
    invoice_id = create_invoice(create_patient()["id"])["id"]
    invoice = db_session.get(Invoice, invoice_id)
    invoice.status = InvoiceStatus.overdue
    db_session.commit()

    res = api_client.patch(
        f"/api/invoices/{invoice_id}/payment", json={"amount": 100}, headers=auth_headers
    )
    assert res.status_code == 200, res.text
    assert res.json()["data"]["status"] == "pending"
    assert res.json()["data"]["paidAmount"] == "100.00"


def test_doctors_cannot_bill(api_client, doctor_headers, create_patient, create_invoice):
    invoice_id = create_invoice(create_patient()["id"])["id"]
    assert api_client.get("/api/invoices", headers=doctor_headers).status_code == 403
    res = api_client.patch(
        f"/api/invoices/{invoice_id}/payment", json={"amount": 10}, headers=doctor_headers
    )
    assert res.status_code == 403


def test_list_search_and_status(api_client, auth_headers, create_patient, create_invoice):
    alice = create_patient(name="Alice Walker")
    bob = create_patient(name="Bob Stone")
    paid = create_invoice(alice["id"])["id"]
    create_invoice(bob["id"])
    api_client.patch(f"/api/invoices/{paid}/payment", json={"amount": 300}, headers=auth_headers)

    res = api_client.get("/api/invoices", headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["pagination"]["total"] == 2

    res = api_client.get("/api/invoices", params={"search": "bob"}, headers=auth_headers)
    assert [inv["patientName"] for inv in res.json()["data"]] == ["Bob Stone"]

    res = api_client.get("/api/invoices", params={"search": paid}, headers=auth_headers)
    assert [inv["id"] for inv in res.json()["data"]] == [paid]

    res = api_client.get("/api/invoices", params={"status": "paid"}, headers=auth_headers)
    assert [inv["id"] for inv in res.json()["data"]] == [paid]


def test_delete_invoice(api_client, auth_headers, receptionist_headers, create_patient, create_invoice):
    invoice_id = create_invoice(create_patient()["id"])["id"]
    assert api_client.delete(f"/api/invoices/{invoice_id}", headers=receptionist_headers).status_code == 403

    res = api_client.delete(f"/api/invoices/{invoice_id}", headers=auth_headers)
    assert res.status_code == 200, res.text
    assert api_client.get(f"/api/invoices/{invoice_id}", headers=auth_headers).status_code == 404

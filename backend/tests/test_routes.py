"""
HTTP surface tests: principal headers, status codes and error payloads.
"""


INVOICE_BODY = {
    "client_ref": "client-1",
    "items": [{"service_name": "Consulting", "service_type": "hourly", "hours": 10, "rate_per_hour": 90}],
    "tax_rate": 10,
    "due_date": "2024-04-15",
}


def create_invoice(client, headers, **overrides):
    body = dict(INVOICE_BODY, **overrides)
    return client.post("/api/invoices/", json=body, headers=headers)


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200


def test_missing_principal_is_unauthorized(client):
    resp = client.post("/api/invoices/", json=INVOICE_BODY)
    assert resp.status_code == 401


def test_client_cannot_create_invoice(client, client_headers):
    resp = create_invoice(client, client_headers)
    assert resp.status_code == 403


def test_create_and_fetch_invoice(client, admin_headers, client_headers, other_client_headers):
    resp = create_invoice(client, admin_headers)
    assert resp.status_code == 201
    invoice = resp.get_json()["invoice"]
    assert invoice["code"] == "INV-2024-001"
    assert invoice["subtotal"] == "900.00"
    assert invoice["tax_amount"] == "90.00"
    assert invoice["total_amount"] == "990.00"
    assert invoice["created_by"] == "admin-1"

    owner = client.get("/api/invoices/INV-2024-001", headers=client_headers)
    assert owner.status_code == 200

    stranger = client.get("/api/invoices/INV-2024-001", headers=other_client_headers)
    assert stranger.status_code == 404


def test_hidden_invoice_is_not_shown_to_client(client, admin_headers, client_headers):
    create_invoice(client, admin_headers)
    client.patch("/api/invoices/INV-2024-001", json={"is_visible": False}, headers=admin_headers)

    resp = client.get("/api/invoices/INV-2024-001", headers=client_headers)
    assert resp.status_code == 404


def test_invalid_invoice_payload(client, admin_headers):
    resp = create_invoice(client, admin_headers, items=[])
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "invalid_input"


def test_overdue_reported_on_read(client, admin_headers, clock):
    create_invoice(client, admin_headers)
    clock.advance(days=45)

    resp = client.get("/api/invoices/INV-2024-001", headers=admin_headers)
    assert resp.get_json()["invoice"]["status"] == "Overdue"


def test_paid_invoice_delete_conflicts(client, admin_headers):
    create_invoice(client, admin_headers)
    paid = client.post("/api/invoices/INV-2024-001/pay", json={}, headers=admin_headers)
    assert paid.get_json()["invoice"]["status"] == "Paid"

    resp = client.delete("/api/invoices/INV-2024-001", headers=admin_headers)
    assert resp.status_code == 409
    assert resp.get_json()["kind"] == "invalid_state_transition"


def test_ticket_flow(client, client_headers, employee_headers, admin_headers):
    created = client.post(
        "/api/tickets/",
        json={"title": "VPN down", "description": "Cannot connect", "priority": "High"},
        headers=client_headers,
    )
    assert created.status_code == 201
    assert created.get_json()["ticket"]["code"] == "T001"

    updated = client.patch("/api/tickets/T001", json={"status": "In Progress"}, headers=employee_headers)
    assert updated.status_code == 200
    comments = updated.get_json()["ticket"]["comments"]
    assert comments[-1]["text"] == 'Status updated to "In Progress"'
    assert comments[-1]["author_ref"] == "emp-1"

    blocked = client.delete("/api/tickets/T001", headers=client_headers)
    assert blocked.status_code == 409

    timeline = client.get("/api/tickets/T001/timeline", headers=admin_headers)
    assert timeline.status_code == 200
    assert timeline.get_json()["timeline"][0]["date"].endswith("Z")


def test_ticket_comment_and_resolution(client, client_headers, other_client_headers):
    client.post("/api/tickets/", json={"title": "Bug", "description": "Crash on save"}, headers=client_headers)

    comment = client.post("/api/tickets/T001/comments", json={"text": "Any news?"}, headers=client_headers)
    assert comment.status_code == 201
    assert comment.get_json()["comment_count"] == 1

    foreign = client.post("/api/tickets/T001/comments", json={"text": "Hi"}, headers=other_client_headers)
    assert foreign.status_code == 404

    resolved = client.post("/api/tickets/T001/client-resolution", json={"resolved": True}, headers=client_headers)
    assert resolved.get_json()["ticket"]["client_resolved"] is True
    assert resolved.get_json()["ticket"]["status"] == "Pending"


def test_attendance_flow(client, employee_headers, clock):
    assert client.post("/api/attendance/punch-in", json={}, headers=employee_headers).status_code == 201
    assert client.post("/api/attendance/punch-in", json={}, headers=employee_headers).status_code == 409

    clock.advance(hours=4)
    out = client.post("/api/attendance/punch-out", headers=employee_headers)
    assert out.status_code == 200
    assert out.get_json()["log"]["total_hours"] == "4.00"
    assert out.get_json()["log"]["status"] == "Half-Day"

    assert client.post("/api/attendance/punch-out", headers=employee_headers).status_code == 404


def test_leave_flow(client, employee_headers, admin_headers):
    body = {"leave_type": "Vacation", "from_date": "2024-04-01", "to_date": "2024-04-05", "reason": "Holiday"}
    applied = client.post("/api/leaves/", json=body, headers=employee_headers)
    assert applied.status_code == 201
    leave = applied.get_json()["leave"]
    assert leave["number_of_days"] == 5

    overlap = client.post("/api/leaves/", json=dict(body, from_date="2024-04-05", to_date="2024-04-06"), headers=employee_headers)
    assert overlap.status_code == 409

    forbidden = client.post(f"/api/leaves/{leave['id']}/decision", json={"status": "Approved"}, headers=employee_headers)
    assert forbidden.status_code == 403

    decided = client.post(f"/api/leaves/{leave['id']}/decision", json={"status": "Approved"}, headers=admin_headers)
    assert decided.get_json()["leave"]["approved_by"] == "admin-1"

    again = client.post(f"/api/leaves/{leave['id']}/decision", json={"status": "Rejected"}, headers=admin_headers)
    assert again.status_code == 409


def test_cli_mark_overdue(app, client, admin_headers, clock):
    create_invoice(client, admin_headers)
    clock.advance(days=45)

    result = app.test_cli_runner().invoke(args=["invoices", "mark-overdue"])
    assert "Marked 1 invoice(s) Overdue." in result.output

    shown = app.test_cli_runner().invoke(args=["sequences", "show"])
    assert "invoice" in shown.output


def test_non_object_body_is_invalid_input(client, admin_headers):
    create_invoice(client, admin_headers)

    resp = client.patch("/api/invoices/INV-2024-001", json=["status"], headers=admin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "invalid_input"

    resp = client.post("/api/invoices/", json=[INVOICE_BODY], headers=admin_headers)
    assert resp.status_code == 400


def test_malformed_ticket_comment_is_invalid_input(client, client_headers, employee_headers):
    client.post("/api/tickets/", json={"title": "Bug", "description": "Crash"}, headers=client_headers)

    resp = client.patch("/api/tickets/T001", json={"comment": 5}, headers=employee_headers)
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "invalid_input"

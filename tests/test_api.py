import re

from app.core.config import settings

API = settings.API_V1_STR


def register(client, role="visitor", **form):
    response = client.post(f"{API}/registrants/{role}", json=form)
    assert response.status_code == 200, response.text
    return response.json()


def otp_from(mail):
    return re.search(r"\b(\d{6})\b", mail["text"]).group(1)


# Registration


def test_register_returns_ticket_code(client):
    body = register(client, "visitor", email="Asha@Example.com", name="Asha")

    assert body["success"] is True
    assert body["existed"] is False
    assert body["role"] == "visitor"
    assert re.fullmatch(r"\d{6}", body["ticketCode"])


def test_register_twice_returns_existing(client):
    first = register(client, "exhibitor", email="booth@x.com", company="Acme")
    second = register(client, "exhibitor", email="BOOTH@x.com ", company="Acme Rail")

    assert second["existed"] is True
    assert second["id"] == first["id"]
    assert second["ticketCode"] == first["ticketCode"]


def test_register_unknown_role(client):
    response = client.post(f"{API}/registrants/sponsor", json={"email": "s@x.com"})

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "UNKNOWN_ROLE",
        "message": "Unknown registrant role: 'sponsor'",
    }


def test_list_and_get_registrants(client):
    first = register(client, "partner", email="p1@x.com")
    second = register(client, "partner", email="p2@x.com")

    listing = client.get(f"{API}/registrants/partner").json()
    assert {r["id"] for r in listing} == {first["id"], second["id"]}

    detail = client.get(f"{API}/registrants/partners/{first['id']}").json()
    assert detail["email"] == "p1@x.com"
    assert detail["ticketCode"] == first["ticketCode"]

    missing = client.get(f"{API}/registrants/partner/nope")
    assert missing.status_code == 404
    assert missing.json()["error"] == "NOT_FOUND"


def test_update_registrant(client):
    created = register(client, "visitor", email="u@x.com", name="Old")

    response = client.put(
        f"{API}/registrants/visitor/{created['id']}",
        json={"name": "New Name", "ticketCategory": "delegate", "data": {"Job Title": "Engineer"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "New Name"
    assert body["ticketCategory"] == "delegate"
    assert body["data"]["job_title"] == "Engineer"
    assert body["ticketCode"] == created["ticketCode"]


def test_update_registrant_email_conflict(client):
    register(client, "visitor", email="taken@x.com")
    other = register(client, "visitor", email="free@x.com")

    response = client.put(f"{API}/registrants/visitor/{other['id']}", json={"email": "Taken@x.com"})

    assert response.status_code == 409
    assert response.json()["error"] == "CONFLICT"


def test_delete_registrant(client):
    created = register(client, "speaker", email="s@x.com")

    response = client.delete(f"{API}/registrants/speaker/{created['id']}")

    assert response.status_code == 200
    assert client.get(f"{API}/registrants/speaker/{created['id']}").status_code == 404


def test_resend_email(client, outbox):
    created = register(client, "visitor", email="mail@x.com", name="Mia")

    response = client.post(f"{API}/registrants/visitor/{created['id']}/resend-email")

    assert response.status_code == 200
    assert outbox[0]["to"] == "mail@x.com"
    detail = client.get(f"{API}/registrants/visitor/{created['id']}").json()
    assert detail["emailSentAt"] is not None


def test_resend_email_failure(client, outbox):
    outbox.fail = True
    created = register(client, "visitor", email="mail@x.com")

    response = client.post(f"{API}/registrants/visitor/{created['id']}/resend-email")

    assert response.status_code == 502
    assert response.json()["error"] == "DELIVERY_FAILED"
    detail = client.get(f"{API}/registrants/visitor/{created['id']}").json()
    assert detail["emailFailed"] is True


def test_auto_send_ticket_email(client, outbox, monkeypatch):
    monkeypatch.setattr(settings, "AUTO_SEND_TICKET_EMAILS", True)

    created = register(client, "awardee", email="award@x.com", name="Ravi")
    register(client, "awardee", email="award@x.com")

    assert [mail["to"] for mail in outbox] == ["award@x.com"]
    assert created["ticketCode"] in outbox[0]["text"]


# Review workflow, notices and stats


def test_approve_exhibitor_sends_status_mail_and_admin_copy(client, outbox, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", "ops@x.com")
    created = register(client, "exhibitor", email="booth@x.com", company="Acme Rail")

    response = client.post(f"{API}/registrants/exhibitor/{created['id']}/approve", json={"admin": "Asha"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "approved"
    assert body["approvedBy"] == "Asha"
    assert body["approvedAt"] is not None
    assert [mail["to"] for mail in outbox] == ["booth@x.com", "ops@x.com"]
    assert "approved" in outbox[0]["subject"]
    assert outbox[0]["attachments"] == []
    assert created["id"] in outbox[1]["subject"]


def test_cancel_partner_without_body(client, outbox, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", "")
    created = register(client, "partner", email="sponsor@x.com", name="Priya")

    response = client.post(f"{API}/registrants/partners/{created['id']}/cancel")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "cancelled"
    assert body["cancelledBy"] == "web-admin"
    assert body["approvedAt"] is None
    assert [mail["to"] for mail in outbox] == ["sponsor@x.com"]
    assert "cancelled" in outbox[0]["subject"]


def test_new_registrants_start_pending(client):
    created = register(client, "exhibitor", email="new@x.com")

    assert client.get(f"{API}/registrants/exhibitor/{created['id']}").json()["status"] == "pending"


def test_only_exhibitors_and_partners_are_reviewed(client, outbox):
    visitor = register(client, "visitor", email="walkin@x.com")

    response = client.post(f"{API}/registrants/visitor/{visitor['id']}/approve")
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"

    missing = client.post(f"{API}/registrants/exhibitor/does-not-exist/cancel")
    assert missing.status_code == 404
    assert outbox == []


def test_registrant_stats(client):
    paid = register(client, "awardee", email="paid@x.com")
    free = register(client, "awardee", email="free@x.com")
    register(client, "awardee", email="plain@x.com")

    client.post(
        f"{API}/tickets/upgrade",
        json={"entityType": "awardees", "entityId": paid["id"], "newCategory": "premium",
              "amount": 500, "txId": "pay_1"},
    )
    client.put(f"{API}/registrants/awardee/{free['id']}", json={"ticketCategory": "Free Pass"})

    assert client.get(f"{API}/registrants/awardees/stats").json() == {"total": 3, "paid": 1, "free": 1}
    assert client.get(f"{API}/registrants/visitor/stats").json() == {"total": 0, "paid": 0, "free": 0}


def test_notify_stored_partner_copies_admins(client, outbox, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", "ops@x.com, boss@x.com")
    created = register(client, "partner", email="ally@x.com", company="Metro Corp")

    response = client.post(f"{API}/registrants/partner/notify", json={"registrantId": created["id"]})

    assert response.status_code == 200
    body = response.json()
    assert body["mail"] == {"to": "ally@x.com", "success": True, "error": None}
    assert [r["to"] for r in body["adminResults"]] == ["ops@x.com", "boss@x.com"]
    assert [mail["to"] for mail in outbox] == ["ally@x.com", "ops@x.com", "boss@x.com"]
    detail = client.get(f"{API}/registrants/partner/{created['id']}").json()
    assert detail["emailSentAt"] is not None


def test_notify_unsaved_form(client, outbox, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", "")

    response = client.post(
        f"{API}/registrants/partner/notify", json={"form": {"email": "prospect@x.com", "name": "Pat"}}
    )

    assert response.json()["mail"]["to"] == "prospect@x.com"
    assert "Pat" in outbox[0]["text"]

    assert client.post(f"{API}/registrants/partner/notify", json={}).status_code == 400


def test_send_reminders_counts_outcomes(client, outbox):
    register(client, "awardee", email="one@x.com", name="One")
    register(client, "awardee", email="two@x.com", name="Two")
    register(client, "awardee", name="No Mail")

    response = client.post(f"{API}/registrants/awardees/send-reminders")

    assert response.json() == {"success": True, "sent": 2, "failed": 0}
    assert sorted(mail["to"] for mail in outbox) == ["one@x.com", "two@x.com"]

    outbox.fail = True
    assert client.post(f"{API}/registrants/awardees/send-reminders").json()["failed"] == 2


def test_registration_config_limits_stored_fields(client):
    response = client.put(
        f"{API}/registration-configs/visitor",
        json={"fields": [{"name": "email", "type": "email", "required": True}, {"name": "Full Name"}]},
    )
    assert response.status_code == 200
    assert client.get(f"{API}/registration-configs/visitors").json()["page"] == "visitor"

    created = register(client, "visitor", email="cfg@x.com", **{"Full Name": "Cara", "Hobby": "chess"})

    detail = client.get(f"{API}/registrants/visitor/{created['id']}").json()
    assert detail["email"] == "cfg@x.com"
    assert detail["data"]["full_name"] == "Cara"
    assert "hobby" not in detail["data"]


def test_registration_config_missing(client):
    response = client.get(f"{API}/registration-configs/speaker")

    assert response.status_code == 404


# OTP


def test_otp_flow_gates_registration(client, outbox, monkeypatch):
    monkeypatch.setattr(settings, "REQUIRE_OTP_FOR_REGISTRATION", True)

    denied = client.post(f"{API}/registrants/visitor", json={"email": "new@x.com"})
    assert denied.status_code == 403

    sent = client.post(f"{API}/otp/send", json={"value": "New@x.com", "registrationType": "visitor"})
    assert sent.status_code == 200
    assert sent.json()["otpSent"] is True

    verified = client.post(
        f"{API}/otp/verify",
        json={"value": "new@x.com", "otp": otp_from(outbox[0]), "registrationType": "visitor"},
    )
    assert verified.status_code == 200
    token = verified.json()["verificationToken"]

    created = client.post(f"{API}/registrants/visitor", json={"email": "new@x.com", "verificationToken": token})
    assert created.status_code == 200

    # Tokens are single use
    again = client.post(f"{API}/registrants/visitor", json={"email": "new@x.com", "verificationToken": token})
    assert again.status_code == 403


def test_admin_registration_skips_otp(client, monkeypatch):
    monkeypatch.setattr(settings, "REQUIRE_OTP_FOR_REGISTRATION", True)

    response = client.post(f"{API}/registrants/exhibitor", json={"email": "x@x.com", "addedByAdmin": True})

    assert response.status_code == 200


def test_otp_send_rejects_registered_email(client, outbox):
    register(client, "speaker", email="known@x.com")

    response = client.post(f"{API}/otp/send", json={"value": "known@x.com", "registrationType": "visitor"})

    assert response.status_code == 409
    assert response.json()["error"] == "CONFLICT"
    assert outbox == []


def test_otp_send_cooldown(client, outbox):
    payload = {"value": "wait@x.com", "registrationType": "visitor"}
    assert client.post(f"{API}/otp/send", json=payload).status_code == 200

    response = client.post(f"{API}/otp/send", json=payload)

    assert response.status_code == 429
    assert response.json()["error"] == "RATE_LIMITED"
    assert int(response.headers["Retry-After"]) > 0


def test_otp_send_delivery_failure(client, outbox):
    outbox.fail = True
    payload = {"value": "down@x.com", "registrationType": "visitor"}

    response = client.post(f"{API}/otp/send", json=payload)
    assert response.status_code == 502

    # The failed code is discarded, so a retry is not rate limited
    outbox.fail = False
    assert client.post(f"{API}/otp/send", json=payload).status_code == 200


def test_otp_verify_wrong_code(client, outbox):
    client.post(f"{API}/otp/send", json={"value": "w@x.com", "registrationType": "visitor"})
    wrong = "000000" if otp_from(outbox[0]) != "000000" else "111111"

    response = client.post(
        f"{API}/otp/verify", json={"value": "w@x.com", "otp": wrong, "registrationType": "visitor"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_check_email(client):
    created = register(client, "partner", email="p@x.com")

    found = client.get(f"{API}/otp/check-email", params={"email": "P@x.com", "type": "visitor"}).json()
    absent = client.get(f"{API}/otp/check-email", params={"email": "none@x.com", "type": "visitor"}).json()

    assert found["found"] is True
    assert found["info"]["id"] == created["id"]
    assert found["info"]["collection"] == "partners"
    assert absent == {"success": True, "found": False}


# Tickets


def test_validate_ticket(client):
    created = register(client, "visitor", email="t@x.com", name="Tara", company="Rail Co")

    response = client.post(f"{API}/tickets/validate", json={"payload": {"ticketCode": created["ticketCode"]}})

    assert response.status_code == 200
    ticket = response.json()["ticket"]
    assert ticket["ticketCode"] == created["ticketCode"]
    assert ticket["entityType"] == "visitors"
    assert ticket["entityId"] == created["id"]
    assert ticket["name"] == "Tara"
    assert ticket["company"] == "Rail Co"


def test_validate_ticket_with_legacy_field(client):
    created = register(client, "visitor", email="t@x.com")

    response = client.post(f"{API}/tickets/validate", json={"ticketId": f"  {created['ticketCode']}  "})

    assert response.status_code == 200


def test_validate_ticket_rejects_garbage_and_unknown(client):
    register(client, "visitor", email="t@x.com")

    garbage = client.post(f"{API}/tickets/validate", json={"payload": "garbage payload !!"})
    empty = client.post(f"{API}/tickets/validate", json={})
    unknown = client.post(f"{API}/tickets/validate", json={"payload": "  999999  "})

    assert garbage.status_code == 400
    assert garbage.json()["message"] == "Invalid ticket"
    assert empty.status_code == 400
    assert unknown.status_code == 404
    assert unknown.json()["message"] == "Ticket not found"


def test_scan_returns_badge_pdf(client):
    created = register(client, "speaker", email="s@x.com", name="Dr. Rao")

    response = client.post(f"{API}/tickets/scan", json={"payload": created["ticketCode"]})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"].startswith("inline")
    assert response.content.startswith(b"%PDF")


def test_download_ticket(client):
    created = register(client, "visitor", email="d@x.com")

    response = client.get(f"{API}/tickets/download", params={"entity": "visitors", "id": created["id"]})
    missing = client.get(f"{API}/tickets/download", params={"entity": "visitors", "id": "nope"})

    assert response.status_code == 200
    assert response.headers["content-disposition"] == f"attachment; filename=ticket-{created['ticketCode']}.pdf"
    assert missing.status_code == 404


def test_debug_check(client):
    created = register(client, "visitor", email="dbg@x.com")

    response = client.post(f"{API}/tickets/debug-check", json={"payload": created["ticketCode"]})

    debug = response.json()["debug"]
    assert debug["ticketKey"] == created["ticketCode"]
    counts = {entry["coll"]: entry["matchCount"] for entry in debug["checkedCollections"]}
    assert counts == {"visitors": 1, "exhibitors": 0, "partners": 0, "speakers": 0, "awardees": 0}


def test_paid_upgrade_quote_then_confirm(client, payments, outbox):
    created = register(client, "visitor", email="vip@x.com", name="Vik")
    request = {"entityType": "visitors", "entityId": created["id"], "newCategory": "vip", "amount": 500}

    quote = client.post(f"{API}/tickets/upgrade", json=request).json()

    assert quote["upgraded"] is False
    assert quote["paymentRequired"] is True
    assert quote["checkoutUrl"] == "https://pay.example.test/checkout/1"
    assert payments.orders[0]["amount"] == 500
    assert outbox == []

    confirm = client.post(f"{API}/tickets/upgrade", json={**request, "txId": "pay_123"}).json()

    assert confirm["upgraded"] is True
    assert confirm["category"] == "vip"
    assert "paymentRequired" not in confirm
    detail = client.get(f"{API}/registrants/visitor/{created['id']}").json()
    assert detail["ticketCategory"] == "vip"
    assert detail["txId"] == "pay_123"
    assert detail["emailSentAt"] is not None
    assert [mail["to"] for mail in outbox] == ["vip@x.com"]


def test_upgrade_with_full_discount_coupon(client, payments, outbox):
    created = register(client, "visitor", email="free@x.com")
    client.post(f"{API}/coupons", json={"code": "FREEPASS", "discount": 100})

    response = client.post(
        f"{API}/tickets/upgrade",
        json={
            "entityType": "visitor",
            "entityId": created["id"],
            "newCategory": "delegate",
            "amount": 1200,
            "couponCode": "freepass",
        },
    )

    assert response.json()["upgraded"] is True
    assert payments.orders == []
    coupons = client.get(f"{API}/coupons", params={"status": "used"}).json()["coupons"]
    assert [c["code"] for c in coupons] == ["FREEPASS"]


def test_upgrade_email_mismatch_is_forbidden(client):
    created = register(client, "visitor", email="owner@x.com")

    response = client.post(
        f"{API}/tickets/upgrade",
        json={
            "entityType": "visitors",
            "entityId": created["id"],
            "newCategory": "vip",
            "email": "intruder@x.com",
        },
    )

    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN"


def test_upgrade_payment_failure(client, payments):
    payments.fail = True
    created = register(client, "visitor", email="p@x.com")

    response = client.post(
        f"{API}/tickets/upgrade",
        json={"entityType": "visitors", "entityId": created["id"], "newCategory": "vip", "amount": 10},
    )

    assert response.status_code == 502
    assert response.json()["error"] == "PAYMENT_ORDER_FAILED"


def test_upgrade_rejects_negative_amount(client):
    created = register(client, "visitor", email="n@x.com")

    response = client.post(
        f"{API}/tickets/upgrade",
        json={"entityType": "visitors", "entityId": created["id"], "newCategory": "vip", "amount": -1},
    )

    assert response.status_code == 422


# Coupons


def test_coupon_validate_peek_and_consume(client):
    created = client.post(f"{API}/coupons", json={"code": "save20", "discount": 20})
    assert created.status_code == 201
    assert created.json()["code"] == "SAVE20"

    peek = client.post(f"{API}/coupons/validate", json={"code": "Save20", "price": 1000, "consume": False}).json()
    assert peek["valid"] is True
    assert peek["reducedPrice"] == 800

    used = client.post(f"{API}/coupons/validate", json={"code": "SAVE20", "consumer": "desk"}).json()
    assert used["valid"] is True
    assert used["discount"] == 20

    again = client.post(f"{API}/coupons/validate", json={"code": "SAVE20"})
    assert again.status_code == 200
    assert again.json()["valid"] is False
    assert again.json()["success"] is False


def test_coupon_validate_requires_code(client):
    response = client.post(f"{API}/coupons/validate", json={"code": "   "})

    assert response.status_code == 400


def test_coupon_duplicate_and_bad_discount(client):
    client.post(f"{API}/coupons", json={"code": "ONCE", "discount": 5})

    duplicate = client.post(f"{API}/coupons", json={"code": "once", "discount": 5})
    too_big = client.post(f"{API}/coupons", json={"code": "BIG", "discount": 150})

    assert duplicate.status_code == 400
    assert too_big.status_code == 422


def test_coupon_admin_operations(client):
    coupon_id = client.post(f"{API}/coupons", json={"code": "ADMIN1", "discount": 10}).json()["id"]

    used = client.post(f"{API}/coupons/{coupon_id}/use").json()
    assert used["used"] is True
    assert client.get(f"{API}/coupons", params={"status": "unused"}).json()["coupons"] == []

    unused = client.post(f"{API}/coupons/{coupon_id}/unuse").json()
    assert unused["used"] is False
    assert unused["usedAt"] is None

    assert client.delete(f"{API}/coupons/{coupon_id}").status_code == 200
    assert client.delete(f"{API}/coupons/{coupon_id}").status_code == 404
    assert client.post(f"{API}/coupons/{coupon_id}/use").status_code == 404


def test_coupon_generate_and_logs(client):
    response = client.post(f"{API}/coupons/generate", json={"count": 3, "discount": 15, "prefix": "rt"})

    assert response.status_code == 201
    coupons = response.json()["coupons"]
    assert len(coupons) == 3
    assert all(c["code"].startswith("RT") and len(c["code"]) == 10 for c in coupons)
    assert len({c["code"] for c in coupons}) == 3

    logs = client.get(f"{API}/coupons/logs").json()
    assert logs[0]["type"] == "generate"
    assert logs[0]["count"] == 3


def test_coupon_list_rejects_unknown_status(client):
    response = client.get(f"{API}/coupons", params={"status": "expired"})

    assert response.status_code == 422


# Service


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_process_time_header(client):
    response = client.get("/")

    assert "X-Process-Time" in response.headers

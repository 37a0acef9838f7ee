from datetime import date

import pytest

from treasury.core.errors import ValidationError
from treasury.services import reminders as reminder_service
from treasury.services.reminders import build_reminder_message, dues_needing_reminder, send_monthly_reminders


class RecordingSender:
    def __init__(self, fail_for=(), result=None):
        self.fail_for = set(fail_for)
        self.result = result
        self.calls = []

    def __call__(self, recipient, *content):
        self.calls.append(recipient)
        if recipient in self.fail_for:
            raise RuntimeError(f"delivery to {recipient} failed")
        return self.result


def test_dues_needing_reminder_skips_paid(db_session, create_organization, create_member, create_dues):
    organization = create_organization()
    unpaid = create_member(organization, "Budi", email="budi@example.com")
    partial = create_member(organization, "Andi", phone="+628111")
    paid = create_member(organization, "Citra")
    create_dues(unpaid, 3, 2025)
    create_dues(partial, 3, 2025, payments=(10000,))
    create_dues(paid, 3, 2025, payments=(50000,))

    candidates = dues_needing_reminder(db_session, organization.id, 3, 2025)

    assert [candidate.member.full_name for candidate in candidates] == ["Andi", "Budi"]
    assert [candidate.remaining_amount for candidate in candidates] == [40000, 50000]


def test_one_failed_delivery_does_not_stop_the_run(db_session, create_organization, create_member, create_dues):
    organization = create_organization()
    first = create_member(organization, "Andi", email="andi@example.com", phone="+628111")
    second = create_member(organization, "Budi", email="budi@example.com")
    third = create_member(organization, "Citra", email="citra@example.com")
    for member in (first, second, third):
        create_dues(member, 3, 2025)

    email_sender = RecordingSender(fail_for={"budi@example.com"})
    whatsapp_sender = RecordingSender(result={"messages": [{"id": "wamid.1"}]})

    result = send_monthly_reminders(
        db_session,
        organization.id,
        month=3,
        year=2025,
        email_sender=email_sender,
        whatsapp_sender=whatsapp_sender,
    )

    assert email_sender.calls == ["andi@example.com", "budi@example.com", "citra@example.com"]
    assert whatsapp_sender.calls == ["+628111"]
    assert result.ok is True
    assert result.sent == 3
    assert result.failed == 1
    assert (result.month, result.year) == (3, 2025)


def test_unconfigured_whatsapp_is_not_counted(db_session, create_organization, create_member, create_dues):
    organization = create_organization()
    member = create_member(organization, "Andi", phone="+628111")
    create_dues(member, 3, 2025)

    result = send_monthly_reminders(
        db_session,
        organization.id,
        month=3,
        year=2025,
        email_sender=RecordingSender(),
        whatsapp_sender=RecordingSender(result=None),
    )

    assert result.sent == 0
    assert result.failed == 0


def test_period_defaults_to_today(db_session, create_organization, create_member, create_dues):
    organization = create_organization()
    member = create_member(organization, "Andi", email="andi@example.com")
    create_dues(member, 8, 2025)
    sender = RecordingSender()

    result = send_monthly_reminders(
        db_session,
        organization.id,
        today=date(2025, 8, 20),
        email_sender=sender,
        whatsapp_sender=RecordingSender(),
    )

    assert (result.month, result.year) == (8, 2025)
    assert sender.calls == ["andi@example.com"]


@pytest.mark.parametrize("month, year", [(0, 2025), (13, 2025), (3, 0)])
def test_zero_or_out_of_range_period_is_rejected_without_sending(
    db_session, create_organization, create_member, create_dues, month, year
):
    organization = create_organization()
    member = create_member(organization, "Andi", email="andi@example.com", phone="+628111")
    create_dues(member, 3, 2025)
    email_sender = RecordingSender()
    whatsapp_sender = RecordingSender(result={"messages": [{"id": "wamid.1"}]})

    with pytest.raises(ValidationError):
        send_monthly_reminders(
            db_session,
            organization.id,
            month=month,
            year=year,
            today=date(2025, 3, 10),
            email_sender=email_sender,
            whatsapp_sender=whatsapp_sender,
        )

    assert email_sender.calls == []
    assert whatsapp_sender.calls == []


def test_reminder_message_escapes_name(db_session, create_organization, create_member, create_dues):
    organization = create_organization()
    member = create_member(organization, "<Andi>", email="andi@example.com")
    create_dues(member, 3, 2025)
    candidate = dues_needing_reminder(db_session, organization.id, 3, 2025)[0]

    subject, text, html = build_reminder_message(candidate, "IDR")

    assert subject == "Pengingat iuran bulan 3/2025"
    assert "IDR 50.000" in text
    assert "&lt;Andi&gt;" in html


def test_reminder_endpoint_requires_write_role(
    db_session, create_organization, create_user, create_membership, client_as
):
    organization = create_organization()
    viewer = create_user()
    create_membership(viewer, organization, role="VIEWER")

    response = client_as(viewer).post("/reminders/monthly", json={"organization_id": organization.id})

    assert response.status_code == 403


def test_reminder_endpoint_reports_counts(
    db_session, create_organization, create_user, create_membership, create_member, create_dues, client_as, monkeypatch
):
    organization = create_organization()
    treasurer = create_user()
    create_membership(treasurer, organization, role="TREASURER")
    member = create_member(organization, "Andi", email="andi@example.com")
    create_dues(member, 3, 2025)
    sender = RecordingSender()
    monkeypatch.setattr(reminder_service, "send_email", sender)

    response = client_as(treasurer).post(
        "/reminders/monthly", json={"organization_id": organization.id, "month": 3, "year": 2025}
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True, "sent": 1, "failed": 0, "month": 3, "year": 2025}
    assert sender.calls == ["andi@example.com"]

from datetime import date, datetime

import pytest

from treasury.core.errors import ValidationError
from treasury.models.models import Payment, Transaction
from treasury.services.reports import generate_transactions_report, organization_summary
from treasury.services.transactions import create_transaction, list_transactions, update_transaction


def test_transactions_are_listed_newest_first(db_session, create_organization):
    organization = create_organization()
    create_transaction(db_session, organization.id, "INCOME", 100000, occurred_at=datetime(2025, 1, 5))
    create_transaction(db_session, organization.id, "expense", 25000, occurred_at=datetime(2025, 2, 1))

    rows = list_transactions(db_session, organization.id)

    assert [row.type for row in rows] == ["EXPENSE", "INCOME"]


@pytest.mark.parametrize("kind,amount", [("GIFT", 1000), ("INCOME", 0)])
def test_transaction_validation(db_session, create_organization, kind, amount):
    organization = create_organization()

    with pytest.raises(ValidationError):
        create_transaction(db_session, organization.id, kind, amount)
    assert db_session.query(Transaction).count() == 0


def test_update_transaction_revalidates(db_session, create_organization):
    organization = create_organization()
    transaction = create_transaction(db_session, organization.id, "INCOME", 1000)

    with pytest.raises(ValidationError):
        update_transaction(db_session, transaction.id, {"amount": -1})
    assert update_transaction(db_session, transaction.id, {"category": "donasi"}).category == "donasi"


def test_summary_combines_ledger_and_dues(db_session, create_organization, create_member, create_dues):
    organization = create_organization()
    paid = create_member(organization, "Andi")
    create_member(organization, "Budi")
    create_transaction(db_session, organization.id, "INCOME", 100000, occurred_at=datetime(2025, 1, 5))
    create_transaction(db_session, organization.id, "EXPENSE", 30000, occurred_at=datetime(2025, 1, 6))
    dues = create_dues(paid, 3, 2025, payments=(20000,))
    payment = db_session.query(Payment).filter(Payment.dues_id == dues.id).one()
    payment.paid_at = datetime(2025, 3, 10)
    db_session.commit()

    summary = organization_summary(db_session, organization.id, today=date(2025, 3, 15))

    assert summary.income == 120000
    assert summary.expense == 30000
    assert summary.balance == 90000
    assert summary.total_unpaid_amount == 30000
    assert len(summary.monthly_arrears) == 12
    march = summary.monthly_arrears[-1]
    assert (march.month, march.year) == (3, 2025)
    assert march.unpaid_amount == 30000 + 50000
    april_last_year = summary.monthly_arrears[0]
    assert (april_last_year.month, april_last_year.year) == (4, 2024)
    assert april_last_year.unpaid_amount == 100000


def test_transactions_csv_report(db_session, create_organization):
    organization = create_organization("RT 05")
    create_transaction(db_session, organization.id, "INCOME", 1000, category="kas", occurred_at=datetime(2025, 1, 5))

    report = generate_transactions_report(db_session, organization.id, as_of=date(2025, 1, 31))

    assert report.filename == "transactions_RT_05_2025-01-31.csv"
    assert report.content.splitlines()[0] == "id,type,amount,category,occurred_at,note,created_by"


def test_transaction_api_records_creator(
    db_session, create_organization, create_user, create_membership, client_as
):
    organization = create_organization()
    treasurer = create_user(name="Sari")
    create_membership(treasurer, organization, role="TREASURER")
    client = client_as(treasurer)

    response = client.post(
        "/transactions",
        json={"organization_id": organization.id, "type": "EXPENSE", "amount": 15000, "category": "kebersihan"},
    )

    assert response.status_code == 201
    assert response.json()["created_by_name"] == "Sari"
    listing = client.get("/transactions", params={"organization_id": organization.id})
    assert [row["amount"] for row in listing.json()] == [15000]


def test_summary_endpoint(db_session, create_organization, create_user, create_membership, client_as):
    organization = create_organization()
    viewer = create_user()
    create_membership(viewer, organization, role="VIEWER")

    response = client_as(viewer).get("/reports/summary", params={"organization_id": organization.id})

    assert response.status_code == 200
    body = response.json()
    assert body["balance"] == 0
    assert len(body["monthly_arrears"]) == 12

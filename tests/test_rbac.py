import pytest

from treasury.auth.access import authorize
from treasury.constants import WRITE_ROLES
from treasury.core.errors import AccessDenied, NotFound
from treasury.models.models import Dues, Member


def test_authorize_requires_membership(db_session, create_organization, create_user, create_membership):
    organization = create_organization("RT 05")
    other = create_organization("RT 06")
    user = create_user()
    create_membership(user, other, role="ADMIN")

    with pytest.raises(AccessDenied):
        authorize(db_session, user, organization.id)


def test_authorize_checks_role(db_session, create_organization, create_user, create_membership):
    organization = create_organization()
    viewer = create_user()
    create_membership(viewer, organization, role="VIEWER")

    assert authorize(db_session, viewer, organization.id).role == "VIEWER"
    with pytest.raises(AccessDenied):
        authorize(db_session, viewer, organization.id, WRITE_ROLES)


def test_authorize_unknown_organization(db_session, create_user):
    with pytest.raises(NotFound):
        authorize(db_session, create_user(), 999)


def test_authorize_requires_organization(db_session, create_user):
    with pytest.raises(AccessDenied):
        authorize(db_session, create_user(), None)


def test_treasurer_cannot_delete_members(
    db_session, create_organization, create_user, create_membership, create_member, client_as
):
    organization = create_organization()
    treasurer = create_user()
    create_membership(treasurer, organization, role="TREASURER")
    member = create_member(organization)

    response = client_as(treasurer).delete(f"/members/{member.id}")

    assert response.status_code == 403
    assert db_session.get(Member, member.id) is not None


def test_outsider_gets_403_before_any_write(
    db_session, create_organization, create_user, create_membership, create_member, client_as
):
    organization = create_organization("RT 05")
    other = create_organization("RT 06")
    outsider = create_user()
    create_membership(outsider, other, role="ADMIN")
    create_member(organization)
    client = client_as(outsider)

    unpaid = client.get("/dues/unpaid", params={"organization_id": organization.id, "month": 3, "year": 2025})
    batch = client.post(
        "/dues", json={"organization_id": organization.id, "month": 3, "year": 2025, "amount": 50000}
    )

    assert unpaid.status_code == 403
    assert batch.status_code == 403
    assert unpaid.json()["detail"] == "Access denied to organization"
    assert db_session.query(Dues).count() == 0


def test_viewer_cannot_record_payments(
    db_session, create_organization, create_user, create_membership, create_member, create_dues, client_as
):
    organization = create_organization()
    viewer = create_user()
    create_membership(viewer, organization, role="VIEWER")
    dues = create_dues(create_member(organization), 3, 2025)

    response = client_as(viewer).post("/payments", json={"dues_id": dues.id, "amount": 10000})

    assert response.status_code == 403
    assert response.json()["detail"] == "Operation not permitted for your role"


def test_missing_records_are_404(db_session, create_organization, create_user, create_membership, client_as):
    organization = create_organization()
    admin = create_user()
    create_membership(admin, organization, role="ADMIN")
    client = client_as(admin)

    assert client.get("/dues/outstanding/999").status_code == 404
    assert client.get("/dues/unpaid", params={"organization_id": 999}).status_code == 404
    assert client.delete("/payments/dues/999").status_code == 404

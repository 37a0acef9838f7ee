import pytest

from scripts import send_monthly_reminders as reminder_script
from treasury.core.errors import StoreError
from treasury.services.reminders import ReminderRunResult


def test_one_failing_organization_does_not_stop_the_others(
    session_factory, create_organization, monkeypatch, capsys
):
    first = create_organization("RT 01")
    broken = create_organization("RT 02")
    last = create_organization("RT 03")
    calls = []

    def fake_send(session, organization_id, month=None, year=None):
        calls.append(organization_id)
        if organization_id == broken.id:
            raise StoreError()
        return ReminderRunResult(ok=True, sent=2, failed=0, month=month, year=year)

    monkeypatch.setattr(reminder_script, "SessionLocal", session_factory)
    monkeypatch.setattr(reminder_script, "send_monthly_reminders", fake_send)

    exit_code = reminder_script.main(["--month", "3", "--year", "2025"])

    assert calls == [first.id, broken.id, last.id]
    assert exit_code == 1
    output = capsys.readouterr().out
    assert f"Organization {broken.id}: reminder run failed" in output
    assert f"Organization {last.id} 03/2025: sent=2 failed=0" in output


def test_month_zero_is_rejected_by_the_parser():
    with pytest.raises(SystemExit):
        reminder_script.main(["--month", "0"])

"""Tests for digest rendering."""

from datetime import date

from models.obligation import Obligation, ObligationKind
from services import digest_service


def _bill(name, amount, due, paid=False, category="Utilities"):
    return Obligation(
        owner_id=1, kind=ObligationKind.BILL, name=name, amount=amount,
        due_date=due, is_paid=paid, category_name=category,
    )


def _income(amount, due):
    return Obligation(owner_id=1, kind=ObligationKind.INCOME, name="Salary", amount=amount, due_date=due)


class TestPeriods:

    def test_week_runs_sunday_to_saturday(self):
        assert digest_service.week_bounds(date(2024, 3, 6)) == (date(2024, 3, 3), date(2024, 3, 9))
        assert digest_service.week_bounds(date(2024, 3, 3)) == (date(2024, 3, 3), date(2024, 3, 9))
        assert digest_service.week_bounds(date(2024, 3, 9)) == (date(2024, 3, 3), date(2024, 3, 9))

    def test_month_bounds(self):
        assert digest_service.month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))
        assert digest_service.previous_month_bounds(date(2024, 1, 1)) == (date(2023, 12, 1), date(2023, 12, 31))


class TestDigests:

    def test_format_amount(self):
        assert digest_service.format_amount(1234.5) == "$1,234.50"
        assert digest_service.format_amount(-20) == "$-20.00"

    def test_due_digest(self):
        message = digest_service.due_digest([_bill("Water", 50, date(2024, 3, 10))], date(2024, 3, 10))

        assert message.subject == "Upcoming Bills Reminder"
        assert message.body == "You have 1 bill(s) due on Mar 10, 2024:\n\n- Water (Utilities): $50.00"

    def test_overdue_digest_uses_uncategorized(self):
        message = digest_service.overdue_digest([_bill("Gym", 30, date(2024, 2, 1), category=None)])

        assert message.subject == "Overdue Bills Alert"
        assert "- Gym (Uncategorized): $30.00 - Due: Feb 01, 2024" in message.body

    def test_weekly_digest(self):
        today = date(2024, 3, 3)
        bills = [_bill("Water", 50, date(2024, 3, 4), paid=True), _bill("Power", 80, date(2024, 3, 8))]
        upcoming = [_bill("Rent", 1200, date(2024, 3, 15), category="Housing")]

        message = digest_service.weekly_digest(today, bills, [_income(2000, date(2024, 3, 5))], upcoming)

        assert message.subject == "Weekly Financial Summary - Mar 3 to Mar 09, 2024"
        assert "Total Income: $2,000.00" in message.body
        assert "Net: $1,870.00" in message.body
        assert "- Paid (1): $50.00" in message.body
        assert "- Unpaid (1): $80.00" in message.body
        assert "- Power (Utilities): $80.00 - Due: Mar 8" in message.body
        assert "Upcoming Bills Next Week (1):\n- Rent (Housing): $1,200.00 - Due: Mar 15" in message.body

    def test_monthly_digest(self):
        today = date(2024, 3, 1)
        bills = [
            _bill("Water", 50, date(2024, 3, 10), paid=True),
            _bill("Power", 80, date(2024, 3, 12)),
            _bill("Rent", 1200, date(2024, 3, 1), category="Housing"),
        ]

        message = digest_service.monthly_digest(
            today, bills, [_income(3000, date(2024, 3, 1))],
            [_bill("Water", 45, date(2024, 2, 10))], [_income(3100, date(2024, 2, 1))],
        )

        assert message.subject == "Monthly Financial Summary - March 2024"
        assert "Income: $3,000.00 (↓ $100.00)" in message.body
        assert "Bills: $1,330.00 (↑ $1,285.00)" in message.body
        assert "- Utilities: $130.00 (2 bills)" in message.body
        assert "- Housing: $1,200.00 (1 bills)" in message.body
        assert message.body.endswith(
            "Unpaid Bills:\n- Power (Utilities): $80.00 - Due: Mar 12\n- Rent (Housing): $1,200.00 - Due: Mar 1"
        )

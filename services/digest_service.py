"""
services/digest_service.py
--------------------------
Renders the plain-text digests sent by the notification scheduler.

Every builder is pure: it receives the obligations already selected by
the scheduler and returns a Message. No database access happens here.
"""

from collections import OrderedDict
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from config import DEFAULT_CURRENCY
from models.notification import Message
from models.obligation import Obligation

UNCATEGORIZED = "Uncategorized"


# ── PERIODS ───────────────────────────────────────────────

def week_bounds(today: date) -> tuple[date, date]:
    """Sunday..Saturday week containing ``today``."""
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def month_bounds(today: date) -> tuple[date, date]:
    start = today.replace(day=1)
    return start, start + relativedelta(months=1, days=-1)


def previous_month_bounds(today: date) -> tuple[date, date]:
    return month_bounds(today.replace(day=1) - timedelta(days=1))


# ── FORMATTING ────────────────────────────────────────────

def format_amount(amount: float, currency: str = DEFAULT_CURRENCY) -> str:
    """Format a money amount, e.g. ``$1,234.50``."""
    if currency == "USD":
        return f"${amount:,.2f}"
    return f"{amount:,.2f} {currency}"


def _long_date(d: date) -> str:
    return d.strftime("%b %d, %Y")


def _short_date(d: date) -> str:
    return f"{d:%b} {d.day}"


def _total(items: list[Obligation]) -> float:
    return sum(o.amount for o in items)


def _bill_line(bill: Obligation, with_due: bool = True, long_date: bool = False) -> str:
    line = f"- {bill.name} ({bill.category_name or UNCATEGORIZED}): {format_amount(bill.amount)}"
    if with_due:
        line += f" - Due: {_long_date(bill.due_date) if long_date else _short_date(bill.due_date)}"
    return line


# ── DIGESTS ───────────────────────────────────────────────

def due_digest(bills: list[Obligation], due_day: date) -> Message:
    """Reminder for unpaid bills falling due on ``due_day``."""
    lines = [_bill_line(b, with_due=False) for b in bills]
    return Message(
        subject="Upcoming Bills Reminder",
        body=f"You have {len(bills)} bill(s) due on {_long_date(due_day)}:\n\n" + "\n".join(lines),
    )


def overdue_digest(bills: list[Obligation]) -> Message:
    """Alert listing unpaid bills whose due date has passed."""
    lines = [_bill_line(b, long_date=True) for b in bills]
    return Message(
        subject="Overdue Bills Alert",
        body=f"You have {len(bills)} overdue bill(s):\n\n" + "\n".join(lines),
    )


def weekly_digest(
    today: date,
    bills: list[Obligation],
    incomes: list[Obligation],
    upcoming: list[Obligation],
) -> Message:
    """
    Summary of the current Sunday..Saturday week.

    Args:
        today: Any day of the week being summarised.
        bills: Bills due this week, paid or not.
        incomes: Income entries dated this week.
        upcoming: Unpaid bills due next week.
    """
    week_start, week_end = week_bounds(today)
    total_bills = _total(bills)
    total_income = _total(incomes)
    paid = [b for b in bills if b.is_paid]
    unpaid = [b for b in bills if not b.is_paid]

    parts = [
        "Weekly Summary:",
        "",
        f"Total Income: {format_amount(total_income)}",
        f"Total Bills: {format_amount(total_bills)}",
        f"Net: {format_amount(total_income - total_bills)}",
        "",
        "Bills This Week:",
        f"- Paid ({len(paid)}): {format_amount(_total(paid))}",
        f"- Unpaid ({len(unpaid)}): {format_amount(_total(unpaid))}",
    ]
    if unpaid:
        parts += ["", "Unpaid Bills:"] + [_bill_line(b) for b in unpaid]
    parts += ["", f"Upcoming Bills Next Week ({len(upcoming)}):"] + [_bill_line(b) for b in upcoming]

    return Message(
        subject=f"Weekly Financial Summary - {_short_date(week_start)} to {_long_date(week_end)}",
        body="\n".join(parts).strip(),
    )


def _trend(current: float, previous: float) -> str:
    arrow = "↑" if current > previous else "↓"
    return f"{format_amount(current)} ({arrow} {format_amount(abs(current - previous))})"


def monthly_digest(
    today: date,
    bills: list[Obligation],
    incomes: list[Obligation],
    last_bills: list[Obligation],
    last_incomes: list[Obligation],
) -> Message:
    """
    Summary of the calendar month containing ``today`` compared with the
    previous month, with bills grouped by category.
    """
    month_start, _ = month_bounds(today)
    total_bills = _total(bills)
    total_income = _total(incomes)

    by_category: "OrderedDict[str, list[Obligation]]" = OrderedDict()
    for bill in bills:
        by_category.setdefault(bill.category_name or UNCATEGORIZED, []).append(bill)

    parts = [
        "Monthly Summary:",
        "",
        f"Total Income: {format_amount(total_income)}",
        f"Total Bills: {format_amount(total_bills)}",
        f"Net: {format_amount(total_income - total_bills)}",
        "",
        "Comparison to Last Month:",
        f"Income: {_trend(total_income, _total(last_incomes))}",
        f"Bills: {_trend(total_bills, _total(last_bills))}",
        "",
        "Bills by Category:",
    ]
    parts += [
        f"- {name}: {format_amount(_total(items))} ({len(items)} bills)"
        for name, items in by_category.items()
    ]
    parts += ["", "Unpaid Bills:"] + [_bill_line(b) for b in bills if not b.is_paid]

    return Message(
        subject=f"Monthly Financial Summary - {month_start:%B %Y}",
        body="\n".join(parts).strip(),
    )

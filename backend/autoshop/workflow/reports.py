"""Project completion reports and their plain-text form.

A submitted report is stored inside the project description after the
report delimiter. The text layout is read back by customer and admin
screens, so the labels below must stay byte-for-byte stable:

    --- Project Report ---
    Submitted by: <name>
    Date: <YYYY-MM-DD>
    Completed Services: <names joined by ", "> (<CUR> <services cost>)
    Extra Charges Total: <CUR> <extra charges total>
    Extra Charges Details:
    - <description>: <CUR> <amount>
    Notes: <notes>

``Extra Charges Details`` is present only when there are valid charges and
``Notes`` only when notes are non-empty. Notes always come last and may
span several lines.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from autoshop.config import settings
from autoshop.schemas.task import TaskRead
from autoshop.workflow.assignment import dedupe_ids
from autoshop.workflow.errors import ValidationError

REPORT_DELIMITER = "--- Project Report ---"

SUBMITTED_BY = "Submitted by:"
DATE = "Date:"
COMPLETED_SERVICES = "Completed Services:"
EXTRA_CHARGES_TOTAL = "Extra Charges Total:"
EXTRA_CHARGES_DETAILS = "Extra Charges Details:"
NOTES = "Notes:"

_CENTS = Decimal("0.01")
_MONEY = r"(?P<currency>\S+) (?P<amount>-?\d+(?:\.\d+)?)"
_SERVICES_RE = re.compile(rf"^{re.escape(COMPLETED_SERVICES)} (?P<names>.*) \({_MONEY}\)$")
_TOTAL_RE = re.compile(rf"^{re.escape(EXTRA_CHARGES_TOTAL)} {_MONEY}$")
_BULLET_RE = re.compile(rf"^- (?P<description>.*): {_MONEY}$")


def to_cents(amount: Any) -> Decimal:
    return Decimal(str(amount)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal, currency: str) -> str:
    return f"{currency} {to_cents(amount)}"


@dataclass(frozen=True)
class Charge:
    description: str
    amount: Decimal


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def valid_charges(extra_charges: Optional[Iterable[Any]]) -> Tuple[Charge, ...]:
    """Keep the charges with a description and an amount of at least one cent.

    Amounts are rounded to cents here so the totals match the report text.
    """
    kept = []
    for item in extra_charges or ():
        description = " ".join(str(_field(item, "description") or "").split())
        try:
            amount = Decimal(str(_field(item, "amount")))
            if not amount.is_finite():
                continue
            amount = to_cents(amount)
        except (InvalidOperation, ValueError):
            continue
        if description and amount > 0:
            kept.append(Charge(description=description, amount=amount))
    return tuple(kept)


@dataclass(frozen=True)
class Report:
    submitted_by: str
    submitted_on: date
    service_names: Tuple[str, ...]
    services_cost: Decimal
    total_hours: Decimal
    extra_charges: Tuple[Charge, ...] = ()
    notes: Optional[str] = None

    @property
    def extra_charges_total(self) -> Decimal:
        return sum((charge.amount for charge in self.extra_charges), Decimal("0"))

    @property
    def total_cost(self) -> Decimal:
        return self.services_cost + self.extra_charges_total

    def to_text(self, currency: Optional[str] = None) -> str:
        currency = currency or settings.currency_code
        lines = [
            REPORT_DELIMITER,
            f"{SUBMITTED_BY} {self.submitted_by}",
            f"{DATE} {self.submitted_on.isoformat()}",
            f"{COMPLETED_SERVICES} {', '.join(self.service_names)} "
            f"({format_money(self.services_cost, currency)})",
            f"{EXTRA_CHARGES_TOTAL} {format_money(self.extra_charges_total, currency)}",
        ]
        if self.extra_charges:
            lines.append(EXTRA_CHARGES_DETAILS)
            lines.extend(
                f"- {charge.description}: {format_money(charge.amount, currency)}"
                for charge in self.extra_charges
            )
        if self.notes:
            lines.append(f"{NOTES} {self.notes}")
        return "\n".join(lines)


def build_report(
    selected_task_ids: Sequence[int],
    all_tasks: Iterable[TaskRead],
    extra_charges: Optional[Iterable[Any]] = None,
    notes: Optional[str] = None,
    submitted_by: str = "Employee",
    submitted_on: Optional[date] = None,
) -> Report:
    selected = dedupe_ids(selected_task_ids)
    if not selected:
        raise ValidationError("select at least one completed service")

    by_id = {task.task_id: task for task in all_tasks}
    missing = [task_id for task_id in selected if task_id not in by_id]
    if missing:
        raise ValidationError("unknown services selected", task_ids=missing)

    tasks = [by_id[task_id] for task_id in selected]
    notes = (notes or "").strip()
    return Report(
        submitted_by=submitted_by,
        submitted_on=submitted_on or date.today(),
        service_names=tuple(task.name for task in tasks),
        services_cost=sum((to_cents(task.estimated_cost) for task in tasks), Decimal("0")),
        total_hours=sum((Decimal(task.estimated_hours) for task in tasks), Decimal("0")),
        extra_charges=valid_charges(extra_charges),
        notes=notes or None,
    )


# ---------------- PARSING ----------------


@dataclass
class ParsedReport:
    submitted_by: Optional[str] = None
    submitted_on: Optional[str] = None
    service_names: List[str] = field(default_factory=list)
    services_cost: Optional[Decimal] = None
    extra_charges_total: Optional[Decimal] = None
    extra_charges: List[Charge] = field(default_factory=list)
    notes: Optional[str] = None
    currency: Optional[str] = None


def split_description(description: Optional[str]) -> Tuple[str, Optional[str]]:
    """Split a project description into its free text and its report block."""
    description = description or ""
    index = description.find(REPORT_DELIMITER)
    if index < 0:
        return description, None
    return description[:index].rstrip(), description[index:]


def attach_report(description: Optional[str], report_text: str) -> str:
    """Put ``report_text`` after the free text, replacing any earlier report."""
    body, _ = split_description(description)
    body = body.rstrip()
    return f"{body}\n\n{report_text}" if body else report_text


def parse_report(text: str) -> ParsedReport:
    """Read a report block, or a whole description containing one."""
    _, block = split_description(text)
    if block is None:
        raise ValidationError("no project report found")

    parsed = ParsedReport()
    lines = block.split("\n")[1:]
    for index, line in enumerate(lines):
        if line.startswith(NOTES):
            rest = "\n".join([line[len(NOTES):]] + lines[index + 1:])
            parsed.notes = rest[1:] if rest.startswith(" ") else rest
            parsed.notes = parsed.notes.rstrip("\n")
            break

        if line.startswith(SUBMITTED_BY):
            parsed.submitted_by = line[len(SUBMITTED_BY):].strip()
        elif line.startswith(DATE):
            parsed.submitted_on = line[len(DATE):].strip()
        elif line.startswith(COMPLETED_SERVICES):
            match = _SERVICES_RE.match(line)
            if match:
                parsed.service_names = match.group("names").split(", ")
                parsed.services_cost = Decimal(match.group("amount"))
                parsed.currency = match.group("currency")
        elif line.startswith(EXTRA_CHARGES_TOTAL):
            match = _TOTAL_RE.match(line)
            if match:
                parsed.extra_charges_total = Decimal(match.group("amount"))
        elif line.startswith("- "):
            match = _BULLET_RE.match(line)
            if match:
                parsed.extra_charges.append(
                    Charge(description=match.group("description"), amount=Decimal(match.group("amount")))
                )
    return parsed

from datetime import date
from decimal import Decimal

import pytest

from autoshop.schemas.report import ExtraCharge
from autoshop.schemas.task import TaskRead
from autoshop.workflow.errors import ValidationError
from autoshop.workflow.reports import (
    REPORT_DELIMITER,
    Charge,
    attach_report,
    build_report,
    format_money,
    parse_report,
    split_description,
    valid_charges,
)


def _tasks():
    return [
        TaskRead(task_id=1, name="Oil change", estimated_cost=Decimal("100"), estimated_hours=Decimal("2")),
        TaskRead(task_id=2, name="Brake pads", estimated_cost=Decimal("50"), estimated_hours=Decimal("1")),
        TaskRead(task_id=3, name="Wheel alignment", estimated_cost=Decimal("75.5"), estimated_hours=Decimal("1.5")),
    ]


def test_report_totals_skip_invalid_charges():
    report = build_report(
        [1, 2],
        _tasks(),
        extra_charges=[
            {"description": "part", "amount": 20},
            {"description": "", "amount": 5},
        ],
        submitted_on=date(2026, 3, 2),
    )

    assert report.services_cost == Decimal("150")
    assert report.extra_charges_total == Decimal("20")
    assert report.total_cost == Decimal("170")
    assert report.total_hours == Decimal("3")
    assert report.extra_charges == (Charge(description="part", amount=Decimal("20")),)


def test_report_text_layout():
    report = build_report(
        [1, 2],
        _tasks(),
        extra_charges=[ExtraCharge(description="part", amount=Decimal("20"))],
        notes="  Rotate tyres next visit  ",
        submitted_by="Nimal Perera",
        submitted_on=date(2026, 3, 2),
    )

    assert report.to_text(currency="LKR") == "\n".join(
        [
            "--- Project Report ---",
            "Submitted by: Nimal Perera",
            "Date: 2026-03-02",
            "Completed Services: Oil change, Brake pads (LKR 150.00)",
            "Extra Charges Total: LKR 20.00",
            "Extra Charges Details:",
            "- part: LKR 20.00",
            "Notes: Rotate tyres next visit",
        ]
    )


def test_report_without_charges_or_notes_omits_those_sections():
    text = build_report([3], _tasks(), submitted_on=date(2026, 3, 2)).to_text(currency="LKR")

    assert "Extra Charges Details:" not in text
    assert "Notes:" not in text
    assert text.endswith("Extra Charges Total: LKR 0.00")


def test_report_needs_known_selection():
    with pytest.raises(ValidationError):
        build_report([], _tasks())
    with pytest.raises(ValidationError) as excinfo:
        build_report([1, 8], _tasks())
    assert excinfo.value.details["task_ids"] == [8]


@pytest.mark.parametrize(
    "charge",
    [
        {"description": "   ", "amount": 10},
        {"description": "labour", "amount": 0},
        {"description": "labour", "amount": -4},
        {"description": "labour", "amount": "abc"},
        {"description": "labour", "amount": None},
    ],
)
def test_invalid_charges_are_dropped(charge):
    assert valid_charges([charge]) == ()


def test_charge_description_whitespace_is_collapsed():
    assert valid_charges([{"description": "  brake   fluid ", "amount": "12.5"}]) == (
        Charge(description="brake fluid", amount=Decimal("12.5")),
    )


def test_money_rounds_half_up():
    assert format_money(Decimal("10.005"), "LKR") == "LKR 10.01"
    assert format_money(Decimal("7"), "USD") == "USD 7.00"


def test_parse_reads_back_every_field():
    report = build_report(
        [1, 3],
        _tasks(),
        extra_charges=[{"description": "part", "amount": 20}, {"description": "disposal", "amount": "4.5"}],
        notes="Line one\nLine two",
        submitted_by="Kamal",
        submitted_on=date(2026, 3, 2),
    )
    description = attach_report("Customer asked for a quote", report.to_text(currency="LKR"))

    parsed = parse_report(description)

    assert parsed.submitted_by == "Kamal"
    assert parsed.submitted_on == "2026-03-02"
    assert parsed.service_names == ["Oil change", "Wheel alignment"]
    assert parsed.services_cost == Decimal("175.50")
    assert parsed.extra_charges_total == Decimal("24.50")
    assert parsed.extra_charges == [
        Charge(description="part", amount=Decimal("20.00")),
        Charge(description="disposal", amount=Decimal("4.50")),
    ]
    assert parsed.notes == "Line one\nLine two"
    assert parsed.currency == "LKR"


def test_notes_that_look_like_report_lines_stay_in_notes():
    report = build_report(
        [1], _tasks(), notes="see below\n- bolt: LKR 1.00", submitted_on=date(2026, 3, 2)
    )

    parsed = parse_report(report.to_text(currency="LKR"))

    assert parsed.extra_charges == []
    assert parsed.notes == "see below\n- bolt: LKR 1.00"


def test_parse_without_delimiter_fails():
    with pytest.raises(ValidationError):
        parse_report("Just a description")


def test_attaching_a_new_report_replaces_the_old_one():
    first = build_report([1], _tasks(), submitted_on=date(2026, 3, 1)).to_text(currency="LKR")
    second = build_report([2], _tasks(), submitted_on=date(2026, 3, 2)).to_text(currency="LKR")

    description = attach_report(attach_report("Body", first), second)

    assert description.count(REPORT_DELIMITER) == 1
    body, block = split_description(description)
    assert body == "Body"
    assert block == second
    assert attach_report(None, second) == second


def test_sub_cent_amounts_read_back_unchanged():
    tasks = _tasks() + [
        TaskRead(task_id=4, name="Coolant flush", estimated_cost=Decimal("10.005"), estimated_hours=Decimal("1"))
    ]
    report = build_report(
        [4],
        tasks,
        extra_charges=[{"description": "part", "amount": "12.345"}, {"description": "washer", "amount": "0.001"}],
        submitted_on=date(2026, 3, 2),
    )

    parsed = parse_report(report.to_text(currency="LKR"))

    assert report.services_cost == parsed.services_cost == Decimal("10.01")
    assert report.extra_charges_total == parsed.extra_charges_total == Decimal("12.35")
    assert report.extra_charges == tuple(parsed.extra_charges)
    assert [charge.description for charge in report.extra_charges] == ["part"]
    assert report.total_cost == Decimal("22.36")


def test_charge_rounding_to_zero_is_dropped():
    assert valid_charges([{"description": "washer", "amount": "0.004"}]) == ()
    assert valid_charges([{"description": "washer", "amount": "0.005"}]) == (
        Charge(description="washer", amount=Decimal("0.01")),
    )

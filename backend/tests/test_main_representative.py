import pytest

from autoshop.workflow.assignment import RequiresChoice, dedupe_ids, resolve_main_representative
from autoshop.workflow.errors import ValidationError


def test_single_employee_is_the_main_representative():
    assert resolve_main_representative([7]) == 7
    # Duplicates collapse to one employee
    assert resolve_main_representative([7, 7]) == 7


def test_explicit_choice_wins_when_selected():
    assert resolve_main_representative([3, 7], explicit_choice=7, previous_main_rep=3) == 7


def test_explicit_choice_outside_selection_is_ignored():
    assert resolve_main_representative([3, 7], explicit_choice=9, previous_main_rep=3) == 3


def test_previous_main_representative_is_kept_while_still_selected():
    assert resolve_main_representative([3, 7], previous_main_rep=7) == 7


def test_several_employees_without_a_choice_need_the_caller_to_pick():
    resolved = resolve_main_representative([3, 7])
    assert resolved == RequiresChoice(candidates=(3, 7), suggested=3)


def test_previous_main_representative_removed_from_selection():
    resolved = resolve_main_representative([5, 7], previous_main_rep=3)
    assert isinstance(resolved, RequiresChoice)
    assert resolved.suggested == 5


def test_empty_selection_is_rejected():
    with pytest.raises(ValidationError):
        resolve_main_representative([])


def test_dedupe_keeps_first_occurrence_order():
    assert dedupe_ids([4, 2, 4, 9, 2]) == (4, 2, 9)

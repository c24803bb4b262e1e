"""Main representative resolution for project employee assignment."""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

from autoshop.workflow.errors import ValidationError


@dataclass(frozen=True)
class RequiresChoice:
    """Several employees were selected and the caller must pick the main representative.

    ``suggested`` is only a default for the picker and is never stored
    until the caller confirms it.
    """
    candidates: Tuple[int, ...]
    suggested: int


def dedupe_ids(ids: Iterable[int]) -> Tuple[int, ...]:
    seen = []
    for item in ids:
        if item not in seen:
            seen.append(item)
    return tuple(seen)


def resolve_main_representative(
    selected_employee_ids: Iterable[int],
    explicit_choice: Optional[int] = None,
    previous_main_rep: Optional[int] = None,
) -> Union[int, RequiresChoice]:
    selected = dedupe_ids(selected_employee_ids)
    if not selected:
        raise ValidationError("no employees selected")

    if len(selected) == 1:
        return selected[0]

    if explicit_choice is not None and explicit_choice in selected:
        return explicit_choice
    if previous_main_rep is not None and previous_main_rep in selected:
        return previous_main_rep
    return RequiresChoice(candidates=selected, suggested=selected[0])

"""Labels for related records that are absent or not loaded yet."""

from typing import Mapping, Optional

UNKNOWN_EMPLOYEE = "Unknown employee"
UNASSIGNED = "Unassigned"
LOADING = "Loading..."


def customer_label(customer_id: Optional[int], names: Optional[Mapping[int, str]] = None) -> str:
    if names is None:
        return LOADING
    if customer_id is None:
        return "Customer #N/A"
    return names.get(customer_id) or f"Customer #{customer_id}"


def employee_label(employee_id: Optional[int], names: Optional[Mapping[int, str]] = None) -> str:
    """``names`` is None while the employee directory has not been loaded."""
    if employee_id is None:
        return UNASSIGNED
    if names is None:
        return LOADING
    return names.get(employee_id) or UNKNOWN_EMPLOYEE


def vehicle_label(vehicle_id: Optional[int]) -> str:
    return f"Vehicle #{vehicle_id}" if vehicle_id is not None else "Unknown Vehicle"

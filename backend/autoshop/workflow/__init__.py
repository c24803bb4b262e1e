"""Appointment and project workflow core.

Status decisions live in ``policy``, main representative resolution in
``assignment``, orchestration in ``appointments`` and ``projects`` and the
report text format in ``reports``. Workflows talk to storage only through
the ``repository.ShopRepository`` protocol.
"""

"""
Domain: cancellation state shared by sales and sale items.

Rules implemented here:
- Every Sale and SaleItem is either ACTIVE or CANCELLED.
- The only transition is ACTIVE -> CANCELLED. CANCELLED is terminal, and
  cancelling again yields the same state.
"""

from __future__ import annotations

from enum import Enum


class CancellationStatus(str, Enum):
    ACTIVE = "Active"
    CANCELLED = "Cancelled"

    @property
    def is_cancelled(self) -> bool:
        return self is CancellationStatus.CANCELLED

    def cancel(self) -> "CancellationStatus":
        """Return the state after a cancellation request (idempotent)."""

        return CancellationStatus.CANCELLED

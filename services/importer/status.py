"""Invoice lifecycle status derivation."""

from datetime import date, datetime

from services.importer.normalize import parse_amount, parse_iso_date
from services.store.schema import InvoiceStatus

# Harvest invoice state -> local status
HARVEST_STATES: dict[str, InvoiceStatus] = {
    "paid": "paid",
    "draft": "draft",
    "closed": "written_off",
}


def derive_status(
    balance: str | float | None,
    issue_date: str | None,
    now: datetime | None = None,
) -> InvoiceStatus:
    """Infer status when the source has no trustworthy state.

    A zero balance wins over everything, so a fully paid invoice with a
    future issue date is still "paid".

    Args:
        balance: Remaining balance (raw source value)
        issue_date: Issue date (raw source value)
        now: Reference time, defaults to the current time

    Returns:
        "paid", "draft" (future-dated with a balance) or "sent"
    """
    if parse_amount(balance) == 0.0:
        return "paid"

    iso = parse_iso_date(issue_date)
    if iso:
        today = (now or datetime.now()).date()
        if date.fromisoformat(iso) > today:
            return "draft"
    return "sent"


def map_harvest_state(state: str | None) -> InvoiceStatus:
    """Map a Harvest invoice state onto a local status ("open" and unknown -> "sent")."""
    return HARVEST_STATES.get((state or "").strip().lower(), "sent")

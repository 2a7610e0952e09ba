import logging
import random
from typing import Any, Dict, List, Optional, Sequence

from placement.exceptions import AllocationInProgressError, NotFoundError

logger = logging.getLogger(__name__)


def _usable_capacity(venue: Dict[str, Any]) -> int:
    capacity = venue.get("capacity")
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        return 0
    return capacity if capacity > 0 else 0


def plan_seating(applicants: Sequence[Dict[str, Any]], venues: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Fill venues in order, seat 1 upwards, with applicants in the given order.

    Venues without a positive capacity are skipped. Applicants left over once
    every venue is full get an explicit null venue and seat.
    """
    usable = [venue for venue in venues if _usable_capacity(venue)]
    plan = []
    venue_index = 0
    seat = 1

    for applicant in applicants:
        if venue_index >= len(usable):
            plan.append({"id": applicant["id"], "venue_id": None, "seat_number": None})
            continue

        venue = usable[venue_index]
        plan.append({"id": applicant["id"], "venue_id": venue["id"], "seat_number": str(seat)})

        seat += 1
        if seat > _usable_capacity(venue):
            venue_index += 1
            seat = 1

    return plan


def allocate_seats(gateway, test_id, *, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """
    Shuffle the applicants of a test and assign them venue seats.

    The whole plan is computed before any write; each assignment is then
    stored with its own update. Runs for the same test are serialised through
    an advisory lock.
    """
    rng = rng or random.Random()

    with gateway.advisory_lock(f"seat-allocation:{test_id}") as acquired:
        if not acquired:
            raise AllocationInProgressError(
                "Seating is already being generated for this test. Try again shortly."
            )

        if not gateway.select("tests", {"id": test_id}, fields=["id"]):
            raise NotFoundError("Test not found.")

        applicants = gateway.select(
            "applicants",
            {"test_id": test_id},
            order=["id"],
            fields=["id", "roll_number", "name"],
        )
        if not applicants:
            raise NotFoundError("No applicants found for this test.")

        venues = gateway.select(
            "venues",
            {"test_id": test_id},
            order=["id"],
            fields=["id", "name", "capacity"],
        )

        shuffled = list(applicants)
        rng.shuffle(shuffled)
        plan = plan_seating(shuffled, venues)

        for assignment in plan:
            gateway.update(
                "applicants",
                {"venue_id": assignment["venue_id"], "seat_number": assignment["seat_number"]},
                {"id": assignment["id"]},
            )

    per_venue = {venue["id"]: 0 for venue in venues}
    for assignment in plan:
        if assignment["venue_id"] is not None:
            per_venue[assignment["venue_id"]] += 1

    seated = sum(per_venue.values())
    summary = {
        "applicants": len(applicants),
        "venues": len(venues),
        "total_capacity": sum(_usable_capacity(venue) for venue in venues),
        "seated": seated,
        "unseated": len(applicants) - seated,
        "per_venue": [
            {
                "venue_id": venue["id"],
                "name": venue["name"],
                "capacity": venue["capacity"],
                "seated": per_venue[venue["id"]],
            }
            for venue in venues
        ],
    }
    logger.info(
        "Seating generated for test %s: %s seated, %s unseated across %s venues",
        test_id,
        summary["seated"],
        summary["unseated"],
        summary["venues"],
    )
    return summary


def _seat_sort_key(row: Dict[str, Any]):
    seat = row.get("seat_number") or ""
    return (row.get("venue_id") or 0, int(seat) if seat.isdigit() else 0, seat)


def seating_export_rows(gateway, test_id) -> List[Dict[str, Any]]:
    """Seated applicants of a test as spreadsheet rows, by venue then seat."""
    applicants = gateway.select(
        "applicants",
        {"test_id": test_id, "venue_id__isnull": False},
        fields=["id", "roll_number", "name", "venue_id", "venue__name", "seat_number"],
    )
    applicants.sort(key=_seat_sort_key)
    return [
        {
            "Roll Number": row["roll_number"],
            "Name": row["name"],
            "Venue": row.get("venue__name") or "N/A",
            "Seat": row.get("seat_number") or "N/A",
        }
        for row in applicants
    ]

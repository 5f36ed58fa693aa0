"""
CollectionNarrator - text written into request notes and ledger reasons

Keeps the wording of machine-generated text in one place.
"""

from typing import Optional


class CollectionNarrator:

    @staticmethod
    def request_cancelled(reason: Optional[str] = None) -> str:
        if reason and reason.strip():
            return f"Cancelled: {reason.strip()}"
        return "Cancelled by user"

    @staticmethod
    def append_note(existing: Optional[str], addition: str) -> str:
        if existing:
            return f"{existing}\n{addition}"
        return addition

    @staticmethod
    def collection_points(weight_kg: float, category: str) -> str:
        """Ledger reason for points earned by a completed collection"""
        return f"Collection of {weight_kg:g}kg - {category}"

    @staticmethod
    def bonus(reason: Optional[str] = None) -> str:
        return reason.strip() if reason and reason.strip() else "Bonus points"

    @staticmethod
    def penalty(reason: Optional[str] = None) -> str:
        return reason.strip() if reason and reason.strip() else "Points penalty"

    @staticmethod
    def request_assigned(company_name: str) -> str:
        return f"Assigned to {company_name}"

"""
Deal flow priority scoring.
"""

from core.deal_flow.models import PropertyRecord


class PriorityScorer:
    """
    Calculates the priority of a new deal flow (0-100).

    Scoring methodology:
    - Base priority of 50
    - 30% of the upstream match score
    - Bonuses for creative financing and eligibility signals
    - Bonus for foreclosure listings (higher opportunity)

    Priority is computed once, when the flow is created.
    """

    BASE_PRIORITY = 50.0
    WEIGHT_SCORE = 0.3

    # Bonuses
    OWNER_FINANCING_BONUS = 15
    LEASE_TO_OWN_BONUS = 10
    VA_ELIGIBLE_BONUS = 10
    FORECLOSURE_BONUS = 5

    MIN_PRIORITY = 0.0
    MAX_PRIORITY = 100.0

    def score(self, record: PropertyRecord) -> float:
        """
        Calculate the priority for a discovered property.

        Args:
            record: The discovered property.

        Returns:
            Priority clamped to [0, 100], rounded to one decimal.
        """
        priority = self.BASE_PRIORITY
        priority += (record.score or 0) * self.WEIGHT_SCORE

        if record.owner_financing:
            priority += self.OWNER_FINANCING_BONUS
        if record.lease_to_own:
            priority += self.LEASE_TO_OWN_BONUS
        if record.va_eligible:
            priority += self.VA_ELIGIBLE_BONUS
        if record.is_foreclosure:
            priority += self.FORECLOSURE_BONUS

        priority = max(self.MIN_PRIORITY, min(self.MAX_PRIORITY, priority))
        return round(priority, 1)

"""
Stage entry criteria evaluation.

evaluate() is pure and total: it never raises for missing record fields.
A missing score or price is read as 0, a missing flag as False and a missing
deal quality fails any deal-quality requirement.
"""

from __future__ import annotations

from typing import Final

from core.deal_flow.models import Criteria, FeatureTag, PropertyRecord

# Feature tag -> record flags. A tag is satisfied when any of its flags is set.
FEATURE_FLAGS: Final[dict[FeatureTag, tuple[str, ...]]] = {
    FeatureTag.CREATIVE_FINANCING: ("owner_financing", "lease_to_own"),
    FeatureTag.OWNER_FINANCING: ("owner_financing",),
    FeatureTag.LEASE_TO_OWN: ("lease_to_own",),
    FeatureTag.VA_ELIGIBLE: ("va_eligible",),
    FeatureTag.USDA_ELIGIBLE: ("usda_eligible",),
    FeatureTag.NO_CREDIT_CHECK: ("no_credit_check",),
    FeatureTag.CONTRACT_FOR_DEED: ("contract_for_deed",),
}


def has_feature(record: PropertyRecord, tag: FeatureTag) -> bool:
    """Check whether a record carries a named feature."""
    return any(bool(getattr(record, flag, False)) for flag in FEATURE_FLAGS.get(tag, ()))


def evaluate(record: PropertyRecord, criteria: Criteria) -> bool:
    """
    Test whether a record satisfies a stage's entry criteria.

    Args:
        record: Property snapshot (with any analysed attributes overlaid).
        criteria: The stage's entry criteria.

    Returns:
        True if every present predicate holds.
    """
    if criteria.min_score is not None and (record.score or 0) < criteria.min_score:
        return False

    if criteria.max_price is not None and (record.price or 0) > criteria.max_price:
        return False

    for tag in criteria.required_features:
        if not has_feature(record, tag):
            return False

    if criteria.deal_quality and record.deal_quality not in criteria.deal_quality:
        return False

    return True

"""
Vendor Performance - Tier Classifier

Assigns STRATEGIC / PREFERRED / TRANSACTIONAL from a vendor's percentile
rank of trailing-twelve-month spend among the tenant's vendors.

PERCENTILE RANK:
    rank = 100 * RANK / N
    RANK = 1 + number of vendors with strictly lower spend (ties share it)
    N    = vendors with spend > 0
    Vendors with no spend rank 0. The top spender always ranks 100.

HYSTERESIS:
    No prior tier   >= 85 STRATEGIC, >= 60 PREFERRED, else TRANSACTIONAL
    STRATEGIC       held while rank >= 85; below that, PREFERRED if >= 60
                    else TRANSACTIONAL
    PREFERRED       >= 85 promotes; < 58 demotes; otherwise held
    TRANSACTIONAL   >= 60 promotes (>= 85 straight to STRATEGIC)

Only the PREFERRED/TRANSACTIONAL boundary has a band (58-60). The
STRATEGIC/PREFERRED boundary has none: promotion and demotion both sit
at 85, so a vendor whose rank alternates across 85 changes tier on
every run.

Mission-critical vendors are STRATEGIC regardless of spend.

Everything here is pure computation over one spend snapshot.
"""

import uuid
from bisect import bisect_left
from typing import Dict, Mapping, Optional

from vendorperf.core.errors import VendorNotFound
from vendorperf.models.tiers import (
    TIER_RANK,
    TierChangeType,
    TierClassificationResult,
    VendorTier,
)


STRATEGIC_PROMOTION_THRESHOLD = 85.0
PREFERRED_PROMOTION_THRESHOLD = 60.0
PREFERRED_DEMOTION_THRESHOLD = 58.0


def compute_percentile_ranks(spend_by_vendor: Mapping[uuid.UUID, float]) -> Dict[uuid.UUID, float]:
    """Percentile rank (0-100) for every vendor in the snapshot."""
    positive = sorted(spend for spend in spend_by_vendor.values() if spend > 0)
    population = len(positive)
    
    ranks: Dict[uuid.UUID, float] = {}
    for vendor_id, spend in spend_by_vendor.items():
        if spend <= 0 or population == 0:
            ranks[vendor_id] = 0.0
            continue
        lower = bisect_left(positive, spend)
        ranks[vendor_id] = round(100.0 * (lower + 1) / population, 4)
    return ranks


def _straight_tier(percentile_rank: float) -> VendorTier:
    if percentile_rank >= STRATEGIC_PROMOTION_THRESHOLD:
        return VendorTier.STRATEGIC
    if percentile_rank >= PREFERRED_PROMOTION_THRESHOLD:
        return VendorTier.PREFERRED
    return VendorTier.TRANSACTIONAL


def determine_tier(
    percentile_rank: float,
    current_tier: Optional[VendorTier],
    mission_critical: bool,
) -> VendorTier:
    """Apply the hysteresis state machine to one vendor."""
    if mission_critical:
        return VendorTier.STRATEGIC
    
    if current_tier is None:
        return _straight_tier(percentile_rank)
    
    if current_tier is VendorTier.STRATEGIC:
        if percentile_rank >= STRATEGIC_PROMOTION_THRESHOLD:
            return VendorTier.STRATEGIC
        if percentile_rank >= PREFERRED_PROMOTION_THRESHOLD:
            return VendorTier.PREFERRED
        return VendorTier.TRANSACTIONAL
    
    if current_tier is VendorTier.PREFERRED:
        if percentile_rank >= STRATEGIC_PROMOTION_THRESHOLD:
            return VendorTier.STRATEGIC
        if percentile_rank < PREFERRED_DEMOTION_THRESHOLD:
            return VendorTier.TRANSACTIONAL
        return VendorTier.PREFERRED
    
    return _straight_tier(percentile_rank)


def classify(
    vendor_id: uuid.UUID,
    spend_by_vendor: Mapping[uuid.UUID, float],
    current_tier: Optional[VendorTier],
    mission_critical: bool,
    percentile_ranks: Optional[Mapping[uuid.UUID, float]] = None,
) -> TierClassificationResult:
    """
    Classify one vendor against a tenant spend snapshot.
    
    `percentile_ranks` may be passed in when classifying many vendors
    from the same snapshot so the ranking runs once.
    
    Raises:
        VendorNotFound: vendor has no entry in the snapshot.
    """
    if vendor_id not in spend_by_vendor:
        raise VendorNotFound(vendor_id, f"No spend record found for vendor {vendor_id}")
    
    if percentile_ranks is None:
        percentile_ranks = compute_percentile_ranks(spend_by_vendor)
    
    percentile_rank = percentile_ranks[vendor_id]
    tier = determine_tier(percentile_rank, current_tier, mission_critical)
    
    return TierClassificationResult(
        vendor_id=vendor_id,
        tier=tier,
        total_spend=float(spend_by_vendor[vendor_id]),
        percentile_rank=percentile_rank,
        previous_tier=current_tier,
        tier_changed=current_tier is not None and current_tier != tier,
        mission_critical=mission_critical,
    )


def change_type(previous_tier: Optional[VendorTier], new_tier: VendorTier) -> TierChangeType:
    if previous_tier is None:
        return TierChangeType.INITIAL
    if TIER_RANK[new_tier] > TIER_RANK[previous_tier]:
        return TierChangeType.PROMOTION
    return TierChangeType.DEMOTION

"""Resolves an old (province, district, ward) to its post-reform ward."""

import logging

from geo_utils import contains
from models import (
    GeocodingFailed,
    Merged,
    NotFound,
    OldUnitKey,
    SplitMatched,
    SplitNoMatch,
    SplitRequiresInput,
)

logger = logging.getLogger(__name__)


def find_containing_candidate(coordinate, candidates):
    """Return the first candidate whose boundary contains the coordinate.

    Candidates are tried in stored order. Missing or malformed boundaries
    never match.
    """
    for candidate in candidates:
        if candidate.boundary is None:
            logger.debug(f'Candidate {candidate.name} has no boundary, skipping')
            continue
        try:
            if contains(coordinate, candidate.boundary):
                return candidate
        except (ValueError, TypeError, IndexError, ZeroDivisionError) as e:
            logger.warning(f'Malformed boundary for {candidate.name}, skipping: {e}')
    return None


class ResolutionEngine:
    """Merge/split decision procedure over an injected store and geocoder.

    Holds no per-request state; concurrent resolve() calls are independent.
    """

    def __init__(self, store, geocoder):
        self.store = store
        self.geocoder = geocoder

    def resolve(self, old_unit, coordinate=None, street_info=None):
        """Resolve an old ward, using a coordinate or street text when it was split.

        Args:
            old_unit: OldUnitKey or a (province, district, ward) tuple
            coordinate: Coordinate supplied by the caller, takes precedence
            street_info: free-text house number / street, geocoded when needed

        Returns:
            One of the ResolutionResult variants.
        """
        key = OldUnitKey(*old_unit)
        record = self.store.find(key)
        if record is None:
            logger.info(f'Old ward not found: {key}')
            return NotFound(old_address=key)

        if not record.is_split:
            return Merged(new_address=record.merged_address, old_address=key)

        candidates = record.split_candidates or ()
        if street_info is not None and not street_info.strip():
            street_info = None

        if coordinate is None and street_info is None:
            return SplitRequiresInput(candidates=candidates, old_address=key)

        if coordinate is None:
            coordinate = self.geocoder.geocode(
                street_info.strip(), key.province, key.district, key.ward,
            )
            if coordinate is None:
                return GeocodingFailed(candidates=candidates, old_address=key)

        match = find_containing_candidate(coordinate, candidates)
        if match is None:
            logger.info(
                f'{coordinate} is outside all {len(candidates)} candidates of {key}'
            )
            return SplitNoMatch(candidates=candidates, old_address=key, coordinate_used=coordinate)

        return SplitMatched(
            new_address={
                'new_ward_name': match.name,
                'new_province_name': record.new_province_name or match.new_province_name,
            },
            matched_candidate=match,
            coordinate_used=coordinate,
            old_address=key,
        )

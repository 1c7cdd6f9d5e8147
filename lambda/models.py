"""Domain types: old-unit keys, ward records and resolution results."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union


class OldUnitKey(NamedTuple):
    """Pre-reform (province, district, ward) triple, matched exactly."""

    province: str
    district: str
    ward: str

    def to_dict(self):
        return {
            'oldProvince': self.province,
            'oldDistrict': self.district,
            'oldWard': self.ward,
        }


class Coordinate(NamedTuple):
    lat: float
    lon: float

    def to_dict(self):
        return {'lat': self.lat, 'lon': self.lon}


@dataclass(frozen=True)
class NewWardCandidate:
    name: str
    new_province_name: str
    boundary: Optional[List[Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self, include_boundary=False):
        data = dict(self.metadata)
        data['new_ward_name'] = self.name
        data['new_province_name'] = self.new_province_name
        if include_boundary:
            data['new_ward_coordinate'] = self.boundary
        return data


@dataclass(frozen=True)
class WardRecord:
    """What happened to one old ward.

    Exactly one of merged_address / split_candidates is set, chosen by
    is_split.
    """

    is_split: bool
    merged_address: Any = None
    split_candidates: Optional[Tuple[NewWardCandidate, ...]] = None
    new_province_name: Optional[str] = None

    def __post_init__(self):
        if self.is_split:
            if self.split_candidates is None or self.merged_address is not None:
                raise ValueError('split record must carry candidates and no merged address')
        elif self.merged_address is None or self.split_candidates is not None:
            raise ValueError('merged record must carry a merged address and no candidates')


def _candidate_list(candidates):
    return [c.to_dict() for c in candidates]


@dataclass(frozen=True)
class Merged:
    type = 'MERGED'

    new_address: Any
    old_address: OldUnitKey

    def to_dict(self):
        return {
            'type': self.type,
            'newAddress': self.new_address,
            'oldAddress': self.old_address.to_dict(),
        }


@dataclass(frozen=True)
class SplitRequiresInput:
    type = 'SPLITTED_REQUIRES_INPUT'

    candidates: Tuple[NewWardCandidate, ...]
    old_address: OldUnitKey

    def to_dict(self):
        return {
            'type': self.type,
            'potentialNewWards': _candidate_list(self.candidates),
            'oldAddress': self.old_address.to_dict(),
        }


@dataclass(frozen=True)
class SplitMatched:
    type = 'SPLITTED_MATCH_FOUND'

    new_address: Dict[str, str]
    matched_candidate: NewWardCandidate
    coordinate_used: Coordinate
    old_address: OldUnitKey

    def to_dict(self):
        return {
            'type': self.type,
            'newAddress': dict(self.new_address),
            'geoDetails': self.matched_candidate.to_dict(include_boundary=True),
            'coordinateUsed': self.coordinate_used.to_dict(),
            'oldAddress': self.old_address.to_dict(),
        }


@dataclass(frozen=True)
class SplitNoMatch:
    type = 'SPLITTED_NO_MATCH'

    candidates: Tuple[NewWardCandidate, ...]
    old_address: OldUnitKey
    coordinate_used: Coordinate

    def to_dict(self):
        return {
            'type': self.type,
            'potentialNewWards': _candidate_list(self.candidates),
            'coordinateUsed': self.coordinate_used.to_dict(),
            'oldAddress': self.old_address.to_dict(),
        }


@dataclass(frozen=True)
class NotFound:
    type = 'NOT_FOUND'

    old_address: OldUnitKey

    def to_dict(self):
        return {'type': self.type, 'oldAddress': self.old_address.to_dict()}


@dataclass(frozen=True)
class GeocodingFailed:
    type = 'GEOCODING_FAILED'

    candidates: Tuple[NewWardCandidate, ...]
    old_address: OldUnitKey

    def to_dict(self):
        return {
            'type': self.type,
            'potentialNewWards': _candidate_list(self.candidates),
            'oldAddress': self.old_address.to_dict(),
        }


ResolutionResult = Union[
    Merged, SplitRequiresInput, SplitMatched, SplitNoMatch, NotFound, GeocodingFailed,
]

"""Ward record store: loads the reform dataset once and answers key lookups.

The dataset is a JSON list of records, one per old ward:

    {
        "old_province_name": "...",
        "old_district_name": "...",
        "old_ward_name": "...",
        "is_splitted": false,
        "new_address": "Phường Giảng Võ, Hà Nội"
    }

Split records carry {"new_province_name": ..., "new_ward_name": [candidate, ...]}
as new_address, each candidate holding new_ward_name, new_ward_coordinate
(a GeoJSON MultiPolygon coordinate array, or null) and free-form properties.
"""

import json
import logging
import os

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config import WARD_DATA_FILENAME
from models import NewWardCandidate, OldUnitKey, WardRecord

logger = logging.getLogger(__name__)


class WardLookupError(Exception):
    """Base class for ward lookup errors."""


class DataUnavailableError(WardLookupError):
    """The dataset could not be loaded. Nothing can be served until fixed."""


def parse_candidate(raw, new_province_name):
    metadata = {
        k: v for k, v in raw.items()
        if k not in ('new_ward_name', 'new_ward_coordinate', 'new_province_name')
    }
    return NewWardCandidate(
        name=raw['new_ward_name'],
        new_province_name=new_province_name,
        boundary=raw.get('new_ward_coordinate') or None,
        metadata=metadata,
    )


def parse_record(raw):
    """Turn one dataset entry into (OldUnitKey, WardRecord)."""
    key = OldUnitKey(
        raw['old_province_name'],
        raw['old_district_name'],
        raw['old_ward_name'],
    )
    new_address = raw.get('new_address')

    if not raw.get('is_splitted'):
        return key, WardRecord(is_split=False, merged_address=new_address)

    if not isinstance(new_address, dict):
        raise ValueError(f'split record {key} has no structured new_address')
    province = new_address.get('new_province_name')
    candidates = tuple(
        parse_candidate(c, province) for c in new_address.get('new_ward_name') or []
    )
    return key, WardRecord(
        is_split=True,
        split_candidates=candidates,
        new_province_name=province,
    )


class WardRecordStore:
    """Read-only, in-memory mapping of OldUnitKey -> WardRecord."""

    def __init__(self, records):
        self._records = {}
        for key, record in records:
            if key in self._records:
                logger.warning(f'Duplicate old ward {key}, keeping the first entry')
                continue
            self._records[key] = record

    @classmethod
    def from_entries(cls, entries):
        try:
            return cls(parse_record(raw) for raw in entries)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DataUnavailableError(f'Invalid ward dataset: {e}') from e

    @classmethod
    def from_file(cls, path=None):
        """Load the dataset from a local JSON file (bundled next to this module by default)."""
        if path is None:
            path = os.path.join(os.path.dirname(__file__), WARD_DATA_FILENAME)

        try:
            with open(path, 'r', encoding='utf-8') as f:
                entries = json.load(f)
        except (OSError, ValueError) as e:
            raise DataUnavailableError(f'Could not read {path}: {e}') from e

        store = cls.from_entries(entries)
        logger.info(f'Loaded {len(store)} old wards from {path}')
        return store

    @classmethod
    def from_s3(cls, bucket, key, s3_client=None):
        """Load the dataset from an S3 object."""
        try:
            s3 = s3_client or boto3.client('s3')
            obj = s3.get_object(Bucket=bucket, Key=key)
            entries = json.loads(obj['Body'].read().decode('utf-8'))
        except (BotoCoreError, ClientError, ValueError) as e:
            raise DataUnavailableError(f'Could not read s3://{bucket}/{key}: {e}') from e

        store = cls.from_entries(entries)
        logger.info(f'Loaded {len(store)} old wards from s3://{bucket}/{key}')
        return store

    def __len__(self):
        return len(self._records)

    def find(self, key):
        """Return the WardRecord for an exact (province, district, ward) match, or None."""
        return self._records.get(OldUnitKey(*key))

    def selection_tree(self):
        """Province -> district -> [ward, ...] in dataset order, for address pickers."""
        tree = {}
        for key in self._records:
            tree.setdefault(key.province, {}).setdefault(key.district, []).append(key.ward)
        return tree

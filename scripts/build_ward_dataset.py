#!/usr/bin/env python3
"""Build the ward lookup dataset from the administrative boundary tree.

Reads the source tree (province -> old districts -> old wards, with the new
wards and their full-resolution boundaries) and writes ward-data.json: one
record per old ward, split-candidate boundaries simplified to ~11 m.

A candidate whose boundary cannot be simplified keeps its name but loses its
boundary, so it can still be listed but never matched by coordinate. An old
ward the lookup could not load (no merged address, split without candidate
list) is left out of the dataset.

Usage:
    python3 scripts/build_ward_dataset.py wards_tree_with_geo.json
    python3 scripts/build_ward_dataset.py wards_tree_with_geo.json --bucket my-bucket
"""

import argparse
import json
import logging
import os
import sys

import boto3

# Add lambda dir to path for shared modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'lambda'))
from config import SIMPLIFY_TOLERANCE, WARD_DATA_FILENAME, WARD_DATA_KEY
from geo_utils import simplify_multipolygon
from ward_store import parse_record

logger = logging.getLogger('build_ward_dataset')

DEFAULT_OUTPUT_DIR = os.path.join(os.path.dirname(__file__), '..', 'lambda')


def simplify_candidate(candidate, tolerance):
    """Return a copy of a new-ward candidate with a simplified boundary.

    The boundary becomes None if it is missing or cannot be simplified.
    """
    result = dict(candidate)
    coords = candidate.get('new_ward_coordinate')
    if not coords:
        result['new_ward_coordinate'] = None
        return result

    try:
        result['new_ward_coordinate'] = simplify_multipolygon(coords, tolerance)
    except ValueError as e:
        logger.warning(f"Could not process geometry for {candidate.get('new_ward_name')}, dropping boundary: {e}")
        result['new_ward_coordinate'] = None
    return result


def build_record(province_name, district_name, ward, tolerance):
    """Build one dataset record, raising ValueError if the lookup could not load it."""
    if not isinstance(ward.get('old_ward_name'), str):
        raise ValueError('old ward has no name')

    new_address = ward.get('new_address')
    if ward.get('is_splitted') and isinstance(new_address, dict):
        candidates = [
            simplify_candidate(c, tolerance)
            for c in new_address.get('new_ward_name') or []
        ]
        new_address = dict(new_address, new_ward_name=candidates)

    record = {
        'old_province_name': province_name,
        'old_district_name': district_name,
        'old_ward_name': ward['old_ward_name'],
        'is_splitted': bool(ward.get('is_splitted')),
        'new_address': new_address,
    }
    parse_record(record)
    return record


def build_records(provinces, tolerance=SIMPLIFY_TOLERANCE):
    """Flatten the source tree into dataset records."""
    records = []
    dropped = 0
    skipped = 0

    for province in provinces:
        province_name = province['old_province_name']
        for district in province.get('old_district_list', []):
            district_name = district['old_district_name']

            for ward in district.get('old_ward_list', []):
                try:
                    record = build_record(province_name, district_name, ward, tolerance)
                except (KeyError, TypeError, ValueError, AttributeError) as e:
                    logger.warning(f"Skipping {ward.get('old_ward_name')} in {district_name}, {province_name}: {e}")
                    skipped += 1
                    continue

                if record['is_splitted']:
                    dropped += sum(
                        1 for c in record['new_address']['new_ward_name']
                        if c['new_ward_coordinate'] is None
                    )
                records.append(record)

    logger.info(
        f'Built {len(records)} ward records ({skipped} wards skipped, '
        f'{dropped} candidates without boundary)'
    )
    return records


def write_json(path, data):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, separators=(',', ':'))
    logger.info(f'Wrote {path}')


def upload(bucket, key, path):
    s3 = boto3.client('s3')
    with open(path, 'rb') as f:
        s3.put_object(
            Bucket=bucket,
            Key=key,
            Body=f.read(),
            ContentType='application/json',
        )
    logger.info(f'Uploaded {path} to s3://{bucket}/{key}')


def main(argv=None):
    parser = argparse.ArgumentParser(description='Build the ward lookup dataset.')
    parser.add_argument('source', help='Path to wards_tree_with_geo.json')
    parser.add_argument('--output-dir', default=DEFAULT_OUTPUT_DIR,
                        help='Directory for ward-data.json')
    parser.add_argument('--tolerance', type=float, default=SIMPLIFY_TOLERANCE,
                        help='Simplification tolerance in degrees (default ~11 m)')
    parser.add_argument('--bucket', help='Also upload the dataset to this S3 bucket')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(message)s')

    with open(args.source, 'r', encoding='utf-8') as f:
        provinces = json.load(f)

    records = build_records(provinces, args.tolerance)

    os.makedirs(args.output_dir, exist_ok=True)
    data_path = os.path.join(args.output_dir, WARD_DATA_FILENAME)
    write_json(data_path, records)

    if args.bucket:
        upload(args.bucket, WARD_DATA_KEY, data_path)


if __name__ == '__main__':
    main()

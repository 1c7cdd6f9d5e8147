import pytest

from models import Coordinate
from ward_store import WardRecordStore

SAIGON_SQUARE = [[[
    [106.700, 10.775], [106.702, 10.775],
    [106.702, 10.778], [106.700, 10.778],
    [106.700, 10.775],
]]]

TAN_DINH_SQUARE = [[[
    [106.697, 10.774], [106.699, 10.774],
    [106.699, 10.777], [106.697, 10.777],
    [106.697, 10.774],
]]]

NGOC_HA = ('Hà Nội', 'Quận Ba Đình', 'Phường Ngọc Hà')
BEN_NGHE = ('TP. Hồ Chí Minh', 'Quận 1', 'Phường Bến Nghé')


def ward_entries():
    return [
        {
            'old_province_name': 'Hà Nội',
            'old_district_name': 'Quận Ba Đình',
            'old_ward_name': 'Phường Ngọc Hà',
            'is_splitted': False,
            'new_address': 'Phường Giảng Võ, Hà Nội',
        },
        {
            'old_province_name': 'TP. Hồ Chí Minh',
            'old_district_name': 'Quận 1',
            'old_ward_name': 'Phường Bến Nghé',
            'is_splitted': True,
            'new_address': {
                'new_province_name': 'TP. Hồ Chí Minh',
                'new_ward_name': [
                    {
                        'new_ward_name': 'Phường Tân Định',
                        'old_merge_ward': ['Phường Tân Định'],
                        'new_ward_coordinate': TAN_DINH_SQUARE,
                    },
                    {
                        'new_ward_name': 'Phường Sài Gòn',
                        'old_merge_ward': ['Phường Bến Nghé', 'Phường Đa Kao'],
                        'new_ward_bbox': [106.700, 10.775, 106.702, 10.778],
                        'new_ward_coordinate': SAIGON_SQUARE,
                    },
                ],
            },
        },
    ]


class FakeGeocoder:
    """Returns a fixed coordinate (or None) and records every call."""

    def __init__(self, coordinate=None):
        self.coordinate = coordinate
        self.calls = []

    def geocode(self, street_text, province, district, ward):
        self.calls.append((street_text, province, district, ward))
        return self.coordinate


@pytest.fixture
def store():
    return WardRecordStore.from_entries(ward_entries())


@pytest.fixture
def geocoder():
    return FakeGeocoder(Coordinate(lat=10.7765, lon=106.701))

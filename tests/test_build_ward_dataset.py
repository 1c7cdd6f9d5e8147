import json

from build_ward_dataset import build_records, main, simplify_candidate
from ward_store import WardRecordStore

DENSE_SQUARE = [[
    [[i / 10, 0] for i in range(21)] + [[2, 2], [0, 2], [0, 0]],
]]


def source_tree():
    return [{
        'old_province_name': 'TP. Hồ Chí Minh',
        'old_district_list': [{
            'old_district_name': 'Quận 1',
            'old_ward_list': [
                {
                    'old_ward_name': 'Phường Bến Nghé',
                    'is_splitted': True,
                    'new_address': {
                        'new_province_name': 'TP. Hồ Chí Minh',
                        'new_ward_name': [
                            {'new_ward_name': 'Phường Sài Gòn', 'new_ward_coordinate': DENSE_SQUARE,
                             'old_merge_ward': ['Phường Bến Nghé']},
                            {'new_ward_name': 'Phường Hỏng', 'new_ward_coordinate': [[['bad']]]},
                            {'new_ward_name': 'Phường Trống', 'new_ward_coordinate': []},
                        ],
                    },
                },
                {
                    'old_ward_name': 'Phường Cầu Kho',
                    'is_splitted': False,
                    'new_address': 'Phường Cầu Ông Lãnh, TP. Hồ Chí Minh',
                },
            ],
        }],
    }]


def test_simplify_candidate_keeps_properties():
    candidate = {'new_ward_name': 'Phường Sài Gòn', 'new_ward_coordinate': DENSE_SQUARE, 'centroid': [1, 1]}
    result = simplify_candidate(candidate, 0.0001)
    assert result['centroid'] == [1, 1]
    assert len(result['new_ward_coordinate'][0][0]) < len(DENSE_SQUARE[0][0])
    assert candidate['new_ward_coordinate'] is DENSE_SQUARE


def test_failed_geometry_drops_only_that_boundary():
    records = build_records(source_tree())

    candidates = records[0]['new_address']['new_ward_name']
    assert [c['new_ward_name'] for c in candidates] == ['Phường Sài Gòn', 'Phường Hỏng', 'Phường Trống']
    assert candidates[0]['new_ward_coordinate'] is not None
    assert candidates[1]['new_ward_coordinate'] is None
    assert candidates[2]['new_ward_coordinate'] is None
    assert records[1]['new_address'] == 'Phường Cầu Ông Lãnh, TP. Hồ Chí Minh'
    assert [r['old_ward_name'] for r in records] == ['Phường Bến Nghé', 'Phường Cầu Kho']


def test_main_writes_loadable_dataset(tmp_path):
    source = tmp_path / 'wards_tree_with_geo.json'
    source.write_text(json.dumps(source_tree(), ensure_ascii=False), encoding='utf-8')

    main([str(source), '--output-dir', str(tmp_path / 'out')])

    store = WardRecordStore.from_file(str(tmp_path / 'out' / 'ward-data.json'))
    record = store.find(('TP. Hồ Chí Minh', 'Quận 1', 'Phường Bến Nghé'))
    assert [c.boundary is None for c in record.split_candidates] == [False, True, True]

    assert store.selection_tree() == {
        'TP. Hồ Chí Minh': {'Quận 1': ['Phường Bến Nghé', 'Phường Cầu Kho']},
    }
    assert not (tmp_path / 'out' / 'selection-tree.json').exists()


def test_unloadable_wards_are_skipped(tmp_path):
    tree = source_tree()
    tree[0]['old_district_list'][0]['old_ward_list'] += [
        {'old_ward_name': 'Phường Tách Hỏng', 'is_splitted': True, 'new_address': None},
        {'old_ward_name': 'Phường Tách Chuỗi', 'is_splitted': True, 'new_address': 'Phường Sài Gòn'},
        {'old_ward_name': 'Phường Nhập Trống', 'is_splitted': False, 'new_address': None},
        {'is_splitted': False, 'new_address': 'Phường Không Tên'},
    ]
    source = tmp_path / 'wards_tree_with_geo.json'
    source.write_text(json.dumps(tree, ensure_ascii=False), encoding='utf-8')

    main([str(source), '--output-dir', str(tmp_path / 'out')])

    store = WardRecordStore.from_file(str(tmp_path / 'out' / 'ward-data.json'))
    assert len(store) == 2
    assert store.find(('TP. Hồ Chí Minh', 'Quận 1', 'Phường Tách Hỏng')) is None
    assert store.find(('TP. Hồ Chí Minh', 'Quận 1', 'Phường Cầu Kho')).merged_address == (
        'Phường Cầu Ông Lãnh, TP. Hồ Chí Minh'
    )

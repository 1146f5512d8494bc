import pytest

from GSF.decode.constants import SubRecordID
from GSF.decode.ping import PingInfo
from GSF.decode.quality import quality_info, find_duplicates


def _infos(timestamps, nbeams=100):
    if not isinstance(nbeams, (list, tuple)):
        nbeams = [nbeams] * len(timestamps)
    return [PingInfo(t, n, []) for t, n in zip(timestamps, nbeams)]


def test_clean_file():
    qi = quality_info(_infos(range(10)), {SubRecordID.DEPTH: 10, SubRecordID.ACROSS_TRACK: 10,
                                          SubRecordID.SCALE_FACTORS: 1})
    assert qi.min_max_beams == (100, 100)
    assert qi.consistent_beams
    assert not qi.coincident_pings
    assert not qi.duplicate_pings
    assert qi.duplicates == []
    assert qi.consistent_schema


def test_dual_head_is_coincident():
    # 5 pairs sharing a timestamp out of 10 pings
    timestamps = [t for t in range(5) for _ in range(2)]
    qi = quality_info(_infos(timestamps), {'DEPTH': 10})
    assert qi.coincident_pings
    assert not qi.duplicate_pings
    assert qi.duplicates == []


def test_duplicate_pings():
    timestamps = [0, 1, 1, 2, 3, 3, 4, 5, 5, 6]
    qi = quality_info(_infos(timestamps), {'DEPTH': 10})
    assert qi.duplicate_pings
    assert not qi.coincident_pings
    assert qi.duplicates == [1, 3, 5]


def test_inconsistent_beams_and_schema():
    qi = quality_info(_infos(range(3), [100, 256, 90]), {'DEPTH': 3, 'BEAM_FLAGS': 2, 'SCALE_FACTORS': 1})
    assert qi.min_max_beams == (90, 256)
    assert not qi.consistent_beams
    assert not qi.consistent_schema


def test_no_pings():
    qi = quality_info([], {})
    assert qi.min_max_beams == (0, 0)
    assert qi.consistent_beams
    assert not qi.consistent_schema
    assert qi.as_dict()['min_max_beams'] == [0, 0]


@pytest.mark.parametrize("values,expected", [([1, 2, 3], []), ([1, 1, 1, 2, 2], [1, 2]), ([3, 1, 3, 1], [3, 1])])
def test_find_duplicates(values, expected):
    assert find_duplicates(values) == expected


def test_failed_pings_left_out():
    infos = _infos([0, 1, 2, 3], 2)
    infos[1] = PingInfo.placeholder()
    infos[2] = PingInfo.placeholder()
    qi = quality_info(infos, {'DEPTH': 2, 'ACROSS_TRACK': 2})
    assert qi.min_max_beams == (2, 2)
    assert qi.consistent_beams
    assert not qi.duplicate_pings
    assert not qi.coincident_pings
    assert qi.duplicates == []


def test_only_failed_pings():
    qi = quality_info([PingInfo.placeholder(), PingInfo.placeholder()], {})
    assert qi.min_max_beams == (0, 0)
    assert qi.duplicates == []

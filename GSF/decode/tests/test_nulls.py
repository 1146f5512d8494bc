import numpy
import pytest

from GSF.decode.constants import SubRecordID, NULL_LONGITUDE, NULL_LATITUDE
from GSF.decode.nulls import PingChunk, null_array, merge_records, stack_values
from GSF.decode.ping import decode_ping
from GSF.decode.tests import gsfbuilder


def _ping(**kwargs):
    return decode_ping(gsfbuilder.payload_of(gsfbuilder.ping_record(**kwargs)), version=(3, 9))


@pytest.fixture
def full_ping():
    return _ping(depth=(10.0, 11.0, 12.0), across=(-1.0, 0.0, 1.0), along=(0.0, 0.0, 0.0), flags=[1, 2, 3],
                 sensor=gsfbuilder.seabat_payload(ping_number=1))


@pytest.fixture
def sparse_ping():
    return _ping(depth=(20.0, 21.0), across=(-2.0, 2.0), sensor=gsfbuilder.seabat_payload(ping_number=2))


def test_null_array():
    numpy.testing.assert_array_equal(null_array('Z', 3), [0.0, 0.0, 0.0])
    flags = null_array('BeamFlags', 2)
    assert flags.dtype == numpy.uint8
    assert null_array('NotAField', 2) is None


def test_fill_nulls(full_ping, sparse_ping):
    chunk = PingChunk(['Z', 'AcrossTrack', 'AlongTrack', 'BeamFlags'], sensor_id=SubRecordID.SEABAT)
    chunk.append_ping(0, full_ping)
    assert chunk.fill_nulls(full_ping) == []
    chunk = PingChunk(['Z', 'AcrossTrack', 'AlongTrack', 'BeamFlags'], sensor_id=SubRecordID.SEABAT)
    chunk.append_ping(0, full_ping)
    chunk.append_ping(1, sparse_ping)
    result = chunk.finalize()
    numpy.testing.assert_almost_equal(result['beams']['Z'], [-10.0, -11.0, -12.0, -20.0, -21.0])
    numpy.testing.assert_almost_equal(result['beams']['AlongTrack'], [0.0, 0.0, 0.0, 0.0, 0.0])
    numpy.testing.assert_array_equal(result['beams']['BeamFlags'], [1, 2, 3, 0, 0])
    numpy.testing.assert_array_equal(result['ping_beam']['PingNumber'], [0, 0, 0, 1, 1])
    numpy.testing.assert_array_equal(result['ping_beam']['BeamNumber'], [0, 1, 2, 0, 1])
    numpy.testing.assert_array_equal(result['sensor_metadata']['PingNumber'], [1, 2])
    numpy.testing.assert_array_equal(result['ping_headers']['NumberBeams'], [3, 2])
    assert len(result['lonlat']['Longitude']) == 5
    assert result['intensity'] == {}


def test_unknown_schema_field_ignored(sparse_ping):
    chunk = PingChunk(['Z', 'AcrossTrack', 'Bogus'])
    missing = chunk.fill_nulls(sparse_ping)
    assert missing == ['Bogus']
    assert 'Bogus' in chunk.beams
    assert chunk.beams['Bogus'] == []


def test_dense(full_ping, sparse_ping):
    chunk = PingChunk(['Z', 'AcrossTrack', 'AlongTrack', 'BeamFlags'], sensor_id=SubRecordID.SEABAT, dense=True,
                      max_beams=3)
    chunk.append_ping(0, full_ping)
    chunk.append_ping(1, sparse_ping)
    result = chunk.finalize()
    for name in ('Z', 'AcrossTrack', 'AlongTrack', 'BeamFlags'):
        assert len(result['beams'][name]) == 6
    numpy.testing.assert_almost_equal(result['beams']['Z'][3:], [-20.0, -21.0, 0.0])
    assert result['lonlat']['Longitude'][-1] == NULL_LONGITUDE
    assert result['lonlat']['Latitude'][-1] == NULL_LATITUDE
    numpy.testing.assert_array_equal(result['ping_beam']['PingNumber'], [0, 0, 0, 1, 1, 1])
    numpy.testing.assert_array_equal(result['ping_beam']['BeamNumber'], [0, 1, 2, 0, 1, 2])


def test_pad_dense_nothing_to_pad(full_ping):
    chunk = PingChunk(['Z'], max_beams=2)
    assert chunk.pad_dense(full_ping, 2) == 0


def test_intensity_nulls(sparse_ping):
    with_intensity = _ping(depth=(1.0, 2.0), intensity=gsfbuilder.intensity_payload([[1, 3], [5, 7, 9]]))
    chunk = PingChunk(['Z', 'AcrossTrack', 'IntensitySeries'])
    chunk.append_ping(0, with_intensity)
    chunk.append_ping(1, sparse_ping)
    result = chunk.finalize()
    intensity = result['intensity']
    numpy.testing.assert_array_equal(intensity['sample_count'], [2, 3, 0, 0])
    numpy.testing.assert_almost_equal(intensity['TsMean'][:2], [2.0, 7.0])
    assert numpy.isnan(intensity['TsMean'][2:]).all()
    assert len(intensity['TimeSeries']) == 7
    assert 'IntensitySeries' not in result['beams']


def test_stack_values():
    numpy.testing.assert_array_equal(stack_values([1, 2, 3]), [1, 2, 3])
    assert stack_values([numpy.zeros(2), numpy.zeros(2)]).shape == (2, 2)
    assert isinstance(stack_values([numpy.zeros(2), numpy.zeros(3)]), list)


def test_merge_records():
    merged = merge_records([{'a': 1.0}, {}, {'a': 3.0, 'b': 4}], {'a': numpy.nan, 'b': 0})
    numpy.testing.assert_array_equal(merged['a'], [1.0, numpy.nan, 3.0])
    numpy.testing.assert_array_equal(merged['b'], [0, 0, 4])

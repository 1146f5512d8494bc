import io
import struct
import logging

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy
import pytest

from GSF.decode.constants import SubRecordID
from GSF.decode.errors import MalformedHeader
from GSF.decode.gsf import GsfRead, RecordIndex
from GSF.decode.ping import PingData
from GSF.decode.records import Comment
from GSF.decode.tests import gsfbuilder


def survey_bytes(bad_sensor=False):
    """a small survey line, the second ping inherits the scale factors of the first"""
    data = gsfbuilder.header_record('GSF-v03.09')
    data += gsfbuilder.processing_parameters_record(['GEOID=WGS-84', 'TIDAL_DATUM=MLLW', 'DRAFT=1.25'])
    data += gsfbuilder.comment_record('Line started')
    data += gsfbuilder.svp_record([0.0, 10.0, 20.0], [1500.0, 1499.0, 1498.0])
    data += gsfbuilder.attitude_record([0, 100, 200], [1.0, 1.1, 1.2], [0.0, 0.1, 0.2], [0.0, 0.0, 0.0],
                                       [10.0, 10.0, 10.0])
    data += gsfbuilder.ping_record(depth=(10.0, 11.0), across=(-1.0, 1.0), sensor=gsfbuilder.seabat_payload(1),
                                   seconds=1600000000, longitude=140.0, latitude=-10.0)
    sensor = b'\x00\x01' if bad_sensor else gsfbuilder.seabat_payload(2)
    data += gsfbuilder.ping_record(depth=(12.0, 13.0), across=(-2.0, 2.0), scale_factors=False, sensor=sensor,
                                   seconds=1600000001, longitude=140.0, latitude=-10.0)
    data += gsfbuilder.ping_record(depth=(14.0, 15.0, 16.0), across=(-3.0, 0.0, 3.0), flags=[1, 0, 1],
                                   sensor=gsfbuilder.seabat_payload(3), seconds=1600000002, longitude=140.0,
                                   latitude=-10.0)
    data += gsfbuilder.summary_record()
    data += gsfbuilder.history_record('survey-pc', 'jdoe', 'gsfclean', 'cleaned')
    return data


@pytest.fixture
def gsf_path(tmp_path):
    path = tmp_path / '0001_survey_line.gsf'
    path.write_bytes(survey_bytes())
    return str(path)


@pytest.fixture
def gsf(gsf_path):
    reader = GsfRead(gsf_path)
    reader.info()
    yield reader
    reader.close()


def test_minimal_file():
    data = gsfbuilder.header_record() + gsfbuilder.ping_record() + gsfbuilder.summary_record()
    reader = GsfRead(io.BytesIO(data))
    info = reader.info()
    assert info['record_counts'] == {'HEADER': 1, 'SWATH_BATHYMETRY_PING': 1, 'SWATH_BATHY_SUMMARY': 1}
    assert info['measurement_counts']['SWATH_BATHYMETRY_PING'] == 2
    assert reader.ping_info[0].number_beams == 2
    assert info['subrecord_counts'] == {'SCALE_FACTORS': 1, 'DEPTH': 1, 'ACROSS_TRACK': 1}
    assert info['sensor_id'] is None


def test_info(gsf, gsf_path):
    info = gsf.info()
    assert info['gsf_uri'] == gsf_path
    assert info['gsf_version'] == 'GSF-v03.09'
    assert gsf.major_minor == (3, 9)
    assert info['size'] == len(survey_bytes())
    assert info['record_counts'] == {'HEADER': 1, 'PROCESSING_PARAMETERS': 1, 'COMMENT': 1,
                                     'SOUND_VELOCITY_PROFILE': 1, 'ATTITUDE': 1, 'SWATH_BATHYMETRY_PING': 3,
                                     'SWATH_BATHY_SUMMARY': 1, 'HISTORY': 1}
    assert info['measurement_counts']['SWATH_BATHYMETRY_PING'] == 7
    assert info['measurement_counts']['ATTITUDE'] == 3
    assert info['measurement_counts']['SOUND_VELOCITY_PROFILE'] == 3
    assert info['measurement_counts']['COMMENT'] == 1
    assert info['crs'] == {'horizontal_datum': 'wgs-84', 'vertical_datum': 'mllw'}
    assert info['sensor_id'] == SubRecordID.SEABAT
    assert info['sensor_name'] == 'SEABAT'
    assert info['subrecord_schema'] == ['DEPTH', 'ACROSS_TRACK', 'BEAM_FLAGS']
    assert info['subrecord_counts']['SCALE_FACTORS'] == 2
    assert info['subrecord_counts']['BEAM_FLAGS'] == 1
    numpy.testing.assert_almost_equal(info['swath_summary']['max_depth'], 55.5)
    assert info['quality_info']['min_max_beams'] == [2, 3]
    assert not info['quality_info']['consistent_beams']
    assert not info['quality_info']['consistent_schema']
    assert not info['quality_info']['duplicate_pings']


def test_ping_groups(gsf):
    assert [(g.start, g.stop, g.number_beams) for g in gsf.ping_groups] == [(0, 2, 4), (2, 3, 3)]
    assert gsf.ping_info[1].resolved_scale_factors is gsf.ping_info[0].scale_factors


def test_ping_chunks(gsf):
    chunks = list(gsf.ping_chunks(chunk_size=2))
    assert len(chunks) == 2
    first, second = chunks
    numpy.testing.assert_array_equal(first['ping_beam']['PingNumber'], [0, 0, 1, 1])
    numpy.testing.assert_almost_equal(first['beams']['Z'], [-10.0, -11.0, -12.0, -13.0])
    numpy.testing.assert_array_equal(first['beams']['BeamFlags'], [0, 0, 0, 0])
    numpy.testing.assert_array_equal(first['sensor_metadata']['PingNumber'], [1, 2])
    numpy.testing.assert_array_equal(second['ping_beam']['PingNumber'], [2, 2, 2])
    numpy.testing.assert_array_equal(second['beams']['BeamFlags'], [1, 0, 1])
    numpy.testing.assert_almost_equal(second['ping_headers']['Timestamp'], [1600000002.0])


def test_dense_chunk(gsf):
    result = gsf.read_pings(dense=True)
    assert len(result['beams']['Z']) == 9
    numpy.testing.assert_array_equal(result['ping_beam']['BeamNumber'], [0, 1, 2] * 3)
    assert result['lonlat']['Longitude'][2] == 181.0


@pytest.mark.parametrize("chunk_size", [0, -1])
def test_bad_chunk_size(gsf, chunk_size):
    with pytest.raises(ValueError):
        list(gsf.ping_chunks(chunk_size=chunk_size))


def test_bad_ping_skipped(tmp_path, caplog):
    path = tmp_path / 'bad_sensor.gsf'
    path.write_bytes(survey_bytes(bad_sensor=True))
    with GsfRead(str(path)) as reader:
        reader.info()
        with caplog.at_level(logging.ERROR):
            result = reader.read_pings()
    assert 'Skipping PingID 1' in caplog.text
    numpy.testing.assert_array_equal(result['ping_beam']['PingNumber'], [0, 0, 2, 2, 2])


def test_header_not_first():
    data = gsfbuilder.comment_record('first') + gsfbuilder.header_record()
    with pytest.raises(MalformedHeader):
        GsfRead(io.BytesIO(data)).info()


def test_truncated_file():
    data = gsfbuilder.header_record() + gsfbuilder.ping_record()
    with pytest.raises(MalformedHeader):
        GsfRead(io.BytesIO(data + b'\x00\x00\x00')).info()
    with pytest.raises(MalformedHeader):
        GsfRead(io.BytesIO(data[:-5])).info()


def test_getrecord(gsf, capsys):
    comment = gsf.getrecord('COMMENT', 0)
    assert isinstance(comment, Comment)
    assert comment.text == 'Line started'
    ping = gsf.getrecord('SWATH_BATHYMETRY_PING', 1)
    assert isinstance(ping, PingData)
    numpy.testing.assert_almost_equal(ping.beams.Z, [-12.0, -13.0])
    assert gsf.getrecord('NAVIGATION_ERROR', 0) is None
    assert 'Unable to find record NAVIGATION_ERROR' in capsys.readouterr().out


def test_record_accessors(gsf):
    assert [c.text for c in gsf.comments()] == ['Line started']
    assert gsf.history()[0].command == 'gsfclean'
    assert gsf.attitude()[0].number_measurements == 3
    numpy.testing.assert_almost_equal(gsf.sound_velocity_profiles()[0].sound_velocity, [1500.0, 1499.0, 1498.0])
    assert gsf.processing_parameters()['draft'] == 1.25
    assert gsf.number_pings == 3


def test_record_stepping(gsf_path):
    with GsfRead(gsf_path) as reader:
        reader.read()
        assert reader.packet.dtype == 'HEADER'
        reader.get()
        assert reader.packet.subpack == 'GSF-v03.09'
        reader.findpacket('COMMENT', verbose=False)
        assert reader.packet.subpack.text == 'Line started'
        reader.reset()
        reader.read()
        assert reader.packet.datagram_start == 0


def test_record_index(gsf):
    starts = gsf.map.packdir['SWATH_BATHYMETRY_PING'][:, 0]
    assert len(starts) == 3
    assert gsf.map.find_nearest(int(starts[1]) - 1) == ('SWATH_BATHYMETRY_PING', int(starts[1]))
    assert gsf.map.find_nearest(int(starts[1]) + 1, mode='nearest') == ('SWATH_BATHYMETRY_PING', int(starts[1]))
    assert gsf.map.find_nearest(10 ** 9) == (None, None)
    with pytest.raises(ValueError):
        gsf.map.find_nearest(0, mode='previous')


def test_printmap(gsf, capsys):
    gsf.map.printmap()
    assert 'record SWATH_BATHYMETRY_PING has 3 records' in capsys.readouterr().out


def test_plotmap(gsf):
    gsf.plotmap()
    assert plt.gcf().axes[0].get_xlabel() == 'Record Number'
    plt.close('all')


def test_empty_index():
    index = RecordIndex()
    index.finalize()
    assert index.counts() == {}
    assert index.find_nearest(0) == (None, None)


def test_bad_pointers(gsf_path):
    with pytest.raises(ValueError):
        GsfRead(gsf_path, start_ptr=100, end_ptr=10)


def test_intensity_without_sensor_block():
    data = gsfbuilder.header_record()
    data += gsfbuilder.ping_record(intensity=gsfbuilder.intensity_payload([[1, 3], [5, 7, 9]]))
    data += gsfbuilder.summary_record()
    reader = GsfRead(io.BytesIO(data))
    info = reader.info()
    assert info['sensor_id'] is None
    result = reader.read_pings()
    numpy.testing.assert_array_equal(result['ping_beam']['PingNumber'], [0, 0])
    numpy.testing.assert_array_equal(result['intensity']['sample_count'], [2, 3])
    numpy.testing.assert_almost_equal(result['intensity']['TsMean'], [2.0, 7.0])
    assert result['imagery_metadata'] == {}


def test_broken_scale_factors_ping(caplog):
    broken = struct.pack('>i', 9) + struct.pack('>Iii', SubRecordID.DEPTH << 24, 100, 0)
    data = gsfbuilder.header_record()
    data += gsfbuilder.ping_record(seconds=1600000000)
    data += gsfbuilder.ping_record(scale_factors=False, extra_subrecords=[(SubRecordID.SCALE_FACTORS, broken)],
                                   seconds=1600000001)
    data += gsfbuilder.ping_record(scale_factors=False, seconds=1600000002)
    data += gsfbuilder.summary_record()
    reader = GsfRead(io.BytesIO(data))
    with caplog.at_level(logging.ERROR):
        info = reader.info()
        assert 'Skipping PingID 1' in caplog.text
        caplog.clear()

        assert info['record_counts']['SWATH_BATHYMETRY_PING'] == 3
        assert info['quality_info']['min_max_beams'] == [2, 2]
        assert info['quality_info']['consistent_beams']
        assert info['quality_info']['duplicates'] == []
        assert reader.ping_info[1].failed
        assert [(g.start, g.stop) for g in reader.ping_groups] == [(0, 1), (1, 3)]
        assert reader.ping_groups[1].scale_factors is None
        assert reader.ping_info[2].resolved_scale_factors is None

        result = reader.read_pings()
    assert 'Skipping PingID 1' in caplog.text
    assert 'Skipping PingID 2' in caplog.text
    numpy.testing.assert_array_equal(result['ping_beam']['PingNumber'], [0, 0])


def test_checksum_counted_in_payload():
    comment = gsfbuilder.payload_of(gsfbuilder.comment_record('checked'))
    data = gsfbuilder.header_record()
    data += gsfbuilder.record(gsfbuilder.COMMENT, comment, checksum=0x1234, count_checksum=True)
    data += gsfbuilder.summary_record()
    reader = GsfRead(io.BytesIO(data))
    info = reader.info()
    assert info['record_counts'] == {'HEADER': 1, 'COMMENT': 1, 'SWATH_BATHY_SUMMARY': 1}
    numpy.testing.assert_almost_equal(info['swath_summary']['max_depth'], 55.5)
    rec = reader.map.headers['COMMENT'][0]
    assert rec.checksum_flag
    assert rec.datasize == len(comment) + 4


def test_skip_checksum():
    comment = gsfbuilder.payload_of(gsfbuilder.comment_record('checked'))
    data = gsfbuilder.header_record()
    data += gsfbuilder.record(gsfbuilder.COMMENT, comment, checksum=0x1234)
    data += gsfbuilder.summary_record()
    reader = GsfRead(io.BytesIO(data), skip_checksum=True)
    info = reader.info()
    assert info['record_counts'] == {'HEADER': 1, 'COMMENT': 1, 'SWATH_BATHY_SUMMARY': 1}
    numpy.testing.assert_almost_equal(info['swath_summary']['max_depth'], 55.5)
    assert reader.map.headers['COMMENT'][0].checksum == 0x1234
    assert reader.comments()[0].text == 'checked'
    assert reader.map.find_nearest(1) == ('COMMENT', len(gsfbuilder.header_record()))


def test_read_pings_twice(gsf):
    first = gsf.read_pings()
    second = gsf.read_pings()
    numpy.testing.assert_equal(first, second)
    assert list(first['beams'].keys()) == list(second['beams'].keys())

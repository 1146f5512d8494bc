import struct

import numpy
import pytest

from GSF.decode.constants import SubRecordID
from GSF.decode.errors import SensorDecodeFailure
from GSF.decode.imagery import decode_intensity, unpack_12bit, sample_block_size, IMAGERY_DECODERS, Em3Imagery, \
    Em4Imagery
from GSF.decode.tests import gsfbuilder


def test_unscaled_samples():
    payload = gsfbuilder.intensity_payload([[1, 2, 3], [10, 20]], bits_per_sample=16)
    intensity, imagery, nbytes = decode_intensity(payload, 0, 2, SubRecordID.SEABAT)
    assert imagery is None
    assert nbytes == len(payload)
    numpy.testing.assert_array_equal(intensity.sample_count, [3, 2])
    numpy.testing.assert_array_equal(intensity.BottomDetectIndex, [0, 1])
    numpy.testing.assert_array_equal(intensity.StartRange, [0, 10])
    numpy.testing.assert_almost_equal(intensity.TimeSeries, [1, 2, 3, 10, 20])
    numpy.testing.assert_almost_equal(intensity.TsMean, [2.0, 15.0])
    assert intensity.number_beams == 2
    series = intensity.beam_series()
    numpy.testing.assert_almost_equal(series[1], [10, 20])


def test_no_sensor_id():
    payload = gsfbuilder.intensity_payload([[1, 3], [5, 7, 9]])
    intensity, imagery, nbytes = decode_intensity(payload, 0, 2, None)
    assert imagery is None
    assert nbytes == len(payload)
    numpy.testing.assert_almost_equal(intensity.TsMean, [2.0, 7.0])


def test_zero_sample_beam():
    payload = gsfbuilder.intensity_payload([[4, 6], [], [8]], bits_per_sample=8)
    intensity, imagery, nbytes = decode_intensity(payload, 0, 3, SubRecordID.SEABAT)
    assert len(intensity.TimeSeries) == 4
    assert numpy.isnan(intensity.TimeSeries[2])
    assert numpy.isnan(intensity.TsMean[1])
    numpy.testing.assert_array_equal(intensity.sample_count, [2, 0, 1])
    assert [len(s) for s in intensity.beam_series()] == [2, 1, 1]


def test_em3_imagery_scale():
    # the stored scale is ignored, EM3 samples are (value - offset) / 2
    imagery = struct.pack('>HHHBBHhh', 1, 2, 3, 4, 5, 100, 7, 8) + b'\x00' * 4
    payload = gsfbuilder.intensity_payload([[18, 28]], bits_per_sample=16, imagery=imagery)
    intensity, meta, nbytes = decode_intensity(payload, 0, 1, SubRecordID.EM3000)
    assert isinstance(meta, Em3Imagery)
    numpy.testing.assert_almost_equal(meta.MeanAbsorption, 1.0, 5)
    numpy.testing.assert_almost_equal(intensity.TimeSeries, [5.0, 10.0])
    assert nbytes == len(payload)


def test_em4_imagery_scale():
    imagery = struct.pack('>IIHHHHHhhHHhh', 1000, 2000000000, 0, 0, 0, 0, 0, 0, 0, 0, 0, 20, 0) + b'\x00' * 20
    payload = gsfbuilder.intensity_payload([[220, 320]], bits_per_sample=16, imagery=imagery)
    intensity, meta, nbytes = decode_intensity(payload, 0, 1, SubRecordID.EM2040)
    assert isinstance(meta, Em4Imagery)
    numpy.testing.assert_almost_equal(meta.SamplingFrequency, 1000.5)
    numpy.testing.assert_almost_equal(intensity.TimeSeries, [20.0, 30.0])


def test_raw_em3_uses_imagery():
    assert IMAGERY_DECODERS[SubRecordID.EM3000_RAW] is Em3Imagery


def test_unsupported_bits():
    payload = struct.pack('>BI', 24, 0) + b'\x00' * 16
    with pytest.raises(SensorDecodeFailure):
        decode_intensity(payload, 0, 1, SubRecordID.SEABAT)


def test_truncated_series():
    payload = gsfbuilder.intensity_payload([[1, 2, 3]], bits_per_sample=16)[:-2]
    with pytest.raises(SensorDecodeFailure):
        decode_intensity(payload, 0, 1, SubRecordID.SEABAT)


def test_unpack_12bit():
    # 0xABC, 0x123 packed in 3 bytes
    samples = unpack_12bit(b'\xab\xc1\x23', 2)
    numpy.testing.assert_array_equal(samples, [0xABC, 0x123])
    numpy.testing.assert_array_equal(unpack_12bit(b'\xab\xc1\x23', 1), [0xABC])


@pytest.mark.parametrize("bits,count,expected", [(8, 5, 5), (16, 5, 10), (32, 2, 8), (12, 3, 6), (12, 4, 6)])
def test_sample_block_size(bits, count, expected):
    assert sample_block_size(bits, count) == expected

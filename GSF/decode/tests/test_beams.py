import numpy
import pytest

from GSF.decode.beams import BeamArray, decode_beam_array, bytes_per_beam
from GSF.decode.constants import SubRecordID
from GSF.decode.errors import MalformedHeader, ScaleFactorError, UnsupportedSubrecord
from GSF.decode.record import read_subrecord_header
from GSF.decode.scalefactors import ScaleFactor
from GSF.decode.tests import gsfbuilder


@pytest.fixture
def scale_factors():
    return {SubRecordID.DEPTH: ScaleFactor(SubRecordID.DEPTH, 100, 0),
            SubRecordID.ACROSS_TRACK: ScaleFactor(SubRecordID.ACROSS_TRACK, 100, 0),
            SubRecordID.BEAM_ANGLE: ScaleFactor(SubRecordID.BEAM_ANGLE, 100, 0),
            SubRecordID.QUALITY_FACTOR: ScaleFactor(SubRecordID.QUALITY_FACTOR, 1, 0)}


def _decode(beams, sub_id, payload, scale_factors):
    buffer = gsfbuilder.subrecord(sub_id, payload)
    sub = read_subrecord_header(buffer, 0)
    return decode_beam_array(beams, buffer, sub, 4, scale_factors)


def test_depth_is_negated(scale_factors):
    beams = BeamArray(3)
    assert _decode(beams, SubRecordID.DEPTH, gsfbuilder.beam_payload([10.0, 20.5, 0.0], 100, dtype='>u4'),
                   scale_factors)
    numpy.testing.assert_almost_equal(beams.Z, [-10.0, -20.5, 0.0])
    assert beams.decoded == ['Z']


@pytest.mark.parametrize("dtype", ['>i1', '>i2', '>i4'])
def test_width_from_subrecord_size(scale_factors, dtype):
    beams = BeamArray(2)
    _decode(beams, SubRecordID.ACROSS_TRACK, gsfbuilder.beam_payload([-1.0, 1.0], 100, dtype=dtype), scale_factors)
    numpy.testing.assert_almost_equal(beams.AcrossTrack, [-1.0, 1.0])


def test_fixed_width_overrides_subrecord_size(scale_factors):
    # BEAM_ANGLE is always 2 bytes per beam, the trailing padding is ignored
    beams = BeamArray(2)
    payload = gsfbuilder.beam_payload([-45.0, 45.0], 100, dtype='>i2') + b'\x00' * 4
    buffer = gsfbuilder.subrecord(SubRecordID.BEAM_ANGLE, payload)
    sub = read_subrecord_header(buffer, 0)
    assert bytes_per_beam(sub, 2) == (2, True)
    decode_beam_array(beams, buffer, sub, 4, scale_factors)
    numpy.testing.assert_almost_equal(beams.BeamAngle, [-45.0, 45.0])


def test_beam_flags_unscaled():
    beams = BeamArray(4)
    _decode(beams, SubRecordID.BEAM_FLAGS, bytes([0, 1, 128, 255]), {})
    assert beams.BeamFlags.dtype == numpy.uint8
    numpy.testing.assert_array_equal(beams.BeamFlags, [0, 1, 128, 255])


def test_missing_scale_factor():
    beams = BeamArray(2)
    with pytest.raises(ScaleFactorError):
        _decode(beams, SubRecordID.DEPTH, gsfbuilder.beam_payload([1.0, 2.0], 100), {})


@pytest.mark.parametrize("sub_id", [SubRecordID.QUALITY_FLAGS, SubRecordID.SR_NOT_DEFINED, SubRecordID.SASS,
                                    SubRecordID.TYPEIII_SEABEAM])
def test_unsupported_subrecords(scale_factors, sub_id):
    beams = BeamArray(2)
    with pytest.raises(UnsupportedSubrecord) as err:
        _decode(beams, sub_id, b'\x00' * 4, scale_factors)
    assert err.value.subrecord_size == 4
    assert err.value.position == 4


def test_truncated_array(scale_factors):
    beams = BeamArray(4)
    buffer = gsfbuilder.subrecord(SubRecordID.QUALITY_FACTOR, b'\x01\x02')
    sub = read_subrecord_header(buffer, 0)
    with pytest.raises(MalformedHeader):
        decode_beam_array(beams, buffer, sub, 4, scale_factors)


def test_zero_beams(scale_factors):
    beams = BeamArray(0)
    _decode(beams, SubRecordID.DEPTH, b'', scale_factors)
    assert len(beams.Z) == 0


def test_not_a_beam_array(scale_factors):
    beams = BeamArray(2)
    assert not _decode(beams, SubRecordID.SEABAT, b'\x00' * 8, scale_factors)
    assert beams.decoded == []


def test_beam_array_access():
    beams = BeamArray(2)
    beams.add('Z', numpy.array([1.0, 2.0]))
    beams.observed('IntensitySeries')
    beams.observed('Z')
    assert 'Z' in beams
    assert 'IntensitySeries' not in beams
    assert beams.decoded == ['Z', 'IntensitySeries']
    assert beams.get('AcrossTrack') is None
    assert 'Z' in dir(beams)
    with pytest.raises(AttributeError):
        beams.AcrossTrack
    with pytest.raises(MalformedHeader):
        beams.add('AcrossTrack', numpy.zeros(3))

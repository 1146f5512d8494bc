import numpy
import pytest

from GSF.decode.constants import SubRecordID
from GSF.decode.errors import MalformedHeader, ScaleFactorError
from GSF.decode.scalefactors import ScaleFactor, decode_scale_factors, apply_scale_factor, remove_scale_factor
from GSF.decode.tests import gsfbuilder


def test_decode_scale_factors():
    payload = gsfbuilder.scale_factors_payload({SubRecordID.DEPTH: (100, 0),
                                                SubRecordID.ACROSS_TRACK: (200, -5, 0x21)})
    factors, nbytes = decode_scale_factors(b'\x00\x00' + payload, offset=2)
    assert nbytes == 4 + 12 * 2
    assert set(factors.keys()) == {SubRecordID.DEPTH, SubRecordID.ACROSS_TRACK}
    depth = factors[SubRecordID.DEPTH]
    assert depth.scale == 100.0
    assert depth.offset == 0.0
    assert not depth.compressed
    across = factors[SubRecordID.ACROSS_TRACK]
    assert across.scale == 200.0
    assert across.offset == -5.0
    assert across.compressed
    assert across.field_size == 0x20


def test_empty_scale_factors():
    factors, nbytes = decode_scale_factors(gsfbuilder.scale_factors_payload({}))
    assert factors == {}
    assert nbytes == 4


@pytest.mark.parametrize("payload", [b'\x00\x00', b'\x00\x00\x00\x02' + b'\x00' * 12, b'\xff\xff\xff\xff'])
def test_truncated_scale_factors(payload):
    with pytest.raises(MalformedHeader):
        decode_scale_factors(payload)


def test_scale_factor_read_only():
    sf = ScaleFactor(SubRecordID.DEPTH, 100, 0)
    with pytest.raises(AttributeError):
        sf.scale = 10
    assert sf == ScaleFactor(SubRecordID.DEPTH, 100.0, 0.0)
    assert hash(sf) == hash(ScaleFactor(SubRecordID.DEPTH, 100.0, 0.0))


@pytest.mark.parametrize("raw,scale,offset,expected", [
    ([1000, 1250], 100, 0, [10.0, 12.5]),
    ([0, 10], 10, 2, [-2.0, -1.0]),
    ([-300], 1000, 0, [-0.3]),
])
def test_apply_scale_factor(raw, scale, offset, expected):
    sf = ScaleFactor(SubRecordID.DEPTH, scale, offset)
    numpy.testing.assert_almost_equal(apply_scale_factor(numpy.array(raw), sf), expected)
    numpy.testing.assert_array_equal(remove_scale_factor(expected, sf), raw)


@pytest.mark.parametrize("sf", [None, ScaleFactor(SubRecordID.DEPTH, 0, 0)])
def test_unusable_scale_factor(sf):
    with pytest.raises(ScaleFactorError):
        apply_scale_factor([1, 2], sf)

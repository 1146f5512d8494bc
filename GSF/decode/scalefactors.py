"""
SCALE_FACTORS subrecord decoding.

The subrecord holds a count followed by (packed id/compression word, scale, offset) triplets.  Beam arrays
are stored as scaled integers and reconstructed as ``value / scale - offset``.
"""

import numpy as np

from GSF.decode.constants import subrecord_name
from GSF.decode.errors import MalformedHeader, ScaleFactorError

scale_dtype = np.dtype([('PackedId', '>u4'), ('Scale', '>i4'), ('Offset', '>i4')])


class ScaleFactor:
    """
    Scale and offset for one beam array subrecord.  Instances are shared by every ping inheriting them
    so they are read only.
    """
    __slots__ = ('id', 'scale', 'offset', 'compression_flag', 'compressed', 'field_size')

    def __init__(self, subrecord_id, scale, offset, compression_flag=0):
        for name, val in (('id', subrecord_id), ('scale', float(scale)), ('offset', float(offset)),
                          ('compression_flag', compression_flag), ('compressed', (compression_flag & 0x0F) == 1),
                          ('field_size', compression_flag & 0xF0)):
            object.__setattr__(self, name, val)

    def __setattr__(self, key, value):
        raise AttributeError(f'ScaleFactor is read only, unable to set {key}')

    def __eq__(self, other):
        if not isinstance(other, ScaleFactor):
            return NotImplemented
        return (self.id, self.scale, self.offset, self.compression_flag) == \
               (other.id, other.scale, other.offset, other.compression_flag)

    def __hash__(self):
        return hash((self.id, self.scale, self.offset, self.compression_flag))

    def __repr__(self):
        return f'ScaleFactor({subrecord_name(self.id)}, scale={self.scale}, offset={self.offset}, compressed={self.compressed})'


def decode_scale_factors(buffer, offset=0):
    """
    Decode the SCALE_FACTORS subrecord payload starting at offset.

    Returns
    -------
    dict
        subrecord id: ScaleFactor
    int
        number of bytes consumed, always 4 + 12 * number of factors
    """
    if offset + 4 > len(buffer):
        raise MalformedHeader('SCALE_FACTORS subrecord truncated before the factor count', position=offset)
    num_factors = int(np.frombuffer(buffer, dtype='>i4', count=1, offset=offset)[0])
    nbytes = 4 + scale_dtype.itemsize * num_factors
    if num_factors < 0 or offset + nbytes > len(buffer):
        raise MalformedHeader(f'SCALE_FACTORS subrecord declares {num_factors} factors but the buffer is too short',
                              position=offset)
    data = np.frombuffer(buffer, dtype=scale_dtype, count=num_factors, offset=offset + 4)
    scale_factors = {}
    for packed, scale, offs in data.tolist():
        subid = (packed & 0xFF000000) >> 24
        comp_flag = (packed & 0x00FF0000) >> 16
        scale_factors[subid] = ScaleFactor(subid, scale, offs, comp_flag)
    return scale_factors, nbytes


def apply_scale_factor(raw, scale_factor: ScaleFactor):
    """Convert the stored integers to physical values, works on scalars and numpy arrays"""
    if scale_factor is None or scale_factor.scale == 0:
        raise ScaleFactorError(f'No usable scale factor for {subrecord_name(getattr(scale_factor, "id", 0))}')
    return np.asarray(raw, dtype=np.float64) / scale_factor.scale - scale_factor.offset


def remove_scale_factor(value, scale_factor: ScaleFactor):
    """Inverse of apply_scale_factor, returns the nearest stored integer"""
    return np.rint((np.asarray(value, dtype=np.float64) + scale_factor.offset) * scale_factor.scale).astype(np.int64)

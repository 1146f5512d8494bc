"""
Beam array subrecord decoding for swath bathymetry pings.

Each beam array is stored as nbeams big endian integers of 1, 2 or 4 bytes.  Most subrecords report their
width through the subrecord size (size // nbeams), a handful are mandated by the format to a fixed width as
their self reported size has been unreliable in the wild.
"""

import numpy as np

from GSF.decode.constants import SubRecordID, beam_field_names, subrecord_name
from GSF.decode.errors import MalformedHeader, ScaleFactorError, UnsupportedSubrecord
from GSF.decode.record import error_context
from GSF.decode.scalefactors import apply_scale_factor

signed_dtypes = {1: '>i1', 2: '>i2', 4: '>i4'}
unsigned_dtypes = {1: '>u1', 2: '>u2', 4: '>u4'}

# subrecord id: (fixed bytes per beam or None for the self reported width, signed)
beam_layouts = {SubRecordID.DEPTH: (None, False),
                SubRecordID.ACROSS_TRACK: (None, True),
                SubRecordID.ALONG_TRACK: (None, True),
                SubRecordID.TRAVEL_TIME: (None, False),
                SubRecordID.BEAM_ANGLE: (2, True),
                SubRecordID.MEAN_CAL_AMPLITUDE: (None, True),
                SubRecordID.MEAN_REL_AMPLITUDE: (None, False),
                SubRecordID.ECHO_WIDTH: (None, False),
                SubRecordID.QUALITY_FACTOR: (1, False),
                SubRecordID.RECEIVE_HEAVE: (1, True),
                SubRecordID.DEPTH_ERROR: (2, False),
                SubRecordID.ACROSS_TRACK_ERROR: (2, False),
                SubRecordID.ALONG_TRACK_ERROR: (2, False),
                SubRecordID.NOMINAL_DEPTH: (None, False),
                SubRecordID.SIGNAL_TO_NOISE: (1, True),
                SubRecordID.BEAM_ANGLE_FORWARD: (2, True),
                SubRecordID.VERTICAL_ERROR: (2, False),
                SubRecordID.HORIZONTAL_ERROR: (2, False),
                SubRecordID.SECTOR_NUMBER: (1, False),
                SubRecordID.DETECTION_INFO: (1, False),
                SubRecordID.INCIDENT_BEAM_ADJ: (1, True),
                SubRecordID.SYSTEM_CLEANING: (1, False),
                SubRecordID.DOPPLER_CORRECTION: (1, True),
                SubRecordID.SONAR_VERT_UNCERTAINTY: (2, False),
                SubRecordID.SONAR_HORZ_UNCERTAINTY: (2, False),
                SubRecordID.DETECTION_WINDOW: (None, False),
                SubRecordID.MEAN_ABS_COEF: (None, False)}

# ids that stop the decode of the ping
unsupported_subrecords = {SubRecordID.QUALITY_FLAGS: 'QUALITY_FLAGS subrecord has been superseded by BEAM_FLAGS',
                          SubRecordID.SR_NOT_DEFINED: 'Subrecord ID 154 is not defined',
                          SubRecordID.SASS: 'SASS subrecord is obsolete, CMP_SASS should be used in its place',
                          SubRecordID.TYPEIII_SEABEAM: 'TYPEIII_SEABEAM subrecord is obsolete'}


class BeamArray:
    """
    Per beam arrays of a single ping.  Arrays are found as attributes by their field name (Z, AcrossTrack,
    BeamFlags...) and ``decoded`` keeps the field names in the order they were read, which is the
    schema of the ping.
    """

    def __init__(self, number_beams):
        self.number_beams = number_beams
        self.arrays = {}
        self.decoded = []

    def add(self, name, data):
        if len(data) != self.number_beams:
            raise MalformedHeader(f'{name} has {len(data)} values for a ping with {self.number_beams} beams')
        self.arrays[name] = data
        self.observed(name)

    def observed(self, name):
        """record the field as part of the ping schema, for fields held outside of the arrays (intensity)"""
        if name not in self.decoded:
            self.decoded.append(name)

    def get(self, name, default=None):
        return self.arrays.get(name, default)

    def __contains__(self, name):
        return name in self.arrays

    def __getattr__(self, key):
        try:
            return self.__dict__['arrays'][key]
        except KeyError:
            raise AttributeError(key + " not in " + str(self.__class__))

    def __dir__(self):
        s = list(self.__dict__.keys())
        s.extend(list(self.arrays.keys()))
        s.extend(dir(self.__class__))
        return sorted([v for v in s if v[0] != "_"])

    def __repr__(self):
        return f'BeamArray(number_beams={self.number_beams}, fields={self.decoded})'


def bytes_per_beam(subrecord, number_beams):
    """Width of each beam value, either fixed by the format or derived from the subrecord size"""
    fixed, signed = beam_layouts[subrecord.id]
    if fixed is not None:
        return fixed, signed
    if number_beams == 0:
        return 0, signed
    return subrecord.datasize // number_beams, signed


def decode_beam_flags(buffer, offset, number_beams):
    """BEAM_FLAGS are raw bytes per beam, no scale factor applies"""
    if offset + number_beams > len(buffer):
        raise MalformedHeader(f'BEAM_FLAGS requires {number_beams} bytes')
    return np.frombuffer(buffer, dtype=np.uint8, count=number_beams, offset=offset).copy()


def decode_subrecord_array(buffer, offset, number_beams, scale_factor, width, signed):
    """
    Read number_beams integers of the given width at offset and apply the scale factor.

    Returns a float64 numpy array.
    """
    if signed:
        dtype = signed_dtypes.get(width)
    else:
        dtype = unsigned_dtypes.get(width)
    if dtype is None:
        raise MalformedHeader(f'Unsupported beam array width of {width} bytes')
    if offset + width * number_beams > len(buffer):
        raise MalformedHeader(f'Beam array requires {width * number_beams} bytes, only {len(buffer) - offset} remain')
    raw = np.frombuffer(buffer, dtype=dtype, count=number_beams, offset=offset)
    return apply_scale_factor(raw, scale_factor)


def decode_beam_array(beam_array, buffer, subrecord, offset, scale_factors, rec=None):
    """
    Decode one beam array subrecord into beam_array.

    buffer is the record payload and offset the position of the subrecord payload within it.  rec is the
    RecordHeader, only used for the diagnostics.  Returns True if the subrecord was a beam array.
    """
    diagnostics = error_context(rec, subrecord, offset)
    if subrecord.id in unsupported_subrecords:
        raise UnsupportedSubrecord(unsupported_subrecords[subrecord.id], **diagnostics)
    nbeams = beam_array.number_beams
    if subrecord.id == SubRecordID.BEAM_FLAGS:
        beam_array.add('BeamFlags', decode_beam_flags(buffer, offset, nbeams))
        return True
    if subrecord.id not in beam_layouts:
        return False

    name = beam_field_names[subrecord.id]
    if nbeams == 0:
        beam_array.add(name, np.zeros(0, dtype=np.float64))
        return True
    width, signed = bytes_per_beam(subrecord, nbeams)
    sf = scale_factors.get(subrecord.id) if scale_factors else None
    if sf is None or sf.scale == 0:
        raise ScaleFactorError(f'No scale factor found for {subrecord_name(subrecord.id)}', **diagnostics)
    try:
        data = decode_subrecord_array(buffer, offset, nbeams, sf, width, signed)
    except MalformedHeader as e:
        raise MalformedHeader(f'{subrecord_name(subrecord.id)}: {e}', **diagnostics) from e
    if subrecord.id == SubRecordID.DEPTH:
        # depth positive down -> elevation
        data = data * -1.0
    beam_array.add(name, data)
    return True

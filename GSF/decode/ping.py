"""
SWATH_BATHYMETRY_PING record decoding.

The record is the ping header followed by subrecords (scale factors, beam arrays, intensity series and a
sensor specific block).  Two passes are provided, ping_info is the light weight one used while indexing a
file, decode_ping returns all the content of a single ping.
"""

import numpy as np

from GSF.decode.beams import BeamArray, beam_layouts, decode_beam_array, unsupported_subrecords
from GSF.decode.constants import SubRecordID, beam_field_names, ping_header_nulls, NULL_LONGITUDE, NULL_LATITUDE
from GSF.decode.errors import GsfError, MalformedHeader, SensorDecodeFailure
from GSF.decode.geo import WGS84, beams_lonlat
from GSF.decode.imagery import decode_intensity
from GSF.decode.record import error_context, read_subrecord_header
from GSF.decode.scalefactors import decode_scale_factors
from GSF.decode.sensors import SENSOR_DECODERS, decode_sensor, read_block, posix_time

ping_header_raw = np.dtype([('Seconds', '>i4'), ('NanoSeconds', '>i4'), ('Longitude', '>i4'), ('Latitude', '>i4'),
                            ('NumberBeams', '>u2'), ('CentreBeam', '>u2'), ('PingFlags', '>i2'), ('Reserved', '>i2'),
                            ('TideCorrector', '>i2'), ('DepthCorrector', '>i4'), ('Heading', '>u2'), ('Pitch', '>i2'),
                            ('Roll', '>i2'), ('Heave', '>i2'), ('Course', '>u2'), ('Speed', '>u2')])
ping_header_ext_raw = np.dtype(ping_header_raw.descr + [('Height', '>i4'), ('Separation', '>i4'),
                                                        ('GpsTideCorrector', '>i4'), ('Spare', '>i2')])
ping_header_dtype = np.dtype([('Timestamp', 'f8'), ('Seconds', 'i4'), ('NanoSeconds', 'i4'), ('Longitude', 'f8'),
                              ('Latitude', 'f8'), ('NumberBeams', 'u2'), ('CentreBeam', 'u2'), ('PingFlags', 'i2'),
                              ('TideCorrector', 'f4'), ('DepthCorrector', 'f4'), ('Heading', 'f4'), ('Pitch', 'f4'),
                              ('Roll', 'f4'), ('Heave', 'f4'), ('Course', 'f4'), ('Speed', 'f4'), ('Height', 'f4'),
                              ('Separation', 'f4'), ('GpsTideCorrector', 'f4')])
ping_header_conversions = {'Longitude': 1e-7, 'Latitude': 1e-7, 'TideCorrector': 0.01, 'DepthCorrector': 0.01,
                           'Heading': 0.01, 'Pitch': 0.01, 'Roll': 0.01, 'Heave': 0.01, 'Course': 0.01, 'Speed': 0.01}
ping_header_ext_conversions = dict(ping_header_conversions, Height=0.001, Separation=0.001, GpsTideCorrector=0.001)


def has_extended_header(version):
    """height, separation and GPS tide corrector only exist from format major version 3"""
    return version is None or version[0] > 2


class PingHeader:
    """
    Ping header, fields are available from the numpy record ``header`` or as attributes,
    ``hdr.header['Heading']`` is ``hdr.Heading``.  Timestamp is POSIX seconds.
    """

    def __init__(self, datablock, version=None):
        if has_extended_header(version):
            raw_dtype, conversions = ping_header_ext_raw, ping_header_ext_conversions
        else:
            raw_dtype, conversions = ping_header_raw, ping_header_conversions
        self.hdr_sz = raw_dtype.itemsize
        if len(datablock) < self.hdr_sz:
            raise MalformedHeader(f'Ping header needs {self.hdr_sz} bytes, record holds {len(datablock)}', position=0)
        self.header = read_block(datablock, 0, raw_dtype, ping_header_dtype, conversions, name='PingHeader')
        self.header['Timestamp'] = posix_time(self.header['Seconds'], self.header['NanoSeconds'])
        if raw_dtype is ping_header_raw:
            for name in ('Height', 'Separation', 'GpsTideCorrector'):
                self.header[name] = ping_header_nulls[name]

    def as_dict(self):
        return {name: self.header[name].item() for name in ping_header_dtype.names if name not in ('Seconds', 'NanoSeconds')}

    def __getattr__(self, key):
        try:
            return self.__dict__['header'][key]
        except (KeyError, ValueError):
            raise AttributeError(key + " not in " + str(self.__class__))

    def __repr__(self):
        return f'PingHeader(Timestamp={self.header["Timestamp"]}, NumberBeams={self.header["NumberBeams"]})'


class PingInfo:
    """
    Summary of a ping built while indexing, the number of beams and which subrecords it holds.

    scale_factors are the ping's own (None if it has none), resolved_scale_factors the ones to decode it
    with, filled in by the ping grouping from the last ping that carried its own.  failed marks a ping that
    couldn't be indexed, it only holds its place in the ping sequence.
    """

    def __init__(self, timestamp, number_beams, subrecords, scale_factors=None, byte_index=0, failed=False):
        self.timestamp = timestamp
        self.number_beams = number_beams
        self.subrecords = subrecords
        self.scale_factors = scale_factors
        self.resolved_scale_factors = scale_factors
        self.byte_index = byte_index
        self.failed = failed

    @classmethod
    def placeholder(cls, byte_index=0):
        """stand in for a ping that failed indexing"""
        return cls(np.nan, 0, [], None, byte_index, failed=True)

    @property
    def has_scale_factors(self):
        return self.scale_factors is not None

    @property
    def sensor_id(self):
        """first sensor specific subrecord of the ping, None if it has none"""
        for sub in self.subrecords:
            if sub > SubRecordID.SCALE_FACTORS:
                return sub
        return None

    def __repr__(self):
        return f'PingInfo(timestamp={self.timestamp}, number_beams={self.number_beams}, subrecords={len(self.subrecords)})'


def ping_info(buffer, rec=None, version=None):
    """
    Read the ping header and walk the subrecord headers of a ping record payload.  Only the scale factors
    are decoded, every other subrecord is skipped by its size.
    """
    hdr = PingHeader(buffer, version)
    base_index = getattr(rec, 'byte_index', 0)
    idx = hdr.hdr_sz
    subrecords = []
    scale_factors = None
    datasize = len(buffer)
    while (datasize - idx) > 4:
        sub = read_subrecord_header(buffer, idx, base_index)
        idx += 4
        if sub.id == SubRecordID.SCALE_FACTORS:
            try:
                scale_factors, nbytes = decode_scale_factors(buffer, idx)
            except MalformedHeader as e:
                raise MalformedHeader(str(e.args[0]), **error_context(rec, sub, idx)) from e
            idx += nbytes
        else:
            idx += sub.datasize
        subrecords.append(sub.id)
    return PingInfo(float(hdr.header['Timestamp']), int(hdr.header['NumberBeams']), subrecords, scale_factors, base_index)


class PingData:
    """Decoded content of a single ping"""

    def __init__(self, header, beams, sensor_metadata=None, imagery_metadata=None, intensity=None,
                 longitude=None, latitude=None):
        self.header = header
        self.beams = beams
        self.sensor_metadata = sensor_metadata
        self.imagery_metadata = imagery_metadata
        self.intensity = intensity
        self.longitude = longitude
        self.latitude = latitude

    @property
    def number_beams(self):
        return self.beams.number_beams

    @property
    def schema(self):
        """beam array field names in the order they were decoded"""
        return list(self.beams.decoded)

    def __repr__(self):
        return f'PingData(number_beams={self.number_beams}, fields={self.schema})'


def ping_lonlat(header, beams, coef=WGS84):
    nbeams = beams.number_beams
    if 'AcrossTrack' not in beams:
        return np.full(nbeams, NULL_LONGITUDE), np.full(nbeams, NULL_LATITUDE)
    along = beams.get('AlongTrack')
    if along is None:
        along = np.zeros(nbeams, dtype=np.float64)
    return beams_lonlat(float(header.Longitude), float(header.Latitude), float(header.Heading), beams.AcrossTrack,
                        along, coef)


def decode_ping(buffer, rec=None, info=None, sensor_id=None, version=None, coef=WGS84):
    """
    Decode every subrecord of a ping record payload.

    Parameters
    ----------
    buffer
        the record payload (bytes)
    rec
        RecordHeader of the ping, only used for the diagnostics of raised errors
    info
        PingInfo of the ping, its resolved_scale_factors are used for the beam arrays.  Built from the
        buffer when None (so a ping without its own scale factors will fail)
    sensor_id
        sensor specific subrecord id of the file, selects the imagery metadata of the intensity series.
        Taken from the ping subrecords when None
    version
        (major, minor) format version
    coef
        GeoCoefficients used for the beam positions

    Returns
    -------
    PingData
    """
    if info is None:
        info = ping_info(buffer, rec, version)
    if sensor_id is None:
        sensor_id = info.sensor_id
    hdr = PingHeader(buffer, version)
    nbeams = int(hdr.header['NumberBeams'])
    beams = BeamArray(nbeams)
    scale_factors = info.resolved_scale_factors
    base_index = getattr(rec, 'byte_index', 0)
    sensor_metadata = None
    imagery_metadata = None
    intensity = None

    idx = hdr.hdr_sz
    while (len(buffer) - idx) > 4:
        sub = read_subrecord_header(buffer, idx, base_index)
        idx += 4
        if sub.id in unsupported_subrecords or sub.id in beam_layouts or sub.id == SubRecordID.BEAM_FLAGS:
            decode_beam_array(beams, buffer, sub, idx, scale_factors, rec)
        elif sub.id == SubRecordID.INTENSITY_SERIES:
            try:
                intensity, imagery_metadata, _ = decode_intensity(buffer, idx, nbeams, sensor_id, version)
            except SensorDecodeFailure as e:
                raise SensorDecodeFailure(str(e.args[0]), **error_context(rec, sub, idx)) from e
            beams.observed(beam_field_names[SubRecordID.INTENSITY_SERIES])
        elif sub.id in SENSOR_DECODERS:
            try:
                sensor_metadata = decode_sensor(sub.id, buffer[idx:idx + sub.datasize], version)
            except GsfError as e:
                raise SensorDecodeFailure(str(e.args[0]), **error_context(rec, sub, idx)) from e
        # scale factors were resolved while indexing, anything else is skipped
        idx += sub.datasize

    lon, lat = ping_lonlat(hdr, beams, coef)
    return PingData(hdr, beams, sensor_metadata, imagery_metadata, intensity, lon, lat)

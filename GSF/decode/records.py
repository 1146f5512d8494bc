"""
Decoders for the records other than the swath bathymetry ping.

HEADER, SWATH_BATHY_SUMMARY, COMMENT, HISTORY, PROCESSING_PARAMETERS, SOUND_VELOCITY_PROFILE and ATTITUDE.
Each takes the record payload as bytes.  Times are POSIX seconds (float) as used by the ping headers.
"""

import datetime

import numpy as np

from GSF.decode.errors import MalformedHeader
from GSF.decode.sensors import read_block, posix_time


def _check_size(buffer, nbytes, name):
    if len(buffer) < nbytes:
        raise MalformedHeader(f'{name} record needs {nbytes} bytes, payload is {len(buffer)} bytes')


def decode_header(buffer):
    """version string of the HEADER record, eg GSF-v03.09"""
    return bytes(buffer).decode('ascii', 'ignore').strip('\x00').strip()


def major_minor(version: str):
    """
    (major, minor) integers of a version string, GSF-v03.09 -> (3, 9)

    Raises MalformedHeader for a version that isn't numeric.
    """
    try:
        major, minor = version[5:].split('.')[:2]
        return int(major), int(minor)
    except ValueError as e:
        raise MalformedHeader(f'Failed to interpret GSF version "{version}"') from e


class SwathBathySummary:
    raw_dtype = np.dtype([('FirstPingSec', '>u4'), ('FirstPingNanoSec', '>u4'), ('LastPingSec', '>u4'),
                          ('LastPingNanoSec', '>u4'), ('MinLatitude', '>i4'), ('MinLongitude', '>i4'),
                          ('MaxLatitude', '>i4'), ('MaxLongitude', '>i4'), ('MinDepth', '>u4'), ('MaxDepth', '>i4')])
    hdr_dtype = np.dtype([('FirstPingSec', 'u4'), ('FirstPingNanoSec', 'u4'), ('LastPingSec', 'u4'),
                          ('LastPingNanoSec', 'u4'), ('MinLatitude', 'f8'), ('MinLongitude', 'f8'),
                          ('MaxLatitude', 'f8'), ('MaxLongitude', 'f8'), ('MinDepth', 'f8'), ('MaxDepth', 'f8')])
    conversions = {'MinLatitude': 1e-7, 'MinLongitude': 1e-7, 'MaxLatitude': 1e-7, 'MaxLongitude': 1e-7,
                   'MinDepth': 0.01, 'MaxDepth': 0.01}

    def __init__(self, buffer):
        _check_size(buffer, self.raw_dtype.itemsize, 'SWATH_BATHY_SUMMARY')
        self.header = read_block(buffer, 0, self.raw_dtype, self.hdr_dtype, self.conversions, name='SWATH_BATHY_SUMMARY')
        self.start_time = posix_time(self.header['FirstPingSec'], self.header['FirstPingNanoSec'])
        self.end_time = posix_time(self.header['LastPingSec'], self.header['LastPingNanoSec'])
        self.min_longitude = float(self.header['MinLongitude'])
        self.max_longitude = float(self.header['MaxLongitude'])
        self.min_latitude = float(self.header['MinLatitude'])
        self.max_latitude = float(self.header['MaxLatitude'])
        self.min_depth = float(self.header['MinDepth'])
        self.max_depth = float(self.header['MaxDepth'])

    def as_dict(self):
        return {'start_time': self.start_time, 'end_time': self.end_time, 'min_longitude': self.min_longitude,
                'max_longitude': self.max_longitude, 'min_latitude': self.min_latitude,
                'max_latitude': self.max_latitude, 'min_depth': self.min_depth, 'max_depth': self.max_depth}

    def __repr__(self):
        return f'SwathBathySummary({self.as_dict()})'


time_dtype = np.dtype([('Seconds', '>i4'), ('NanoSeconds', '>i4')])


def _read_time(buffer, name):
    _check_size(buffer, time_dtype.itemsize, name)
    tm = np.frombuffer(buffer, dtype=time_dtype, count=1)[0]
    return posix_time(tm['Seconds'], tm['NanoSeconds'])


def _read_string(buffer, offset, name, size_dtype='>i2'):
    """length prefixed string, returns the text and the offset after it"""
    size_bytes = np.dtype(size_dtype).itemsize
    _check_size(buffer, offset + size_bytes, name)
    size = int(np.frombuffer(buffer, dtype=size_dtype, count=1, offset=offset)[0])
    offset += size_bytes
    if size < 0:
        raise MalformedHeader(f'{name} record has a negative string length of {size}')
    _check_size(buffer, offset + size, name)
    text = bytes(buffer[offset:offset + size]).decode('ascii', 'ignore').strip('\x00')
    return text, offset + size


class Comment:
    def __init__(self, buffer):
        self.timestamp = _read_time(buffer, 'COMMENT')
        self.text = bytes(buffer[12:]).decode('ascii', 'ignore').strip('\x00')

    def __repr__(self):
        return f'Comment(timestamp={self.timestamp}, text={self.text!r})'


class History:
    def __init__(self, buffer):
        self.timestamp = _read_time(buffer, 'HISTORY')
        offset = time_dtype.itemsize
        self.machine_name, offset = _read_string(buffer, offset, 'HISTORY')
        self.operator_name, offset = _read_string(buffer, offset, 'HISTORY')
        self.command, offset = _read_string(buffer, offset, 'HISTORY')
        self.comment, offset = _read_string(buffer, offset, 'HISTORY')

    def __repr__(self):
        return f'History(timestamp={self.timestamp}, machine_name={self.machine_name!r}, command={self.command!r})'


bool_values = {'yes': True, 'no': False, 'true': True, 'false': False}
unknown_values = {'unknwn': 'unknown', 'unknown': 'unknown'}


def parse_reference_time(value: str):
    """yyyy/ddd hh:mm:ss (day of year) to a UTC datetime"""
    return datetime.datetime.strptime(value.strip(), '%Y/%j %H:%M:%S').replace(tzinfo=datetime.timezone.utc)


def parse_parameter(key: str, value: str):
    """Convert the text value of a processing parameter to the type it represents"""
    if ',' in value:
        if '.' in value:
            return [float(v) for v in value.split(',')]
        return ['unknown' for v in value.split(',')]
    if '.' in value:
        return float(value)
    if value in bool_values:
        return bool_values[value]
    if value in unknown_values:
        return unknown_values[value]
    if key == 'reference_time':
        return parse_reference_time(value)
    try:
        return int(value)
    except ValueError:
        return value


def decode_processing_parameters(buffer):
    """
    PROCESSING_PARAMETERS record as a dictionary.  Each parameter is stored as "KEY=VALUE" text, keys are
    lower cased with spaces replaced by underscores.  processed_time is the time of the record.
    """
    base_dtype = np.dtype([('Seconds', '>i4'), ('NanoSeconds', '>i4'), ('NumParams', '>i2')])
    _check_size(buffer, base_dtype.itemsize, 'PROCESSING_PARAMETERS')
    base = np.frombuffer(buffer, dtype=base_dtype, count=1)[0]
    offset = base_dtype.itemsize
    params = {}
    for _i in range(int(base['NumParams'])):
        param, offset = _read_string(buffer, offset, 'PROCESSING_PARAMETERS')
        if '=' not in param:
            continue
        key, value = param.strip().split('=', 1)
        key = key.lower().replace(' ', '_')
        value = value.lower().strip('\x00')
        try:
            params[key] = parse_parameter(key, value)
        except ValueError as e:
            raise MalformedHeader(f'PROCESSING_PARAMETERS unable to interpret {key}={value}') from e
    params['processed_time'] = datetime.datetime.fromtimestamp(posix_time(base['Seconds'], base['NanoSeconds']),
                                                               tz=datetime.timezone.utc)
    return params


class SoundVelocityProfile:
    hdr_raw = np.dtype([('ObsSeconds', '>u4'), ('ObsNanoSeconds', '>u4'), ('AppSeconds', '>u4'),
                        ('AppNanoSeconds', '>u4'), ('Longitude', '>i4'), ('Latitude', '>i4'), ('NumPoints', '>u4')])
    hdr_dtype = np.dtype([('ObsSeconds', 'u4'), ('ObsNanoSeconds', 'u4'), ('AppSeconds', 'u4'), ('AppNanoSeconds', 'u4'),
                          ('Longitude', 'f8'), ('Latitude', 'f8'), ('NumPoints', 'u4')])
    point_dtype = np.dtype([('Depth', '>u4'), ('SoundVelocity', '>u4')])

    def __init__(self, buffer):
        _check_size(buffer, self.hdr_raw.itemsize, 'SOUND_VELOCITY_PROFILE')
        self.header = read_block(buffer, 0, self.hdr_raw, self.hdr_dtype, {'Longitude': 1e-7, 'Latitude': 1e-7},
                                 name='SOUND_VELOCITY_PROFILE')
        self.observation_time = posix_time(self.header['ObsSeconds'], self.header['ObsNanoSeconds'])
        self.applied_time = posix_time(self.header['AppSeconds'], self.header['AppNanoSeconds'])
        self.longitude = float(self.header['Longitude'])
        self.latitude = float(self.header['Latitude'])
        npoints = int(self.header['NumPoints'])
        _check_size(buffer, self.hdr_raw.itemsize + self.point_dtype.itemsize * npoints, 'SOUND_VELOCITY_PROFILE')
        points = np.frombuffer(buffer, dtype=self.point_dtype, count=npoints, offset=self.hdr_raw.itemsize)
        self.depth = points['Depth'].astype(np.float64) / 100.0
        self.sound_velocity = points['SoundVelocity'].astype(np.float64) / 100.0

    @property
    def number_points(self):
        return len(self.depth)

    def __repr__(self):
        return f'SoundVelocityProfile(observation_time={self.observation_time}, number_points={self.number_points})'


def svp_number_points(buffer):
    """number of points of the profile, read from the header only"""
    _check_size(buffer, SoundVelocityProfile.hdr_raw.itemsize, 'SOUND_VELOCITY_PROFILE')
    return int(np.frombuffer(buffer, dtype='>u4', count=1, offset=24)[0])


class Attitude:
    """
    ATTITUDE record, a base time and a number of measurements each with a time offset (milliseconds),
    pitch, roll, heave and heading.
    """
    hdr_raw = np.dtype([('Seconds', '>i4'), ('NanoSeconds', '>i4'), ('NumMeasurements', '>i2')])
    measurement_dtype = np.dtype([('TimeOffset', '>i2'), ('Pitch', '>i2'), ('Roll', '>i2'), ('Heave', '>i2'),
                                  ('Heading', '>u2')])

    def __init__(self, buffer):
        _check_size(buffer, self.hdr_raw.itemsize, 'ATTITUDE')
        hdr = np.frombuffer(buffer, dtype=self.hdr_raw, count=1)[0]
        self.base_time = posix_time(hdr['Seconds'], hdr['NanoSeconds'])
        nmeas = max(int(hdr['NumMeasurements']), 0)
        _check_size(buffer, self.hdr_raw.itemsize + self.measurement_dtype.itemsize * nmeas, 'ATTITUDE')
        data = np.frombuffer(buffer, dtype=self.measurement_dtype, count=nmeas, offset=self.hdr_raw.itemsize)
        self.timestamp = self.base_time + data['TimeOffset'].astype(np.float64) / 1000.0
        self.pitch = data['Pitch'].astype(np.float64) / 100.0
        self.roll = data['Roll'].astype(np.float64) / 100.0
        self.heave = data['Heave'].astype(np.float64) / 100.0
        self.heading = data['Heading'].astype(np.float64) / 100.0

    @property
    def number_measurements(self):
        return len(self.timestamp)

    def __repr__(self):
        return f'Attitude(base_time={self.base_time}, number_measurements={self.number_measurements})'


def attitude_number_measurements(buffer):
    _check_size(buffer, Attitude.hdr_raw.itemsize, 'ATTITUDE')
    return max(int(np.frombuffer(buffer, dtype='>i2', count=1, offset=8)[0]), 0)

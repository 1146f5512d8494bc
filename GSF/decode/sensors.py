"""
Sensor specific subrecord decoders.

Each sensor specific subrecord of a swath bathymetry ping is decoded by a class registered against the
subrecord id(s) it handles.  The classes follow the same pattern as the other drivers, a big endian numpy
``raw_dtype`` describing the bytes on disk, a ``hdr_dtype`` describing the decoded values and a
``conversions`` dictionary of multiplicative constants applied after reading.

    @register_sensor(SubRecordID.SEABAT)
    class SeaBat(SensorData):
        family = 'SeaBat'
        raw_dtype = np.dtype([('PingNumber', '>u2'), ('SurfaceSoundVelocity', '>u2'), ...])
        hdr_dtype = np.dtype([('PingNumber', 'u2'), ('SurfaceSoundVelocity', 'f4'), ...])
        conversions = {'SurfaceSoundVelocity': 0.1}

Fields that only exist in the raw_dtype (spares, split values) are dropped from the header.  Sensors with
variable length content override __init__ and read the rest of the block with read_block.
"""

import numpy as np

from GSF.decode.constants import SubRecordID, subrecord_name
from GSF.decode.errors import SensorDecodeFailure

SENSOR_DECODERS = {}


def register_sensor(*sensor_ids):
    """Class decorator adding the decoder to the registry for each of the given subrecord ids"""
    def wrapper(cls):
        for sensor_id in sensor_ids:
            SENSOR_DECODERS[int(sensor_id)] = cls
        return cls
    return wrapper


def get_sensor_by_number(sensor_id: int):
    """Decoder class for the sensor subrecord id, None if the sensor has no decoder"""
    return SENSOR_DECODERS.get(int(sensor_id))


def read_block(datablock, offset, raw_dtype, hdr_dtype, conversions=None, offsets=None, count=None, name=''):
    """
    Read count records of raw_dtype starting at offset and convert them to hdr_dtype.

    Returns a single record (numpy.void) when count is None, otherwise a structured array of count records.
    """
    num = 1 if count is None else int(count)
    read_sz = raw_dtype.itemsize * num
    if num < 0 or offset + read_sz > len(datablock):
        raise SensorDecodeFailure(f'{name}: needed {read_sz} bytes at offset {offset}, payload is {len(datablock)} bytes')
    data = np.zeros(num, dtype=hdr_dtype)
    if num:
        raw = np.frombuffer(datablock, dtype=raw_dtype, count=num, offset=offset)
        for field in hdr_dtype.names:
            if field in raw_dtype.names:
                data[field] = raw[field]
    if conversions:
        for k, v in conversions.items():
            data[k] = data[k] * v
    if offsets:
        for k, v in offsets.items():
            data[k] = data[k] + v
    if count is None:
        return data[0]
    return data


def posix_time(seconds, nano_seconds):
    return float(seconds) + float(nano_seconds) * 1e-9


class SensorMeta(type):
    """metaclass reading the "hdr_dtype" attribute to build the attribute lookup and the size of the block"""

    def __new__(cls, name, bases, classdict):
        if 'hdr_dtype' in classdict:
            classdict['_data_keys'] = {field: field for field in classdict['hdr_dtype'].names}
            if 'raw_dtype' in classdict:
                classdict['hdr_sz'] = classdict['raw_dtype'].itemsize
            else:
                classdict['hdr_sz'] = classdict['hdr_dtype'].itemsize
        return type.__new__(cls, name, bases, classdict)


class SensorData(object, metaclass=SensorMeta):
    """
    Base class of the sensor metadata variants.  The decoded values are in the numpy record ``header``
    and can also be used directly as attributes, ``mydata.header['PingNumber']`` and ``mydata.PingNumber``
    are the same.

    sensor_id is the subrecord id the payload was found under and family the name of the layout, several
    sensor ids share the same layout.  nbytes is the number of bytes consumed from the payload.
    """
    family = None
    conversions = {}
    offsets = {}
    _data_keys = {}

    def __init__(self, datablock, sensor_id=SubRecordID.UNKNOWN, version=None):
        self.sensor_id = sensor_id
        self.version = version
        try:
            raw_dtype = self.raw_dtype
        except AttributeError:
            raw_dtype = self.hdr_dtype
        self.header = read_block(datablock, 0, raw_dtype, self.hdr_dtype, self.conversions, self.offsets,
                                 name=self.family)
        self.nbytes = self.hdr_sz

    @property
    def sensor_name(self):
        return subrecord_name(self.sensor_id)

    def extra_fields(self):
        """Variable length content of the sensor, keyed by field name.  Override in derived classes"""
        return {}

    @classmethod
    def null_record(cls):
        """Field name: null value, used for pings of a chunk that don't carry this metadata"""
        result = {}
        for name in cls.hdr_dtype.names:
            dt = cls.hdr_dtype[name]
            if dt.base.kind == 'f':
                fill = np.nan
            elif dt.base.kind == 'S':
                fill = b''
            else:
                fill = 0
            result[name] = np.full(dt.shape, fill, dtype=dt.base) if dt.shape else fill
        return result

    def as_dict(self):
        """Flat dictionary of field name: value, used when stacking the metadata of many pings"""
        result = {}
        for name in self.header.dtype.names:
            val = self.header[name]
            result[name] = val.item() if np.ndim(val) == 0 else np.asarray(val)
        result.update(self.extra_fields())
        return result

    def get_display_string(self):
        result = ""
        for name, val in self.as_dict().items():
            result += name + ' : ' + str(val) + "\n"
        return result

    def display(self):
        print(self.__repr__())

    def __repr__(self):
        return self.get_display_string()

    def __dir__(self):
        s = list(self.__dict__.keys())
        s.extend(list(self._data_keys.keys()))
        s.extend(dir(self.__class__))
        return sorted([v for v in s if v[0] != "_"])

    def __getattr__(self, key):
        try:
            ky2 = self._data_keys[key]
            return self.__dict__['header'][ky2]
        except KeyError:
            raise AttributeError(key + " not in " + str(self.__class__))


def decode_sensor(sensor_id, datablock, version=None):
    """
    Decode the sensor specific subrecord payload.  Returns None for sensors without a registered decoder.
    """
    decoder = get_sensor_by_number(sensor_id)
    if decoder is None:
        return None
    try:
        return decoder(bytes(datablock), sensor_id, version)
    except SensorDecodeFailure:
        raise
    except (ValueError, IndexError, TypeError) as e:
        raise SensorDecodeFailure(f'{subrecord_name(sensor_id)}: unable to decode sensor specific subrecord, {e}') from e


@register_sensor(SubRecordID.SEABEAM)
class Seabeam(SensorData):
    family = 'Seabeam'
    hdr_dtype = np.dtype([('EclipseTime', 'u2')])
    raw_dtype = np.dtype([('EclipseTime', '>u2')])


@register_sensor(SubRecordID.EM12)
class Em12(SensorData):
    family = 'Em12'
    hdr_dtype = np.dtype([('PingNumber', 'u2'), ('Resolution', 'u1'), ('PingQuality', 'u1'), ('SoundVelocity', 'f4'),
                          ('Mode', 'u1')])
    raw_dtype = np.dtype([('PingNumber', '>u2'), ('Resolution', 'u1'), ('PingQuality', 'u1'), ('SoundVelocity', '>u2'),
                          ('Mode', 'u1'), ('Spare', 'V16')])
    conversions = {'SoundVelocity': 0.1}


@register_sensor(SubRecordID.EM100)
class Em100(SensorData):
    family = 'Em100'
    hdr_dtype = np.dtype([('ShipPitch', 'f4'), ('TransducerPitch', 'f4'), ('Mode', 'u1'), ('Power', 'u1'),
                          ('Attenuation', 'u1'), ('Tvg', 'u1'), ('PulseLength', 'u1'), ('Counter', 'u2')])
    raw_dtype = np.dtype([('ShipPitch', '>i2'), ('TransducerPitch', '>i2'), ('Mode', 'u1'), ('Power', 'u1'),
                          ('Attenuation', 'u1'), ('Tvg', 'u1'), ('PulseLength', 'u1'), ('Counter', '>u2')])
    conversions = {'ShipPitch': 0.01, 'TransducerPitch': 0.01}


@register_sensor(SubRecordID.EM950, SubRecordID.EM1000)
class Em950(SensorData):
    family = 'Em950'
    hdr_dtype = np.dtype([('PingNumber', 'u2'), ('Mode', 'u1'), ('Quality', 'u1'), ('ShipPitch', 'f4'),
                          ('TransducerPitch', 'f4'), ('SurfaceSoundVelocity', 'f4')])
    raw_dtype = np.dtype([('PingNumber', '>u2'), ('Mode', 'u1'), ('Quality', 'u1'), ('ShipPitch', '>i2'),
                          ('TransducerPitch', '>i2'), ('SurfaceSoundVelocity', '>u2')])
    conversions = {'ShipPitch': 0.01, 'TransducerPitch': 0.01, 'SurfaceSoundVelocity': 0.1}


@register_sensor(SubRecordID.EM121A, SubRecordID.EM121)
class Em121A(SensorData):
    family = 'Em121A'
    hdr_dtype = np.dtype([('PingNumber', 'u2'), ('Mode', 'u1'), ('ValidBeams', 'u1'), ('PulseLength', 'u1'),
                          ('BeamWidth', 'u1'), ('TransmitPower', 'u1'), ('TransmitStatus', 'u1'),
                          ('ReceiveStatus', 'u1'), ('SurfaceSoundVelocity', 'f4')])
    raw_dtype = np.dtype([('PingNumber', '>u2'), ('Mode', 'u1'), ('ValidBeams', 'u1'), ('PulseLength', 'u1'),
                          ('BeamWidth', 'u1'), ('TransmitPower', 'u1'), ('TransmitStatus', 'u1'),
                          ('ReceiveStatus', 'u1'), ('SurfaceSoundVelocity', '>u2')])
    conversions = {'SurfaceSoundVelocity': 0.1}


@register_sensor(SubRecordID.SEAMAP)
class SeaMap(SensorData):
    """PressureDepth is only stored from GSF v2.08 onwards, older files get 0.0"""
    family = 'SeaMap'
    hdr_dtype = np.dtype([('PortTransmit1', 'f4'), ('PortTransmit2', 'f4'), ('StarboardTransmit1', 'f4'),
                          ('StarboardTransmit2', 'f4'), ('PortGain', 'f4'), ('StarboardGain', 'f4'),
                          ('PortPulseLength', 'f4'), ('StarboardPulseLength', 'f4'), ('PressureDepth', 'f4'),
                          ('Altitude', 'f4'), ('Temperature', 'f4')])
    raw_dtype = np.dtype([('PortTransmit1', '>u2'), ('PortTransmit2', '>u2'), ('StarboardTransmit1', '>u2'),
                          ('StarboardTransmit2', '>u2'), ('PortGain', '>u2'), ('StarboardGain', '>u2'),
                          ('PortPulseLength', '>u2'), ('StarboardPulseLength', '>u2'), ('PressureDepth', '>u2'),
                          ('Altitude', '>u2'), ('Temperature', '>u2')])
    raw_dtype_old = np.dtype([('PortTransmit1', '>u2'), ('PortTransmit2', '>u2'), ('StarboardTransmit1', '>u2'),
                              ('StarboardTransmit2', '>u2'), ('PortGain', '>u2'), ('StarboardGain', '>u2'),
                              ('PortPulseLength', '>u2'), ('StarboardPulseLength', '>u2'),
                              ('Altitude', '>u2'), ('Temperature', '>u2')])
    conversions = {k: 0.1 for k in hdr_dtype.names}

    def __init__(self, datablock, sensor_id=SubRecordID.SEAMAP, version=None):
        self.sensor_id = sensor_id
        self.version = version
        major, minor = version if version else (3, 0)
        if major > 2 or (major == 2 and minor > 7):
            raw_dtype = self.raw_dtype
        else:
            raw_dtype = self.raw_dtype_old
        self.header = read_block(datablock, 0, raw_dtype, self.hdr_dtype, self.conversions, name=self.family)
        self.nbytes = raw_dtype.itemsize


@register_sensor(SubRecordID.SEABAT)
class SeaBat(SensorData):
    family = 'SeaBat'
    hdr_dtype = np.dtype([('PingNumber', 'u2'), ('SurfaceSoundVelocity', 'f4'), ('Mode', 'u1'), ('Range', 'u1'),
                          ('TransmitPower', 'u1'), ('ReceiveGain', 'u1')])
    raw_dtype = np.dtype([('PingNumber', '>u2'), ('SurfaceSoundVelocity', '>u2'), ('Mode', 'u1'), ('Range', 'u1'),
                          ('TransmitPower', 'u1'), ('ReceiveGain', 'u1')])
    conversions = {'SurfaceSoundVelocity': 0.1}


@register_sensor(SubRecordID.SB_AMP)
class SbAmp(SensorData):
    family = 'SbAmp'
    hdr_dtype = np.dtype([('Hour', 'u1'), ('Minute', 'u1'), ('Second', 'u1'), ('Hundredths', 'u1'),
                          ('BlockNumber', 'u4'), ('AvgGateDepth', 'u2')])
    raw_dtype = np.dtype([('Hour', 'u1'), ('Minute', 'u1'), ('Second', 'u1'), ('Hundredths', 'u1'),
                          ('BlockNumber', '>u4'), ('AvgGateDepth', '>u2')])


@register_sensor(SubRecordID.SEABAT_II)
class SeaBatII(SensorData):
    family = 'SeaBatII'
    hdr_dtype = np.dtype([('PingNumber', 'u2'), ('SurfaceSoundVelocity', 'f4'), ('Mode', 'u2'), ('SonarRange', 'u2'),
                          ('TransmitPower', 'u2'), ('ReceiveGain', 'u2'), ('ForeAftBandwidth', 'f4'),
                          ('AthwartBandwidth', 'f4')])
    raw_dtype = np.dtype([('PingNumber', '>u2'), ('SurfaceSoundVelocity', '>u2'), ('Mode', '>u2'), ('SonarRange', '>u2'),
                          ('TransmitPower', '>u2'), ('ReceiveGain', '>u2'), ('ForeAftBandwidth', 'u1'),
                          ('AthwartBandwidth', 'u1'), ('Spare', '>i4')])
    conversions = {'SurfaceSoundVelocity': 0.1, 'ForeAftBandwidth': 0.1, 'AthwartBandwidth': 0.1}


@register_sensor(SubRecordID.SEABEAM_2112)
class Seabeam2112(SensorData):
    family = 'Seabeam2112'
    hdr_dtype = np.dtype([('Mode', 'u1'), ('SurfaceSoundVelocity', 'f4'), ('SsvSource', 'u1'), ('PingGain', 'u1'),
                          ('PulseWidth', 'u1'), ('TransmitterAttenuation', 'u1'), ('NumberAlgorithms', 'u1'),
                          ('AlgorithmOrder', 'S5')])
    raw_dtype = np.dtype([('Mode', 'u1'), ('SurfaceSoundVelocity', '>u2'), ('SsvSource', 'u1'), ('PingGain', 'u1'),
                          ('PulseWidth', 'u1'), ('TransmitterAttenuation', 'u1'), ('NumberAlgorithms', 'u1'),
                          ('AlgorithmOrder', 'S5'), ('Spare', 'V2')])
    # stored as (ssv - 1300) * 100
    conversions = {'SurfaceSoundVelocity': 0.01}
    offsets = {'SurfaceSoundVelocity': 1300.0}


@register_sensor(SubRecordID.ELAC_MKII)
class ElacMkII(SensorData):
    family = 'ElacMkII'
    hdr_dtype = np.dtype([('Mode', 'u1'), ('PingNumber', 'u2'), ('SurfaceSoundVelocity', 'u2'), ('PulseLength', 'u2'),
                          ('ReceiverGainStarboard', 'u1'), ('ReceiverGainPort', 'u1')])
    raw_dtype = np.dtype([('Mode', 'u1'), ('PingNumber', '>u2'), ('SurfaceSoundVelocity', '>u2'), ('PulseLength', '>u2'),
                          ('ReceiverGainStarboard', 'u1'), ('ReceiverGainPort', 'u1'), ('Spare', '>i2')])


@register_sensor(SubRecordID.CMP_SASS)
class CmpSass(SensorData):
    family = 'CmpSass'
    hdr_dtype = np.dtype([('Lfreq', 'f4'), ('Lntens', 'f4')])
    raw_dtype = np.dtype([('Lfreq', '>u2'), ('Lntens', '>u2')])
    conversions = {'Lfreq': 0.1, 'Lntens': 0.1}


@register_sensor(SubRecordID.SEABAT_8101, SubRecordID.RESON_8101, SubRecordID.RESON_8111, SubRecordID.RESON_8124,
                 SubRecordID.RESON_8125, SubRecordID.RESON_8150, SubRecordID.RESON_8160)
class Reson8100(SensorData):
    family = 'Reson8100'
    hdr_dtype = np.dtype([('Latency', 'u2'), ('PingNumber', 'u2'), ('SonarID', 'u2'), ('SonarModel', 'u2'),
                          ('Frequency', 'u2'), ('SurfaceSoundVelocity', 'f4'), ('SampleRate', 'u2'), ('PingRate', 'u2'),
                          ('Mode', 'u2'), ('Range', 'u2'), ('TransmitPower', 'u2'), ('ReceiveGain', 'u2'),
                          ('PulseWidth', 'u2'), ('TvgSpreading', 'u1'), ('TvgAbsorption', 'u1'),
                          ('ForeAftBandwidth', 'f4'), ('AthwartBandwidth', 'f4'), ('ProjectorType', 'u1'),
                          ('ProjectorAngle', 'i2'), ('RangeFilterMin', 'f4'), ('RangeFilterMax', 'f4'),
                          ('DepthFilterMin', 'f4'), ('DepthFilterMax', 'f4'), ('FiltersActive', 'u1'),
                          ('Temperature', 'u2'), ('BeamSpacing', 'f4')])
    raw_dtype = np.dtype([('Latency', '>u2'), ('PingNumber', '>u2'), ('SonarID', '>u2'), ('SonarModel', '>u2'),
                          ('Frequency', '>u2'), ('SurfaceSoundVelocity', '>u2'), ('SampleRate', '>u2'),
                          ('PingRate', '>u2'), ('Mode', '>u2'), ('Range', '>u2'), ('TransmitPower', '>u2'),
                          ('ReceiveGain', '>u2'), ('PulseWidth', '>u2'), ('TvgSpreading', 'u1'),
                          ('TvgAbsorption', 'u1'), ('ForeAftBandwidth', 'u1'), ('AthwartBandwidth', 'u1'),
                          ('ProjectorType', 'u1'), ('ProjectorAngle', '>i2'), ('RangeFilterMin', '>u2'),
                          ('RangeFilterMax', '>u2'), ('DepthFilterMin', '>u2'), ('DepthFilterMax', '>u2'),
                          ('FiltersActive', 'u1'), ('Temperature', '>u2'), ('BeamSpacing', '>u2'), ('Spare', '>i2')])
    conversions = {'SurfaceSoundVelocity': 0.1, 'ForeAftBandwidth': 0.1, 'AthwartBandwidth': 0.1,
                   'BeamSpacing': 0.0001}


em3_runtime_raw = np.dtype([('ModelNumber', '>u2'), ('DgTimeSec', '>u4'), ('DgTimeNSec', '>u4'), ('PingNumber', '>u2'),
                            ('SerialNumber', '>u2'), ('SystemStatus', '>u4'), ('Mode', 'u1'), ('FilterID', 'u1'),
                            ('MinDepth', '>u2'), ('MaxDepth', '>u2'), ('Absorption', '>u2'),
                            ('TransmitPulseLength', '>u2'), ('TransmitBeamWidth', '>u2'), ('PowerReduction', 'u1'),
                            ('ReceiveBeamWidth', 'u1'), ('ReceiveBandwidth', 'u1'), ('ReceiveGain', 'u1'),
                            ('CrossOverAngle', 'u1'), ('SsvSource', 'u1'), ('PortSwathWidth', '>u2'),
                            ('BeamSpacing', 'u1'), ('PortCoverageSector', 'u1'), ('Stabilization', 'u1'),
                            ('StarboardCoverageSector', 'u1'), ('StarboardSwathWidth', '>u2'),
                            ('HiloFreqAbsorpRatio', 'u1'), ('Spare', '>i4')])
em3_runtime_dtype = np.dtype([('ModelNumber', 'u2'), ('DgTime', 'f8'), ('DgTimeSec', 'u4'), ('DgTimeNSec', 'u4'),
                              ('PingNumber', 'u2'), ('SerialNumber', 'u2'), ('SystemStatus', 'u4'), ('Mode', 'u1'),
                              ('FilterID', 'u1'), ('MinDepth', 'f4'), ('MaxDepth', 'f4'), ('Absorption', 'f4'),
                              ('TransmitPulseLength', 'f4'), ('TransmitBeamWidth', 'f4'), ('PowerReduction', 'u1'),
                              ('ReceiveBeamWidth', 'f4'), ('ReceiveBandwidth', 'f4'), ('ReceiveGain', 'u1'),
                              ('CrossOverAngle', 'u1'), ('SsvSource', 'u1'), ('PortSwathWidth', 'u2'),
                              ('BeamSpacing', 'u1'), ('PortCoverageSector', 'u1'), ('Stabilization', 'u1'),
                              ('StarboardCoverageSector', 'u1'), ('StarboardSwathWidth', 'u2'),
                              ('HiloFreqAbsorpRatio', 'u1'), ('SwathWidth', 'u2'), ('CoverageSector', 'u2')])
em3_runtime_conversions = {'Absorption': 0.01, 'TransmitBeamWidth': 0.1, 'ReceiveBeamWidth': 0.1,
                           'ReceiveBandwidth': 50.0}


@register_sensor(SubRecordID.EM120, SubRecordID.EM300, SubRecordID.EM1002, SubRecordID.EM2000, SubRecordID.EM3000,
                 SubRecordID.EM3002, SubRecordID.EM3000D, SubRecordID.EM3002D, SubRecordID.EM121A_SIS)
class Em3(SensorData):
    """
    Kongsberg EM 3rd generation.  The RunTimeID bit 0 flags the first run-time parameter block, bit 1 a
    second block (dual head) which is only present after the first.  The run-time blocks are in
    ``runtime``, a structured array of 0, 1 or 2 records.
    """
    family = 'Em3'
    hdr_dtype = np.dtype([('ModelNumber', 'u2'), ('PingNumber', 'u2'), ('SerialNumber', 'u2'),
                          ('SurfaceSoundVelocity', 'f4'), ('TransducerDepth', 'f4'), ('ValidBeams', 'u2'),
                          ('SampleRate', 'u2'), ('DepthDifference', 'f4'), ('OffsetMultiplier', 'u1'),
                          ('RunTimeID', 'u4')])
    raw_dtype = np.dtype([('ModelNumber', '>u2'), ('PingNumber', '>u2'), ('SerialNumber', '>u2'),
                          ('SurfaceSoundVelocity', '>u2'), ('TransducerDepth', '>u2'), ('ValidBeams', '>u2'),
                          ('SampleRate', '>u2'), ('DepthDifference', '>i2'), ('OffsetMultiplier', 'u1'),
                          ('RunTimeID', '>u4')])
    conversions = {'SurfaceSoundVelocity': 0.1, 'TransducerDepth': 0.01, 'DepthDifference': 0.01}

    def __init__(self, datablock, sensor_id=SubRecordID.EM3000, version=None):
        super(Em3, self).__init__(datablock, sensor_id, version)
        nblocks = 0
        if int(self.header['RunTimeID']) & 0x00000001:
            nblocks = 1
            if int(self.header['RunTimeID']) & 0x00000002:
                nblocks = 2
        self.runtime = read_block(datablock, self.nbytes, em3_runtime_raw, em3_runtime_dtype, em3_runtime_conversions,
                                  count=nblocks, name='Em3 run-time')
        self.nbytes += em3_runtime_raw.itemsize * nblocks
        self._reconcile_swath()

    def _reconcile_swath(self):
        """Port/starboard values are only both populated for some systems, otherwise port holds the total"""
        for rt in self.runtime:
            port, stbd = int(rt['PortSwathWidth']), int(rt['StarboardSwathWidth'])
            if stbd != 0:
                rt['SwathWidth'] = port + stbd
            else:
                rt['SwathWidth'] = port
                rt['PortSwathWidth'] = port // 2
                rt['StarboardSwathWidth'] = port // 2
            port, stbd = int(rt['PortCoverageSector']), int(rt['StarboardCoverageSector'])
            if stbd != 0:
                rt['CoverageSector'] = port + stbd
            else:
                rt['CoverageSector'] = port
                rt['PortCoverageSector'] = port // 2
                rt['StarboardCoverageSector'] = port // 2
            rt['DgTime'] = posix_time(rt['DgTimeSec'], rt['DgTimeNSec'])

    def extra_fields(self):
        return {'RunTime' + name: self.runtime[name].copy() for name in em3_runtime_dtype.names
                if name not in ('DgTimeSec', 'DgTimeNSec')}


em4_sector_raw = np.dtype([('TiltAngle', '>i2'), ('FocusRange', '>u2'), ('SignalLength', '>u4'),
                           ('TransmitDelay', '>u4'), ('CenterFrequency', '>u4'), ('MeanAbsorption', '>u2'),
                           ('WaveformID', 'u1'), ('SectorNumber', 'u1'), ('SignalBandwidth', '>u4'), ('Spare', 'V16')])
em4_sector_dtype = np.dtype([('TiltAngle', 'f4'), ('FocusRange', 'f4'), ('SignalLength', 'f8'), ('TransmitDelay', 'f8'),
                             ('CenterFrequency', 'f8'), ('MeanAbsorption', 'f4'), ('WaveformID', 'u1'),
                             ('SectorNumber', 'u1'), ('SignalBandwidth', 'f8')])
em4_sector_conversions = {'TiltAngle': 0.01, 'FocusRange': 0.1, 'SignalLength': 1e-6, 'TransmitDelay': 1e-6,
                          'CenterFrequency': 0.001, 'MeanAbsorption': 0.01, 'SignalBandwidth': 0.001}

em4_runtime_raw = np.dtype([('ModelNumber', '>u2'), ('DgTimeSec', '>u4'), ('DgTimeNSec', '>u4'),
                            ('PingCounter', '>u2'), ('SerialNumber', '>u2'), ('OperatorStationStatus', 'u1'),
                            ('ProcessingUnitStatus', 'u1'), ('BspStatus', 'u1'), ('HeadTransceiverStatus', 'u1'),
                            ('Mode', 'u1'), ('FilterID', 'u1'), ('MinDepth', '>u2'), ('MaxDepth', '>u2'),
                            ('Absorption', '>u2'), ('TransmitPulseLength', '>u2'), ('TransmitBeamWidth', '>u2'),
                            ('TransmitPowerReduction', 'u1'), ('ReceiveBeamWidth', 'u1'), ('ReceiveBandwidth', 'u1'),
                            ('ReceiveFixedGain', 'u1'), ('TvgCrossOverAngle', 'u1'), ('SsvSource', 'u1'),
                            ('MaxPortSwathWidth', '>i2'), ('BeamSpacing', 'u1'), ('MaxPortCoverage', 'u1'),
                            ('Stabilization', 'u1'), ('MaxStarboardCoverage', 'u1'), ('MaxStarboardSwathWidth', '>u2'),
                            ('TransmitAlongTilt', '>i2'), ('FilterID2', 'u1'), ('Spare', 'V16')])
em4_runtime_dtype = np.dtype([('ModelNumber', 'u2'), ('DgTimeSec', 'u4'), ('DgTimeNSec', 'u4'), ('PingCounter', 'u2'),
                              ('SerialNumber', 'u2'), ('OperatorStationStatus', 'u1'), ('ProcessingUnitStatus', 'u1'),
                              ('BspStatus', 'u1'), ('HeadTransceiverStatus', 'u1'), ('Mode', 'u1'), ('FilterID', 'u1'),
                              ('MinDepth', 'f4'), ('MaxDepth', 'f4'), ('Absorption', 'f4'),
                              ('TransmitPulseLength', 'f4'), ('TransmitBeamWidth', 'f4'),
                              ('TransmitPowerReduction', 'u1'), ('ReceiveBeamWidth', 'f4'), ('ReceiveBandwidth', 'f4'),
                              ('ReceiveFixedGain', 'u1'), ('TvgCrossOverAngle', 'u1'), ('SsvSource', 'u1'),
                              ('MaxPortSwathWidth', 'i2'), ('BeamSpacing', 'u1'), ('MaxPortCoverage', 'u1'),
                              ('Stabilization', 'u1'), ('MaxStarboardCoverage', 'u1'), ('MaxStarboardSwathWidth', 'u2'),
                              ('TransmitAlongTilt', 'f4'), ('FilterID2', 'u1')])
em4_runtime_conversions = {'Absorption': 0.01, 'TransmitBeamWidth': 0.1, 'ReceiveBeamWidth': 0.1,
                           'ReceiveBandwidth': 50.0, 'TransmitAlongTilt': 0.01}

em4_pu_raw = np.dtype([('CpuLoad', 'u1'), ('SensorStatus', '>u2'), ('AchievedPortCoverage', 'u1'),
                       ('AchievedStarboardCoverage', 'u1'), ('YawStabilization', '>i2'), ('Spare', 'V16')])
em4_pu_dtype = np.dtype([('CpuLoad', 'u1'), ('SensorStatus', 'u2'), ('AchievedPortCoverage', 'u1'),
                         ('AchievedStarboardCoverage', 'u1'), ('YawStabilization', 'f4')])


@register_sensor(SubRecordID.EM710, SubRecordID.EM302, SubRecordID.EM122, SubRecordID.EM2040)
class Em4(SensorData):
    """
    Kongsberg EM 4th generation (EM710, EM302, EM122, EM2040)

    Base block, TransmitSectors sector blocks, 16 spare bytes, a run-time parameter block and a processing
    unit status block.  The sector values are in ``sectors``, a structured array with one record per sector.
    """
    family = 'Em4'
    hdr_dtype = np.dtype([('ModelNumber', 'u2'), ('PingCounter', 'u2'), ('SerialNumber', 'u2'),
                          ('SurfaceVelocity', 'f4'), ('TransducerDepth', 'f8'), ('ValidDetections', 'u2'),
                          ('SamplingFrequency1', 'u4'), ('SamplingFrequency2', 'u4'), ('SamplingFrequency', 'f8'),
                          ('DopplerCorrectionScale', 'u4'), ('VehicleDepth', 'f8'), ('TransmitSectors', 'u2')])
    raw_dtype = np.dtype([('ModelNumber', '>u2'), ('PingCounter', '>u2'), ('SerialNumber', '>u2'),
                          ('SurfaceVelocity', '>u2'), ('TransducerDepth', '>i4'), ('ValidDetections', '>u2'),
                          ('SamplingFrequency1', '>u4'), ('SamplingFrequency2', '>u4'),
                          ('DopplerCorrectionScale', '>u4'), ('VehicleDepth', '>i4'), ('Spare', 'V16'),
                          ('TransmitSectors', '>u2')])
    conversions = {'SurfaceVelocity': 0.1, 'TransducerDepth': 1 / 20000.0, 'VehicleDepth': 0.001}

    def __init__(self, datablock, sensor_id=SubRecordID.EM2040, version=None):
        super(Em4, self).__init__(datablock, sensor_id, version)
        self.header['SamplingFrequency'] = float(self.header['SamplingFrequency1']) + \
            float(self.header['SamplingFrequency2']) / 4e9
        nsectors = int(self.header['TransmitSectors'])
        self.sectors = read_block(datablock, self.nbytes, em4_sector_raw, em4_sector_dtype, em4_sector_conversions,
                                  count=nsectors, name='Em4 transmit sector')
        self.nbytes += em4_sector_raw.itemsize * nsectors + 16
        self.runtime = read_block(datablock, self.nbytes, em4_runtime_raw, em4_runtime_dtype, em4_runtime_conversions,
                                  name='Em4 run-time')
        self.nbytes += em4_runtime_raw.itemsize
        self.processing_unit = read_block(datablock, self.nbytes, em4_pu_raw, em4_pu_dtype,
                                          {'YawStabilization': 0.01}, name='Em4 processing unit')
        self.nbytes += em4_pu_raw.itemsize

    def extra_fields(self):
        result = {name: self.sectors[name].copy() for name in em4_sector_dtype.names}
        for name in em4_runtime_dtype.names:
            if name not in ('DgTimeSec', 'DgTimeNSec'):
                result['RunTime' + name] = self.runtime[name].item()
        result['RunTimeDgTime'] = posix_time(self.runtime['DgTimeSec'], self.runtime['DgTimeNSec'])
        for name in em4_pu_dtype.names:
            result['ProcessingUnit' + name] = self.processing_unit[name].item()
        return result


@register_sensor(SubRecordID.GEOSWATH_PLUS)
class GeoSwathPlus(SensorData):
    family = 'GeoSwathPlus'
    hdr_dtype = np.dtype([('DataSource', 'u2'), ('Side', 'u2'), ('ModelNumber', 'u2'), ('Frequency', 'f4'),
                          ('EchosounderType', 'u2'), ('PingNumber', 'u4'), ('NumNavSamples', 'u2'),
                          ('NumAttitudeSamples', 'u2'), ('NumHeadingSamples', 'u2'), ('NumMiniSvsSamples', 'u2'),
                          ('NumEchosounderSamples', 'u2'), ('NumRaaSamples', 'u2'), ('MeanSv', 'f4'),
                          ('SurfaceVelocity', 'f4'), ('ValidBeams', 'u2'), ('SampleRate', 'f4'), ('PulseLength', 'f4'),
                          ('PingLength', 'u2'), ('TransmitPower', 'u2'), ('SidescanGainChannel', 'u2'),
                          ('Stabilization', 'u2'), ('GpsQuality', 'u2'), ('RangeUncertainty', 'f4'),
                          ('AngleUncertainty', 'f4')])
    raw_dtype = np.dtype([('DataSource', '>u2'), ('Side', '>u2'), ('ModelNumber', '>u2'), ('Frequency', '>u2'),
                          ('EchosounderType', '>u2'), ('PingNumber', '>u4'), ('NumNavSamples', '>u2'),
                          ('NumAttitudeSamples', '>u2'), ('NumHeadingSamples', '>u2'), ('NumMiniSvsSamples', '>u2'),
                          ('NumEchosounderSamples', '>u2'), ('NumRaaSamples', '>u2'), ('MeanSv', '>u2'),
                          ('SurfaceVelocity', '>u2'), ('ValidBeams', '>u2'), ('SampleRate', '>f4'),
                          ('PulseLength', '>f4'), ('PingLength', '>u2'), ('TransmitPower', '>u2'),
                          ('SidescanGainChannel', '>u2'), ('Stabilization', '>u2'), ('GpsQuality', '>u2'),
                          ('RangeUncertainty', '>f4'), ('AngleUncertainty', '>f4'), ('Spare', 'V16')])
    conversions = {'Frequency': 10.0, 'MeanSv': 0.05, 'SurfaceVelocity': 0.05, 'SampleRate': 10.0,
                   'RangeUncertainty': 0.001, 'AngleUncertainty': 0.01}


@register_sensor(SubRecordID.KLEIN_5410_BSS)
class Klein5410Bss(SensorData):
    family = 'Klein5410Bss'
    hdr_dtype = np.dtype([('DataSource', 'u2'), ('Side', 'u2'), ('ModelNumber', 'u2'), ('AcousticFrequency', 'f8'),
                          ('SamplingFrequency', 'f8'), ('PingNumber', 'u4'), ('NumSamples', 'u4'),
                          ('NumRaaSamples', 'u4'), ('ErrorFlags', 'u4'), ('Range', 'u4'), ('FishDepth', 'f8'),
                          ('FishAltitude', 'f8'), ('SoundSpeed', 'f8'), ('TransmitWaveform', 'u2'),
                          ('Altimeter', 'u2'), ('RawDataConfig', 'u4')])
    raw_dtype = np.dtype([('DataSource', '>u2'), ('Side', '>u2'), ('ModelNumber', '>u2'), ('AcousticFrequency', '>u4'),
                          ('SamplingFrequency', '>u4'), ('PingNumber', '>u4'), ('NumSamples', '>u4'),
                          ('NumRaaSamples', '>u4'), ('ErrorFlags', '>u4'), ('Range', '>u4'), ('FishDepth', '>u4'),
                          ('FishAltitude', '>u4'), ('SoundSpeed', '>u4'), ('TransmitWaveform', '>u2'),
                          ('Altimeter', '>u2'), ('RawDataConfig', '>u4'), ('Spare', 'V32')])
    conversions = {'AcousticFrequency': 0.001, 'SamplingFrequency': 0.001, 'FishDepth': 0.001, 'FishAltitude': 0.001,
                   'SoundSpeed': 0.001}


@register_sensor(SubRecordID.DELTA_T)
class DeltaT(SensorData):
    family = 'DeltaT'
    hdr_dtype = np.dtype([('FileExtension', 'S4'), ('Version', 'u1'), ('PingByteSize', 'u2'), ('DgTime', 'f8'),
                          ('TvSec', 'u4'), ('TvNsec', 'u4'), ('SamplesPerBeam', 'u2'), ('SectorSize', 'u2'),
                          ('StartAngle', 'f4'), ('AngleIncrement', 'f4'), ('AcousticRange', 'u2'),
                          ('AcousticFrequency', 'u2'), ('SoundVelocity', 'f4'), ('RangeResolution', 'u2'),
                          ('ProfileTiltAngle', 'f4'), ('RepetitionRate', 'u2'), ('PingNumber', 'u4'),
                          ('IntensityFlag', 'u1'), ('PingLatency', 'f4'), ('DataLatency', 'f4'),
                          ('SampleRateFlag', 'u1'), ('OptionsFlag', 'u1'), ('NumberPingsAveraged', 'u1'),
                          ('CenterPingTimeOffset', 'f4'), ('UserDefinedByte', 'u1'), ('Altitude', 'f8'),
                          ('ExternalSensorFlags', 'u1'), ('PulseLength', 'f8'), ('ForeAftBeamwidth', 'f4'),
                          ('AthwartBeamwidth', 'f4')])
    raw_dtype = np.dtype([('FileExtension', 'S4'), ('Version', 'u1'), ('PingByteSize', '>u2'), ('TvSec', '>u4'),
                          ('TvNsec', '>u4'), ('SamplesPerBeam', '>u2'), ('SectorSize', '>u2'), ('StartAngle', '>u2'),
                          ('AngleIncrement', '>u2'), ('AcousticRange', '>u2'), ('AcousticFrequency', '>u2'),
                          ('SoundVelocity', '>u2'), ('RangeResolution', '>u2'), ('ProfileTiltAngle', '>u2'),
                          ('RepetitionRate', '>u2'), ('PingNumber', '>u4'), ('IntensityFlag', 'u1'),
                          ('PingLatency', '>u2'), ('DataLatency', '>u2'), ('SampleRateFlag', 'u1'),
                          ('OptionsFlag', 'u1'), ('NumberPingsAveraged', 'u1'), ('CenterPingTimeOffset', '>u2'),
                          ('UserDefinedByte', 'u1'), ('Altitude', '>u4'), ('ExternalSensorFlags', 'u1'),
                          ('PulseLength', '>u4'), ('ForeAftBeamwidth', 'u1'), ('AthwartBeamwidth', 'u1'),
                          ('Spare', 'V32')])
    conversions = {'StartAngle': 0.01, 'AngleIncrement': 0.01, 'SoundVelocity': 0.1, 'PingLatency': 0.0001,
                   'DataLatency': 0.0001, 'CenterPingTimeOffset': 0.0001, 'Altitude': 0.01, 'PulseLength': 1e-6,
                   'ForeAftBeamwidth': 0.1, 'AthwartBeamwidth': 0.1}
    offsets = {'StartAngle': -180.0, 'ProfileTiltAngle': -180.0}

    def __init__(self, datablock, sensor_id=SubRecordID.DELTA_T, version=None):
        super(DeltaT, self).__init__(datablock, sensor_id, version)
        self.header['DgTime'] = posix_time(self.header['TvSec'], self.header['TvNsec'])


r2sonic_raw = [('ModelNumber', 'S12'), ('SerialNumber', 'S12'), ('TvSec', '>u4'), ('TvNsec', '>u4'),
               ('PingNumber', '>u4'), ('PingPeriod', '>u4'), ('SoundSpeed', '>u4'), ('Frequency', '>u4'),
               ('TxPower', '>u4'), ('TxPulseWidth', '>u4'), ('TxBeamWidthVert', '>u4'), ('TxBeamWidthHoriz', '>u4'),
               ('TxSteeringVert', '>i4'), ('TxSteeringHoriz', '>i4'), ('TxMiscInfo', '>u4'), ('RxBandwidth', '>u4'),
               ('RxSampleRate', '>u4'), ('RxRange', '>u4'), ('RxGain', '>u4'), ('RxSpreading', '>u4'),
               ('RxAbsorption', '>u4'), ('RxMountTilt', '>i4'), ('RxMiscInfo', '>u4'), ('Reserved', '>u2'),
               ('NumberBeams', '>u2')]
r2sonic_hdr = [('ModelNumber', 'S12'), ('SerialNumber', 'S12'), ('DgTime', 'f8'), ('TvSec', 'u4'), ('TvNsec', 'u4'),
               ('PingNumber', 'u4'), ('PingPeriod', 'f8'), ('SoundSpeed', 'f8'), ('Frequency', 'f8'), ('TxPower', 'f8'),
               ('TxPulseWidth', 'f8'), ('TxBeamWidthVert', 'f8'), ('TxBeamWidthHoriz', 'f8'), ('TxSteeringVert', 'f8'),
               ('TxSteeringHoriz', 'f8'), ('TxMiscInfo', 'u4'), ('RxBandwidth', 'f8'), ('RxSampleRate', 'f8'),
               ('RxRange', 'f8'), ('RxGain', 'f8'), ('RxSpreading', 'f8'), ('RxAbsorption', 'f8'),
               ('RxMountTilt', 'f8'), ('RxMiscInfo', 'u4'), ('NumberBeams', 'u2')]
r2sonic_conversions = {'PingPeriod': 1e-6, 'SoundSpeed': 0.01, 'Frequency': 0.001, 'TxPower': 0.01,
                       'TxPulseWidth': 1e-7, 'TxBeamWidthVert': 1e-6, 'TxBeamWidthHoriz': 1e-6, 'TxSteeringVert': 1e-6,
                       'TxSteeringHoriz': 1e-6, 'RxBandwidth': 1e-4, 'RxSampleRate': 0.001, 'RxRange': 1e-5,
                       'RxGain': 0.01, 'RxSpreading': 0.001, 'RxAbsorption': 0.001, 'RxMountTilt': 1e-6}


@register_sensor(SubRecordID.R2SONIC_2020, SubRecordID.R2SONIC_2022, SubRecordID.R2SONIC_2024)
class R2Sonic(SensorData):
    family = 'R2Sonic'
    hdr_dtype = np.dtype(r2sonic_hdr + [('A0MoreInfo', 'f8', (6,)), ('A2MoreInfo', 'f8', (6,)),
                                        ('G0DepthGateMin', 'f8'), ('G0DepthGateMax', 'f8'), ('G0DepthGateSlope', 'f8')])
    raw_dtype = np.dtype(r2sonic_raw + [('A0MoreInfo', '>i4', (6,)), ('A2MoreInfo', '>i4', (6,)),
                                        ('G0DepthGateMin', '>u4'), ('G0DepthGateMax', '>u4'),
                                        ('G0DepthGateSlope', '>i4'), ('Spare', 'V32')])
    conversions = dict(r2sonic_conversions, A0MoreInfo=1e-6, A2MoreInfo=1e-6, G0DepthGateMin=1e-6,
                       G0DepthGateMax=1e-6, G0DepthGateSlope=1e-6)

    def __init__(self, datablock, sensor_id=SubRecordID.R2SONIC_2024, version=None):
        super(R2Sonic, self).__init__(datablock, sensor_id, version)
        self.header['DgTime'] = posix_time(self.header['TvSec'], self.header['TvNsec'])

    def extra_fields(self):
        return {'ModelNumber': self.header['ModelNumber'].decode('ascii', 'ignore'),
                'SerialNumber': self.header['SerialNumber'].decode('ascii', 'ignore')}


@register_sensor(SubRecordID.SWATH_SB_ECHOTRAC, SubRecordID.SWATH_SB_BATHY2000, SubRecordID.SWATH_SB_PDD)
class SwathSbEchotrac(SensorData):
    family = 'SwathSbEchotrac'
    hdr_dtype = np.dtype([('NavigationError', 'u2'), ('MppSource', 'u1'), ('TideSource', 'u1'), ('DynamicDraft', 'f4')])
    raw_dtype = np.dtype([('NavigationError', '>u2'), ('MppSource', 'u1'), ('TideSource', 'u1'),
                          ('DynamicDraft', '>i2'), ('Spare', 'V4')])
    conversions = {'DynamicDraft': 0.01}


@register_sensor(SubRecordID.SB_ECHOTRAC, SubRecordID.SB_BATHY2000)
class SbEchotrac(SwathSbEchotrac):
    family = 'SbEchotrac'
    hdr_dtype = SwathSbEchotrac.hdr_dtype
    raw_dtype = np.dtype([('NavigationError', '>u2'), ('MppSource', 'u1'), ('TideSource', 'u1')])
    conversions = {}


mgd77_hdr = [('TimeZoneCorrection', 'u2'), ('PositionTypeCode', 'u2'), ('CorrectionCode', 'u2'),
             ('BathyTypeCode', 'u2'), ('QualityCode', 'u2'), ('TravelTime', 'f8')]
mgd77_raw = [('TimeZoneCorrection', '>u2'), ('PositionTypeCode', '>u2'), ('CorrectionCode', '>u2'),
             ('BathyTypeCode', '>u2'), ('QualityCode', '>u2'), ('TravelTime', '>u4')]


@register_sensor(SubRecordID.SWATH_SB_MGD77)
class SwathSbMgd77(SensorData):
    family = 'SwathSbMgd77'
    hdr_dtype = np.dtype(mgd77_hdr)
    raw_dtype = np.dtype(mgd77_raw + [('Spare', 'V4')])
    conversions = {'TravelTime': 0.0001}


@register_sensor(SubRecordID.SB_MGD77)
class SbMgd77(SwathSbMgd77):
    family = 'SbMgd77'
    hdr_dtype = np.dtype(mgd77_hdr)
    raw_dtype = np.dtype(mgd77_raw)


bdb_hdr = [('TravelTime', 'u4'), ('EvaluationFlag', 'u1'), ('ClassificationFlag', 'u1'), ('TrackAdjustmentFlag', 'u1'),
           ('SourceFlag', 'u1'), ('PointOrTrackLineFlag', 'u1'), ('DatumFlag', 'u1')]
bdb_raw = [('TravelTime', '>u4')] + bdb_hdr[1:]


@register_sensor(SubRecordID.SWATH_SB_BDB)
class SwathSbBdb(SensorData):
    family = 'SwathSbBdb'
    hdr_dtype = np.dtype(bdb_hdr)
    raw_dtype = np.dtype(bdb_raw + [('Spare', 'V4')])


@register_sensor(SubRecordID.SB_BDB)
class SbBdb(SwathSbBdb):
    family = 'SbBdb'
    hdr_dtype = np.dtype(bdb_hdr)
    raw_dtype = np.dtype(bdb_raw)


@register_sensor(SubRecordID.SWATH_SB_NOSHDB)
class SwathSbNoShDb(SensorData):
    family = 'SwathSbNoShDb'
    hdr_dtype = np.dtype([('TypeCode', 'u2'), ('CartographicCode', 'u2')])
    raw_dtype = np.dtype([('TypeCode', '>u2'), ('CartographicCode', '>u2'), ('Spare', 'V4')])


@register_sensor(SubRecordID.SB_NOSHDB)
class SbNoShDb(SwathSbNoShDb):
    family = 'SbNoShDb'
    hdr_dtype = SwathSbNoShDb.hdr_dtype
    raw_dtype = np.dtype([('TypeCode', '>u2'), ('CartographicCode', '>u2')])


@register_sensor(SubRecordID.SWATH_SB_NAVISOUND)
class SwathSbNavisound(SensorData):
    family = 'SwathSbNavisound'
    hdr_dtype = np.dtype([('PulseLength', 'f4')])
    raw_dtype = np.dtype([('PulseLength', '>u2'), ('Spare', 'V8')])
    conversions = {'PulseLength': 0.01}

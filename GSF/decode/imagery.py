"""
INTENSITY_SERIES subrecord decoding (beam time series intensity).

The subrecord starts with a 21 byte block holding the bits per sample and the applied corrections, then an
optional sensor specific imagery metadata block, then for every beam a 12 byte descriptor followed by the
samples of that beam.
"""

import numpy as np

from GSF.decode.constants import SubRecordID, SCALE_1
from GSF.decode.errors import SensorDecodeFailure
from GSF.decode.sensors import SensorData, posix_time, r2sonic_raw, r2sonic_hdr, r2sonic_conversions

IMAGERY_DECODERS = {}

EM3_IMAGERY_SENSORS = (SubRecordID.EM120, SubRecordID.EM120_RAW, SubRecordID.EM300, SubRecordID.EM300_RAW,
                       SubRecordID.EM1002, SubRecordID.EM1002_RAW, SubRecordID.EM2000, SubRecordID.EM2000_RAW,
                       SubRecordID.EM3000, SubRecordID.EM3000_RAW, SubRecordID.EM3002, SubRecordID.EM3002_RAW,
                       SubRecordID.EM3000D, SubRecordID.EM3000D_RAW, SubRecordID.EM3002D, SubRecordID.EM3002D_RAW,
                       SubRecordID.EM121A_SIS, SubRecordID.EM121A_SIS_RAW)
EM4_IMAGERY_SENSORS = (SubRecordID.EM122, SubRecordID.EM302, SubRecordID.EM710, SubRecordID.EM2040)

intensity_base_dtype = np.dtype([('BitsPerSample', 'u1'), ('AppliedCorrections', '>u4'), ('Spare', 'V16')])
beam_descriptor_dtype = np.dtype([('SampleCount', '>u2'), ('DetectSample', '>u2'), ('StartRange', '>u2'),
                                  ('Spare', 'V6')])


def register_imagery(*sensor_ids):
    def wrapper(cls):
        for sensor_id in sensor_ids:
            IMAGERY_DECODERS[int(sensor_id)] = cls
        return cls
    return wrapper


class ImageryData(SensorData):
    """
    Sensor specific imagery metadata found inside the INTENSITY_SERIES subrecord.  Sensors that store
    a scale/offset for their samples override sample_scale.
    """

    def sample_scale(self):
        """(scale, offset) used as (value - offset) / scale, None when the samples are stored unscaled"""
        return None


@register_imagery(*EM3_IMAGERY_SENSORS)
class Em3Imagery(ImageryData):
    family = 'Em3Imagery'
    hdr_dtype = np.dtype([('RangeNorm', 'u2'), ('StartTvgRamp', 'u2'), ('StopTvgRamp', 'u2'), ('BackscatterN', 'u1'),
                          ('BackscatterO', 'u1'), ('MeanAbsorption', 'f4'), ('Scale', 'i2'), ('Offset', 'i2')])
    raw_dtype = np.dtype([('RangeNorm', '>u2'), ('StartTvgRamp', '>u2'), ('StopTvgRamp', '>u2'), ('BackscatterN', 'u1'),
                          ('BackscatterO', 'u1'), ('MeanAbsorption', '>u2'), ('Scale', '>i2'), ('Offset', '>i2'),
                          ('Spare', 'V4')])
    conversions = {'MeanAbsorption': 0.01}

    def sample_scale(self):
        # the stored scale has been written incorrectly by some acquisition software, the format mandates 2
        return 2.0, float(self.header['Offset'])


@register_imagery(*EM4_IMAGERY_SENSORS)
class Em4Imagery(ImageryData):
    family = 'Em4Imagery'
    hdr_dtype = np.dtype([('SamplingFrequency1', 'u4'), ('SamplingFrequency2', 'u4'), ('SamplingFrequency', 'f8'),
                          ('MeanAbsorption', 'f4'), ('TransmitPulseLength', 'f4'), ('RangeNorm', 'u2'),
                          ('StartTvgRamp', 'u2'), ('StopTvgRamp', 'u2'), ('BackscatterN', 'f4'),
                          ('BackscatterO', 'f4'), ('TransmitBeamWidth', 'f4'), ('TvgCrossOver', 'f4'),
                          ('Offset', 'i2'), ('Scale', 'i2')])
    raw_dtype = np.dtype([('SamplingFrequency1', '>u4'), ('SamplingFrequency2', '>u4'), ('MeanAbsorption', '>u2'),
                          ('TransmitPulseLength', '>u2'), ('RangeNorm', '>u2'), ('StartTvgRamp', '>u2'),
                          ('StopTvgRamp', '>u2'), ('BackscatterN', '>i2'), ('BackscatterO', '>i2'),
                          ('TransmitBeamWidth', '>u2'), ('TvgCrossOver', '>u2'), ('Offset', '>i2'), ('Scale', '>i2'),
                          ('Spare', 'V20')])
    conversions = {'MeanAbsorption': 0.01, 'BackscatterN': 0.1, 'BackscatterO': 0.1, 'TransmitBeamWidth': 0.1,
                   'TvgCrossOver': 0.1}

    def __init__(self, datablock, sensor_id=SubRecordID.EM2040, version=None):
        super(Em4Imagery, self).__init__(datablock, sensor_id, version)
        self.header['SamplingFrequency'] = float(self.header['SamplingFrequency1']) + \
            float(self.header['SamplingFrequency2']) / 4e9

    def sample_scale(self):
        return SCALE_1, float(self.header['Offset'])


@register_imagery(SubRecordID.RESON_7125, SubRecordID.RESON_TSERIES)
class Reson7100Imagery(ImageryData):
    family = 'Reson7100Imagery'
    hdr_dtype = np.dtype([('Size', 'u2')])
    raw_dtype = np.dtype([('Size', '>u2'), ('Spare', 'V64')])


@register_imagery(SubRecordID.RESON_8101, SubRecordID.RESON_8111, SubRecordID.RESON_8124, SubRecordID.RESON_8125,
                  SubRecordID.RESON_8150, SubRecordID.RESON_8160)
class Reson8100Imagery(ImageryData):
    """spare bytes only"""
    family = 'Reson8100Imagery'
    hdr_dtype = np.dtype([])
    raw_dtype = np.dtype([('Spare', 'V8')])


@register_imagery(SubRecordID.KMALL)
class KmallImagery(ImageryData):
    family = 'KmallImagery'
    hdr_dtype = np.dtype([])
    raw_dtype = np.dtype([('Spare', 'V64')])


@register_imagery(SubRecordID.KLEIN_5410_BSS)
class Klein5410BssImagery(ImageryData):
    family = 'Klein5410BssImagery'
    hdr_dtype = np.dtype([('ResolutionMode', 'u2'), ('TvgPage', 'u2'), ('BeamId', 'u2', (5,))])
    raw_dtype = np.dtype([('ResolutionMode', '>u2'), ('TvgPage', '>u2'), ('BeamId', '>u2', (5,)), ('Spare', 'V4')])


@register_imagery(SubRecordID.R2SONIC_2020, SubRecordID.R2SONIC_2022, SubRecordID.R2SONIC_2024)
class R2SonicImagery(ImageryData):
    family = 'R2SonicImagery'
    hdr_dtype = np.dtype(r2sonic_hdr + [('MoreInfo', 'f8', (6,))])
    raw_dtype = np.dtype(r2sonic_raw + [('MoreInfo', '>i4', (6,)), ('Spare', 'V32')])
    conversions = dict(r2sonic_conversions, MoreInfo=1e-6)

    def __init__(self, datablock, sensor_id=SubRecordID.R2SONIC_2024, version=None):
        super(R2SonicImagery, self).__init__(datablock, sensor_id, version)
        self.header['DgTime'] = posix_time(self.header['TvSec'], self.header['TvNsec'])


class BrbIntensity:
    """
    Beam time series intensity of one ping.

    TimeSeries is the samples of every beam concatenated, a beam without samples contributes a single NaN
    so that every beam has at least one entry.  sample_count holds the stored count per beam (0 included).
    """

    def __init__(self, time_series, bottom_detect_index, start_range, ts_mean, sample_count):
        self.TimeSeries = time_series
        self.BottomDetectIndex = bottom_detect_index
        self.StartRange = start_range
        self.TsMean = ts_mean
        self.sample_count = sample_count

    @property
    def number_beams(self):
        return len(self.sample_count)

    def beam_series(self):
        """list with the time series of each beam"""
        lengths = np.maximum(self.sample_count.astype(np.int64), 1)
        return np.split(self.TimeSeries, np.cumsum(lengths)[:-1])

    def as_dict(self):
        return {'TimeSeries': self.TimeSeries, 'BottomDetectIndex': self.BottomDetectIndex,
                'StartRange': self.StartRange, 'TsMean': self.TsMean, 'sample_count': self.sample_count}

    def __repr__(self):
        return f'BrbIntensity(number_beams={self.number_beams}, samples={len(self.TimeSeries)})'


def unpack_12bit(block, count):
    """Every 3 bytes hold 2 big endian 12 bit samples"""
    triplets = np.frombuffer(block, dtype=np.uint8).astype(np.uint32).reshape(-1, 3)
    first = (triplets[:, 0] << 4) | (triplets[:, 1] >> 4)
    second = ((triplets[:, 1] & 0x0F) << 8) | triplets[:, 2]
    samples = np.empty(triplets.shape[0] * 2, dtype=np.uint32)
    samples[0::2] = first
    samples[1::2] = second
    return samples[:count]


def sample_block_size(bits_per_sample, count):
    if bits_per_sample == 12:
        return ((count + 1) // 2) * 3
    return (bits_per_sample // 8) * count


sample_dtypes = {8: '>u1', 16: '>u2', 32: '>u4'}


def decode_intensity(buffer, offset, number_beams, sensor_id, version=None):
    """
    Decode the INTENSITY_SERIES subrecord payload starting at offset.

    The payload is read from the whole record buffer, the subrecord size written by some software is one
    byte short of the content.  sensor_id selects the imagery metadata block, None when the ping has no
    sensor specific subrecord.

    Returns
    -------
    BrbIntensity
    ImageryData or None
        sensor specific imagery metadata
    int
        number of bytes read
    """
    pos = offset
    if pos + intensity_base_dtype.itemsize > len(buffer):
        raise SensorDecodeFailure('INTENSITY_SERIES subrecord truncated before the base block', position=offset)
    base = np.frombuffer(buffer, dtype=intensity_base_dtype, count=1, offset=pos)[0]
    bits = int(base['BitsPerSample'])
    pos += intensity_base_dtype.itemsize
    if bits != 12 and bits not in sample_dtypes:
        raise SensorDecodeFailure(f'INTENSITY_SERIES has an unsupported {bits} bits per sample', position=offset)

    imagery = None
    # pings without a sensor specific subrecord carry no imagery metadata block
    decoder = IMAGERY_DECODERS.get(int(sensor_id)) if sensor_id is not None else None
    if decoder is not None:
        imagery = decoder(bytes(buffer[pos:pos + decoder.hdr_sz]), sensor_id, version)
        pos += imagery.nbytes
    scale_offset = imagery.sample_scale() if imagery is not None else None

    count = np.zeros(number_beams, dtype=np.uint16)
    detect = np.zeros(number_beams, dtype=np.uint16)
    start_range = np.zeros(number_beams, dtype=np.uint16)
    ts_mean = np.zeros(number_beams, dtype=np.float64)
    series = []
    for beam in range(number_beams):
        if pos + beam_descriptor_dtype.itemsize > len(buffer):
            raise SensorDecodeFailure(f'INTENSITY_SERIES truncated at beam {beam}', position=pos)
        desc = np.frombuffer(buffer, dtype=beam_descriptor_dtype, count=1, offset=pos)[0]
        pos += beam_descriptor_dtype.itemsize
        nsamples = int(desc['SampleCount'])
        count[beam] = nsamples
        detect[beam] = desc['DetectSample']
        start_range[beam] = desc['StartRange']

        nbytes = sample_block_size(bits, nsamples)
        if pos + nbytes > len(buffer):
            raise SensorDecodeFailure(f'INTENSITY_SERIES samples truncated at beam {beam}', position=pos)
        if nsamples == 0:
            series.append(np.full(1, np.nan))
            ts_mean[beam] = np.nan
            continue
        if bits == 12:
            samples = unpack_12bit(buffer[pos:pos + nbytes], nsamples).astype(np.float64)
        else:
            samples = np.frombuffer(buffer, dtype=sample_dtypes[bits], count=nsamples, offset=pos).astype(np.float64)
        pos += nbytes
        if scale_offset is not None:
            scale, offs = scale_offset
            samples = (samples - offs) / scale
        series.append(samples)
        ts_mean[beam] = samples.mean()

    if series:
        time_series = np.concatenate(series)
    else:
        time_series = np.zeros(0, dtype=np.float64)
    return BrbIntensity(time_series, detect, start_range, ts_mean, count), imagery, pos - offset

"""
Assembly of a chunk of decoded pings into contiguous arrays.

Pings of a file don't always carry the same beam array subrecords, so merging them requires the fields
missing from a ping to be filled with nulls.  When a fixed beam axis is needed (dense output) every ping is
also padded with null beams up to the maximum beam count of the file.
"""

import numpy as np

from GSF.decode.constants import SubRecordID, beam_field_names, beam_nulls, intensity_nulls, NULL_LONGITUDE, NULL_LATITUDE
from GSF.decode.imagery import IMAGERY_DECODERS
from GSF.decode.sensors import SENSOR_DECODERS

INTENSITY_NAME = beam_field_names[SubRecordID.INTENSITY_SERIES]


def null_array(name, size):
    """size null values of the beam field, None for a name without a null (which is then left alone)"""
    try:
        fill = beam_nulls[name]
    except KeyError:
        return None
    if isinstance(fill, np.uint8):
        return np.full(size, fill, dtype=np.uint8)
    return np.full(size, fill, dtype=np.float64)


def intensity_null_arrays(size):
    return {'TimeSeries': np.full(size, intensity_nulls['TimeSeries']),
            'BottomDetectIndex': np.full(size, intensity_nulls['BottomDetectIndex'], dtype=np.uint16),
            'StartRange': np.full(size, intensity_nulls['StartRange'], dtype=np.uint16),
            'TsMean': np.full(size, intensity_nulls['TsMean']),
            'sample_count': np.full(size, intensity_nulls['sample_count'], dtype=np.uint16)}


def stack_values(values):
    """numpy array of per ping values, variable length values are kept as a list"""
    if all(np.ndim(v) == 0 for v in values):
        return np.asarray(values)
    shapes = {np.shape(v) for v in values}
    if len(shapes) == 1:
        return np.stack([np.asarray(v) for v in values])
    return list(values)


def merge_records(records, nulls):
    keys = []
    for rec in records:
        for k in rec:
            if k not in keys:
                keys.append(k)
    return {k: stack_values([rec.get(k, nulls.get(k, np.nan)) for rec in records]) for k in keys}


class PingChunk:
    """
    Struct of arrays for a chunk of pings.

    schema is the list of beam array field names of the file (the union over all pings), a ping
    missing any of them gets nulls.  Per beam values are accumulated as lists of arrays and concatenated by
    finalize.
    """

    def __init__(self, schema, sensor_id=None, dense=False, max_beams=0):
        self.schema = list(schema)
        self.beam_fields = [name for name in self.schema if name != INTENSITY_NAME]
        self.contains_intensity = INTENSITY_NAME in self.schema
        self.sensor_id = sensor_id
        self.dense = dense
        self.max_beams = max_beams
        self.number_pings = 0

        self.ping_numbers = []
        self.beam_numbers = []
        self.ping_headers = []
        self.beams = {name: [] for name in self.beam_fields}
        self.longitude = []
        self.latitude = []
        self.sensor_metadata = []
        self.imagery_metadata = []
        self.intensity = {name: [] for name in intensity_nulls}

    def _append_intensity(self, values):
        for name in self.intensity:
            self.intensity[name].append(values[name])

    def append_ping(self, ping_id, ping):
        """add a decoded ping (PingData), filling nulls for the fields it is missing"""
        nbeams = ping.number_beams
        self.ping_numbers.append(np.full(nbeams, ping_id, dtype=np.uint64))
        self.beam_numbers.append(np.arange(nbeams, dtype=np.uint16))
        self.ping_headers.append(ping.header.as_dict())

        for name in self.beam_fields:
            if name in ping.beams:
                self.beams[name].append(ping.beams.get(name))
        self.longitude.append(np.asarray(ping.longitude, dtype=np.float64))
        self.latitude.append(np.asarray(ping.latitude, dtype=np.float64))

        if ping.sensor_metadata is not None:
            self.sensor_metadata.append(ping.sensor_metadata.as_dict())
        else:
            self.sensor_metadata.append({})

        if self.contains_intensity:
            if ping.intensity is not None:
                self._append_intensity(ping.intensity.as_dict())
            if ping.imagery_metadata is not None:
                self.imagery_metadata.append(ping.imagery_metadata.as_dict())
            else:
                self.imagery_metadata.append({})

        self.fill_nulls(ping)
        if self.dense:
            self.pad_dense(ping, self.max_beams)
        self.number_pings += 1

    def fill_nulls(self, ping):
        """
        Append nulls for every field of the chunk schema that the ping didn't decode, returns the names of
        the filled fields.
        """
        nbeams = ping.number_beams
        missing = [name for name in self.schema if name not in ping.beams.decoded]
        for name in missing:
            if name == INTENSITY_NAME:
                self._append_intensity(intensity_null_arrays(nbeams))
                continue
            nulls = null_array(name, nbeams)
            if nulls is not None and name in self.beams:
                self.beams[name].append(nulls)
        return missing

    def pad_dense(self, ping, max_beams):
        """Append null beams to every field so that the ping holds max_beams beams"""
        size = max_beams - ping.number_beams
        if size <= 0:
            return 0
        for name in self.schema:
            if name == INTENSITY_NAME:
                self._append_intensity(intensity_null_arrays(size))
                continue
            nulls = null_array(name, size)
            if nulls is not None and name in self.beams:
                self.beams[name].append(nulls)
        self.longitude.append(np.full(size, NULL_LONGITUDE))
        self.latitude.append(np.full(size, NULL_LATITUDE))
        ping_id = self.ping_numbers[-1][0] if len(self.ping_numbers[-1]) else 0
        self.ping_numbers.append(np.full(size, ping_id, dtype=np.uint64))
        self.beam_numbers.append(np.arange(ping.number_beams, max_beams, dtype=np.uint16))
        return size

    def finalize(self):
        """
        Returns
        -------
        dict
            ping_beam, ping_headers, beams, lonlat, sensor_metadata, imagery_metadata and intensity, each a
            dict of field name: numpy array
        """
        def concat(arrays, dtype=np.float64):
            if arrays:
                return np.concatenate(arrays)
            return np.zeros(0, dtype=dtype)

        sensor_cls = SENSOR_DECODERS.get(self.sensor_id) if self.sensor_id is not None else None
        imagery_cls = IMAGERY_DECODERS.get(self.sensor_id) if self.sensor_id is not None else None
        result = {'ping_beam': {'PingNumber': concat(self.ping_numbers, np.uint64),
                                'BeamNumber': concat(self.beam_numbers, np.uint16)},
                  'ping_headers': merge_records(self.ping_headers, {}),
                  'beams': {name: concat(arrays) for name, arrays in self.beams.items()},
                  'lonlat': {'Longitude': concat(self.longitude), 'Latitude': concat(self.latitude)},
                  'sensor_metadata': merge_records(self.sensor_metadata,
                                                   sensor_cls.null_record() if sensor_cls else {}),
                  'imagery_metadata': {},
                  'intensity': {}}
        if self.contains_intensity:
            result['imagery_metadata'] = merge_records(self.imagery_metadata,
                                                       imagery_cls.null_record() if imagery_cls else {})
            result['intensity'] = {name: concat(arrays) for name, arrays in self.intensity.items()}
        return result

    def __repr__(self):
        return f'PingChunk(number_pings={self.number_pings}, schema={self.schema})'

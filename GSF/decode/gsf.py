"""Python GSF Reader

Streams the records of a Generic Sensor Format file, builds an index of every record on a single forward pass
and decodes the swath bathymetry pings in chunks of struct of arrays ready for a storage layer.

    gsf = GsfRead('0001_line.gsf')
    gsf.info()
    for chunk in gsf.ping_chunks(chunk_size=500):
        depth = chunk['beams']['Z']
"""

import os
import sys
import logging

import numpy as np
import matplotlib.pyplot as plt

from GSF.decode.constants import RecordID, SubRecordID, beam_field_names, record_name, subrecord_name
from GSF.decode.errors import GsfError, MalformedHeader
from GSF.decode.geo import WGS84
from GSF.decode.groups import ping_groups
from GSF.decode.nulls import PingChunk
from GSF.decode.ping import PingInfo, decode_ping, ping_info
from GSF.decode.quality import quality_info
from GSF.decode.record import read_record_header
from GSF.decode.records import decode_header, major_minor, SwathBathySummary, Comment, History, \
    decode_processing_parameters, SoundVelocityProfile, Attitude, svp_number_points, attitude_number_measurements

logger = logging.getLogger(__name__)

record_decoders = {RecordID.HEADER: decode_header,
                   RecordID.SWATH_BATHY_SUMMARY: SwathBathySummary,
                   RecordID.COMMENT: Comment,
                   RecordID.HISTORY: History,
                   RecordID.PROCESSING_PARAMETERS: decode_processing_parameters,
                   RecordID.SOUND_VELOCITY_PROFILE: SoundVelocityProfile,
                   RecordID.ATTITUDE: Attitude}


class Datagram:
    """A single top level record, the header and the undecoded payload.  decode fills subpack."""

    def __init__(self, header, datablock):
        self.header = header
        self.datablock = datablock
        self.dtype = header.name
        self.datagram_start = header.record_start
        self.datagram_size = header.record_end - header.record_start
        self.subpack = None

    def decode(self, version=None, info=None):
        if self.header.id == RecordID.SWATH_BATHYMETRY_PING:
            self.subpack = decode_ping(self.datablock, self.header, info=info, version=version)
        elif self.header.id in record_decoders:
            self.subpack = record_decoders[self.header.id](self.datablock)
        else:
            raise NotImplementedError(f'Record {self.dtype} is not supported')
        return self.subpack

    def __repr__(self):
        return f'Datagram({self.dtype}, start={self.datagram_start}, size={self.datagram_size})'


class RecordIndex:
    """Acts as a map for the location of each of the records for a particular record type for the file in question"""

    def __init__(self):
        self.packdir = {}
        self.sizedir = {}
        self.headers = {}

    def add(self, rec, time=np.nan, ping=0):
        """Adds the location, time and ping number of the record under its record name"""
        typ = rec.name
        store = [rec.record_start, time, ping]
        if typ in self.packdir:
            self.packdir[typ].append(store)
            self.sizedir[typ] += rec.datasize
            self.headers[typ].append(rec)
        else:
            self.packdir[typ] = [store]
            self.sizedir[typ] = rec.datasize
            self.headers[typ] = [rec]

    def finalize(self):
        # records are kept in file order, a time sort would reorder pings sharing a timestamp
        for key in self.packdir.keys():
            self.packdir[key] = np.asarray(self.packdir[key], dtype=np.float64).reshape(-1, 3)

    def counts(self):
        return {key: len(val) for key, val in self.headers.items()}

    def find_nearest(self, file_loc: int, mode: str = 'next'):
        """Finds the nearest record to the given file location in bytes, returns (record name, record start)"""
        cur_closest = None
        rectype = None
        recdata = None
        for typ in list(self.packdir.keys()):
            locs = np.asarray(self.packdir[typ])[:, 0].astype(np.float64)
            if mode == 'nearest':
                diff = np.abs(locs - file_loc)
            elif mode == 'next':
                diff = locs - file_loc
                diff[diff < 0] = np.nan
            else:
                raise ValueError(f'find_nearest: mode must be one of "next", "nearest", found {mode}')
            try:
                closest_index = np.nanargmin(diff)
                if (cur_closest is None) or (diff[closest_index] < cur_closest):
                    cur_closest = diff[closest_index]
                    rectype, recdata = typ, int(locs[closest_index])
            except ValueError:
                pass
        return rectype, recdata

    def printmap(self):
        keys = []
        totalsize = 0
        for i, v in self.packdir.items():
            keys.append((i, len(v)))
            totalsize += self.sizedir[i]
        keys.sort()
        for key in keys:
            percent = 100 * self.sizedir[key[0]] / totalsize if totalsize else 0
            print(f'record {key[0]} has {key[1]} records and {round(percent, 2)}% of file')

    def plotmap(self):
        """
        Plots the location of each of the records in the file.
        """
        keys = list(self.packdir.keys())
        keys.sort()
        plt.figure()
        for key in keys:
            plt.plot(np.asarray(self.packdir[key])[:, 0])
        plt.xlabel('Record Number')
        plt.ylabel('Location in file')
        plt.legend(keys, loc='lower right')


class GsfRead:
    """
    Open a GSF file in binary mode and step through the records, or index the whole file with info and then
    fetch records and chunks of pings from the index.

    infilename can be a path or an already opened binary file object.  start_ptr/end_ptr restrict the reader
    to a byte range of the file.  skip_checksum reads the 4 checksum bytes of flagged records as a separate
    field instead of as the start of the payload.
    """

    def __init__(self, infilename, start_ptr=0, end_ptr=0, coef=WGS84, skip_checksum=False):
        if end_ptr and start_ptr > end_ptr:
            raise ValueError(f'gsf: start pointer ({start_ptr}) must be less than end pointer ({end_ptr})')
        # initialize flags for reading methods
        self.eof = False  # end of file reached
        self.hdr_read = False  # header read status
        self.data_read = False  # data read status
        self.mapped = False  # status of the mapping
        self.start_ptr = start_ptr
        self.end_ptr = end_ptr
        self.coef = coef
        self.skip_checksum = skip_checksum

        if hasattr(infilename, 'read'):
            self.infile = infilename
            self.infilename = getattr(infilename, 'name', '')
            self._owns_file = False
        else:
            self.infilename = infilename
            self.infile = open(infilename, 'rb')
            self._owns_file = True
        self.inname, self.intype = os.path.splitext(str(self.infilename))

        self.infile.seek(0, 2)
        self.max_filelen = self.infile.tell()
        if end_ptr:  # file length is only from start to end pointer
            self.filelen = int(self.end_ptr - self.start_ptr)
        else:
            self.filelen = self.max_filelen - self.start_ptr
        self.infile.seek(self.start_ptr, 0)

        self.packet = None  # the last record read
        self.map = None  # the RecordIndex generated by mapfile

        # filled in by info
        self.version = ''
        self.major_minor = None
        self.sensor_id = None
        self.sensor_name = ''
        self.crs = {'horizontal_datum': '', 'vertical_datum': ''}
        self.record_counts = {}
        self.subrecord_counts = {}
        self._subrecord_id_counts = {}
        self.measurement_counts = {}
        self.subrecord_schema = []
        self.swath_summary = None
        self.ping_info = []
        self.ping_groups = []
        self.quality_info = None

    def close(self):
        if self._owns_file:
            self.infile.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def read(self, verbose=False):
        """
        Read the next record header and payload.  A stream truncated within a record header raises
        MalformedHeader, the file can't be trusted past that point.
        """
        if self.infile.tell() >= self.start_ptr + self.filelen:
            self.eof = True

        if not self.eof:
            rec = read_record_header(self.infile, self.skip_checksum)
            datablock = self.infile.read(rec.datasize)
            if len(datablock) < rec.datasize:
                self.eof = True
                raise MalformedHeader(f'Record {rec.name} truncated, read {len(datablock)} bytes',
                                      record_index=rec.byte_index, record_size=rec.datasize)
            self.packet = Datagram(rec, datablock)
            if verbose:
                print(self.packet.dtype)
            self.hdr_read = True
            self.data_read = False

    def skip(self):
        """Skips the data part of a record."""
        if not self.hdr_read:
            self.read()
        self.hdr_read = False

    def get(self):
        """Reads the data part of a record."""
        if not self.hdr_read:
            self.read()
        try:
            self.packet.decode(self.major_minor)
        except NotImplementedError as err:
            print(err)
        self.data_read = True

    def reset(self):
        """Resets to the beginning of the file."""
        self.infile.seek(self.start_ptr)
        self.eof = False
        self.hdr_read = False
        self.data_read = False

    def findpacket(self, datatype, verbose=True):
        """Finds the requested record type (name or id) and decodes it"""
        if not isinstance(datatype, str):
            datatype = record_name(datatype)
        self.read(verbose)
        while not self.eof and datatype != self.packet.dtype:
            self.skip()
            self.read(verbose)
        if not self.eof:
            self.get()
        else:
            print(f'no {datatype} record found in file')

    def _read_version(self):
        self.reset()
        self.read()
        if self.packet is None or self.packet.header.id != RecordID.HEADER:
            raise MalformedHeader('GSF HEADER is not the first record', record_index=self.start_ptr)
        self.version = decode_header(self.packet.datablock)
        self.major_minor = major_minor(self.version)
        self.reset()

    def mapfile(self, verbose=False, show_progress=True):
        """
        Single forward pass over the file building the record index and the per ping information, followed
        by the ping grouping and the quality checks.
        """
        if self.mapped:
            return
        self._read_version()
        self.map = RecordIndex()
        subrecord_counts = {}
        measurement_counts = {}
        pings = []
        progress = 0
        if show_progress:
            print('Mapping file')
            print('00 percent')
        while True:
            self.read()
            if self.eof:
                break
            rec = self.packet.header
            buffer = self.packet.datablock
            rectime = np.nan
            if rec.id == RecordID.SWATH_BATHYMETRY_PING:
                try:
                    info = ping_info(buffer, rec, self.major_minor)
                except GsfError as err:
                    logger.error(f'Skipping PingID {len(pings)}: {err}')
                    info = PingInfo.placeholder(rec.byte_index)
                pings.append(info)
                rectime = info.timestamp
                for sid in info.subrecords:
                    subrecord_counts[sid] = subrecord_counts.get(sid, 0) + 1
                nmeas = info.number_beams
            elif rec.id == RecordID.PROCESSING_PARAMETERS:
                params = decode_processing_parameters(buffer)
                if isinstance(params.get('geoid'), str):
                    self.crs['horizontal_datum'] = params['geoid']
                if isinstance(params.get('tidal_datum'), str):
                    self.crs['vertical_datum'] = params['tidal_datum']
                nmeas = 1
            elif rec.id == RecordID.SWATH_BATHY_SUMMARY:
                self.swath_summary = SwathBathySummary(buffer)
                nmeas = 1
            elif rec.id == RecordID.HEADER:
                self.version = decode_header(buffer)
                nmeas = 1
            elif rec.id == RecordID.ATTITUDE:
                nmeas = attitude_number_measurements(buffer)
            elif rec.id == RecordID.SOUND_VELOCITY_PROFILE:
                nmeas = svp_number_points(buffer)
            else:
                nmeas = 1
            measurement_counts[rec.name] = measurement_counts.get(rec.name, 0) + nmeas
            self.map.add(rec, rectime, len(pings) - 1 if rec.id == RecordID.SWATH_BATHYMETRY_PING else 0)
            self.skip()

            current = 100 * (self.infile.tell() - self.start_ptr) / self.filelen if self.filelen else 100
            if current - progress >= 1:
                progress = current
                if show_progress:
                    sys.stdout.write('\b\b\b\b\b\b\b\b\b\b%(percent)02d percent' % {'percent': progress})
        self.reset()
        if show_progress:
            print('\b\b\b\b\b\b\b\b\b\b\b\b finished mapping file.')
        self.map.finalize()
        if verbose:
            self.map.printmap()

        self.record_counts = self.map.counts()
        self.measurement_counts = measurement_counts
        self.subrecord_counts = {subrecord_name(sid): cnt for sid, cnt in subrecord_counts.items()}
        self.subrecord_schema = [subrecord_name(sid) for sid in subrecord_counts if sid < SubRecordID.SCALE_FACTORS]
        sensor_ids = [sid for sid in subrecord_counts if sid > SubRecordID.SCALE_FACTORS]
        if sensor_ids:
            self.sensor_id = sensor_ids[0]
            self.sensor_name = subrecord_name(self.sensor_id)
        self._subrecord_id_counts = subrecord_counts
        self.ping_info = pings
        self.ping_groups = ping_groups(pings)
        self.quality_info = quality_info(pings, self.subrecord_counts)
        self.mapped = True

    def info(self, verbose=False, show_progress=False):
        """
        Index the file (once) and return a summary of it as a dictionary.
        """
        self.mapfile(verbose=verbose, show_progress=show_progress)
        return {'gsf_uri': str(self.infilename), 'gsf_version': self.version, 'size': self.max_filelen,
                'sensor_id': self.sensor_id, 'sensor_name': self.sensor_name, 'crs': dict(self.crs),
                'subrecord_schema': list(self.subrecord_schema), 'record_counts': dict(self.record_counts),
                'subrecord_counts': dict(self.subrecord_counts),
                'measurement_counts': dict(self.measurement_counts),
                'swath_summary': self.swath_summary.as_dict() if self.swath_summary is not None else {},
                'quality_info': self.quality_info.as_dict()}

    def _record_headers(self, recordtype):
        if not self.mapped:
            self.mapfile(show_progress=False)
        if not isinstance(recordtype, str):
            recordtype = record_name(recordtype)
        return self.map.headers.get(recordtype, [])

    def read_payload(self, rec):
        """payload of the record with the given RecordHeader, the current file position is left untouched"""
        curptr = self.infile.tell()
        self.infile.seek(rec.byte_index)
        datablock = self.infile.read(rec.datasize)
        self.infile.seek(curptr)
        if len(datablock) < rec.datasize:
            raise MalformedHeader(f'Record {rec.name} truncated, read {len(datablock)} bytes',
                                  record_index=rec.byte_index, record_size=rec.datasize)
        return datablock

    def getrecord(self, recordtype, numrecord):
        """
        Decode the numrecord'th record of recordtype (record name or id) from the index.  Pings come back
        decoded with the scale factors resolved by the ping grouping.
        """
        headers = self._record_headers(recordtype)
        if not headers:
            print(f'Unable to find record {recordtype} in file')
            self.packet = None
            return None
        rec = headers[numrecord]
        self.packet = Datagram(rec, self.read_payload(rec))
        info = None
        if rec.id == RecordID.SWATH_BATHYMETRY_PING:
            info = self.ping_info[numrecord]
        self.packet.decode(self.major_minor, info)
        self.data_read = True
        return self.packet.subpack

    def _decode_all(self, recordtype):
        return [record_decoders[rec.id](self.read_payload(rec)) for rec in self._record_headers(recordtype)]

    def comments(self):
        return self._decode_all(RecordID.COMMENT)

    def history(self):
        return self._decode_all(RecordID.HISTORY)

    def attitude(self):
        return self._decode_all(RecordID.ATTITUDE)

    def sound_velocity_profiles(self):
        return self._decode_all(RecordID.SOUND_VELOCITY_PROFILE)

    def processing_parameters(self):
        """parameters of the first PROCESSING_PARAMETERS record, an empty dict when there are none"""
        params = self._decode_all(RecordID.PROCESSING_PARAMETERS)
        if params:
            return params[0]
        return {}

    @property
    def number_pings(self):
        return len(self._record_headers(RecordID.SWATH_BATHYMETRY_PING))

    @property
    def chunk_schema(self):
        """beam field names decoded across the file, in subrecord id order"""
        if not self.mapped:
            self.mapfile(show_progress=False)
        ids = sorted(sid for sid in self._subrecord_id_counts if sid in beam_field_names)
        return [beam_field_names[sid] for sid in ids]

    def read_pings(self, start=0, stop=None, dense=False):
        """
        Decode the pings [start, stop) into a single chunk.  A ping that fails to decode is logged and
        skipped, it contributes no beams.

        Returns
        -------
        dict
            the finalized PingChunk, see PingChunk.finalize
        """
        headers = self._record_headers(RecordID.SWATH_BATHYMETRY_PING)
        if stop is None or stop > len(headers):
            stop = len(headers)
        max_beams = self.quality_info.min_max_beams[1] if self.quality_info is not None else 0
        chunk = PingChunk(self.chunk_schema, sensor_id=self.sensor_id, dense=dense, max_beams=max_beams)
        for ping_id in range(start, stop):
            rec = headers[ping_id]
            info = self.ping_info[ping_id]
            if info.failed:
                logger.error(f'Skipping PingID {ping_id}: ping could not be indexed')
                continue
            try:
                ping = decode_ping(self.read_payload(rec), rec, info=info, sensor_id=self.sensor_id,
                                   version=self.major_minor, coef=self.coef)
            except GsfError as err:
                logger.error(f'Skipping PingID {ping_id}: {err}')
                continue
            chunk.append_ping(ping_id, ping)
        return chunk.finalize()

    def ping_chunks(self, chunk_size=1000, dense=False):
        """
        Generator of decoded ping chunks, each holding up to chunk_size pings.  dense pads every ping with null
        beams up to the maximum beam count of the file.
        """
        if chunk_size < 1:
            raise ValueError(f'gsf: chunk_size must be positive, found {chunk_size}')
        npings = self.number_pings
        for start in range(0, npings, chunk_size):
            yield self.read_pings(start, min(start + chunk_size, npings), dense=dense)

    def plotmap(self):
        if not self.mapped:
            self.mapfile(show_progress=False)
        self.map.plotmap()


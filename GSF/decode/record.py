"""
Record and subrecord framing for GSF files.

A top level record is two big endian words, the payload size and a packed word holding the record id
(low 22 bits), reserved bits and a checksum flag (top bit).  The payload starts immediately after the 8 byte
header, a flagged checksum is left in the payload unless the reader is asked to skip it.

Swath bathymetry ping payloads are made of subrecords, each starting with one big endian word holding the
subrecord id (top 8 bits) and the payload size (low 24 bits).
"""

import numpy as np

from GSF.decode.constants import record_name, subrecord_name
from GSF.decode.errors import MalformedHeader

RECORD_ID_MASK = 0x003FFFFF
RESERVED_MASK = 0x7FC00000
CHECKSUM_MASK = 0x80000000
SUBRECORD_ID_MASK = 0xFF000000
SUBRECORD_SIZE_MASK = 0x00FFFFFF


class RecordHeader:
    """Header of a top level record, byte_index is the file offset of the payload"""

    hdr_dtype = np.dtype([('Datasize', '>u4'), ('PackedId', '>u4')])
    hdr_sz = hdr_dtype.itemsize

    def __init__(self, record_id, datasize, byte_index, checksum_flag=False, reserved=0, checksum=None):
        self.id = record_id
        self.datasize = datasize
        self.byte_index = byte_index
        self.checksum_flag = checksum_flag
        self.reserved = reserved
        self.checksum = checksum

    @property
    def name(self):
        return record_name(self.id)

    @property
    def record_start(self):
        """file offset of the record header"""
        return self.byte_index - self.hdr_sz - (4 if self.checksum is not None else 0)

    @property
    def record_end(self):
        return self.byte_index + self.datasize

    def __eq__(self, other):
        if not isinstance(other, RecordHeader):
            return NotImplemented
        return (self.id, self.datasize, self.byte_index, self.checksum_flag) == \
               (other.id, other.datasize, other.byte_index, other.checksum_flag)

    def __repr__(self):
        return f'RecordHeader({self.name}, datasize={self.datasize}, byte_index={self.byte_index})'


class SubRecordHeader:
    def __init__(self, subrecord_id, datasize, byte_index):
        self.id = subrecord_id
        self.datasize = datasize
        self.byte_index = byte_index

    @property
    def name(self):
        return subrecord_name(self.id)

    def __repr__(self):
        return f'SubRecordHeader({self.name}, datasize={self.datasize}, byte_index={self.byte_index})'


def error_context(rec=None, subrecord=None, position=None):
    """keyword diagnostics for the GsfError family"""
    return dict(record_index=getattr(rec, 'byte_index', None), record_size=getattr(rec, 'datasize', None),
                subrecord_index=getattr(subrecord, 'byte_index', None),
                subrecord_size=getattr(subrecord, 'datasize', None), position=position)


def unpack_record_header(block, byte_index):
    """
    Build a RecordHeader from the 8 header bytes.  byte_index is the file offset immediately after the
    8 byte header, which is the payload offset.
    """
    if len(block) < RecordHeader.hdr_sz:
        raise MalformedHeader(f'Record header truncated, read {len(block)} of {RecordHeader.hdr_sz} bytes',
                              record_index=byte_index)
    hdr = np.frombuffer(block[:RecordHeader.hdr_sz], dtype=RecordHeader.hdr_dtype)[0]
    packed = int(hdr['PackedId'])
    return RecordHeader(packed & RECORD_ID_MASK, int(hdr['Datasize']), byte_index,
                        checksum_flag=bool(packed & CHECKSUM_MASK), reserved=(packed & RESERVED_MASK) >> 22)


def read_record_header(stream, skip_checksum=False):
    """
    Read the record header at the current position of a binary stream.  The stream is left at the start
    of the record payload.

    With skip_checksum, a flagged record has its 4 checksum bytes read into RecordHeader.checksum and the
    payload starts after them, for writers that don't count the checksum in the payload size.
    """
    block = stream.read(RecordHeader.hdr_sz)
    rec = unpack_record_header(block, stream.tell())
    if skip_checksum and rec.checksum_flag:
        chk = stream.read(4)
        if len(chk) < 4:
            raise MalformedHeader('Record checksum truncated', record_index=rec.byte_index, record_size=rec.datasize)
        rec.checksum = int(np.frombuffer(chk, dtype='>u4')[0])
        rec.byte_index += 4
    return rec


def read_subrecord_header(buffer, offset, base_index=0):
    """
    Decode the subrecord header found at offset within a record payload buffer.

    base_index is the file offset of the record payload so that the returned byte_index is a file offset.
    """
    if offset + 4 > len(buffer):
        raise MalformedHeader('SubRecord header truncated', record_index=base_index, record_size=len(buffer),
                              position=offset)
    packed = int(np.frombuffer(buffer, dtype='>u4', count=1, offset=offset)[0])
    return SubRecordHeader((packed & SUBRECORD_ID_MASK) >> 24, packed & SUBRECORD_SIZE_MASK, base_index + offset + 4)

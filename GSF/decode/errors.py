"""Exceptions raised while decoding GSF records.

All of them derive from ValueError so callers that already guard the decode with ``except ValueError``
keep working.  A failure inside a single ping (anything but a truncated top level record header) can be
caught by the caller, which then moves on to the next record.
"""


class GsfError(ValueError):
    """
    Base class for GSF decode failures.  Positional diagnostics are stored as attributes and
    appended to the message.

    record_index: file byte offset of the record payload
    record_size: record payload size in bytes
    subrecord_index: file byte offset of the subrecord payload
    subrecord_size: subrecord payload size in bytes
    position: byte location relative to the start of the record payload
    """

    def __init__(self, msg, record_index=None, record_size=None, subrecord_index=None, subrecord_size=None, position=None):
        self.record_index = record_index
        self.record_size = record_size
        self.subrecord_index = subrecord_index
        self.subrecord_size = subrecord_size
        self.position = position
        diagnostics = [('Record index', record_index), ('Record datasize', record_size),
                       ('SubRecord index', subrecord_index), ('SubRecord datasize', subrecord_size),
                       ('Current byte location (relative to current record)', position)]
        details = ', '.join(f'{name}: {val}' for name, val in diagnostics if val is not None)
        if details:
            msg = f'{msg} ({details})'
        super(GsfError, self).__init__(msg)


class MalformedHeader(GsfError):
    """Short or invalid record/subrecord header, or a payload that disagrees with its header"""


class UnsupportedSubrecord(GsfError):
    """Obsolete or reserved-but-undefined subrecord id"""


class SensorDecodeFailure(GsfError):
    """A sensor specific (or imagery) payload could not be decoded with its fixed layout"""


class ScaleFactorError(GsfError):
    """A beam array was found without a usable scale factor"""

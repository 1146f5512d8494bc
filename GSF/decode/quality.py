import numpy as np

from GSF.decode.constants import SubRecordID, subrecord_name


class QualityInfo:
    """
    File level quality checks of the swath bathymetry pings.

    min_max_beams: (min, max) number of beams of the pings
    consistent_beams: every ping has the same number of beams
    duplicate_pings: timestamps are repeated and don't look like a dual head/dual swath configuration
    duplicates: the repeated timestamps when duplicate_pings, otherwise empty
    coincident_pings: timestamps are repeated for exactly half of the pings (dual head/dual swath)
    consistent_schema: every subrecord other than the scale factors was found the same number of times
    """

    def __init__(self, min_max_beams, consistent_beams, coincident_pings, duplicate_pings, duplicates,
                 consistent_schema):
        self.min_max_beams = min_max_beams
        self.consistent_beams = consistent_beams
        self.coincident_pings = coincident_pings
        self.duplicate_pings = duplicate_pings
        self.duplicates = duplicates
        self.consistent_schema = consistent_schema

    def as_dict(self):
        return {'min_max_beams': list(self.min_max_beams), 'consistent_beams': self.consistent_beams,
                'coincident_pings': self.coincident_pings, 'duplicate_pings': self.duplicate_pings,
                'duplicates': list(self.duplicates), 'consistent_schema': self.consistent_schema}

    def __repr__(self):
        return 'QualityInfo(' + ', '.join(f'{k}={v}' for k, v in self.as_dict().items()) + ')'


def find_duplicates(values):
    """values found more than once, in order of first appearance"""
    seen = set()
    dups = []
    for val in values:
        if val in seen and val not in dups:
            dups.append(val)
        seen.add(val)
    return dups


def quality_info(ping_info, subrecord_counts):
    """
    Parameters
    ----------
    ping_info
        list of PingInfo, pings that failed indexing are left out of the checks
    subrecord_counts
        subrecord id (or name): number of times the subrecord was found over all the pings

    Returns
    -------
    QualityInfo
    """
    ping_info = [info for info in ping_info if not info.failed]
    npings = len(ping_info)
    nbeams = np.array([info.number_beams for info in ping_info], dtype=np.int64)
    if npings:
        min_max = (int(nbeams.min()), int(nbeams.max()))
    else:
        min_max = (0, 0)

    # dual swath/dual head systems ping twice with the same time, which looks like a duplicate
    duplicates = find_duplicates([info.timestamp for info in ping_info])
    dup_pings = False
    if duplicates:
        dup_pings = (npings / 2) != len(duplicates)

    scale_factor_keys = (SubRecordID.SCALE_FACTORS, subrecord_name(SubRecordID.SCALE_FACTORS))
    counts = {val for key, val in subrecord_counts.items() if key not in scale_factor_keys}

    if dup_pings:
        reported = duplicates
        coincident = False
    else:
        reported = []
        coincident = len(duplicates) > 0
    return QualityInfo(min_max, min_max[0] == min_max[1], coincident, dup_pings, reported, len(counts) == 1)

class PingGroup:
    """
    Contiguous run of pings [start, stop) decoded with the same scale factors.  number_beams is the total
    number of beams of the pings in the group.
    """

    def __init__(self, start, stop, number_beams, scale_factors):
        self.start = start
        self.stop = stop
        self.number_beams = number_beams
        self.scale_factors = scale_factors

    @property
    def number_pings(self):
        return self.stop - self.start

    def __eq__(self, other):
        if not isinstance(other, PingGroup):
            return NotImplemented
        return (self.start, self.stop, self.number_beams, self.scale_factors) == \
               (other.start, other.stop, other.number_beams, other.scale_factors)

    def __repr__(self):
        return f'PingGroup(start={self.start}, stop={self.stop}, number_beams={self.number_beams})'


def ping_groups(ping_info):
    """
    Forward scan of the PingInfo list.  A ping carrying its own scale factors starts a new group, the pings
    that follow without any inherit them (PingInfo.resolved_scale_factors is set in place).  Pings before
    the first set of scale factors form a group with no scale factors.  A ping that failed indexing starts a
    group with no scale factors too, its own table may be the broken part so the pings after it don't
    inherit the table of an earlier group.

    Returns
    -------
    list
        PingGroup covering [0, len(ping_info)) without gaps
    """
    groups = []
    start = 0
    beam_count = 0
    scale_factors = None
    for i, info in enumerate(ping_info):
        if info.has_scale_factors or info.failed:
            if i > 0:
                groups.append(PingGroup(start, i, beam_count, scale_factors))
            start = i
            beam_count = 0
            scale_factors = info.scale_factors
        else:
            info.resolved_scale_factors = scale_factors
        beam_count += info.number_beams
    if ping_info:
        groups.append(PingGroup(start, len(ping_info), beam_count, scale_factors))
    return groups

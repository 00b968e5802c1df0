###########################################################
# Work out how to read the DATA segment
###########################################################
'''
The layout of the DATA segment is described by the TEXT segment
($BYTEORD, $DATATYPE, $PnB, $PAR, $TOT).  Combine that with the
reader options into a DecodePlan that the data readers follow.
'''

import math

from FlowStream import Options
from FlowStream.Errors import (MalformedSegment, UnsupportedByteOrder,
                               UnsupportedDataType)

# $DATATYPE: (numpy kind, bytes per value)
DATATYPE_MAP = {"D": ("f", 8),
                "F": ("f", 4)}


class DecodePlan(object):
    '''
    Everything needed to walk the DATA segment

    attributes
    ----------
    big_endian - True for $BYTEORD 4,3,2,1 style files
    datatype - the $DATATYPE letter, I, F or D
    bytes - bytes per value, 2, 4 or 8
    dtype - numpy dtype string including byte order, e.g. '>f4'
    num_params - $PAR
    events_to_read - number of events that will be decoded
    bytes_per_event - bytes * num_params
    big_skip - bytes jumped after every decoded event
    decimals_to_print - -1 means print integers as is
    as_number, as_string - which outputs to collect
    group_by - byEvent or byParam
    max_per_line - values per line in byParam strings
    '''

    def __init__(self, big_endian, datatype, nbytes, num_params,
                 events_to_read, decimals_to_print, as_number,
                 as_string, group_by, max_per_line, big_skip=0):
        self.big_endian = big_endian
        self.datatype = datatype
        self.bytes = nbytes
        self.num_params = num_params
        self.events_to_read = events_to_read
        self.decimals_to_print = decimals_to_print
        self.as_number = as_number
        self.as_string = as_string
        self.group_by = group_by
        self.max_per_line = max_per_line
        self.big_skip = big_skip

        kind = "u" if datatype == "I" else DATATYPE_MAP[datatype][0]
        self.dtype = "%s%s%i" % (">" if big_endian else "<", kind, nbytes)

    @property
    def bytes_per_event(self):
        return self.bytes * self.num_params

    @property
    def event_stride(self):
        '''
        Bytes between the starts of two consecutive decoded events
        '''
        return self.bytes_per_event + self.big_skip

    @property
    def bytes_needed(self):
        '''
        Bytes of the DATA segment touched by this plan
        '''
        if self.events_to_read <= 0:
            return 0
        return ((self.events_to_read - 1) * self.event_stride +
                self.bytes_per_event)

    def end_of_data(self, begin_data):
        '''
        Absolute byte count required before the DATA segment
        can be read
        '''
        return begin_data + self.bytes_needed

    def __repr__(self):
        return ("DecodePlan(dtype=%s, params=%i, events=%i, skip=%i, "
                "groupBy=%s)" % (self.dtype, self.num_params,
                                 self.events_to_read, self.big_skip,
                                 self.group_by))


def keyword_int(text, keyword, default=None):
    '''
    Read an integer valued keyword from a TEXT mapping.

    Arguments
    ---------
    text: dict
      keyword: value pairs from the TEXT segment

    keyword: string
      the keyword to read, e.g. $PAR

    default: int
      returned if the keyword is absent or blank.  If None
      a missing keyword is an error

    Returns
    -------
    value: int
    '''

    value = text.get(keyword)
    if value is None or not value.strip():
        if default is None:
            raise MalformedSegment("The %s keyword is missing, check "
                                   "the input FCS is complete and "
                                   "valid" % keyword)
        return default

    try:
        return int(value.strip())
    except ValueError:
        raise MalformedSegment("The %s keyword must be an integer, "
                               "found %r" % (keyword, value))


def is_big_endian(byte_order):
    '''
    Decide the byte order from a $BYTEORD value.  1,2,3,4 is
    little endian, 4,3,2,1 is big endian, 2,1 and 1,2 are the
    16 bit forms.  Mixed orders are not supported.
    '''

    if byte_order is None:
        raise UnsupportedByteOrder("The $BYTEORD keyword is missing, check "
                                   "the input FCS is complete and valid")
    try:
        order = [int(b) for b in byte_order.replace(" ", "").split(",")]
    except ValueError:
        raise UnsupportedByteOrder("cannot handle $BYTEORD=%s" % byte_order)

    ascending = list(range(1, len(order) + 1))
    if order == ascending:
        return False
    elif order == ascending[::-1]:
        return True
    else:
        raise UnsupportedByteOrder("cannot handle $BYTEORD=%s" % byte_order)


def _events_to_skip(skip, events_to_read, total, meta):
    try:
        value = float(skip)
        finite = math.isfinite(value)
    except (TypeError, ValueError):
        finite = False

    if finite:
        if value < 0:
            raise ValueError("skip must not be negative, found %r" % skip)
        return int(value)

    # spreads the reads over roughly the whole file, not exactly evenly
    events2skip = total // events_to_read - 1
    meta["eventSkip"] = "%s -> %i" % (skip, events2skip)
    return events2skip


def prepare_read_parameters(text, meta):
    '''
    Build the DecodePlan for a document.

    Arguments
    ---------
    text: dict
      keyword: value pairs of the TEXT segment

    meta: dict
      merged reader options.  `eventCount` and `$PAR` are
      set from $TOT and $PAR, and `eventSkip` records the
      stride chosen for an automatic skip

    Returns
    -------
    plan: DecodePlan
    '''

    big_endian = is_big_endian(text.get("$BYTEORD"))

    datatype = (text.get("$DATATYPE") or "").strip().upper()
    if datatype == "I":
        bits = keyword_int(text, "$P1B")
        nbytes = 4 if bits > 16 else 2
    elif datatype in DATATYPE_MAP:
        nbytes = DATATYPE_MAP[datatype][1]
    else:
        raise UnsupportedDataType("cannot handle $DATATYPE=%s" %
                                  text.get("$DATATYPE"))

    total = meta["eventCount"] = keyword_int(text, "$TOT")
    num_params = meta["$PAR"] = keyword_int(text, "$PAR")

    events_to_read = int(Options.get_option(meta, "eventsToRead"))
    if events_to_read <= 0 or events_to_read > total:
        events_to_read = total

    data_format = meta["dataFormat"]
    if datatype == "I":
        decimals = -1
    else:
        decimals = int(Options.get_option(meta, "decimalsToPrint"))

    plan = DecodePlan(big_endian=big_endian,
                      datatype=datatype,
                      nbytes=nbytes,
                      num_params=num_params,
                      events_to_read=events_to_read,
                      decimals_to_print=decimals,
                      as_number=data_format in (Options.AS_NUMBER,
                                                Options.AS_BOTH),
                      as_string=data_format in (Options.AS_STRING,
                                                Options.AS_BOTH),
                      group_by=meta["groupBy"],
                      max_per_line=int(Options.get_option(meta,
                                                          "maxPerLine")))

    skip = meta.get("skip")
    if skip and events_to_read < total:
        plan.big_skip = (_events_to_skip(skip, events_to_read, total, meta) *
                         plan.bytes_per_event)

    return plan

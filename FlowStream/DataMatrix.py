###########################################################
# Readers for the DATA segment
###########################################################
'''
The DATA segment is stored event by event: $PAR values for event 1,
then $PAR values for event 2 and so on.  It can be returned grouped
by event, the natural order, or grouped by parameter, in which case
the values are transposed as they are read.

Rather than unpacking values one at a time the readers lay a strided
numpy view over the raw bytes.  The stride between events includes
the optional skip, so sub-sampling costs nothing extra.
'''

import numpy as np
import cgatcore.experiment as E

from FlowStream import Options
from FlowStream.DecodePlan import prepare_read_parameters
from FlowStream.Errors import MalformedSegment


def _value_formatter(decimals_to_print):
    if decimals_to_print < 0:
        return lambda v: "%i" % v
    return lambda v: "%.*f" % (decimals_to_print, v)


def _read_matrix(buf, offset, plan, by_param):
    '''
    Copy the values addressed by `plan` out of `buf` into a
    native byte order array.  Shape is (events, params), or
    (params, events) if `by_param`.
    '''

    dtype = np.dtype(plan.dtype)
    if by_param:
        shape = (plan.num_params, plan.events_to_read)
        strides = (plan.bytes, plan.event_stride)
    else:
        shape = (plan.events_to_read, plan.num_params)
        strides = (plan.event_stride, plan.bytes)

    native = dtype.newbyteorder("=")
    if plan.events_to_read == 0 or plan.num_params == 0:
        return np.empty(shape, dtype=native)

    view = np.ndarray(shape=shape, dtype=dtype, buffer=buf,
                      offset=offset, strides=strides)
    return view.astype(native)


def read_data_by_event(buf, begin_data, plan):
    '''
    Read data grouped by event, the order of the file.

    Arguments
    ---------
    buf: bytes
      the FCS file, or at least everything up to the end of
      the bytes the plan reads

    begin_data: int
      offset to the first byte of the DATA segment

    plan: DecodePlan
      the read parameters

    Returns
    -------
    numbers: numpy.ndarray
      (events, params) matrix, None unless plan.as_number

    strings: list
      one "[v1,v2,...]" string per event, None unless
      plan.as_string
    '''

    matrix = _read_matrix(buf, begin_data, plan, by_param=False)

    strings = None
    if plan.as_string:
        fmt = _value_formatter(plan.decimals_to_print)
        strings = ["[%s]" % ",".join(fmt(v) for v in row)
                   for row in matrix.tolist()]

    return (matrix if plan.as_number else None), strings


def read_data_by_param(buf, begin_data, plan):
    '''
    Read data grouped by parameter.  The values are still read in
    file order but land in matrix[param][event].  In the strings a
    line break follows every `max_per_line` values.

    Returns
    -------
    numbers: numpy.ndarray
      (params, events) matrix, None unless plan.as_number

    strings: list
      one "[v1,v2,...]" string per parameter, None unless
      plan.as_string
    '''

    matrix = _read_matrix(buf, begin_data, plan, by_param=True)

    strings = None
    if plan.as_string:
        fmt = _value_formatter(plan.decimals_to_print)
        max_per_line = plan.max_per_line
        strings = []
        for row in matrix.tolist():
            pieces = []
            for e, v in enumerate(row):
                if e > 0:
                    if max_per_line > 0 and e % max_per_line == 0:
                        pieces.append(",\n")
                    else:
                        pieces.append(",")
                pieces.append(fmt(v))
            strings.append("[%s]" % "".join(pieces))

    return (matrix if plan.as_number else None), strings


def wants_data(text, meta):
    '''
    False if data reading is switched off (asNone) or the file
    holds histograms ($MODE H) rather than list mode data
    '''

    if meta["dataFormat"] == Options.AS_NONE:
        return False
    return (text.get("$MODE") or "").strip().upper() != "H"


def read_data(buf, header, text, meta, plan=None):
    '''
    Read the DATA segment according to the reader options.

    Arguments
    ---------
    buf: bytes
      the FCS file contents

    header: FCSHeader
      header with DATA offsets already adjusted from TEXT

    text: dict
      TEXT segment keyword: value pairs

    meta: dict
      merged reader options

    plan: DecodePlan
      computed from `text` and `meta` if not given

    Returns
    -------
    numbers, strings: see read_data_by_event/read_data_by_param.
      (None, None) if no data is wanted
    '''

    if not wants_data(text, meta):
        E.debug("skipping DATA segment, dataFormat=%s $MODE=%s" %
                (meta["dataFormat"], text.get("$MODE")))
        return None, None

    plan = plan or prepare_read_parameters(text, meta)

    end = plan.end_of_data(header.begin_data)
    if end > len(buf):
        raise MalformedSegment("DATA segment truncated, %i events need "
                               "%i bytes but only %i are available" %
                               (plan.events_to_read, end, len(buf)))

    E.debug("reading %s" % plan)
    if plan.group_by == Options.BY_PARAM:
        return read_data_by_param(buf, header.begin_data, plan)
    else:
        return read_data_by_event(buf, header.begin_data, plan)


def format_data(strings, group_by):
    '''
    Join the string rows into one bracketed block.  Parameters are
    separated by a blank line for readability.
    '''

    if strings is None:
        return None
    delim = ",\n\n" if group_by == Options.BY_PARAM else ",\n"
    return "[%s]" % delim.join(strings)

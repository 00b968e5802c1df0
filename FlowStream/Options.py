###########################################################
# Reader options and their default values
###########################################################
'''
Options are plain dictionaries keyed by the names below.  Any
other key is carried through untouched into ``FCS.meta`` so
callers can annotate a document with, e.g. a filename or date.

Recognised keys::
  * dataFormat - asNumber, asString (default), asBoth, asNone
  * groupBy - byEvent (default), byParam
  * decimalsToPrint - digits after the decimal point, default 2
  * eventsToRead - default 1000, 0 or less means all events
  * maxPerLine - values per line in byParam strings, default 10
  * encoding - text encoding of the TEXT/ANALYSIS segments
  * skip - events to jump after each event read, or a
           non-finite value to spread reads over the file
'''

import types

AS_NUMBER = "asNumber"
AS_STRING = "asString"
AS_BOTH = "asBoth"
AS_NONE = "asNone"

BY_EVENT = "byEvent"
BY_PARAM = "byParam"

DATA_FORMATS = (AS_NUMBER, AS_STRING, AS_BOTH, AS_NONE)
GROUPINGS = (BY_EVENT, BY_PARAM)

DEFAULT_VALUES = types.MappingProxyType({
    "decimalsToPrint": 2,
    "encoding": "utf-8",
    "eventsToRead": 1000,
    "maxPerLine": 10,
    "dataFormat": AS_STRING,
    "groupBy": BY_EVENT,
})

# always present in meta so they get remembered
REMEMBERED = ("dataFormat", "groupBy")


def merge_options(*option_dicts):
    '''
    Merge option dictionaries left to right into a new dict.

    Arguments
    ---------
    option_dicts: dict
      any number of option mappings, later ones win.  None
      entries are skipped

    Returns
    -------
    meta: dict
      the merged options, always containing `dataFormat`
      and `groupBy`
    '''

    meta = dict((key, DEFAULT_VALUES[key]) for key in REMEMBERED)
    for options in option_dicts:
        if options:
            meta.update(options)

    if meta["dataFormat"] not in DATA_FORMATS:
        raise ValueError("dataFormat must be one of %s, not %r" %
                         (", ".join(DATA_FORMATS), meta["dataFormat"]))
    if meta["groupBy"] not in GROUPINGS:
        raise ValueError("groupBy must be one of %s, not %r" %
                         (", ".join(GROUPINGS), meta["groupBy"]))
    return meta


def get_option(meta, key):
    '''
    Value of `key` in `meta`, or its default when absent or None
    '''

    value = meta.get(key)
    if value is None:
        return DEFAULT_VALUES.get(key)
    return value

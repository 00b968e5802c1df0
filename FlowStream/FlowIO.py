###########################################################
# Flow cytometry IO classes and functions
###########################################################
'''
Have an object/data structure to represent an FCS file.

Each .fcs file is a single sample, an experiment can be
represented by a collection of .fcs files.

FCS file segments::
  * HEADER - fixed 58 bytes (padded to 256) of byte offsets
  * TEXT - delimited keyword: value pairs describing the data
  * DATA - binary values, event by event
  * ANALYSIS - optional, keyword: value pairs or vendor XML

The whole file can be handed over as a buffer (FCS), or fed
chunk by chunk to a StreamingDecoder (see StreamIO).  Both run
the functions below in the same order.
'''

import pandas as pd
import cgatcore.experiment as E

from FlowStream import Options
from FlowStream.DataMatrix import format_data, read_data
from FlowStream.DecodePlan import keyword_int
from FlowStream.Errors import FCSError, InvalidFormat, MalformedSegment

HEADER_BYTES = 256
# the six offsets end at byte 58
HEADER_MIN_BYTES = 58

# (attribute, first byte, last byte + 1)
HEADER_FIELDS = (("begin_text", 10, 18),
                 ("end_text", 18, 26),
                 ("begin_data", 26, 34),
                 ("end_data", 34, 42),
                 ("begin_analysis", 42, 50),
                 ("end_analysis", 50, 58))

# FCS 2.0 files may leave the ANALYSIS offsets blank
OPTIONAL_FIELDS = ("begin_analysis", "end_analysis")

XML_KEY = "asXML"

SEGMENTS = ("meta", "header", "text", "analysis")


class FCSHeader(object):
    '''
    The HEADER segment: version and segment byte offsets.  Offsets
    are inclusive, end_* is the last byte of the segment.

    The DATA and ANALYSIS offsets are 0 when they did not fit in
    8 bytes, in which case they are patched from the TEXT segment.
    '''

    def __init__(self, version, begin_text, end_text, begin_data=0,
                 end_data=0, begin_analysis=0, end_analysis=0):
        self.version = version
        self.begin_text = begin_text
        self.end_text = end_text
        self.begin_data = begin_data
        self.end_data = end_data
        self.begin_analysis = begin_analysis
        self.end_analysis = end_analysis

    def as_dict(self):
        return {"FCSVersion": self.version,
                "beginText": self.begin_text,
                "endText": self.end_text,
                "beginData": self.begin_data,
                "endData": self.end_data,
                "beginAnalysis": self.begin_analysis,
                "endAnalysis": self.end_analysis}

    def __eq__(self, other):
        return (isinstance(other, FCSHeader) and
                self.as_dict() == other.as_dict())

    def __repr__(self):
        return "FCSHeader(%s)" % ", ".join(
            "%s=%r" % kv for kv in sorted(self.as_dict().items()))


def read_fcs_header(buf, encoding="utf-8"):
    '''
    Parse the HEADER segment

    Arguments
    ---------
    buf: bytes
      at least the first 58 bytes of the file

    encoding: string
      text encoding, the header itself is plain ASCII

    Returns
    -------
    header: FCSHeader
    '''

    if len(buf) < HEADER_MIN_BYTES:
        raise InvalidFormat("FCS header needs %i bytes, only %i given" %
                            (HEADER_MIN_BYTES, len(buf)))

    version = bytes(buf[0:6]).decode(encoding, "replace")
    if version[:3] != "FCS":
        raise InvalidFormat("Bad FCS Version: %r" % version)

    offsets = {}
    for field, begin, end in HEADER_FIELDS:
        raw = bytes(buf[begin:end]).decode(encoding, "replace").strip()
        if not raw and field in OPTIONAL_FIELDS:
            offsets[field] = 0
            continue
        try:
            offsets[field] = int(raw)
        except ValueError:
            raise InvalidFormat("header field %s (bytes %i-%i) is not an "
                                "integer: %r" % (field, begin, end - 1, raw))

    if offsets["begin_text"] > offsets["end_text"]:
        raise InvalidFormat("TEXT segment ends (%i) before it begins (%i)" %
                            (offsets["end_text"], offsets["begin_text"]))

    return FCSHeader(version.strip(), **offsets)


def segment_string(buf, begin, end, encoding="utf-8"):
    '''
    Decode the bytes of a TEXT or ANALYSIS segment, `end` is the
    last byte of the segment
    '''

    if end < begin:
        raise MalformedSegment("segment ends (%i) before it begins (%i)" %
                               (end, begin))
    if end >= len(buf):
        raise MalformedSegment("segment %i-%i lies beyond the %i bytes "
                               "available" % (begin, end, len(buf)))
    return bytes(buf[begin:end + 1]).decode(encoding, "replace")


def read_text_segment(segment):
    '''
    Split a TEXT or ANALYSIS segment into keyword: value pairs.

    The first character is the delimiter.  A delimiter inside a
    keyword or value is escaped by doubling it, so after splitting
    on the delimiter a run of k empty tokens stands for k + 1
    delimiters in a row.  Each pair is one literal delimiter, so
    (k + 1) // 2 delimiters are put back.  If k is odd the tokens
    either side belong together, if k is even the odd delimiter
    out is a boundary and the next token starts a new keyword or
    value.

    Some vendors (e.g. Millipore) write the ANALYSIS segment as
    XML.  That is kept verbatim under the "asXML" key.

    Arguments
    ---------
    segment: string
      the decoded segment, may be empty or None

    Returns
    -------
    pairs: dict
      keyword: value pairs, keywords stripped of whitespace
    '''

    if not segment:
        return {}

    delim = segment[0]
    if delim == "<":
        return {XML_KEY: segment}

    tokens = []
    empties = 0
    for token in segment.split(delim)[1:]:
        if not token:
            empties += 1
            continue

        if empties:
            if not tokens:
                raise MalformedSegment("keyword starts with the delimiter "
                                       "%r" % delim)
            escaped = delim * ((empties + 1) // 2)
            if empties % 2:
                tokens[-1] += escaped + token
            else:
                tokens[-1] += escaped
                tokens.append(token)
            empties = 0
        else:
            tokens.append(token)

    # a trailing run of empties is the closing delimiter, dropped
    if len(tokens) % 2:
        raise MalformedSegment("unpaired keyword %r at the end of the "
                               "segment" % tokens[-1].strip())

    # Partec puts a newline before ANALYSIS keywords
    return dict((key.strip(), value)
                for key, value in zip(tokens[0::2], tokens[1::2]))


def adjust_header_based_upon_text(header, text, meta):
    '''
    FCS 3.0 moved the offsets of large DATA and ANALYSIS segments
    into TEXT, where the header has 0.  Also copies $TOT and $PAR
    into `meta` as `eventCount` and `$PAR`.
    '''

    meta["eventCount"] = keyword_int(text, "$TOT", 0)
    meta["$PAR"] = keyword_int(text, "$PAR", 0)

    if header.begin_data == 0:
        header.begin_data = keyword_int(text, "$BEGINDATA", 0)
        header.end_data = keyword_int(text, "$ENDDATA", 0)
    else:
        # only a cross-check, the header offset is used either way
        declared = (text.get("$BEGINDATA") or "").strip()
        if declared and declared != "0" and (
                not declared.isdigit() or int(declared) != header.begin_data):
            E.warn("$BEGINDATA %s disagrees with the header offset %i, "
                   "using the header" % (declared, header.begin_data))
    if header.begin_analysis == 0:
        header.begin_analysis = keyword_int(text, "$BEGINANALYSIS", 0)
        header.end_analysis = keyword_int(text, "$ENDANALYSIS", 0)


class FCS(object):
    '''
    The representation of a decoded fcs file.

    attributes
    ----------
    meta - reader options plus derived values (eventCount, $PAR,
           eventSkip) and any caller annotations
    header - FCSHeader, None until read
    text - dict of TEXT keyword: value pairs
    analysis - dict of ANALYSIS keyword: value pairs, may be empty
    data_as_numbers - numpy ndarray, (events, params) when grouped
                      by event, (params, events) when grouped by
                      parameter.  None unless asNumber or asBoth
    data_as_strings - list of strings, one per event or parameter.
                      None unless asString or asBoth
    '''

    def __init__(self, options=None, buffer=None):
        '''
        Instantiate the FCS object, reading `buffer` if given
        '''

        self.meta = Options.merge_options(options)
        self.header = None
        self.text = {}
        self.analysis = {}
        self.data_as_numbers = None
        self.data_as_strings = None

        if buffer is not None:
            self.read_buffer(buffer)

    def options(self, options):
        '''
        Merge more options into meta, returns self
        '''
        self.meta = Options.merge_options(self.meta, options)
        return self

    @property
    def encoding(self):
        return Options.get_option(self.meta, "encoding")

    def read_buffer(self, buf, more_options=None):
        '''
        Read a whole FCS file held in memory.  The buffer is not
        kept, only what was decoded from it.

        Arguments
        ---------
        buf: bytes
          bytes, bytearray or memoryview of the file

        more_options: dict
          merged into meta before reading

        Returns
        -------
        self
        '''

        if not isinstance(buf, (bytes, bytearray, memoryview)):
            raise TypeError("only bytes-like buffers are supported, "
                            "got %s" % type(buf).__name__)
        self.options(more_options)

        try:
            self.read_header(buf)
            self.read_text(buf)
            if self.header.begin_analysis:
                self.read_analysis(buf)

            # TODO: supplemental TEXT segments ($BEGINSTEXT, $ENDSTEXT)
            self.read_data(buf)
        except FCSError as err:
            err.document = self
            raise
        return self

    def read_header(self, buf):
        self.header = read_fcs_header(buf, self.encoding)
        E.info("read %s header, TEXT at bytes %i-%i" %
               (self.header.version, self.header.begin_text,
                self.header.end_text))

    def read_text(self, buf):
        '''
        Read the TEXT segment and adjust the header from it
        '''
        self.text = read_text_segment(
            segment_string(buf, self.header.begin_text,
                           self.header.end_text, self.encoding))
        adjust_header_based_upon_text(self.header, self.text, self.meta)
        E.info("read %i keywords from TEXT: %i events of %i parameters" %
               (len(self.text), self.meta["eventCount"], self.meta["$PAR"]))

    def read_analysis(self, buf):
        self.analysis = read_text_segment(
            segment_string(buf, self.header.begin_analysis,
                           self.header.end_analysis, self.encoding))
        if XML_KEY in self.analysis:
            E.info("ANALYSIS segment holds XML, stored as is")
        else:
            E.info("read %i keywords from ANALYSIS" % len(self.analysis))

    def read_data(self, buf, plan=None):
        self.data_as_numbers, self.data_as_strings = read_data(
            buf, self.header, self.text, self.meta, plan)

    # accessors

    def get(self, segment, *keys):
        '''
        All purpose getter.

        Arguments
        ---------
        segment: string
          one of meta, header, text or analysis

        keys: string
          keys to look up in turn, the first with a value wins

        Returns
        -------
        the whole segment (as a dict) if no keys are given, else
        the value of the first key found, else None
        '''

        if segment not in SEGMENTS:
            raise KeyError("unknown segment %r, use one of %s" %
                           (segment, ", ".join(SEGMENTS)))
        the_segment = getattr(self, segment)
        if segment == "header":
            the_segment = the_segment.as_dict() if the_segment else {}

        if not keys:
            return the_segment

        for key in keys:
            value = the_segment.get(key)
            if value:
                return value
        return None

    def get_text(self, *keys):
        '''
        e.g. get_text('$CYT') -> 'FACSort'
        '''
        return self.get("text", *keys)

    def get_analysis(self, *keys):
        return self.get("analysis", *keys)

    def get_pnx(self, x):
        '''
        All $PnX values, e.g. get_pnx('N') gives the parameter names.
        Index 0 is None so parameter n is at index n.
        '''
        num_params = self.meta.get("$PAR", 0)
        return [None] + [self.text.get("$P%i%s" % (p, x))
                         for p in range(1, num_params + 1)]

    def get_numeric_data(self, idx):
        '''
        Row `idx` (1-based) of the numeric data, an event or a
        parameter depending on groupBy
        '''
        if self.data_as_numbers is None:
            return None
        return self.data_as_numbers[idx - 1]

    def get_string_data(self, idx):
        if self.data_as_strings is None:
            return None
        return self.data_as_strings[idx - 1]

    def get_only(self, onlys):
        '''
        Shallow copy of a subset of the document.

        Arguments
        ---------
        onlys: string or list
          dotted paths one or two deep, e.g. "meta" for all of
          meta or "text.$P1N" for the name of parameter 1

        Returns
        -------
        result: dict
        '''

        if isinstance(onlys, str):
            onlys = [onlys]

        result = {}
        for only in onlys:
            path = only.split(".", 1)
            if len(path) == 1:
                result[path[0]] = self.get(path[0])
            else:
                result.setdefault(path[0], {})[path[1]] = \
                    self.get(path[0]).get(path[1])
        return result

    def format_data(self):
        '''
        The string data as one block of text
        '''
        return format_data(self.data_as_strings, self.meta["groupBy"])

    def to_dataframe(self):
        '''
        Numeric data as a pandas dataframe, one row per event and one
        column per parameter named by $PnN
        '''

        if self.data_as_numbers is None:
            raise ValueError("no numeric data, read with dataFormat "
                             "asNumber or asBoth")

        matrix = self.data_as_numbers
        if self.meta["groupBy"] == Options.BY_PARAM:
            matrix = matrix.T

        names = self.get_pnx("N")[1:]
        columns = [name or "P%i" % (p + 1) for p, name in enumerate(names)]
        if len(columns) != matrix.shape[1]:
            columns = ["P%i" % (p + 1) for p in range(matrix.shape[1])]
        return pd.DataFrame(matrix, columns=columns)

    def __repr__(self):
        version = self.header.version if self.header else None
        return "FCS(version=%s, events=%s, params=%s)" % (
            version, self.meta.get("eventCount"), self.meta.get("$PAR"))


def read_fcs(buf, options=None):
    '''
    Decode an in-memory FCS file, see FCS
    '''
    return FCS(options, buf)

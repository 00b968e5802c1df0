# FlowStream - read Flow Cytometry Standard (FCS) files, either from
# a buffer or incrementally from a stream of bytes

# FCS structure:
# HEADER
# TEXT
# DATA
# ANALYSIS
# OPTIONAL SEGMENTS

# HEADER description:
# first six bytes are the version identifier
# bytes 6-9 are space characters (ASCII 32)
# three pairs of ASCII-encoded integers give the byte offsets of the
# first and last byte of the primary TEXT, DATA and ANALYSIS segments

# bytes 10-17 offset to the start of TEXT segment
# bytes 18-25 offset to the end of the TEXT segment

# bytes 26-33 offset to the start of the DATA segment
# bytes 34-41 offset to the end of the DATA segment

# bytes 42-49  offset to the start of the ANALYSIS segment
# bytes 50-57 offset to the end of the ANALYSIS segment

# offsets too large for 8 bytes are 0 in the header and given by
# $BEGINDATA, $ENDDATA, $BEGINANALYSIS and $ENDANALYSIS in TEXT

from FlowStream.Errors import (FCSError, InvalidFormat, MalformedSegment,
                               StreamClosedEarly, StreamEndedEarly,
                               UnsupportedByteOrder, UnsupportedDataType)
from FlowStream.FlowIO import FCS, FCSHeader, read_fcs
from FlowStream.StreamIO import StreamingDecoder, decode_stream

__version__ = "0.1.0"

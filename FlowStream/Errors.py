###########################################################
# Exceptions raised while decoding FCS files
###########################################################
'''
Every failure is fatal to the decode attempt that raised it.
Errors raised by the streaming decoder carry the partially
populated document as ``error.document`` for diagnostics.
'''


class FCSError(Exception):
    '''
    Base class for all FCS decode failures
    '''

    document = None


class InvalidFormat(FCSError, ValueError):
    '''
    Bad magic bytes or a non-numeric HEADER offset
    '''


class UnsupportedByteOrder(FCSError, ValueError):
    pass


class UnsupportedDataType(FCSError, ValueError):
    pass


class MalformedSegment(FCSError, ValueError):
    '''
    TEXT, ANALYSIS or DATA segment that cannot be parsed,
    including segments that lie outside the supplied bytes
    '''


class StreamClosedEarly(FCSError, IOError):
    pass


class StreamEndedEarly(FCSError, IOError):
    pass

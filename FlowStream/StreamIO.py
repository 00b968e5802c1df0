###########################################################
# Read an FCS file as its bytes arrive
###########################################################
'''
The segments of an FCS file are read in the order the file allows:
HEADER, TEXT, then ANALYSIS and DATA in whichever order their offsets
put them.  Each step waits until enough bytes have arrived and one
chunk may satisfy several steps at once.

States::
  header -> text -> (analysis) -> (data) -> (analysis) -> done

Every chunk is kept until the document is done, later steps still
address bytes from the start of the file.  The decoded document is
the same however the bytes were chunked.

Usage::

   decoder = StreamingDecoder({"eventsToRead": 4000})
   for chunk in chunks:
       if decoder.feed(chunk).done:
           break
   fcs = decoder.finish()
'''

import collections

import cgatcore.experiment as E

from FlowStream.DataMatrix import wants_data
from FlowStream.DecodePlan import prepare_read_parameters
from FlowStream.Errors import StreamClosedEarly, StreamEndedEarly
from FlowStream.FlowIO import FCS, HEADER_BYTES

HEADER = "header"
TEXT = "text"
ANALYSIS = "analysis"
DATA = "data"
DONE = "done"
FAILED = "failed"

TransitionResult = collections.namedtuple(
    "TransitionResult",
    ["state", "transitions", "bytes_needed", "bytes_read", "done"])


class StreamingDecoder(object):
    '''
    Incremental FCS reader, push bytes in with feed().

    attributes
    ----------
    fcs - the FCS document being filled in
    state - current state, see module docs, or "failed"
    bytes_needed - total bytes required before the next step
    bytes_read - total bytes fed so far
    error - the failure, if any

    Arguments
    ---------
    options: dict
      reader options, see Options

    callback: function
      called exactly once as callback(error, fcs) when the
      document is done (error is None) or decoding fails

    unsubscribe: function
      called once, with no arguments, when no more bytes are
      wanted
    '''

    def __init__(self, options=None, callback=None, unsubscribe=None):
        self.fcs = FCS(options)
        self.state = HEADER
        self.bytes_needed = HEADER_BYTES
        self.bytes_read = 0
        self.error = None

        self._callback = callback
        self._unsubscribe = unsubscribe
        self._chunks = bytearray()
        self._plan = None
        self._data_wanted = False
        self._analysis_there = False
        self._analysis_before_data = False
        self._analysis_read = False

    @property
    def done(self):
        return self.state == DONE

    def feed(self, chunk):
        '''
        Add a chunk of bytes and run every step it makes possible.

        Chunks fed after the document is done, or after a failure,
        are ignored.  A decode failure is raised from here.

        Returns
        -------
        result: TransitionResult
          state after the chunk, number of steps taken, bytes
          needed for the next step, bytes fed so far, done flag
        '''

        transitions = 0
        if self.state in (DONE, FAILED):
            return self._result(transitions)

        self._chunks.extend(chunk)
        self.bytes_read += len(chunk)

        buf = None
        while self.state != DONE and self.bytes_read >= self.bytes_needed:
            if buf is None:
                buf = bytes(self._chunks)
            try:
                self._step(buf)
            except Exception as err:
                self._fail(err)
                raise
            transitions += 1

        # caller hooks run outside the decode error handling
        if self.state == DONE:
            self._detach()
        return self._result(transitions)

    def finish(self):
        '''
        The byte source has ended.  Returns the document, or raises
        StreamEndedEarly if it was not complete.
        '''

        if self.state == DONE:
            return self.fcs
        if self.state != FAILED:
            self._fail(StreamEndedEarly(
                "stream ended while reading %s, %i of %i bytes read" %
                (self.state, self.bytes_read, self.bytes_needed)))
        raise self.error

    def close(self):
        '''
        The byte source closed.  Records StreamClosedEarly unless the
        document is already done, nothing is raised.
        '''

        if self.state not in (DONE, FAILED):
            self._fail(StreamClosedEarly(
                "stream closed while reading %s, %i of %i bytes read" %
                (self.state, self.bytes_read, self.bytes_needed)))

    def fail(self, err):
        '''
        The byte source reported an error, it is passed on as is
        '''

        if self.state not in (DONE, FAILED):
            self._fail(err)

    def _result(self, transitions):
        return TransitionResult(self.state, transitions, self.bytes_needed,
                                self.bytes_read, self.state == DONE)

    def _step(self, buf):
        fcs = self.fcs
        E.debug("stream %s step at %i bytes" % (self.state, self.bytes_read))

        if self.state == HEADER:
            fcs.read_header(buf)
            self.state = TEXT
            self.bytes_needed = fcs.header.end_text + 1

        elif self.state == TEXT:
            fcs.read_text(buf)

            # look at TEXT to figure out what next
            header = fcs.header
            self._data_wanted = wants_data(fcs.text, fcs.meta)
            self._analysis_there = header.begin_analysis > 0
            self._analysis_before_data = (self._analysis_there and
                                          header.begin_analysis <
                                          header.begin_data)

            if self._analysis_before_data:
                self._to_analysis()
            elif self._data_wanted:
                self._to_data()
            else:
                # an ANALYSIS segment after DATA is not worth the wait
                self._all_done()

        elif self.state == ANALYSIS:
            fcs.read_analysis(buf)
            self._analysis_read = True

            if self._analysis_before_data and self._data_wanted:
                self._to_data()
            else:
                self._all_done()

        elif self.state == DATA:
            fcs.read_data(buf, self._plan)

            if self._analysis_there and not self._analysis_read:
                self._to_analysis()
            else:
                self._all_done()

    def _to_analysis(self):
        self.state = ANALYSIS
        self.bytes_needed = self.fcs.header.end_analysis + 1

    def _to_data(self):
        self._plan = prepare_read_parameters(self.fcs.text, self.fcs.meta)
        self.state = DATA
        self.bytes_needed = self._plan.end_of_data(self.fcs.header.begin_data)

    def _all_done(self):
        self.state = DONE
        self._chunks = bytearray()
        E.info("finished reading FCS stream after %i bytes" % self.bytes_read)

    def _detach(self):
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
        self._notify(None)

    def _fail(self, err):
        self.state = FAILED
        self.error = err
        self._chunks = bytearray()
        err.document = self.fcs
        E.info("reading FCS stream failed after %i bytes: %s" %
               (self.bytes_read, err))
        self._notify(err)

    def _notify(self, err):
        callback, self._callback = self._callback, None
        if callback is not None:
            callback(err, self.fcs)


def decode_stream(stream, options=None, chunk_size=65536, callback=None):
    '''
    Read an FCS file from a file-like object chunk by chunk,
    stopping as soon as everything wanted has been read.

    Arguments
    ---------
    stream: file-like
      anything with a read(size) method returning bytes

    options: dict
      reader options, see Options

    chunk_size: int
      bytes requested per read

    callback: function
      see StreamingDecoder

    Returns
    -------
    fcs: FCS
    '''

    decoder = StreamingDecoder(options, callback)
    while not decoder.done:
        try:
            chunk = stream.read(chunk_size)
        except (IOError, OSError) as err:
            decoder.fail(err)
            raise
        if not chunk:
            break
        decoder.feed(chunk)

    return decoder.finish()

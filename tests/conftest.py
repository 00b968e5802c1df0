'''
Synthetic FCS files for the tests.  Files are laid out as HEADER
(padded to 256 bytes), TEXT, then DATA and ANALYSIS in either order.
'''

import numpy as np
import pytest

from FlowStream import FlowIO

TEXT_BEGIN = 256
OFFSET_KEYWORDS = ("$BEGINANALYSIS", "$ENDANALYSIS",
                   "$BEGINDATA", "$ENDDATA")


def _escape(s, delim):
    return s.replace(delim, delim * 2)


def _text_segment(keywords, delim):
    pairs = [_escape(k, delim) + delim + _escape(v, delim)
             for k, v in keywords]
    return delim + delim.join(pairs) + delim


def build_fcs(values, datatype="F", byteord="4,3,2,1", bits=None,
              delim="/", extra=None, analysis=None,
              analysis_before_data=False, offsets_in_header=True,
              names=None, version="FCS3.0", trailing=b""):
    '''
    Build the bytes of an FCS file holding `values`, an
    (events, params) array.  `analysis` is a string segment
    (key/value or XML), `extra` adds or overrides TEXT keywords.
    '''

    values = np.asarray(values)
    n_events, n_params = values.shape

    if bits is None:
        bits = {"F": 32, "D": 64, "I": 16}.get(datatype, 32)
    kind = {"F": "f4", "D": "f8"}.get(datatype,
                                        "u4" if bits > 16 else "u2")
    big = byteord.startswith("4") or byteord.startswith("2")
    data = values.astype((">" if big else "<") + kind).tobytes()

    keywords = [("$BYTEORD", byteord),
                ("$DATATYPE", datatype),
                ("$MODE", "L"),
                ("$NEXTDATA", "0"),
                ("$PAR", str(n_params)),
                ("$TOT", str(n_events))]
    for p in range(1, n_params + 1):
        name = names[p - 1] if names else "FL%i-H" % p
        keywords += [("$P%iB" % p, str(bits)),
                     ("$P%iE" % p, "0,0"),
                     ("$P%iN" % p, name),
                     ("$P%iR" % p, "262144")]
    if extra:
        keywords = [(k, v) for k, v in keywords if k not in extra]
        keywords += sorted(extra.items())

    # fixed width offsets so the TEXT length does not depend on them
    offsets = dict((k, "0" * 10) for k in OFFSET_KEYWORDS)
    probe = _text_segment(keywords + sorted(offsets.items()), delim)
    text_len = len(probe.encode("utf-8"))
    analysis_bytes = analysis.encode("utf-8") if analysis else b""

    text_end = TEXT_BEGIN + text_len - 1
    if analysis_bytes and analysis_before_data:
        a_begin = text_end + 1
        a_end = a_begin + len(analysis_bytes) - 1
        d_begin = a_end + 1
        d_end = d_begin + len(data) - 1
    else:
        d_begin = text_end + 1
        d_end = d_begin + len(data) - 1
        a_begin = d_end + 1 if analysis_bytes else 0
        a_end = a_begin + len(analysis_bytes) - 1 if analysis_bytes else 0

    offsets = {"$BEGINANALYSIS": "%010i" % a_begin,
               "$ENDANALYSIS": "%010i" % a_end,
               "$BEGINDATA": "%010i" % d_begin,
               "$ENDDATA": "%010i" % d_end}
    text = _text_segment(keywords + sorted(offsets.items()),
                         delim).encode("utf-8")
    assert len(text) == text_len

    if offsets_in_header:
        fields = (TEXT_BEGIN, text_end, d_begin, d_end, a_begin, a_end)
    else:
        fields = (TEXT_BEGIN, text_end, 0, 0, 0, 0)
    header = (version.ljust(6) + " " * 4 +
              "".join("%8i" % f for f in fields)).encode("ascii")
    header = header.ljust(TEXT_BEGIN, b" ")

    body = header + text
    if analysis_bytes and analysis_before_data:
        body += analysis_bytes + data
    else:
        body += data + analysis_bytes
    return body + trailing


# first event starts 33471.21, 33250.00 as in a BD Aria file
ARIA_VALUES = np.array([[33471.21, 33250.0, 512.5, 1.25],
                        [1200.0, 980.75, 64.0, 2.5],
                        [77.5, 88.25, 99.0, 3.75],
                        [10.0, 20.0, 30.0, 40.0],
                        [0.5, 0.25, 0.125, 0.0625],
                        [5.0, 6.0, 7.0, 8.0]], dtype=np.float32)


@pytest.fixture
def aria_bytes():
    return build_fcs(ARIA_VALUES, datatype="F", byteord="4,3,2,1",
                     analysis="/GATE1 count/1234/GATE2 count/56/",
                     extra={"$SRC": "Compensation/Controls",
                            "$CYT": "FACSAria"})


@pytest.fixture
def int_values():
    return np.arange(40, dtype=np.uint32).reshape(10, 4) * 7


@pytest.fixture
def fcs_builder():
    return build_fcs


def assert_same_document(a, b):
    '''
    Two FCS documents decoded from the same bytes must match exactly
    '''

    assert a.header == b.header
    assert a.text == b.text
    assert a.analysis == b.analysis
    assert a.meta == b.meta
    assert a.data_as_strings == b.data_as_strings
    if a.data_as_numbers is None:
        assert b.data_as_numbers is None
    else:
        assert a.data_as_numbers.dtype == b.data_as_numbers.dtype
        assert np.array_equal(a.data_as_numbers, b.data_as_numbers)


@pytest.fixture
def same_document():
    return assert_same_document


@pytest.fixture
def xml_analysis():
    return ('<?xml version="1.0"?><Analysis><Gate name="R1|R2" '
            'count="10"/></Analysis>')


@pytest.fixture
def header_size():
    return FlowIO.HEADER_BYTES

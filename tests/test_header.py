import pytest

from FlowStream import FlowIO
from FlowStream.Errors import InvalidFormat


def _header(version="FCS3.0", fields=(256, 1000, 1001, 2000, 0, 0)):
    raw = version.ljust(6) + " " * 4 + "".join("%8s" % f for f in fields)
    return raw.encode("ascii").ljust(256, b" ")


def test_reads_version_and_offsets():
    header = FlowIO.read_fcs_header(_header())

    assert header.version == "FCS3.0"
    assert header.begin_text == 256
    assert header.end_text == 1000
    assert header.begin_data == 1001
    assert header.end_data == 2000
    assert header.begin_analysis == 0
    assert header.end_analysis == 0


def test_bad_magic_is_invalid():
    with pytest.raises(InvalidFormat):
        FlowIO.read_fcs_header(_header(version="XYZ3.0"))


def test_non_numeric_offset_is_invalid():
    with pytest.raises(InvalidFormat):
        FlowIO.read_fcs_header(_header(fields=(256, "abc", 1001, 2000,
                                               0, 0)))


def test_blank_data_offset_is_invalid():
    with pytest.raises(InvalidFormat):
        FlowIO.read_fcs_header(_header(fields=(256, 1000, "", 2000, 0, 0)))


def test_blank_analysis_offsets_read_as_zero():
    header = FlowIO.read_fcs_header(
        _header(version="FCS2.0", fields=(58, 900, 901, 1900, "", "")))

    assert header.version == "FCS2.0"
    assert header.begin_analysis == 0
    assert header.end_analysis == 0


def test_short_buffer_is_invalid():
    with pytest.raises(InvalidFormat):
        FlowIO.read_fcs_header(b"FCS3.0    256")


def test_text_ending_before_it_begins_is_invalid():
    with pytest.raises(InvalidFormat):
        FlowIO.read_fcs_header(_header(fields=(1000, 256, 1001, 2000, 0, 0)))


def test_header_as_dict():
    header = FlowIO.read_fcs_header(_header())
    assert header.as_dict() == {"FCSVersion": "FCS3.0",
                                "beginText": 256,
                                "endText": 1000,
                                "beginData": 1001,
                                "endData": 2000,
                                "beginAnalysis": 0,
                                "endAnalysis": 0}


def test_unreadable_begindata_keeps_header_offset():
    header = FlowIO.read_fcs_header(_header())
    meta = {}
    FlowIO.adjust_header_based_upon_text(
        header, {"$BEGINDATA": "n/a", "$TOT": "6", "$PAR": "4"}, meta)

    assert header.begin_data == 1001
    assert header.end_data == 2000
    assert meta == {"eventCount": 6, "$PAR": 4}


def test_zero_begindata_keeps_header_offset():
    header = FlowIO.read_fcs_header(_header())
    FlowIO.adjust_header_based_upon_text(
        header, {"$BEGINDATA": " 0 ", "$TOT": "6", "$PAR": "4"}, {})

    assert header.begin_data == 1001

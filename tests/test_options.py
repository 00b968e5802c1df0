import pytest

from FlowStream import Options


def test_defaults_always_in_meta():
    meta = Options.merge_options(None)
    assert meta == {"dataFormat": "asString", "groupBy": "byEvent"}


def test_unknown_keys_pass_through():
    meta = Options.merge_options({"foo": "bar", "dataFormat": "asNone"})
    assert meta == {"dataFormat": "asNone", "groupBy": "byEvent",
                    "foo": "bar"}


def test_later_options_win():
    meta = Options.merge_options({"eventsToRead": 10},
                                 {"eventsToRead": 20})
    assert meta["eventsToRead"] == 20


def test_defaults_are_read_only():
    with pytest.raises(TypeError):
        Options.DEFAULT_VALUES["eventsToRead"] = 5
    Options.merge_options({"eventsToRead": 5})
    assert Options.DEFAULT_VALUES["eventsToRead"] == 1000


def test_invalid_values_rejected():
    with pytest.raises(ValueError):
        Options.merge_options({"dataFormat": "asJSON"})
    with pytest.raises(ValueError):
        Options.merge_options({"groupBy": "byRow"})


def test_get_option_falls_back_to_default():
    assert Options.get_option({"maxPerLine": None}, "maxPerLine") == 10
    assert Options.get_option({}, "encoding") == "utf-8"
    assert Options.get_option({"eventsToRead": 0}, "eventsToRead") == 0

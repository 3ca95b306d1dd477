import io

from watchrun.parser import read_paths


def test_stops_at_cap_and_discards_rest():
    stream = io.StringIO('zero one\ntwo\nthree\nfour')
    paths = read_paths(stream, 3)
    assert paths == ['zero one', 'two', 'three']


def test_cap_larger_than_input_returns_all_lines_in_order():
    stream = io.StringIO('a.py\nb.py\nc.py\n')
    assert read_paths(stream, 10) == ['a.py', 'b.py', 'c.py']


def test_last_line_without_newline_is_accepted():
    stream = io.StringIO('a.py\nb.py')
    assert read_paths(stream, 10) == ['a.py', 'b.py']


def test_empty_stream_yields_nothing():
    assert read_paths(io.StringIO(''), 10) == []


def test_blank_lines_are_kept_as_paths():
    stream = io.StringIO('a.py\n\nb.py\n')
    assert read_paths(stream, 10) == ['a.py', '', 'b.py']


def test_crlf_terminators_are_stripped():
    stream = io.StringIO('a.py\r\nb.py\r\n')
    assert read_paths(stream, 10) == ['a.py', 'b.py']


def test_surrounding_whitespace_is_preserved():
    stream = io.StringIO(' padded name \n')
    assert read_paths(stream, 10) == [' padded name ']


def test_zero_cap_reads_nothing():
    stream = io.StringIO('a.py\n')
    assert read_paths(stream, 0) == []
    assert stream.read() == 'a.py\n'


def test_input_past_cap_is_left_unread():
    stream = io.StringIO('a\nb\nc\n')
    read_paths(stream, 2)
    assert stream.read() == 'c\n'

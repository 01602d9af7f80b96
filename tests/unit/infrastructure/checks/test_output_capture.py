from treegate.domain.value_objects import OutputStream
from treegate.infrastructure.checks.output_capture import OutputCapture, strip_ansi


class TestStripAnsi:
    def test_removes_color_codes(self) -> None:
        assert strip_ansi("\x1b[31mred\x1b[0m and \x1b[1;32mbold green\x1b[m") == "red and bold green"

    def test_removes_cursor_movement(self) -> None:
        assert strip_ansi("progress\x1b[2K\x1b[1Gdone") == "progressdone"

    def test_removes_osc_hyperlinks(self) -> None:
        text = "\x1b]8;;https://example.com\x07link\x1b]8;;\x07"
        assert strip_ansi(text) == "link"

    def test_removes_osc_terminated_by_st(self) -> None:
        assert strip_ansi("\x1b]0;title\x1b\\body") == "body"

    def test_plain_text_is_untouched(self) -> None:
        assert strip_ansi("src/app.py:10: error [E1]") == "src/app.py:10: error [E1]"


class TestOutputCapture:
    def test_stored_output_is_stripped_but_raw_is_kept(self) -> None:
        capture = OutputCapture()

        capture.feed(OutputStream.STDOUT, "\x1b[32mok\x1b[0m\n")
        capture.close()

        assert capture.stdout == "ok\n"
        assert capture.raw(OutputStream.STDOUT) == "\x1b[32mok\x1b[0m\n"

    def test_lines_split_across_chunks_are_joined(self) -> None:
        capture = OutputCapture()

        capture.feed(OutputStream.STDOUT, "hel")
        capture.feed(OutputStream.STDOUT, "lo\nwor")
        capture.feed(OutputStream.STDOUT, "ld")
        capture.close()

        assert [line.line for line in capture.lines] == ["hello", "world"]

    def test_lines_keep_their_stream(self) -> None:
        capture = OutputCapture()

        capture.feed(OutputStream.STDOUT, "out\n")
        capture.feed(OutputStream.STDERR, "err\n")
        capture.close()

        assert [(line.stream, line.line) for line in capture.lines] == [
            (OutputStream.STDOUT, "out"),
            (OutputStream.STDERR, "err"),
        ]

    def test_combined_is_stdout_then_stderr(self) -> None:
        capture = OutputCapture()

        capture.feed(OutputStream.STDERR, "b\n")
        capture.feed(OutputStream.STDOUT, "a\n")

        assert capture.combined == "a\nb\n"

    def test_line_timestamps_have_millisecond_precision(self) -> None:
        capture = OutputCapture()

        capture.feed(OutputStream.STDOUT, "x\n")

        ts = capture.lines[0].ts
        assert ts.endswith("+00:00")
        assert len(ts.split(".")[1].split("+")[0]) == 3

    def test_carriage_returns_are_dropped_from_lines(self) -> None:
        capture = OutputCapture()

        capture.feed(OutputStream.STDOUT, "windows\r\n")

        assert capture.lines[0].line == "windows"

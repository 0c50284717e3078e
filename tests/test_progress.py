import io
import logging
import os
import sys
import unittest

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from ubootmmcdump.progress import ProgressAwareHandler, ProgressBar, computeRedraw, renderProgress


class FakeTerminal(io.StringIO):
    def isatty(self) -> bool:
        return True


class RedrawTests(unittest.TestCase):
    def test_changed_suffix_and_shorter_text(self) -> None:
        self.assertEqual(computeRedraw("abc123", "abc45"), "\b\b\b45 \b")

    def test_first_draw_writes_everything(self) -> None:
        self.assertEqual(computeRedraw("", "[----------]   0% |"), "[----------]   0% |")

    def test_identical_text_writes_nothing(self) -> None:
        self.assertEqual(computeRedraw("same", "same"), "")

    def test_clearing_erases_every_character(self) -> None:
        self.assertEqual(computeRedraw("abcd", ""), "\b\b\b\b    \b\b\b\b")

    def test_longer_text_has_no_padding(self) -> None:
        self.assertEqual(computeRedraw("ab", "abcd"), "cd")


class RenderTests(unittest.TestCase):
    def test_bar_rounds_down(self) -> None:
        self.assertEqual(renderProgress(0.0, 0), "[----------]   0% |")
        self.assertEqual(renderProgress(0.39, 1), "[###-------]  39% /")
        self.assertEqual(renderProgress(1.0, 3), "[##########] 100% \\")

    def test_animation_wraps(self) -> None:
        self.assertEqual(renderProgress(0.5, 4), renderProgress(0.5, 0))


class ProgressBarTests(unittest.TestCase):
    def test_redirected_output_draws_nothing(self) -> None:
        stream = io.StringIO()
        bar = ProgressBar(stream=stream)
        bar.report(0.5)
        bar.tick()
        bar.close()

        self.assertFalse(bar.enabled)
        self.assertEqual(stream.getvalue(), "")

    def test_tick_redraws_in_place_and_close_clears(self) -> None:
        stream = FakeTerminal()
        bar = ProgressBar(stream=stream, interval=3600)
        try:
            bar.report(0.25)
            bar.tick()
            first = stream.getvalue()
            self.assertEqual(first, "[##--------]  25% |")

            bar.report(0.3)
            bar.tick()
            self.assertEqual(stream.getvalue()[len(first):], "\b" * 16 + "#-------]  30% /")
        finally:
            bar.close()

        self.assertEqual(bar.currentText, "")
        self.assertTrue(stream.getvalue().endswith(" " * 19 + "\b" * 19))

    def test_report_is_clamped(self) -> None:
        bar = ProgressBar(stream=io.StringIO())
        bar.report(1.7)
        self.assertEqual(bar.currentProgress, 1.0)
        bar.report(-0.2)
        self.assertEqual(bar.currentProgress, 0.0)

    def test_log_record_lifts_bar_and_next_tick_redraws_in_full(self) -> None:
        stream = FakeTerminal()
        bar = ProgressBar(stream=stream, interval=3600)
        handler = ProgressAwareHandler(stream)
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        handler.progressBar = bar
        logger = logging.getLogger("ubootmmcdump.tests.progress")
        logger.setLevel(logging.WARNING)
        logger.propagate = False
        logger.addHandler(handler)
        try:
            bar.report(0.25)
            bar.tick()
            before = stream.getvalue()
            logger.warning("retrying")
            bar.tick()
            after = stream.getvalue()[len(before):]
        finally:
            logger.removeHandler(handler)
            bar.close()

        self.assertEqual(after, "\b" * 19 + " " * 19 + "\b" * 19 + "[WARNING] retrying\n" + "[##--------]  25% /")

    def test_handler_without_bar_just_logs(self) -> None:
        stream = io.StringIO()
        handler = ProgressAwareHandler(stream)
        handler.emit(logging.makeLogRecord({"msg": "plain", "levelno": logging.WARNING}))

        self.assertEqual(stream.getvalue(), "plain\n")

    def test_tick_after_close_is_ignored(self) -> None:
        stream = FakeTerminal()
        bar = ProgressBar(stream=stream, interval=3600)
        bar.close()
        written = stream.getvalue()
        bar.tick()

        self.assertEqual(stream.getvalue(), written)


if __name__ == "__main__":
    unittest.main()

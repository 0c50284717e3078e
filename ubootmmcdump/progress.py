#######################################################
#       Imports
#######################################################
import contextlib
import logging
import sys
import threading


#######################################################
#       Progress bar
#       Redraws itself in place on a timer, only touching the characters that changed
#######################################################
BLOCK_COUNT = 10
ANIMATION_INTERVAL = 1.0 / 8
ANIMATION = '|/-\\'


def renderProgress(progress, frame):
    """
    Build the text of the bar
    @params:
        progress    - Required  : fraction done, 0 to 1 (Float)
        frame       - Required  : animation step counter (Int)
    """
    filledLength = int(progress * BLOCK_COUNT)
    percent = int(progress * 100)
    bar = '#' * filledLength + '-' * (BLOCK_COUNT - filledLength)
    return '[{0}] {1:3d}% {2}'.format(bar, percent, ANIMATION[frame % len(ANIMATION)])


def computeRedraw(currentText, text):
    """Characters to write to turn currentText on screen into text"""
    commonPrefixLength = 0
    commonLength = min(len(currentText), len(text))
    while commonPrefixLength < commonLength and text[commonPrefixLength] == currentText[commonPrefixLength]:
        commonPrefixLength += 1

    # Backtrack to the first differing character, then write the new suffix
    output = '\b' * (len(currentText) - commonPrefixLength)
    output += text[commonPrefixLength:]

    # Blank out what is left over when the new text is shorter
    overlapCount = len(currentText) - len(text)
    if overlapCount > 0:
        output += ' ' * overlapCount + '\b' * overlapCount
    return output


class ProgressBar:
    def __init__(self, stream=None, interval=ANIMATION_INTERVAL):
        self.stream = stream if stream is not None else sys.stdout
        self.interval = interval
        self.currentProgress = 0.0
        self.currentText = ''
        self.animationIndex = 0
        self.disposed = False
        self._lock = threading.Lock()
        self._timer = None

        # Progress is only for a console, when redirected to a file draw nothing
        self.enabled = self._isInteractive()
        if self.enabled:
            self._resetTimer()

    def _isInteractive(self):
        try:
            return self.stream.isatty()
        except (AttributeError, ValueError):
            return False

    def report(self, value):
        value = max(0.0, min(1.0, float(value)))
        with self._lock:
            self.currentProgress = value

    def tick(self):
        with self._lock:
            if self.disposed:
                return
            text = renderProgress(self.currentProgress, self.animationIndex)
            self.animationIndex += 1
            self._updateText(text)
            self._resetTimer()

    def _updateText(self, text):
        if self.enabled:
            self.stream.write(computeRedraw(self.currentText, text))
            self.stream.flush()
        self.currentText = text

    def _resetTimer(self):
        if not self.enabled:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = threading.Timer(self.interval, self.tick)
        self._timer.daemon = True
        self._timer.start()

    def close(self):
        with self._lock:
            if self.disposed:
                return
            self.disposed = True
            if self._timer is not None:
                self._timer.cancel()
            self._updateText('')

    @contextlib.contextmanager
    def suspended(self):
        """Take the bar off the screen while something else prints, the next tick draws it again in full"""
        with self._lock:
            self._updateText('')
            yield

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class ProgressAwareHandler(logging.StreamHandler):
    """Log handler that lifts the progress bar out of the way of each record"""

    def __init__(self, stream=None):
        super().__init__(stream)
        self.progressBar = None

    def emit(self, record):
        progressBar = self.progressBar
        if progressBar is None or progressBar.disposed:
            super().emit(record)
            return
        with progressBar.suspended():
            super().emit(record)

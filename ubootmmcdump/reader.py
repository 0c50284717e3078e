#######################################################
#       Imports
#######################################################
import logging
import threading
import time

import serial

log = logging.getLogger(__name__)


#######################################################
#       Accumulator
#       Text read from the console since the last command was sent
#######################################################
class Accumulator:
    def __init__(self, marker):
        self.marker = marker
        self.completed = threading.Event()
        self._lock = threading.Lock()
        self._text = ''

    def reset(self):
        with self._lock:
            self._text = ''
            self.completed.clear()

    def append(self, text):
        """Add console text, returns True when this append revealed the prompt"""
        with self._lock:
            self._text += text
            if self.completed.is_set() or self.marker not in self._text:
                return False
            self.completed.set()
            return True

    def snapshot(self):
        with self._lock:
            return self._text

    def __len__(self):
        with self._lock:
            return len(self._text)


#######################################################
#       Frame reader
#       Keeps draining the transport so the console never backs up
#######################################################
class FrameReader(threading.Thread):
    def __init__(self, transport, accumulator, pollInterval=0.001):
        super().__init__(name='frame-reader', daemon=True)
        self.transport = transport
        self.accumulator = accumulator
        self.pollInterval = pollInterval
        # Set once the transport is gone, so a waiting dump can bail out
        self.closed = threading.Event()
        self._stopRequested = threading.Event()

    def stop(self):
        self._stopRequested.set()

    def run(self):
        try:
            while not self._stopRequested.is_set():
                if not self.transport.isOpen():
                    log.debug("Transport closed, reader exiting")
                    break

                try:
                    data = self.transport.readAvailable()
                except (serial.SerialException, OSError) as e:
                    log.debug("Read error ignored: %s", e)
                    data = b''

                if not data:
                    time.sleep(self.pollInterval)
                    continue

                if self.accumulator.append(data.decode('latin-1')):
                    log.debug("Prompt seen after %d characters", len(self.accumulator))
        finally:
            self.closed.set()

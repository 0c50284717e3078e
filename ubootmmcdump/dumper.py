#######################################################
#       Imports
#######################################################
import dataclasses
import logging
import time

import serial

from .config import RetryPolicy, ignoredLinePrefixes
from .errors import (HexDumpParseError, ResponseTimeoutError,
                     RetryLimitExceeded, TransportClosedError)
from .hexdump import parseDump

log = logging.getLogger(__name__)

# Failures that are worth sending the same command again for
IO_FAULTS = (serial.SerialException, OSError, ResponseTimeoutError)


def formatDumpCommand(startBlock, endBlock):
    return "mmc dump {0:X} {1:X}".format(startBlock, endBlock)


def blockRanges(startBlock, endBlock, stride):
    """Inclusive (first, last) pairs covering [startBlock, endBlock)"""
    for block in range(startBlock, endBlock, stride):
        yield block, min(block + stride, endBlock) - 1


@dataclasses.dataclass
class CycleOutcome:
    blockRange: tuple
    attempts: int
    byteCount: int


@dataclasses.dataclass
class DumpSummary:
    cycles: int = 0
    totalBytes: int = 0
    retries: int = 0


#######################################################
#       Dump orchestrator
#       One "mmc dump" per block range, resent until the answer parses and is on disk
#######################################################
class DumpOrchestrator:
    def __init__(self, transport, reader, sink, progress=None,
                 retryPolicy=None, responseTimeout=30.0,
                 ignoredPrefixes=ignoredLinePrefixes, waitSlice=0.05,
                 quietPeriod=None):
        self.transport = transport
        self.reader = reader
        self.accumulator = reader.accumulator
        self.sink = sink
        self.progress = progress
        self.retryPolicy = retryPolicy if retryPolicy is not None else RetryPolicy()
        self.responseTimeout = responseTimeout
        self.ignoredPrefixes = ignoredPrefixes
        self.waitSlice = waitSlice
        # Silence that proves an abandoned reply is over
        if quietPeriod is None and responseTimeout is not None:
            quietPeriod = 2 * responseTimeout
        self.quietPeriod = quietPeriod
        self.currentProgress = 0.0

    def sendCommand(self, startBlock, endBlock):
        # Stale console output must never be mistaken for this command's answer
        discard = getattr(self.transport, 'discardBuffers', None)
        if discard is not None:
            discard()
        self.accumulator.reset()
        self.transport.writeLine(formatDumpCommand(startBlock, endBlock))

    def checkTransport(self):
        if self.reader.closed.is_set() or not self.transport.isOpen():
            raise TransportClosedError("Serial connection closed while waiting for the prompt")

    def waitForPrompt(self):
        """Wait for the prompt, giving up only after responseTimeout seconds without any output"""
        lastLength = len(self.accumulator)
        deadline = None
        if self.responseTimeout is not None:
            deadline = time.monotonic() + self.responseTimeout

        while not self.accumulator.completed.wait(self.waitSlice):
            self.checkTransport()
            if deadline is None:
                continue
            length = len(self.accumulator)
            if length != lastLength:
                lastLength = length
                deadline = time.monotonic() + self.responseTimeout
            elif time.monotonic() >= deadline:
                raise ResponseTimeoutError("No console output for %.1f seconds" % self.responseTimeout)

    def drainAbandonedReply(self):
        # The device may still be answering the command we gave up on; its
        # prompt would otherwise complete the resent command
        if self.quietPeriod is None:
            return
        lastLength = len(self.accumulator)
        quietUntil = time.monotonic() + self.quietPeriod

        while not self.accumulator.completed.wait(self.waitSlice):
            self.checkTransport()
            length = len(self.accumulator)
            if length != lastLength:
                lastLength = length
                quietUntil = time.monotonic() + self.quietPeriod
            elif time.monotonic() >= quietUntil:
                log.debug("Console quiet for %.1fs, resending", self.quietPeriod)
                return
        log.debug("Abandoned reply finished after %d characters", len(self.accumulator))

    def dumpRange(self, startBlock, endBlock):
        """Run one block range to completion, returns a CycleOutcome"""
        policy = self.retryPolicy
        attempts = 0
        parseFailures = 0

        while True:
            attempts += 1
            try:
                self.sendCommand(startBlock, endBlock)
                self.waitForPrompt()
                data = parseDump(self.accumulator.snapshot(), self.ignoredPrefixes)
                if not data:
                    raise HexDumpParseError("No hex rows in the response")
                self.sink.append(data)
            except HexDumpParseError as e:
                parseFailures += 1
                lastError = e
                if policy.maxParseFailures is not None and parseFailures >= policy.maxParseFailures:
                    raise RetryLimitExceeded((startBlock, endBlock), attempts, e) from e
            except IO_FAULTS as e:
                lastError = e
            else:
                self.accumulator.reset()
                log.debug("Blocks %X-%X: %d bytes after %d attempt(s)",
                          startBlock, endBlock, len(data), attempts)
                return CycleOutcome((startBlock, endBlock), attempts, len(data))

            if policy.maxAttempts is not None and attempts >= policy.maxAttempts:
                raise RetryLimitExceeded((startBlock, endBlock), attempts, lastError) from lastError

            delay = policy.delayFor(attempts)
            log.warning("Blocks %X-%X attempt %d failed (%s: %s), retrying in %.2fs",
                        startBlock, endBlock, attempts, type(lastError).__name__, lastError, delay)
            if isinstance(lastError, ResponseTimeoutError):
                self.drainAbandonedReply()
            if delay:
                time.sleep(delay)

    def reportProgress(self, value):
        # Never let the bar go backwards
        self.currentProgress = max(self.currentProgress, min(1.0, max(0.0, value)))
        if self.progress is not None:
            self.progress.report(self.currentProgress)

    def run(self, startBlock, endBlock, stride=1):
        summary = DumpSummary()
        totalBlocks = endBlock - startBlock
        self.reportProgress(0.0)

        for first, last in blockRanges(startBlock, endBlock, stride):
            outcome = self.dumpRange(first, last)
            summary.cycles += 1
            summary.totalBytes += outcome.byteCount
            summary.retries += outcome.attempts - 1
            self.reportProgress((last + 1 - startBlock) / totalBlocks)

        return summary

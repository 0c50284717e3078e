#######################################################
#       Exceptions raised by the dumper
#######################################################


class DumperError(Exception):
    pass


class HexDumpParseError(DumperError, ValueError):
    """A line of the bootloader output is not a valid 16 byte hex row"""

    def __init__(self, message, line=None):
        super().__init__(message)
        self.line = line


class ResponseTimeoutError(DumperError, TimeoutError):
    pass


class TransportClosedError(DumperError):
    pass


class RetryLimitExceeded(DumperError):
    def __init__(self, blockRange, attempts, lastError):
        super().__init__("Giving up on blocks %X-%X after %d attempts: %s"
                         % (blockRange[0], blockRange[1], attempts, lastError))
        self.blockRange = blockRange
        self.attempts = attempts
        self.lastError = lastError

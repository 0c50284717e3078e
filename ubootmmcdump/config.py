#######################################################
#       Imports
#######################################################
import dataclasses
import time
from typing import Optional, Tuple


#######################################################
#       Default values, overridden from the command line
#######################################################
serialPortToUse = '/dev/ttyUSB0'
baudRateToUse = 115200
startBlock = 0
endBlock = 16384 * 512
blockStride = 1
bootloaderPrompt = 'ESPRESSO7570 #'
# Lines starting with these are console noise, not hex rows
ignoredLinePrefixes = ('ESPRESSO', 'emmc', '/*', 'mmc')
lineTerminator = '\n'
readTimeout = 0.5
writeTimeout = 0.5
responseTimeout = 30.0
maxAttempts = None
maxParseFailures = 16
backoffInitial = 0.05
backoffMax = 2.0

LINE_TERMINATORS = {
    'LF': '\n',
    'CR': '\r',
    'CRLF': '\r\n',
}


def defaultOutputPath():
    return "output_{0}_whole.bin".format(time.strftime("%Y%m%d_%H%M%S"))


@dataclasses.dataclass
class RetryPolicy:
    """How a failed dump cycle is retried

    @params:
        maxAttempts       - Optional  : attempts per block range before giving up, None for no limit (Int)
        maxParseFailures  - Optional  : malformed responses tolerated per block range, None for no limit (Int)
        backoffInitial    - Optional  : delay before the first retry, in seconds (Float)
        backoffMax        - Optional  : upper bound of the doubling delay, in seconds (Float)
    """
    maxAttempts: Optional[int] = maxAttempts
    maxParseFailures: Optional[int] = maxParseFailures
    backoffInitial: float = backoffInitial
    backoffMax: float = backoffMax

    def delayFor(self, failedAttempts):
        if failedAttempts <= 0 or self.backoffInitial <= 0:
            return 0.0
        return min(self.backoffMax, self.backoffInitial * (2 ** (failedAttempts - 1)))


@dataclasses.dataclass
class DumpConfig:
    port: str = serialPortToUse
    baudRate: int = baudRateToUse
    outputPath: str = dataclasses.field(default_factory=defaultOutputPath)
    startBlock: int = startBlock
    endBlock: int = endBlock
    blockStride: int = blockStride
    prompt: str = bootloaderPrompt
    ignoredPrefixes: Tuple[str, ...] = ignoredLinePrefixes
    lineTerminator: str = lineTerminator
    readTimeout: float = readTimeout
    writeTimeout: float = writeTimeout
    responseTimeout: Optional[float] = responseTimeout
    retryPolicy: RetryPolicy = dataclasses.field(default_factory=RetryPolicy)
    enterCli: bool = False
    verbose: bool = False

    def validate(self):
        if self.startBlock < 0 or self.endBlock < 0:
            raise ValueError("Block numbers must not be negative")
        if self.endBlock <= self.startBlock:
            raise ValueError("End block 0x%X must be after start block 0x%X"
                             % (self.endBlock, self.startBlock))
        if self.blockStride <= 0:
            raise ValueError("Block stride must be at least 1")
        if not self.prompt:
            raise ValueError("Bootloader prompt must not be empty")
        if self.responseTimeout is not None and self.responseTimeout <= 0:
            raise ValueError("Response timeout must be positive")
        return self

#######################################################
#       Hex dump parsing
#       Turns the console output of one "mmc dump" into raw bytes
#######################################################
import string

from .config import ignoredLinePrefixes
from .errors import HexDumpParseError

BYTES_PER_ROW = 16
HEX_DIGITS = frozenset(string.hexdigits)


def dataLines(text, ignoredPrefixes=ignoredLinePrefixes):
    """Lines of the capture that should be hex rows (prompt, echo and blanks dropped)"""
    prefixes = tuple(ignoredPrefixes)
    for line in text.replace('\r\n', '\n').replace('\r', '\n').split('\n'):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith(prefixes):
            continue
        yield stripped


def parseRow(line):
    tokens = line.split()
    if len(tokens) != BYTES_PER_ROW:
        raise HexDumpParseError("Expected %d bytes, got %d in row %r"
                                % (BYTES_PER_ROW, len(tokens), line), line)

    for token in tokens:
        if len(token) != 2 or not HEX_DIGITS.issuperset(token):
            raise HexDumpParseError("Bad hex byte %r in row %r" % (token, line), line)

    return bytes(int(token, 16) for token in tokens)


def parseDump(text, ignoredPrefixes=ignoredLinePrefixes):
    """Parse a whole capture; any bad row fails the lot so nothing partial gets written"""
    return b''.join(parseRow(line) for line in dataLines(text, ignoredPrefixes))
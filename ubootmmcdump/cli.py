#######################################################
#       Imports
#######################################################
import argparse
import logging
import time

import serial

from . import __version__, config
from .dumper import DumpOrchestrator
from .errors import DumperError
from .progress import ProgressAwareHandler, ProgressBar
from .reader import Accumulator, FrameReader
from .sink import OutputSink
from .transport import enterBootloaderCli, openSerialPort


def blockNumber(text):
    value = int(text, 0)
    if value < 0:
        raise argparse.ArgumentTypeError("block number must not be negative")
    return value


def optionalLimit(text):
    # 0 means no limit
    value = int(text, 0)
    return value if value > 0 else None


def makeArgParser():
    my_parser = argparse.ArgumentParser(
        prog='ubootmmcdump',
        description='Dump eMMC blocks through the bootloader "mmc dump" command over a serial console')

    my_parser.add_argument('port', metavar='tty', help='The serial interface to use, for example, /dev/ttyUSB0')
    my_parser.add_argument('baud', metavar='baudrate', type=int, help='The baud rate of the serial interface, for example, 115200')
    my_parser.add_argument('-o', '--output', metavar='path', help='Path to the binary file to append the dump to')
    my_parser.add_argument('--start-block', type=blockNumber, default=config.startBlock,
                           help='First block to dump (default: %(default)s)')
    my_parser.add_argument('--end-block', type=blockNumber, default=config.endBlock,
                           help='Block to stop at, not included (default: %(default)s)')
    my_parser.add_argument('--stride', type=blockNumber, default=config.blockStride,
                           help='Blocks requested per command (default: %(default)s)')
    my_parser.add_argument('--prompt', default=config.bootloaderPrompt,
                           help='Bootloader prompt marking the end of a command (default: %(default)r)')
    my_parser.add_argument('--line-terminator', choices=sorted(config.LINE_TERMINATORS), default='LF',
                           help='Line ending sent after each command (default: %(default)s)')
    my_parser.add_argument('--response-timeout', type=float, default=config.responseTimeout,
                           help='Seconds to wait for the prompt before resending, 0 waits forever (default: %(default)s)')
    my_parser.add_argument('--max-attempts', type=optionalLimit, default='0',
                           help='Attempts per block range before giving up, 0 for no limit (default: %(default)s)')
    my_parser.add_argument('--max-parse-failures', type=optionalLimit, default=config.maxParseFailures,
                           help='Garbled responses tolerated per block range, 0 for no limit (default: %(default)s)')
    my_parser.add_argument('--enter-cli', action='store_true',
                           help='Press enter a few times first to stop autoboot')
    my_parser.add_argument('-v', '--verbose', action='store_true', help='Log every completed block')
    my_parser.add_argument('--version', action='version', version='%(prog)s ' + __version__)
    return my_parser


def configFromArgs(args):
    return config.DumpConfig(
        port=args.port,
        baudRate=args.baud,
        outputPath=args.output or config.defaultOutputPath(),
        startBlock=args.start_block,
        endBlock=args.end_block,
        blockStride=args.stride,
        prompt=args.prompt,
        lineTerminator=config.LINE_TERMINATORS[args.line_terminator],
        responseTimeout=args.response_timeout if args.response_timeout > 0 else None,
        retryPolicy=config.RetryPolicy(maxAttempts=args.max_attempts,
                                       maxParseFailures=args.max_parse_failures),
        enterCli=args.enter_cli,
        verbose=args.verbose,
    ).validate()


def setupLogging(verbose):
    logger = logging.getLogger('ubootmmcdump')
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in logger.handlers:
        if isinstance(handler, ProgressAwareHandler):
            return handler
    handler = ProgressAwareHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(handler)
    return handler


def runDump(dumpConfig, transport, logHandler=None):
    accumulator = Accumulator(dumpConfig.prompt)
    reader = FrameReader(transport, accumulator)
    reader.start()

    sink = OutputSink(dumpConfig.outputPath)
    if sink.exists():
        print("Output file " + dumpConfig.outputPath + " already exists, appending to it")

    try:
        with ProgressBar() as progressBar:
            if logHandler is not None:
                logHandler.progressBar = progressBar
            orchestrator = DumpOrchestrator(transport, reader, sink, progressBar,
                                            retryPolicy=dumpConfig.retryPolicy,
                                            responseTimeout=dumpConfig.responseTimeout,
                                            ignoredPrefixes=dumpConfig.ignoredPrefixes)
            return orchestrator.run(dumpConfig.startBlock, dumpConfig.endBlock, dumpConfig.blockStride)
    finally:
        if logHandler is not None:
            logHandler.progressBar = None
        reader.stop()
        reader.join(1.0)


def main(argv=None):
    args = makeArgParser().parse_args(argv)
    try:
        dumpConfig = configFromArgs(args)
    except ValueError as e:
        print("Error: " + str(e))
        return 1

    logHandler = setupLogging(dumpConfig.verbose)

    print("#######################################################")
    print("\tU-Boot MMC Dumper")
    print("#######################################################")
    print("")
    print("Please connect power source to the target device.")

    try:
        transport = openSerialPort(dumpConfig)
    except serial.SerialException as e:
        print("Cannot open serial port - did you need to use sudo? (" + str(e) + ")")
        return 1

    start_time = time.time()
    try:
        with transport:
            if dumpConfig.enterCli:
                print("Entering bootloader command line interface...")
                enterBootloaderCli(transport)

            print("Dumping blocks 0x%X to 0x%X into %s"
                  % (dumpConfig.startBlock, dumpConfig.endBlock, dumpConfig.outputPath))
            summary = runDump(dumpConfig, transport, logHandler)
    except (DumperError, serial.SerialException) as e1:
        print("Error: " + str(e1))
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted, " + dumpConfig.outputPath + " holds the blocks dumped so far")
        return 130

    print("Complete! %d bytes in %d commands (%d retries). Execution time: %d mins"
          % (summary.totalBytes, summary.cycles, summary.retries, (time.time() - start_time) // 60))
    print("File written to " + dumpConfig.outputPath)
    return 0

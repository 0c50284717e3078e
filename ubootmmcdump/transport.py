#######################################################
#       Imports
#######################################################
import time

import serial


#######################################################
#       Serial transport
#       Thin wrapper so the dumper only sees write / readAvailable / isOpen
#######################################################
class SerialTransport:
    def __init__(self, ser, lineTerminator='\n'):
        self.ser = ser
        self.lineTerminator = lineTerminator

    def write(self, data):
        self.ser.write(data)

    def writeLine(self, text):
        self.write((text + self.lineTerminator).encode('latin-1'))

    def readAvailable(self):
        waiting = self.ser.in_waiting
        if waiting <= 0:
            return b''
        return self.ser.read(waiting)

    def isOpen(self):
        return self.ser.is_open

    def discardBuffers(self):
        self.ser.reset_input_buffer()   # discard all unread input
        self.ser.reset_output_buffer()  # abort current output

    def close(self):
        self.ser.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def openSerialPort(config):
    """Open the port 8N1 with software flow control, the way the bootloader console expects it"""
    ser = serial.Serial()
    ser.port = config.port
    ser.baudrate = config.baudRate
    ser.bytesize = serial.EIGHTBITS  # number of bits per bytes
    ser.parity = serial.PARITY_NONE  # no parity check
    ser.stopbits = serial.STOPBITS_ONE
    ser.xonxoff = True               # software flow control
    ser.rtscts = False
    ser.dsrdtr = False
    ser.timeout = config.readTimeout
    ser.write_timeout = config.writeTimeout
    ser.open()

    transport = SerialTransport(ser, config.lineTerminator)
    transport.discardBuffers()
    return transport


def enterBootloaderCli(transport, presses=2, delay=0.1):
    # Hitting enter a couple of times interrupts autoboot and gives us a prompt
    for _ in range(presses):
        transport.write(b'\r')
        time.sleep(delay)

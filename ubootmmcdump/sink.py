#######################################################
#       Imports
#######################################################
import os


#######################################################
#       Output file
#       Opened in append mode per write so a crash never loses a finished block
#######################################################
class OutputSink:
    def __init__(self, path):
        self.path = path
        self.bytesWritten = 0
        self.appends = 0

    def exists(self):
        return os.path.exists(self.path)

    def append(self, data):
        with open(self.path, 'ab') as dumpFile:
            dumpFile.write(data)
            dumpFile.flush()
            os.fsync(dumpFile.fileno())
        self.bytesWritten += len(data)
        self.appends += 1

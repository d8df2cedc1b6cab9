__version__ = '0.1.0'

from fitio.fit import parse, read

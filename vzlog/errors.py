"""Exception hierarchy used throughout the logger."""


class VZException(Exception):
    """Base class for all errors raised by the logger."""


class OptionNotFoundException(VZException):
    """A requested option is not present in an option list."""


class InvalidTypeException(VZException):
    """An option holds a value of a different type than requested."""


class ConnectionException(VZException):
    """A meter or remote endpoint could not be reached or opened."""
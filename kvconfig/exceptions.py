class FetchFailure(Exception):
    """The remote store could not be read."""


class DataSourceMissing(Exception):
    """Nothing exists under the requested path."""


class LoadFailure(Exception):
    """A fetched value could not be decoded."""


class ConfigurationSourceError(Exception):
    """Terminates a materialization run.

    Raised for transport failures other than not-found, missing decoders
    for a mandatory format, and values that fail to decode.
    """
    def __init__(self, message, format=None):
        super().__init__(message)
        self.format = format

"""Distributed configuration loading.

Reads configuration kept in a remote key/value store and stages it as
prioritized property sources for an application's configuration merger.
"""

from kvconfig.exceptions import ConfigurationSourceError
from kvconfig.exceptions import DataSourceMissing
from kvconfig.exceptions import FetchFailure
from kvconfig.exceptions import LoadFailure
from kvconfig.formats import FormatDecoder
from kvconfig.formats import FormatRegistry
from kvconfig.formats import StorageFormat
from kvconfig.layers import PropertySource
from kvconfig.materializer import ConfigMaterializer
from kvconfig.settings import ClientSettings
from kvconfig.stores import AbstractKeyValueStore
from kvconfig.stores import DictKeyValueStore
from kvconfig.stores import KeyValueEntry

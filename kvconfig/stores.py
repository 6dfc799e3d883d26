"""Remote key/value stores the materializer reads from.

A store returns every entry whose key starts with a prefix. It raises
DataSourceMissing when nothing is stored under the prefix and FetchFailure
for any other problem reaching the store.

"""

import logging
import threading
from typing import AnyStr
from typing import List
from typing import Mapping
from typing import NamedTuple
from typing import Optional
from typing import Union

from kvconfig import exceptions

logger = logging.getLogger(__name__)


class KeyValueEntry(NamedTuple):
    key: str
    value: Optional[Union[str, bytes]]

    @property
    def is_folder(self):
        return self.value is None and self.key.endswith("/")


class AbstractKeyValueStore:
    description = "key/value store"

    def read_entries(self, prefix: AnyStr, datacenter: Optional[AnyStr] = None) -> List[KeyValueEntry]:
        raise NotImplementedError


class DictKeyValueStore(AbstractKeyValueStore):
    """Serves entries from memory, one mapping per datacenter.

    Entries passed directly belong to the default (None) datacenter. Every
    read is recorded in `reads` as a (prefix, datacenter) pair.

    """
    description = "in-memory store"

    def __init__(self, entries: Optional[Mapping] = None, datacenters: Optional[Mapping] = None):
        self.entries_by_datacenter = {None: dict(entries or {})}
        for dc, dc_entries in (datacenters or {}).items():
            self.entries_by_datacenter[dc] = dict(dc_entries)
        self.reads = []
        self._lock = threading.Lock()

    def read_entries(self, prefix, datacenter=None):
        with self._lock:
            self.reads.append((prefix, datacenter))
        if datacenter not in self.entries_by_datacenter:
            raise exceptions.FetchFailure("unknown datacenter %r" % datacenter)
        entries = self.entries_by_datacenter[datacenter]
        found = [KeyValueEntry(k, entries[k]) for k in sorted(entries) if k.startswith(prefix)]
        if not found:
            logger.debug("nothing stored under %s", prefix)
            raise exceptions.DataSourceMissing(prefix)
        return found

"""Materializes remote key/value configuration into prioritized property sources.

The store holds configuration under a base path (default `config/`). Keys
under `<base>application` apply to every application, keys under
`<base><application id>` only to the configured application. How the keys
below those prefixes are read depends on the StorageFormat:

  FILE        `config/application-test.yml` is a whole YAML file for the
              `application[test]` source. The decoder is picked by extension.
  NATIVE      `config/application,test/foo` holds the single property `foo`
              of the `application[test]` source.
  JSON, YAML, `config/application,test` holds one whole document in the
  PROPERTIES  configured format for the `application[test]` source.

Each call reads the store afresh. Nothing is emitted until every entry has
been decoded, so a fatal error leaves the caller with no sources at all.

"""

import concurrent.futures
import logging
from typing import AnyStr
from typing import Iterator
from typing import List
from typing import Optional
from typing import Sequence

from kvconfig import converters
from kvconfig import exceptions
from kvconfig import names
from kvconfig.exceptions import ConfigurationSourceError
from kvconfig.formats import FormatRegistry
from kvconfig.formats import StorageFormat
from kvconfig.layers import LayerAccumulator
from kvconfig.layers import PropertySource
from kvconfig.layers import assign_priority
from kvconfig.stores import AbstractKeyValueStore
from kvconfig.stores import KeyValueEntry

logger = logging.getLogger(__name__)

DEFAULT_PATH = "config/"
SERVICE_ID = "consul"


class ConfigMaterializer:
    def __init__(
            self,
            store: AbstractKeyValueStore,
            registry: Optional[FormatRegistry] = None,
            executor: Optional[concurrent.futures.Executor] = None,
            enabled: bool = True,
            service_id: AnyStr = SERVICE_ID,
    ):
        self.store = store
        self.registry = registry or FormatRegistry()
        self.executor = executor
        self.enabled = enabled
        self.service_id = service_id

    @property
    def description(self):
        return self.store.description

    def materialize(
            self,
            active_environments: Sequence[str],
            application_id: Optional[AnyStr] = None,
            format: StorageFormat = StorageFormat.NATIVE,
            base_path: AnyStr = DEFAULT_PATH,
            datacenter: Optional[AnyStr] = None,
    ) -> Iterator[PropertySource]:
        """Lazily yields one PropertySource per layer found in the store.

        Nothing is read until the first item is requested. Errors surface
        as ConfigurationSourceError from the iterator.
        """
        if not self.enabled:
            return iter(())
        run = MaterializationRun(
            active_environments=list(active_environments),
            application_id=application_id or None,
            format=StorageFormat.parse(format),
            base_path=base_path,
            registry=self.registry,
            description=self.description,
        )
        return self._emit(run, datacenter)

    def _emit(self, run, datacenter):
        entries = self._read_all(run.prefixes, datacenter)
        if not entries:
            return
        run.accumulate(entries)
        for layer in run.layers:
            yield PropertySource(
                "%s-%s" % (self.service_id, layer.name),
                layer.values,
                assign_priority(layer, run.active_environments),
            )

    def _read_all(self, prefixes, datacenter) -> List[KeyValueEntry]:
        if self.executor is None:
            entries = []
            for prefix in prefixes:
                entries.extend(self._read(prefix, datacenter))
            return entries

        fs = [self.executor.submit(self._read, prefix, datacenter) for prefix in prefixes]
        try:
            _, pending = concurrent.futures.wait(fs, return_when=concurrent.futures.FIRST_EXCEPTION)
            for f in pending:
                f.cancel()
            for f in fs:
                if f.done() and not f.cancelled() and f.exception() is not None:
                    raise f.exception()
            entries = []
            for f in fs:
                entries.extend(f.result())
            return entries
        finally:
            for f in fs:
                f.cancel()

    def _read(self, prefix, datacenter) -> List[KeyValueEntry]:
        try:
            return list(self.store.read_entries(prefix, datacenter))
        except exceptions.DataSourceMissing:
            logger.debug("no configuration under %s", prefix)
            return []
        except Exception as e:
            raise ConfigurationSourceError(
                "Error reading distributed configuration from %s: %s" % (self.description, e)) from e


class MaterializationRun:
    """State for one materialize() call.

    Sorts the fetched entries into layers according to the storage format.
    """
    def __init__(self, active_environments, application_id, format, base_path, registry, description):
        if not base_path.endswith("/"):
            base_path += "/"
        self.active_environments = active_environments
        self.application_id = application_id
        self.format = format
        self.base_path = base_path
        self.registry = registry
        self.description = description
        self.common_prefix = base_path + names.APPLICATION
        self.application_prefix = None if application_id is None else base_path + application_id
        self.is_matching_application = names.application_matcher(application_id)
        self.layers = LayerAccumulator()

    @property
    def prefixes(self):
        if self.application_prefix is None:
            return [self.common_prefix]
        return [self.common_prefix, self.application_prefix]

    def accumulate(self, entries) -> LayerAccumulator:
        handler = self.handlers[self.format]
        for entry in entries:
            if entry.is_folder:
                continue
            # Plain prefix match: an id of `app` also claims `config/application...` keys.
            is_common = entry.key.startswith(self.common_prefix)
            is_application_specific = (self.application_prefix is not None
                                       and entry.key.startswith(self.application_prefix))
            if not (is_common or is_application_specific):
                continue
            if entry.value is None:
                logger.debug("skipping %s: no value", entry.key)
                continue
            handler(self, entry, is_common, is_application_specific)
        return self.layers

    def file_entry(self, entry, is_common, is_application_specific):
        base_name, dot, extension = entry.key[len(self.base_path):].rpartition(".")
        if not dot:
            return
        decoder = self.registry.find(extension)
        if decoder is None:
            logger.debug("skipping %s: no decoder for extension %s", entry.key, extension)
            return
        name = names.resolve_file_based_name(names.APPLICATION, base_name, self.active_environments)
        if name is None and self.application_id is not None:
            name = names.resolve_file_based_name(self.application_id, base_name, self.active_environments)
        if name is None or not self.is_matching_application(name):
            return
        properties = self.decode(decoder, name, entry.value)
        environment = names.resolve_environment(base_name, self.active_environments)
        self.layers.get_or_create(name, is_application_specific, environment)
        self.layers.put_all(name, properties)

    def native_entry(self, entry, is_common, is_application_specific):
        prefix = self.common_prefix if is_common else self.application_prefix
        prop = names.resolve_property_name(prefix, entry.key)
        if "/" in prop:
            # Nested below the prefix: the first segment names the layer.
            segment, _, rest = prop.partition("/")
            source_names = names.expand_comma_and_environment(segment, self.active_environments)
            prop = rest.replace("/", ".")
        else:
            source_names = names.resolve_property_source_names(
                self.base_path, entry.key, self.active_environments)
        if not prop or not source_names:
            logger.debug("skipping %s: cannot place property", entry.key)
            return
        value = self.decode_string(entry.value)
        for name in source_names:
            if self.is_matching_application(name):
                environment = names.resolve_environment(name, self.active_environments)
                self.layers.get_or_create(name, is_application_specific, environment)
                self.layers.put(name, prop, value)

    def document_entry(self, entry, is_common, is_application_specific):
        full_name = entry.key[len(self.base_path):]
        if "/" in full_name:
            return
        source_names = names.expand_comma_and_environment(full_name, self.active_environments)
        decoder = self.registry.find(self.format.value)
        if decoder is None:
            raise ConfigurationSourceError(
                "No FormatDecoder found for format [%s]" % self.format.name, format=self.format)
        if not decoder.is_enabled():
            return
        properties = self.decode(decoder, full_name, entry.value)
        for name in source_names:
            if self.is_matching_application(name):
                environment = names.resolve_environment(name, self.active_environments)
                self.layers.get_or_create(name, is_application_specific, environment)
                self.layers.put_all(name, properties)

    handlers = {
        StorageFormat.FILE: file_entry,
        StorageFormat.NATIVE: native_entry,
        StorageFormat.JSON: document_entry,
        StorageFormat.YAML: document_entry,
        StorageFormat.PROPERTIES: document_entry,
    }

    def decode(self, decoder, source_name, value):
        try:
            return decoder.decode(source_name, converters.bytes_from_base64(value))
        except exceptions.LoadFailure as e:
            raise ConfigurationSourceError(
                "Error decoding %s from %s: %s" % (source_name, self.description, e), format=self.format) from e

    def decode_string(self, value):
        try:
            return converters.string_from_bytes(converters.bytes_from_base64(value))
        except exceptions.LoadFailure as e:
            raise ConfigurationSourceError(
                "Error decoding value from %s: %s" % (self.description, e), format=self.format) from e

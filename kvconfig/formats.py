import logging
from typing import Any
from typing import AnyStr
from typing import Dict
from typing import Iterable
from typing import Optional
from typing import Set

import aenum

from kvconfig import converters
from kvconfig.exceptions import ConfigurationSourceError

logger = logging.getLogger(__name__)


@aenum.unique
class StorageFormat(aenum.Enum):
    """Layout of the configuration keys under the base path."""
    FILE = "file"
    NATIVE = "native"
    JSON = "json"
    YAML = "yaml"
    PROPERTIES = "properties"

    @classmethod
    def parse(cls, x):
        if isinstance(x, cls):
            return x
        try:
            return cls(str(x).strip().lower())
        except ValueError:
            raise ConfigurationSourceError("unknown storage format %r" % x, format=x)


class FormatDecoder:
    """Turns the raw bytes of one document into a flat property mapping."""
    def decode(self, source_name: AnyStr, raw: bytes) -> Dict[str, Any]:
        raise NotImplementedError()

    def is_enabled(self) -> bool:
        return True

    def extensions(self) -> Set[str]:
        raise NotImplementedError()


class JsonDecoder(FormatDecoder):
    def decode(self, source_name, raw):
        return converters.flatten(converters.obj_from_json(converters.string_from_bytes(raw)))

    def extensions(self):
        return {"json"}


class YamlDecoder(FormatDecoder):
    def decode(self, source_name, raw):
        return converters.flatten(converters.obj_from_yaml(converters.string_from_bytes(raw)))

    def extensions(self):
        return {"yml", "yaml"}


class PropertiesDecoder(FormatDecoder):
    def decode(self, source_name, raw):
        return converters.obj_from_properties(raw)

    def extensions(self):
        return {"properties"}


class TomlDecoder(FormatDecoder):
    def decode(self, source_name, raw):
        return converters.flatten(converters.obj_from_toml(converters.string_from_bytes(raw)))

    def extensions(self):
        return {"toml"}


builtin_decoder_by_name = {
    "json": JsonDecoder,
    "properties": PropertiesDecoder,
    "yml": YamlDecoder,
    "yaml": YamlDecoder,
    "toml": TomlDecoder,
}


class FormatRegistry:
    """Maps a format name or file extension to a FormatDecoder.

    Decoders handed in by the caller are registered under each of their
    extensions and always win. Built-in decoders are created on first use
    and cached. Two threads racing on the same name may both build a
    decoder, but only the first one stored is ever returned.

    """
    def __init__(self, decoders: Iterable[FormatDecoder] = (), use_builtin_decoders: bool = True):
        self._decoders = {}
        self._use_builtin_decoders = use_builtin_decoders
        for decoder in decoders:
            self.register(decoder)

    def register(self, decoder: FormatDecoder) -> None:
        for extension in decoder.extensions():
            self._decoders[extension] = decoder

    def resolve(self, name: AnyStr) -> FormatDecoder:
        decoder = self._decoders.get(name)
        if decoder is not None:
            return decoder
        if not self._use_builtin_decoders or name not in builtin_decoder_by_name:
            raise ConfigurationSourceError("Unsupported properties file format: %s" % name, format=name)
        logger.debug("creating built-in decoder for %s", name)
        return self._decoders.setdefault(name, builtin_decoder_by_name[name]())

    def find(self, name: AnyStr) -> Optional[FormatDecoder]:
        try:
            return self.resolve(name)
        except ConfigurationSourceError:
            return None

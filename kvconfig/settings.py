import os
from typing import Mapping
from typing import NamedTuple
from typing import Optional

from kvconfig.exceptions import ConfigurationSourceError
from kvconfig.formats import StorageFormat
from kvconfig.materializer import DEFAULT_PATH

_truthy = {"true", "yes", "on", "1"}
_falsy = {"false", "no", "off", "0", ""}
_optional_fields = ("datacenter", "application_id")


class ClientSettings(NamedTuple):
    """Where and how distributed configuration is stored."""
    enabled: bool = False
    path: str = DEFAULT_PATH
    format: StorageFormat = StorageFormat.NATIVE
    datacenter: Optional[str] = None
    application_id: Optional[str] = None

    @classmethod
    def from_mapping(cls, mapping: Mapping) -> "ClientSettings":
        unknown = set(mapping) - set(cls._fields)
        if unknown:
            raise ConfigurationSourceError("unknown settings: %s" % ", ".join(sorted(unknown)))
        kwargs = dict(mapping)
        for field in _optional_fields:
            if kwargs.get(field) == "":
                kwargs[field] = None
        if "enabled" in kwargs:
            kwargs["enabled"] = to_bool(kwargs["enabled"])
        if "format" in kwargs:
            kwargs["format"] = StorageFormat.parse(kwargs["format"])
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping] = None, prefix: str = "KVCONFIG_") -> "ClientSettings":
        if environ is None:
            environ = os.environ
        values = {}
        for field in cls._fields:
            envar = prefix + field.upper()
            if envar in environ:
                values[field] = environ[envar]
        return cls.from_mapping(values)


def to_bool(x) -> bool:
    if isinstance(x, bool):
        return x
    s = str(x).strip().lower()
    if s in _truthy:
        return True
    if s in _falsy:
        return False
    raise ConfigurationSourceError("cannot interpret %r as a boolean" % x)

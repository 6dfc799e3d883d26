"""Tools for turning raw store values into property mappings.

Values arrive base64 encoded. A FILE-mode YAML entry is decoded like this:

    flatten(
        obj_from_yaml(
            string_from_bytes(
                bytes_from_base64(value),
                encoding='utf8'
            )
        )
    )

"""

import base64
import binascii
import json
from typing import Any
from typing import AnyStr
from typing import Dict

import jproperties
import toml

from kvconfig.exceptions import LoadFailure


try:
    from yaml import CSafeLoader as Loader
except ImportError:
    from yaml import SafeLoader as Loader

import yaml


def obj_from_json(x: AnyStr) -> Any:
    try:
        return json.loads(x)
    except Exception as e:
        raise LoadFailure(e)


def obj_from_toml(x: AnyStr) -> Any:
    try:
        return toml.loads(x)
    except Exception as e:
        raise LoadFailure(e)


def obj_from_yaml(x: AnyStr) -> Any:
    """Merges every document of a YAML stream, later documents winning."""
    try:
        docs = list(yaml.load_all(x, Loader=Loader))
    except Exception as e:
        raise LoadFailure(e)
    merged = {}
    for doc in docs:
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise LoadFailure("yaml document is not a mapping")
        merged.update(doc)
    return merged


def obj_from_properties(x: AnyStr) -> Dict[str, str]:
    if isinstance(x, str):
        x = x.encode('utf8')
    p = jproperties.Properties()
    try:
        p.load(x, encoding='utf8')
    except Exception as e:
        raise LoadFailure(e)
    return {k: v.data for k, v in p.items()}


def string_from_bytes(x: bytes, encoding='utf8') -> AnyStr:
    try:
        return x.decode(encoding)
    except Exception as e:
        raise LoadFailure(e)


def bytes_from_base64(x: AnyStr) -> bytes:
    try:
        return base64.b64decode(x, validate=True)
    except (binascii.Error, ValueError):
        raise LoadFailure("characters outside base64")


def flatten(obj: Any, prefix: str = "") -> Dict[str, Any]:
    """Flattens nested mappings into dotted keys. Lists stay as values."""
    if not isinstance(obj, dict):
        raise LoadFailure("expected a mapping, got %s" % type(obj).__name__)
    flat = {}
    for k, v in obj.items():
        key = "%s.%s" % (prefix, k) if prefix else str(k)
        if isinstance(v, dict) and v:
            flat.update(flatten(v, key))
        else:
            flat[key] = v
    return flat

import concurrent.futures

import pytest

from kvconfig import formats
from kvconfig.exceptions import ConfigurationSourceError


class UpperCaseDecoder(formats.FormatDecoder):
    def __init__(self, enabled=True):
        self.enabled = enabled

    def decode(self, source_name, raw):
        return {"value": raw.decode('utf8').upper()}

    def is_enabled(self):
        return self.enabled

    def extensions(self):
        return {"json", "txt"}


def test_resolve_builtin_decoders():
    test_cases = [
        ("json", formats.JsonDecoder),
        ("properties", formats.PropertiesDecoder),
        ("yml", formats.YamlDecoder),
        ("yaml", formats.YamlDecoder),
        ("toml", formats.TomlDecoder),
    ]
    registry = formats.FormatRegistry()
    for (name, cls) in test_cases:
        assert isinstance(registry.resolve(name), cls)


def test_resolve_caches_builtin_decoders():
    registry = formats.FormatRegistry()
    assert registry.resolve("yaml") is registry.resolve("yaml")


def test_resolve_unknown_format_fails():
    registry = formats.FormatRegistry()
    with pytest.raises(ConfigurationSourceError) as e:
        registry.resolve("xml")
    assert e.value.format == "xml"
    assert "xml" in str(e.value)


def test_find_unknown_format_returns_none():
    assert formats.FormatRegistry().find("xml") is None


def test_registered_decoders_take_precedence():
    decoder = UpperCaseDecoder()
    registry = formats.FormatRegistry([decoder])
    assert registry.resolve("json") is decoder
    assert registry.resolve("txt") is decoder
    assert isinstance(registry.resolve("yaml"), formats.YamlDecoder)


def test_registry_without_builtins_only_knows_registered_decoders():
    registry = formats.FormatRegistry([UpperCaseDecoder()], use_builtin_decoders=False)
    assert registry.find("txt") is not None
    assert registry.find("yaml") is None


def test_concurrent_resolution_returns_one_decoder():
    registry = formats.FormatRegistry()
    with concurrent.futures.ThreadPoolExecutor(max_workers=8) as executor:
        decoders = list(executor.map(lambda _: registry.resolve("json"), range(32)))
    assert all(d is decoders[0] for d in decoders)


def test_builtin_decoders_flatten_documents():
    registry = formats.FormatRegistry()
    assert registry.resolve("json").decode("x", b'{"a": {"b": 1}}') == {"a.b": 1}
    assert registry.resolve("yaml").decode("x", b"a:\n  b: 1\n") == {"a.b": 1}
    assert registry.resolve("toml").decode("x", b"[a]\nb = 1\n") == {"a.b": 1}
    assert registry.resolve("properties").decode("x", b"a.b=1\n") == {"a.b": "1"}


def test_builtin_decoders_are_enabled():
    registry = formats.FormatRegistry()
    for name in ["json", "yaml", "properties", "toml"]:
        assert registry.resolve(name).is_enabled()


def test_parse_storage_format():
    test_cases = [
        ("file", formats.StorageFormat.FILE),
        ("NATIVE", formats.StorageFormat.NATIVE),
        (" Json ", formats.StorageFormat.JSON),
        ("yaml", formats.StorageFormat.YAML),
        ("properties", formats.StorageFormat.PROPERTIES),
        (formats.StorageFormat.YAML, formats.StorageFormat.YAML),
    ]
    for (x, res) in test_cases:
        assert formats.StorageFormat.parse(x) is res


def test_parse_unknown_storage_format_fails():
    with pytest.raises(ConfigurationSourceError):
        formats.StorageFormat.parse("xml")

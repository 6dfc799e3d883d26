import base64

import boto3
import moto
import pytest
from botocore.exceptions import ClientError

from kvconfig import builders
from kvconfig import exceptions
from kvconfig import stores
from kvconfig.aws import AwsParameterStoreKeyValueStore
from kvconfig.exceptions import ConfigurationSourceError
from kvconfig.formats import StorageFormat
from kvconfig.settings import ClientSettings


def put(client, name, text):
    client.put_parameter(
        Name=name,
        Type="String",
        Value=base64.b64encode(text.encode('utf8')).decode('ascii'),
    )


@pytest.fixture
def ssm():
    with moto.mock_aws():
        yield boto3.client("ssm", region_name="us-east-1")


def test_parameterstore_reads_by_prefix(ssm):
    put(ssm, "/config/application.yml", "a: 1\n")
    put(ssm, "/config/application-test.yml", "a: 2\n")
    put(ssm, "/config/other.yml", "a: 3\n")
    store = AwsParameterStoreKeyValueStore(client=ssm)
    entries = store.read_entries("/config/application")
    assert [e.key for e in entries] == ["/config/application-test.yml", "/config/application.yml"]
    assert base64.b64decode(entries[1].value) == b"a: 1\n"


def test_parameterstore_missing_prefix(ssm):
    put(ssm, "/config/other.yml", "a: 3\n")
    store = AwsParameterStoreKeyValueStore(client=ssm)
    with pytest.raises(exceptions.DataSourceMissing):
        store.read_entries("/config/application")


def test_parameterstore_secure_strings_are_decrypted(ssm):
    ssm.put_parameter(
        Name="/config/application/password",
        Type="SecureString",
        Value=base64.b64encode(b"secret").decode('ascii'),
    )
    store = AwsParameterStoreKeyValueStore(client=ssm)
    entries = store.read_entries("/config/application")
    assert entries == [stores.KeyValueEntry(
        "/config/application/password", base64.b64encode(b"secret").decode('ascii'))]


def test_parameterstore_datacenter_is_region():
    with moto.mock_aws():
        west = boto3.client("ssm", region_name="eu-west-1")
        put(west, "/config/application/a", "1")
        store = AwsParameterStoreKeyValueStore()
        assert [e.key for e in store.read_entries("/config/application", "eu-west-1")] == [
            "/config/application/a"]
        with pytest.raises(exceptions.DataSourceMissing):
            store.read_entries("/config/application", "us-east-2")


def test_property_sources_from_parameterstore(ssm):
    put(ssm, "/config/application.yml", "a: 1\nb: 1\n")
    put(ssm, "/config/application-test.yml", "a: 2\n")
    put(ssm, "/config/myapp.json", '{"c": {"d": 3}}')
    settings = ClientSettings(enabled=True, path="/config", format=StorageFormat.FILE, application_id="myapp")
    sources = builders.sorted_by_priority(builders.property_sources(
        settings, ["test"], store=AwsParameterStoreKeyValueStore(client=ssm)))
    assert [(s.name, s.values) for s in sources] == [
        ("consul-application", {"a": 1, "b": 1}),
        ("consul-application[test]", {"a": 2}),
        ("consul-myapp", {"c.d": 3}),
    ]


class DeniedPaginator:
    def paginate(self, **kwargs):
        raise ClientError({"Error": {"Code": "AccessDeniedException", "Message": "denied"}}, "DescribeParameters")


class DeniedClient:
    def get_paginator(self, name):
        return DeniedPaginator()


def test_parameterstore_client_errors_are_fetch_failures():
    store = AwsParameterStoreKeyValueStore(client=DeniedClient())
    with pytest.raises(exceptions.FetchFailure):
        store.read_entries("/config/application")


def test_parameterstore_client_errors_abort_materialization():
    settings = ClientSettings(enabled=True, path="/config")
    sources = builders.property_sources(settings, [], store=AwsParameterStoreKeyValueStore(client=DeniedClient()))
    with pytest.raises(ConfigurationSourceError) as e:
        list(sources)
    assert "AWS Parameter Store" in str(e.value)

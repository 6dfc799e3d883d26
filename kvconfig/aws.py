import logging

import boto3
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError

from kvconfig import exceptions
from kvconfig import stores

logger = logging.getLogger(__name__)


class AwsParameterStoreKeyValueStore(stores.AbstractKeyValueStore):
    """Reads configuration keys from AWS Systems Manager Parameter Store.

    Parameter names play the role of keys, so a base path of `/config/`
    reads every parameter whose name begins with `/config/application` and
    `/config/<app id>`. Values are expected base64 encoded, the same as
    any other store. SecureString parameters are decrypted.

    Parameter Store has no datacenters. A datacenter is taken to be the
    AWS region to read from.

    """
    description = "AWS Parameter Store"

    def __init__(self, client=None):
        self._client = client

    def get_client(self, datacenter=None):
        if self._client:
            return self._client
        if datacenter is None:
            return boto3.client("ssm")
        return boto3.client("ssm", region_name=datacenter)

    def read_entries(self, prefix, datacenter=None):
        client = self.get_client(datacenter)
        try:
            names = sorted(p["Name"] for p in self.describe_parameters(client, prefix))
            entries = []
            for name in names:
                value = self.get_value(client, name)
                if value is not None:
                    entries.append(stores.KeyValueEntry(name, value))
        except (ClientError, BotoCoreError) as e:
            raise exceptions.FetchFailure(str(e)) from e
        if not entries:
            raise exceptions.DataSourceMissing(prefix)
        logger.debug("read %d parameters under %s", len(entries), prefix)
        return entries

    @staticmethod
    def describe_parameters(client, prefix):
        paginator = client.get_paginator('describe_parameters')
        pager = paginator.paginate(
            ParameterFilters=[
                dict(Key="Name", Option="BeginsWith", Values=[prefix])
            ]
        )
        for page in pager:
            for p in page['Parameters']:
                yield p

    @staticmethod
    def get_value(client, name):
        try:
            resp = client.get_parameter(Name=name, WithDecryption=True)
        except client.exceptions.ParameterNotFound:
            # Deleted between describe and get.
            return None
        return resp["Parameter"]["Value"]

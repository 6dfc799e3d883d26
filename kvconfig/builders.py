"""The high level interface for fetching distributed configuration."""
from typing import Iterator
from typing import Sequence

from kvconfig import aws
from kvconfig import layers
from kvconfig import materializer
from kvconfig.settings import ClientSettings


def config_materializer(settings, store=None, registry=None, executor=None):
    return materializer.ConfigMaterializer(
        store=store or aws.AwsParameterStoreKeyValueStore(),
        registry=registry,
        executor=executor,
        enabled=settings.enabled,
    )


def property_sources(
        settings: ClientSettings,
        active_environments: Sequence[str],
        store=None,
        registry=None,
        executor=None,
) -> Iterator[layers.PropertySource]:
    return config_materializer(settings, store, registry, executor).materialize(
        active_environments,
        application_id=settings.application_id,
        format=settings.format,
        base_path=settings.path,
        datacenter=settings.datacenter,
    )


def sorted_by_priority(sources):
    """Lowest priority first, the order a merger applies them in."""
    return sorted(sources, key=lambda s: (s.priority, s.name))

from typing import Any
from typing import AnyStr
from typing import Dict
from typing import Iterator
from typing import Mapping
from typing import NamedTuple
from typing import Optional
from typing import Sequence

# Position of environment variable configuration in the consuming merger.
ENVIRONMENT_POSITION = (2 ** 31 - 1) // 2 - 100
COMMON_BASE_PRIORITY = ENVIRONMENT_POSITION + 100
APPLICATION_BASE_PRIORITY = COMMON_BASE_PRIORITY + 50


class PropertySource(NamedTuple):
    name: str
    values: Dict[str, Any]
    priority: int


class PropertyLayer:
    """Properties collected for one property-source name during a single run."""
    def __init__(self, name: AnyStr, is_application_specific: bool, environment: Optional[AnyStr]):
        self.name = name
        self.is_application_specific = is_application_specific
        self.environment = environment
        self.values = {}

    def put(self, key: AnyStr, value: Any) -> None:
        self.values[key] = value

    def put_all(self, values: Mapping[str, Any]) -> None:
        self.values.update(values)

    def __repr__(self):
        return "PropertyLayer(%r, app_specific=%r, env=%r)" % (
            self.name, self.is_application_specific, self.environment)


class LayerAccumulator:
    """Groups decoded values into one PropertyLayer per name.

    The first reference to a name fixes the layer's classification.
    """
    def __init__(self):
        self._layers = {}

    def get_or_create(self, name: AnyStr, is_application_specific: bool,
                      environment: Optional[AnyStr]) -> PropertyLayer:
        if name not in self._layers:
            self._layers[name] = PropertyLayer(name, is_application_specific, environment)
        return self._layers[name]

    def put(self, name: AnyStr, key: AnyStr, value: Any) -> None:
        self._layers[name].put(key, value)

    def put_all(self, name: AnyStr, values: Mapping[str, Any]) -> None:
        self._layers[name].put_all(values)

    def __iter__(self) -> Iterator[PropertyLayer]:
        return iter(list(self._layers.values()))

    def __len__(self):
        return len(self._layers)

    def __contains__(self, name):
        return name in self._layers


def assign_priority(layer: PropertyLayer, active_environments: Sequence[str]) -> int:
    """Higher priorities override lower ones when the layers are merged."""
    if layer.is_application_specific:
        base = APPLICATION_BASE_PRIORITY
    else:
        base = COMMON_BASE_PRIORITY
    if layer.environment is None:
        return base + 1
    return base + (_index(active_environments, layer.environment) + 1) * 2


def _index(seq, x):
    try:
        return list(seq).index(x)
    except ValueError:
        return -1

"""Property-source naming rules.

Names take the forms `application`, `application[env]`, `<app id>` and
`<app id>[env]`. Keys written in the store encode the environment as a
`-env` file suffix (FILE layout) or as comma separated tokens after the
name (`application,test`).

"""

import re
from typing import AnyStr
from typing import Callable
from typing import Optional
from typing import Sequence
from typing import Tuple

APPLICATION = "application"

_environment_token = r"\[[a-zA-Z0-9_-]+]"
_bracketed_environment = re.compile(r"\[([a-zA-Z0-9_-]+)]$")


def resolve_file_based_name(root_name: AnyStr, file_base_name: AnyStr,
                            active_environments: Sequence[str]) -> Optional[str]:
    if not file_base_name.startswith(root_name):
        return None
    env_string = file_base_name[len(root_name):]
    if not env_string:
        return root_name
    if env_string.startswith("-"):
        env = env_string[1:]
        if env in active_environments:
            return "%s[%s]" % (root_name, env)
    return None


def expand_comma_and_environment(raw_name: AnyStr, active_environments: Sequence[str],
                                 delimiter: AnyStr = ",") -> Tuple[str, ...]:
    """Every property-source name a key segment such as `application,test` stands for.

    The first token is the base name and each following token an environment.
    A segment naming an inactive environment stands for nothing.
    """
    if delimiter not in raw_name:
        return (raw_name,) if raw_name else ()
    tokens = [t for t in raw_name.split(delimiter) if t]
    if not tokens:
        return ()
    if len(tokens) == 1:
        return (tokens[0],)
    name = tokens[0]
    names = []
    for env in tokens[1:]:
        if env not in active_environments:
            return ()
        names.append("%s[%s]" % (name, env))
    return tuple(dict.fromkeys(names))


def resolve_environment(name: AnyStr, active_environments: Sequence[str]) -> Optional[str]:
    """The active environment a name or file name is qualified with, if any."""
    match = _bracketed_environment.search(name)
    if match:
        return match.group(1) if match.group(1) in active_environments else None
    for env in reversed(active_environments):
        if name.endswith("-" + env):
            return env
    return None


def resolve_property_name(prefix: AnyStr, key: AnyStr) -> str:
    """Property path of a NATIVE key relative to its application or common prefix.

    `config/application/foo` gives `foo` and `config/application,test/foo` gives
    `foo`. The result still contains `/` when the key is nested deeper.
    """
    prop = key[len(prefix):]
    if prop.startswith("/"):
        return prop[1:]
    i = prop.rfind("/")
    if i > -1:
        return prop[i + 1:]
    return prop


def resolve_property_source_names(base_path: AnyStr, key: AnyStr,
                                  active_environments: Sequence[str]) -> Optional[Tuple[str, ...]]:
    """Names of the layers a NATIVE key belongs to, from its first segment after base_path."""
    segment, sep, _ = key[len(base_path):].partition("/")
    if not sep:
        return None
    return expand_comma_and_environment(segment, active_environments)


def application_matcher(application_id: Optional[AnyStr]) -> Callable[[str], bool]:
    if application_id is None:
        return lambda name: True
    pattern = re.compile(r"(%s|%s)(%s)?" % (APPLICATION, re.escape(application_id), _environment_token))
    return lambda name: pattern.fullmatch(name) is not None


def matches_application_identity(candidate_name: AnyStr, application_id: Optional[AnyStr]) -> bool:
    return application_matcher(application_id)(candidate_name)

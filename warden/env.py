"""Access to environment variables."""

import os

_BOOLS = {s: True for s in ("1", "t", "T", "TRUE", "true", "True")}
_BOOLS.update({s: False for s in ("0", "f", "F", "FALSE", "false", "False")})


def get(key):
    """Return the variable's value, or an empty string when it is not set."""
    return os.environ.get(key, "")


def get_bool(key):
    """Read a boolean variable; unset or empty means False. Raises ValueError otherwise."""
    value = get(key)
    if value == "":
        return False
    try:
        return _BOOLS[value]
    except KeyError:
        raise ValueError(f"parsing {value!r} of environment variable {key}: invalid syntax") from None
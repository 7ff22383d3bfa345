from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class ConfigurationError(ValueError):
    pass


def validate_configuration(
    config_to_validate: Optional[Mapping[str, Any]],
    maximal_template: Optional[Mapping[str, Any]] = None,
    minimal_template: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Check a keyword-style config against allowed and required keys.

    ``maximal_template`` lists every allowed key together with its default value,
    ``minimal_template`` lists the keys that must be present. At least one of the
    two has to be given. Returns a new dict with defaults filled in for every
    allowed key that was not supplied.
    """
    if maximal_template is None and minimal_template is None:
        raise ConfigurationError(
            "validate_configuration needs a maximal_template or a minimal_template, but got neither"
        )
    if config_to_validate is None:
        raise ConfigurationError("validate_configuration needs a config_to_validate, but got None")
    if not isinstance(config_to_validate, Mapping):
        raise ConfigurationError(
            f"Config must be a mapping, got {type(config_to_validate).__name__}"
        )

    if maximal_template is not None and minimal_template is not None:
        inconsistent = [k for k in minimal_template if k not in maximal_template]
        if inconsistent:
            raise ConfigurationError(
                f"minimal_template has keys missing from maximal_template: {', '.join(map(str, inconsistent))}"
            )

    if maximal_template is not None:
        for key in config_to_validate:
            if key not in maximal_template:
                raise ConfigurationError(f"Passed in config has unrecognized key {key!r}")

    if minimal_template is not None:
        for key in minimal_template:
            if key not in config_to_validate:
                raise ConfigurationError(f"Passed in config is missing required {key!r} key")

    validated = dict(config_to_validate)
    for key, default in (maximal_template or {}).items():
        validated.setdefault(key, default)
    return validated

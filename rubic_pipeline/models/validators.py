from typing import TypeVar

import pydantic

from rubic_pipeline.exceptions import ConfigurationError


def _error_message(error: dict) -> str:
    """Render one pydantic error entry, preferring the message of a raised ``ValueError``"""
    ctx = error.get("ctx") or {}
    msg = str(ctx["error"]) if "error" in ctx else error["msg"]
    loc = ".".join(map(str, error.get("loc", ())))
    return f"{loc}: {msg}" if loc else msg


def configuration_error(
    exc: pydantic.ValidationError, reported: tuple[str, ...] = ()
) -> ConfigurationError:
    """Convert a pydantic ``ValidationError`` into a ``ConfigurationError`` listing every
    violated constraint

    Missing-field errors for the top-level fields in ``reported`` are skipped, the caller
    has reported those already.
    """
    errors = [
        e
        for e in exc.errors()
        if not (e["type"] == "missing" and e["loc"][:1] and e["loc"][0] in reported)
    ]
    return ConfigurationError(*map(_error_message, errors))


M = TypeVar("M", bound=pydantic.BaseModel)


def validate_config(config: dict, model: type[M]) -> M:
    """Validate ``config`` against ``model``, raising ``ConfigurationError`` on failure"""
    try:
        return model(**config)
    except pydantic.ValidationError as e:
        raise configuration_error(e) from e


def check(predicate, message: str):
    """Return an ``AfterValidator`` callable raising ``ValueError(message)`` unless
    ``predicate(value)`` holds"""

    def validate(value):
        if not predicate(value):
            raise ValueError(message)
        return value

    return pydantic.AfterValidator(validate)

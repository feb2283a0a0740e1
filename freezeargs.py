"""Utility to make functions taking dictionaries or lists into immutable arguments compatible with cache."""

import functools

from frozendict import frozendict


def freeze(value):
    """Recursively convert dicts to frozendicts and lists to tuples.

    Precondition:
        value is any object

    Postcondition:
        returns a hashable equivalent when value is built from dicts, lists and hashables
        other objects are returned unchanged
    """
    if isinstance(value, dict):
        return frozendict({key: freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return tuple(freeze(item) for item in value)
    return value


def freezeargs(func):
    """Decorator to convert mutable dict and list arguments to immutable equivalents.

    Precondition:
        func is a callable

    Postcondition:
        returns a wrapped version of func
        wrapped version freezes args/kwargs before calling func
        useful for making functions compatible with @cache decorator

    Args:
        func: function to wrap

    Returns:
        wrapped function that freezes its arguments
    """

    @functools.wraps(func)
    def wrapped(*args, **kwargs):
        args = (freeze(arg) for arg in args)
        kwargs = {k: freeze(v) for k, v in kwargs.items()}
        return func(*args, **kwargs)
    return wrapped

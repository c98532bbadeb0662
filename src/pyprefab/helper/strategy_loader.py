from __future__ import annotations

import importlib
import inspect
import pkgutil
from collections.abc import Iterable
from importlib.metadata import entry_points


def _is_concrete_subclass(obj: object, base: type) -> bool:
    return (
            inspect.isclass(obj)
            and issubclass(obj, base)
            and obj is not base
            and not inspect.isabstract(obj))


def _builtin_plugin_classes(base: type, package_name: str) -> list[type]:
    """
    Discovers the concrete subclasses of a base class defined in a package.

    Every module under the package is imported. Classes that are merely
    imported into a module (rather than defined in it) are skipped so that a
    class is reported once.

    Args:
        base (type): The base class to check against.
        package_name (str): The name of the package to walk.

    Returns:
        list[type]: The discovered classes.
    """
    package = importlib.import_module(package_name)
    classes: list[type] = []

    for _finder, mod_name, _ispkg in pkgutil.walk_packages(
            package.__path__, package.__name__ + "."):
        module = importlib.import_module(mod_name)

        for obj in vars(module).values():
            if not _is_concrete_subclass(obj, base):
                continue
            if obj.__module__ != module.__name__:
                continue
            classes.append(obj)

    return classes


def _entrypoint_plugin_classes(base: type, group: str) -> list[type]:
    """
    Loads the classes registered under an entry point group that subclass a
    base class. Entries that do not resolve to such a class are ignored.

    Args:
        base (type): The required base class.
        group (str): The entry point group name.

    Returns:
        list[type]: The discovered classes.
    """
    classes: list[type] = []

    for ep in entry_points().select(group=group):
        obj = ep.load()
        if not _is_concrete_subclass(obj, base):
            continue
        classes.append(obj)

    return classes


def load_plugin_classes(
        *,
        base: type,
        package_name: str,
        entrypoint_group: str,
        name_attr: str = "name") -> list[type]:
    """
    Loads plugin classes from a built-in package and an entry point group.

    Plugins are identified by the class attribute named by `name_attr`
    (falling back to the class name). When two plugins share a name the first
    one found wins, so built-in plugins cannot be shadowed by entry points.
    The result is ordered by `precedence` (lower first), then by name.

    Args:
        base: The base type that all plugin classes must inherit from.
        package_name: The package searched for built-in plugins.
        entrypoint_group: The entry point group searched for third-party
            plugins.
        name_attr: The class attribute holding the plugin name.

    Returns:
        list[type]: The plugin classes, uninstantiated.
    """
    classes: Iterable[type] = (
            _builtin_plugin_classes(base, package_name) +
            _entrypoint_plugin_classes(base, entrypoint_group))

    by_name: dict[str, type] = {}
    for cls in classes:
        name = getattr(cls, name_attr, cls.__name__)
        by_name.setdefault(name, cls)

    ranked: list[tuple[int, str, type]] = []
    for name, cls in by_name.items():
        prec = getattr(cls, "precedence", 100)
        ranked.append((prec, name, cls))

    ranked.sort(key=lambda t: (t[0], t[1]))
    return [cls for _p, _n, cls in ranked]

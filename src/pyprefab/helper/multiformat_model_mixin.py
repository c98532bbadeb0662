from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from typing_extensions import Self

from pyprefab.helper.toml_utils import load_toml_text


def _normalize(value: Any) -> Any:
    """
    Normalizes a value into plain JSON friendly data.

    Paths become POSIX strings, enums become their values, mappings get string
    keys in sorted order, sets become sorted lists and tuples become lists.
    Nested structures are processed recursively.

    Args:
        value (Any): The value to normalize.

    Returns:
        Any: The normalized value.
    """
    match value:
        case Path():
            return value.as_posix()

        case Enum():
            return value.value

        case Mapping():
            return {
                str(k): _normalize(v)
                for k, v in sorted(value.items(), key=lambda kv: str(kv[0]))
            }

        case set() | frozenset():
            return sorted(_normalize(v) for v in value)

        case list() | tuple():
            return [_normalize(v) for v in value]

        case _:
            return value


class MultiformatSerializableMixin:
    """
    Adds JSON serialization to a model.

    Subclasses implement `to_mapping`; everything else is derived from it.
    """

    def to_mapping(self, *args, **kwargs) -> Mapping[str, Any]:
        """
        Converts the model into a mapping.

        Raises:
            NotImplementedError: Subclasses must implement this method.
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement to_mapping() "
            "to use MultiformatSerializableMixin serialization.")

    def to_json(self, *, indent=2) -> str:
        """
        Serializes the model to a JSON string with sorted keys.

        Args:
            indent (int): Indentation used for the output. Defaults to 2.

        Returns:
            str: The JSON document.
        """
        return json.dumps(_normalize(self.to_mapping()), ensure_ascii=False, indent=indent, sort_keys=True)


class MultiformatDeserializableMixin:
    """
    Adds JSON, YAML and TOML deserialization to a model, from files or
    JSON text.

    Subclasses implement `from_mapping`. Loading goes through a fixed pipeline
    (read text, parse, check that the root is a mapping, preprocess, build,
    postprocess) and each step is a classmethod hook that subclasses may
    override.
    """

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        """
        Builds an instance from a mapping.

        Raises:
            NotImplementedError: Subclasses must implement this method.
        """
        raise NotImplementedError(
            f"{cls.__name__} must implement from_mapping(mapping, **kwargs) "
            "to use MultiformatDeserializableMixin.")

    @classmethod
    def deserialize(cls, text: str, *, fmt: str = "json", **context: Any) -> Self:
        """
        Builds an instance from serialized text.

        Args:
            text (str): The document text.
            fmt (str): The document format. Defaults to "json".
            **context (Any): Extra keyword arguments forwarded to the hooks and
                to `from_mapping`.

        Returns:
            Self: The new instance.
        """
        raw = cls._parse_text(text, fmt=fmt, path=None, **context)
        mapping = cls._coerce_root_mapping(raw, fmt=fmt, path=None, **context)
        mapping = cls._preprocess_mapping(mapping, fmt=fmt, path=None, **context)
        inst = cls.from_mapping(mapping, **context)
        return cls._postprocess_instance(inst, fmt=fmt, path=None, **context)

    @classmethod
    def from_json(cls, text: str, **context: Any) -> Self:
        return cls.deserialize(text, fmt="json", **context)

    @classmethod
    def from_file(cls, path: str | Path, fmt: str | None = None, **context: Any) -> Self:
        """
        Builds an instance from a file.

        Args:
            path (str | Path): The file to load.
            fmt (str | None): The document format. Inferred from the file
                suffix when omitted.
            **context (Any): Extra keyword arguments forwarded to the hooks and
                to `from_mapping`.

        Returns:
            Self: The new instance.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the format cannot be inferred or the document does
                not parse.
        """
        p = Path(path)
        text = cls._load_text(p, **context)
        fmt = fmt or cls._infer_format_from_suffix(p)
        raw = cls._parse_text(text, fmt=fmt, path=p, **context)
        mapping = cls._coerce_root_mapping(raw, fmt=fmt, path=p, **context)
        mapping = cls._preprocess_mapping(mapping, fmt=fmt, path=p, **context)
        inst = cls.from_mapping(mapping, **context)
        return cls._postprocess_instance(inst, fmt=fmt, path=p, **context)

    # ---- overridable hooks ----

    @classmethod
    def _load_text(cls, path: Path, **_: Any) -> str:
        return path.read_text(encoding="utf-8")

    @classmethod
    def _infer_format_from_suffix(cls, path: Path) -> str:
        suffix = path.suffix.lower()
        match suffix:
            case ".json":
                return "json"
            case ".yaml" | ".yml":
                return "yaml"
            case ".toml":
                return "toml"
            case _:
                raise ValueError(f"Cannot infer format from extension {suffix!r}")

    @classmethod
    def _parse_text(cls, text: str, *, fmt: str, path: Path | None, **_: Any) -> Any:
        """
        Parses document text into Python data.

        Args:
            text (str): The document text.
            fmt (str): "json", "yaml" or "toml" (case-insensitive).
            path (Path | None): The source file, used in error messages.

        Returns:
            Any: The parsed data.

        Raises:
            ValueError: If the format is unknown or the text is malformed.
        """
        source = str(path) if path else "<inline>"
        fmt = fmt.lower()
        match fmt:
            case "json":
                try:
                    return json.loads(text or "{}")
                except json.JSONDecodeError as e:
                    raise ValueError(f"Malformed JSON in {source}: {e}") from e
            case "yaml":
                try:
                    return next(iter(yaml.safe_load_all(text)), None) or {}
                except yaml.YAMLError as e:
                    raise ValueError(f"Malformed YAML in {source}: {e}") from e
            case "toml":
                return load_toml_text(text or "", source=source)
            case _:
                raise ValueError(f"unrecognized format: {fmt!r}")

    @classmethod
    def _coerce_root_mapping(
            cls,
            raw: Any,
            *,
            fmt: str,
            path: Path | None,
            **_: Any) -> Mapping[str, Any]:
        if isinstance(raw, Mapping):
            return raw
        raise TypeError(
            f"{cls.__name__} expected top-level mapping, got {type(raw)!r} "
            f"from {fmt} {str(path) if path else '<inline>'}")

    @classmethod
    def _preprocess_mapping(
            cls,
            mapping: Mapping[str, Any],
            *,
            fmt: str,
            path: Path | None,
            **_: Any) -> Mapping[str, Any]:
        # default: pass-through; override in unique cases
        return mapping

    @classmethod
    def _postprocess_instance(
            cls,
            inst: Self,
            *,
            fmt: str,
            path: Path | None,
            **_: Any) -> Self:
        """
        Finalizes a freshly built instance.

        If the instance has an empty `source_description` attribute it is set
        to "<fmt>:<path>" so later error messages can name the file a record
        came from. Frozen models that declare the attribute are handled too.
        """
        if hasattr(inst, "source_description") and not getattr(inst, "source_description", None):
            desc = f"{fmt}:{path}" if path is not None else f"{fmt}:<inline>"
            object.__setattr__(inst, "source_description", desc)
        return inst


class MultiformatModelMixin(MultiformatSerializableMixin, MultiformatDeserializableMixin):
    pass

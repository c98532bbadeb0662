from __future__ import annotations

from dataclasses import dataclass


class LibraryReferenceError(ValueError):
    """
    A library reference string is malformed.
    """


class LibraryReference:
    """
    A library exported by a module to its consumers.

    There are three kinds of reference:

    - `Literal`: an opaque linker argument such as `-llog`, used verbatim.
    - `Local`: `:name`, a module in the same package.
    - `External`: `//package:module`, a module in another package.
    """

    @staticmethod
    def parse(text: str) -> LibraryReference:
        """
        Parses a library reference string.

        Args:
            text (str): The reference as written in `module.json`.

        Returns:
            LibraryReference: A `Literal`, `Local` or `External` reference.

        Raises:
            LibraryReferenceError: If the string looks like a local or
                external reference but is malformed, or is empty.
        """
        if text.startswith("//"):
            return External.parse(text)
        if text.startswith(":"):
            return Local.parse(text)
        return Literal.parse(text)


@dataclass(slots=True, frozen=True)
class Literal(LibraryReference):
    arg: str

    @classmethod
    def parse(cls, text: str) -> Literal:
        if not text:
            raise LibraryReferenceError("Library reference must not be empty")
        if text.startswith(":") or text.startswith("//"):
            raise LibraryReferenceError(f"Not a literal library reference: {text!r}")
        return cls(text)

    def __str__(self) -> str:
        return self.arg


@dataclass(slots=True, frozen=True)
class Local(LibraryReference):
    name: str

    @classmethod
    def parse(cls, text: str) -> Local:
        if text.count(":") != 1:
            raise LibraryReferenceError(f"Local library reference must contain exactly one ':': {text!r}")
        name = text[1:]
        if not name:
            raise LibraryReferenceError(f"Local library reference is missing a module name: {text!r}")
        return cls(name)

    def __str__(self) -> str:
        return f":{self.name}"


@dataclass(slots=True, frozen=True)
class External(LibraryReference):
    package: str
    module: str

    @classmethod
    def parse(cls, text: str) -> External:
        body = text[2:]
        if body.count(":") != 1:
            raise LibraryReferenceError(f"External library reference must contain exactly one ':': {text!r}")
        if "/" in body:
            raise LibraryReferenceError(f"Expected no '/' after leading '//' in external library reference: {text!r}")
        package, module = body.split(":")
        if not package or not module:
            raise LibraryReferenceError(f"External library reference must be of the form //package:module: {text!r}")
        return cls(package, module)

    def __str__(self) -> str:
        return f"//{self.package}:{self.module}"

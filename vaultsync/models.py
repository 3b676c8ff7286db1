"""
Data models for vaultsync — plain dataclasses plus wire shape converters.

The vault speaks PascalCase JSON (``Id``, ``GroupId``, ``Tags`` ...). The
``*_from_wire`` helpers turn parsed payload dicts into models and the
``*_to_wire`` helpers build request bodies from declared input, in the same
spirit as the row converters used elsewhere for database shapes.

Usage:
    from vaultsync.models import credential_from_wire, DeclaredCredential

    cred = credential_from_wire(payload)
    body = credential_to_wire(DeclaredCredential(name="db", folder_id=fid))
"""

from __future__ import annotations

import string
from collections.abc import Iterator
from dataclasses import dataclass, field, fields
from typing import Any

# Placeholder for timestamps the vault does not report on a given call.
NOT_IMPLEMENTED = "Not implemented"

# ─── String literal decoding ─────────────────────────────────────────────

_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
}


def _hex(digits: str) -> int:
    if not digits or any(c not in string.hexdigits for c in digits):
        raise ValueError(f"bad hex escape {digits!r}")
    return int(digits, 16)


def _decode_literal(value: str) -> str:
    """Decode a Go-syntax string literal; ValueError when it is not one.

    Accepts ``"..."`` with the Go escape set (``\\a \\b \\f \\n \\r \\t \\v
    \\\\ \\" \\xHH \\ooo \\uHHHH \\UHHHHHHHH``), a single-rune ``'x'``
    literal, and backquoted raw text (carriage returns dropped).
    """
    if len(value) < 2 or value[0] != value[-1]:
        raise ValueError("unterminated literal")
    quote, body = value[0], value[1:-1]

    if quote == "`":
        if "`" in body:
            raise ValueError("backquote inside raw literal")
        return body.replace("\r", "")
    if quote not in "\"'":
        raise ValueError("not a quoted literal")
    if "\n" in body:
        raise ValueError("newline inside literal")

    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == quote:
            raise ValueError("unescaped quote")
        if ch != "\\":
            out += ch.encode("utf-8")
            i += 1
            continue

        if i + 1 >= len(body):
            raise ValueError("trailing backslash")
        esc = body[i + 1]
        i += 2
        if esc in _SIMPLE_ESCAPES:
            out += _SIMPLE_ESCAPES[esc].encode()
        elif esc == quote:
            out += esc.encode()
        elif esc == "x":
            digits = body[i:i + 2]
            if len(digits) != 2:
                raise ValueError("short \\x escape")
            byte = _hex(digits)
            # In a rune literal \xHH names a code point, in a string a raw byte.
            out += chr(byte).encode("utf-8") if quote == "'" else bytes([byte])
            i += 2
        elif esc in "01234567":
            digits = body[i - 1:i + 2]
            if len(digits) != 3 or any(c not in "01234567" for c in digits):
                raise ValueError("short octal escape")
            byte = int(digits, 8)
            if byte > 0o377:
                raise ValueError("octal escape out of range")
            out += chr(byte).encode("utf-8") if quote == "'" else bytes([byte])
            i += 2
        elif esc in "uU":
            width = 4 if esc == "u" else 8
            digits = body[i:i + width]
            if len(digits) != width:
                raise ValueError(f"short \\{esc} escape")
            code = _hex(digits)
            if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                raise ValueError("escape is not a valid code point")
            out += chr(code).encode("utf-8")
            i += width
        else:
            raise ValueError(f"unknown escape \\{esc}")

    # Invalid UTF-8 from byte escapes cannot be represented; treat as malformed.
    decoded = out.decode("utf-8")
    if quote == "'" and len(decoded) != 1:
        raise ValueError("rune literal must hold exactly one character")
    return decoded


def unquote_or_raw(value: str) -> str:
    """Strip the vault's occasional over-quoting from a string payload.

    ``"\\"hunter2\\""`` becomes ``hunter2``. Go literal syntax is what the
    vault emits, so ``'a'``, backquoted text and ``\\x``/octal escapes decode
    too. Anything that is not a well-formed literal (``hunter2``, ``"half``,
    ``"\\/"``) comes back unchanged. Never raises.
    """
    if len(value) < 2 or value[0] not in "\"'`":
        return value
    try:
        return _decode_literal(value)
    except ValueError:
        return value


def _compare_key(obj: Credential | Folder) -> tuple:
    # Tags compare as a set of names; nested folders are compared by the caller.
    return tuple(
        frozenset(t.name for t in obj.tags) if f.name == "tags" else getattr(obj, f.name)
        for f in fields(obj)
        if f.name != "children"
    )


@dataclass
class Tag:
    name: str


@dataclass
class Credential:
    """A credential entry as tracked in state.

    ``password`` is filled from the separate secret endpoint; the main
    credential payload never carries it. Equality ignores tag order.
    """

    id: str
    name: str
    folder_id: str
    username: str = ""
    password: str = ""
    url: str = ""
    notes: str = ""
    created: str = NOT_IMPLEMENTED
    modified: str = NOT_IMPLEMENTED
    expires: str = NOT_IMPLEMENTED
    tags: list[Tag] = field(default_factory=list)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Credential):
            return NotImplemented
        return _compare_key(self) == _compare_key(other)

    @property
    def tag_names(self) -> frozenset[str]:
        return frozenset(t.name for t in self.tags)


@dataclass
class Folder:
    """A folder and, once materialized, its whole subtree.

    Traversals and equality use explicit stacks, so arbitrarily deep trees
    never hit the interpreter's recursion limit.
    """

    id: str
    name: str
    parent_id: str | None = None
    notes: str = ""
    created: str = NOT_IMPLEMENTED
    modified: str = NOT_IMPLEMENTED
    expires: str = NOT_IMPLEMENTED
    tags: list[Tag] = field(default_factory=list)
    credentials: list[Credential] = field(default_factory=list)
    children: list[Folder] = field(default_factory=list)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Folder):
            return NotImplemented
        pairs = [(self, other)]
        while pairs:
            a, b = pairs.pop()
            if len(a.children) != len(b.children) or _compare_key(a) != _compare_key(b):
                return False
            pairs.extend(zip(a.children, b.children))
        return True

    @property
    def tag_names(self) -> frozenset[str]:
        return frozenset(t.name for t in self.tags)

    @property
    def depth(self) -> int:
        """Number of folder levels in this snapshot, counting self."""
        deepest = 0
        stack = [(self, 1)]
        while stack:
            folder, level = stack.pop()
            deepest = max(deepest, level)
            stack.extend((child, level + 1) for child in folder.children)
        return deepest

    def walk(self, prefix: str = "") -> Iterator[tuple[str, Folder]]:
        """Yield ``(path, folder)`` depth-first, children in vault order."""
        stack = [(prefix, self)]
        while stack:
            parent_path, folder = stack.pop()
            path = f"{parent_path}/{folder.name}" if parent_path else folder.name
            yield path, folder
            stack.extend((path, child) for child in reversed(folder.children))

    def iter_credentials(self) -> Iterator[tuple[str, Credential]]:
        for path, folder in self.walk():
            for cred in folder.credentials:
                yield path, cred


@dataclass(frozen=True)
class DeclaredCredential:
    """Operator-declared credential; ids and timestamps belong to the vault."""

    name: str
    folder_id: str
    username: str = ""
    password: str = ""
    url: str = ""
    notes: str = ""
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class DeclaredFolder:
    """Operator-declared folder. ``parent_id=None`` means "under the root"."""

    name: str
    parent_id: str | None = None
    notes: str = ""


@dataclass
class CredentialSearchHit:
    id: str
    name: str
    username: str
    url: str
    notes: str
    folder_id: str
    path: str


@dataclass
class FolderSearchHit:
    id: str
    name: str
    full_path: str


@dataclass
class SearchResult:
    credentials: list[CredentialSearchHit] = field(default_factory=list)
    folders: list[FolderSearchHit] = field(default_factory=list)


# ─── Wire → model ────────────────────────────────────────────────────────


def _timestamp(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return str(value) if value else NOT_IMPLEMENTED


def tags_from_wire(items: list[dict[str, Any]] | None) -> list[Tag]:
    return [Tag(name=item.get("Name") or "") for item in items or []]


def credential_from_wire(payload: dict[str, Any]) -> Credential:
    """Convert a credential payload (without secret) to a Credential."""
    return Credential(
        id=str(payload.get("Id") or ""),
        name=payload.get("Name") or "",
        folder_id=str(payload.get("GroupId") or ""),
        username=payload.get("Username") or "",
        url=payload.get("Url") or "",
        notes=payload.get("Notes") or "",
        created=_timestamp(payload, "Created"),
        modified=_timestamp(payload, "Modified"),
        expires=_timestamp(payload, "Expires"),
        tags=tags_from_wire(payload.get("Tags")),
    )


def folder_from_wire(payload: dict[str, Any]) -> Folder:
    """Convert a folder payload to a Folder with credentials but no children.

    Child folders are attached by the tree materializer, which fetches each
    one by id.
    """
    return Folder(
        id=str(payload.get("Id") or ""),
        name=payload.get("Name") or "",
        parent_id=payload.get("ParentId") or None,
        notes=payload.get("Notes") or "",
        created=_timestamp(payload, "Created"),
        modified=_timestamp(payload, "Modified"),
        expires=_timestamp(payload, "Expires"),
        tags=tags_from_wire(payload.get("Tags")),
        credentials=[credential_from_wire(c) for c in payload.get("Credentials") or []],
    )


def child_ids_from_wire(payload: dict[str, Any]) -> list[str]:
    """Ids of the direct child folders, in the order the vault reports them."""
    return [str(child["Id"]) for child in payload.get("Children") or [] if child.get("Id")]


def credential_hit_from_wire(payload: dict[str, Any]) -> CredentialSearchHit:
    return CredentialSearchHit(
        id=str(payload.get("Id") or ""),
        name=payload.get("Name") or "",
        username=payload.get("Username") or "",
        url=payload.get("Url") or "",
        notes=payload.get("Notes") or "",
        folder_id=str(payload.get("GroupId") or ""),
        path=payload.get("Path") or "",
    )


def folder_hit_from_wire(payload: dict[str, Any]) -> FolderSearchHit:
    return FolderSearchHit(
        id=str(payload.get("Id") or ""),
        name=payload.get("Name") or "",
        full_path=payload.get("FullPath") or "",
    )


# ─── Declared → wire ─────────────────────────────────────────────────────


def credential_to_wire(declared: DeclaredCredential) -> dict[str, Any]:
    """Full credential input body. Every field is always sent."""
    return {
        "Name": declared.name,
        "Notes": declared.notes,
        "GroupId": declared.folder_id,
        "Username": declared.username,
        "Password": declared.password,
        "Url": declared.url,
        "Tags": [{"Name": name} for name in declared.tags],
    }


def folder_to_wire(declared: DeclaredFolder, parent_id: str) -> dict[str, Any]:
    return {
        "Name": declared.name,
        "Notes": declared.notes,
        "ParentId": parent_id,
    }
